from typing import Dict, Iterable, Optional, Tuple

from bitops import BitReader, BitWriter, pack_bitstring, unpack_bitstring
from errors import (
    InvalidStructureError,
    MalformedStreamError,
    SymbolNotFoundError,
)
from huffman import HuffmanCode, HuffmanNode, count_frequencies


def encode_symbols(symbols: Iterable[str], codes: Dict[str, str]) -> str:
    """Concatenate the code of every symbol, in input order.

    :param symbols: Symbols to encode.
    :type symbols: Iterable[str]
    :param codes: Mapping from symbol to bit string.
    :type codes: Dict[str, str]
    :returns: Encoded bit string.
    :rtype: str
    :raises SymbolNotFoundError: If a symbol is missing from ``codes``.
    """
    try:
        return "".join(codes[symbol] for symbol in symbols)
    except KeyError as e:
        raise SymbolNotFoundError(e.args[0]) from None


def decode_bits(bits: str, root: Optional[HuffmanNode]) -> str:
    """Walk the tree bit by bit and collect the symbols found at the leaves.

    :param bits: Encoded bit string.
    :type bits: str
    :param root: Tree the bits were produced with; ``None`` only for an
        empty stream.
    :type root: HuffmanNode | None
    :returns: Decoded text.
    :rtype: str
    :raises MalformedStreamError: If ``bits`` ends in the middle of a code or
        holds characters other than ``0`` and ``1``.
    :raises InvalidStructureError: If a step needs a child the tree lacks, or
        there is no tree for a non-empty stream.
    """
    if root is None:
        if bits:
            raise InvalidStructureError("Cannot decode a non-empty stream without a tree")
        return ""

    if root.is_leaf:
        for pos, bit in enumerate(bits):
            if bit != "0":
                raise MalformedStreamError(
                    f"Unexpected bit {bit!r} at position {pos} for a single-symbol code"
                )
        return root.symbol * len(bits)

    output = []
    node = root
    for pos, bit in enumerate(bits):
        if bit == "0":
            child = node.left
        elif bit == "1":
            child = node.right
        else:
            raise MalformedStreamError(f"Invalid bit character {bit!r} at position {pos}")
        if child is None:
            raise InvalidStructureError(f"No child for bit {bit} at position {pos}")
        if child.is_leaf:
            output.append(child.symbol)
            node = root
        else:
            node = child

    if node is not root:
        raise MalformedStreamError("Stream ends in the middle of a code")
    return "".join(output)


class HuffmanCodec:
    """Huffman coder for text, plus a byte container for its output.

    Container layout (bit-packed, MSB first):

    - Version: 8 bits
    - Symbol count: 32 bits
    - If the count is non-zero:
    - - Tree length in bytes: 32 bits
    - - Tree bytes (see :meth:`HuffmanCode.save_tree`)
    - - Stream: 32-bit bit count, then the packed bits

    :ivar VERSION: Format version of the container.
    :type VERSION: int
    :ivar huffman: Code tables of the last encoded or decoded text.
    :type huffman: HuffmanCode
    """

    VERSION = 1

    def __init__(self):
        """Initialize the Huffman code tables.

        :returns: None
        :rtype: None
        """
        self.huffman = HuffmanCode()

    def encode(self, text: str) -> Tuple[str, Optional[HuffmanNode]]:
        """Encode ``text`` with a tree built from its own frequencies.

        Empty text gives an empty stream and no tree.

        :param text: Text to encode.
        :type text: str
        :returns: Tuple ``(bits, root)``; ``root`` is needed to decode.
        :rtype: Tuple[str, Optional[HuffmanNode]]
        """
        self.huffman.build_from_frequencies(count_frequencies(text))
        return encode_symbols(text, self.huffman.codes), self.huffman.root

    @staticmethod
    def decode(bits: str, root: Optional[HuffmanNode]) -> str:
        """Decode ``bits`` produced by :meth:`encode`.

        :param bits: Encoded bit string.
        :type bits: str
        :param root: Tree returned together with ``bits``.
        :type root: HuffmanNode | None
        :returns: Original text.
        :rtype: str
        """
        return decode_bits(bits, root)

    def compress(self, text: str) -> bytes:
        """Encode ``text`` into a self-contained byte string.

        :param text: Text to compress.
        :type text: str
        :returns: Container bytes. For empty input returns the 5-byte header.
        :rtype: bytes
        :raises ValueError: If ``text`` is too long for the count field.
        """
        if len(text) >= 1 << 32:
            raise ValueError(f"Input too long: {len(text)} symbols")

        output = BitWriter()
        output.write_bits(self.VERSION, 8)
        output.write_bits(len(text), 32)
        if not text:
            return output.flush()

        bits, _ = self.encode(text)
        tree = self.huffman.save_tree()
        output.write_bits(len(tree), 32)
        output.write_bytes(tree)
        output.write_bytes(pack_bitstring(bits))
        return output.flush()

    def decompress(self, data: bytes) -> str:
        """Decompress data produced by :meth:`compress`.

        :param data: Container bytes.
        :type data: bytes
        :returns: Original text.
        :rtype: str
        :raises ValueError: If the version is unsupported.
        :raises MalformedStreamError: If the container is truncated, carries
            trailing bytes, or the stream does not match the stored symbol
            count.
        :raises InvalidStructureError: If the stored tree is invalid.
        """
        reader = BitReader(data)
        try:
            version = reader.read_bits(8)
            if version != self.VERSION:
                raise ValueError(f"Unsupported version: {version}")
            count = reader.read_bits(32)
            if count == 0:
                self.huffman.build_from_tree(None)
                return ""
            tree_len = reader.read_bits(32)
            tree = reader.read_bytes(tree_len)
        except EOFError as e:
            raise MalformedStreamError("Container header is truncated") from e

        if self.huffman.load_tree(tree) != len(tree):
            raise InvalidStructureError("Trailing bytes after serialized tree")

        try:
            bits, consumed = unpack_bitstring(data[reader.pos:])
        except EOFError as e:
            raise MalformedStreamError("Encoded stream is truncated") from e
        if reader.pos + consumed != len(data):
            raise MalformedStreamError("Trailing bytes after encoded stream")

        text = self.decode(bits, self.huffman.root)
        if len(text) != count:
            raise MalformedStreamError(
                f"Expected {count} symbols, decoded {len(text)}"
            )
        return text


def encode(text: str) -> Tuple[str, Optional[HuffmanNode]]:
    """Encode ``text``; see :meth:`HuffmanCodec.encode`."""
    return HuffmanCodec().encode(text)


def decode(bits: str, root: Optional[HuffmanNode]) -> str:
    """Decode ``bits`` with ``root``; see :func:`decode_bits`."""
    return decode_bits(bits, root)
