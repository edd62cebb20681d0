import heapq
from collections import Counter
from typing import Dict, Iterable, List, Optional

from bitops import BitReader, BitWriter
from errors import (
    EmptyInputError,
    InvalidStructureError,
    SymbolNotFoundError,
)


class HuffmanNode:
    """Node of a binary Huffman tree.

    Leaves hold a symbol, internal nodes hold only the combined weight of
    their two children.

    :ivar symbol: The character stored at a leaf; ``None`` for internal nodes.
    :type symbol: str | None
    :ivar weight: Frequency (weight) of the subtree rooted at this node.
    :type weight: int
    :ivar left: Left child node (reached with bit ``0``).
    :type left: HuffmanNode | None
    :ivar right: Right child node (reached with bit ``1``).
    :type right: HuffmanNode | None
    :ivar order: Secondary priority key used when weights are equal.
    :type order: int
    """

    def __init__(self, symbol=None, weight=0, left=None, right=None, order=0):
        """Create a Huffman node.

        :param symbol: Symbol for leaf nodes; ``None`` for internal nodes.
        :type symbol: str | None
        :param int weight: Weight associated with this node.
        :param left: Left child node, if any.
        :type left: HuffmanNode|None
        :param right: Right child node, if any.
        :type right: HuffmanNode|None
        :param int order: Tie-break key, lower pops first on equal weight.
        :returns: None
        :rtype: None
        """
        self.symbol = symbol
        self.weight = weight
        self.left = left
        self.right = right
        self.order = order

    @property
    def is_leaf(self) -> bool:
        """``True`` if this node carries a symbol."""
        return self.symbol is not None

    def __lt__(self, other):
        """Order nodes by weight, then by ``order`` (for priority queues).

        :param other: Another node to compare with.
        :type other: HuffmanNode
        :returns: ``True`` if this node pops before ``other``.
        :rtype: bool
        """
        return (self.weight, self.order) < (other.weight, other.order)

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode({self.symbol!r}, weight={self.weight})"
        return f"HuffmanNode(weight={self.weight}, left={self.left!r}, right={self.right!r})"


def count_frequencies(symbols: Iterable[str]) -> Dict[str, int]:
    """Count how often each symbol occurs.

    :param symbols: Symbol sequence, usually a ``str``.
    :type symbols: Iterable[str]
    :returns: Mapping from symbol to occurrence count; empty for empty input.
    :rtype: Dict[str, int]
    """
    return dict(Counter(symbols))


def build_tree(frequencies: Dict[str, int]) -> HuffmanNode:
    """Build a Huffman tree from a symbol frequency table.

    The two lightest nodes are merged repeatedly, the first popped becoming
    the left child. Ties on weight are broken by ``order``: leaves are
    numbered in ascending symbol order, then every merged node takes the next
    number, so leaves beat internal nodes and older internal nodes beat newer
    ones. The same table therefore always yields the same tree.

    :param frequencies: Mapping from symbol to a positive weight.
    :type frequencies: Dict[str, int]
    :returns: Root of the tree; a lone leaf if there is a single symbol.
    :rtype: HuffmanNode
    :raises EmptyInputError: If ``frequencies`` is empty.
    :raises ValueError: If a weight is not positive.
    """
    if not frequencies:
        raise EmptyInputError("Cannot build a Huffman tree without symbols")

    heap: List[HuffmanNode] = []
    for order, symbol in enumerate(sorted(frequencies)):
        weight = frequencies[symbol]
        if weight <= 0:
            raise ValueError(f"Weight of {symbol!r} must be positive, got {weight}")
        heap.append(HuffmanNode(symbol=symbol, weight=weight, order=order))
    heapq.heapify(heap)

    next_order = len(heap)
    while len(heap) > 1:
        left = heapq.heappop(heap)
        right = heapq.heappop(heap)
        merged = HuffmanNode(
            weight=left.weight + right.weight,
            left=left,
            right=right,
            order=next_order,
        )
        next_order += 1
        heapq.heappush(heap, merged)

    return heap[0]


def fixed_width_length(frequencies: Dict[str, int]) -> int:
    """Bits needed by a fixed-width code over the same alphabet.

    Each symbol takes ``ceil(log2(distinct symbols))`` bits, but never less
    than one.

    :param frequencies: Mapping from symbol to occurrence count.
    :type frequencies: Dict[str, int]
    :returns: Total bit length of the naive encoding.
    :rtype: int
    """
    if not frequencies:
        return 0
    width = max(1, (len(frequencies) - 1).bit_length())
    return width * sum(frequencies.values())


class HuffmanCode:
    """Code tables derived from a Huffman tree.

    :ivar WIDTH_BITS: Size of the symbol-width field in the serialized tree.
    :type WIDTH_BITS: int
    :ivar root: Tree the tables were derived from; ``None`` when empty.
    :type root: HuffmanNode | None
    :ivar codes: Mapping from symbol to its bit string.
    :type codes: Dict[str, str]
    :ivar decode_table: Mapping from bit string back to the symbol.
    :type decode_table: Dict[str, str]
    :ivar symbols: Sorted list of symbols with defined codes.
    :type symbols: List[str]
    """

    WIDTH_BITS = 5

    def __init__(self):
        """Initialize empty code tables.

        :returns: None
        :rtype: None
        """
        self.root: Optional[HuffmanNode] = None
        self.codes: Dict[str, str] = {}
        self.decode_table: Dict[str, str] = {}
        self.symbols: List[str] = []

    def build_from_frequencies(self, frequencies: Dict[str, int]):
        """Build the tree and code tables from a frequency table.

        An empty table leaves the instance empty.

        :param frequencies: Mapping from symbol to observed frequency.
        :type frequencies: Dict[str, int]
        :returns: None
        :rtype: None
        """
        if not frequencies:
            self.build_from_tree(None)
            return
        self.build_from_tree(build_tree(frequencies))

    def build_from_tree(self, root: Optional[HuffmanNode]):
        """Derive the code tables from an existing tree.

        A tree made of a single leaf gets the one-bit code ``"0"``.

        :param root: Tree root, or ``None`` for an empty code.
        :type root: HuffmanNode | None
        :returns: None
        :rtype: None
        :raises InvalidStructureError: If an internal node lacks a child or a
            symbol occurs on more than one leaf.
        """
        self.root = root
        self.codes = {}
        self.decode_table = {}
        self.symbols = []

        if root is None:
            return

        if root.is_leaf:
            self.codes[root.symbol] = "0"
        else:
            self._assign_codes(root)

        self.decode_table = {code: symbol for symbol, code in self.codes.items()}
        self.symbols = sorted(self.codes)

    def _assign_codes(self, root: HuffmanNode):
        """Record the code of every leaf below ``root``.

        Depth-first over an explicit stack; tree depth is not bounded by the
        recursion limit. ``path`` is one buffer shared by the whole walk: it
        is cut back to the parent's depth and the branch bit pushed each time
        a node is entered.

        :param root: Internal node the walk starts from.
        :type root: HuffmanNode
        :returns: None
        :rtype: None
        """
        path: List[str] = []
        stack = [(root, 0, None)]
        while stack:
            node, depth, bit = stack.pop()
            del path[depth:]
            if bit is not None:
                path.append(bit)

            if node.is_leaf:
                if node.symbol in self.codes:
                    raise InvalidStructureError(
                        f"Symbol {node.symbol!r} appears on more than one leaf"
                    )
                self.codes[node.symbol] = "".join(path)
                continue

            # right pushed first so the left branch is walked first
            for child_bit, child in (("1", node.right), ("0", node.left)):
                if child is None:
                    raise InvalidStructureError(
                        f"Internal node at {''.join(path) or 'root'} has no child for bit {child_bit}"
                    )
                stack.append((child, len(path), child_bit))

    @property
    def code_lengths(self) -> Dict[str, int]:
        """Mapping from symbol to code length in bits."""
        return {symbol: len(code) for symbol, code in self.codes.items()}

    def encode_symbol(self, symbol: str) -> str:
        """Get the Huffman code for a symbol.

        :param symbol: Symbol to encode.
        :type symbol: str
        :returns: The symbol's bit string.
        :rtype: str
        :raises SymbolNotFoundError: If ``symbol`` has no code.
        """
        try:
            return self.codes[symbol]
        except KeyError:
            raise SymbolNotFoundError(symbol) from None

    def encoded_length(self, frequencies: Dict[str, int]) -> int:
        """Total bits needed to encode text with the given frequencies.

        :param frequencies: Mapping from symbol to occurrence count.
        :type frequencies: Dict[str, int]
        :returns: ``sum(count * len(code))`` over all symbols.
        :rtype: int
        :raises SymbolNotFoundError: If a symbol has no code.
        """
        return sum(
            count * len(self.encode_symbol(symbol))
            for symbol, count in frequencies.items()
        )

    def save_tree(self) -> bytes:
        """Serialize the tree for later reconstruction.

        The format stores the symbol width W (5 bits), then the nodes in
        pre-order: ``0`` for an internal node, ``1`` followed by the W-bit
        code point for a leaf.

        :returns: Serialized tree bytes.
        :rtype: bytes
        :raises EmptyInputError: If there is no tree to save.
        """
        if self.root is None:
            raise EmptyInputError("No Huffman tree to serialize")

        width = max(1, max(ord(symbol) for symbol in self.symbols).bit_length())
        data = BitWriter()
        data.write_bits(width, self.WIDTH_BITS)
        self._write_nodes(data, self.root, width)
        return data.flush()

    @staticmethod
    def _write_nodes(data: BitWriter, root: HuffmanNode, width: int):
        stack = [root]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                data.write_bit(1)
                data.write_bits(ord(node.symbol), width)
                continue
            data.write_bit(0)
            stack.append(node.right)
            stack.append(node.left)

    def load_tree(self, data: bytes) -> int:
        """Load a tree written by :meth:`save_tree` and regenerate codes.

        Loaded nodes carry no weights.

        :param data: Serialized tree, possibly followed by other data.
        :type data: bytes
        :returns: Number of bytes consumed from ``data``.
        :rtype: int
        :raises InvalidStructureError: If the tree is truncated or invalid.
        """
        reader = BitReader(data)
        try:
            width = reader.read_bits(self.WIDTH_BITS)
            if width == 0:
                raise InvalidStructureError("Symbol width must be positive")
            root = self._read_tree(reader, width)
        except EOFError as e:
            raise InvalidStructureError("Serialized tree is truncated") from e
        self.build_from_tree(root)
        return reader.pos

    @staticmethod
    def _read_tree(reader: BitReader, width: int) -> HuffmanNode:
        """Rebuild a pre-order serialized tree without recursion.

        :param reader: Reader positioned at the first node bit.
        :type reader: BitReader
        :param width: Bits per stored code point.
        :type width: int
        :returns: Root of the rebuilt tree.
        :rtype: HuffmanNode
        :raises InvalidStructureError: If a code point is out of range or a
            surrogate.
        :raises EOFError: If the data ends before the tree is complete.
        """
        root = None
        pending: List[HuffmanNode] = []  # internal nodes still missing a child
        order = 0
        while True:
            if reader.read_bit():
                code_point = reader.read_bits(width)
                if 0xD800 <= code_point <= 0xDFFF:
                    raise InvalidStructureError(
                        f"Surrogate code point in tree: {code_point:#x}"
                    )
                try:
                    node = HuffmanNode(symbol=chr(code_point), order=order)
                except ValueError as e:
                    raise InvalidStructureError(
                        f"Invalid code point in tree: {code_point}"
                    ) from e
            else:
                node = HuffmanNode(order=order)
            order += 1

            if not pending:
                root = node
            elif pending[-1].left is None:
                pending[-1].left = node
            else:
                pending.pop().right = node

            if not node.is_leaf:
                pending.append(node)
            if not pending:
                return root
