from typing import Tuple

COUNT_BITS = 32  #: Width of the bit-count prefix written by ``pack_bitstring``


class BitWriter:
    """Bit-packing writer.

    Accumulates individual bits into bytes, MSB first, and buffers them until
    flushed.

    :ivar buffer: Internal byte buffer holding fully written bytes.
    :type buffer: bytearray
    :ivar bit_buffer: 8-bit scratch register for accumulating pending bits.
    :type bit_buffer: int
    :ivar bit_count: Number of valid bits currently stored in ``bit_buffer`` (0-7).
    :type bit_count: int
    """

    def __init__(self):
        """Initialize an empty bit writer.

        :returns: None
        :rtype: None
        """
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0

    def write_bit(self, bit: int):
        """Write a single bit.

        :param bit: ``0`` or ``1``; any non-zero value is written as ``1``.
        :type bit: int
        :returns: None
        :rtype: None
        """
        self.bit_buffer = (self.bit_buffer << 1) | (1 if bit else 0)
        self.bit_count += 1
        if self.bit_count == 8:
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0

    def write_bits(self, value: int, nbits: int):
        """Write the lowest ``nbits`` of ``value`` to the buffer, MSB first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param nbits: Number of bits from ``value`` to write.
        :type nbits: int
        :returns: None
        :rtype: None
        """
        for i in range(nbits - 1, -1, -1):
            self.write_bit((value >> i) & 1)

    def write_bitstring(self, bits: str):
        """Write a string of ``'0'``/``'1'`` characters.

        :param bits: Bit string, first character written first.
        :type bits: str
        :returns: None
        :rtype: None
        :raises ValueError: If ``bits`` contains anything but ``0`` and ``1``.
        """
        for ch in bits:
            if ch == "0":
                self.write_bit(0)
            elif ch == "1":
                self.write_bit(1)
            else:
                raise ValueError(f"Invalid bit character: {ch!r}")

    def write_bytes(self, data: bytes):
        """Write raw bytes, aligning pending bits to the next byte boundary.

        :param data: Byte sequence to append to the output.
        :type data: bytes
        :returns: None
        :rtype: None
        """
        self._pad()
        self.buffer.extend(data)

    def flush(self) -> bytes:
        """Flush remaining bits (if any) and return the full byte buffer.

        Any partial byte in ``bit_buffer`` is padded with zeros.

        :returns: The accumulated bytes written so far.
        :rtype: bytes
        """
        self._pad()
        return bytes(self.buffer)

    def _pad(self):
        if self.bit_count > 0:
            self.bit_buffer <<= (8 - self.bit_count)
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0


class BitReader:
    """Bit-packing reader.

    Reads arbitrary bit lengths from a bytes-like object, MSB first.

    :ivar data: Input data to read bits/bytes from.
    :type data: bytes
    :ivar pos: Index of the next unread source byte.
    :type pos: int
    :ivar bit_buffer: Scratch register holding the current source byte.
    :type bit_buffer: int
    :ivar bit_count: Number of unread bits remaining in ``bit_buffer`` (0-8).
    :type bit_count: int
    """

    def __init__(self, data: bytes):
        """Create a bit reader for the given input ``data``.

        :param data: Source data to read from.
        :type data: bytes
        :returns: None
        :rtype: None
        """
        self.data = data
        self.pos = 0
        self.bit_buffer = 0
        self.bit_count = 0

    def read_bit(self) -> int:
        """Read one bit.

        :returns: ``0`` or ``1``.
        :rtype: int
        :raises EOFError: If no bits are left.
        """
        if self.bit_count == 0:
            if self.pos >= len(self.data):
                raise EOFError("Unexpected end of data")
            self.bit_buffer = self.data[self.pos]
            self.pos += 1
            self.bit_count = 8
        self.bit_count -= 1
        return (self.bit_buffer >> self.bit_count) & 1

    def read_bits(self, nbits: int) -> int:
        """Read ``nbits`` bits and return them as an integer, MSB first.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: The integer value composed of the next ``nbits`` bits.
        :rtype: int
        :raises EOFError: If the end of data is reached before reading ``nbits``.
        """
        result = 0
        for _ in range(nbits):
            result = (result << 1) | self.read_bit()
        return result

    def read_bitstring(self, nbits: int) -> str:
        """Read ``nbits`` bits as a string of ``'0'``/``'1'`` characters.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: Bit string of length ``nbits``.
        :rtype: str
        :raises EOFError: If fewer than ``nbits`` bits remain.
        """
        if self.bit_count == 0:
            nbytes = (nbits + 7) // 8
            chunk = self.data[self.pos:self.pos + nbytes]
            if len(chunk) < nbytes:
                raise EOFError("Unexpected end of data")
            self.pos += nbytes
            if nbits % 8:
                self.bit_buffer = chunk[-1]
                self.bit_count = 8 - nbits % 8
            if not nbytes:
                return ""
            return format(int.from_bytes(chunk, "big"), f"0{nbytes * 8}b")[:nbits]
        return "".join("1" if self.read_bit() else "0" for _ in range(nbits))

    def read_bytes(self, nbytes: int) -> bytes:
        """Read ``nbytes`` raw bytes from the stream.

        Any pending bits are discarded (byte-aligns the stream) before reading.

        :param nbytes: Number of bytes to read.
        :type nbytes: int
        :returns: The next ``nbytes`` bytes.
        :rtype: bytes
        :raises EOFError: If fewer than ``nbytes`` bytes remain.
        """
        self.bit_count = 0
        result = self.data[self.pos:self.pos + nbytes]
        if len(result) < nbytes:
            raise EOFError("Unexpected end of data")
        self.pos += nbytes
        return result


def pack_bitstring(bits: str) -> bytes:
    """Serialize a bit string as a 32-bit bit count followed by packed bits.

    The count makes the zero padding of the last byte unambiguous.

    :param bits: String of ``'0'``/``'1'`` characters.
    :type bits: str
    :returns: Packed representation.
    :rtype: bytes
    :raises ValueError: If ``bits`` is too long for the count field or holds
        characters other than ``0`` and ``1``.
    """
    if len(bits) >= 1 << COUNT_BITS:
        raise ValueError(f"Bit string too long: {len(bits)} bits")
    writer = BitWriter()
    writer.write_bits(len(bits), COUNT_BITS)
    writer.write_bitstring(bits)
    return writer.flush()


def unpack_bitstring(data: bytes) -> Tuple[str, int]:
    """Inverse of :func:`pack_bitstring`.

    :param data: Bytes starting with a packed bit string.
    :type data: bytes
    :returns: Tuple ``(bits, consumed)`` where ``consumed`` is the number of
        bytes of ``data`` that belonged to the packed bit string.
    :rtype: Tuple[str, int]
    :raises EOFError: If ``data`` is shorter than its bit count announces.
    """
    reader = BitReader(data)
    nbits = reader.read_bits(COUNT_BITS)
    bits = reader.read_bitstring(nbits)
    return bits, reader.pos
