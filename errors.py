class HuffmanError(ValueError):
    """Base class for invalid data seen by the Huffman coder."""


class EmptyInputError(HuffmanError):
    """Raised when a tree is requested for an empty frequency table."""


class MalformedStreamError(HuffmanError):
    """Raised when an encoded stream or container cannot be decoded.

    Covers streams that stop in the middle of a code, stray characters in a
    bit string, and truncated or inconsistent containers.
    """


class InvalidStructureError(HuffmanError):
    """Raised when a decoding tree is missing nodes it needs."""


class SymbolNotFoundError(LookupError):
    """Raised when a symbol to encode has no entry in the code table.

    :ivar symbol: The symbol that could not be encoded.
    :type symbol: str
    """

    def __init__(self, symbol):
        """Create the error for ``symbol``.

        :param symbol: Symbol missing from the code table.
        :type symbol: str
        :returns: None
        :rtype: None
        """
        super().__init__(f"Symbol {symbol!r} has no Huffman code")
        self.symbol = symbol
