import argparse

from typing import Dict, List, Tuple
from codec import HuffmanCodec
from huffman import HuffmanCode, count_frequencies, fixed_width_length


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Huffman coder for text files"
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    encode = subparsers.add_parser(
        "encode", aliases=["e"], help="Compress a UTF-8 text file"
    )
    encode.add_argument("input", help="Text file to compress")
    encode.add_argument(
        "-o", "--output", required=True, help="Output file path"
    )

    decode = subparsers.add_parser(
        "decode", aliases=["d"], help="Restore a text file"
    )
    decode.add_argument("input", help="Compressed file to restore")
    decode.add_argument(
        "-o", "--output", required=True, help="Output text file path"
    )

    stats = subparsers.add_parser(
        "stats", aliases=["s"], help="Show frequencies and Huffman codes"
    )
    stats.add_argument("input", nargs="?", help="Text file to analyse")
    stats.add_argument("-t", "--text", help="Analyse this text instead")

    return parser


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    for unit in ['', 'Ki', 'Mi', 'Gi', 'Ti']:
        if abs(n) < 1024:
            return f"{n:.2f} {unit}B"
        n /= 1024
    return f"{n:.2f} PiB"


def _code_rows(
    frequencies: Dict[str, int], huffman: HuffmanCode
) -> List[Tuple[str, int, str]]:
    """Rows of the code table, most frequent symbol first.

    :param frequencies: Mapping from symbol to occurrence count.
    :type frequencies: Dict[str, int]
    :param huffman: Code tables built from ``frequencies``.
    :type huffman: HuffmanCode
    :returns: List of ``(symbol, count, code)``.
    :rtype: List[Tuple[str, int, str]]
    """
    ordered = sorted(frequencies.items(), key=lambda item: (-item[1], item[0]))
    return [
        (symbol, count, huffman.encode_symbol(symbol))
        for symbol, count in ordered
    ]


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def encode_file(input_path: str, output_path: str) -> None:
    """Compress a UTF-8 text file with :class:`HuffmanCodec`.

    :param input_path: Text file to compress.
    :type input_path: str
    :param output_path: Destination file path.
    :type output_path: str
    :returns: None
    :rtype: None
    """
    try:
        text = _read_text(input_path)
    except FileNotFoundError:
        print(f"[!] Input file not found: {input_path}")
        return
    except UnicodeDecodeError:
        print(f"[!] Input file is not valid UTF-8: {input_path}")
        return

    comp = HuffmanCodec().compress(text)
    with open(output_path, "wb") as out:
        out.write(comp)

    size_before = len(text.encode("utf-8"))
    print("Size before compression: ", _fmt_bytes(size_before))
    print("Size after compression: ", _fmt_bytes(len(comp)))
    if comp and size_before:
        print(f"Compression ratio: {size_before / len(comp):.2f}")


def decode_file(input_path: str, output_path: str) -> None:
    """Restore a text file written by :func:`encode_file`.

    :param input_path: Compressed file.
    :type input_path: str
    :param output_path: Destination text file path.
    :type output_path: str
    :returns: None
    :rtype: None
    """
    try:
        with open(input_path, "rb") as f:
            data = f.read()
    except FileNotFoundError:
        print(f"[!] Compressed file not found: {input_path}")
        return

    try:
        text = HuffmanCodec().decompress(data)
    except ValueError as e:
        print(f"[!] Cannot decode {input_path}: {e}")
        return

    with open(output_path, "w", encoding="utf-8", newline="") as out:
        out.write(text)
    print(f"Restored {len(text)} symbols to {output_path}")


def print_stats(text: str) -> None:
    """Print the frequency table, the code table and the bit counts.

    :param text: Text to analyse.
    :type text: str
    :returns: None
    :rtype: None
    """
    frequencies = count_frequencies(text)
    if not frequencies:
        print("[!] Nothing to analyse: input is empty")
        return

    huffman = HuffmanCode()
    huffman.build_from_frequencies(frequencies)

    print(f"{'symbol':>8}  {'count':>8}  code")
    for symbol, count, code in _code_rows(frequencies, huffman):
        print(f"{symbol!r:>8}  {count:>8}  {code}")

    huffman_bits = huffman.encoded_length(frequencies)
    fixed_bits = fixed_width_length(frequencies)
    print(f"Symbols: {len(text)} ({len(frequencies)} distinct)")
    print(f"Huffman bits: {huffman_bits}")
    print(f"Fixed-width bits: {fixed_bits}")
    print(f"Saving: {100.0 * (1 - huffman_bits / fixed_bits):.2f}%")


def main():
    """Entry point for the CLI tool.

    :returns: None
    :rtype: None
    """
    parser = get_parser()
    args = parser.parse_args()

    if args.cmd in ["encode", "e"]:
        encode_file(args.input, args.output)
    elif args.cmd in ["decode", "d"]:
        decode_file(args.input, args.output)
    elif args.cmd in ["stats", "s"]:
        if args.text is not None:
            print_stats(args.text)
            return
        if args.input is None:
            parser.error("stats needs an input file or --text")
        try:
            text = _read_text(args.input)
        except FileNotFoundError:
            print(f"[!] Input file not found: {args.input}")
            return
        print_stats(text)


if __name__ == "__main__":
    main()
