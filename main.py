"""
Командная строка для компрессора .grin.
"""

import argparse
import sys
from grin import Grin


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='grin',
        description='Huffman file compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  grin encode notes.txt notes.grin
  grin decode notes.grin notes.txt
  grin info notes.grin
        """
    )
    parser.add_argument('-q', '--quiet', action='store_true', help='Do not print progress')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    encode_parser = subparsers.add_parser('encode', help='Compress a file')
    encode_parser.add_argument('input', help='File to compress')
    encode_parser.add_argument('output', help='Output .grin file')

    decode_parser = subparsers.add_parser('decode', help='Decompress a .grin file')
    decode_parser.add_argument('input', help='.grin file to decompress')
    decode_parser.add_argument('output', help='Output file')

    info_parser = subparsers.add_parser('info', help='Show the code table of a .grin file')
    info_parser.add_argument('input', help='.grin file')

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    grin = Grin(verbose=not args.quiet)

    try:
        if args.command == 'encode':
            grin.encode_file(args.input, args.output)

        elif args.command == 'decode':
            grin.decode_file(args.input, args.output)

        elif args.command == 'info':
            grin.print_info(args.input)

    except (ValueError, LookupError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
