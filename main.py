"""
Командная строка для компрессора.
"""

import argparse
import sys

from loguru import logger

from archiver import Archiver
from compressor import CANDIDATE_WIDTHS


def main():
    parser = argparse.ArgumentParser(
        description='Variable-width Huffman compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress input.txt -o compressed.bin
  python main.py compress input.txt -o compressed.bin --width 8
  python main.py decompress compressed.bin -o output.txt
  python main.py info compressed.bin
  python main.py verify file1.txt file2.txt
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress file')
    compress_parser.add_argument('input', help='File to compress')
    compress_parser.add_argument('-o', '--output', required=True, help='Compressed file path')
    compress_parser.add_argument('--width', type=int, choices=range(1, 9),
                                 help='Force symbol width instead of trying 2..8')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress file')
    decompress_parser.add_argument('input', help='Compressed file')
    decompress_parser.add_argument('-o', '--output', required=True, help='Output path')

    info_parser = subparsers.add_parser('info', help='Show container header')
    info_parser.add_argument('input', help='Compressed file')

    verify_parser = subparsers.add_parser('verify', help='Check round trip in memory')
    verify_parser.add_argument('files', nargs='+', help='Files to check')

    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level='DEBUG' if args.verbose else 'WARNING')

    if not args.command:
        parser.print_help()
        return

    width = getattr(args, 'width', None)
    archiver = Archiver(widths=(width,) if width else CANDIDATE_WIDTHS)

    try:
        if args.command == 'compress':
            stats = archiver.compress_file(args.input, args.output)
            if stats and args.verbose:
                stats.print_stats()

        elif args.command == 'decompress':
            archiver.decompress_file(args.input, args.output)

        elif args.command == 'info':
            archiver.show_info(args.input)

        elif args.command == 'verify':
            results = [archiver.verify_file(path) for path in args.files]
            if not all(results):
                sys.exit(1)

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
