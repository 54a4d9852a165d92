"""
Nitro ROM Tool - command line

Extract an NDS ROM into a directory, or build a ROM from such a directory.

Directory layout:
  data/                 virtual file system
  overlay/              overlay_0000.bin, overlay_0001.bin, ...
  header.bin, arm9.bin, arm9ovltable.bin, arm7.bin, arm7ovltable.bin, banner.bin

Examples:
  nitrotool -x game.nds -d game_extracted
  nitrotool -c game_extracted -d rebuilt.nds
  nitrotool -i game.nds
"""
import argparse
import sys

from nitro.errors import NitroError
from nitro.rom import build_rom, describe_rom, extract_rom

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='nitrotool', description='Extract or build NDS ROMs', formatter_class=argparse.RawDescriptionHelpFormatter)
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('-x', '--extract', metavar='ROM', help='Extract the given NDS ROM')
    mode.add_argument('-c', '--create', metavar='DIR', help='Create a ROM based on a directory')
    mode.add_argument('-i', '--info', metavar='ROM', help='Print header and file listing of a ROM')
    parser.add_argument('-d', '--directory', help='Directory where to extract the ROM, or output ROM path when creating')
    parser.add_argument('--strict', action='store_true', help='Fail instead of correcting a file whose offset differs from the predicted one')
    return parser

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.extract or args.create) and (not args.directory):
        parser.error('-d/--directory is required with --extract and --create')
    try:
        if args.extract:
            summary = extract_rom(args.extract, args.directory)
            print(f"Extracted {summary['files']} files to {summary['path']}")
        elif args.create:
            header = build_rom(args.create, args.directory, strict=args.strict)
            print(f'Built {args.directory} ({header.rom_size:,} bytes)')
        else:
            info = describe_rom(args.info)
            for line in info.get_display_lines():
                print(line)
    except (NitroError, OSError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    return 0
if __name__ == '__main__':
    sys.exit(main())
