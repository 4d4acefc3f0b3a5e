"""nbtcodec command-line interface.

Usage:
    nbtcodec level.dat                      # autodetect gzip, print leaf count
    nbtcodec level.dat --raw --show         # force raw NBT, print the tree
    nbtcodec level.dat --rewrite out.dat    # parse and re-serialize
    python -m nbtcodec --version
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import NbtError, __version__, count_elements, is_gzip, load, save


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nbtcodec",
        description="Parse a Named Binary Tag file and report its leaf count",
    )
    parser.add_argument("path", nargs="?", help="NBT file, raw or gzip-framed")

    env = parser.add_mutually_exclusive_group()
    env.add_argument("--gzip", dest="gzipped", action="store_const", const=True,
                     default=None, help="Input is gzip-framed (default: autodetect)")
    env.add_argument("--raw", dest="gzipped", action="store_const", const=False,
                     help="Input is raw NBT (default: autodetect)")

    parser.add_argument("--show", action="store_true",
                        help="Print the parsed tree")
    parser.add_argument("--rewrite", metavar="OUT",
                        help="Serialize the parsed tree to OUT, same envelope as input")
    parser.add_argument("--max-depth", type=int, default=None, metavar="N",
                        help="Reject nesting deeper than N levels")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log debug output to stderr")
    parser.add_argument("--version", action="store_true",
                        help="Print version and exit")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"nbtcodec {__version__}")
        return

    if args.path is None:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format="%(name)s: %(levelname)s: %(message)s")

    limits = {}
    if args.max_depth is not None:
        limits["max_depth"] = args.max_depth

    try:
        name, root = load(args.path, gzipped=args.gzipped, **limits)
        print(f"Parsed {count_elements(root)} elements")
        if args.show:
            print()
            print(root)
        if args.rewrite:
            gzipped = args.gzipped
            if gzipped is None:
                with open(args.path, "rb") as f:
                    gzipped = is_gzip(f.read(2))
            save(args.rewrite, root, name=name, gzipped=gzipped, **limits)
    except NbtError as e:
        print(f"nbtcodec: error [{e.code}]: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"nbtcodec: cannot access file: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
