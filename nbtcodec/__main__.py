"""Entry point for ``python -m nbtcodec``."""

from ._cli import main

main()
