"""Main CLI entry point for mangafire-dl."""

import argparse
import logging
import sys

from .commands.acquire import setup_acquire_commands


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mangafire", description="MangaFire chapter downloader - discovery, download and descrambling"
    )
    parser.add_argument("--config", help="Path to config JSON (default: data/mangafire.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Setup acquisition commands
    setup_acquire_commands(subparsers)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    # Execute command
    if hasattr(args, "func"):
        return args.func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
