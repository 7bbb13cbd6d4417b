from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from blobopen.cli.commands import cache_cmd, list_cmd, open_cmd
from blobopen.cli.context import CLIContext
from blobopen.core.config import load_settings
from blobopen.core.errors import BlobOpenError
from blobopen.core.logging import configure_logging

logger = logging.getLogger(__name__)

_COMMANDS = {"open", "list", "cache"}
_VALUE_OPTIONS = {
    "-s",
    "--storage-account",
    "-k",
    "--storage-account-key",
    "-c",
    "--container-name",
    "--cache-dir",
}

_EPILOG = """\
examples:
  blobopen exports/               open the newest blob under exports/
  blobopen exports/ -n a.csv      open exports/a.csv
  blobopen list exports/          list the blobs under exports/

A prefix spelled like a command (open, list, cache) needs the explicit form:
  blobopen open list
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blobopen",
        description="Download the latest blob matching a prefix and open it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_EPILOG,
    )
    parser.add_argument(
        "-s",
        "--storage-account",
        help="Name of the storage account (default: $STORAGE_ACCOUNT)",
    )
    parser.add_argument(
        "-k",
        "--storage-account-key",
        help="Storage account key; ambient identity is used when omitted (default: $STORAGE_ACCOUNT_KEY)",
    )
    parser.add_argument(
        "-c",
        "--container-name",
        help="Name of the blob container (default: $STORAGE_CONTAINER)",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Directory holding downloaded blobs (default: $BLOBOPEN_HOME or 'blobs' next to the tool)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)
    open_cmd.register(subparsers)
    list_cmd.register(subparsers)
    cache_cmd.register(subparsers)

    return parser


def with_default_command(argv: list[str]) -> list[str]:
    """Insert ``open`` when the first positional argument is not a subcommand.

    Keeps ``blobopen PREFIX`` working as shorthand for ``blobopen open PREFIX``.
    """
    skip_next = False
    for index, token in enumerate(argv):
        if skip_next:
            skip_next = False
            continue
        if token.startswith("-") and token != "--":
            skip_next = token in _VALUE_OPTIONS
            continue
        if token in _COMMANDS:
            return argv
        return [*argv[:index], "open", *argv[index:]]
    return argv


def main(argv: list[str] | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(with_default_command(raw_argv))

    configure_logging(args.verbose)
    console = Console()

    settings = load_settings(
        storage_account=args.storage_account,
        storage_account_key=args.storage_account_key,
        container=args.container_name,
        cache_dir=args.cache_dir,
    )
    ctx = CLIContext(settings=settings, console=console)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, ctx)
    except BlobOpenError as exc:
        logger.error(str(exc))
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
