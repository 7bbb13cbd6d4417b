from __future__ import annotations

import argparse

from rich.table import Table

from blobopen.cli.context import CLIContext
from blobopen.domain.models.blob import ResolutionQuery
from blobopen.domain.models.resolution import Many


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("list", help="List blobs under a prefix, sorted by name")
    parser.add_argument("prefix", help="Prefix of the blobs")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = ctx.blob_service()
    result = service.resolve(ResolutionQuery(prefix=args.prefix, list_mode=True))

    blobs = list(result.blobs) if isinstance(result, Many) else []

    table = Table(title=f"Blobs under '{args.prefix}' ({len(blobs)})")
    table.add_column("Name", overflow="fold")
    table.add_column("Last Modified")
    table.add_column("Size", justify="right")
    table.add_column("ETag", overflow="fold")

    for blob in blobs:
        table.add_row(blob.name, blob.last_modified.isoformat(), str(blob.size), blob.etag or "-")

    ctx.console.print(table)
    return 0
