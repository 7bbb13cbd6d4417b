from __future__ import annotations

import argparse

from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from blobopen.cli.context import CLIContext
from blobopen.domain.models.blob import BlobRef, ResolutionQuery
from blobopen.infrastructure.opener import open_path


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("open", help="Download the latest (or named) blob under a prefix and open it")
    parser.add_argument("prefix", help="Prefix of the blob")
    parser.add_argument("-n", "--name", help="Exact blob name relative to the prefix")
    parser.add_argument(
        "--no-open",
        action="store_true",
        help="Only download into the cache and print the local path",
    )
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = ctx.blob_service()
    query = ResolutionQuery(prefix=args.prefix, exact_name=args.name)

    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TimeElapsedColumn(),
        console=ctx.console,
        transient=True,
    )

    with progress:
        task = progress.add_task("Finding the latest blob...", total=None)

        def _on_progress(received: int, total: int) -> None:
            progress.update(task, completed=received, total=max(total, 1))

        def _on_selected(blob: BlobRef) -> None:
            progress.update(task, description=f"Downloading {escape(blob.name)}")

        result = service.open_query(query, on_progress=_on_progress, on_selected=_on_selected)

    ctx.console.print(f"[bold]{escape(result.blob.name)}[/bold] -> {escape(str(result.entry.local_path))}")
    if not args.no_open:
        open_path(result.entry.local_path, result.mime_hint)
    return 0
