from __future__ import annotations

import argparse

from rich.panel import Panel
from rich.table import Table

from blobopen.cli.context import CLIContext


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a number >= 0, got {value}")
    return number


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("cache", help="Inspect and clean the local blob cache")
    cache_subparsers = parser.add_subparsers(dest="cache_command", required=True)

    listing = cache_subparsers.add_parser("list", help="List cached blob versions")
    listing.set_defaults(handler=run_list)

    clean = cache_subparsers.add_parser("clean", help="Remove old cached versions and orphaned downloads")
    clean.add_argument(
        "--keep",
        type=_non_negative_int,
        default=1,
        help="Versions to keep per blob, newest first (default: 1)",
    )
    clean.add_argument(
        "--partials-older-than",
        type=float,
        default=3600.0,
        help="Only sweep unfinished downloads older than this many seconds (default: 3600)",
    )
    clean.add_argument("--dry-run", action="store_true", help="Report what would be removed")
    clean.set_defaults(handler=run_clean)


def run_list(args: argparse.Namespace, ctx: CLIContext) -> int:
    store = ctx.cache_store()
    entries = store.entries()

    table = Table(title=f"Cached blobs in {store.base_dir} ({len(entries)})")
    table.add_column("Container")
    table.add_column("Blob", overflow="fold")
    table.add_column("Cache Key", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("File", overflow="fold")

    for entry in entries:
        table.add_row(
            entry.container,
            entry.blob_name,
            entry.cache_key,
            str(entry.size_bytes),
            entry.local_path.name,
        )

    ctx.console.print(table)
    partials = store.partial_files()
    if partials:
        ctx.console.print(f"{len(partials)} unfinished download(s) present; run 'blobopen cache clean' to sweep them.")
    return 0


def run_clean(args: argparse.Namespace, ctx: CLIContext) -> int:
    store = ctx.cache_store()
    report = store.prune(keep_latest=args.keep, dry_run=args.dry_run)
    swept = store.sweep_partials(older_than_seconds=args.partials_older_than, dry_run=args.dry_run)

    verb = "Would remove" if args.dry_run else "Removed"
    ctx.console.print(
        Panel.fit(
            f"{verb} versions: {len(report.removed)}\n"
            f"Kept versions: {report.kept}\n"
            f"Bytes freed: {report.bytes_freed}\n"
            f"{verb} unfinished downloads: {len(swept)}",
            title="Cache Clean",
        )
    )

    if report.removed:
        table = Table(title=f"{verb} Versions")
        table.add_column("Blob", overflow="fold")
        table.add_column("Cache Key", overflow="fold")
        table.add_column("Size", justify="right")
        for entry in report.removed:
            table.add_row(f"{entry.container}/{entry.blob_name}", entry.cache_key, str(entry.size_bytes))
        ctx.console.print(table)
    return 0
