from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def configure_logging(verbosity: int = 0, console: Console | None = None) -> None:
    """Route log records through rich on stderr.

    ``verbosity`` follows the repeatable ``-v`` flag: 0 warnings, 1 info, 2+ debug.
    """
    level = _LEVELS[min(max(verbosity, 0), len(_LEVELS) - 1)]
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbosity >= 2,
        rich_tracebacks=verbosity >= 2,
    )
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)

    # The Azure SDK logs every HTTP exchange at INFO.
    logging.getLogger("azure").setLevel(logging.DEBUG if verbosity >= 2 else logging.WARNING)
