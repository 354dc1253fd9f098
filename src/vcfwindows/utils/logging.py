"""Logging and console output for vcfwindows.

Log records go through a rich handler on stderr so that the tables,
which may be written next to a terminal session, never mix with
progress or diagnostics. The ``print_*`` helpers are for the command
line only; library code logs through ``get_logger(__name__)``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path
    from typing import TypeVar

    T = TypeVar("T")

PACKAGE_LOGGER = "vcfwindows"

console = Console(stderr=True)

_handler: RichHandler | None = None


def setup_logging(level: int = logging.INFO, show_path: bool = False) -> None:
    """Install the rich handler on the root logger.

    Only the first call installs the handler; later calls change the
    level of the package logger, so ``--verbose`` works after library
    code has already asked for a logger.

    Args:
        level: Level of the ``vcfwindows`` logger.
        show_path: Show the emitting module and line in each record.
    """
    global _handler

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    if _handler is not None:
        _handler.setLevel(level)
        return

    _handler = RichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=True,
        markup=False,
    )
    _handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logging.getLogger().addHandler(_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a child of the ``vcfwindows`` logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Scanning chr1")
    """
    if _handler is None:
        setup_logging()
    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def create_progress() -> Progress:
    """Progress bar showing windows done out of windows total."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("windows"),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )


def progress_iterator(
    iterable: Iterable[T],
    total: int | None = None,
    description: str = "Processing",
) -> Iterator[T]:
    """Wrap an iterable with a progress bar.

    The bar advances when the consumer asks for the next item, so it
    counts items that were fully handled.

    Example:
        >>> for window in progress_iterator(windows, total=len(windows)):
        ...     process(window)
    """
    with create_progress() as progress:
        task = progress.add_task(description, total=total)
        for item in iterable:
            yield item
            progress.advance(task)


def print_info(message: str) -> None:
    console.print(f"[blue]INFO:[/blue] {message}", highlight=False)


def print_warning(message: str) -> None:
    console.print(f"[yellow]WARNING:[/yellow] {message}", highlight=False)


def print_error(message: str) -> None:
    console.print(f"[red]ERROR:[/red] {message}", highlight=False)


def print_success(message: str) -> None:
    console.print(f"[green]SUCCESS:[/green] {message}", highlight=False)


def print_stats(stats: dict[str, int | str], title: str = "Statistics") -> None:
    """Print run counters as a two-column table.

    Integers are printed with thousands separators.
    """
    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    for key, value in stats.items():
        if isinstance(value, int) and not isinstance(value, bool):
            table.add_row(key, f"{value:,}")
        else:
            table.add_row(key, str(value))

    console.print(table)


def print_file_created(path: str | Path) -> None:
    console.print(f"  [dim]Created:[/dim] {path}", highlight=False)
