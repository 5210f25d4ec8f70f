"""Progress indication utilities using Rich library.

This module provides progress indication utilities that automatically detect
interactive vs non-interactive terminals and adjust behavior accordingly.

In interactive terminals, a Rich spinner with the current benchmark stage
and the number of completed feed updates is displayed.
In non-interactive terminals (CI, logs), stage messages are logged instead.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, Optional, Tuple

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

if TYPE_CHECKING:
    from logging import Logger

# Type aliases for yielded functions
UpdateFunc = Callable[..., None]
SetDescriptionFunc = Callable[[str], None]


def is_interactive_terminal() -> bool:
    """Detect if running in an interactive terminal.

    Returns:
        True if output is to an interactive terminal, False otherwise.
    """
    console = Console()
    return console.is_terminal


@contextmanager
def progress_context(
    description: str,
    total: Optional[int] = None,
    logger: Optional["Logger"] = None,
    transient: bool = True,
) -> Iterator[Tuple[UpdateFunc, SetDescriptionFunc]]:
    """Context manager for progress indication with automatic TTY detection.

    Args:
        description: Initial description text for the progress indicator.
        total: Number of feed updates, or None for a bare spinner.
        logger: Logger instance for non-interactive mode status messages.
            If None in non-interactive mode, no output is produced.
        transient: If True, progress is cleared when complete (default True).

    Yields:
        Tuple of (update_func, set_description_func):
            - update_func(advance=1, completed=None): Advances progress
            - set_description_func(desc): Updates description text

    Example:
        >>> with progress_context("Feed updates", total=3) as (update, set_desc):
        ...     set_desc("Upload feed for index 0")
        ...     update()
    """
    if not is_interactive_terminal():
        if logger is not None:
            logger.status(f"{description}...")

        def noop_update(advance: int = 1, completed: Optional[int] = None) -> None:
            pass

        def log_description(desc: str) -> None:
            if logger is not None:
                logger.verbose(desc)

        yield (noop_update, log_description)
        return

    columns = [
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
    ]
    if total is not None:
        columns += [
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
        ]
    columns.append(TimeElapsedColumn())

    progress = Progress(*columns, transient=transient)
    task_id: TaskID = TaskID(0)  # Will be set after add_task

    try:
        progress.start()
        task_id = progress.add_task(description, total=total)

        def update_func(advance: int = 1, completed: Optional[int] = None) -> None:
            """Update progress by advancing or setting completed value."""
            if completed is not None:
                progress.update(task_id, completed=completed)
            else:
                progress.update(task_id, advance=advance)

        def set_description_func(desc: str) -> None:
            progress.update(task_id, description=desc)

        yield (update_func, set_description_func)
    finally:
        progress.stop()


__all__ = [
    "is_interactive_terminal",
    "progress_context",
]
