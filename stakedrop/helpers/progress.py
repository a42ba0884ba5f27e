"""Rich progress bars for long-running fetches."""

from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


def create_standard_progress(
    console: Console | None = None, *, expand: bool = False
) -> Progress:
    """Progress bar with an M of N counter, elapsed and remaining time.

    Args:
        console: Rich console to draw on (optional)
        expand: Whether to stretch the bar to the full terminal width

    Returns:
        Unstarted Progress instance
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn("•"),
        TimeRemainingColumn(),
        console=console,
        expand=expand,
    )


@contextmanager
def track_progress(
    description: str,
    total: int,
    console: Console | None = None,
) -> Iterator[tuple[Progress, TaskID]]:
    """Start a progress bar with a single task and stop it on exit.

    Example:
        ```python
        from stakedrop.helpers.progress import track_progress

        with track_progress("Fetching logs", total=len(chunks)) as (progress, task):
            for chunk in chunks:
                ...
                progress.update(task, advance=1)
        ```
    """
    progress = create_standard_progress(console)
    with progress:
        task_id = progress.add_task(description, total=total)
        yield progress, task_id


__all__ = [
    "TaskID",
    "create_standard_progress",
    "track_progress",
]
