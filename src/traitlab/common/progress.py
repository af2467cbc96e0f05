"""
Progress reporting for long randomisation loops.

The null model and permutation steps tick a tracker once per draw. Interactive
runs show a transient Rich bar; ``--no-progress`` runs and tests log a line
every tenth of the loop instead.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

logger = logging.getLogger(__name__)

Updater = Callable[[int], None]


class ProgressTracker:
    """Reports loop progress as a Rich bar or as periodic log lines."""

    def __init__(self, use_progress_bar: bool = True):
        self.use_progress_bar = use_progress_bar

    @contextmanager
    def track(self, description: str, total: Optional[int] = None) -> Iterator[Updater]:
        """
        Track one loop.

        Args:
            description: Label of the loop
            total: Number of items, when known

        Yields:
            A function advancing the count (by one by default)
        """
        if self.use_progress_bar:
            with self._bar(description, total) as update:
                yield update
        else:
            with self._log_lines(description, total) as update:
                yield update

    @contextmanager
    def _bar(self, description: str, total: Optional[int]) -> Iterator[Updater]:
        columns = (
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
        )
        with Progress(*columns, transient=True) as progress:
            task = progress.add_task(description, total=total)
            yield lambda advance=1: progress.advance(task, advance)

    @contextmanager
    def _log_lines(self, description: str, total: Optional[int]) -> Iterator[Updater]:
        logger.info(f"Starting: {description}")
        every = max(1, (total or 0) // 10)
        done = 0

        def update(advance: int = 1) -> None:
            nonlocal done
            done += advance
            if total and done % every == 0:
                logger.info(f"{description}: {100 * done / total:.0f}% ({done}/{total})")

        yield update
        logger.info(f"Completed: {description}")

    def iterations(self, description: str, total: int) -> Iterator[int]:
        """``range(total)`` with one tick per item."""
        with self.track(description, total=total) as update:
            for i in range(total):
                yield i
                update(1)


_progress_tracker: Optional[ProgressTracker] = None


def get_progress_tracker() -> ProgressTracker:
    """Shared tracker, created with a progress bar on first use."""
    global _progress_tracker
    if _progress_tracker is None:
        _progress_tracker = ProgressTracker()
    return _progress_tracker


def set_progress_mode(use_progress_bar: bool) -> None:
    """Replace the shared tracker (``False`` switches to log lines)."""
    global _progress_tracker
    _progress_tracker = ProgressTracker(use_progress_bar=use_progress_bar)
