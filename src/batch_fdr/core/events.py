"""
Optimizer events - lifecycle and progress notifications.

Listeners subclass ``OptimizerListener`` and override the hooks they care
about. Every hook is a no-op by default.

Order of notifications for a successful run::

    on_start
    on_progress(0)
    (on_file_start, on_progress*, on_file_finish) per identification file
    on_progress(100)
    on_finish

A failed run emits ``on_fatal_error`` exactly once and no ``on_finish``.
"""

import logging
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)


class OptimizerListener:
    """Base listener; all hooks do nothing."""

    def on_start(self, n_files: int) -> None:
        pass

    def on_file_start(self, path: Path) -> None:
        pass

    def on_progress(self, percent: float) -> None:
        """Overall progress in percent of identification input consumed."""
        pass

    def on_file_finish(self, path: Path) -> None:
        pass

    def on_fatal_error(self, error: BaseException) -> None:
        pass

    def on_finish(self) -> None:
        pass


class LoggingListener(OptimizerListener):
    """Logs lifecycle events; progress is logged at DEBUG level only."""

    def __init__(self):
        self._n_files = 0
        self._index = 0

    def on_start(self, n_files: int) -> None:
        self._n_files = n_files
        self._index = 0
        logger.info(f"Optimizing {n_files} identification file(s)...")

    def on_file_start(self, path: Path) -> None:
        self._index += 1
        logger.info(f"[{self._index}/{self._n_files}] Processing {Path(path).name}...")

    def on_progress(self, percent: float) -> None:
        logger.debug(f"Progress: {percent:.1f}%")

    def on_file_finish(self, path: Path) -> None:
        logger.info(f"[{self._index}/{self._n_files}] Finished {Path(path).name}")

    def on_fatal_error(self, error: BaseException) -> None:
        logger.error(f"Optimization failed: {error}")

    def on_finish(self) -> None:
        logger.info("Optimization complete")


class CompositeListener(OptimizerListener):
    """Forwards every event to several listeners, in order."""

    def __init__(self, listeners: Sequence[OptimizerListener] = ()):
        self.listeners: List[OptimizerListener] = list(listeners)

    def on_start(self, n_files: int) -> None:
        for listener in self.listeners:
            listener.on_start(n_files)

    def on_file_start(self, path: Path) -> None:
        for listener in self.listeners:
            listener.on_file_start(path)

    def on_progress(self, percent: float) -> None:
        for listener in self.listeners:
            listener.on_progress(percent)

    def on_file_finish(self, path: Path) -> None:
        for listener in self.listeners:
            listener.on_file_finish(path)

    def on_fatal_error(self, error: BaseException) -> None:
        for listener in self.listeners:
            listener.on_fatal_error(error)

    def on_finish(self) -> None:
        for listener in self.listeners:
            listener.on_finish()


class ProgressTracker:
    """
    Converts bytes consumed per file into monotone overall percentages.

    Args:
        listener: Receives ``on_progress``
        total_bytes: Size of all identification files together
    """

    def __init__(self, listener: OptimizerListener, total_bytes: int):
        self.listener = listener
        self.total_bytes = total_bytes
        self._done_bytes = 0
        self._last_percent = 0.0

    def start(self) -> None:
        self._last_percent = 0.0
        self.listener.on_progress(0.0)

    def update(self, file_bytes: int) -> None:
        """Report ``file_bytes`` consumed of the file currently read."""
        self._emit(self._done_bytes + file_bytes)

    def finish_file(self, file_size: int) -> None:
        self._done_bytes += file_size
        self._emit(self._done_bytes)

    def finish(self) -> None:
        if self._last_percent < 100.0:
            self._last_percent = 100.0
            self.listener.on_progress(100.0)

    def _emit(self, consumed: int) -> None:
        if self.total_bytes <= 0:
            return
        percent = min(consumed / self.total_bytes * 100.0, 100.0)
        if percent > self._last_percent:
            self._last_percent = percent
            self.listener.on_progress(percent)
