"""
Base data source interface for all row sources.

All sources must inherit from DataSource and implement next_row() and close().
Progress counters live in a ProgressCounter shared with the progress reporter.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any

Record = dict[str, Any]


class ProgressCounter:
    """
    Thread-safe (processed rows, percent complete) pair.

    The source updates both values under one lock after a row has been fully
    decoded, so a reader on another thread never observes a count from one
    row with the percent of another. Both values only ever grow; percent is
    clamped to [0, 100].
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._percent = 0.0

    def advance(self, percent: float | None = None) -> None:
        """
        Commit one more row.

        Args:
            percent: New completion estimate; ignored if lower than the current one
        """
        with self._lock:
            self._count += 1
            if percent is not None:
                self._percent = max(self._percent, _clamp(percent))

    def set_percent(self, percent: float) -> None:
        """Raise the completion estimate without counting a row."""
        with self._lock:
            self._percent = max(self._percent, _clamp(percent))

    def snapshot(self) -> tuple[int, float]:
        """Return (count, percent) as committed by the last advance()."""
        with self._lock:
            return self._count, self._percent


def _clamp(percent: float) -> float:
    return min(100.0, max(0.0, float(percent)))


class DataSource(ABC):
    """
    Abstract base class for all row sources.

    A source yields rows in deterministic origin order (file line order or
    query result order), keeps progress counters that are safe to read from
    another thread, and releases its resources on close().
    """

    #: Short identifier used in logs and metric labels
    kind = "source"

    def __init__(self) -> None:
        self._counter = ProgressCounter()
        self._closed = False

    @abstractmethod
    def next_row(self) -> Record | None:
        """
        Read the next row.

        Returns:
            The next record, or None when the source is exhausted

        Raises:
            ReadError: On malformed input, I/O failure or query failure
        """
        pass

    def progress(self) -> tuple[int, float]:
        """
        Current progress; never blocks on I/O and never raises.

        Returns:
            Tuple of (rows yielded so far, percent complete in [0, 100])
        """
        return self._counter.snapshot()

    def close(self) -> None:
        """
        Release file handles or connections. Safe to call more than once.

        Raises:
            CloseError: If releasing the underlying resource fails
        """
        if self._closed:
            return
        self._closed = True
        self._release()

    @abstractmethod
    def _release(self) -> None:
        """Release the underlying resources (called once by close())."""
        pass

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self):
        while True:
            row = self.next_row()
            if row is None:
                return
            yield row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        count, percent = self.progress()
        return f"{self.__class__.__name__}(rows={count}, percent={percent:.2f})"
