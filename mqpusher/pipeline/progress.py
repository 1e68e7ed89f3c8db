"""
Periodic progress reporting for a running push.

A daemon thread samples the source's counters on a fixed interval and logs
how many rows were processed since the previous sample.
"""

import threading

from mqpusher.observability.logger import get_logger
from mqpusher.observability.metrics import progress_percent, set_gauge
from mqpusher.sources.base import DataSource

logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0


def format_duration(seconds: float) -> str:
    """Render a duration the way it appears in log lines (30s, 1m30s, 1h0m5s)."""
    whole = int(seconds)
    if whole < 60:
        return f"{round(seconds, 3):g}s"
    minutes, secs = divmod(whole, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    return f"{minutes}m{secs}s"


class ProgressReporter:
    """
    Logs "processed N rows in T; approximately P% done" every interval.

    Its only state is the last seen row count. It reads the source through
    DataSource.progress() and never writes to the source or the driver.
    """

    def __init__(self, source: DataSource, interval: float = DEFAULT_INTERVAL_SECONDS):
        """
        Initialize the reporter.

        Args:
            source: Source whose counters are sampled
            interval: Seconds between two progress lines
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.source = source
        self.interval = interval
        self.last_count = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the background thread."""
        if self._thread is not None:
            raise RuntimeError("progress reporter is already running")
        self._thread = threading.Thread(
            target=self._run,
            name=f"progress-{self.source.kind}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the background thread without emitting a final report."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval)

    def report(self) -> int:
        """
        Sample the source once and log the delta.

        Returns:
            Rows processed since the previous sample
        """
        total, percent = self.source.progress()
        delta = total - self.last_count
        self.last_count = total

        set_gauge(progress_percent, percent, source=self.source.kind)
        logger.info(
            f"processed {delta} rows in {format_duration(self.interval)}; "
            f"approximately {percent:0.2f}% done",
            extra={"rows_delta": delta, "rows_total": total, "percent": round(percent, 2)},
        )
        return delta

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.report()
