"""
Push pipeline orchestration.

Coordinates the flow: source → (conversion script) → broker, one row at a
time, until the source is exhausted or the first error occurs.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from mqpusher.core.errors import (
    CloseError,
    MqPusherError,
    PublishError,
    ReadError,
    TransformError,
)
from mqpusher.core.models import PipelineConfig, RunResult, RunState, SourceConfig
from mqpusher.observability.logger import get_logger
from mqpusher.observability.metrics import (
    errors_total,
    increment_counter,
    publish_latency_seconds,
    rows_published_total,
    rows_read_total,
    run_duration_seconds,
    set_gauge,
)
from mqpusher.publishing import Publisher, RabbitPublisher
from mqpusher.sources import DataSource, create_data_source
from mqpusher.transform import ScriptTransformer

from .progress import DEFAULT_INTERVAL_SECONDS, ProgressReporter, format_duration

logger = get_logger(__name__)

SourceFactory = Callable[[SourceConfig], DataSource]

# How each failing stage is named in the final error line
_STAGE_ACTIONS = {
    "configuration": "configuring run",
    "read": "reading row",
    "transform": "executing script",
    "publish": "publishing row",
}


class PushPipeline:
    """
    Main push pipeline orchestrator.

    Handles the complete flow:
    1. Open the publisher and build the source
    2. Start the progress reporter
    3. Read, optionally convert, and publish each row in source order
    4. Close the source and the publisher on every exit path
    5. Log the final accounting line

    The loop is strictly sequential: a row is fully converted and published
    before the next one is read, so there is never more than one message in
    flight and messages are published in exactly the source order.
    """

    def __init__(
        self,
        source_config: SourceConfig,
        publisher: Publisher,
        transformer: Optional[ScriptTransformer] = None,
        source_factory: SourceFactory = create_data_source,
        progress_interval: float = DEFAULT_INTERVAL_SECONDS,
    ):
        """
        Initialize push pipeline.

        Args:
            source_config: Source selector; consulted only by source_factory
            publisher: Publisher for the converted rows
            transformer: Optional conversion stage; None skips the stage
            source_factory: Builds the DataSource from source_config
            progress_interval: Seconds between progress log lines
        """
        self.source_config = source_config
        self.publisher = publisher
        self.transformer = transformer
        self.source_factory = source_factory
        self.progress_interval = progress_interval
        self.state = RunState.STARTING

    def run(self) -> RunResult:
        """
        Execute the run to completion.

        Never raises for pipeline failures: the first error ends the run and
        is returned in the result together with the accounting.

        Returns:
            RunResult with the terminal state and counters
        """
        self.state = RunState.STARTING
        started_at = datetime.now(timezone.utc)
        started = time.monotonic()
        total_published = 0
        rows_read = 0
        error: MqPusherError | None = None
        source: DataSource | None = None
        reporter: ProgressReporter | None = None

        try:
            self._open_publisher()
            source = self._build_source()
            reporter = ProgressReporter(source, self.progress_interval)
            reporter.start()
            self.state = RunState.RUNNING

            while True:
                record = self._read(source)
                if record is None:
                    break
                rows_read += 1
                increment_counter(rows_read_total, source=source.kind)

                if self.transformer is not None:
                    record = self._convert(record)

                self._publish(record)
                total_published += 1
                increment_counter(rows_published_total, source=source.kind)

        except MqPusherError as e:
            error = e
        finally:
            if reporter is not None:
                reporter.stop()
            if source is not None:
                self._close_resource("source", source.close)
            self._close_resource("publisher", self.publisher.close)

        elapsed = time.monotonic() - started
        self.state = RunState.SUCCEEDED if error is None else RunState.FAILED
        set_gauge(run_duration_seconds, elapsed, state=self.state.value)

        if error is None:
            logger.info("successfully finished")
        else:
            increment_counter(errors_total, stage=error.stage)
            action = _STAGE_ACTIONS.get(error.stage, error.stage)
            logger.error(f"error {action}: {error}", extra={"stage": error.stage})

        logger.info(
            f"total processed rows {total_published}, elapsed time: {format_duration(elapsed)}",
            extra={
                "total_published": total_published,
                "rows_read": rows_read,
                "elapsed_seconds": round(elapsed, 3),
                "state": self.state.value,
            },
        )

        return RunResult(
            state=self.state,
            total_published=total_published,
            rows_read=rows_read,
            started_at=started_at,
            elapsed_seconds=elapsed,
            error=error,
            error_stage=error.stage if error is not None else None,
        )

    def _open_publisher(self) -> None:
        try:
            self.publisher.open()
        except MqPusherError:
            raise
        except Exception as e:
            raise PublishError(f"{type(e).__name__}: {e}") from e

    def _build_source(self) -> DataSource:
        try:
            return self.source_factory(self.source_config)
        except MqPusherError:
            raise
        except Exception as e:
            raise ReadError(f"{type(e).__name__}: {e}") from e

    def _read(self, source: DataSource) -> dict[str, Any] | None:
        try:
            return source.next_row()
        except MqPusherError:
            raise
        except Exception as e:
            raise ReadError(f"{type(e).__name__}: {e}") from e

    def _convert(self, record: dict[str, Any]) -> dict[str, Any]:
        try:
            return self.transformer.apply(record)
        except MqPusherError:
            raise
        except Exception as e:
            raise TransformError(f"{type(e).__name__}: {e}") from e

    def _publish(self, record: dict[str, Any]) -> None:
        try:
            with publish_latency_seconds.time():
                self.publisher.publish(record)
        except MqPusherError:
            raise
        except Exception as e:
            raise PublishError(f"{type(e).__name__}: {e}") from e

    def _close_resource(self, name: str, close: Callable[[], None]) -> None:
        # A close failure cannot undo what was already published
        try:
            close()
        except Exception as e:
            increment_counter(errors_total, stage=CloseError.stage)
            logger.error(f"closing {name}: {e}", extra={"stage": CloseError.stage})


def build_pipeline(config: PipelineConfig) -> PushPipeline:
    """
    Factory function to create PushPipeline from a validated configuration.

    Args:
        config: Validated PipelineConfig

    Returns:
        Configured PushPipeline instance

    Raises:
        ConfigurationError: If the conversion script cannot be loaded

    Example:
        >>> config = ConfigLoader("config.yaml").load()
        >>> result = build_pipeline(config).run()
        >>> result.total_published
        3
    """
    transformer = None
    if config.script.filename:
        transformer = ScriptTransformer.from_file(config.script.filename)

    return PushPipeline(
        source_config=config.source,
        publisher=RabbitPublisher(config.target),
        transformer=transformer,
        progress_interval=config.progress_interval,
    )
