"""
Core data models for the push pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .config import (
    CsvSourceConfig,
    DbSourceConfig,
    PipelineConfig,
    PublisherConfig,
    RabbitConfig,
    ScriptConfig,
    SourceConfig,
    TargetConfig,
)
from .run_result import RunResult, RunState

__all__ = [
    "CsvSourceConfig",
    "DbSourceConfig",
    "SourceConfig",
    "ScriptConfig",
    "RabbitConfig",
    "PublisherConfig",
    "TargetConfig",
    "PipelineConfig",
    "RunResult",
    "RunState",
]
