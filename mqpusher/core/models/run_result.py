"""
RunResult model representing the terminal outcome of a push run (ephemeral).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from mqpusher.core.errors import MqPusherError


class RunState(str, Enum):
    """Lifecycle of a push run."""

    STARTING = "starting"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunResult(BaseModel):
    """
    Final accounting of a push run.

    Attributes:
        state: Terminal state (succeeded or failed)
        total_published: Rows acknowledged by the broker
        rows_read: Rows yielded by the source
        started_at: When the run entered the starting state
        elapsed_seconds: Wall time from start to the terminal state
        error: The error that ended the run, None on success
        error_stage: Stage that raised the error
    """

    state: RunState
    total_published: int = Field(0, ge=0)
    rows_read: int = Field(0, ge=0)
    started_at: datetime
    elapsed_seconds: float = Field(0.0, ge=0.0)
    error: MqPusherError | None = None
    error_stage: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.SUCCEEDED

    class Config:
        arbitrary_types_allowed = True
