"""
Error taxonomy for the push pipeline.

Every stage raises its own error type so the driver can report the failing
stage together with the underlying cause.
"""


class MqPusherError(Exception):
    """Base class for all pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(MqPusherError):
    """Raised for missing, ambiguous or invalid configuration."""

    stage = "configuration"

    def __init__(self, message: str, fields: dict[str, str] | None = None):
        self.fields = fields or {}
        if self.fields:
            details = "; ".join(f"{name}: {reason}" for name, reason in self.fields.items())
            message = f"{message} ({details})"
        super().__init__(message)


class ReadError(MqPusherError):
    """Raised when a source cannot produce the next row."""

    stage = "read"


class TransformError(MqPusherError):
    """Raised when the conversion script fails or returns a non-mapping."""

    stage = "transform"


class PublishError(MqPusherError):
    """Raised when a record cannot be serialized or the broker rejects it."""

    stage = "publish"


class CloseError(MqPusherError):
    """Raised when releasing a resource fails. Logged, never escalated."""

    stage = "close"
