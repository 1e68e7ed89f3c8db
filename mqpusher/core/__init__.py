"""
Core configuration, models and errors for the push pipeline.
"""

from .config import ConfigLoader, parse_config
from .errors import (
    CloseError,
    ConfigurationError,
    MqPusherError,
    PublishError,
    ReadError,
    TransformError,
)

__all__ = [
    "ConfigLoader",
    "parse_config",
    "MqPusherError",
    "ConfigurationError",
    "ReadError",
    "TransformError",
    "PublishError",
    "CloseError",
]
