"""
Broker publishing: payload encoding and the RabbitMQ publisher.
"""

from .base import Publisher
from .payload import CONTENT_TYPE, encode_record
from .rabbit_publisher import RabbitPublisher

__all__ = [
    "Publisher",
    "RabbitPublisher",
    "encode_record",
    "CONTENT_TYPE",
]
