"""
Publisher interface used by the pipeline driver.

The driver depends on this interface rather than on the concrete RabbitMQ
client, so tests can substitute an in-memory publisher.
"""

from abc import ABC, abstractmethod
from typing import Any


class Publisher(ABC):
    """
    Delivers records to a broker, one at a time.

    publish() is synchronous: it returns only once the broker has accepted
    the message, or raises. Publishers do no accounting of their own.
    """

    def open(self) -> None:
        """
        Connect to the broker.

        Raises:
            PublishError: If the connection cannot be established
        """
        pass

    @abstractmethod
    def publish(self, record: dict[str, Any]) -> None:
        """
        Serialize and publish one record.

        Args:
            record: Record to publish

        Raises:
            PublishError: On serialization failure or broker failure
        """
        pass

    def close(self) -> None:
        """
        Disconnect from the broker.

        Raises:
            CloseError: If the connection cannot be closed cleanly
        """
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
