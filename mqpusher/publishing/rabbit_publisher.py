"""
RabbitMQ publisher using pika's blocking connection.

Publisher confirms are enabled on the channel, so every basic_publish call
waits for the broker's ack (or nack) before returning.
"""

from typing import Any

import pika
from pika.exceptions import AMQPError

from mqpusher.core.errors import CloseError, PublishError
from mqpusher.core.models import TargetConfig
from mqpusher.observability.logger import get_logger, log_operation

from .base import Publisher
from .payload import CONTENT_TYPE, encode_record

logger = get_logger(__name__)


class RabbitPublisher(Publisher):
    """
    Publishes records as persistent JSON messages to one exchange/routing key.
    """

    def __init__(self, target: TargetConfig):
        """
        Initialize the publisher. No connection is made until open().

        Args:
            target: Broker connection and publish binding
        """
        self.target = target
        self.exchange = target.publisher.exchange
        self.routing_key = target.publisher.routing_key
        self.mandatory = target.publisher.mandatory
        self.properties = pika.BasicProperties(
            content_type=CONTENT_TYPE,
            delivery_mode=pika.DeliveryMode.Persistent,
        )
        self._connection = None
        self._channel = None

    def connection_parameters(self) -> pika.ConnectionParameters:
        rabbit = self.target.rabbit
        return pika.ConnectionParameters(
            host=rabbit.host,
            port=rabbit.port,
            virtual_host=rabbit.virtual_host,
            credentials=pika.PlainCredentials(rabbit.username, rabbit.password),
            heartbeat=rabbit.heartbeat,
            connection_attempts=rabbit.connection_attempts,
            retry_delay=rabbit.retry_delay,
        )

    def open(self) -> None:
        if self._channel is not None:
            return

        rabbit = self.target.rabbit
        try:
            with log_operation(
                "Connecting to broker",
                logger=logger,
                host=rabbit.host,
                port=rabbit.port,
                virtual_host=rabbit.virtual_host,
            ):
                self._connection = pika.BlockingConnection(self.connection_parameters())
                self._channel = self._connection.channel()
                self._channel.confirm_delivery()
                if self.target.publisher.declare_queue:
                    self._channel.queue_declare(queue=self.routing_key, durable=True)
        except AMQPError as e:
            self._connection = None
            self._channel = None
            raise PublishError(f"connecting to broker {rabbit.host}:{rabbit.port}: {e!r}") from e

        logger.info(
            f"Publishing to exchange '{self.exchange}' with routing key '{self.routing_key}'"
        )

    def publish(self, record: dict[str, Any]) -> None:
        if self._channel is None:
            raise PublishError("publisher is not open")

        body = encode_record(record)
        try:
            self._channel.basic_publish(
                exchange=self.exchange,
                routing_key=self.routing_key,
                body=body,
                properties=self.properties,
                mandatory=self.mandatory,
            )
        except AMQPError as e:
            raise PublishError(
                f"publishing to exchange '{self.exchange}' "
                f"with routing key '{self.routing_key}': {e!r}"
            ) from e

    def close(self) -> None:
        connection = self._connection
        self._connection = None
        self._channel = None
        if connection is None or not connection.is_open:
            return
        try:
            connection.close()
        except AMQPError as e:
            raise CloseError(f"closing broker connection: {e!r}") from e
