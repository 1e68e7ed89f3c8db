"""
Unit tests for the RabbitMQ publisher.

pika.BlockingConnection is replaced by a MagicMock; the integration suite
covers a real broker.
"""

from unittest.mock import MagicMock

import pika
import pytest
from pika.exceptions import AMQPConnectionError, UnroutableError

from mqpusher.core.errors import CloseError, PublishError
from mqpusher.core.models import TargetConfig
from mqpusher.publishing import rabbit_publisher
from mqpusher.publishing.rabbit_publisher import RabbitPublisher


def make_target(**publisher):
    publisher.setdefault("routing_key", "users")
    return TargetConfig(
        rabbit={"host": "broker", "port": 5673, "username": "pusher", "password": "pw"},
        publisher=publisher,
    )


@pytest.fixture
def blocking_connection(monkeypatch):
    """Patch pika.BlockingConnection; yields the mock class"""
    connection_class = MagicMock(name="BlockingConnection")
    monkeypatch.setattr(rabbit_publisher.pika, "BlockingConnection", connection_class)
    return connection_class


def channel_of(connection_class):
    return connection_class.return_value.channel.return_value


class TestOpen:
    """Connecting and preparing the channel"""

    def test_connection_parameters(self):
        params = RabbitPublisher(make_target()).connection_parameters()

        assert params.host == "broker"
        assert params.port == 5673
        assert params.virtual_host == "/"
        assert params.credentials.username == "pusher"
        assert params.credentials.password == "pw"

    def test_open_enables_confirms(self, blocking_connection):
        publisher = RabbitPublisher(make_target())

        publisher.open()

        blocking_connection.assert_called_once()
        channel = channel_of(blocking_connection)
        channel.confirm_delivery.assert_called_once_with()
        channel.queue_declare.assert_not_called()

    def test_open_declares_durable_queue(self, blocking_connection):
        RabbitPublisher(make_target(declare_queue=True)).open()

        channel_of(blocking_connection).queue_declare.assert_called_once_with(
            queue="users", durable=True
        )

    def test_open_is_idempotent(self, blocking_connection):
        publisher = RabbitPublisher(make_target())

        publisher.open()
        publisher.open()

        assert blocking_connection.call_count == 1

    def test_broker_unreachable(self, blocking_connection):
        blocking_connection.side_effect = AMQPConnectionError("refused")
        publisher = RabbitPublisher(make_target())

        with pytest.raises(PublishError, match="connecting to broker broker:5673"):
            publisher.open()

        with pytest.raises(PublishError, match="not open"):
            publisher.publish({"id": 1})


class TestPublish:
    """Message publication"""

    def test_publish_before_open(self):
        with pytest.raises(PublishError, match="publisher is not open"):
            RabbitPublisher(make_target()).publish({"id": 1})

    def test_message_properties_and_body(self, blocking_connection):
        publisher = RabbitPublisher(make_target(exchange="legacy"))
        publisher.open()

        publisher.publish({"name": "ada", "id": 1})

        channel = channel_of(blocking_connection)
        channel.basic_publish.assert_called_once()
        kwargs = channel.basic_publish.call_args.kwargs
        assert kwargs["exchange"] == "legacy"
        assert kwargs["routing_key"] == "users"
        assert kwargs["body"] == b'{"id":1,"name":"ada"}'
        assert kwargs["mandatory"] is True
        assert kwargs["properties"].content_type == "application/json"
        assert kwargs["properties"].delivery_mode == pika.DeliveryMode.Persistent.value

    def test_unroutable_message(self, blocking_connection):
        channel_of(blocking_connection).basic_publish.side_effect = UnroutableError([])
        publisher = RabbitPublisher(make_target())
        publisher.open()

        with pytest.raises(PublishError, match="routing key 'users'"):
            publisher.publish({"id": 1})

    def test_unserializable_record_never_reaches_broker(self, blocking_connection):
        publisher = RabbitPublisher(make_target())
        publisher.open()

        with pytest.raises(PublishError, match="serializing record"):
            publisher.publish({"id": object()})

        channel_of(blocking_connection).basic_publish.assert_not_called()


class TestClose:
    """Connection release"""

    def test_close_closes_connection_once(self, blocking_connection):
        publisher = RabbitPublisher(make_target())
        publisher.open()

        publisher.close()
        publisher.close()

        blocking_connection.return_value.close.assert_called_once_with()

    def test_close_without_open(self):
        RabbitPublisher(make_target()).close()

    def test_close_failure(self, blocking_connection):
        blocking_connection.return_value.close.side_effect = AMQPConnectionError("lost")
        publisher = RabbitPublisher(make_target())
        publisher.open()

        with pytest.raises(CloseError, match="closing broker connection"):
            publisher.close()

    def test_context_manager(self, blocking_connection):
        with RabbitPublisher(make_target()) as publisher:
            publisher.publish({"id": 1})

        blocking_connection.return_value.close.assert_called_once_with()
