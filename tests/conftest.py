"""
Pytest configuration and fixtures for mqpusher tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import logging
import os
from typing import Generator

import pytest

from mqpusher.observability.logger import ROOT_LOGGER_NAME


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# LOGGING FIXTURES
# =======================

@pytest.fixture(autouse=True)
def reset_app_logger():
    """
    Restore the application logger after each test

    setup_logger() attaches a stdout handler and disables propagation,
    which would hide records from caplog in later tests.
    """
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(app_logger.handlers)
    propagate = app_logger.propagate
    level = app_logger.level

    yield

    app_logger.handlers[:] = handlers
    app_logger.propagate = propagate
    app_logger.setLevel(level)


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container():
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pusher",
        password="test_password",
        dbname="test_legacy",
    ) as postgres:
        yield postgres


@pytest.fixture(scope="function")
def db_settings(postgres_container) -> dict:
    """
    Connection settings of the test database, in DbSourceConfig field names

    Args:
        postgres_container: PostgreSQL container fixture

    Returns:
        Dictionary of host, port, database, user and password
    """
    return {
        "host": postgres_container.get_container_host_ip(),
        "port": int(postgres_container.get_exposed_port(5432)),
        "database": "test_legacy",
        "user": "test_pusher",
        "password": "test_password",
    }


@pytest.fixture(scope="function")
def db_connection(db_settings):
    """
    Provide a database connection with a fresh users table

    Args:
        db_settings: Database connection settings

    Yields:
        psycopg Connection object
    """
    import psycopg

    with psycopg.connect(
        host=db_settings["host"],
        port=db_settings["port"],
        dbname=db_settings["database"],
        user=db_settings["user"],
        password=db_settings["password"],
    ) as conn:
        with conn.cursor() as cur:
            cur.execute("DROP TABLE IF EXISTS users")
            cur.execute(
                """
                CREATE TABLE users (
                    id integer PRIMARY KEY,
                    name text NOT NULL,
                    balance numeric(12, 2),
                    created_at timestamp,
                    secret text
                )
                """
            )
        conn.commit()
        yield conn


# =======================
# BROKER FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def rabbitmq_container():
    """
    Start RabbitMQ container for integration tests

    Yields:
        RabbitMqContainer instance
    """
    from testcontainers.rabbitmq import RabbitMqContainer

    with RabbitMqContainer(image="rabbitmq:3.13-alpine") as rabbit:
        yield rabbit


@pytest.fixture(scope="function")
def rabbit_settings(rabbitmq_container) -> dict:
    """
    Connection settings of the test broker, in RabbitConfig field names

    Args:
        rabbitmq_container: RabbitMQ container fixture

    Returns:
        Dictionary of host, port, username and password
    """
    return {
        "host": rabbitmq_container.get_container_host_ip(),
        "port": int(rabbitmq_container.get_exposed_port(5672)),
        "username": "guest",
        "password": "guest",
    }


@pytest.fixture(scope="function")
def rabbit_channel(rabbitmq_container) -> Generator:
    """
    Provide a pika channel for inspecting queues

    Args:
        rabbitmq_container: RabbitMQ container fixture

    Yields:
        pika BlockingChannel
    """
    import pika

    connection = pika.BlockingConnection(rabbitmq_container.get_connection_params())
    try:
        yield connection.channel()
    finally:
        connection.close()


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_data_dir() -> str:
    """
    Get path to test data fixtures directory

    Returns:
        Path to tests/fixtures directory
    """
    return os.path.join(os.path.dirname(__file__), "fixtures")
