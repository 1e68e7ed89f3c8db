"""
Integration tests for DbDataSource against a real PostgreSQL server.

Requires Docker (testcontainers).
"""

import datetime
import decimal

import pytest

from mqpusher.core.errors import ReadError
from mqpusher.core.models import DbSourceConfig
from mqpusher.sources import DbDataSource

pytestmark = pytest.mark.integration


def insert_users(connection, count):
    with connection.cursor() as cur:
        cur.executemany(
            "INSERT INTO users (id, name, balance, created_at, secret) VALUES (%s, %s, %s, %s, %s)",
            [
                (
                    i,
                    f"user{i}",
                    decimal.Decimal(i) / 4,
                    datetime.datetime(2024, 1, 1) + datetime.timedelta(days=i),
                    f"secret{i}",
                )
                for i in range(1, count + 1)
            ],
        )
    connection.commit()


def source_config(db_settings, **overrides):
    fields = dict(db_settings, query="SELECT * FROM users ORDER BY id", fetch_size=3)
    fields.update(overrides)
    return DbDataSource(DbSourceConfig(**fields))


class TestDbSourceIntegration:
    """Streaming query results"""

    def test_rows_in_query_order(self, db_connection, db_settings):
        insert_users(db_connection, 10)

        with source_config(db_settings, query="SELECT id, name FROM users ORDER BY id DESC") as source:
            rows = list(source)

        assert [row["id"] for row in rows] == list(range(10, 0, -1))
        assert rows[0] == {"id": 10, "name": "user10"}

    def test_values_are_json_compatible(self, db_connection, db_settings):
        insert_users(db_connection, 2)

        with source_config(db_settings) as source:
            first = source.next_row()

        assert first == {
            "id": 1,
            "name": "user1",
            "balance": 0.25,
            "created_at": "2024-01-02T00:00:00",
            "secret": "secret1",
        }

    def test_progress_is_exact(self, db_connection, db_settings):
        insert_users(db_connection, 8)

        with source_config(db_settings) as source:
            assert source.total == 8
            for expected in range(1, 9):
                source.next_row()
                assert source.progress() == (expected, expected * 100.0 / 8)
            assert source.next_row() is None
            assert source.progress() == (8, 100.0)

    def test_empty_result(self, db_connection, db_settings):
        with source_config(db_settings) as source:
            assert source.total == 0
            assert source.next_row() is None
            assert source.progress() == (0, 100.0)

    def test_query_error(self, db_connection, db_settings):
        with pytest.raises(ReadError):
            source_config(db_settings, query="SELECT * FROM missing_table")

    def test_wrong_password(self, db_connection, db_settings):
        with pytest.raises(ReadError):
            source_config(db_settings, password="wrong")

    def test_source_is_read_only(self, db_connection, db_settings):
        with pytest.raises(ReadError):
            source_config(db_settings, query="INSERT INTO users (id, name) VALUES (99, 'x') RETURNING id")
