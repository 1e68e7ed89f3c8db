"""
PostgreSQL query source using psycopg3.

Executes the configured query once through a server-side cursor and streams
the result rows in fetch_size batches.
"""

import base64
import datetime
import decimal
import uuid
from collections import deque
from typing import Any

import psycopg
from psycopg import IsolationLevel, sql
from psycopg.rows import dict_row

from mqpusher.core.errors import CloseError, ReadError
from mqpusher.core.models import DbSourceConfig
from mqpusher.observability.logger import get_logger

from .base import DataSource, Record

logger = get_logger(__name__)

CURSOR_NAME = "mqpusher_source"


def normalize_value(value: Any) -> Any:
    """
    Convert a database value to a JSON-compatible Python value.

    Args:
        value: Value as returned by psycopg

    Returns:
        The value itself for JSON-native types, otherwise a lossless or
        conventional JSON representation
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, decimal.Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, dict):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return value


class DbDataSource(DataSource):
    """
    Streams the rows of a SQL query as records.

    When count_rows is enabled the total is counted up front, inside the same
    repeatable-read transaction as the query, so progress percent is exact
    throughout the run. Otherwise percent stays 0 until the result is
    exhausted.
    """

    kind = "db"

    def __init__(self, config: DbSourceConfig):
        """
        Connect, count and execute the query.

        Args:
            config: Database source configuration

        Raises:
            ReadError: If connecting or executing the query fails
        """
        super().__init__()
        self.config = config
        self.total: int | None = None
        self._conn = None
        self._cursor = None
        self._buffer: deque = deque()
        self._rows = 0
        self._exhausted = False

        try:
            self._conn = psycopg.connect(config.conninfo, row_factory=dict_row)
            self._conn.isolation_level = IsolationLevel.REPEATABLE_READ
            self._conn.read_only = True

            if config.count_rows:
                self.total = self._count_rows()

            self._cursor = self._conn.cursor(name=CURSOR_NAME)
            self._cursor.execute(sql.SQL(config.query))
        except psycopg.Error as e:
            self._discard()
            raise ReadError(f"executing source query on {config.host}/{config.database}: {e}") from e

        logger.info(
            f"Opened db source {config.host}:{config.port}/{config.database} "
            f"(total rows: {self.total if self.total is not None else 'unknown'})"
        )

    def _count_rows(self) -> int:
        query = sql.SQL("SELECT count(*) AS total FROM ({}\n) AS source_rows").format(
            sql.SQL(self.config.query)
        )
        with self._conn.cursor() as cur:
            cur.execute(query)
            row = cur.fetchone()
        return int(row["total"]) if row else 0

    def next_row(self) -> Record | None:
        if self._closed:
            raise ReadError("db source is closed")

        if not self._buffer:
            if self._exhausted:
                return None
            try:
                rows = self._cursor.fetchmany(self.config.fetch_size)
            except psycopg.Error as e:
                raise ReadError(f"fetching rows after row {self._rows}: {e}") from e
            if not rows:
                self._exhausted = True
                self._counter.set_percent(100.0)
                return None
            self._buffer.extend(rows)

        row = self._buffer.popleft()
        record = {str(column): normalize_value(value) for column, value in row.items()}

        self._rows += 1
        self._counter.advance(self._percent())
        return record

    def _percent(self) -> float | None:
        if not self.total:
            return None
        return self._rows * 100.0 / self.total

    def _release(self) -> None:
        error = None
        if self._cursor is not None:
            try:
                self._cursor.close()
            except psycopg.Error as e:
                error = e
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg.Error as e:
                error = error or e
        self._cursor = None
        self._conn = None
        self._buffer.clear()

        if error is not None:
            raise CloseError(f"closing db source: {error}") from error

    def _discard(self) -> None:
        # Construction failed; the caller never gets a source to close
        self._closed = True
        try:
            self._release()
        except CloseError as e:
            logger.warning(f"Ignoring close failure after failed open: {e}")
