"""
Configuration models for a push run: source selector, script and target.

Constructed once at startup and immutable for the rest of the run.
"""

import codecs
import os
from typing import Literal

from psycopg.conninfo import make_conninfo
from pydantic import BaseModel, Field, field_validator, model_validator

from mqpusher.utils.validation import ValidationError, validate_file_path, validate_query


class CsvSourceConfig(BaseModel):
    """
    Delimited text file source (optionally gzip-compressed).

    Attributes:
        filename: Path to the .csv or .csv.gz file
        delimiter: Single-character field delimiter
        quotechar: Single-character quote character
        encoding: Text encoding of the decompressed content
        compression: "auto" picks gzip for a .gz suffix
        null_values: Cell values that are published as null
    """

    filename: str
    delimiter: str = Field(",", min_length=1, max_length=1)
    quotechar: str = Field('"', min_length=1, max_length=1)
    encoding: str = "utf-8"
    compression: Literal["auto", "gzip", "none"] = "auto"
    null_values: list[str] = Field(default_factory=list)

    @field_validator("filename")
    @classmethod
    def check_filename(cls, v: str) -> str:
        try:
            return validate_file_path(v, "filename")
        except ValidationError as e:
            raise ValueError(str(e)) from e

    @field_validator("encoding")
    @classmethod
    def check_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"unknown encoding: {v}") from e
        return v

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "filename": "/data/users.csv.gz",
                "delimiter": ",",
                "compression": "auto",
                "null_values": ["NULL", ""],
            }
        }


class DbSourceConfig(BaseModel):
    """
    PostgreSQL query source.

    Attributes:
        host: Database host
        port: Database port
        database: Database name
        user: Database user
        password: Database password (falls back to MQPUSHER_DB_PASSWORD)
        query: SELECT statement whose rows are published
        fetch_size: Rows fetched per server round trip
        count_rows: Run count(*) first so progress percent is exact
        connect_timeout: Connection timeout in seconds
    """

    host: str = "localhost"
    port: int = Field(5432, gt=0, lt=65536)
    database: str = Field(..., min_length=1)
    user: str = Field(..., min_length=1)
    password: str | None = None
    query: str
    fetch_size: int = Field(1000, gt=0)
    count_rows: bool = True
    connect_timeout: int = Field(30, gt=0)

    @field_validator("query")
    @classmethod
    def check_query(cls, v: str) -> str:
        try:
            return validate_query(v)
        except ValidationError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def password_from_env(self) -> "DbSourceConfig":
        if self.password is None:
            env_password = os.getenv("MQPUSHER_DB_PASSWORD")
            if env_password is not None:
                object.__setattr__(self, "password", env_password)
        return self

    @property
    def conninfo(self) -> str:
        """libpq connection string built from the individual fields."""
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            connect_timeout=self.connect_timeout,
            password=self.password or None,
        )

    class Config:
        frozen = True


class SourceConfig(BaseModel):
    """Source selector: exactly one of csv or db must be set."""

    csv: CsvSourceConfig | None = None
    db: DbSourceConfig | None = None

    @model_validator(mode="after")
    def check_exactly_one(self) -> "SourceConfig":
        selected = [name for name in ("csv", "db") if getattr(self, name) is not None]
        if not selected:
            raise ValueError("no source specified: set exactly one of 'csv' or 'db'")
        if len(selected) > 1:
            raise ValueError("ambiguous source: set exactly one of 'csv' or 'db', not both")
        return self

    @property
    def kind(self) -> str:
        return "csv" if self.csv is not None else "db"

    class Config:
        frozen = True


class ScriptConfig(BaseModel):
    """Optional conversion script; an empty filename means no script."""

    filename: str | None = None

    @field_validator("filename")
    @classmethod
    def check_filename(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        try:
            return validate_file_path(v, "filename")
        except ValidationError as e:
            raise ValueError(str(e)) from e

    class Config:
        frozen = True


class RabbitConfig(BaseModel):
    """RabbitMQ connection parameters."""

    host: str = "localhost"
    port: int = Field(5672, gt=0, lt=65536)
    virtual_host: str = "/"
    username: str = "guest"
    password: str | None = None
    heartbeat: int | None = Field(None, ge=0)
    connection_attempts: int = Field(3, gt=0)
    retry_delay: float = Field(2.0, ge=0.0)

    @model_validator(mode="after")
    def password_from_env(self) -> "RabbitConfig":
        if self.password is None:
            object.__setattr__(self, "password", os.getenv("MQPUSHER_RABBIT_PASSWORD", "guest"))
        return self

    class Config:
        frozen = True


class PublisherConfig(BaseModel):
    """
    Publish target on the broker.

    Attributes:
        exchange: Exchange name ("" is the default exchange)
        routing_key: Routing key, which is the queue name on the default exchange
        declare_queue: Declare a durable queue named routing_key at startup
        mandatory: Treat unroutable messages as publish failures
    """

    exchange: str = ""
    routing_key: str = Field(..., min_length=1)
    declare_queue: bool = False
    mandatory: bool = True

    class Config:
        frozen = True


class TargetConfig(BaseModel):
    """Broker connection plus publish binding."""

    rabbit: RabbitConfig = Field(default_factory=RabbitConfig)
    publisher: PublisherConfig

    class Config:
        frozen = True


class PipelineConfig(BaseModel):
    """
    Complete, validated configuration of one push run.

    Attributes:
        source: Source selector (csv or db)
        script: Optional conversion script
        target: Broker target
        progress_interval: Seconds between progress log lines
        metrics_port: Port for the Prometheus endpoint (disabled when unset)
    """

    source: SourceConfig
    script: ScriptConfig = Field(default_factory=ScriptConfig)
    target: TargetConfig
    progress_interval: float = Field(30.0, gt=0.0)
    metrics_port: int | None = Field(None, gt=0, lt=65536)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "source": {"csv": {"filename": "/data/users.csv.gz"}},
                "script": {"filename": "scripts/convert.py"},
                "target": {
                    "rabbit": {"host": "rabbitmq", "username": "pusher"},
                    "publisher": {"exchange": "", "routing_key": "users"},
                },
            }
        }
