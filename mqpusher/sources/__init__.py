"""
Row sources: a CSV file or a PostgreSQL query behind one DataSource contract.
"""

from mqpusher.core.errors import ConfigurationError
from mqpusher.core.models import SourceConfig

from .base import DataSource, ProgressCounter, Record
from .csv_source import CsvDataSource
from .db_source import DbDataSource


def create_data_source(source_config: SourceConfig) -> DataSource:
    """
    Build the source selected by the configuration.

    This is the only place variant-specific configuration is consulted.

    Args:
        source_config: Source selector with exactly one variant set

    Returns:
        An open DataSource

    Raises:
        ConfigurationError: If no variant or more than one variant is set
        ReadError: If the source cannot be opened
    """
    csv_config = getattr(source_config, "csv", None)
    db_config = getattr(source_config, "db", None)

    if csv_config is not None and db_config is not None:
        raise ConfigurationError("ambiguous source: both csv and db are specified")
    if csv_config is not None:
        return CsvDataSource(csv_config)
    if db_config is not None:
        return DbDataSource(db_config)
    raise ConfigurationError("no source specified")


__all__ = [
    "DataSource",
    "ProgressCounter",
    "Record",
    "CsvDataSource",
    "DbDataSource",
    "create_data_source",
]
