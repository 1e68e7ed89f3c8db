"""
CSV file source.

Reads a delimited text file (optionally gzip-compressed) row by row, mapping
header columns to field names.
"""

import contextlib
import csv
import gzip
import io
from pathlib import Path

from mqpusher.core.errors import CloseError, ReadError
from mqpusher.core.models import CsvSourceConfig
from mqpusher.observability.logger import get_logger

from .base import DataSource, Record

logger = get_logger(__name__)

# Percent stays below this until the reader hits end of file
_ESTIMATE_CEILING = 99.99


class CsvDataSource(DataSource):
    """
    Streams rows of a CSV file as records.

    The first row is the header. Progress percent is estimated from the
    position in the raw (possibly compressed) file, because the number of
    rows is unknown until end of file; it reaches 100 only when the file is
    exhausted.
    """

    kind = "csv"

    def __init__(self, config: CsvSourceConfig):
        """
        Open the file and read the header.

        Args:
            config: CSV source configuration

        Raises:
            ReadError: If the file cannot be opened or the header is invalid
        """
        super().__init__()
        self.config = config
        self.path = Path(config.filename)
        self._null_values = frozenset(config.null_values)
        self._raw = None
        self._text = None
        self._exhausted = False

        try:
            self._size = self.path.stat().st_size
            self._raw = open(self.path, "rb")
            stream = gzip.GzipFile(fileobj=self._raw, mode="rb") if self.compressed else self._raw
            self._text = io.TextIOWrapper(stream, encoding=config.encoding, newline="")
            self._reader = csv.reader(
                self._text,
                delimiter=config.delimiter,
                quotechar=config.quotechar,
            )
            self.header = self._read_header()
        except OSError as e:
            self._discard()
            raise ReadError(f"opening csv file {self.path}: {e}") from e
        except (LookupError, ValueError) as e:
            # unknown encoding or invalid csv dialect
            self._discard()
            raise ReadError(f"opening csv file {self.path}: {e}") from e
        except ReadError:
            self._discard()
            raise

        logger.info(
            f"Opened csv source {self.path} "
            f"({len(self.header)} columns, compressed: {self.compressed})"
        )

    @property
    def compressed(self) -> bool:
        if self.config.compression == "auto":
            return self.path.suffix.lower() == ".gz"
        return self.config.compression == "gzip"

    def _read_header(self) -> list[str]:
        try:
            header = next(self._reader)
        except StopIteration:
            raise ReadError(f"csv file {self.path} is empty: header row expected")
        except (csv.Error, UnicodeDecodeError, EOFError) as e:
            raise ReadError(f"reading csv header of {self.path}: {e}") from e

        header = [column.strip() for column in header]
        if any(not column for column in header):
            raise ReadError(f"csv file {self.path} has an empty column name in its header")

        duplicates = sorted({column for column in header if header.count(column) > 1})
        if duplicates:
            raise ReadError(
                f"csv file {self.path} has duplicate column names: {', '.join(duplicates)}"
            )
        return header

    def next_row(self) -> Record | None:
        if self._closed:
            raise ReadError(f"csv source {self.path} is closed")
        if self._exhausted:
            return None

        try:
            values = next(self._reader)
            while not values:  # blank line
                values = next(self._reader)
        except StopIteration:
            self._exhausted = True
            self._counter.set_percent(100.0)
            return None
        except (csv.Error, OSError, UnicodeDecodeError, EOFError) as e:
            raise ReadError(f"reading {self.path} at line {self._reader.line_num}: {e}") from e

        if len(values) != len(self.header):
            raise ReadError(
                f"invalid column count at line {self._reader.line_num} of {self.path}: "
                f"expected {len(self.header)}, got {len(values)}"
            )

        record = {
            column: (None if value in self._null_values else value)
            for column, value in zip(self.header, values)
        }
        self._counter.advance(self._estimate_percent())
        return record

    def _estimate_percent(self) -> float:
        if not self._size:
            return 0.0
        try:
            position = self._raw.tell()
        except OSError:
            return 0.0
        return min(_ESTIMATE_CEILING, position * 100.0 / self._size)

    def _release(self) -> None:
        # GzipFile does not close the file object it wraps
        try:
            if self._text is not None:
                self._text.close()
            if self._raw is not None:
                self._raw.close()
        except OSError as e:
            raise CloseError(f"closing csv file {self.path}: {e}") from e
        finally:
            self._text = None
            self._raw = None

    def _discard(self) -> None:
        # Construction failed; the caller never gets a source to close
        self._closed = True
        with contextlib.suppress(OSError, CloseError):
            self._release()
