"""
Storage Layer - tables kept as delimited text files in one directory

This module provides:
- TableStorage: the interface the executor uses (schema, scan, append, rewrite)
- CsvStorage: one <table>.csv file per table, first line is the header

Rows are tuples of raw field strings; typing happens in the evaluator.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Sequence, Tuple
import csv
import io
import os
import shutil
import tempfile

from .config import TABLE_FILE_EXT, FIELD_DELIMITER, FILE_ENCODING, TEMP_FILE_SUFFIX
from .errors import StorageError, StorageIOError, TableNotFoundError, MalformedRowError
from .logger import get_logger
from .schema import TableSchema

logger = get_logger(__name__)

Row = Tuple[str, ...]


class TableStorage(ABC):
    """Operations the executor needs from a table store"""

    @abstractmethod
    def get_schema(self, table_name: str) -> TableSchema:
        """Ordered column names of a table"""

    @abstractmethod
    def scan_rows(self, table_name: str) -> Iterator[Row]:
        """Lazily yield every row; a new iterator starts from the first row"""

    @abstractmethod
    def append_row(self, table_name: str, row: Sequence[str]):
        """Add one row at the end of the table"""

    def append_rows(self, table_name: str, rows: Iterable[Sequence[str]]):
        """Add rows at the end of the table, in order"""
        for row in rows:
            self.append_row(table_name, row)

    @abstractmethod
    def replace_all_rows(self, table_name: str, rows: Iterable[Sequence[str]]):
        """Rewrite the table with exactly these rows"""


class CsvStorage(TableStorage):
    """Table directory with one delimited file per table"""

    def __init__(self, data_dir: str, delimiter: str = FIELD_DELIMITER):
        self.data_dir = data_dir
        self.delimiter = delimiter
        self._validate_directory()

    def _validate_directory(self):
        """The table directory must exist, be a directory, and not be empty"""
        if not os.path.exists(self.data_dir):
            raise StorageError(f"Path '{self.data_dir}' does not exist")
        if not os.path.isdir(self.data_dir):
            raise StorageError(f"Path '{self.data_dir}' is not a directory")
        if not os.listdir(self.data_dir):
            raise StorageError(f"Path '{self.data_dir}' is an empty directory")

    # ========================================================================
    # Helper methods
    # ========================================================================

    def table_path(self, table_name: str) -> str:
        """Get path of an existing table file"""
        path = os.path.join(self.data_dir, table_name + TABLE_FILE_EXT)
        if not os.path.isfile(path):
            raise TableNotFoundError(table_name, self.data_dir)
        return path

    def _reader(self, handle):
        return csv.reader(handle, delimiter=self.delimiter, skipinitialspace=True)

    def _writer(self, handle):
        return csv.writer(handle, delimiter=self.delimiter, lineterminator='\n')

    @staticmethod
    def _clean(record: Sequence[str]) -> Row:
        return tuple(field.strip() for field in record)

    @staticmethod
    def _is_blank(record: Sequence[str], width: int = 0) -> bool:
        # A lone empty field is a real row only in a one-column table
        if not record:
            return True
        return width != 1 and len(record) == 1 and not record[0].strip()

    def _read_header(self, table_name: str, path: str, reader) -> TableSchema:
        for record in reader:
            if self._is_blank(record):
                continue
            try:
                return TableSchema(table_name, list(self._clean(record)))
            except ValueError as e:
                raise StorageError(f"Invalid header in {path}: {e}") from e
        raise StorageError(f"Table file {path} has no header line")

    # ========================================================================
    # TableStorage interface
    # ========================================================================

    def get_schema(self, table_name: str) -> TableSchema:
        path = self.table_path(table_name)
        try:
            with open(path, 'r', encoding=FILE_ENCODING, newline='') as handle:
                return self._read_header(table_name, path, self._reader(handle))
        except OSError as e:
            raise StorageIOError(f"Could not read table '{table_name}': {e}") from e
        except UnicodeDecodeError as e:
            raise StorageError(f"Table '{table_name}' is not valid {FILE_ENCODING} text: {e}") from e

    def scan_rows(self, table_name: str) -> Iterator[Row]:
        # Check existence eagerly so a missing table fails at call time
        path = self.table_path(table_name)
        return self._scan(table_name, path)

    def _scan(self, table_name: str, path: str) -> Iterator[Row]:
        try:
            with open(path, 'r', encoding=FILE_ENCODING, newline='') as handle:
                reader = self._reader(handle)
                schema = self._read_header(table_name, path, reader)
                for record in reader:
                    if self._is_blank(record, len(schema)):
                        continue
                    if len(record) != len(schema):
                        raise MalformedRowError(table_name, reader.line_num, len(record), len(schema))
                    yield self._clean(record)
        except OSError as e:
            raise StorageIOError(f"Could not read table '{table_name}': {e}") from e
        except csv.Error as e:
            raise StorageError(f"Could not parse table '{table_name}': {e}") from e
        except UnicodeDecodeError as e:
            raise StorageError(f"Table '{table_name}' is not valid {FILE_ENCODING} text: {e}") from e

    def append_row(self, table_name: str, row: Sequence[str]):
        self.append_rows(table_name, [row])

    def append_rows(self, table_name: str, rows: Iterable[Sequence[str]]):
        """Append several rows with a single write"""
        path = self.table_path(table_name)
        buffer = io.StringIO()
        writer = self._writer(buffer)
        count = 0
        for row in rows:
            writer.writerow(row)
            count += 1
        try:
            self._ensure_trailing_newline(path)
            with open(path, 'a', encoding=FILE_ENCODING, newline='') as handle:
                handle.write(buffer.getvalue())
        except OSError as e:
            raise StorageIOError(f"Could not append to table '{table_name}': {e}") from e
        logger.debug("Appended %d rows to %s", count, path)

    def replace_all_rows(self, table_name: str, rows: Iterable[Sequence[str]]):
        """Write header and rows to a temporary file, then swap it in"""
        path = self.table_path(table_name)
        schema = self.get_schema(table_name)
        fd, temp_path = tempfile.mkstemp(
            prefix=f".{table_name}_", suffix=TEMP_FILE_SUFFIX, dir=os.path.dirname(path) or '.'
        )
        count = 0
        try:
            with os.fdopen(fd, 'w', encoding=FILE_ENCODING, newline='') as handle:
                writer = self._writer(handle)
                writer.writerow(schema.columns)
                for row in rows:
                    writer.writerow(row)
                    count += 1
            shutil.copymode(path, temp_path)
            os.replace(temp_path, path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise StorageIOError(f"Could not rewrite table '{table_name}': {e}") from e
        logger.debug("Rewrote %s with %d rows", path, count)

    @staticmethod
    def _ensure_trailing_newline(path: str):
        with open(path, 'rb+') as handle:
            handle.seek(0, os.SEEK_END)
            if handle.tell() == 0:
                return
            handle.seek(-1, os.SEEK_END)
            if handle.read(1) != b'\n':
                handle.write(b'\n')
