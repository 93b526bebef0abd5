from __future__ import annotations
import logging

from litereader.consts import (
    CELL_COUNT_OFFSET,
    DB_FILE_HEADER_SIZE,
    DB_HEADER_MAGIC,
    LEAF_PAGE_HEADER_SIZE,
    MAX_PAGE_SIZE,
    MAX_PAGE_SIZE_MARKER,
    MIN_PAGE_SIZE,
    PAGE_SIZE_OFFSET,
    SCHEMA_TABLE_PAGE_INDEX,
    SQLITE_INTERNAL_PREFIX,
    VARINT_MAX_SIZE,
)
from litereader.errors import (
    DecodeError,
    InvalidPageTypeError,
    TableNotFoundError,
    UnsupportedPageTypeError,
)
from litereader.pages import Page
from litereader.queries import parse_create_table
from litereader.reading import decode_varint, read_exact, read_record_value, serial_type_size
from litereader.rows import RecordValue, Schema

from typing import Any, BinaryIO, Dict, List, Tuple

logger = logging.getLogger(__name__)


class Database:
    """
    An open database file and its page geometry.

    The handle owns the file cursor: every read goes through read_at, which
    seeks before reading, so no caller relies on where a previous read left
    the cursor. Handles are not safe to share between threads.
    """

    path: str
    page_size: int
    page_count: int  # cell count of the schema page, i.e. the number of schema rows

    def __init__(self, database_file: BinaryIO, page_size: int, page_count: int, path: str = ""):
        self._file = database_file
        self.page_size = page_size
        self.page_count = page_count
        self.path = path

    @staticmethod
    def open(path: str) -> Database:
        """
        Reads the 100 byte file header and the b-tree header of the schema page.
        https://www.sqlite.org/fileformat.html#the_database_header
        """
        database_file = open(path, "rb")
        try:
            header = read_exact(database_file, DB_FILE_HEADER_SIZE)
            if not header.startswith(DB_HEADER_MAGIC):
                raise DecodeError(f"{path} is not an SQLite 3 database file")

            page_size = _decode_page_size(
                header[PAGE_SIZE_OFFSET : PAGE_SIZE_OFFSET + 2]
            )

            # The schema page b-tree header directly follows the file header
            btree_header = read_exact(database_file, LEAF_PAGE_HEADER_SIZE)
            page_count = int.from_bytes(
                btree_header[CELL_COUNT_OFFSET : CELL_COUNT_OFFSET + 2], "big"
            )
        except BaseException:
            database_file.close()
            raise

        logger.debug(
            "Opened %s: page size %d, %d schema rows", path, page_size, page_count
        )
        return Database(database_file, page_size, page_count, path)

    def close(self):
        self._file.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def read_at(self, offset: int, size: int) -> bytes:
        self._file.seek(offset)
        return read_exact(self._file, size)

    def read_varint_at(self, offset: int) -> Tuple[int, int]:
        """
        Decodes the varint starting at offset, returning (value, offset right after it).
        The lookahead window is only shorter than VARINT_MAX_SIZE at the end of the file.
        """
        self._file.seek(offset)
        window = self._file.read(VARINT_MAX_SIZE)
        value, byte_count = decode_varint(window)
        return value, offset + byte_count

    def read_value_at(self, offset: int, serial_type: int) -> Tuple[RecordValue, int]:
        self._file.seek(offset)
        value = read_record_value(self._file, serial_type)
        return value, offset + serial_type_size(serial_type)

    def read_page(self, page_index: int) -> Page:
        return Page.from_database(self, page_index)

    def get_schema_table(self) -> List[Schema]:
        """
        The first page holds the sqlite_schema table: one row per table, index,
        view and trigger. Any row that fails to decode fails the whole catalog.
        """
        try:
            first_page = self.read_page(SCHEMA_TABLE_PAGE_INDEX)
        except (UnsupportedPageTypeError, InvalidPageTypeError) as e:
            raise DecodeError(f"Something wrong with first page: {e}") from e

        if len(first_page.cells) != self.page_count:
            raise DecodeError(
                f"Schema page holds {len(first_page.cells)} rows but the header "
                f"announced {self.page_count}"
            )

        return [Schema.from_cell(cell) for cell in first_page.cells]

    def get_table_names(self) -> List[str]:
        return [
            schema.tbl_name
            for schema in self.get_schema_table()
            if schema.is_table and not schema.name.startswith(SQLITE_INTERNAL_PREFIX)
        ]

    def get_table_schema(self, table_name: str) -> Schema:
        table_schema = next(
            (
                schema
                for schema in self.get_schema_table()
                if schema.is_table and schema.name.lower() == table_name.lower()
            ),
            None,
        )
        if table_schema is None:
            raise TableNotFoundError(f"No such table: {table_name}")

        return table_schema

    def read_rows(self, table_name: str) -> List[Dict[str, Any]]:
        """
        Reads every row of a table that fits in its root page, as dicts keyed by column name.

        When an SQL table includes an INTEGER PRIMARY KEY column (which aliases the rowid)
        then that column appears in the record as a NULL value. SQLite will always use the
        table b-tree key rather than the NULL value when referencing the INTEGER PRIMARY KEY column.
        """
        table_schema = self.get_table_schema(table_name)
        creation = parse_create_table(table_schema.sql)
        column_names = [column.name for column in creation.columns]

        table_page = self.read_page(table_schema.root_page)
        logger.debug(
            "Reading %d rows of %s from page %d",
            len(table_page.cells),
            table_schema.name,
            table_schema.root_page,
        )

        rows = []
        for cell in table_page.cells:
            values = cell.payload.as_python()
            if len(values) > len(column_names):
                raise DecodeError(
                    f"Row {cell.row_id} of {table_schema.name} has {len(values)} "
                    f"values but the table declares {len(column_names)} columns"
                )
            # Columns added by ALTER TABLE are missing from older records
            values += [None] * (len(column_names) - len(values))

            row = dict(zip(column_names, values))
            for column in creation.columns:
                if column.is_rowid_alias and row[column.name] is None:
                    row[column.name] = cell.row_id
            rows.append(row)

        return rows


def _decode_page_size(raw: bytes) -> int:
    page_size = int.from_bytes(raw, "big")
    if page_size == MAX_PAGE_SIZE_MARKER:
        return MAX_PAGE_SIZE

    if page_size < MIN_PAGE_SIZE or page_size & (page_size - 1):
        raise DecodeError(f"Invalid page size {page_size}, must be a power of two")

    return page_size
