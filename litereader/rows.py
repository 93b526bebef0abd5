# record format
# https://www.sqlite.org/fileformat.html#record_format
# A record contains a header and a body, in that order
from __future__ import annotations
from enum import Enum
from dataclasses import dataclass, field

from litereader.errors import SchemaShapeError

from typing import Any, Iterator, List, Optional


class ValueKind(Enum):
    NULL = "null"
    INT8 = "int8"
    INT16 = "int16"
    INT24 = "int24"
    INT32 = "int32"
    INT48 = "int48"
    INT64 = "int64"
    FLOAT = "float"
    ZERO = "zero"  # serial type 8, the integer 0 stored without a body
    ONE = "one"  # serial type 9, the integer 1 stored without a body
    BLOB = "blob"
    TEXT = "text"


INTEGER_KINDS = (
    ValueKind.INT8,
    ValueKind.INT16,
    ValueKind.INT24,
    ValueKind.INT32,
    ValueKind.INT48,
    ValueKind.INT64,
    ValueKind.ZERO,
    ValueKind.ONE,
)


@dataclass(frozen=True)
class RecordValue:
    kind: ValueKind
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.kind == ValueKind.NULL

    @property
    def is_integer(self) -> bool:
        return self.kind in INTEGER_KINDS


@dataclass
class Record:
    values: List[RecordValue] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, position: int) -> RecordValue:
        return self.values[position]

    def __iter__(self) -> Iterator[RecordValue]:
        return iter(self.values)

    def as_python(self) -> List[Any]:
        return [record_value.value for record_value in self.values]


@dataclass
class LeafCell:
    """
    One row of a table b-tree leaf page.

    The row id is the b-tree key; uniqueness inside a page is assumed, not checked.
    """

    row_id: int
    payload: Record
    payload_size: int = 0


# https://www.sqlite.org/fileformat.html#storage_of_the_sql_database_schema
@dataclass
class Schema:
    type: str
    name: str
    tbl_name: str
    root_page: int
    sql: Optional[str]

    @staticmethod
    def from_cell(cell: LeafCell) -> Schema:
        """
        Reads the fixed columns of a sqlite_schema row:
        type, name, tbl_name, rootpage, sql
        """
        record = cell.payload
        if len(record) < 5:
            raise SchemaShapeError(
                f"Schema row {cell.row_id} has {len(record)} columns, expected 5"
            )

        return Schema(
            type=_text_at(cell, 0, "type"),
            name=_text_at(cell, 1, "name"),
            tbl_name=_text_at(cell, 2, "table name"),
            root_page=_root_page_at(cell, 3),
            sql=_sql_at(cell, 4),
        )

    @property
    def is_table(self) -> bool:
        return self.type == "table"


def _text_at(cell: LeafCell, position: int, what: str) -> str:
    record_value = cell.payload[position]
    if record_value.kind != ValueKind.TEXT:
        raise SchemaShapeError(
            f"Something wrong with schema {what} in row {cell.row_id}: "
            f"got {record_value.kind.value}"
        )
    return record_value.value


def _root_page_at(cell: LeafCell, position: int) -> int:
    # Views and triggers have no b-tree, SQLite stores their root page as the constant 0
    record_value = cell.payload[position]
    if not record_value.is_integer:
        raise SchemaShapeError(
            f"Something wrong with schema root page in row {cell.row_id}: "
            f"got {record_value.kind.value}"
        )
    if not 0 <= record_value.value <= 0xFFFF_FFFF:
        raise SchemaShapeError(
            f"Schema root page {record_value.value} in row {cell.row_id} is out of range"
        )
    return record_value.value


def _sql_at(cell: LeafCell, position: int) -> Optional[str]:
    # Automatic indexes (sqlite_autoindex_*) are stored without a statement
    if cell.payload[position].is_null:
        return None
    return _text_at(cell, position, "sql")
