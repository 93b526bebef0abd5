from __future__ import annotations
import logging
from enum import Enum
from dataclasses import dataclass, field

from litereader.consts import (
    CELL_COUNT_OFFSET,
    CELL_POINTER_SIZE,
    LEAF_PAGE_HEADER_SIZE,
)
from litereader.errors import (
    DecodeError,
    InvalidPageTypeError,
    UnsupportedPageTypeError,
)
from litereader.reading import btree_header_start, page_start
from litereader.rows import LeafCell, Record

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from litereader.database import Database

logger = logging.getLogger(__name__)


class PageType(Enum):
    """
    Tag in the first byte of a b-tree page header. Only LEAF_TABLE pages are
    decoded; their cells hold a row id and the row's record:

    | payload size | row id | header size | serial types... | values... |
    """

    INTERIOR_INDEX = 0x02
    INTERIOR_TABLE = 0x05
    LEAF_INDEX = 0x0A
    LEAF_TABLE = 0x0D


@dataclass
class Page:
    """
    A decoded b-tree page. It is rebuilt from disk on every read and never cached.

    Only LEAF_TABLE pages can be produced: every other kind is rejected while
    reading so callers never see an interior page with an empty cell list.
    """

    index: int
    page_type: PageType
    cell_count: int
    cell_pointer_array: List[int] = field(default_factory=list)
    cells: List[LeafCell] = field(default_factory=list)

    @property
    def is_table_leaf(self) -> bool:
        return self.page_type == PageType.LEAF_TABLE

    @staticmethod
    def from_database(database: Database, page_index: int) -> Page:
        """
        Loads the 1-based page "page_index".
        Parses the page header as described in https://www.sqlite.org/fileformat2.html#b_tree_pages
        and, based on that, loads the cell pointer array and every cell it points to
        """
        header_start = btree_header_start(page_index, database.page_size)
        header = database.read_at(header_start, LEAF_PAGE_HEADER_SIZE)

        page_type_int = header[0]
        try:
            page_type = PageType(page_type_int)
        except ValueError:
            raise InvalidPageTypeError(
                f"Invalid page type {page_type_int:#04x} on page {page_index}"
            )

        cell_count = int.from_bytes(
            header[CELL_COUNT_OFFSET : CELL_COUNT_OFFSET + 2], "big"
        )
        logger.debug(
            "Page %d: type %s, %d cells", page_index, page_type.name, cell_count
        )

        if page_type != PageType.LEAF_TABLE:
            raise UnsupportedPageTypeError(page_index, page_type)

        cell_pointer_array = Page.__read_cell_pointers(
            database, header_start + LEAF_PAGE_HEADER_SIZE, cell_count
        )
        cells = [
            read_table_leaf_cell(database, page_index, cell_pointer)
            for cell_pointer in cell_pointer_array
        ]

        return Page(page_index, page_type, cell_count, cell_pointer_array, cells)

    #  The cell pointer array consists of K 2-byte integer offsets to the cell contents.
    @staticmethod
    def __read_cell_pointers(
        database: Database, start: int, cell_count: int
    ) -> List[int]:
        pointer_bytes = database.read_at(start, CELL_POINTER_SIZE * cell_count)
        return [
            int.from_bytes(pointer_bytes[i : i + CELL_POINTER_SIZE], "big")
            for i in range(0, len(pointer_bytes), CELL_POINTER_SIZE)
        ]


def read_table_leaf_cell(
    database: Database, page_index: int, cell_pointer: int
) -> LeafCell:
    """
    Decodes the table leaf cell found "cell_pointer" bytes into the page.
    See https://saveriomiroddi.github.io/SQLIte-database-file-format-diagrams/ for the layout.

    Every field is read at an explicit offset, the varint lookahead reads past
    the end of short varints so the file position is never reused.
    """
    if cell_pointer >= database.page_size:
        raise DecodeError(
            f"Cell pointer {cell_pointer} on page {page_index} is outside the "
            f"{database.page_size} byte page"
        )
    offset = page_start(page_index, database.page_size) + cell_pointer

    payload_size, offset = database.read_varint_at(offset)
    row_id, offset = database.read_varint_at(offset)

    # The header size counts the bytes of its own varint
    header_start = offset
    header_size, offset = database.read_varint_at(offset)
    serial_types_size = header_size - (offset - header_start)

    serial_types = []
    byte_tally = 0
    while byte_tally < serial_types_size:
        serial_type, next_offset = database.read_varint_at(offset)
        serial_types.append(serial_type)
        byte_tally += next_offset - offset
        offset = next_offset

    if byte_tally != serial_types_size:
        raise DecodeError(
            f"Record header of row {row_id} on page {page_index} overruns its "
            f"declared size of {header_size} bytes"
        )

    values = []
    for serial_type in serial_types:
        value, offset = database.read_value_at(offset, serial_type)
        values.append(value)

    return LeafCell(row_id, Record(values), payload_size)
