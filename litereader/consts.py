# https://www.sqlite.org/fileformat.html#the_database_header
DB_FILE_HEADER_SIZE = 100
DB_HEADER_MAGIC = b"SQLite format 3\x00"
PAGE_SIZE_OFFSET = 16
# A stored page size of 1 stands for 65536, which does not fit in 16 bits
MAX_PAGE_SIZE_MARKER = 1
MAX_PAGE_SIZE = 65536
MIN_PAGE_SIZE = 512

# https://www.sqlite.org/fileformat2.html#b_tree_pages
LEAF_PAGE_HEADER_SIZE = 8
CELL_COUNT_OFFSET = 3
CELL_POINTER_SIZE = 2

# https://www.sqlite.org/fileformat.html#varint
VARINT_MAX_SIZE = 9
LAST_SEVEN_BITS_MASK = 0b_0111_1111
CONTINUATION_BIT_MASK = 0b_1000_0000

# https://www.sqlite.org/fileformat.html#record_format
BLOB_SERIAL_TYPE_START = 12
TEXT_SERIAL_TYPE_START = 13

SCHEMA_TABLE_PAGE_INDEX = 1
SQLITE_INTERNAL_PREFIX = "sqlite_"

# Matches everything inside the outermost parenthesis of a CREATE TABLE statement
TABLE_CREATION_REGEX = r"\((.*)\)"

LOG_LEVEL_ENV_VAR = "LITEREADER_LOG_LEVEL"
