"""
Exceptions raised while reading a database file.

Every decode step raises as soon as it finds something it cannot interpret;
nothing below the command layer catches these.
"""


class LiteReaderError(Exception):
    """Base class for every error raised by litereader"""


class DecodeError(LiteReaderError, ValueError):
    """The bytes on disk do not have the expected structure"""


class TruncatedDataError(DecodeError):
    """Fewer bytes were available than the structure being decoded needs"""


class InvalidPageTypeError(DecodeError):
    """The page header holds a tag that is not one of the four b-tree kinds"""


class UnsupportedPageTypeError(LiteReaderError):
    """A valid b-tree page kind that this reader does not decode"""

    def __init__(self, page_index: int, page_type):
        self.page_index = page_index
        self.page_type = page_type
        super().__init__(
            f"Unsupported page type {page_type} on page {page_index}, "
            "only table leaf pages can be read"
        )


class InvalidSerialTypeError(DecodeError):
    """A record header holds a code outside the serial type mapping"""


class UnimplementedSerialTypeError(LiteReaderError, NotImplementedError):
    """24-bit and 48-bit integers (serial types 3 and 5)"""


class TextDecodeError(DecodeError):
    """A text value is not valid UTF-8"""


class SchemaShapeError(DecodeError):
    """A sqlite_schema row holds an unexpected value at a fixed position"""


class TableNotFoundError(LiteReaderError, LookupError):
    """No table with the requested name in sqlite_schema"""


class QuerySyntaxError(LiteReaderError):
    """The SQL text could not be understood"""
