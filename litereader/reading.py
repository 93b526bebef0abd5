import struct

from litereader.consts import (
    BLOB_SERIAL_TYPE_START,
    CONTINUATION_BIT_MASK,
    DB_FILE_HEADER_SIZE,
    LAST_SEVEN_BITS_MASK,
    TEXT_SERIAL_TYPE_START,
)
from litereader.errors import (
    DecodeError,
    InvalidSerialTypeError,
    TextDecodeError,
    TruncatedDataError,
    UnimplementedSerialTypeError,
)
from litereader.rows import RecordValue, ValueKind

from typing import BinaryIO, Tuple

# serial type -> (kind, content size in bytes) for the fixed width types
FIXED_SERIAL_TYPES = {
    0: (ValueKind.NULL, 0),
    1: (ValueKind.INT8, 1),
    2: (ValueKind.INT16, 2),
    3: (ValueKind.INT24, 3),
    4: (ValueKind.INT32, 4),
    5: (ValueKind.INT48, 6),
    6: (ValueKind.INT64, 8),
    7: (ValueKind.FLOAT, 8),
    8: (ValueKind.ZERO, 0),
    9: (ValueKind.ONE, 0),
    # 10 and 11 are reserved for internal use and never appear in a well-formed file
    10: (ValueKind.NULL, 0),
    11: (ValueKind.NULL, 0),
}

UNIMPLEMENTED_SERIAL_TYPES = (3, 5)


def page_start(page_index: int, page_size: int) -> int:
    """
    Byte offset of a 1-based page inside the database file.
    Cell pointers are relative to this offset, including on page 1.
    """
    if page_index < 1:
        raise DecodeError(f"Page indices start at 1, got {page_index}")
    return (page_index - 1) * page_size


def btree_header_start(page_index: int, page_size: int) -> int:
    # For the first page, we must skip the 100 byte database header
    if page_index == 1:
        return DB_FILE_HEADER_SIZE
    return page_start(page_index, page_size)


def decode_varint(window: bytes) -> Tuple[int, int]:
    """
    Decodes the varint at the start of window, returning (value, bytes used).
    https://www.sqlite.org/fileformat.html#varint

    The first 8 bytes contribute their 7 low bits while their high bit flags
    that more bytes follow. A 9th byte, if reached, contributes all 8 bits.
    Callers pass a VARINT_MAX_SIZE lookahead; it can only be shorter at the
    end of the file, which is an error only if the encoding runs past it.
    """
    if not window:
        raise TruncatedDataError("Cannot decode a varint from an empty buffer")

    value = window[0] & LAST_SEVEN_BITS_MASK
    byte_count = 1
    while window[byte_count - 1] & CONTINUATION_BIT_MASK and byte_count < 8:
        _check_varint_window(window, byte_count)
        value = (value << 7) | (window[byte_count] & LAST_SEVEN_BITS_MASK)
        byte_count += 1

    if window[byte_count - 1] & CONTINUATION_BIT_MASK:
        _check_varint_window(window, byte_count)
        value = (value << 8) | window[byte_count]
        byte_count += 1

    return value, byte_count


def _check_varint_window(window: bytes, byte_count: int):
    if byte_count >= len(window):
        raise TruncatedDataError(
            f"Varint needs more than the {len(window)} bytes available"
        )


def serial_type_size(serial_type: int) -> int:
    """Number of body bytes a value of this serial type occupies"""
    _check_serial_type(serial_type)

    if serial_type in FIXED_SERIAL_TYPES:
        return FIXED_SERIAL_TYPES[serial_type][1]
    elif serial_type % 2 == 0:
        return (serial_type - BLOB_SERIAL_TYPE_START) // 2
    else:
        return (serial_type - TEXT_SERIAL_TYPE_START) // 2


def decode_record_value(serial_type: int, raw: bytes) -> RecordValue:
    """
    Decodes one column value. raw must hold exactly serial_type_size(serial_type) bytes.
    All integers are big-endian two's complement.
    """
    size = serial_type_size(serial_type)
    _check_implemented(serial_type, size)
    if len(raw) != size:
        raise TruncatedDataError(
            f"Serial type {serial_type} needs {size} bytes, got {len(raw)}"
        )

    if serial_type in FIXED_SERIAL_TYPES:
        kind = FIXED_SERIAL_TYPES[serial_type][0]
        if kind == ValueKind.NULL:
            return RecordValue(kind)
        elif kind == ValueKind.ZERO:
            return RecordValue(kind, 0)
        elif kind == ValueKind.ONE:
            return RecordValue(kind, 1)
        elif kind == ValueKind.FLOAT:
            return RecordValue(kind, struct.unpack(">d", raw)[0])
        return RecordValue(kind, int.from_bytes(raw, "big", signed=True))

    if serial_type % 2 == 0:
        return RecordValue(ValueKind.BLOB, bytes(raw))

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TextDecodeError(f"Text value is not valid UTF-8: {raw!r}") from e
    return RecordValue(ValueKind.TEXT, text)


def read_record_value(stream: BinaryIO, serial_type: int) -> RecordValue:
    """Reads exactly the bytes serial_type dictates from the current stream position"""
    size = serial_type_size(serial_type)
    # fail before consuming anything so the stream is not misread
    _check_implemented(serial_type, size)
    return decode_record_value(serial_type, read_exact(stream, size))


def read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise TruncatedDataError(
            f"Expected {size} bytes at offset {stream.tell() - len(data)}, "
            f"only {len(data)} available"
        )
    return data


def _check_serial_type(serial_type):
    if (
        not isinstance(serial_type, int)
        or isinstance(serial_type, bool)
        or serial_type < 0
    ):
        raise InvalidSerialTypeError(f"Invalid serial type {serial_type!r}")


def _check_implemented(serial_type: int, size: int):
    if serial_type in UNIMPLEMENTED_SERIAL_TYPES:
        raise UnimplementedSerialTypeError(
            f"Serial type {serial_type} ({size} byte integer) is not supported yet"
        )
