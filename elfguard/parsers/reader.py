"""
Primitive Byte Reader
======================

Fixed-width unsigned integer reads from a seekable binary stream.

Every structure decoder in :mod:`elfguard.parsers` goes through
:class:`ByteReader`.  A read either returns exactly the requested number
of bytes or raises :class:`~elfguard.core.errors.TruncatedReadError`;
partial reads never succeed silently.
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO

from elfguard.core.errors import TruncatedReadError

LITTLE_ENDIAN: str = "<"
BIG_ENDIAN: str = ">"

# Width in bytes -> struct format character
_UINT_FORMATS: dict[int, str] = {
    1: "B",
    2: "H",
    4: "I",
    8: "Q",
}


def read_uint(
    stream: BinaryIO,
    width: int,
    field: str = "value",
    byte_order: str = LITTLE_ENDIAN,
) -> int:
    """Read an unsigned integer of *width* bytes from *stream*.

    Args:
        stream: Binary stream positioned at the first byte of the value.
        width: Field width in bytes (1, 2, 4 or 8).
        field: Name used in the error message if the read is short.
        byte_order: ``"<"`` for little-endian, ``">"`` for big-endian.

    Returns:
        The decoded integer.

    Raises:
        ValueError: If *width* is not a supported integer width.
        TruncatedReadError: If fewer than *width* bytes remain.
    """
    try:
        fmt = byte_order + _UINT_FORMATS[width]
    except KeyError:
        raise ValueError(f"Unsupported integer width: {width}") from None

    data = stream.read(width)
    if len(data) != width:
        raise TruncatedReadError(field, width, len(data))
    return struct.unpack(fmt, data)[0]


class ByteReader:
    """Sequential cursor over a seekable byte source.

    The reader borrows *stream*; closing it remains the caller's job.

    Usage::

        with open(path, "rb") as fh:
            reader = ByteReader(fh)
            e_type = reader.u16("e_type")
    """

    def __init__(self, stream: BinaryIO, byte_order: str = LITTLE_ENDIAN) -> None:
        if byte_order not in (LITTLE_ENDIAN, BIG_ENDIAN):
            raise ValueError(f"Unknown byte order: {byte_order!r}")
        self._stream = stream
        self._byte_order = byte_order

    @property
    def stream(self) -> BinaryIO:
        """The underlying binary stream."""
        return self._stream

    @property
    def byte_order(self) -> str:
        """``"<"`` or ``">"``, applied to every multi-byte read."""
        return self._byte_order

    def with_byte_order(self, byte_order: str) -> ByteReader:
        """Return a reader sharing this stream but using *byte_order*."""
        return ByteReader(self._stream, byte_order)

    # ------------------------------------------------------------------ #
    #  Positioning
    # ------------------------------------------------------------------ #

    def seek(self, offset: int) -> None:
        """Move the cursor to absolute file *offset*."""
        self._stream.seek(offset, io.SEEK_SET)

    def tell(self) -> int:
        return self._stream.tell()

    def size(self) -> int:
        """Total length of the byte source; the cursor is left unchanged."""
        current = self._stream.tell()
        end = self._stream.seek(0, io.SEEK_END)
        self._stream.seek(current, io.SEEK_SET)
        return end

    # ------------------------------------------------------------------ #
    #  Reads
    # ------------------------------------------------------------------ #

    def read_exact(self, size: int, field: str = "bytes") -> bytes:
        """Read exactly *size* bytes or raise :class:`TruncatedReadError`."""
        data = self._stream.read(size)
        if len(data) != size:
            raise TruncatedReadError(field, size, len(data))
        return data

    def read_uint(self, width: int, field: str = "value") -> int:
        return read_uint(self._stream, width, field, self._byte_order)

    def u8(self, field: str = "u8") -> int:
        return self.read_uint(1, field)

    def u16(self, field: str = "u16") -> int:
        return self.read_uint(2, field)

    def u32(self, field: str = "u32") -> int:
        return self.read_uint(4, field)

    def u64(self, field: str = "u64") -> int:
        return self.read_uint(8, field)
