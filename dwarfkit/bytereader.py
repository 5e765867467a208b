"""A read cursor over an immutable byte string, shared by the DWARF decoders."""

from __future__ import annotations

from typing import Literal, Tuple

ByteOrder = Literal["little", "big"]

_UINT_SIZES = (1, 2, 4, 8)


class ByteReader:
    """Sequential reader over bytes with a movable position."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes = b"", offset: int = 0) -> None:
        self._data = bytes(data)
        self._pos = 0
        self.seek(offset)

    def __len__(self) -> int:
        """Number of unread bytes."""
        return len(self._data) - self._pos

    def __repr__(self) -> str:
        return f"ByteReader(pos={self._pos}, remaining={len(self)})"

    def tell(self) -> int:
        """Current absolute position."""
        return self._pos

    def seek(self, offset: int) -> None:
        """Move to an absolute position inside the data."""
        if not 0 <= offset <= len(self._data):
            raise ValueError(f"offset {offset:#x} outside of data of length {len(self._data):#x}")
        self._pos = offset

    def rest(self) -> bytes:
        """The unread bytes, without consuming them."""
        return self._data[self._pos:]

    def read_byte(self) -> int:
        """Read one byte; raises EOFError at the end of the data."""
        if self._pos >= len(self._data):
            raise EOFError("unexpected end of data")
        value = self._data[self._pos]
        self._pos += 1
        return value

    def unread_byte(self) -> None:
        """Step back over the last byte read."""
        if self._pos == 0:
            raise ValueError("no byte to unread")
        self._pos -= 1

    def next(self, n: int) -> bytes:
        """Consume and return up to ``n`` bytes (fewer at the end of the data)."""
        if n < 0:
            raise ValueError("negative count")
        chunk = self._data[self._pos:self._pos + n]
        self._pos += len(chunk)
        return chunk

    def read_cstring(self) -> str:
        """Read a NUL terminated string, consuming the terminator."""
        end = self._data.find(0, self._pos)
        if end < 0:
            self._pos = len(self._data)
            raise EOFError("unterminated string")
        raw = self._data[self._pos:end]
        self._pos = end + 1
        return raw.decode("utf-8", "surrogateescape")

    def read_uint(self, size: int, byteorder: ByteOrder = "little") -> int:
        """Read an unsigned integer of 1, 2, 4 or 8 bytes."""
        if size not in _UINT_SIZES:
            raise ValueError(f"pointer size {size} not supported")
        chunk = self.next(size)
        if len(chunk) < size:
            raise EOFError(f"need {size} bytes, only {len(chunk)} left")
        return int.from_bytes(chunk, byteorder)


def read_dwarf_length_version(data: bytes) -> Tuple[int, bool, int, ByteOrder]:
    """Decode a DWARF unit header prefix.

    Returns ``(length, dwarf64, version, byteorder)``; the byte order is
    guessed from the version field.
    """
    if len(data) < 4:
        return 0, False, 0, "little"
    dwarf64 = int.from_bytes(data[:4], "little") == 0xFFFFFFFF
    voff = 12 if dwarf64 else 4
    if voff + 1 >= len(data):
        return 0, False, 0, "little"
    x, y = data[voff], data[voff + 1]
    byteorder: ByteOrder = "big" if x == 0 and y != 0 else "little"
    if dwarf64:
        length = int.from_bytes(data[4:12], byteorder)
    else:
        length = int.from_bytes(data[:4], byteorder)
    version = int.from_bytes(data[voff:voff + 2], byteorder)
    return length, dwarf64, version, byteorder