"""A small decoding buffer that tracks its section offset for error reports."""

from __future__ import annotations

from typing import Tuple

_MASK64 = (1 << 64) - 1


class DecodeError(ValueError):
    """Malformed data found while decoding a DWARF section."""

    def __init__(self, name: str, offset: int, err: str) -> None:
        self.name = name
        self.offset = offset
        self.err = err
        super().__init__(f"decoding dwarf section {name} at offset {offset:#x}: {err}")


class DataBuf:
    """Bytes being decoded from a named section, starting at offset ``off``."""

    def __init__(self, name: str, off: int, data: bytes) -> None:
        self.name = name
        self.off = off
        self.data = bytes(data)

    def __len__(self) -> int:
        return len(self.data)

    def _fail(self, message: str) -> DecodeError:
        error = DecodeError(self.name, self.off, message)
        self.data = b""
        return error

    def uint8(self) -> int:
        """Read one byte."""
        if not self.data:
            raise self._fail("underflow")
        value = self.data[0]
        self.data = self.data[1:]
        self.off += 1
        return value

    def varint(self) -> Tuple[int, int]:
        """Read a 7-bit-per-byte little endian varint; returns ``(value, bits)``.

        Returns ``(0, 0)`` without consuming anything when no terminating
        byte is present.
        """
        value = 0
        bits = 0
        for i, byte in enumerate(self.data):
            if bits < 64:
                value |= (byte & 0x7F) << bits
            bits += 7
            if not byte & 0x80:
                self.off += i + 1
                self.data = self.data[i + 1:]
                return value & _MASK64, bits
        return 0, 0

    def uint(self) -> int:
        """Read an unsigned varint."""
        value, _ = self.varint()
        return value

    def int(self) -> int:
        """Read a sign-extended varint."""
        ux, bits = self.varint()
        if bits == 0:
            return 0
        x = ux
        if bits <= 64 and x & (1 << (bits - 1)):
            x -= 1 << bits
        return ((x + (1 << 63)) & _MASK64) - (1 << 63)

    def assert_empty(self) -> None:
        """Raise DecodeError if any bytes remain unread."""
        if not self.data:
            return
        if len(self.data) > 5:
            raise self._fail(f"unexpected extra data: {self.data[:5].hex()}...")
        raise self._fail(f"unexpected extra data: {self.data.hex()}")