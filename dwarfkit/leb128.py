"""Encoders and decoders for the Little Endian Base 128 format.

The format is defined in the DWARF v4 standard, section 7.6.
"""

from __future__ import annotations

from typing import Protocol, Tuple

_MASK64 = (1 << 64) - 1


class _ByteSource(Protocol):
    def read_byte(self) -> int: ...

    def __len__(self) -> int: ...


def _to_int64(value: int) -> int:
    return ((value + (1 << 63)) & _MASK64) - (1 << 63)


def decode_unsigned(buf: _ByteSource) -> Tuple[int, int]:
    """Decode an unsigned LEB128 number; returns ``(value, bytes_read)``."""
    if len(buf) == 0:
        return 0, 0
    result = 0
    shift = 0
    length = 0
    while True:
        try:
            b = buf.read_byte()
        except EOFError as exc:
            raise ValueError("could not parse ULEB128 value") from exc
        length += 1
        if shift < 64:
            result |= (b & 0x7F) << shift
        if not b & 0x80:
            break
        shift += 7
    return result & _MASK64, length


def decode_signed(buf: _ByteSource) -> Tuple[int, int]:
    """Decode a signed LEB128 number; returns ``(value, bytes_read)``."""
    if len(buf) == 0:
        return 0, 0
    result = 0
    shift = 0
    length = 0
    while True:
        try:
            b = buf.read_byte()
        except EOFError as exc:
            raise ValueError("could not parse SLEB128 value") from exc
        length += 1
        if shift < 64:
            result |= (b & 0x7F) << shift
        shift += 7
        if not b & 0x80:
            break
    if shift < 8 * length and b & 0x40 and shift < 64:
        result -= 1 << shift
    return _to_int64(result), length


def encode_unsigned(x: int) -> bytes:
    """Encode a non-negative integer as unsigned LEB128."""
    if x < 0:
        raise ValueError("cannot encode a negative number as unsigned LEB128")
    out = bytearray()
    while True:
        b = x & 0x7F
        x >>= 7
        if x:
            b |= 0x80
        out.append(b)
        if not x:
            return bytes(out)


def encode_signed(x: int) -> bytes:
    """Encode an integer as signed LEB128."""
    out = bytearray()
    while True:
        b = x & 0x7F
        x >>= 7
        sign = b & 0x40
        last = (x == 0 and not sign) or (x == -1 and sign)
        if not last:
            b |= 0x80
        out.append(b)
        if last:
            return bytes(out)