"""Lookup of DWARF debug sections, with support for zlib-compressed ones."""

from __future__ import annotations

import zlib
from typing import Mapping

_ZLIB_MAGIC = b"ZLIB"
_HEADER_SIZE = 12


def decompress_maybe(data: bytes) -> bytes:
    """Decompress a ``ZLIB``-prefixed section; other data is returned unchanged.

    A compressed section starts with the magic ``ZLIB`` followed by the
    uncompressed length as a big endian 64-bit integer.
    """
    data = bytes(data)
    if len(data) < _HEADER_SIZE or data[:4] != _ZLIB_MAGIC:
        return data
    dlen = int.from_bytes(data[4:_HEADER_SIZE], "big")
    decompressor = zlib.decompressobj()
    try:
        out = decompressor.decompress(data[_HEADER_SIZE:], dlen)
    except zlib.error as exc:
        raise ValueError(f"invalid compressed section: {exc}") from exc
    if len(out) < dlen:
        raise ValueError(
            f"compressed section too short: expected {dlen} bytes, got {len(out)}"
        )
    return out[:dlen]


def get_debug_section(sections: Mapping[str, bytes], name: str, prefix: str = ".") -> bytes:
    """Contents of the debug section ``name`` from a name-to-bytes mapping.

    ``prefix`` is ``"."`` for ELF and PE files and ``"__"`` for Mach-O. When
    ``<prefix>debug_<name>`` is missing the compressed
    ``<prefix>zdebug_<name>`` is looked up and decompressed instead.
    """
    plain = sections.get(f"{prefix}debug_{name}")
    if plain is not None:
        return bytes(plain)
    compressed = sections.get(f"{prefix}zdebug_{name}")
    if compressed is None:
        raise LookupError(f"could not find .debug_{name} section")
    return decompress_maybe(compressed)