import zlib

import pytest

from dwarfkit.sections import decompress_maybe, get_debug_section


def _compressed(payload: bytes) -> bytes:
    return b"ZLIB" + len(payload).to_bytes(8, "big") + zlib.compress(payload)


def test_uncompressed_data_is_unchanged():
    data = b"\x01\x02\x03 some plain section data"
    assert decompress_maybe(data) == data


def test_short_data_is_unchanged_even_with_magic():
    assert decompress_maybe(b"ZLIB\x00\x00") == b"ZLIB\x00\x00"


def test_compressed_round_trip():
    payload = bytes(range(256)) * 4
    assert decompress_maybe(_compressed(payload)) == payload


def test_truncated_stream_raises():
    payload = b"abcdefgh" * 10
    header = b"ZLIB" + (len(payload) + 50).to_bytes(8, "big")
    with pytest.raises(ValueError):
        decompress_maybe(header + zlib.compress(payload))


def test_corrupt_stream_raises():
    with pytest.raises(ValueError):
        decompress_maybe(b"ZLIB" + (10).to_bytes(8, "big") + b"not zlib data")


def test_plain_section_preferred():
    sections = {".debug_line": b"plain", ".zdebug_line": _compressed(b"other")}
    assert get_debug_section(sections, "line") == b"plain"


def test_falls_back_to_compressed_section():
    payload = b"line program bytes"
    sections = {".zdebug_line": _compressed(payload)}
    assert get_debug_section(sections, "line") == payload


def test_macho_prefix():
    sections = {"__debug_info": b"info", ".debug_info": b"wrong"}
    assert get_debug_section(sections, "info", "__") == b"info"


def test_missing_section_raises():
    with pytest.raises(LookupError, match="could not find .debug_frame section"):
        get_debug_section({".debug_line": b""}, "frame")