import struct

import pytest

from dwarfkit.bytereader import ByteReader, read_dwarf_length_version


def test_read_byte_sequence_and_eof():
    r = ByteReader(b"\x07\x09")
    assert r.read_byte() == 7
    assert r.read_byte() == 9
    assert len(r) == 0
    with pytest.raises(EOFError):
        r.read_byte()


def test_unread_byte_steps_back():
    r = ByteReader(b"\x05\x06")
    assert r.read_byte() == 5
    r.unread_byte()
    assert r.tell() == 0
    assert r.read_byte() == 5


def test_unread_at_start_fails():
    with pytest.raises(ValueError):
        ByteReader(b"\x01").unread_byte()


def test_next_returns_fewer_at_end():
    r = ByteReader(b"abc")
    assert r.next(2) == b"ab"
    assert r.next(10) == b"c"
    assert len(r) == 0
    assert r.next(1) == b""


def test_cstrings():
    r = ByteReader(b"abc\x00def\x00")
    assert r.read_cstring() == "abc"
    assert r.read_cstring() == "def"
    assert len(r) == 0


def test_unterminated_cstring():
    r = ByteReader(b"abc")
    with pytest.raises(EOFError):
        r.read_cstring()


@pytest.mark.parametrize("size", [1, 2, 4, 8])
@pytest.mark.parametrize("order", ["little", "big"])
def test_read_uint_round_trip(size, order):
    value = (1 << (8 * size)) - 3
    r = ByteReader(value.to_bytes(size, order) + b"\xaa")
    assert r.read_uint(size, order) == value
    assert r.rest() == b"\xaa"


def test_read_uint_unsupported_size():
    with pytest.raises(ValueError):
        ByteReader(b"\x00" * 8).read_uint(3)


def test_read_uint_short():
    with pytest.raises(EOFError):
        ByteReader(b"\x00\x00").read_uint(4)


def test_seek_and_tell():
    r = ByteReader(b"0123456789")
    r.seek(4)
    assert r.tell() == 4
    assert r.rest() == b"456789"
    with pytest.raises(ValueError):
        r.seek(11)


def test_initial_offset():
    r = ByteReader(b"xyz", 1)
    assert r.rest() == b"yz"


def test_length_version_little():
    data = struct.pack("<IH", 0x1234, 5) + b"\x08\x00"
    assert read_dwarf_length_version(data) == (0x1234, False, 5, "little")


def test_length_version_big():
    data = struct.pack(">IH", 16, 4)
    assert read_dwarf_length_version(data) == (16, False, 4, "big")


def test_length_version_dwarf64():
    data = struct.pack("<IQH", 0xFFFFFFFF, 100, 5)
    assert read_dwarf_length_version(data) == (100, True, 5, "little")


def test_length_version_short_data():
    assert read_dwarf_length_version(b"\x01") == (0, False, 0, "little")