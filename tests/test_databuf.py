import pytest

from dwarfkit.databuf import DataBuf, DecodeError
from dwarfkit.leb128 import encode_signed, encode_unsigned


def test_uint8_reads_and_advances_offset():
    b = DataBuf("location", 10, b"\x23\x05")
    assert b.uint8() == 0x23
    assert b.off == 11
    assert b.uint8() == 0x05
    assert len(b) == 0


def test_uint8_underflow():
    b = DataBuf("location", 3, b"")
    with pytest.raises(DecodeError) as info:
        b.uint8()
    assert info.value.offset == 3
    assert info.value.err == "underflow"
    assert str(info.value).startswith("decoding dwarf section location at offset 0x3")


@pytest.mark.parametrize("value", [0, 1, 127, 128, 300, 0xFFFFFFFF])
def test_uint_round_trip(value):
    enc = encode_unsigned(value)
    b = DataBuf("info", 0, enc + b"\x01")
    assert b.uint() == value
    assert b.off == len(enc)
    assert b.data == b"\x01"


def test_varint_bits_match_bytes_consumed():
    enc = encode_unsigned(300)
    value, bits = DataBuf("info", 0, enc).varint()
    assert value == 300
    assert bits == 7 * len(enc)


def test_varint_without_terminator_consumes_nothing():
    b = DataBuf("info", 0, b"\x80\x80")
    assert b.varint() == (0, 0)
    assert b.data == b"\x80\x80"
    assert b.off == 0


@pytest.mark.parametrize("value", [0, 5, -1, -64, 63, 64, -129, 624485, -624485])
def test_int_round_trip(value):
    b = DataBuf("info", 0, encode_signed(value))
    assert b.int() == value
    b.assert_empty()
    assert len(b) == 0


def test_assert_empty_short_extra():
    b = DataBuf("location", 0, b"\x01\x02")
    with pytest.raises(DecodeError) as info:
        b.assert_empty()
    assert "unexpected extra data: 0102" in str(info.value)
    assert len(b) == 0


def test_assert_empty_long_extra_truncated():
    b = DataBuf("location", 0, bytes(range(1, 9)))
    with pytest.raises(DecodeError) as info:
        b.assert_empty()
    assert info.value.err.endswith("...")