import struct

import pytest

from dwarfkit.bytereader import ByteReader
from dwarfkit.leb128 import encode_unsigned
from dwarfkit.lineforms import (
    DW_FORM_line_strp,
    DW_FORM_string,
    DW_FORM_udata,
    DW_LNCT_directory_index,
    DW_LNCT_path,
)
from dwarfkit.lineparser import (
    DebugLineInfo,
    parse,
    parse_all,
    path_is_abs,
    read_file_entry,
)

STD_LENGTHS = bytes([0, 1, 1, 1, 1, 0, 0, 0, 1])


def _unit(version, tables, instructions=b"", line_base=-4, line_range=10, opcode_base=10):
    params = bytes([1])
    if version >= 4:
        params += bytes([1])
    params += bytes([1, line_base & 0xFF, line_range, opcode_base]) + STD_LENGTHS[: opcode_base - 1]
    header = params + tables
    head = struct.pack("<H", version)
    if version >= 5:
        head += bytes([8, 0])
    body = head + struct.pack("<I", len(header)) + header + instructions
    return struct.pack("<I", len(body)) + body


def _file2(path, dir_idx):
    return path + b"\0" + encode_unsigned(dir_idx) + encode_unsigned(0) + encode_unsigned(0)


def _v2_tables():
    return b"dir\0\0" + _file2(b"/abs/x.go", 0) + _file2(b"rel.go", 1) + b"\0"


def _fmt(*pairs):
    out = bytes([len(pairs)])
    for content, form in pairs:
        out += encode_unsigned(content) + encode_unsigned(form)
    return out


def test_prologue_v2():
    info = parse("comp", ByteReader(_unit(2, _v2_tables(), b"\x01\x02")))
    p = info.prologue
    assert p.version == 2
    assert p.min_instr_length == 1
    assert p.max_op_per_instr == 1
    assert p.initial_is_stmt == 1
    assert p.line_base == -4
    assert p.line_range == 10
    assert p.opcode_base == 10
    assert p.std_op_lengths == STD_LENGTHS
    assert info.instructions == b"\x01\x02"


def test_v2_tables_and_lookup():
    info = parse("comp", _unit(2, _v2_tables()))
    assert info.include_dirs == ["comp", "dir"]
    paths = [f.path for f in info.file_names]
    assert paths == ["/abs/x.go", "dir/rel.go"]
    assert info.lookup["dir/rel.go"] is info.file_names[1]
    assert info.file_names[1].dir_idx == 1
    assert info.default_file() == "/abs/x.go"


def test_v4_line_base_is_signed():
    info = parse("", _unit(4, b"\0" + _file2(b"/a.c", 0) + b"\0", line_base=-5, line_range=14))
    assert info.prologue.version == 4
    assert info.prologue.line_base == -5
    assert info.prologue.line_range == 14


def test_dir_index_out_of_range_keeps_path():
    info = parse("", _unit(2, b"\0" + _file2(b"rel.go", 5) + b"\0"))
    assert info.file_names[0].path == "rel.go"


def test_normalize_backslash():
    tables = b"\0" + _file2(b"sub\\f.go", 0) + b"\0"
    normalized = parse("", _unit(2, tables), normalize_backslash=True)
    raw = parse("", _unit(2, tables), normalize_backslash=False)
    assert normalized.file_names[0].path == "sub/f.go"
    assert raw.file_names[0].path == "sub\\f.go"


def test_v5_tables():
    tables = (
        _fmt((DW_LNCT_path, DW_FORM_string))
        + encode_unsigned(2)
        + b"/root\0sub\0"
        + _fmt((DW_LNCT_path, DW_FORM_string), (DW_LNCT_directory_index, DW_FORM_udata))
        + encode_unsigned(2)
        + b"main.go\0"
        + encode_unsigned(0)
        + b"x.go\0"
        + encode_unsigned(1)
    )
    info = parse("ignored", _unit(5, tables, b"\x07"), ptr_size=4)
    assert info.include_dirs == ["/root", "sub"]
    assert [f.path for f in info.file_names] == ["/root/main.go", "sub/x.go"]
    assert info.ptr_size == 8
    assert info.instructions == b"\x07"
    assert info.default_file() == "sub/x.go"


def test_v5_line_strp_and_single_file_default():
    tables = (
        _fmt((DW_LNCT_path, DW_FORM_line_strp))
        + encode_unsigned(1)
        + struct.pack("<I", 0)
        + _fmt((DW_LNCT_path, DW_FORM_string))
        + encode_unsigned(1)
        + b"f.go\0"
    )
    info = parse("", _unit(5, tables), debug_line_str=b"/strdir\0")
    assert info.include_dirs == ["/strdir"]
    assert info.file_names[0].path == "f.go"
    assert info.default_file() == "f.go"


def test_unterminated_include_dir_returns_none_and_logs():
    logs = []

    def logf(fmt, *args):
        logs.append(fmt % args)

    assert parse("", _unit(2, b"dir"), logfn=logf) is None
    assert any("error reading string" in line for line in logs)


def test_truncated_prologue_raises():
    with pytest.raises(EOFError):
        parse("", ByteReader(b"\x10\x00\x00\x00\x02"))


def test_parse_all_multiple_units():
    data = _unit(2, _v2_tables(), b"\x01") + _unit(4, _v2_tables(), b"\x02\x03")
    units = parse_all(data, None, None, 0, True, 8)
    assert len(units) == 2
    assert units[0].instructions == b"\x01"
    assert units[1].instructions == b"\x02\x03"
    assert units[1].include_dirs == ["", "dir"]


def test_read_file_entry_without_exit_reads_fields():
    info = DebugLineInfo(include_dirs=[])
    buf = ByteReader(b"\0" + bytes([0, 7, 9]))
    entry = read_file_entry(info, buf, False)
    assert entry.path == ""
    assert entry.last_mod_time == 7
    assert entry.length == 9
    assert len(buf) == 0


def test_read_file_entry_exit_on_empty_path():
    info = DebugLineInfo(include_dirs=[])
    buf = ByteReader(b"\0" + bytes([0, 7, 9]))
    entry = read_file_entry(info, buf, True)
    assert entry.path == ""
    assert len(buf) == 3


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/a", True),
        ("C:\\x", True),
        ("c:", True),
        ("a/b", False),
        ("", False),
        ("1:", False),
        ("c", False),
    ],
)
def test_path_is_abs(path, expected):
    assert path_is_abs(path) is expected