"""Parsing of .debug_line unit headers: prologue, directory and file tables."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from .bytereader import ByteReader
from .leb128 import decode_unsigned
from .lineforms import (
    DW_FORM_line_strp,
    DW_FORM_string,
    DW_LNCT_directory_index,
    DW_LNCT_path,
    DW_LNCT_size,
    DW_LNCT_timestamp,
    BufferUnderflowError,
    read_entry_format,
)

_MASK32 = (1 << 32) - 1

Logf = Callable[..., None]


def _no_log(fmt: str, *args: Any) -> None:
    pass


@dataclass
class DebugLinePrologue:
    """Header fields of a .debug_line unit."""

    unit_length: int = 0
    version: int = 0
    length: int = 0
    min_instr_length: int = 0
    max_op_per_instr: int = 0
    initial_is_stmt: int = 0
    line_base: int = 0
    line_range: int = 0
    opcode_base: int = 0
    std_op_lengths: bytes = b""


@dataclass
class FileEntry:
    """An entry of the file name table."""

    path: str = ""
    dir_idx: int = 0
    last_mod_time: int = 0
    length: int = 0


@dataclass(eq=False)
class DebugLineInfo:
    """One parsed .debug_line unit."""

    prologue: Optional[DebugLinePrologue] = None
    include_dirs: List[str] = field(default_factory=list)
    file_names: List[FileEntry] = field(default_factory=list)
    instructions: bytes = b""
    lookup: Dict[str, FileEntry] = field(default_factory=dict)
    logf: Logf = _no_log
    # state machines stopped at a pc, and after a pc, keyed by base pc
    state_machine_cache: Dict[int, Any] = field(default_factory=dict)
    last_machine_cache: Dict[int, Any] = field(default_factory=dict)
    debug_line_str: bytes = b""
    static_base: int = 0
    normalize_backslash: bool = False
    ptr_size: int = 8
    end_seq_is_valid: bool = False

    def default_file(self) -> str:
        """Path of file 1, the initial file of every sequence.

        DWARF 5 numbers the file table from 0, earlier versions from 1.
        """
        if self.prologue is None:
            raise ValueError("line table has no prologue")
        if self.prologue.version < 5 or len(self.file_names) == 1:
            return self.file_names[0].path
        return self.file_names[1].path


def _join_path(*elems: str) -> str:
    joined = "/".join(e for e in elems if e)
    if not joined:
        return ""
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def path_is_abs(s: str) -> bool:
    """True for a Unix absolute path or a path starting with a drive letter."""
    if s.startswith("/"):
        return True
    return len(s) >= 2 and s[1] == ":" and s[0].isascii() and s[0].isalpha()


def parse_all(
    data: bytes,
    debug_line_str: Optional[bytes] = None,
    logfn: Optional[Logf] = None,
    static_base: int = 0,
    normalize_backslash: bool = False,
    ptr_size: int = 8,
) -> List[DebugLineInfo]:
    """Parse every unit of a .debug_line section; units that fail are left out."""
    buf = ByteReader(data)
    lines: List[DebugLineInfo] = []
    while len(buf) > 0:
        info = parse("", buf, debug_line_str, logfn, static_base, normalize_backslash, ptr_size)
        if info is not None:
            lines.append(info)
    return lines


def parse(
    compdir: str,
    buf: Union[ByteReader, bytes],
    debug_line_str: Optional[bytes] = None,
    logfn: Optional[Logf] = None,
    static_base: int = 0,
    normalize_backslash: bool = False,
    ptr_size: int = 8,
) -> Optional[DebugLineInfo]:
    """Parse one .debug_line unit from ``buf``.

    ``compdir`` is the compile unit's DW_AT_comp_dir. Returns None (after
    logging) when the directory or file table is malformed; raises EOFError
    if the prologue itself is truncated.
    """
    if not isinstance(buf, ByteReader):
        buf = ByteReader(buf)
    dbl = DebugLineInfo(
        include_dirs=[compdir],
        logf=logfn if logfn is not None else _no_log,
        debug_line_str=bytes(debug_line_str or b""),
        static_base=static_base,
        normalize_backslash=normalize_backslash,
        ptr_size=ptr_size,
    )
    _parse_prologue(dbl, buf)
    assert dbl.prologue is not None
    if dbl.prologue.version >= 5:
        ok = _parse_include_dirs5(dbl, buf) and _parse_file_entries5(dbl, buf)
        ver_delta = 8
    else:
        ok = _parse_include_dirs2(dbl, buf) and _parse_file_entries2(dbl, buf)
        ver_delta = 6
    if not ok:
        return None

    # unit_length excludes itself; length excludes the version and header
    # length fields (and, in v5, the address and selector sizes).
    count = (dbl.prologue.unit_length - dbl.prologue.length - ver_delta) & _MASK32
    dbl.instructions = buf.next(count)
    return dbl


def _parse_prologue(dbl: DebugLineInfo, buf: ByteReader) -> None:
    p = DebugLinePrologue()
    p.unit_length = buf.read_uint(4, "little")
    p.version = buf.read_uint(2, "little")
    if p.version >= 5:
        dbl.ptr_size = buf.read_byte()  # address_size
        dbl.ptr_size += buf.read_byte()  # segment_selector_size
    p.length = buf.read_uint(4, "little")
    p.min_instr_length = buf.read_byte()
    p.max_op_per_instr = buf.read_byte() if p.version >= 4 else 1
    p.initial_is_stmt = buf.read_byte()
    line_base = buf.read_byte()
    p.line_base = line_base - 0x100 if line_base >= 0x80 else line_base
    p.line_range = buf.read_byte()
    p.opcode_base = buf.read_byte()
    n = (p.opcode_base - 1) & 0xFF
    raw = buf.next(n)
    p.std_op_lengths = raw if len(raw) == n else bytes(n)
    dbl.prologue = p


def _line_str(info: DebugLineInfo, offset: int) -> str:
    try:
        return ByteReader(info.debug_line_str[offset:]).read_cstring()
    except EOFError:
        return ""


def _parse_include_dirs2(info: DebugLineInfo, buf: ByteReader) -> bool:
    while True:
        try:
            directory = buf.read_cstring()
        except EOFError as exc:
            info.logf("error reading string: %s", exc)
            return False
        if not directory:
            return True
        info.include_dirs.append(directory)


def _parse_include_dirs5(info: DebugLineInfo, buf: ByteReader) -> bool:
    reader = read_entry_format(buf, info.logf)
    if reader is None:
        return False
    dir_count, _ = decode_unsigned(buf)
    info.include_dirs = []
    for _ in range(dir_count):
        reader.reset()
        try:
            while reader.next(buf):
                if reader.content_type != DW_LNCT_path:
                    continue
                if reader.form_code == DW_FORM_string:
                    info.include_dirs.append(reader.string)
                elif reader.form_code == DW_FORM_line_strp:
                    info.include_dirs.append(_line_str(info, reader.u64))
                else:
                    info.logf("unsupported string form %#x", reader.form_code)
        except BufferUnderflowError as exc:
            info.logf("error reading directory entries table: %s", exc)
            return False
    return True


def _parse_file_entries2(info: DebugLineInfo, buf: ByteReader) -> bool:
    while True:
        entry = read_file_entry(info, buf, True)
        if entry is None:
            return False
        if not entry.path:
            return True
        info.file_names.append(entry)
        info.lookup[entry.path] = entry


def read_file_entry(
    info: DebugLineInfo, buf: ByteReader, exit_on_empty_path: bool
) -> Optional[FileEntry]:
    """Read one DWARF 2-4 file table entry; None (after logging) on a bad string.

    With ``exit_on_empty_path`` an empty path ends the table and the entry is
    returned without reading its other fields.
    """
    entry = FileEntry()
    try:
        entry.path = buf.read_cstring()
    except EOFError as exc:
        info.logf("error reading file entry: %s", exc)
        return None
    if not entry.path and exit_on_empty_path:
        return entry

    if info.normalize_backslash:
        entry.path = entry.path.replace("\\", "/")

    entry.dir_idx, _ = decode_unsigned(buf)
    entry.last_mod_time, _ = decode_unsigned(buf)
    entry.length, _ = decode_unsigned(buf)
    if not path_is_abs(entry.path) and entry.dir_idx < len(info.include_dirs):
        entry.path = _join_path(info.include_dirs[entry.dir_idx], entry.path)
    return entry


def _parse_file_entries5(info: DebugLineInfo, buf: ByteReader) -> bool:
    reader = read_entry_format(buf, info.logf)
    if reader is None:
        return False
    file_count, _ = decode_unsigned(buf)
    info.file_names = []
    for _ in range(file_count):
        path = ""
        diridx = 0
        entry = FileEntry()
        reader.reset()
        try:
            while reader.next(buf):
                # the directory index only counts when it is the last field
                diridx = -1
                if reader.content_type == DW_LNCT_path:
                    if reader.form_code == DW_FORM_string:
                        path = reader.string
                    elif reader.form_code == DW_FORM_line_strp:
                        path = _line_str(info, reader.u64)
                    else:
                        info.logf("unsupported string form %#x", reader.form_code)
                elif reader.content_type == DW_LNCT_directory_index:
                    diridx = reader.u64
                elif reader.content_type == DW_LNCT_timestamp:
                    entry.last_mod_time = reader.u64
                elif reader.content_type == DW_LNCT_size:
                    entry.length = reader.u64
        except BufferUnderflowError as exc:
            info.logf("error reading file entries table: %s", exc)
            return False

        if 0 <= diridx < len(info.include_dirs):
            path = _join_path(info.include_dirs[diridx], path)
        if info.normalize_backslash:
            path = path.replace("\\", "/")
        entry.path = path
        info.file_names.append(entry)
        info.lookup[entry.path] = entry
    return True