"""The .debug_line state machine and the address/line queries built on it."""

from __future__ import annotations

import copy as _copymod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .bytereader import ByteReader
from .leb128 import decode_signed, decode_unsigned
from .lineparser import DebugLineInfo, FileEntry, read_file_entry

_MASK64 = (1 << 64) - 1

# Standard opcodes
DW_LNS_copy = 1
DW_LNS_advance_pc = 2
DW_LNS_advance_line = 3
DW_LNS_set_file = 4
DW_LNS_set_column = 5
DW_LNS_negate_stmt = 6
DW_LNS_set_basic_block = 7
DW_LNS_const_add_pc = 8
DW_LNS_fixed_advance_pc = 9
DW_LNS_prologue_end = 10
DW_LNS_epilogue_begin = 11
DW_LNS_set_isa = 12

# Extended opcodes
DW_LINE_end_sequence = 1
DW_LINE_set_address = 2
DW_LINE_define_file = 3
DW_LINE_set_discriminator = 4

# Opcodes below this value are dispatched as standard opcodes (0 is extended).
_KNOWN_OPCODES = DW_LNS_set_isa + 1


class NoSourceError(LookupError):
    """No line information is available."""

    def __init__(self, message: str = "no source available") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class Location:
    """A row of the line table."""

    file: str
    line: int
    address: int
    delta: int


@dataclass(frozen=True)
class PCStmt:
    """A PC address with its is_stmt flag."""

    pc: int
    stmt: bool


def _to_int8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value >= 0x80 else value


class StateMachine:
    """Runs the line number program of one .debug_line unit."""

    def __init__(self, dbl: DebugLineInfo, instructions: bytes, ptr_size: int) -> None:
        if dbl.prologue is None:
            raise ValueError("line table has no prologue")
        dbl.end_seq_is_valid = True
        self.dbl = dbl
        self.file = dbl.default_file() if dbl.file_names else ""
        self.line = 1
        self.address = dbl.static_base & _MASK64
        self.column = 0
        self.is_stmt = dbl.prologue.initial_is_stmt == 1
        self.isa = 0
        self.basic_block = False
        self.end_seq = False
        self.last_delta = 0
        self.prologue_end = False
        self.epilogue_begin = False
        # True when the current state is a row of the line table
        self.valid = False
        self.started = False
        self.defined_files: List[FileEntry] = []
        self.last_address = _MASK64
        self.last_file = ""
        self.last_line = 0
        self.ptr_size = ptr_size
        self._buf = ByteReader(bytes(instructions))

    def __repr__(self) -> str:
        return (
            f"StateMachine(address={self.address:#x}, file={self.file!r}, "
            f"line={self.line}, valid={self.valid})"
        )

    @property
    def location(self) -> Location:
        """The current row."""
        return Location(self.file, self.line, self.address, self.last_delta)

    def copy(self) -> "StateMachine":
        """An independent copy; running it does not affect this machine."""
        clone = _copymod.copy(self)
        clone._buf = ByteReader(self._buf.rest())
        clone.defined_files = list(self.defined_files)
        return clone

    def _default_file(self) -> str:
        return self.dbl.default_file() if self.dbl.file_names else ""

    def next(self) -> bool:
        """Execute one instruction; False once the program is exhausted."""
        prologue = self.dbl.prologue
        assert prologue is not None
        self.started = True
        if self.valid:
            self.last_address, self.last_file, self.last_line = (
                self.address,
                self.file,
                self.line,
            )
            # a new row was emitted, these flags only apply to it
            self.basic_block = False
            self.prologue_end = False
            self.epilogue_begin = False
        if self.end_seq:
            self.end_seq = False
            self.file = self._default_file()
            self.line = 1
            self.column = 0
            self.isa = 0
            self.is_stmt = prologue.initial_is_stmt == 1
            self.basic_block = False
            self.last_address = _MASK64
        if len(self._buf) == 0:
            return False
        b = self._buf.read_byte()
        if b < prologue.opcode_base:
            if b < _KNOWN_OPCODES:
                self.valid = False
                _STANDARD[b](self)
            else:
                # unimplemented standard opcode: skip its arguments
                nargs = prologue.std_op_lengths[b - 1]
                for _ in range(nargs):
                    decode_signed(self._buf)
                self.dbl.logf(
                    "unknown opcode %d(%#x), %d arguments, file %s, line %d, address %#x",
                    b, b, nargs, self.file, self.line, self.address,
                )
        else:
            self._special(b)
        return True

    def pc_to_line(self, pc: int) -> Optional[Tuple[str, int]]:
        """File and line of ``pc``, or of the closest preceding row.

        Returns None if ``pc`` is not covered by the rest of the program.
        """
        if not self.started and not self.next():
            return None
        if self.last_address > pc and self.last_address != _MASK64:
            return None
        while True:
            if self.valid:
                if self.address > pc and pc >= self.last_address:
                    return self.last_file, self.last_line
                if self.address == pc and not self.end_seq:
                    return self.file, self.line
            if not self.next():
                break
        if self.valid and not self.end_seq:
            return self.file, self.line
        return None

    def _uleb(self) -> int:
        return decode_unsigned(self._buf)[0]

    def _sleb(self) -> int:
        return decode_signed(self._buf)[0]

    def _special(self, opcode: int) -> None:
        prologue = self.dbl.prologue
        assert prologue is not None
        decoded = opcode - prologue.opcode_base
        self.last_delta = _to_int8(prologue.line_base + _to_int8(decoded % prologue.line_range))
        self.line += self.last_delta
        self.address = (
            self.address + (decoded // prologue.line_range) * prologue.min_instr_length
        ) & _MASK64
        self.valid = True

    def _extended(self) -> None:
        self._uleb()
        if len(self._buf) == 0:
            return
        handler = _EXTENDED.get(self._buf.read_byte())
        if handler is not None:
            handler(self)

    def _copy_row(self) -> None:
        self.valid = True

    def _advance_pc(self) -> None:
        prologue = self.dbl.prologue
        assert prologue is not None
        self.address = (self.address + self._uleb() * prologue.min_instr_length) & _MASK64

    def _advance_line(self) -> None:
        delta = self._sleb()
        self.line += delta
        self.last_delta = delta

    def _set_file(self) -> None:
        prologue = self.dbl.prologue
        assert prologue is not None
        i = self._uleb()
        if prologue.version < 5:
            # before DWARF 5 the file table is numbered from 1
            i = (i - 1) & _MASK64
        files = self.dbl.file_names
        if i < len(files):
            self.file = files[i].path
        else:
            j = i - len(files)
            self.file = self.defined_files[j].path if j < len(self.defined_files) else ""

    def _set_column(self) -> None:
        self.column = self._uleb()

    def _negate_stmt(self) -> None:
        self.is_stmt = not self.is_stmt

    def _set_basic_block(self) -> None:
        self.basic_block = True

    def _const_add_pc(self) -> None:
        prologue = self.dbl.prologue
        assert prologue is not None
        step = ((255 - prologue.opcode_base) & 0xFF) // prologue.line_range
        self.address = (self.address + step * prologue.min_instr_length) & _MASK64

    def _fixed_advance_pc(self) -> None:
        chunk = self._buf.next(2)
        if len(chunk) == 2:
            self.address = (self.address + int.from_bytes(chunk, "little")) & _MASK64

    def _prologue_end(self) -> None:
        self.prologue_end = True

    def _epilogue_begin(self) -> None:
        self.epilogue_begin = True

    def _set_isa(self) -> None:
        self.isa = self._uleb()

    def _end_sequence(self) -> None:
        self.end_seq = True
        self.valid = self.dbl.end_seq_is_valid

    def _set_address(self) -> None:
        addr = self._buf.read_uint(self.ptr_size, "little")
        self.address = (addr + self.dbl.static_base) & _MASK64

    def _define_file(self) -> None:
        entry = read_file_entry(self.dbl, self._buf, False)
        if entry is not None:
            self.defined_files.append(entry)

    def _set_discriminator(self) -> None:
        self._uleb()


_STANDARD: Dict[int, Callable[[StateMachine], None]] = {
    0: StateMachine._extended,
    DW_LNS_copy: StateMachine._copy_row,
    DW_LNS_advance_pc: StateMachine._advance_pc,
    DW_LNS_advance_line: StateMachine._advance_line,
    DW_LNS_set_file: StateMachine._set_file,
    DW_LNS_set_column: StateMachine._set_column,
    DW_LNS_negate_stmt: StateMachine._negate_stmt,
    DW_LNS_set_basic_block: StateMachine._set_basic_block,
    DW_LNS_const_add_pc: StateMachine._const_add_pc,
    DW_LNS_fixed_advance_pc: StateMachine._fixed_advance_pc,
    DW_LNS_prologue_end: StateMachine._prologue_end,
    DW_LNS_epilogue_begin: StateMachine._epilogue_begin,
    DW_LNS_set_isa: StateMachine._set_isa,
}

_EXTENDED: Dict[int, Callable[[StateMachine], None]] = {
    DW_LINE_end_sequence: StateMachine._end_sequence,
    DW_LINE_set_address: StateMachine._set_address,
    DW_LINE_define_file: StateMachine._define_file,
    DW_LINE_set_discriminator: StateMachine._set_discriminator,
}


def _new_machine(line_info: DebugLineInfo) -> StateMachine:
    return StateMachine(line_info, line_info.instructions, line_info.ptr_size)


def all_pcs_for_file_lines(
    line_info: Optional[DebugLineInfo], f: str, m: Dict[int, List[int]]
) -> Dict[int, List[int]]:
    """Append to ``m[line]`` every statement PC of file ``f`` for the lines that are keys of ``m``."""
    if line_info is None:
        return m
    last_addr = 0
    sm = _new_machine(line_info)
    while sm.next():
        if sm.address != last_addr and sm.is_stmt and sm.valid and sm.file == f:
            pcs = m.get(sm.line)
            if pcs is not None:
                pcs.append(sm.address)
                last_addr = sm.address
    return m


def all_pcs_between(
    line_info: Optional[DebugLineInfo],
    begin: int,
    end: int,
    exclude_file: str,
    exclude_line: int,
) -> List[int]:
    """Statement PCs in ``[begin, end]`` that are not at ``exclude_file:exclude_line``."""
    if line_info is None:
        raise NoSourceError()
    pcs: List[int] = []
    last_addr = 0
    sm = _new_machine(line_info)
    while sm.next():
        if not sm.valid:
            continue
        if sm.address > end and end >= sm.last_address:
            break
        if (
            begin <= sm.address <= end
            and sm.address > last_addr
            and sm.is_stmt
            and not sm.end_seq
            and (sm.file != exclude_file or sm.line != exclude_line)
        ):
            last_addr = sm.address
            pcs.append(sm.address)
    return pcs


def _state_machine_for_entry(line_info: DebugLineInfo, base_pc: int) -> StateMachine:
    sm = line_info.state_machine_cache.get(base_pc)
    if sm is None:
        sm = _new_machine(line_info)
        sm.pc_to_line(base_pc)
        line_info.state_machine_cache[base_pc] = sm
    return sm.copy()


def _state_machine_for(line_info: DebugLineInfo, base_pc: int, pc: int) -> StateMachine:
    if base_pc == 0:
        return _new_machine(line_info)
    # reuse the last machine for this function unless it is already past pc
    sm = line_info.last_machine_cache.get(base_pc)
    if sm is None or sm.last_address >= pc:
        sm = _state_machine_for_entry(line_info, base_pc)
        line_info.last_machine_cache[base_pc] = sm
    return sm


def pc_to_line(line_info: Optional[DebugLineInfo], base_pc: int, pc: int) -> Tuple[str, int]:
    """File and line for ``pc``; ``("", 0)`` if unknown.

    ``base_pc`` (normally the entry of the function holding ``pc``) keys the
    cache of state machines; 0 disables caching.
    """
    if line_info is None:
        return "", 0
    if base_pc > pc:
        raise ValueError(f"basePC after pc {base_pc:#x} {pc:#x}")
    result = _state_machine_for(line_info, base_pc, pc).pc_to_line(pc)
    return result if result is not None else ("", 0)


def line_to_pcs(line_info: Optional[DebugLineInfo], filename: str, lineno: int) -> List[PCStmt]:
    """All PCs associated with ``filename:lineno``."""
    if line_info is None:
        return []
    sm = _new_machine(line_info)
    result: List[PCStmt] = []
    while sm.next():
        if sm.line == lineno and sm.file == filename and sm.valid and not sm.end_seq:
            result.append(PCStmt(sm.address, sm.is_stmt))
    return result


def prologue_end_pc(
    line_info: Optional[DebugLineInfo], start: int, end: int
) -> Optional[Tuple[int, str, int]]:
    """``(pc, file, line)`` of the first prologue_end row in ``[start, end)``, or None."""
    if line_info is None:
        return None
    sm = _state_machine_for_entry(line_info, start)
    while True:
        if sm.valid:
            if sm.address >= end:
                return None
            if sm.prologue_end:
                return sm.address, sm.file, sm.line
        if not sm.next():
            return None


def first_stmt_for_line(
    line_info: Optional[DebugLineInfo], start: int, end: int
) -> Optional[Tuple[int, str, int]]:
    """``(pc, file, line)`` of the first statement in ``[start, end)`` for the line at ``start``."""
    if line_info is None:
        return None
    sm = _state_machine_for_entry(line_info, start)
    file: Optional[str] = None
    line = 0
    while True:
        if sm.valid:
            if sm.address >= end:
                return None
            if file is None:
                file, line = sm.file, sm.line
            if sm.is_stmt and sm.file == file and sm.line == line:
                return sm.address, sm.file, sm.line
        if not sm.next():
            return None


def first_file(line_info: DebugLineInfo) -> str:
    """File of the first row of the line table, or "" if there is none."""
    sm = _new_machine(line_info)
    while True:
        if sm.valid:
            return sm.file
        if not sm.next():
            return ""