"""Location list readers for DWARF 2-4 (debug_loc) and DWARF 5 (debug_loclists)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from .bytereader import ByteReader, read_dwarf_length_version
from .debugaddr import DebugAddr
from .leb128 import decode_unsigned

_MAX64 = (1 << 64) - 1

_DW_LLE_END_OF_LIST = 0x0
_DW_LLE_BASE_ADDRESSX = 0x1
_DW_LLE_STARTX_ENDX = 0x2
_DW_LLE_STARTX_LENGTH = 0x3
_DW_LLE_OFFSET_PAIR = 0x4
_DW_LLE_DEFAULT_LOCATION = 0x5
_DW_LLE_BASE_ADDRESS = 0x6
_DW_LLE_START_END = 0x7
_DW_LLE_START_LENGTH = 0x8


class LoclistError(Exception):
    """Malformed or unreadable location list."""


@dataclass
class Entry:
    """One location list entry covering ``[low_pc, high_pc)``."""

    low_pc: int
    high_pc: int
    instr: Optional[bytes] = None

    def base_address_selection(self) -> bool:
        """True if ``high_pc`` is the new base for the following entries."""
        return self.low_pc == _MAX64


class Dwarf2Reader:
    """Location list reader for DWARF versions 2 through 4."""

    def __init__(self, data: Optional[bytes], ptr_size: int) -> None:
        self.data = data
        self.ptr_size = ptr_size
        self._cur = 0

    def empty(self) -> bool:
        """True if this reader has no data."""
        return self.data is None

    def seek(self, off: int) -> None:
        """Move to offset ``off``."""
        self._cur = off

    def _read(self, n: int) -> bytes:
        if self.data is None:
            raise LoclistError("no location list data")
        chunk = self.data[self._cur:self._cur + n]
        if len(chunk) < n:
            raise LoclistError(f"location list truncated at {self._cur:#x}")
        self._cur += n
        return bytes(chunk)

    def _one_addr(self) -> int:
        if self.ptr_size == 4:
            addr = int.from_bytes(self._read(4), "little")
            return _MAX64 if addr == 0xFFFFFFFF else addr
        if self.ptr_size == 8:
            return int.from_bytes(self._read(8), "little")
        raise ValueError("bad address size")

    def next(self) -> Optional[Entry]:
        """Read the next entry, or None at the end of the list."""
        low = self._one_addr()
        high = self._one_addr()
        if low == 0 and high == 0:
            return None
        entry = Entry(low, high)
        if entry.base_address_selection():
            return entry
        length = int.from_bytes(self._read(2), "little")
        entry.instr = self._read(length)
        return entry

    def find(
        self,
        off: int,
        static_base: int,
        base: int,
        pc: int,
        debug_addr: Optional[DebugAddr] = None,
    ) -> Optional[Entry]:
        """The entry of the list at ``off`` that covers ``pc``, or None."""
        self.seek(off)
        while (entry := self.next()) is not None:
            if entry.base_address_selection():
                base = (entry.high_pc + static_base) & _MAX64
                continue
            if (entry.low_pc + base) & _MAX64 <= pc < (entry.high_pc + base) & _MAX64:
                return entry
        return None


class Dwarf5Reader:
    """Location list reader for DWARF version 5 and later."""

    def __init__(self, data: bytes) -> None:
        _, dwarf64, _, byteorder = read_dwarf_length_version(data)
        hdr = 14 if dwarf64 else 6
        if len(data) < hdr + 2:
            raise LoclistError("truncated debug_loclists header")
        self.data = bytes(data)
        self.byteorder = byteorder
        self.ptr_size = (data[hdr] + data[hdr + 1]) & 0xFF

    def empty(self) -> bool:
        """True if this reader has no data."""
        return not self.data

    def find(
        self,
        off: int,
        static_base: int,
        base: int,
        pc: int,
        debug_addr: Optional[DebugAddr] = None,
    ) -> Optional[Entry]:
        """The entry of the list at ``off`` that covers ``pc``, or None.

        Falls back to the list's default location, if it has one.
        """
        walker = _LoclistWalker(self, debug_addr, off, base, static_base)
        for start, end, instr in walker.ranges():
            if start <= pc < end:
                return Entry(start, end, instr)
        if walker.default_instr is not None:
            return Entry(pc, (pc + 1) & _MAX64, walker.default_instr)
        return None


def new_dwarf5_reader(data: bytes) -> Optional[Dwarf5Reader]:
    """A reader for a debug_loclists section, or None if it is empty."""
    if not data:
        return None
    return Dwarf5Reader(data)


class _LoclistWalker:
    def __init__(
        self,
        rdr: Dwarf5Reader,
        debug_addr: Optional[DebugAddr],
        off: int,
        base: int,
        static_base: int,
    ) -> None:
        self._rdr = rdr
        self._debug_addr = debug_addr
        self._buf = ByteReader(rdr.data)
        self._buf.next(off)
        self._base = base
        self._static_base = static_base
        self.default_instr: Optional[bytes] = None

    def _addr(self, idx: int) -> int:
        if self._debug_addr is None:
            raise LoclistError("debug_addr section not present")
        return self._debug_addr.get(idx)

    def _uleb(self) -> int:
        value, _ = decode_unsigned(self._buf)
        return value

    def _raw(self) -> int:
        return self._buf.read_uint(self._rdr.ptr_size, self._rdr.byteorder)

    def _instr(self) -> bytes:
        return self._buf.next(self._uleb())

    def ranges(self) -> Iterator[Tuple[int, int, bytes]]:
        """Yield ``(start, end, instr)`` for every range entry of the list."""
        try:
            while True:
                opcode = self._buf.read_byte()
                if opcode == _DW_LLE_END_OF_LIST:
                    return
                if opcode == _DW_LLE_BASE_ADDRESSX:
                    self._base = (self._addr(self._uleb()) + self._static_base) & _MAX64
                elif opcode == _DW_LLE_STARTX_ENDX:
                    start_idx, end_idx = self._uleb(), self._uleb()
                    instr = self._instr()
                    yield self._addr(start_idx), self._addr(end_idx), instr
                elif opcode == _DW_LLE_STARTX_LENGTH:
                    start_idx, length = self._uleb(), self._uleb()
                    instr = self._instr()
                    start = self._addr(start_idx)
                    yield start, (start + length) & _MAX64, instr
                elif opcode == _DW_LLE_OFFSET_PAIR:
                    off1, off2 = self._uleb(), self._uleb()
                    instr = self._instr()
                    yield (self._base + off1) & _MAX64, (self._base + off2) & _MAX64, instr
                elif opcode == _DW_LLE_DEFAULT_LOCATION:
                    self.default_instr = self._instr()
                elif opcode == _DW_LLE_BASE_ADDRESS:
                    self._base = (self._raw() + self._static_base) & _MAX64
                elif opcode == _DW_LLE_START_END:
                    start, end = self._raw(), self._raw()
                    yield start, end, self._instr()
                elif opcode == _DW_LLE_START_LENGTH:
                    start = self._raw()
                    length = self._uleb()
                    instr = self._instr()
                    yield start, (start + length) & _MAX64, instr
                else:
                    raise LoclistError(f"unknown opcode {opcode:#x} at {self._buf.tell():#x}")
        except (EOFError, ValueError) as exc:
            raise LoclistError(str(exc)) from exc