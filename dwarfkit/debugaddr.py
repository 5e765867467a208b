"""The DWARFv5 debug_addr section."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .bytereader import ByteOrder, ByteReader, read_dwarf_length_version


@dataclass(frozen=True)
class DebugAddrSection:
    """A parsed debug_addr section."""

    byteorder: ByteOrder
    ptr_size: int
    data: bytes

    def get_subsection(self, addr_base: int) -> "DebugAddr":
        """The part of the section that starts at ``addr_base``."""
        return DebugAddr(self, addr_base)


@dataclass(frozen=True)
class DebugAddr:
    """A debug_addr subsection with a fixed base."""

    section: DebugAddrSection
    addr_base: int

    def get(self, idx: int) -> int:
        """The address at index ``idx`` from the base."""
        off = idx * self.section.ptr_size + self.addr_base
        reader = ByteReader(self.section.data[off:])
        return reader.read_uint(self.section.ptr_size, self.section.byteorder)


def parse_addr(data: bytes) -> Optional[DebugAddrSection]:
    """Parse the header of a debug_addr section; None if the section is empty."""
    if not data:
        return None
    _, dwarf64, _, byteorder = read_dwarf_length_version(data)
    hdr = 14 if dwarf64 else 6
    if len(data) < hdr + 2:
        raise ValueError("truncated debug_addr header")
    ptr_size = (data[hdr] + data[hdr + 1]) & 0xFF
    return DebugAddrSection(byteorder, ptr_size, bytes(data))