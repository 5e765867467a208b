"""Readers for DWARF debugging data: LEB128, line tables, location lists, debug_addr and DIE trees."""

__version__ = "0.1.0"