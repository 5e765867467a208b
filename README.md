# dwarfkit

Pure-Python readers for DWARF debugging data. You hand it the raw bytes of
a debug section; it decodes them. Nothing outside the standard library is
needed.

## Modules

- `dwarfkit.leb128` — `encode_unsigned(x)` and `encode_signed(x)` return
  `bytes`; `decode_unsigned(buf)` and `decode_signed(buf)` read from a
  `ByteReader` and return `(value, bytes_read)`.
- `dwarfkit.bytereader` — `ByteReader`, a cursor over `bytes` with
  `read_byte`, `unread_byte`, `next(n)`, `read_cstring`,
  `read_uint(size, byteorder)`, `tell`, `seek`, `rest` and `len()`.
  `read_dwarf_length_version(data)` decodes a unit header prefix into
  `(length, dwarf64, version, byteorder)`.
- `dwarfkit.databuf` — `DataBuf`, a decoding buffer that tracks its section
  offset (`uint8`, `varint`, `uint`, `int`, `assert_empty`) and raises
  `DecodeError` on malformed data.
- `dwarfkit.debugaddr` — `parse_addr(data)` gives a `DebugAddrSection`
  (or `None` for empty data); `get_subsection(addr_base)` gives a
  `DebugAddr` whose `get(idx)` returns an address.
- `dwarfkit.loclist` — `Dwarf2Reader(data, ptr_size)` for `.debug_loc`
  (DWARF 2–4) and `new_dwarf5_reader(data)` / `Dwarf5Reader` for
  `.debug_loclists`. `find(off, static_base, base, pc, debug_addr)` returns
  the `Entry` (`low_pc`, `high_pc`, `instr`) covering `pc`, or `None`.
  The DWARF 5 reader falls back to the list's default location. Malformed
  lists raise `LoclistError`.
- `dwarfkit.lineforms` — `read_entry_format` and `FormReader` for the
  DWARF 5 directory and file table formats; truncated values raise
  `BufferUnderflowError`.
- `dwarfkit.lineparser` — `parse_all(data, ...)` parses every unit of a
  `.debug_line` section into `DebugLineInfo` objects (prologue, include
  directories, file table, instructions); `parse(compdir, buf, ...)` parses
  one unit. Also `read_file_entry`, `path_is_abs` and
  `DebugLineInfo.default_file`.
- `dwarfkit.statemachine` — `StateMachine` runs a unit's line program
  (`next`, `copy`, `pc_to_line`). Queries on a `DebugLineInfo`:
  `pc_to_line(info, base_pc, pc)` returning `(file, line)` (`("", 0)` if
  unknown), `line_to_pcs` returning `PCStmt` values, `all_pcs_between`
  (raises `NoSourceError` when given no line info),
  `all_pcs_for_file_lines`, `prologue_end_pc`, `first_stmt_for_line` and
  `first_file`.
- `dwarfkit.sections` — `decompress_maybe(data)` inflates `ZLIB`-prefixed
  section contents; `get_debug_section(sections, name, prefix)` looks up
  `<prefix>debug_<name>` in a name-to-bytes mapping, falling back to the
  compressed `<prefix>zdebug_<name>`. Use prefix `"."` for ELF/PE and
  `"__"` for Mach-O.
- `dwarfkit.tree` — `Entry`, `CompositeEntry`, `Offset` and `Tree`.
  `load_tree(off, reader, static_base)` builds a tree of DIEs from a reader
  object you supply (with `seek`, `next` and `ranges` methods), merging
  child ranges into parents and following abstract origins and
  specifications. Range helpers: `normalize_ranges`, `fuse_ranges`,
  `ranges_contains`, `range_contains`, and `Tree.contains_pc`.

## Example

```python
from dwarfkit import leb128
from dwarfkit.bytereader import ByteReader

data = leb128.encode_unsigned(624485)
assert data == bytes([0xE5, 0x8E, 0x26])
value, length = leb128.decode_unsigned(ByteReader(data))
assert (value, length) == (624485, 3)
```

```python
from dwarfkit.lineparser import parse_all
from dwarfkit.statemachine import pc_to_line

units = parse_all(debug_line_bytes, ptr_size=8)
file, line = pc_to_line(units[0], 0, 0x401000)
```

## What it does not do

- It does not parse call frame information (`.debug_frame`, `.eh_frame`)
  and cannot unwind stacks.
- It does not open executables: reading ELF, PE or Mach-O files and
  extracting their sections is left to the caller.
- It does not decode `.debug_info` into entries or read type descriptions;
  `load_tree` works on entries supplied by your own reader.
- There is no command-line tool.

## Tests

```
pip install -e .[test]
pytest
```