"""Trees of debug_info entries with address ranges and abstract origins resolved."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

ATTR_ABSTRACT_ORIGIN = 0x31
ATTR_SPECIFICATION = 0x47

Range = Tuple[int, int]


class Offset(int):
    """An offset into the debug_info section, as held by reference attributes."""

    def __repr__(self) -> str:
        return f"Offset({int(self):#x})"


@dataclass(eq=False)
class Entry:
    """A single debug_info entry (DIE)."""

    offset: int = 0
    tag: int = 0
    has_children: bool = False
    fields: Dict[int, Any] = field(default_factory=dict)

    def val(self, attr: int) -> Any:
        """Value of ``attr``, or None if the entry does not have it."""
        return self.fields.get(attr)

    def has(self, attr: int) -> bool:
        """True if the entry carries ``attr``."""
        return attr in self.fields


class CompositeEntry(list):
    """An entry followed by its abstract origins or specifications.

    Attributes are looked up in each entry in turn.
    """

    def val(self, attr: int) -> Any:
        """Value of ``attr`` from the first entry that has it, or None."""
        for entry in self:
            if entry.has(attr):
                return entry.val(attr)
        return None

    def has(self, attr: int) -> bool:
        """True if any of the entries carries ``attr``."""
        return any(entry.has(attr) for entry in self)


EntryLike = Union[Entry, CompositeEntry]


class _DieReader(Protocol):
    def seek(self, off: int) -> None: ...

    def next(self) -> Optional[Entry]: ...

    def ranges(self, entry: Entry) -> Sequence[Range]: ...


def _origin_or_specification(entry: Entry) -> Optional[int]:
    for attr in (ATTR_ABSTRACT_ORIGIN, ATTR_SPECIFICATION):
        value = entry.val(attr)
        if isinstance(value, Offset):
            return int(value)
    return None


def load_abstract_origin_and_specification(
    entry: Entry, reader: _DieReader
) -> Tuple[EntryLike, int]:
    """Combine ``entry`` with the chain of its abstract origins/specifications.

    Returns the combined entry and the offset of ``entry``. When a DIE has
    both, the abstract origin is followed.
    """
    ao = _origin_or_specification(entry)
    if ao is None or ao == entry.offset:
        return entry, entry.offset
    chain = CompositeEntry([entry])
    while True:
        reader.seek(ao)
        nxt = reader.next()
        if nxt is None:
            break
        chain.append(nxt)
        ao = _origin_or_specification(nxt)
        if ao is None or ao == entry.offset:
            break
    return chain, entry.offset


@dataclass(eq=False)
class Tree:
    """A DIE with its children and the address ranges it covers."""

    entry: Optional[EntryLike] = None
    tag: int = 0
    offset: int = 0
    ranges: List[Range] = field(default_factory=list)
    children: List["Tree"] = field(default_factory=list)

    def val(self, attr: int) -> Any:
        """Value of ``attr`` of the underlying entry, or None."""
        return None if self.entry is None else self.entry.val(attr)

    def contains_pc(self, pc: int) -> bool:
        """True if one of the ranges of this DIE contains ``pc``."""
        for start, end in self.ranges:
            if start > pc:
                return False
            if start <= pc < end:
                return True
        return False

    def _resolve_ranges(self, reader: _DieReader, static_base: int) -> None:
        assert isinstance(self.entry, Entry)
        own = [(lo + static_base, hi + static_base) for lo, hi in reader.ranges(self.entry)]
        self.ranges = normalize_ranges(own)
        for child in self.children:
            child._resolve_ranges(reader, static_base)
            self.ranges = fuse_ranges(self.ranges, child.ranges)

    def _resolve_origins(self, reader: _DieReader) -> None:
        assert isinstance(self.entry, Entry)
        self.entry, self.offset = load_abstract_origin_and_specification(self.entry, reader)
        for child in self.children:
            child._resolve_origins(reader)


def _to_tree(entry: Entry) -> Tree:
    return Tree(entry=entry, tag=entry.tag, offset=entry.offset)


def entry_to_tree(entry: Entry) -> Tree:
    """A tree for a single entry that has no children."""
    if entry.has_children:
        raise ValueError(
            f"entry_to_tree called on entry with children; use load_tree instead. entry: {entry!r}"
        )
    return _to_tree(entry)


def _load_children(entry: Entry, reader: _DieReader) -> List[Tree]:
    if not entry.has_children:
        return []
    children: List[Tree] = []
    while True:
        kid = reader.next()
        if kid is None:
            raise ValueError(f"unexpected end of entries below offset {entry.offset:#x}")
        if kid.tag == 0:
            return children
        child = _to_tree(kid)
        child.children = _load_children(kid, reader)
        children.append(child)


def load_tree(off: int, reader: Optional[_DieReader], static_base: int) -> Tree:
    """Load the tree of DIEs rooted at ``off``.

    Abstract origins are resolved and the ranges of children are merged
    into those of their parents.
    """
    if reader is None:
        raise ValueError("unable to load DWARF tree: no DWARF information present")
    reader.seek(off)
    entry = reader.next()
    if entry is None:
        raise ValueError(f"no entry at offset {off:#x}")
    root = _to_tree(entry)
    root.children = _load_children(entry, reader)
    root._resolve_ranges(reader, static_base)
    root._resolve_origins(reader)
    return root


def normalize_ranges(rngs: Sequence[Range]) -> List[Range]:
    """Sort ranges by start, drop empty ones and fuse overlapping ones."""
    valid = sorted((r for r in rngs if r[0] < r[1]), key=lambda r: r[0])
    out: List[List[int]] = []
    for start, end in valid:
        if out and start <= out[-1][1]:
            out[-1][1] = max(end, out[-1][1])
        else:
            out.append([start, end])
    return [(start, end) for start, end in out]


def fuse_ranges(rngs1: Sequence[Range], rngs2: Sequence[Range]) -> List[Range]:
    """Equivalent to ``normalize_ranges(rngs1 + rngs2)`` for normalized inputs."""
    if ranges_contains(rngs1, rngs2):
        return list(rngs1)
    return normalize_ranges(list(rngs1) + list(rngs2))


def ranges_contains(rngs1: Sequence[Range], rngs2: Sequence[Range]) -> bool:
    """True if ``rngs1`` covers every range of ``rngs2`` (both normalized)."""
    i = j = 0
    while True:
        if i >= len(rngs1):
            return False
        if j >= len(rngs2):
            return True
        if range_contains(rngs1[i], rngs2[j]):
            j += 1
        else:
            i += 1


def range_contains(a: Range, b: Range) -> bool:
    """True if range ``a`` contains range ``b``."""
    return a[0] <= b[0] and a[1] >= b[1]