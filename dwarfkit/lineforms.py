"""Reading of the DWARF 5 entry formats used by the .debug_line header tables."""

from __future__ import annotations

from typing import Callable, List, Optional

from .bytereader import ByteReader
from .leb128 import decode_signed, decode_unsigned

DW_FORM_block = 0x09
DW_FORM_block1 = 0x0A
DW_FORM_block2 = 0x03
DW_FORM_block4 = 0x04
DW_FORM_data1 = 0x0B
DW_FORM_data2 = 0x05
DW_FORM_data4 = 0x06
DW_FORM_data8 = 0x07
DW_FORM_data16 = 0x1E
DW_FORM_flag = 0x0C
DW_FORM_line_strp = 0x1F
DW_FORM_sdata = 0x0D
DW_FORM_sec_offset = 0x17
DW_FORM_string = 0x08
DW_FORM_strp = 0x0E
DW_FORM_strx = 0x1A
DW_FORM_strx1 = 0x25
DW_FORM_strx2 = 0x26
DW_FORM_strx3 = 0x27
DW_FORM_strx4 = 0x28
DW_FORM_udata = 0x0F

DW_LNCT_path = 0x1
DW_LNCT_directory_index = 0x2
DW_LNCT_timestamp = 0x3
DW_LNCT_size = 0x4
DW_LNCT_MD5 = 0x5

# Marks a form code that was reported as unknown, so it is reported only once.
_SKIP_FORM = (1 << 64) - 1

Logf = Callable[..., None]


class BufferUnderflowError(ValueError):
    """The data ended in the middle of a value."""

    def __init__(self, message: str = "buffer underflow") -> None:
        super().__init__(message)


def _take(buf: ByteReader, n: int) -> bytes:
    if len(buf) < n:
        raise BufferUnderflowError()
    return buf.next(n)


class FormReader:
    """Reads the fields of one table entry, one (content type, form) pair at a time.

    After each successful ``next`` the decoded value is in ``u64``, ``i64``,
    ``string`` or ``block`` depending on the form.
    """

    def __init__(
        self,
        content_types: List[int],
        form_codes: List[int],
        logf: Optional[Logf] = None,
    ) -> None:
        self.logf = logf
        self.content_types = list(content_types)
        self.form_codes = list(form_codes)
        self.content_type = 0
        self.form_code = 0
        self.block = b""
        self.u64 = 0
        self.i64 = 0
        self.string = ""
        self._nexti = 0

    def reset(self) -> None:
        """Start again with the first field of the format."""
        self._nexti = 0

    def next(self, buf: ByteReader) -> bool:
        """Decode the next field from ``buf``; False once all fields are read.

        Raises BufferUnderflowError if ``buf`` ends inside the value.
        """
        if self._nexti >= len(self.content_types):
            return False
        self.content_type = self.content_types[self._nexti]
        self.form_code = self.form_codes[self._nexti]
        try:
            self._read_value(buf)
        except BufferUnderflowError:
            raise
        except (EOFError, ValueError) as exc:
            raise BufferUnderflowError(str(exc)) from exc
        self._nexti += 1
        return True

    def _read_block(self, buf: ByteReader, n: int) -> None:
        self.block = _take(buf, n)

    def _read_value(self, buf: ByteReader) -> None:
        form = self.form_code
        if form == DW_FORM_block:
            n, _ = decode_unsigned(buf)
            self._read_block(buf, n)
        elif form == DW_FORM_block1:
            self._read_block(buf, _take(buf, 1)[0])
        elif form == DW_FORM_block2:
            self._read_block(buf, int.from_bytes(_take(buf, 2), "little"))
        elif form == DW_FORM_block4:
            self._read_block(buf, int.from_bytes(_take(buf, 4), "little"))
        elif form in (DW_FORM_data1, DW_FORM_flag, DW_FORM_strx1):
            self.u64 = _take(buf, 1)[0]
        elif form in (DW_FORM_data2, DW_FORM_strx2):
            self.u64 = int.from_bytes(_take(buf, 2), "little")
        elif form in (
            DW_FORM_data4,
            DW_FORM_line_strp,
            DW_FORM_sec_offset,
            DW_FORM_strp,
            DW_FORM_strx4,
        ):
            self.u64 = int.from_bytes(_take(buf, 4), "little")
        elif form == DW_FORM_data8:
            self.u64 = int.from_bytes(_take(buf, 8), "little")
        elif form == DW_FORM_data16:
            self._read_block(buf, 16)
        elif form == DW_FORM_sdata:
            self.i64, _ = decode_signed(buf)
        elif form in (DW_FORM_udata, DW_FORM_strx):
            self.u64, _ = decode_unsigned(buf)
        elif form == DW_FORM_string:
            self.string = buf.read_cstring()
        elif form == DW_FORM_strx3:
            self.u64 = int.from_bytes(_take(buf, 3), "little")
        elif form == _SKIP_FORM:
            pass
        else:
            if self.logf is not None:
                self.logf("unknown form code %#x", form)
            self.form_codes[self._nexti] = _SKIP_FORM


def read_entry_format(buf: ByteReader, logf: Optional[Logf] = None) -> Optional[FormReader]:
    """Read an entry format description; None if ``buf`` is empty."""
    if len(buf) < 1:
        return None
    count = buf.read_byte()
    content_types: List[int] = []
    form_codes: List[int] = []
    for _ in range(count):
        content_types.append(decode_unsigned(buf)[0])
        form_codes.append(decode_unsigned(buf)[0])
    return FormReader(content_types, form_codes, logf)