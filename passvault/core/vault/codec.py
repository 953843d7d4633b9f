"""
Record Codec
============

Serializes the ordered record set to the flat payload that gets encrypted.

Payload Format (all integers big-endian uint32):
    MARKER:  length || UTF-16-BE code units of "CHECK"
    COUNT:   number of records
    RECORDS: COUNT x (source, login, password), each length || code units

Lengths count UTF-16 code units, not bytes. The marker carries no data;
it exists so a payload decrypted under the wrong key (or any format
drift) is rejected instead of producing garbage records.
"""

from __future__ import annotations

import codecs
import struct
from typing import Final, List, Sequence

from passvault.core.memory.secure_memory import (
    CODE_UNIT_SIZE,
    TEXT_ENCODING,
    TEXT_ERRORS,
    SecretText,
    utf16_length,
    write_utf16,
)
from passvault.core.memory.zeroization import secure_zero
from passvault.core.vault.record import Record

PAYLOAD_MARKER: Final[str] = "CHECK"

_U32: Final[struct.Struct] = struct.Struct(">I")
_FIELDS_PER_RECORD: Final[int] = 3
# Smallest encoded record: three empty length-prefixed fields
_MIN_RECORD_SIZE: Final[int] = _FIELDS_PER_RECORD * _U32.size


class FormatError(ValueError):
    """Raised when a payload does not have the expected structure."""
    pass


def _text_size(text: str) -> int:
    return _U32.size + utf16_length(text) * CODE_UNIT_SIZE


def _record_size(record: Record) -> int:
    return (
        _text_size(record.source)
        + _text_size(record.login)
        + _U32.size
        + record.password.code_units * CODE_UNIT_SIZE
    )


def _put_text(view: memoryview, offset: int, text: str) -> int:
    _U32.pack_into(view, offset, utf16_length(text))
    return write_utf16(text, view, offset + _U32.size)


def _put_units(view: memoryview, offset: int, units: memoryview) -> int:
    _U32.pack_into(view, offset, len(units) // CODE_UNIT_SIZE)
    offset += _U32.size
    view[offset:offset + len(units)] = units
    return offset + len(units)


def encode_records(records: Sequence[Record]) -> bytearray:
    """
    Encode records into a payload.

    The payload is sized up front and filled in place, so no discarded
    intermediate ever holds password code units. The caller must wipe the
    result once it has been encrypted.
    """
    size = _text_size(PAYLOAD_MARKER) + _U32.size + sum(map(_record_size, records))
    out = bytearray(size)
    try:
        with memoryview(out) as view:
            offset = _put_text(view, 0, PAYLOAD_MARKER)
            _U32.pack_into(view, offset, len(records))
            offset += _U32.size
            for record in records:
                offset = _put_text(view, offset, record.source)
                offset = _put_text(view, offset, record.login)
                with record.password.units() as units:
                    offset = _put_units(view, offset, units)
    except BaseException:
        secure_zero(out)
        raise
    return out


class _PayloadReader:
    """Bounds-checked cursor over a payload buffer."""

    __slots__ = ("_view", "_offset")

    def __init__(self, view: memoryview) -> None:
        self._view = view
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._view) - self._offset

    def _take(self, size: int) -> memoryview:
        if size > self.remaining:
            raise FormatError("Unexpected end of payload")
        chunk = self._view[self._offset:self._offset + size]
        self._offset += size
        return chunk

    def read_u32(self) -> int:
        return _U32.unpack(self._take(_U32.size))[0]

    def read_units(self) -> memoryview:
        return self._take(self.read_u32() * CODE_UNIT_SIZE)

    def read_text(self) -> str:
        try:
            return codecs.decode(self.read_units(), TEXT_ENCODING, TEXT_ERRORS)
        except UnicodeDecodeError as e:
            raise FormatError("Invalid UTF-16 text field") from e


def decode_records(data: bytes | bytearray) -> List[Record]:
    """
    Decode a payload back into records.

    Raises:
        FormatError: If the marker does not match, a field runs past the
            end of the buffer, or bytes are left over after the last record
    """
    records: List[Record] = []
    with memoryview(data) as view:
        reader = _PayloadReader(view)
        try:
            if reader.read_text() != PAYLOAD_MARKER:
                raise FormatError("Payload marker mismatch")

            count = reader.read_u32()
            if count * _MIN_RECORD_SIZE > reader.remaining:
                raise FormatError(f"Record count {count} exceeds payload size")

            for _ in range(count):
                source = reader.read_text()
                login = reader.read_text()
                password = SecretText.from_units(reader.read_units())
                records.append(Record(source, login, password))

            if reader.remaining:
                raise FormatError(f"{reader.remaining} trailing bytes after last record")
        except FormatError:
            for record in records:
                record.wipe()
            raise
    return records
