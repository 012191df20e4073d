"""AMF markers, value types and low-level stream helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List

AMF0 = 0x00
AMF3 = 0x03

AMF0_NUMBER_MARKER = 0x00
AMF0_BOOLEAN_MARKER = 0x01
AMF0_STRING_MARKER = 0x02
AMF0_OBJECT_MARKER = 0x03
AMF0_MOVIECLIP_MARKER = 0x04
AMF0_NULL_MARKER = 0x05
AMF0_UNDEFINED_MARKER = 0x06
AMF0_REFERENCE_MARKER = 0x07
AMF0_ECMA_ARRAY_MARKER = 0x08
AMF0_OBJECT_END_MARKER = 0x09
AMF0_STRICT_ARRAY_MARKER = 0x0A
AMF0_DATE_MARKER = 0x0B
AMF0_LONG_STRING_MARKER = 0x0C
AMF0_UNSUPPORTED_MARKER = 0x0D
AMF0_RECORDSET_MARKER = 0x0E
AMF0_XML_DOCUMENT_MARKER = 0x0F
AMF0_TYPED_OBJECT_MARKER = 0x10
AMF0_ACMPLUS_OBJECT_MARKER = 0x11

AMF0_BOOLEAN_FALSE = 0x00
AMF0_BOOLEAN_TRUE = 0x01
AMF0_STRING_MAX = 65535
AMF3_INTEGER_MAX = 536870911

AMF3_UNDEFINED_MARKER = 0x00
AMF3_NULL_MARKER = 0x01
AMF3_FALSE_MARKER = 0x02
AMF3_TRUE_MARKER = 0x03
AMF3_INTEGER_MARKER = 0x04
AMF3_DOUBLE_MARKER = 0x05
AMF3_STRING_MARKER = 0x06
AMF3_XMLDOC_MARKER = 0x07
AMF3_DATE_MARKER = 0x08
AMF3_ARRAY_MARKER = 0x09
AMF3_OBJECT_MARKER = 0x0A
AMF3_XMLSTRING_MARKER = 0x0B
AMF3_BYTEARRAY_MARKER = 0x0C

Array = List[Any]
Object = Dict[str, Any]


class AmfError(Exception):
    """Raised when AMF data cannot be encoded or decoded."""


@dataclass
class Trait:
    """Class description shared by AMF3 objects of the same type."""

    type: str = ""
    externalizable: bool = False
    dynamic: bool = False
    properties: List[str] = field(default_factory=list)


@dataclass
class TypedObject:
    """An object tagged with a class name."""

    type: str = ""
    object: Object = field(default_factory=dict)


def read_bytes(reader: BinaryIO, n: int) -> bytes:
    """Read exactly ``n`` bytes or raise :class:`AmfError`."""
    if n == 0:
        return b""
    data = reader.read(n)
    if not data:
        raise AmfError("EOF")
    if len(data) != n:
        raise AmfError(f"decode read bytes failed: expected {n} got {len(data)}")
    return data


def read_byte(reader: BinaryIO) -> int:
    return read_bytes(reader, 1)[0]


def read_marker(reader: BinaryIO) -> int:
    return read_byte(reader)


def write_byte(writer: BinaryIO, value: int) -> None:
    writer.write(bytes((value & 0xFF,)))


def write_marker(writer: BinaryIO, marker: int) -> None:
    write_byte(writer, marker)


def assert_marker(reader: BinaryIO, check_marker: bool, marker: int) -> None:
    """Consume one byte and check it equals ``marker`` when ``check_marker`` is set."""
    if not check_marker:
        return
    got = read_marker(reader)
    if got != marker:
        raise AmfError(f"decode assert marker failed: expected {marker} got {got}")


def dump_bytes(label: str, buf: bytes, size: int) -> None:
    """Print the first ``size`` bytes of ``buf`` in hex."""
    print(f"Dumping {label} ({size} bytes):")
    print("".join(f"0x{b:02x} " for b in buf[:size]))


def dump(label: str, value: Any) -> None:
    """Print ``value`` as indented JSON."""
    try:
        text = json.dumps(value, indent=2)
    except (TypeError, ValueError) as exc:
        raise AmfError(f"Error dumping {label}: {exc}") from exc
    print(f"Dumping {label}:\n{text}")