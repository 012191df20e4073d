"""AMF3 encoding of Python values."""

from __future__ import annotations

import math
import struct
from datetime import datetime, timezone
from typing import Any, BinaryIO, Mapping, Sequence

from livemedia.amf.types import (
    AMF3_ARRAY_MARKER,
    AMF3_BYTEARRAY_MARKER,
    AMF3_DATE_MARKER,
    AMF3_DOUBLE_MARKER,
    AMF3_FALSE_MARKER,
    AMF3_INTEGER_MARKER,
    AMF3_INTEGER_MAX,
    AMF3_NULL_MARKER,
    AMF3_OBJECT_MARKER,
    AMF3_STRING_MARKER,
    AMF3_TRUE_MARKER,
    AMF3_UNDEFINED_MARKER,
    AmfError,
    TypedObject,
    write_marker,
)


def _write(writer: BinaryIO, data: bytes) -> int:
    writer.write(data)
    return len(data)


def _marker(writer: BinaryIO, encode_marker: bool, marker: int) -> int:
    if not encode_marker:
        return 0
    write_marker(writer, marker)
    return 1


class Amf3Encoder:
    """Encodes values in the AMF3 format; every method returns the bytes written."""

    def encode_amf3(self, writer: BinaryIO, value: Any) -> int:
        """Encode one value, choosing the AMF3 type from its Python type."""
        if value is None:
            return self.encode_amf3_null(writer, True)
        if isinstance(value, str):
            return self.encode_amf3_string(writer, value, True)
        if isinstance(value, bool):
            if value:
                return self.encode_amf3_true(writer, True)
            return self.encode_amf3_false(writer, True)
        if isinstance(value, int):
            if 0 <= value <= AMF3_INTEGER_MAX:
                return self.encode_amf3_integer(writer, value, True)
            return self.encode_amf3_double(writer, float(value), True)
        if isinstance(value, float):
            return self.encode_amf3_double(writer, value, True)
        if isinstance(value, (bytes, bytearray)):
            return self.encode_amf3_byte_array(writer, bytes(value), True)
        if isinstance(value, (list, tuple)):
            return self.encode_amf3_array(writer, value, True)
        if isinstance(value, Mapping):
            if not all(isinstance(key, str) for key in value):
                raise AmfError("encode amf3: unable to create object from map")
            return self.encode_amf3_object(writer, TypedObject(type="", object=dict(value)), True)
        if isinstance(value, datetime):
            return self.encode_amf3_date(writer, value, True)
        if isinstance(value, TypedObject):
            return self.encode_amf3_object(writer, value, True)
        raise AmfError(f"encode amf3: unsupported type {type(value).__name__}")

    def encode_amf3_undefined(self, writer: BinaryIO, encode_marker: bool) -> int:
        return _marker(writer, encode_marker, AMF3_UNDEFINED_MARKER)

    def encode_amf3_null(self, writer: BinaryIO, encode_marker: bool) -> int:
        return _marker(writer, encode_marker, AMF3_NULL_MARKER)

    def encode_amf3_false(self, writer: BinaryIO, encode_marker: bool) -> int:
        return _marker(writer, encode_marker, AMF3_FALSE_MARKER)

    def encode_amf3_true(self, writer: BinaryIO, encode_marker: bool) -> int:
        return _marker(writer, encode_marker, AMF3_TRUE_MARKER)

    def encode_amf3_integer(self, writer: BinaryIO, value: int, encode_marker: bool) -> int:
        """Encode an unsigned 29-bit integer."""
        n = _marker(writer, encode_marker, AMF3_INTEGER_MARKER)
        return n + self._encode_u29(writer, value)

    def encode_amf3_double(self, writer: BinaryIO, value: float, encode_marker: bool) -> int:
        n = _marker(writer, encode_marker, AMF3_DOUBLE_MARKER)
        return n + _write(writer, struct.pack(">d", value))

    def encode_amf3_string(self, writer: BinaryIO, value: str, encode_marker: bool) -> int:
        n = _marker(writer, encode_marker, AMF3_STRING_MARKER)
        return n + self._encode_utf8(writer, value)

    def encode_amf3_date(self, writer: BinaryIO, value: datetime, encode_marker: bool) -> int:
        """Encode a date with whole-second precision; naive datetimes count as UTC."""
        n = _marker(writer, encode_marker, AMF3_DATE_MARKER)
        write_marker(writer, 0x01)
        n += 1
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        millis = float(math.floor(value.timestamp())) * 1000.0
        return n + _write(writer, struct.pack(">d", millis))

    def encode_amf3_array(self, writer: BinaryIO, value: Sequence[Any], encode_marker: bool) -> int:
        """Encode a dense array."""
        n = _marker(writer, encode_marker, AMF3_ARRAY_MARKER)
        try:
            n += self._encode_u29(writer, (len(value) << 1) | 0x01)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode u29 for array: {exc}") from exc
        n += self._encode_utf8(writer, "")
        for item in value:
            try:
                n += self.encode_amf3(writer, item)
            except AmfError as exc:
                raise AmfError(f"amf3 encode: cannot encode array element: {exc}") from exc
        return n

    def encode_amf3_object(self, writer: BinaryIO, value: TypedObject, encode_marker: bool) -> int:
        """Encode a sealed object whose properties are written in sorted order."""
        n = _marker(writer, encode_marker, AMF3_OBJECT_MARKER)
        properties = sorted(value.object)
        header = 0x03 | (len(properties) << 4)
        try:
            n += self._encode_u29(writer, header)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode trait header for object: {exc}") from exc
        n += self._encode_utf8(writer, value.type)
        for prop in properties:
            n += self._encode_utf8(writer, prop)
        for prop in properties:
            try:
                n += self.encode_amf3(writer, value.object[prop])
            except AmfError as exc:
                raise AmfError(f"amf3 encode: cannot encode sealed object value: {exc}") from exc
        return n

    def encode_amf3_byte_array(self, writer: BinaryIO, value: bytes, encode_marker: bool) -> int:
        n = _marker(writer, encode_marker, AMF3_BYTEARRAY_MARKER)
        try:
            n += self._encode_u29(writer, (len(value) << 1) | 0x01)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode u29 for bytearray: {exc}") from exc
        return n + _write(writer, bytes(value))

    def _encode_utf8(self, writer: BinaryIO, value: str) -> int:
        data = value.encode("utf-8")
        try:
            n = self._encode_u29(writer, (len(data) << 1) | 0x01)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode u29 for string: {exc}") from exc
        return n + _write(writer, data)

    @staticmethod
    def _encode_u29(writer: BinaryIO, value: int) -> int:
        if value < 0 or value > 0x1FFFFFFF:
            raise AmfError(f"amf3 encode: cannot encode u29 with value {value} (out of range)")
        if value <= 0x7F:
            data = bytes((value,))
        elif value <= 0x3FFF:
            data = bytes(((value >> 7) | 0x80, value & 0x7F))
        elif value <= 0x1FFFFF:
            data = bytes(((value >> 14) | 0x80, ((value >> 7) & 0x7F) | 0x80, value & 0x7F))
        else:
            data = bytes(
                (
                    (value >> 22) | 0x80,
                    ((value >> 15) & 0x7F) | 0x80,
                    ((value >> 8) & 0x7F) | 0x80,
                    value & 0xFF,
                )
            )
        return _write(writer, data)