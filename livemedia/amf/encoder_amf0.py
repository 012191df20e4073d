"""AMF0 encoding of Python values, with version dispatch to AMF3."""

from __future__ import annotations

import struct
from typing import Any, BinaryIO, Mapping, Sequence

from livemedia.amf.encoder_amf3 import Amf3Encoder
from livemedia.amf.types import (
    AMF0,
    AMF0_ACMPLUS_OBJECT_MARKER,
    AMF0_BOOLEAN_FALSE,
    AMF0_BOOLEAN_MARKER,
    AMF0_BOOLEAN_TRUE,
    AMF0_ECMA_ARRAY_MARKER,
    AMF0_LONG_STRING_MARKER,
    AMF0_NULL_MARKER,
    AMF0_NUMBER_MARKER,
    AMF0_OBJECT_END_MARKER,
    AMF0_OBJECT_MARKER,
    AMF0_STRICT_ARRAY_MARKER,
    AMF0_STRING_MARKER,
    AMF0_STRING_MAX,
    AMF0_UNDEFINED_MARKER,
    AMF0_UNSUPPORTED_MARKER,
    AMF3,
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


class Encoder(Amf3Encoder):
    """Encoder for AMF0 values; AMF3 values are encoded by the inherited methods.

    Every method returns the number of bytes written.
    """

    def encode(self, writer: BinaryIO, value: Any, version: int) -> int:
        """Encode one value in the given AMF version (0 or 3)."""
        if version == AMF0:
            return self.encode_amf0(writer, value)
        if version == AMF3:
            return self.encode_amf3(writer, value)
        raise AmfError(f"encode amf: unsupported version {version}")

    def encode_batch(self, writer: BinaryIO, version: int, *args: Any) -> int:
        """Encode each value in turn in the given version."""
        return sum(self.encode(writer, value, version) for value in args)

    def encode_amf0(self, writer: BinaryIO, value: Any) -> int:
        """Encode one value, choosing the AMF0 type from its Python type."""
        if value is None:
            return self.encode_amf0_null(writer, True)
        if isinstance(value, str):
            if len(value.encode("utf-8")) <= AMF0_STRING_MAX:
                return self.encode_amf0_string(writer, value, True)
            return self.encode_amf0_long_string(writer, value, True)
        if isinstance(value, bool):
            return self.encode_amf0_boolean(writer, value, True)
        if isinstance(value, (int, float)):
            return self.encode_amf0_number(writer, float(value), True)
        if isinstance(value, (list, tuple, bytes, bytearray)):
            return self.encode_amf0_strict_array(writer, list(value), True)
        if isinstance(value, Mapping):
            if not all(isinstance(key, str) for key in value):
                raise AmfError("encode amf0: unable to create object from map")
            return self.encode_amf0_object(writer, value, True)
        if isinstance(value, TypedObject):
            raise AmfError("encode amf0: unsupported type typed object")
        raise AmfError(f"encode amf0: unsupported type {type(value).__name__}")

    def encode_amf0_number(self, writer: BinaryIO, value: float, encode_marker: bool) -> int:
        n = _marker(writer, encode_marker, AMF0_NUMBER_MARKER)
        return n + _write(writer, struct.pack(">d", value))

    def encode_amf0_boolean(self, writer: BinaryIO, value: bool, encode_marker: bool) -> int:
        n = _marker(writer, encode_marker, AMF0_BOOLEAN_MARKER)
        flag = AMF0_BOOLEAN_TRUE if value else AMF0_BOOLEAN_FALSE
        return n + _write(writer, bytes((flag,)))

    def encode_amf0_string(self, writer: BinaryIO, value: str, encode_marker: bool) -> int:
        """Encode a string of at most 65535 UTF-8 bytes."""
        n = _marker(writer, encode_marker, AMF0_STRING_MARKER)
        data = value.encode("utf-8")
        if len(data) > AMF0_STRING_MAX:
            raise AmfError(f"encode amf0: unable to encode string length: {len(data)} too long")
        n += _write(writer, struct.pack(">H", len(data)))
        return n + _write(writer, data)

    def encode_amf0_object(
        self, writer: BinaryIO, value: Mapping[str, Any], encode_marker: bool
    ) -> int:
        """Encode key/value pairs followed by the empty key and end marker."""
        n = _marker(writer, encode_marker, AMF0_OBJECT_MARKER)
        for key, item in value.items():
            try:
                n += self.encode_amf0_string(writer, key, False)
            except AmfError as exc:
                raise AmfError(f"encode amf0: unable to encode object key: {exc}") from exc
            try:
                n += self.encode_amf0(writer, item)
            except AmfError as exc:
                raise AmfError(f"encode amf0: unable to encode object value: {exc}") from exc
        n += self.encode_amf0_string(writer, "", False)
        write_marker(writer, AMF0_OBJECT_END_MARKER)
        return n + 1

    def encode_amf0_null(self, writer: BinaryIO, encode_marker: bool) -> int:
        return _marker(writer, encode_marker, AMF0_NULL_MARKER)

    def encode_amf0_undefined(self, writer: BinaryIO, encode_marker: bool) -> int:
        return _marker(writer, encode_marker, AMF0_UNDEFINED_MARKER)

    def encode_amf0_ecma_array(
        self, writer: BinaryIO, value: Mapping[str, Any], encode_marker: bool
    ) -> int:
        n = _marker(writer, encode_marker, AMF0_ECMA_ARRAY_MARKER)
        n += _write(writer, struct.pack(">I", len(value) & 0xFFFFFFFF))
        try:
            n += self.encode_amf0_object(writer, value, False)
        except AmfError as exc:
            raise AmfError(f"encode amf0: unable to encode ecma array object: {exc}") from exc
        return n

    def encode_amf0_strict_array(
        self, writer: BinaryIO, value: Sequence[Any], encode_marker: bool
    ) -> int:
        n = _marker(writer, encode_marker, AMF0_STRICT_ARRAY_MARKER)
        n += _write(writer, struct.pack(">I", len(value) & 0xFFFFFFFF))
        for item in value:
            try:
                n += self.encode_amf0(writer, item)
            except AmfError as exc:
                raise AmfError(
                    f"encode amf0: unable to encode strict array element: {exc}"
                ) from exc
        return n

    def encode_amf0_long_string(self, writer: BinaryIO, value: str, encode_marker: bool) -> int:
        n = _marker(writer, encode_marker, AMF0_LONG_STRING_MARKER)
        data = value.encode("utf-8")
        n += _write(writer, struct.pack(">I", len(data) & 0xFFFFFFFF))
        return n + _write(writer, data)

    def encode_amf0_unsupported(self, writer: BinaryIO, encode_marker: bool) -> int:
        return _marker(writer, encode_marker, AMF0_UNSUPPORTED_MARKER)

    def encode_amf0_amf3_marker(self, writer: BinaryIO) -> None:
        """Write the marker that switches the stream to AMF3."""
        write_marker(writer, AMF0_ACMPLUS_OBJECT_MARKER)