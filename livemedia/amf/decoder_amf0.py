"""AMF0 decoding, with the AMF3 switch and version dispatch."""

from __future__ import annotations

import struct
from typing import Any, BinaryIO, List

from livemedia.amf.decoder_amf3 import Amf3Decoder
from livemedia.amf.types import (
    AMF0,
    AMF0_ACMPLUS_OBJECT_MARKER,
    AMF0_BOOLEAN_FALSE,
    AMF0_BOOLEAN_MARKER,
    AMF0_BOOLEAN_TRUE,
    AMF0_DATE_MARKER,
    AMF0_ECMA_ARRAY_MARKER,
    AMF0_LONG_STRING_MARKER,
    AMF0_MOVIECLIP_MARKER,
    AMF0_NULL_MARKER,
    AMF0_NUMBER_MARKER,
    AMF0_OBJECT_END_MARKER,
    AMF0_OBJECT_MARKER,
    AMF0_RECORDSET_MARKER,
    AMF0_REFERENCE_MARKER,
    AMF0_STRICT_ARRAY_MARKER,
    AMF0_STRING_MARKER,
    AMF0_TYPED_OBJECT_MARKER,
    AMF0_UNDEFINED_MARKER,
    AMF0_UNSUPPORTED_MARKER,
    AMF0_XML_DOCUMENT_MARKER,
    AMF3,
    AmfError,
    Array,
    Object,
    TypedObject,
    assert_marker,
    read_byte,
    read_bytes,
    read_marker,
)

_UNSUPPORTED = {
    AMF0_MOVIECLIP_MARKER: "movieclip",
    AMF0_REFERENCE_MARKER: "reference",
    AMF0_RECORDSET_MARKER: "recordset",
}


def _to_str(data: bytes) -> str:
    return data.decode("utf-8", errors="surrogateescape")


def _read_uint(reader: BinaryIO, fmt: str) -> int:
    return struct.unpack(fmt, read_bytes(reader, struct.calcsize(fmt)))[0]


class Decoder(Amf3Decoder):
    """Decoder for AMF0 values; AMF3 values are decoded by the inherited methods."""

    def __init__(self) -> None:
        super().__init__()
        self.ref_cache: List[Any] = []

    def decode(self, reader: BinaryIO, version: int) -> Any:
        """Decode one value of the given AMF version (0 or 3)."""
        if version == AMF0:
            return self.decode_amf0(reader)
        if version == AMF3:
            return self.decode_amf3(reader)
        raise AmfError(f"decode amf: unsupported version {version}")

    def decode_batch(self, reader: BinaryIO, version: int) -> List[Any]:
        """Decode values until one cannot be decoded; return those that could."""
        values: List[Any] = []
        while True:
            try:
                values.append(self.decode(reader, version))
            except AmfError:
                return values

    def decode_amf0(self, reader: BinaryIO) -> Any:
        """Decode one AMF0 value of any type."""
        marker = read_marker(reader)
        if marker in _UNSUPPORTED:
            raise AmfError(f"decode amf0: unsupported type {_UNSUPPORTED[marker]}")
        if marker == AMF0_ACMPLUS_OBJECT_MARKER:
            return self.decode_amf3(reader)
        routes = {
            AMF0_NUMBER_MARKER: self.decode_amf0_number,
            AMF0_BOOLEAN_MARKER: self.decode_amf0_boolean,
            AMF0_STRING_MARKER: self.decode_amf0_string,
            AMF0_OBJECT_MARKER: self.decode_amf0_object,
            AMF0_NULL_MARKER: self.decode_amf0_null,
            AMF0_UNDEFINED_MARKER: self.decode_amf0_undefined,
            AMF0_ECMA_ARRAY_MARKER: self.decode_amf0_ecma_array,
            AMF0_STRICT_ARRAY_MARKER: self.decode_amf0_strict_array,
            AMF0_DATE_MARKER: self.decode_amf0_date,
            AMF0_LONG_STRING_MARKER: self.decode_amf0_long_string,
            AMF0_UNSUPPORTED_MARKER: self.decode_amf0_unsupported,
            AMF0_XML_DOCUMENT_MARKER: self.decode_amf0_xml_document,
            AMF0_TYPED_OBJECT_MARKER: self.decode_amf0_typed_object,
        }
        route = routes.get(marker)
        if route is None:
            raise AmfError(f"decode amf0: unsupported type {marker}")
        return route(reader, False)

    def decode_amf0_number(self, reader: BinaryIO, decode_marker: bool) -> float:
        assert_marker(reader, decode_marker, AMF0_NUMBER_MARKER)
        try:
            return struct.unpack(">d", read_bytes(reader, 8))[0]
        except AmfError as exc:
            raise AmfError(f"amf0 decode: unable to read number: {exc}") from exc

    def decode_amf0_boolean(self, reader: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(reader, decode_marker, AMF0_BOOLEAN_MARKER)
        value = read_byte(reader)
        if value == AMF0_BOOLEAN_FALSE:
            return False
        if value == AMF0_BOOLEAN_TRUE:
            return True
        raise AmfError(f"decode amf0: unexpected value {value} for boolean")

    def decode_amf0_string(self, reader: BinaryIO, decode_marker: bool) -> str:
        assert_marker(reader, decode_marker, AMF0_STRING_MARKER)
        try:
            length = _read_uint(reader, ">H")
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode string length: {exc}") from exc
        try:
            return _to_str(read_bytes(reader, length))
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode string value: {exc}") from exc

    def decode_amf0_object(self, reader: BinaryIO, decode_marker: bool) -> Object:
        """Decode key/value pairs up to the empty key and end marker."""
        assert_marker(reader, decode_marker, AMF0_OBJECT_MARKER)
        result: Object = {}
        self.ref_cache.append(result)
        while True:
            key = self.decode_amf0_string(reader, False)
            if not key:
                try:
                    assert_marker(reader, True, AMF0_OBJECT_END_MARKER)
                except AmfError as exc:
                    raise AmfError(f"decode amf0: expected object end marker: {exc}") from exc
                return result
            try:
                result[key] = self.decode_amf0(reader)
            except AmfError as exc:
                raise AmfError(f"decode amf0: unable to decode object value: {exc}") from exc

    def decode_amf0_null(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF0_NULL_MARKER)
        return None

    def decode_amf0_undefined(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF0_UNDEFINED_MARKER)
        return None

    def decode_amf0_ecma_array(self, reader: BinaryIO, decode_marker: bool) -> Object:
        """Decode an associative array; its declared length is not relied on."""
        assert_marker(reader, decode_marker, AMF0_ECMA_ARRAY_MARKER)
        reader.read(4)
        try:
            return self.decode_amf0_object(reader, False)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode ecma array object: {exc}") from exc

    def decode_amf0_strict_array(self, reader: BinaryIO, decode_marker: bool) -> Array:
        assert_marker(reader, decode_marker, AMF0_STRICT_ARRAY_MARKER)
        try:
            length = _read_uint(reader, ">I")
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode strict array length: {exc}") from exc
        result: Array = []
        self.ref_cache.append(result)
        for _ in range(length):
            try:
                result.append(self.decode_amf0(reader))
            except AmfError as exc:
                raise AmfError(
                    f"decode amf0: unable to decode strict array object: {exc}"
                ) from exc
        return result

    def decode_amf0_date(self, reader: BinaryIO, decode_marker: bool) -> float:
        """Decode a date as its millisecond number; the time zone bytes are skipped."""
        assert_marker(reader, decode_marker, AMF0_DATE_MARKER)
        try:
            result = self.decode_amf0_number(reader, False)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode float in date: {exc}") from exc
        try:
            read_bytes(reader, 2)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to read 2 trail bytes in date: {exc}") from exc
        return result

    def decode_amf0_long_string(self, reader: BinaryIO, decode_marker: bool) -> str:
        assert_marker(reader, decode_marker, AMF0_LONG_STRING_MARKER)
        try:
            length = _read_uint(reader, ">I")
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode long string length: {exc}") from exc
        try:
            return _to_str(read_bytes(reader, length))
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode long string value: {exc}") from exc

    def decode_amf0_unsupported(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF0_UNSUPPORTED_MARKER)
        return None

    def decode_amf0_xml_document(self, reader: BinaryIO, decode_marker: bool) -> str:
        assert_marker(reader, decode_marker, AMF0_XML_DOCUMENT_MARKER)
        return self.decode_amf0_long_string(reader, False)

    def decode_amf0_typed_object(self, reader: BinaryIO, decode_marker: bool) -> TypedObject:
        assert_marker(reader, decode_marker, AMF0_TYPED_OBJECT_MARKER)
        result = TypedObject()
        self.ref_cache.append(result)
        try:
            result.type = self.decode_amf0_string(reader, False)
        except AmfError as exc:
            raise AmfError(
                f"decode amf0: typed object unable to determine type: {exc}"
            ) from exc
        try:
            result.object = self.decode_amf0_object(reader, False)
        except AmfError as exc:
            raise AmfError(
                f"decode amf0: typed object unable to determine object: {exc}"
            ) from exc
        return result