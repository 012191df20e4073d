"""AMF3 decoding, including the Flex externalizable message types."""

from __future__ import annotations

import struct
from datetime import datetime, timezone
from typing import Any, BinaryIO, Callable, Dict, List, Sequence, Tuple

from livemedia.amf.types import (
    AMF3_ARRAY_MARKER,
    AMF3_BYTEARRAY_MARKER,
    AMF3_DATE_MARKER,
    AMF3_DOUBLE_MARKER,
    AMF3_FALSE_MARKER,
    AMF3_INTEGER_MARKER,
    AMF3_NULL_MARKER,
    AMF3_OBJECT_MARKER,
    AMF3_STRING_MARKER,
    AMF3_TRUE_MARKER,
    AMF3_UNDEFINED_MARKER,
    AMF3_XMLDOC_MARKER,
    AMF3_XMLSTRING_MARKER,
    AmfError,
    Array,
    Object,
    Trait,
    assert_marker,
    read_byte,
    read_bytes,
    read_marker,
)

ExternalHandler = Callable[["Amf3Decoder", BinaryIO], Any]

_ABSTRACT_MESSAGE_FIELDS = (
    ("body", "clientId", "destination", "headers", "messageId", "timeStamp", "timeToLive"),
    ("clientIdBytes", "messageIdBytes"),
)
_ASYNC_MESSAGE_FIELDS = (("correlationId", "correlationIdBytes"),)
_ARRAY_COLLECTION = "flex.messaging.io.ArrayCollection"


def _to_str(data: bytes) -> str:
    return data.decode("utf-8", errors="surrogateescape")


def _read_flags(reader: BinaryIO) -> List[int]:
    flags: List[int] = []
    while True:
        try:
            flag = read_byte(reader)
        except AmfError as exc:
            raise AmfError(f"unable to read flags: {exc}") from exc
        flags.append(flag)
        if not flag & 0x80:
            return flags


class Amf3Decoder:
    """Stateful AMF3 decoder keeping the string, object and trait reference tables."""

    def __init__(self) -> None:
        self.string_refs: List[str] = []
        self.object_refs: List[Any] = []
        self.trait_refs: List[Trait] = []
        self.external_handlers: Dict[str, ExternalHandler] = {}

    def register_external_handler(self, name: str, handler: ExternalHandler) -> None:
        """Register a decoder for an externalizable class name."""
        self.external_handlers[name] = handler

    def decode_amf3(self, reader: BinaryIO) -> Any:
        """Decode one AMF3 value of any type."""
        marker = read_marker(reader)
        routes = {
            AMF3_UNDEFINED_MARKER: self.decode_amf3_undefined,
            AMF3_NULL_MARKER: self.decode_amf3_null,
            AMF3_FALSE_MARKER: self.decode_amf3_false,
            AMF3_TRUE_MARKER: self.decode_amf3_true,
            AMF3_INTEGER_MARKER: self.decode_amf3_integer,
            AMF3_DOUBLE_MARKER: self.decode_amf3_double,
            AMF3_STRING_MARKER: self.decode_amf3_string,
            AMF3_XMLDOC_MARKER: self.decode_amf3_xml,
            AMF3_DATE_MARKER: self.decode_amf3_date,
            AMF3_ARRAY_MARKER: self.decode_amf3_array,
            AMF3_OBJECT_MARKER: self.decode_amf3_object,
            AMF3_XMLSTRING_MARKER: self.decode_amf3_xml,
            AMF3_BYTEARRAY_MARKER: self.decode_amf3_byte_array,
        }
        route = routes.get(marker)
        if route is None:
            raise AmfError(f"decode amf3: unsupported type {marker}")
        return route(reader, False)

    def decode_amf3_undefined(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF3_UNDEFINED_MARKER)
        return None

    def decode_amf3_null(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF3_NULL_MARKER)
        return None

    def decode_amf3_false(self, reader: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(reader, decode_marker, AMF3_FALSE_MARKER)
        return False

    def decode_amf3_true(self, reader: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(reader, decode_marker, AMF3_TRUE_MARKER)
        return True

    def decode_amf3_integer(self, reader: BinaryIO, decode_marker: bool) -> int:
        """Decode a signed 29-bit integer."""
        assert_marker(reader, decode_marker, AMF3_INTEGER_MARKER)
        u29 = self.decode_u29(reader)
        if u29 > 0xFFFFFFF:
            return u29 - 0x20000000
        return u29

    def decode_amf3_double(self, reader: BinaryIO, decode_marker: bool) -> float:
        assert_marker(reader, decode_marker, AMF3_DOUBLE_MARKER)
        try:
            data = read_bytes(reader, 8)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read double: {exc}") from exc
        return struct.unpack(">d", data)[0]

    def decode_amf3_string(self, reader: BinaryIO, decode_marker: bool) -> str:
        assert_marker(reader, decode_marker, AMF3_STRING_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(reader)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode string reference and length: {exc}") from exc
        if is_ref:
            return self._lookup(self.string_refs, ref_val, "string")
        try:
            result = _to_str(read_bytes(reader, ref_val))
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read string: {exc}") from exc
        if result:
            self.string_refs.append(result)
        return result

    def decode_amf3_date(self, reader: BinaryIO, decode_marker: bool) -> datetime:
        """Decode a date; sub-second precision is discarded."""
        assert_marker(reader, decode_marker, AMF3_DATE_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(reader)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode date reference and length: {exc}") from exc
        if is_ref:
            ref = self._lookup(self.object_refs, ref_val, "object")
            if not isinstance(ref, datetime):
                raise AmfError("amf3 decode: unable to extract time from date object references")
            return ref
        try:
            millis = struct.unpack(">d", read_bytes(reader, 8))[0]
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read double: {exc}") from exc
        result = datetime.fromtimestamp(int(millis / 1000), tz=timezone.utc)
        self.object_refs.append(result)
        return result

    def decode_amf3_array(self, reader: BinaryIO, decode_marker: bool) -> Array:
        """Decode a dense array; associative arrays are rejected."""
        assert_marker(reader, decode_marker, AMF3_ARRAY_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(reader)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode array reference and length: {exc}") from exc
        if is_ref:
            ref = self._lookup(self.object_refs, ref_val >> 1, "object")
            if not isinstance(ref, list):
                raise AmfError("amf3 decode: unable to extract array from object references")
            return ref
        try:
            key = self.decode_amf3_string(reader, False)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read key for array: {exc}") from exc
        if key:
            raise AmfError("amf3 decode: array key is not empty, can't handle associative array")
        result: Array = []
        for _ in range(ref_val):
            try:
                result.append(self.decode_amf3(reader))
            except AmfError as exc:
                raise AmfError(f"amf3 decode: array element could not be decoded: {exc}") from exc
        self.object_refs.append(result)
        return result

    def decode_amf3_object(self, reader: BinaryIO, decode_marker: bool) -> Any:
        """Decode a sealed, dynamic or externalizable object."""
        assert_marker(reader, decode_marker, AMF3_OBJECT_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(reader)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode object reference and length: {exc}") from exc
        if is_ref:
            return self._lookup(self.object_refs, ref_val >> 1, "object")

        if ref_val & 0x01 == 0:
            trait = self._lookup(self.trait_refs, ref_val >> 1, "trait")
        else:
            trait = self._read_trait(reader, ref_val)
            self.trait_refs.append(trait)

        slot = len(self.object_refs)
        self.object_refs.append(None)

        if trait.externalizable:
            result = self._decode_externalizable(reader, trait.type)
        else:
            result = self._decode_object_body(reader, trait)
        self.object_refs[slot] = result
        return result

    def decode_amf3_xml(self, reader: BinaryIO, decode_marker: bool) -> str:
        if decode_marker:
            marker = read_marker(reader)
            if marker not in (AMF3_XMLDOC_MARKER, AMF3_XMLSTRING_MARKER):
                raise AmfError(
                    "decode assert marker failed: expected "
                    f"{AMF3_XMLDOC_MARKER} or {AMF3_XMLSTRING_MARKER}, got {marker}"
                )
        try:
            is_ref, ref_val = self._decode_reference_int(reader)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode xml reference and length: {exc}") from exc
        if is_ref:
            ref = self._lookup(self.object_refs, ref_val, "object")
            if not isinstance(ref, str):
                raise AmfError("amf3 decode: cannot coerce object reference into xml string")
            return ref
        try:
            result = _to_str(read_bytes(reader, ref_val))
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read xml string: {exc}") from exc
        if result:
            self.object_refs.append(result)
        return result

    def decode_amf3_byte_array(self, reader: BinaryIO, decode_marker: bool) -> bytes:
        assert_marker(reader, decode_marker, AMF3_BYTEARRAY_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(reader)
        except AmfError as exc:
            raise AmfError(
                f"amf3 decode: unable to decode byte array reference and length: {exc}"
            ) from exc
        if is_ref:
            ref = self._lookup(self.object_refs, ref_val, "object")
            if not isinstance(ref, bytes):
                raise AmfError("amf3 decode: unable to convert object ref to bytes")
            return ref
        try:
            result = read_bytes(reader, ref_val)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read bytearray: {exc}") from exc
        self.object_refs.append(result)
        return result

    def decode_u29(self, reader: BinaryIO) -> int:
        """Decode a variable-length unsigned 29-bit integer."""
        result = 0
        for _ in range(3):
            byte = read_byte(reader)
            result = (result << 7) + (byte & 0x7F)
            if not byte & 0x80:
                return result
        return (result << 8) + read_byte(reader)

    def _decode_reference_int(self, reader: BinaryIO) -> Tuple[bool, int]:
        try:
            u29 = self.decode_u29(reader)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode reference int: {exc}") from exc
        return u29 & 0x01 == 0, u29 >> 1

    @staticmethod
    def _lookup(table: Sequence[Any], index: int, kind: str) -> Any:
        if index >= len(table):
            raise AmfError(f"amf3 decode: bad {kind} reference {index} (current length {len(table)})")
        return table[index]

    def _read_trait(self, reader: BinaryIO, ref_val: int) -> Trait:
        trait = Trait(
            externalizable=bool(ref_val & 0x02),
            dynamic=bool(ref_val & 0x04),
        )
        try:
            trait.type = self.decode_amf3_string(reader, False)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read trait type for object: {exc}") from exc
        for _ in range(ref_val >> 3):
            try:
                trait.properties.append(self.decode_amf3_string(reader, False))
            except AmfError as exc:
                raise AmfError(
                    f"amf3 decode: unable to read trait property for object: {exc}"
                ) from exc
        return trait

    def _decode_externalizable(self, reader: BinaryIO, type_name: str) -> Any:
        if type_name == "DSA":
            try:
                return self._decode_async_message(reader)
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to decode dsa: {exc}") from exc
        if type_name == "DSK":
            try:
                return self._decode_acknowledge_message(reader)
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to decode dsk: {exc}") from exc
        if type_name == _ARRAY_COLLECTION:
            try:
                result = self.decode_amf3(reader)
            except AmfError as exc:
                raise AmfError(
                    f"amf3 decode: unable to decode ac: cannot decode child of array collection: {exc}"
                ) from exc
            self.object_refs.append(result)
            return result
        handler = self.external_handlers.get(type_name)
        if handler is None:
            raise AmfError(f"amf3 decode: unable to decode external type {type_name}, no handler")
        try:
            return handler(self, reader)
        except AmfError as exc:
            raise AmfError(
                f"amf3 decode: unable to call external decoder for type {type_name}: {exc}"
            ) from exc

    def _decode_object_body(self, reader: BinaryIO, trait: Trait) -> Object:
        obj: Object = {}
        for key in trait.properties:
            try:
                obj[key] = self.decode_amf3(reader)
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to decode object property: {exc}") from exc
        if trait.dynamic:
            while True:
                try:
                    key = self.decode_amf3_string(reader, False)
                except AmfError as exc:
                    raise AmfError(f"amf3 decode: unable to decode dynamic key: {exc}") from exc
                if not key:
                    break
                try:
                    obj[key] = self.decode_amf3(reader)
                except AmfError as exc:
                    raise AmfError(f"amf3 decode: unable to decode dynamic value: {exc}") from exc
        return obj

    def _decode_abstract_message(self, reader: BinaryIO) -> Object:
        result: Object = {}
        try:
            self._decode_external(reader, result, *_ABSTRACT_MESSAGE_FIELDS)
        except AmfError as exc:
            raise AmfError(f"unable to decode abstract external: {exc}") from exc
        return result

    def _decode_async_message(self, reader: BinaryIO) -> Object:
        try:
            result = self._decode_abstract_message(reader)
        except AmfError as exc:
            raise AmfError(f"unable to decode abstract for async: {exc}") from exc
        try:
            self._decode_external(reader, result, *_ASYNC_MESSAGE_FIELDS)
        except AmfError as exc:
            raise AmfError(f"unable to decode async external: {exc}") from exc
        return result

    def _decode_acknowledge_message(self, reader: BinaryIO) -> Object:
        try:
            result = self._decode_async_message(reader)
        except AmfError as exc:
            raise AmfError(f"unable to decode async for ack: {exc}") from exc
        try:
            self._decode_external(reader, result)
        except AmfError as exc:
            raise AmfError(f"unable to decode ack external: {exc}") from exc
        return result

    def _decode_external(
        self, reader: BinaryIO, obj: Object, *field_sets: Sequence[str]
    ) -> None:
        flag_set = _read_flags(reader)
        for i, flags in enumerate(flag_set):
            field_names = field_sets[i] if i < len(field_sets) else ()
            reserved = len(field_names)
            for position, name in enumerate(field_names):
                if flags & (1 << position):
                    try:
                        obj[name] = self.decode_amf3(reader)
                    except AmfError as exc:
                        raise AmfError(
                            f"unable to decode external field {name} {i} {position} ({flag_set}): {exc}"
                        ) from exc
            if flags >> reserved:
                for j in range(reserved, 6):
                    if (flags >> j) & 0x01:
                        try:
                            obj[f"extra_{i}_{j}"] = self.decode_amf3(reader)
                        except AmfError as exc:
                            raise AmfError(
                                f"unable to decode post-external field {i} {j} ({flag_set}): {exc}"
                            ) from exc