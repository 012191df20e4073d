import io
import struct
from datetime import datetime, timezone

import pytest

from livemedia.amf.decoder_amf3 import Amf3Decoder
from livemedia.amf.types import AmfError

U29_CASES = [
    (1, b"\x01"),
    (2, b"\x02"),
    (127, b"\x7f"),
    (128, b"\x81\x00"),
    (255, b"\x81\x7f"),
    (256, b"\x82\x00"),
    (0x3FFF, b"\xff\x7f"),
    (0x4000, b"\x81\x80\x00"),
    (0x7FFF, b"\x81\xff\x7f"),
    (0x8000, b"\x82\x80\x00"),
    (0x1FFFFF, b"\xff\xff\x7f"),
    (0x200000, b"\x80\xc0\x80\x00"),
    (0x3FFFFF, b"\x80\xff\xff\xff"),
    (0x400000, b"\x81\x80\x80\x00"),
    (0x0FFFFFFF, b"\xbf\xff\xff\xff"),
]


def _decode(data: bytes):
    return Amf3Decoder().decode_amf3(io.BytesIO(data))


@pytest.mark.parametrize("data", [b"\x00", b"\x01"])
def test_undefined_and_null(data):
    assert _decode(data) is None


def test_false():
    assert _decode(b"\x02") is False


def test_true():
    assert _decode(b"\x03") is True


@pytest.mark.parametrize("value,encoded", U29_CASES)
def test_decode_u29(value, encoded):
    assert Amf3Decoder().decode_u29(io.BytesIO(encoded)) == value


def test_decode_integer_all_entry_points():
    buf = io.BytesIO(b"\x04\xff\xff\x7f")
    dec = Amf3Decoder()
    assert dec.decode_amf3(buf) == 2097151
    buf.seek(0)
    assert dec.decode_amf3_integer(buf, True) == 2097151
    buf.seek(1)
    assert dec.decode_amf3_integer(buf, False) == 2097151


def test_decode_negative_integer():
    assert _decode(b"\x04\xc0\x80\x80\x00") == -268435456


def test_decode_double():
    assert _decode(b"\x05\x3f\xf3\x33\x33\x33\x33\x33\x33") == 1.2


def test_decode_string():
    assert _decode(b"\x06\x07foo") == "foo"


def test_string_reference():
    dec = Amf3Decoder()
    buf = io.BytesIO(b"\x06\x07foo\x06\x00")
    assert dec.decode_amf3(buf) == "foo"
    assert dec.decode_amf3(buf) == "foo"


def test_bad_string_reference():
    with pytest.raises(AmfError):
        _decode(b"\x06\x02")


def test_decode_array():
    data = b"\x09\x13\x01" + b"".join(b"\x06\x03" + str(i).encode() for i in range(1, 10))
    got = Amf3Decoder().decode_amf3_array(io.BytesIO(data), True)
    assert got == ["1", "2", "3", "4", "5", "6", "7", "8", "9"]


def test_associative_array_rejected():
    with pytest.raises(AmfError):
        _decode(b"\x09\x03\x03k\x01")


def test_decode_object():
    data = (
        b"\x0a\x23\x1forg.amf.ASClass\x07baz\x07foo"
        b"\x01\x06\x07bar"
    )
    got = _decode(data)
    assert got == {"baz": None, "foo": "bar"}


def test_dynamic_object_and_reference():
    dec = Amf3Decoder()
    buf = io.BytesIO(b"\x0a\x0b\x01\x03a\x04\x05\x01" + b"\x0a\x00")
    first = dec.decode_amf3(buf)
    assert first == {"a": 5}
    assert dec.decode_amf3(buf) is first


def test_trait_reference():
    dec = Amf3Decoder()
    buf = io.BytesIO(b"\x0a\x13\x01\x03x\x04\x01" + b"\x0a\x01\x04\x02")
    assert dec.decode_amf3(buf) == {"x": 1}
    assert dec.decode_amf3(buf) == {"x": 2}


def test_decode_date_and_reference():
    dec = Amf3Decoder()
    millis = 431524800000.0
    buf = io.BytesIO(b"\x08\x01" + struct.pack(">d", millis) + b"\x08\x00")
    expected = datetime(1983, 9, 4, 12, 0, tzinfo=timezone.utc)
    assert dec.decode_amf3(buf) == expected
    assert dec.decode_amf3(buf) == expected


def test_decode_byte_array():
    dec = Amf3Decoder()
    buf = io.BytesIO(b"\x0c\x07\x01\x02\x03")
    assert dec.decode_amf3_byte_array(buf, True) == b"\x01\x02\x03"


def test_decode_xml():
    assert _decode(b"\x0b\x07foo") == "foo"


def test_xml_wrong_marker():
    with pytest.raises(AmfError):
        Amf3Decoder().decode_amf3_xml(io.BytesIO(b"\x06\x07foo"), True)


def test_unsupported_marker():
    with pytest.raises(AmfError, match="unsupported type 13"):
        _decode(b"\x0d")


def test_empty_input():
    with pytest.raises(AmfError):
        _decode(b"")


def test_external_handler():
    dec = Amf3Decoder()
    dec.register_external_handler("X", lambda d, r: ("custom", r.read(1)))
    assert dec.decode_amf3(io.BytesIO(b"\x0a\x07\x03X\x2a")) == ("custom", b"\x2a")


def test_external_without_handler():
    with pytest.raises(AmfError, match="no handler"):
        _decode(b"\x0a\x07\x03X\x2a")


def test_array_collection():
    name = b"flex.messaging.io.ArrayCollection"
    data = b"\x0a\x07" + bytes(((len(name) << 1) | 1,)) + name + b"\x09\x05\x01\x04\x01\x04\x02"
    assert _decode(data) == [1, 2]


def test_acknowledge_message():
    data = (
        b"\x0a\x07\x07DSK"
        b"\x01\x06\x05hi"
        b"\x01\x06\x05c1"
        b"\x01\x04\x07"
    )
    assert _decode(data) == {"body": "hi", "correlationId": "c1", "extra_0_0": 7}


def test_async_message_truncated():
    with pytest.raises(AmfError):
        _decode(b"\x0a\x07\x07DSA\x01")