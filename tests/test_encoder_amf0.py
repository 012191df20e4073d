import io
import struct
from datetime import datetime, timezone

import pytest

from livemedia.amf.decoder_amf0 import Decoder
from livemedia.amf.encoder_amf0 import Encoder
from livemedia.amf.types import AmfError, TypedObject


def encode_and_decode(value, version):
    buf = io.BytesIO()
    Encoder().encode(buf, value, version)
    buf.seek(0)
    return Decoder().decode(buf, version)


@pytest.mark.parametrize("value", [3.14159, 124567890.0, -34.2])
def test_amf0_number_round_trip(value):
    assert encode_and_decode(value, 0) == value


@pytest.mark.parametrize("value", ["a pup!", "日本語"])
def test_amf0_string_round_trip(value):
    assert encode_and_decode(value, 0) == value


@pytest.mark.parametrize("value", [True, False])
def test_amf0_boolean_round_trip(value):
    assert encode_and_decode(value, 0) is value


def test_amf0_null_round_trip():
    assert encode_and_decode(None, 0) is None
    assert encode_and_decode(None, 3) is None


def test_amf0_object_round_trip():
    obj = {"dog": "alfie", "coffee": True, "drugs": False, "pi": 3.14159}
    result = encode_and_decode(obj, 0)
    assert result["dog"] == "alfie"
    assert result["coffee"] is True
    assert result["drugs"] is False
    assert result["pi"] == 3.14159


def test_amf0_array_round_trip():
    arr = [1.0, 2.0, 3.0, 4.0, 5.0]
    assert encode_and_decode(arr, 0) == arr


@pytest.mark.parametrize("value", [0, 1245, 123456])
def test_amf3_integer_round_trip(value):
    assert encode_and_decode(value, 3) == value


@pytest.mark.parametrize("value", [3.14159, 1234567890.0, -12345.0])
def test_amf3_double_round_trip(value):
    assert encode_and_decode(value, 3) == value


@pytest.mark.parametrize("value", ["a pup!", "日本語"])
def test_amf3_string_round_trip(value):
    assert encode_and_decode(value, 3) == value


@pytest.mark.parametrize("value", [True, False])
def test_amf3_boolean_round_trip(value):
    assert encode_and_decode(value, 3) is value


def test_amf3_date_round_trip():
    now = datetime.fromtimestamp(int(datetime.now(timezone.utc).timestamp()), tz=timezone.utc)
    earlier = datetime(1983, 9, 4, 12, 4, 8, tzinfo=timezone.utc)
    assert encode_and_decode(now, 3) == now
    assert encode_and_decode(earlier, 3) == earlier


def test_amf3_array_round_trip():
    arr = ["amf", 2.0, -34.95, True, False]
    assert encode_and_decode(arr, 3) == arr


def test_amf3_byte_array_round_trip():
    expect = bytes([0x01, 0x02, 0x03, 0x04, 0x05, 0x00])
    buf = io.BytesIO()
    Encoder().encode_amf3_byte_array(buf, expect, True)
    buf.seek(0)
    assert Decoder().decode_amf3_byte_array(buf, True) == expect


@pytest.mark.parametrize(
    "value, expect",
    [
        (1.2, bytes([0x00, 0x3F, 0xF3, 0x33, 0x33, 0x33, 0x33, 0x33, 0x33])),
        (True, bytes([0x01, 0x01])),
        (False, bytes([0x01, 0x00])),
        ("foo", bytes([0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F])),
        (None, bytes([0x05])),
        (
            {"foo": "bar"},
            bytes(
                [0x03, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x02, 0x00, 0x03, 0x62, 0x61, 0x72, 0x00, 0x00, 0x09]
            ),
        ),
    ],
)
def test_encode_amf0_bytes_and_count(value, expect):
    buf = io.BytesIO()
    n = Encoder().encode_amf0(buf, value)
    assert n == len(expect)
    assert buf.getvalue() == expect


def test_encode_amf0_ecma_array():
    buf = io.BytesIO()
    Encoder().encode_amf0_ecma_array(buf, {"foo": "bar"}, True)
    assert buf.getvalue() == bytes(
        [0x08, 0x00, 0x00, 0x00, 0x01, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x02, 0x00, 0x03, 0x62, 0x61, 0x72, 0x00, 0x00, 0x09]
    )


def test_encode_amf0_strict_array():
    buf = io.BytesIO()
    Encoder().encode_amf0_strict_array(buf, [5.0, "foo", None], True)
    assert buf.getvalue() == bytes(
        [0x0A, 0x00, 0x00, 0x00, 0x03, 0x00, 0x40, 0x14, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x05]
    )


def test_encode_amf0_long_string():
    test_bytes = b"12345678"
    text = (test_bytes * 65536).decode()
    buf = io.BytesIO()
    Encoder().encode_amf0(buf, text)
    out = buf.getvalue()
    assert out[0] == 0x0C
    assert struct.unpack(">I", out[1:5])[0] == 65536 * 8
    body = out[5:]
    assert len(body) == 65536 * 8
    assert all(body[i:i + 8] == test_bytes for i in range(0, len(body), 8))


def test_encode_amf0_simple_markers():
    enc = Encoder()
    buf = io.BytesIO()
    enc.encode_amf0_undefined(buf, True)
    enc.encode_amf0_unsupported(buf, True)
    enc.encode_amf0_amf3_marker(buf)
    assert buf.getvalue() == bytes([0x06, 0x0D, 0x11])


def test_encode_without_marker_writes_nothing_for_null():
    buf = io.BytesIO()
    assert Encoder().encode_amf0_null(buf, False) == 0
    assert buf.getvalue() == b""


def test_encode_amf0_typed_object_rejected():
    with pytest.raises(AmfError, match="typed object"):
        Encoder().encode_amf0(io.BytesIO(), TypedObject(type="x"))


def test_encode_amf0_unsupported_type():
    with pytest.raises(AmfError, match="unsupported type"):
        Encoder().encode_amf0(io.BytesIO(), object())


def test_encode_unsupported_version():
    with pytest.raises(AmfError, match="unsupported version"):
        Encoder().encode(io.BytesIO(), 1.0, 2)


def test_encode_batch_matches_individual_encodes():
    enc = Encoder()
    batch = io.BytesIO()
    n = enc.encode_batch(batch, 0, "foo", 1.2, None)
    single = io.BytesIO()
    for value in ("foo", 1.2, None):
        enc.encode(single, value, 0)
    assert batch.getvalue() == single.getvalue()
    assert n == len(single.getvalue())
    batch.seek(0)
    assert Decoder().decode_batch(batch, 0) == ["foo", 1.2, None]