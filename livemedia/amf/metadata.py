"""Adding and removing the @setDataFrame prefix of FLV script data."""

from __future__ import annotations

import io

from livemedia.amf.decoder_amf0 import Decoder
from livemedia.amf.encoder_amf0 import Encoder
from livemedia.amf.types import AMF0, AmfError

ADD = 0x0
DEL = 0x3

SET_DATA_FRAME = "@setDataFrame"
ON_META_DATA = "onMetaData"


def _encoded_set_data_frame() -> bytes:
    buf = io.BytesIO()
    Encoder().encode(buf, SET_DATA_FRAME, AMF0)
    return buf.getvalue()


SET_DATA_FRAME_BYTES = _encoded_set_data_frame()


def meta_data_reform(data: bytes, flag: int) -> bytes:
    """Prepend (``ADD``) or strip (``DEL``) the encoded ``@setDataFrame`` string."""
    if flag not in (ADD, DEL):
        raise AmfError(f"invalid flag:{flag}")
    first = Decoder().decode(io.BytesIO(data), AMF0)
    if not isinstance(first, str):
        raise AmfError("setFrameFrame error" if flag == ADD else "metadata error")
    if flag == ADD:
        if first != SET_DATA_FRAME:
            return SET_DATA_FRAME_BYTES + bytes(data)
        return bytes(data)
    if first == SET_DATA_FRAME:
        return bytes(data[len(SET_DATA_FRAME_BYTES):])
    return bytes(data)