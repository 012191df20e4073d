"""AAC parsing: audio specific config and ADTS framing of raw frames."""

from __future__ import annotations

from typing import BinaryIO

from livemedia.av import AAC_RAW, AAC_SEQHDR

AAC_RATES = (96000, 88200, 64000, 48000, 44100, 32000, 24000, 22050, 16000, 12000, 11025, 8000, 7350)

ADTS_HEADER_LEN = 7


class AacParser:
    """Turns FLV AAC payloads into an ADTS stream."""

    def __init__(self) -> None:
        self._got_specific = False
        self._object_type = 0
        self._sample_rate_index = 0
        self._channel = 0

    def _specific_info(self, data: bytes) -> None:
        if len(data) < 2:
            raise ValueError("audio mpegspecific error")
        self._got_specific = True
        self._object_type = data[0] >> 3
        self._sample_rate_index = ((data[0] & 0x07) << 1) | (data[1] >> 7)
        self._channel = (data[1] >> 3) & 0x0F

    def _adts_header(self, payload_len: int) -> bytes:
        frame_len = (payload_len + ADTS_HEADER_LEN) & 0xFFFF
        return bytes(
            (
                0xFF,
                0xF1,
                ((((self._object_type - 1) & 0xFF) << 6) | (self._sample_rate_index << 2)) & 0xFF,
                ((self._channel << 6) & 0xFF) | ((frame_len >> 11) & 0x03),
                (frame_len >> 3) & 0xFF,
                ((frame_len & 0x07) << 5) | 0x1F,
                0xFC,
            )
        )

    def _adts(self, data: bytes, writer: BinaryIO) -> None:
        if not data or not self._got_specific:
            raise ValueError("audiodata  invalid")
        writer.write(self._adts_header(len(data)))
        writer.write(data)

    def sample_rate(self) -> int:
        if self._sample_rate_index < len(AAC_RATES):
            return AAC_RATES[self._sample_rate_index]
        return 44100

    def parse(self, data: bytes, packet_type: int, writer: BinaryIO) -> None:
        """Handle a sequence header or a raw frame; other packet types are ignored."""
        if packet_type == AAC_SEQHDR:
            self._specific_info(data)
        elif packet_type == AAC_RAW:
            self._adts(data, writer)