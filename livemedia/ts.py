"""MPEG transport stream muxing of audio and video packets."""

from __future__ import annotations

from typing import BinaryIO, Optional

from livemedia.av import Packet
from livemedia.crc32 import gen_crc32

TS_DEFAULT_DATA_LEN = 184
TS_PACKET_LEN = 188
H264_DEFAULT_HZ = 90

VIDEO_PID = 0x100
AUDIO_PID = 0x101
VIDEO_SID = 0xE0
AUDIO_SID = 0xC0

_PAT_HEADER = bytes((0x00, 0xB0, 0x0D, 0x00, 0x01, 0xC1, 0x00, 0x00, 0x00, 0x01, 0xF0, 0x01))


def _copy(dst: bytearray, pos: int, src: bytes) -> None:
    n = min(len(dst) - pos, len(src))
    if n > 0:
        dst[pos:pos + n] = src[:n]


def _pcr(pcr: int) -> bytes:
    return bytes(
        (
            (pcr >> 25) & 0xFF,
            (pcr >> 17) & 0xFF,
            (pcr >> 9) & 0xFF,
            (pcr >> 1) & 0xFF,
            ((pcr & 0x1) << 7) | 0x7E,
            0x00,
        )
    )


def _timestamp(fb: int, ts: int) -> bytes:
    if ts > 0x1FFFFFFFF:
        ts -= 0x1FFFFFFFF
    first = ((fb << 4) | (((ts >> 30) & 0x07) << 1) | 1) & 0xFF
    middle = (((ts >> 15) & 0x7FFF) << 1) | 1
    last = ((ts & 0x7FFF) << 1) | 1
    return bytes((first,)) + middle.to_bytes(2, "big") + last.to_bytes(2, "big")


def _pes_header(packet: Packet, pts: int, dts: int) -> bytes:
    sid = VIDEO_SID if packet.is_video else AUDIO_SID
    with_dts = packet.is_video and pts != dts
    flag = 0xC0 if with_dts else 0x80
    header_size = 10 if with_dts else 5
    size = len(packet.data) + header_size + 3
    if size > 0xFFFF:
        size = 0
    out = bytearray((0x00, 0x00, 0x01, sid, (size >> 8) & 0xFF, size & 0xFF, 0x80, flag, header_size))
    out += _timestamp(flag >> 6, pts)
    if with_dts:
        out += _timestamp(1, dts)
    return bytes(out)


def _adaptation(buf: bytearray, pos: int, stuffing: int) -> None:
    buf[pos] = (stuffing - 1) & 0xFF
    if stuffing != 1:
        buf[pos + 1] = 0x00
        buf[pos + 2:] = b"\xff" * (len(buf) - pos - 2)


class Muxer:
    """Splits packets into 188-byte TS packets and builds PAT and PMT tables."""

    def __init__(self) -> None:
        self._video_cc = 0
        self._audio_cc = 0
        self._pat_cc = 0
        self._pmt_cc = 0
        self._packet = bytearray(TS_PACKET_LEN)

    def _next_cc(self, is_video: bool) -> int:
        if is_video:
            self._video_cc = (self._video_cc + 1) if self._video_cc < 0xF else 0
            return self._video_cc
        self._audio_cc = (self._audio_cc + 1) if self._audio_cc < 0xF else 0
        return self._audio_cc

    def mux(self, packet: Packet, writer: Optional[BinaryIO]) -> None:
        """Write ``packet`` as a PES packet split over TS packets.

        With ``writer`` set to None the continuity counters still advance.
        """
        dts = packet.timestamp * H264_DEFAULT_HZ
        pts = dts
        pid = AUDIO_PID
        header = None
        if packet.is_video:
            pid = VIDEO_PID
            header = packet.header
            pts = dts + header.composition_time * H264_DEFAULT_HZ
        pes = _pes_header(packet, pts, dts)
        pes_index = 0
        pes_remaining = len(pes)
        data = packet.data
        written = 0
        remaining = len(data) + len(pes)
        buf = self._packet
        first = True

        while remaining > 0:
            cc = self._next_cc(packet.is_video)
            buf[0] = 0x47
            buf[1] = ((pid >> 8) | (0x40 if first else 0)) & 0xFF
            buf[2] = pid & 0xFF
            buf[3] = 0x10 | (cc & 0x0F)
            i = 4

            if first and packet.is_video and header.is_key_frame():
                buf[3] |= 0x20
                buf[4] = 7
                buf[5] = 0x50
                buf[6:12] = _pcr(dts)
                i = 12

            if remaining >= TS_DEFAULT_DATA_LEN:
                data_len = TS_DEFAULT_DATA_LEN - (i - 4) if first else TS_DEFAULT_DATA_LEN
            else:
                buf[3] |= 0x20
                data_len = remaining & 0xFF
                used = (i - 4) if first else 0
                stuffing = (TS_DEFAULT_DATA_LEN - data_len - used) & 0xFF
                _adaptation(buf, i, stuffing)
                i = (i + stuffing) & 0xFF

            if first and i < TS_PACKET_LEN and pes_remaining > 0:
                n = min(TS_PACKET_LEN - i, pes_remaining)
                _copy(buf, i, pes[pes_index:pes_index + n])
                i += n
                remaining -= n
                data_len = (data_len - n) & 0xFF
                pes_remaining -= n
                pes_index += n

            if i < TS_PACKET_LEN:
                n = min(TS_PACKET_LEN - i, data_len)
                _copy(buf, i, data[written:written + n])
                written += n
                remaining -= n

            if writer is not None:
                writer.write(bytes(buf))
            first = False

    def pat(self) -> bytes:
        """Return the next program association table packet."""
        if self._pat_cc > 0xF:
            self._pat_cc = 0
        ts_header = bytes((0x47, 0x40, 0x00, 0x10 | (self._pat_cc & 0x0F), 0x00))
        self._pat_cc += 1
        section = _PAT_HEADER + gen_crc32(_PAT_HEADER).to_bytes(4, "big")
        out = ts_header + section
        return out + b"\xff" * (TS_PACKET_LEN - len(out))

    def pmt(self, sound_format: int, has_video: bool) -> bytes:
        """Return the next program map table packet for the given streams."""
        pmt_header = bytearray((0x02, 0xB0, 0xFF, 0x00, 0x01, 0xC1, 0x00, 0x00, 0xE1, 0x00, 0xF0, 0x00))
        if has_video:
            prog_info = bytearray(
                (0x1B, 0xE1, 0x00, 0xF0, 0x00, 0x0F, 0xE1, 0x01, 0xF0, 0x00)
            )
        else:
            pmt_header[9] = 0x01
            prog_info = bytearray((0x0F, 0xE1, 0x01, 0xF0, 0x00))
        pmt_header[2] = (len(prog_info) + 9 + 4) & 0xFF

        if self._pmt_cc > 0xF:
            self._pmt_cc = 0
        ts_header = bytes((0x47, 0x50, 0x01, 0x10 | (self._pmt_cc & 0x0F), 0x00))
        self._pmt_cc += 1

        if sound_format in (2, 14):
            prog_info[5 if has_video else 0] = 0x04

        section = bytes(pmt_header + prog_info)
        out = ts_header + section + gen_crc32(section).to_bytes(4, "big")
        return out + b"\xff" * (TS_PACKET_LEN - len(out))