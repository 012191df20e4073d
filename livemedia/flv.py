"""FLV tag headers, demuxing of media tag headers and writing of FLV files."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import BinaryIO, Optional

from livemedia.amf.metadata import DEL, meta_data_reform
from livemedia.av import (
    AVC_SEQHDR,
    FRAME_INTER,
    FRAME_KEY,
    SOUND_AAC,
    TAG_AUDIO,
    TAG_SCRIPTDATAAMF0,
    TAG_VIDEO,
    VIDEO_H264,
    Info,
    Packet,
    RWBase,
)

FLV_HEADER = bytes((0x46, 0x4C, 0x56, 0x01, 0x05, 0x00, 0x00, 0x00, 0x09))
TAG_HEADER_LEN = 11


class AvcEndSequence(Exception):
    """Raised when a packet carries the AVC end-of-sequence marker."""

    def __init__(self) -> None:
        super().__init__("avc end sequence")


@dataclass
class Tag:
    """Audio or video tag header fields of an FLV media payload."""

    sound_format: int = 0
    sound_rate: int = 0
    sound_size: int = 0
    sound_type: int = 0
    aac_packet_type: int = 0
    frame_type: int = 0
    codec_id: int = 0
    avc_packet_type: int = 0
    composition_time: int = 0

    def is_key_frame(self) -> bool:
        return self.frame_type == FRAME_KEY

    def is_seq(self) -> bool:
        return self.frame_type == FRAME_KEY and self.avc_packet_type == AVC_SEQHDR

    def parse_media_tag_header(self, data: bytes, is_video: bool) -> int:
        """Parse the audio or video tag header and return its length in bytes."""
        if is_video:
            return self._parse_video_header(data)
        return self._parse_audio_header(data)

    def _parse_audio_header(self, data: bytes) -> int:
        if len(data) < 1:
            raise ValueError(f"invalid audiodata len={len(data)}")
        flags = data[0]
        self.sound_format = flags >> 4
        self.sound_rate = (flags >> 2) & 0x3
        self.sound_size = (flags >> 1) & 0x1
        self.sound_type = flags & 0x1
        if self.sound_format != SOUND_AAC:
            return 1
        if len(data) < 2:
            raise ValueError(f"invalid audiodata len={len(data)}")
        self.aac_packet_type = data[1]
        return 2

    def _parse_video_header(self, data: bytes) -> int:
        if len(data) < 5:
            raise ValueError(f"invalid videodata len={len(data)}")
        flags = data[0]
        self.frame_type = flags >> 4
        self.codec_id = flags & 0xF
        if self.frame_type not in (FRAME_INTER, FRAME_KEY):
            return 1
        self.avc_packet_type = data[1]
        self.composition_time = int.from_bytes(data[2:5], "big")
        return 5


class Demuxer:
    """Attaches parsed tag headers to packets."""

    def demux_header(self, packet: Packet) -> None:
        """Parse the tag header into ``packet.header``, leaving the data untouched."""
        tag = Tag()
        tag.parse_media_tag_header(packet.data, packet.is_video)
        packet.header = tag

    def demux(self, packet: Packet) -> None:
        """Parse the tag header into ``packet.header`` and strip it from the data."""
        tag = Tag()
        n = tag.parse_media_tag_header(packet.data, packet.is_video)
        if tag.codec_id == VIDEO_H264 and packet.data[0] == 0x17 and packet.data[1] == 0x02:
            raise AvcEndSequence()
        packet.header = tag
        packet.data = packet.data[n:]


class FlvWriter(RWBase):
    """Writes packets as FLV tags to a binary file."""

    def __init__(self, app: str, title: str, url: str, ctx: BinaryIO) -> None:
        super().__init__(timeout=10.0)
        self.uid = str(uuid.uuid4())
        self.app = app
        self.title = title
        self.url = url
        self._ctx = ctx
        self._closed = threading.Event()
        self._closed_writer = False
        ctx.write(FLV_HEADER)
        ctx.write(bytes(4))

    def write(self, packet: Packet) -> None:
        """Write one packet as a tag followed by its previous-tag-size field."""
        self.set_pre_time()
        type_id = TAG_VIDEO
        if not packet.is_video:
            if packet.is_metadata:
                type_id = TAG_SCRIPTDATAAMF0
                packet.data = meta_data_reform(packet.data, DEL)
            else:
                type_id = TAG_AUDIO
        data_len = len(packet.data)
        timestamp = (packet.timestamp + self.base_timestamp) & 0xFFFFFFFF
        self.rec_timestamp(timestamp, type_id)

        header = bytearray(TAG_HEADER_LEN)
        header[0] = type_id
        header[1:4] = (data_len & 0xFFFFFF).to_bytes(3, "big")
        header[4:7] = (timestamp & 0xFFFFFF).to_bytes(3, "big")
        header[7] = (timestamp >> 24) & 0xFF
        self._ctx.write(bytes(header))
        self._ctx.write(bytes(packet.data))
        self._ctx.write(((data_len + TAG_HEADER_LEN) & 0xFFFFFFFF).to_bytes(4, "big"))

    def wait(self) -> None:
        """Block until the writer is closed."""
        self._closed.wait()

    def close(self, error: Optional[BaseException] = None) -> None:
        """Close the underlying file once; later calls do nothing."""
        if self._closed_writer:
            return
        self._closed_writer = True
        self._ctx.close()
        self._closed.set()

    def info(self) -> Info:
        return Info(key=f"{self.app}/{self.title}", url=self.url, uid=self.uid)