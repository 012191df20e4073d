"""MP3 frame header parsing for the sampling frequency."""

from __future__ import annotations

MP3_RATES = (44100, 48000, 32000)


class Mp3Parser:
    """Extracts the sampling frequency from MPEG audio frame headers."""

    def __init__(self) -> None:
        self._sampling_frequency = 0

    def parse(self, data: bytes) -> None:
        if len(data) < 3:
            raise ValueError("mp3data  invalid")
        index = (data[2] >> 2) & 0x3
        if index >= len(MP3_RATES):
            raise ValueError("invalid rate index")
        self._sampling_frequency = MP3_RATES[index]

    def sample_rate(self) -> int:
        if self._sampling_frequency == 0:
            self._sampling_frequency = 44100
        return self._sampling_frequency