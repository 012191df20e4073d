"""CRC-32/MPEG-2 as used in MPEG transport stream PSI tables."""

from __future__ import annotations

_POLY = 0x04C11DB7


def _make_table() -> tuple:
    table = []
    for index in range(256):
        crc = index << 24
        for _ in range(8):
            crc = ((crc << 1) ^ _POLY) if crc & 0x80000000 else (crc << 1)
            crc &= 0xFFFFFFFF
        table.append(crc)
    return tuple(table)


_TABLE = _make_table()


def gen_crc32(data: bytes) -> int:
    """Return the MSB-first CRC-32 of ``data`` with initial value 0xFFFFFFFF."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = ((crc << 8) & 0xFFFFFFFF) ^ _TABLE[((crc >> 24) ^ byte) & 0xFF]
    return crc