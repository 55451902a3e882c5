"""CRC64 checksum used as the structural class id.

The id of a class is the checksum of its raw class file bytes, so two class
files with identical content share an id regardless of where they live.
"""

from __future__ import annotations

_POLY64REV = 0xD800000000000000
_MASK = (1 << 64) - 1


def _build_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        v = i
        for _ in range(8):
            v = (v >> 1) ^ _POLY64REV if v & 1 else v >> 1
        table.append(v)
    return tuple(table)


_TABLE = _build_table()


def class_id(data: bytes) -> int:
    """Unsigned 64-bit checksum of ``data``."""
    crc = 0
    for b in data:
        crc = (crc >> 8) ^ _TABLE[(crc ^ b) & 0xFF]
    return crc & _MASK
