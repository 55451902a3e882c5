"""Binary execution data format (``*.exec``).

A file is a sequence of blocks, each introduced by a one-byte type:

    0x01 header        magic u16 (0xC0C0), format version u16 (0x1007)
    0x10 session info  id (UTF), start i64, dump i64
    0x11 exec data     id i64, class name (UTF), probes (bool array)

Integers are big-endian. Strings use Java's modified UTF-8 with a u16 byte
length prefix. Boolean arrays are a var-int length followed by the values
packed eight per byte, least significant bit first. A file may contain
several headers (concatenated dumps); an empty file is valid.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from aggrecov.core.errors import CorruptDataError
from aggrecov.execdata.models import ExecutionData, SessionInfo

BLOCK_HEADER = 0x01
BLOCK_SESSIONINFO = 0x10
BLOCK_EXECUTIONDATA = 0x11

MAGIC_NUMBER = 0xC0C0
FORMAT_VERSION = 0x1007

_U16 = struct.Struct(">H")
_I64 = struct.Struct(">q")
_U64_MASK = (1 << 64) - 1


@dataclass(slots=True)
class ExecFileContents:
    """Everything read from one execution data file."""

    sessions: list[SessionInfo] = field(default_factory=list)
    executions: list[ExecutionData] = field(default_factory=list)


class _Truncated(Exception):
    pass


class _Cursor:
    """Sequential reader over a byte buffer."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise _Truncated
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u16(self) -> int:
        return int(_U16.unpack(self.take(2))[0])

    def i64(self) -> int:
        return int(_I64.unpack(self.take(8))[0])

    def utf(self) -> str:
        return decode_modified_utf8(self.take(self.u16()))

    def var_int(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self.u8()
            value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return value
            shift += 7
            if shift > 35:
                raise ValueError("var-int too long")

    def bool_array(self) -> tuple[bool, ...]:
        length = self.var_int()
        packed = self.take((length + 7) // 8)
        return tuple(bool(packed[i >> 3] >> (i & 7) & 1) for i in range(length))


def decode_modified_utf8(raw: bytes) -> str:
    """Decode Java modified UTF-8 (encoded NUL and surrogate pairs)."""
    text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
    # Re-join surrogate pairs into supplementary characters
    return text.encode("utf-16-be", "surrogatepass").decode("utf-16-be")


def encode_modified_utf8(text: str) -> bytes:
    units = text.encode("utf-16-be", "surrogatepass")
    out = bytearray()
    for i in range(0, len(units), 2):
        unit = (units[i] << 8) | units[i + 1]
        if 0 < unit < 0x80:
            out.append(unit)
        elif unit < 0x800:
            out += bytes((0xC0 | (unit >> 6), 0x80 | (unit & 0x3F)))
        else:
            out += bytes(
                (0xE0 | (unit >> 12), 0x80 | ((unit >> 6) & 0x3F), 0x80 | (unit & 0x3F))
            )
    return bytes(out)


class ExecutionDataReader:
    """Parses execution data bytes into sessions and per-class records."""

    def read(self, data: bytes, *, source: str = "<memory>") -> ExecFileContents:
        """Parse ``data``.

        Args:
            data: Raw file content.
            source: Path used in error messages.

        Raises:
            CorruptDataError: On bad header, unknown block, wrong version or
                truncated content.
        """
        contents = ExecFileContents()
        cursor = _Cursor(data)
        first = True
        try:
            while not cursor.at_end:
                block = cursor.u8()
                if first and block != BLOCK_HEADER:
                    raise CorruptDataError.invalid_header(source)
                first = False

                if block == BLOCK_HEADER:
                    if cursor.u16() != MAGIC_NUMBER:
                        raise CorruptDataError.invalid_header(source)
                    version = cursor.u16()
                    if version != FORMAT_VERSION:
                        raise CorruptDataError.unsupported_version(source, version)
                elif block == BLOCK_SESSIONINFO:
                    session_id = cursor.utf()
                    start = cursor.i64()
                    dump = cursor.i64()
                    contents.sessions.append(SessionInfo(id=session_id, start=start, dump=dump))
                elif block == BLOCK_EXECUTIONDATA:
                    class_id = cursor.i64() & _U64_MASK
                    name = cursor.utf()
                    probes = cursor.bool_array()
                    contents.executions.append(
                        ExecutionData(id=class_id, name=name, probes=probes)
                    )
                else:
                    raise CorruptDataError.unknown_block(source, block)
        except _Truncated as e:
            raise CorruptDataError.truncated(source) from e
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptDataError.invalid_header(source) from e
        return contents


class ExecutionDataWriter:
    """Serializes sessions and execution records; header written on creation."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._buffer.append(BLOCK_HEADER)
        self._buffer += _U16.pack(MAGIC_NUMBER)
        self._buffer += _U16.pack(FORMAT_VERSION)

    def visit_session_info(self, info: SessionInfo) -> None:
        self._buffer.append(BLOCK_SESSIONINFO)
        self._write_utf(info.id)
        self._buffer += _I64.pack(info.start)
        self._buffer += _I64.pack(info.dump)

    def visit_class_execution(self, data: ExecutionData) -> None:
        self._buffer.append(BLOCK_EXECUTIONDATA)
        # Ids are unsigned in memory, signed on disk
        self._buffer += _I64.pack(data.id - (1 << 64) if data.id >= 1 << 63 else data.id)
        self._write_utf(data.name)
        self._write_bool_array(data.probes)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def _write_utf(self, text: str) -> None:
        encoded = encode_modified_utf8(text)
        if len(encoded) > 0xFFFF:
            raise ValueError(f"String too long for execution data: {text[:40]}...")
        self._buffer += _U16.pack(len(encoded))
        self._buffer += encoded

    def _write_var_int(self, value: int) -> None:
        while value & ~0x7F:
            self._buffer.append(0x80 | (value & 0x7F))
            value >>= 7
        self._buffer.append(value)

    def _write_bool_array(self, values: tuple[bool, ...]) -> None:
        self._write_var_int(len(values))
        packed = bytearray((len(values) + 7) // 8)
        for i, value in enumerate(values):
            if value:
                packed[i >> 3] |= 1 << (i & 7)
        self._buffer += packed
