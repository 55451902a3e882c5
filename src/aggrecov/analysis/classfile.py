"""Minimal class file reader.

Only what coverage analysis needs is kept: names, methods with their
bytecode, exception handler offsets and line number tables, and the
``SourceFile`` attribute. Everything else in the file is skipped.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from aggrecov.core.errors import ClassFormatError
from aggrecov.execdata.io import decode_modified_utf8

CLASS_MAGIC = 0xCAFEBABE

ACC_NATIVE = 0x0100
ACC_ABSTRACT = 0x0400
ACC_SYNTHETIC = 0x1000
ACC_INTERFACE = 0x0200
ACC_BRIDGE = 0x0040

# Constant pool tag -> fixed payload size. Utf8 (1) is variable length.
_CP_SIZES = {
    3: 4,  # Integer
    4: 4,  # Float
    5: 8,  # Long
    6: 8,  # Double
    7: 2,  # Class
    8: 2,  # String
    9: 4,  # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}
_TAG_UTF8 = 1
_TAG_CLASS = 7
_WIDE_TAGS = (5, 6)


@dataclass(frozen=True, slots=True)
class MethodInfo:
    access: int
    name: str
    desc: str
    code: bytes = b""
    handlers: tuple[int, ...] = ()
    line_numbers: tuple[tuple[int, int], ...] = ()
    """``(start_pc, line)`` pairs in table order."""

    @property
    def has_code(self) -> bool:
        return bool(self.code)

    @property
    def is_synthetic(self) -> bool:
        return bool(self.access & ACC_SYNTHETIC)


@dataclass(frozen=True, slots=True)
class ClassInfo:
    name: str
    super_name: str | None
    access: int
    source_file: str | None = None
    methods: tuple[MethodInfo, ...] = field(default_factory=tuple)


class _Reader:
    __slots__ = ("data", "pos")

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise ClassFormatError.malformed("unexpected end of class file")
        chunk = self.data[self.pos : end]
        self.pos = end
        return chunk

    def u1(self) -> int:
        return self.take(1)[0]

    def u2(self) -> int:
        return int(struct.unpack(">H", self.take(2))[0])

    def u4(self) -> int:
        return int(struct.unpack(">I", self.take(4))[0])


class _ConstantPool:
    def __init__(self, reader: _Reader) -> None:
        count = reader.u2()
        self._utf8: dict[int, str] = {}
        self._classes: dict[int, int] = {}
        index = 1
        while index < count:
            tag = reader.u1()
            if tag == _TAG_UTF8:
                raw = reader.take(reader.u2())
                try:
                    self._utf8[index] = decode_modified_utf8(raw)
                except UnicodeDecodeError as e:
                    raise ClassFormatError.malformed(f"bad utf8 constant #{index}") from e
            elif tag == _TAG_CLASS:
                self._classes[index] = reader.u2()
            elif tag in _CP_SIZES:
                reader.take(_CP_SIZES[tag])
            else:
                raise ClassFormatError.malformed(f"unknown constant pool tag {tag}")
            index += 2 if tag in _WIDE_TAGS else 1

    def utf8(self, index: int) -> str:
        try:
            return self._utf8[index]
        except KeyError:
            raise ClassFormatError.malformed(f"constant #{index} is not utf8") from None

    def class_name(self, index: int) -> str | None:
        if index == 0:
            return None
        try:
            return self.utf8(self._classes[index])
        except KeyError:
            raise ClassFormatError.malformed(f"constant #{index} is not a class") from None


def _skip_attributes(reader: _Reader) -> None:
    for _ in range(reader.u2()):
        reader.u2()
        reader.take(reader.u4())


def _read_code(
    reader: _Reader, pool: _ConstantPool
) -> tuple[bytes, tuple[int, ...], tuple[tuple[int, int], ...]]:
    reader.u2()  # max_stack
    reader.u2()  # max_locals
    code = reader.take(reader.u4())
    handlers = []
    for _ in range(reader.u2()):
        reader.u2()
        reader.u2()
        handlers.append(reader.u2())
        reader.u2()
    lines: list[tuple[int, int]] = []
    for _ in range(reader.u2()):
        name = pool.utf8(reader.u2())
        body = reader.take(reader.u4())
        if name == "LineNumberTable":
            sub = _Reader(body)
            for _ in range(sub.u2()):
                lines.append((sub.u2(), sub.u2()))
    return code, tuple(handlers), tuple(lines)


def read_class(data: bytes) -> ClassInfo:
    """Parse class file bytes.

    Raises:
        ClassFormatError: If the bytes are not a well-formed class file.
    """
    reader = _Reader(data)
    if len(data) < 10 or reader.u4() != CLASS_MAGIC:
        raise ClassFormatError.malformed("bad magic number")
    reader.u2()  # minor
    reader.u2()  # major
    pool = _ConstantPool(reader)

    access = reader.u2()
    name = pool.class_name(reader.u2())
    if name is None:
        raise ClassFormatError.malformed("missing this_class")
    super_name = pool.class_name(reader.u2())
    reader.take(2 * reader.u2())  # interfaces

    for _ in range(reader.u2()):  # fields
        reader.take(6)
        _skip_attributes(reader)

    methods = []
    for _ in range(reader.u2()):
        m_access = reader.u2()
        m_name = pool.utf8(reader.u2())
        m_desc = pool.utf8(reader.u2())
        code, handlers, lines = b"", (), ()
        for _ in range(reader.u2()):
            attr = pool.utf8(reader.u2())
            length = reader.u4()
            if attr == "Code":
                code, handlers, lines = _read_code(_Reader(reader.take(length)), pool)
            else:
                reader.take(length)
        methods.append(MethodInfo(m_access, m_name, m_desc, code, handlers, lines))

    source_file = None
    for _ in range(reader.u2()):
        attr = pool.utf8(reader.u2())
        body = reader.take(reader.u4())
        if attr == "SourceFile" and len(body) == 2:
            source_file = pool.utf8(struct.unpack(">H", body)[0])

    return ClassInfo(
        name=name,
        super_name=super_name,
        access=access,
        source_file=source_file,
        methods=tuple(methods),
    )
