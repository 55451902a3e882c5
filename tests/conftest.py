"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides factories for class files, execution data files and Maven-style
project trees.
"""

from __future__ import annotations

import logging
import struct
import sys
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest
import structlog

# Insert local src directory at the beginning of sys.path
# This ensures that the local aggrecov package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from aggrecov.analysis import Analyzer, CoverageBuilder  # noqa: E402
from aggrecov.analysis.coverage import BundleCoverage  # noqa: E402
from aggrecov.analysis.crc64 import class_id  # noqa: E402
from aggrecov.core.logging import clear_run_id  # noqa: E402
from aggrecov.execdata.io import ExecutionDataWriter  # noqa: E402
from aggrecov.execdata.models import ExecutionData, SessionInfo  # noqa: E402
from aggrecov.execdata.store import ExecutionDataStore  # noqa: E402

# =============================================================================
# Bytecode samples
# =============================================================================

# aload_0; invokespecial #1; return -> 3 instructions, 1 block
CTOR_CODE = bytes([0x2A, 0xB7, 0x00, 0x01, 0xB1])
CTOR_LINES = ((0, 3),)

# int check(int x) { if (x == 0) return 0; return 1; } in branch order:
#   0: iload_1          line 10
#   1: ifeq -> 6        line 10
#   4: iconst_1         line 11
#   5: ireturn          line 11
#   6: iconst_0         line 12
#   7: ireturn          line 12
# -> 6 instructions, 3 blocks (0-1, 4-5, 6-7), 2 branches
BRANCH_CODE = bytes([0x1B, 0x99, 0x00, 0x05, 0x04, 0xAC, 0x03, 0xAC])
BRANCH_LINES = ((0, 10), (4, 11), (6, 12))

DEFAULT_PROBES = 4  # 1 for the constructor, 3 for check()


@dataclass
class MethodSpec:
    name: str
    desc: str
    code: bytes
    lines: Sequence[tuple[int, int]] = ()
    handlers: Sequence[int] = ()
    access: int = 0x0001


DEFAULT_METHODS = (
    MethodSpec("<init>", "()V", CTOR_CODE, CTOR_LINES),
    MethodSpec("check", "(I)I", BRANCH_CODE, BRANCH_LINES),
)


@dataclass
class _Pool:
    entries: list[bytes] = field(default_factory=list)
    utf8_index: dict[str, int] = field(default_factory=dict)

    def utf8(self, text: str) -> int:
        if text not in self.utf8_index:
            raw = text.encode("utf-8")
            self.entries.append(b"\x01" + struct.pack(">H", len(raw)) + raw)
            self.utf8_index[text] = len(self.entries)
        return self.utf8_index[text]

    def class_ref(self, name: str) -> int:
        name_index = self.utf8(name)
        self.entries.append(b"\x07" + struct.pack(">H", name_index))
        return len(self.entries)


def build_class(
    name: str,
    methods: Sequence[MethodSpec] = DEFAULT_METHODS,
    source_file: str | None = "default",
    super_name: str = "java/lang/Object",
) -> bytes:
    """Assemble a minimal, valid class file."""
    pool = _Pool()
    this_index = pool.class_ref(name)
    super_index = pool.class_ref(super_name)
    if source_file == "default":
        source_file = name.rpartition("/")[2].split("$")[0] + ".java"

    method_blobs = []
    for m in methods:
        body = struct.pack(">HHI", 2, 2, len(m.code)) + m.code
        body += struct.pack(">H", len(m.handlers))
        for handler in m.handlers:
            body += struct.pack(">HHHH", 0, handler, handler, 0)
        attrs = b""
        attr_count = 0
        if m.lines:
            table = struct.pack(">H", len(m.lines))
            for start, line in m.lines:
                table += struct.pack(">HH", start, line)
            attrs += struct.pack(">HI", pool.utf8("LineNumberTable"), len(table)) + table
            attr_count += 1
        body += struct.pack(">H", attr_count) + attrs
        blob = struct.pack(">HHHH", m.access, pool.utf8(m.name), pool.utf8(m.desc), 1)
        blob += struct.pack(">HI", pool.utf8("Code"), len(body)) + body
        method_blobs.append(blob)

    class_attrs = b""
    class_attr_count = 0
    if source_file:
        class_attrs = struct.pack(">HIH", pool.utf8("SourceFile"), 2, pool.utf8(source_file))
        class_attr_count = 1

    out = struct.pack(">IHH", 0xCAFEBABE, 0, 52)
    out += struct.pack(">H", len(pool.entries) + 1) + b"".join(pool.entries)
    out += struct.pack(">HHHHH", 0x0021, this_index, super_index, 0, 0)
    out += struct.pack(">H", len(method_blobs)) + b"".join(method_blobs)
    out += struct.pack(">H", class_attr_count) + class_attrs
    return out


def build_exec(
    executions: Sequence[ExecutionData],
    sessions: Sequence[SessionInfo] = (SessionInfo(id="host-1", start=1000, dump=2000),),
) -> bytes:
    writer = ExecutionDataWriter()
    for info in sessions:
        writer.visit_session_info(info)
    for data in executions:
        writer.visit_class_execution(data)
    return writer.getvalue()


def execution_for(name: str, data: bytes, probes: Sequence[bool]) -> ExecutionData:
    return ExecutionData(id=class_id(data), name=name, probes=tuple(probes))


def write_pom(
    directory: Path,
    artifact_id: str,
    *,
    modules: Sequence[str] = (),
    parent: bool = True,
    extra: str = "",
) -> Path:
    """Write a pom.xml; ``parent`` adds a default ``<parent>`` element."""
    directory.mkdir(parents=True, exist_ok=True)
    parent_xml = (
        "<parent><groupId>org.acme</groupId><artifactId>parent</artifactId>"
        "<version>1.0</version></parent>"
        if parent
        else ""
    )
    modules_xml = ""
    if modules:
        modules_xml = "<modules>" + "".join(f"<module>{m}</module>" for m in modules) + "</modules>"
    path = directory / "pom.xml"
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">\n'
        f"  {parent_xml}\n"
        f"  <artifactId>{artifact_id}</artifactId>\n"
        f"  {modules_xml}\n"
        f"  {extra}\n"
        "</project>\n"
    )
    return path


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop handlers bound to streams of a finished test (e.g. CliRunner's)."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
    clear_run_id()


@pytest.fixture
def class_factory() -> Callable[..., bytes]:
    return build_class


@pytest.fixture
def exec_factory() -> Callable[..., bytes]:
    return build_exec


@dataclass
class TwoModuleProject:
    root: Path
    module_a: Path
    module_b: Path
    class_a: bytes
    class_b: bytes


@pytest.fixture
def two_module_project(tmp_path: Path) -> TwoModuleProject:
    """Parent with modules ``a`` and ``b``; each has one class and an exec
    file in which half of its probes were hit."""
    root = tmp_path / "project"
    write_pom(root, "parent", modules=["a", "b"], parent=False)

    classes = {}
    for module, class_name in (("a", "com/acme/a/Alpha"), ("b", "com/acme/b/Beta")):
        base = root / module
        write_pom(base, f"module-{module}")
        data = build_class(class_name)
        class_path = base / "target" / "classes" / f"{class_name}.class"
        class_path.parent.mkdir(parents=True)
        class_path.write_bytes(data)
        # Constructor and the first block of check() ran
        probes = [True, True, False, False]
        (base / "target" / "jacoco.exec").write_bytes(
            build_exec([execution_for(class_name, data, probes)])
        )
        source = base / "src" / "main" / "java" / f"{class_name}.java"
        source.parent.mkdir(parents=True)
        source.write_text("class X {\n" * 12)
        classes[module] = data

    return TwoModuleProject(
        root=root,
        module_a=root / "a",
        module_b=root / "b",
        class_a=classes["a"],
        class_b=classes["b"],
    )


def analyze_bundle(bundle_name: str, classes: dict[str, Sequence[bool] | None]) -> BundleCoverage:
    """Analyze generated classes; ``None`` probes means no execution data."""
    store = ExecutionDataStore()
    builder = CoverageBuilder()
    analyzer = Analyzer(store, builder)
    compiled = {name: build_class(name) for name in classes}
    for name, probes in classes.items():
        if probes is not None:
            store.put(execution_for(name, compiled[name], probes))
    for name, data in compiled.items():
        analyzer.analyze_class(data, f"{name}.class")
    return builder.get_bundle(bundle_name)
