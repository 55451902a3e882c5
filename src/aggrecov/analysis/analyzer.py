"""Class file discovery and per-class coverage analysis."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import structlog

from aggrecov.analysis.builder import CoverageBuilder
from aggrecov.analysis.classfile import read_class
from aggrecov.analysis.counters import COVERED_ONE, EMPTY, MISSED_ONE, CounterEntity
from aggrecov.analysis.coverage import ClassCoverage, LineCoverage, line_counter, merge_lines
from aggrecov.analysis.crc64 import class_id
from aggrecov.analysis.probes import analyze_method, is_analyzed
from aggrecov.core.errors import ClassFormatError, FilesystemError
from aggrecov.execdata.store import ExecutionDataStore

log = structlog.get_logger(__name__)

CLASS_SUFFIX = ".class"
ARCHIVE_SUFFIXES = frozenset({".jar", ".zip", ".war", ".ear"})


class Analyzer:
    """Matches class files against execution data and feeds a builder.

    Example:
        builder = CoverageBuilder()
        Analyzer(loader.execution_data, builder).analyze_all(Path("target/classes"))
        bundle = builder.get_bundle("module-a")
    """

    def __init__(self, store: ExecutionDataStore, builder: CoverageBuilder) -> None:
        self._store = store
        self._builder = builder

    def analyze_class(self, data: bytes, location: str) -> None:
        """Analyze one class file. Malformed classes are logged and skipped."""
        cid = class_id(data)
        try:
            info = read_class(data)
            execution = self._store.get(cid)
            probes = execution.probes if execution is not None else None
            no_match = execution is None and self._store.contains(info.name)

            methods = []
            lines: dict[int, LineCoverage] = {}
            next_probe = 0
            for method in info.methods:
                if not is_analyzed(method):
                    continue
                coverage, used = analyze_method(method, probes, next_probe)
                next_probe += used
                if coverage.contains_code:
                    methods.append(coverage)
                    merge_lines(lines, coverage.lines)
        except ClassFormatError as e:
            log.warning("class_analysis_failed", location=location, error=e.message)
            return

        counters = {entity: EMPTY for entity in CounterEntity}
        for m in methods:
            for entity in (
                CounterEntity.INSTRUCTION,
                CounterEntity.BRANCH,
                CounterEntity.COMPLEXITY,
                CounterEntity.METHOD,
            ):
                counters[entity] = counters[entity] + m.counter(entity)
        counters[CounterEntity.LINE] = line_counter(lines)
        if methods:
            ran = counters[CounterEntity.METHOD].covered > 0
            counters[CounterEntity.CLASS] = COVERED_ONE if ran else MISSED_ONE

        self._builder.visit_coverage(
            ClassCoverage(
                name=info.name,
                id=cid,
                no_match=no_match,
                super_name=info.super_name,
                source_file_name=info.source_file,
                methods=methods,
                lines=lines,
                counters=counters,
            )
        )

    def analyze_all(self, path: Path) -> int:
        """Analyze a class file, archive or directory tree.

        Returns:
            Number of class files seen.

        Raises:
            FilesystemError: If ``path`` or a file below it cannot be read.
        """
        if path.is_dir():
            count = 0
            for child in sorted(path.rglob("*")):
                if child.is_file():
                    count += self._analyze_file(child)
            return count
        if not path.exists():
            raise FilesystemError.not_found(str(path))
        return self._analyze_file(path)

    def _analyze_file(self, path: Path) -> int:
        suffix = path.suffix.lower()
        if suffix != CLASS_SUFFIX and suffix not in ARCHIVE_SUFFIXES:
            return 0
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FilesystemError.unreadable(str(path), e.strerror or str(e)) from e
        if suffix == CLASS_SUFFIX:
            self.analyze_class(data, str(path))
            return 1
        return self._analyze_archive(data, str(path))

    def _analyze_archive(self, data: bytes, location: str) -> int:
        count = 0
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                for entry in sorted(archive.namelist()):
                    entry_location = f"{location}@{entry}"
                    suffix = Path(entry).suffix.lower()
                    if suffix == CLASS_SUFFIX:
                        self.analyze_class(archive.read(entry), entry_location)
                        count += 1
                    elif suffix in ARCHIVE_SUFFIXES:
                        count += self._analyze_archive(archive.read(entry), entry_location)
        except zipfile.BadZipFile as e:
            log.warning("archive_analysis_failed", location=location, error=str(e))
        return count
