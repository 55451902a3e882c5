"""Collects analyzed classes and groups them into a bundle."""

from __future__ import annotations

from collections import defaultdict

import structlog

from aggrecov.analysis.coverage import (
    BundleCoverage,
    ClassCoverage,
    PackageCoverage,
    SourceFileCoverage,
)

log = structlog.get_logger(__name__)


class CoverageBuilder:
    """Receives class coverage from an :class:`Analyzer`.

    Classes without code are dropped. Classes whose execution data did not
    match (``no_match``) are kept aside and never counted in a bundle.
    """

    def __init__(self) -> None:
        self._classes: dict[str, ClassCoverage] = {}

    def visit_coverage(self, coverage: ClassCoverage) -> None:
        if not coverage.contains_code:
            return
        existing = self._classes.get(coverage.name)
        if existing is not None:
            if existing.id != coverage.id:
                log.warning(
                    "duplicate_class_skipped",
                    name=coverage.name,
                    kept_id=f"{existing.id:016x}",
                    skipped_id=f"{coverage.id:016x}",
                )
            return
        self._classes[coverage.name] = coverage

    @property
    def classes(self) -> list[ClassCoverage]:
        return sorted(self._classes.values(), key=lambda c: c.name)

    @property
    def no_match_classes(self) -> list[ClassCoverage]:
        return [c for c in self.classes if c.no_match]

    def get_bundle(self, name: str) -> BundleCoverage:
        by_package: dict[str, list[ClassCoverage]] = defaultdict(list)
        for c in self.classes:
            if not c.no_match:
                by_package[c.package_name].append(c)

        packages = []
        for package_name in sorted(by_package):
            classes = by_package[package_name]
            by_source: dict[str, list[ClassCoverage]] = defaultdict(list)
            for c in classes:
                if c.source_file_name:
                    by_source[c.source_file_name].append(c)
            source_files = [
                SourceFileCoverage.from_classes(file_name, package_name, by_source[file_name])
                for file_name in sorted(by_source)
            ]
            packages.append(
                PackageCoverage(name=package_name, classes=classes, source_files=source_files)
            )
        return BundleCoverage(name=name, packages=packages)
