"""CSV report (``jacoco.csv``): one row per class."""

from __future__ import annotations

import csv
import io

import structlog

from aggrecov.analysis.counters import CounterEntity
from aggrecov.analysis.coverage import GroupCoverage
from aggrecov.report.formats import FormatterSettings
from aggrecov.report.output import write_text
from aggrecov.report.visitor import CollectingReportVisitor, ReportVisitor

log = structlog.get_logger(__name__)

CSV_FILE_NAME = "jacoco.csv"

CSV_COUNTERS = (
    CounterEntity.INSTRUCTION,
    CounterEntity.BRANCH,
    CounterEntity.LINE,
    CounterEntity.COMPLEXITY,
    CounterEntity.METHOD,
)
CSV_HEADER = ["GROUP", "PACKAGE", "CLASS"] + [
    f"{entity.value}_{kind}" for entity in CSV_COUNTERS for kind in ("MISSED", "COVERED")
]


def java_package_name(vm_name: str) -> str:
    return vm_name.replace("/", ".") if vm_name else "default"


def java_class_name(simple_vm_name: str) -> str:
    return simple_vm_name.replace("$", ".")


def _rows(group: GroupCoverage, path: list[str]) -> list[list[str | int]]:
    rows: list[list[str | int]] = []
    for bundle in group.bundles:
        group_name = "/".join([*path, bundle.name])
        for package in bundle.packages:
            for cls in package.classes:
                row: list[str | int] = [
                    group_name,
                    java_package_name(package.name),
                    java_class_name(cls.simple_name),
                ]
                for entity in CSV_COUNTERS:
                    counter = cls.counter(entity)
                    row += [counter.missed, counter.covered]
                rows.append(row)
    for child in group.groups:
        rows += _rows(child, [*path, child.name])
    return rows


class _CsvVisitor(CollectingReportVisitor):
    def __init__(self, settings: FormatterSettings) -> None:
        super().__init__()
        self._settings = settings

    def render(self, root: GroupCoverage) -> None:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        rows = _rows(root, [root.name] if root.name else [])
        writer.writerows(rows)

        path = self._settings.output_directory / CSV_FILE_NAME
        write_text(path, buffer.getvalue(), self._settings.output_encoding)
        log.info("report_rendered", format="csv", path=str(path), rows=len(rows))


class CsvFormatter:
    def __init__(self, settings: FormatterSettings) -> None:
        self.settings = settings

    def create_visitor(self) -> ReportVisitor:
        return _CsvVisitor(self.settings)
