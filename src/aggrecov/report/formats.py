"""Report formats and formatter dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aggrecov.report.visitor import ReportVisitor


class ReportFormat(StrEnum):
    HTML = "html"
    XML = "xml"
    CSV = "csv"


@dataclass(frozen=True, slots=True)
class FormatterSettings:
    """Options shared by all formatters of one run."""

    output_directory: Path
    output_encoding: str = "UTF-8"
    locale: str | None = None
    footer: str | None = None


def create_visitor(fmt: ReportFormat, settings: FormatterSettings) -> ReportVisitor:
    """Instantiate the formatter for ``fmt`` and return its root visitor."""
    # Formatter modules import this one for FormatterSettings
    if fmt is ReportFormat.HTML:
        from aggrecov.report.html import HtmlFormatter

        return HtmlFormatter(settings).create_visitor()
    if fmt is ReportFormat.XML:
        from aggrecov.report.xml import XmlFormatter

        return XmlFormatter(settings).create_visitor()
    from aggrecov.report.csv import CsvFormatter

    return CsvFormatter(settings).create_visitor()
