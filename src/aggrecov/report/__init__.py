"""Report visitors, formatters, source locators and coverage checks."""

from aggrecov.report.check import Limit, LimitValue, Rule, RulesChecker, Violation
from aggrecov.report.formats import FormatterSettings, ReportFormat, create_visitor
from aggrecov.report.locator import NoSourceLocator, SourceFileCollection
from aggrecov.report.output import ensure_directory
from aggrecov.report.visitor import (
    CollectingReportVisitor,
    MultiReportVisitor,
    ReportGroupVisitor,
    ReportVisitor,
    SourceLocator,
)

__all__ = [
    "CollectingReportVisitor",
    "FormatterSettings",
    "Limit",
    "LimitValue",
    "MultiReportVisitor",
    "NoSourceLocator",
    "ReportFormat",
    "ReportGroupVisitor",
    "ReportVisitor",
    "Rule",
    "RulesChecker",
    "SourceFileCollection",
    "SourceLocator",
    "Violation",
    "create_visitor",
    "ensure_directory",
]
