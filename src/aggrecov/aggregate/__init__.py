"""Aggregated multi-module report runs."""

from aggrecov.aggregate.ops import ReportAggregator, ReportResult
from aggrecov.aggregate.support import ReportSupport

__all__ = ["ReportAggregator", "ReportResult", "ReportSupport"]
