"""Coverage analysis: class files + execution data -> coverage tree."""

from aggrecov.analysis.analyzer import Analyzer
from aggrecov.analysis.builder import CoverageBuilder
from aggrecov.analysis.counters import Counter, CounterEntity, CoverageStatus
from aggrecov.analysis.coverage import (
    BundleCoverage,
    ClassCoverage,
    CoverageNode,
    ElementType,
    GroupCoverage,
    LineCoverage,
    MethodCoverage,
    PackageCoverage,
    SourceFileCoverage,
)

__all__ = [
    "Analyzer",
    "BundleCoverage",
    "ClassCoverage",
    "Counter",
    "CounterEntity",
    "CoverageBuilder",
    "CoverageNode",
    "CoverageStatus",
    "ElementType",
    "GroupCoverage",
    "LineCoverage",
    "MethodCoverage",
    "PackageCoverage",
    "SourceFileCoverage",
]
