"""Coverage rules checked against analyzed bundles.

Example configuration (``.aggrecov.yaml``):

    report:
      rules:
        - element: BUNDLE
          limits:
            - counter: LINE
              value: COVEREDRATIO
              minimum: 0.8
        - element: CLASS
          excludes: ["*Test"]
          limits:
            - counter: METHOD
              value: MISSEDCOUNT
              maximum: 0
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from fnmatch import fnmatchcase

import structlog
from pydantic import BaseModel, Field, field_validator, model_validator

from aggrecov.analysis.counters import Counter, CounterEntity
from aggrecov.analysis.coverage import BundleCoverage, CoverageNode, ElementType
from aggrecov.execdata.models import ExecutionData, SessionInfo
from aggrecov.report.visitor import ReportGroupVisitor, SourceLocator

log = structlog.get_logger(__name__)


class LimitValue(StrEnum):
    TOTALCOUNT = "TOTALCOUNT"
    MISSEDCOUNT = "MISSEDCOUNT"
    COVEREDCOUNT = "COVEREDCOUNT"
    MISSEDRATIO = "MISSEDRATIO"
    COVEREDRATIO = "COVEREDRATIO"

    @property
    def is_ratio(self) -> bool:
        return self in (LimitValue.MISSEDRATIO, LimitValue.COVEREDRATIO)

    def of(self, counter: Counter) -> float:
        match self:
            case LimitValue.TOTALCOUNT:
                return counter.total
            case LimitValue.MISSEDCOUNT:
                return counter.missed
            case LimitValue.COVEREDCOUNT:
                return counter.covered
            case LimitValue.MISSEDRATIO:
                return counter.missed_ratio
            case LimitValue.COVEREDRATIO:
                return counter.covered_ratio


class Limit(BaseModel):
    counter: CounterEntity = CounterEntity.INSTRUCTION
    value: LimitValue = LimitValue.COVEREDRATIO
    minimum: float | None = None
    maximum: float | None = None

    @model_validator(mode="after")
    def _check_ratio_bounds(self) -> Limit:
        if self.value.is_ratio:
            for bound in (self.minimum, self.maximum):
                if bound is not None and not 0.0 <= bound <= 1.0:
                    raise ValueError(f"{self.value} limits must be between 0 and 1, got {bound}")
        return self

    def check(self, node: CoverageNode) -> float | None:
        """Return the offending actual value, or None when the limit holds."""
        counter = node.counter(self.counter)
        if self.value.is_ratio and counter.total == 0:
            return None
        actual = self.value.of(counter)
        if self.minimum is not None and actual < self.minimum:
            return actual
        if self.maximum is not None and actual > self.maximum:
            return actual
        return None

    def describe(self) -> str:
        bounds = []
        if self.minimum is not None:
            bounds.append(f"minimum {self.minimum:g}")
        if self.maximum is not None:
            bounds.append(f"maximum {self.maximum:g}")
        return f"{self.counter.lower()} {self.value.lower()} {' '.join(bounds)}".strip()


class Rule(BaseModel):
    element: ElementType = ElementType.BUNDLE
    includes: list[str] = Field(default_factory=lambda: ["*"])
    excludes: list[str] = Field(default_factory=list)
    limits: list[Limit] = Field(default_factory=list)

    @field_validator("element")
    @classmethod
    def _not_group(cls, v: ElementType) -> ElementType:
        if v is ElementType.GROUP:
            raise ValueError("Rules apply to BUNDLE, PACKAGE, SOURCEFILE, CLASS or METHOD")
        return v

    def matches(self, name: str) -> bool:
        if not any(fnmatchcase(name, p) for p in self.includes):
            return False
        return not any(fnmatchcase(name, p) for p in self.excludes)


@dataclass(frozen=True, slots=True)
class Violation:
    element: ElementType
    name: str
    limit: Limit
    actual: float

    @property
    def message(self) -> str:
        shown = f"{self.actual:.2f}" if self.limit.value.is_ratio else f"{self.actual:g}"
        return (
            f"Rule violated for {self.element.lower()} {self.name}: "
            f"{self.limit.describe()}, but was {shown}"
        )


def _elements(bundle: BundleCoverage, element: ElementType) -> Iterator[tuple[str, CoverageNode]]:
    """(display name, node) pairs of one element type within a bundle."""
    if element is ElementType.BUNDLE:
        yield bundle.name, bundle
        return
    for package in bundle.packages:
        dotted = package.name.replace("/", ".")
        if element is ElementType.PACKAGE:
            yield dotted, package
        elif element is ElementType.SOURCEFILE:
            for source in package.source_files:
                yield f"{package.name}/{source.name}" if package.name else source.name, source
        else:
            for cls in package.classes:
                qualified = cls.name.replace("/", ".")
                if element is ElementType.CLASS:
                    yield qualified, cls
                else:
                    for method in cls.methods:
                        yield f"{qualified}.{method.name}{method.desc}", method


class RulesChecker:
    """Report visitor that evaluates rules for every visited bundle."""

    def __init__(self, rules: Sequence[Rule]) -> None:
        self.rules = list(rules)
        self.violations: list[Violation] = []

    def check_bundle(self, bundle: BundleCoverage) -> list[Violation]:
        found = []
        for rule in self.rules:
            for name, node in _elements(bundle, rule.element):
                if not rule.matches(name):
                    continue
                for limit in rule.limits:
                    actual = limit.check(node)
                    if actual is not None:
                        found.append(Violation(rule.element, name, limit, actual))
        for v in found:
            log.warning("coverage_rule_violated", bundle=bundle.name, message=v.message)
        self.violations += found
        return found

    # ReportVisitor protocol

    def visit_info(
        self, sessions: Iterable[SessionInfo], contents: Iterable[ExecutionData]
    ) -> None:
        pass

    def visit_group(self, name: str) -> ReportGroupVisitor:
        return self

    def visit_bundle(self, bundle: BundleCoverage, locator: SourceLocator) -> None:
        self.check_bundle(bundle)

    def visit_end(self) -> None:
        if self.violations:
            log.warning("coverage_checks_failed", violations=len(self.violations))
        else:
            log.info("coverage_checks_passed", rules=len(self.rules))
