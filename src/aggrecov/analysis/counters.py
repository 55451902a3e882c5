"""Coverage counters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum


class CounterEntity(StrEnum):
    """What a counter counts. Declaration order is report column order."""

    INSTRUCTION = "INSTRUCTION"
    BRANCH = "BRANCH"
    LINE = "LINE"
    COMPLEXITY = "COMPLEXITY"
    METHOD = "METHOD"
    CLASS = "CLASS"


class CoverageStatus(IntEnum):
    EMPTY = 0
    NOT_COVERED = 1
    FULLY_COVERED = 2
    PARTLY_COVERED = 3


@dataclass(frozen=True, slots=True)
class Counter:
    """Missed and covered items of one kind."""

    missed: int = 0
    covered: int = 0

    @property
    def total(self) -> int:
        return self.missed + self.covered

    @property
    def covered_ratio(self) -> float:
        """Covered / total; NaN-free: 0.0 when there is nothing to count."""
        return self.covered / self.total if self.total else 0.0

    @property
    def missed_ratio(self) -> float:
        return self.missed / self.total if self.total else 0.0

    @property
    def status(self) -> CoverageStatus:
        if self.covered and self.missed:
            return CoverageStatus.PARTLY_COVERED
        if self.covered:
            return CoverageStatus.FULLY_COVERED
        if self.missed:
            return CoverageStatus.NOT_COVERED
        return CoverageStatus.EMPTY

    def __add__(self, other: Counter) -> Counter:
        return Counter(self.missed + other.missed, self.covered + other.covered)

    def increment(self, missed: int, covered: int) -> Counter:
        return Counter(self.missed + missed, self.covered + covered)


EMPTY = Counter()
MISSED_ONE = Counter(1, 0)
COVERED_ONE = Counter(0, 1)
