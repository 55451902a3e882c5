"""Coverage node model: method → class → package → bundle → group.

Leaf nodes (methods, classes) carry counters computed by the analyzer.
Aggregate nodes sum the counters of their direct children when they are
created, so a bundle's totals are exactly the sum of its classes and a
group's totals are the sum of its bundles and sub-groups.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar

from aggrecov.analysis.counters import EMPTY, Counter, CounterEntity, CoverageStatus


class ElementType(StrEnum):
    GROUP = "GROUP"
    BUNDLE = "BUNDLE"
    PACKAGE = "PACKAGE"
    SOURCEFILE = "SOURCEFILE"
    CLASS = "CLASS"
    METHOD = "METHOD"


@dataclass(frozen=True, slots=True)
class LineCoverage:
    """Instructions and branches attributed to one source line."""

    instructions: Counter = EMPTY
    branches: Counter = EMPTY

    @property
    def status(self) -> CoverageStatus:
        # Status values are bit flags: covered | missed == partly covered
        return CoverageStatus(self.instructions.status | self.branches.status)

    def __add__(self, other: LineCoverage) -> LineCoverage:
        return LineCoverage(self.instructions + other.instructions, self.branches + other.branches)


def merge_lines(target: dict[int, LineCoverage], source: Mapping[int, LineCoverage]) -> None:
    for nr, line in source.items():
        current = target.get(nr)
        target[nr] = line if current is None else current + line


def line_counter(lines: Mapping[int, LineCoverage]) -> Counter:
    """A line is covered when any of its instructions ran."""
    missed = covered = 0
    for line in lines.values():
        if line.instructions.covered:
            covered += 1
        elif line.instructions.missed:
            missed += 1
    return Counter(missed, covered)


def sum_counters(nodes: Iterable[CoverageNode]) -> dict[CounterEntity, Counter]:
    totals = {entity: EMPTY for entity in CounterEntity}
    for node in nodes:
        for entity in CounterEntity:
            totals[entity] = totals[entity] + node.counter(entity)
    return totals


@dataclass(slots=True, kw_only=True)
class CoverageNode:
    """Named node with one counter per :class:`CounterEntity`."""

    element_type: ClassVar[ElementType]

    name: str
    counters: dict[CounterEntity, Counter] = field(default_factory=dict)

    def counter(self, entity: CounterEntity) -> Counter:
        return self.counters.get(entity, EMPTY)

    @property
    def contains_code(self) -> bool:
        return self.counter(CounterEntity.INSTRUCTION).total > 0


@dataclass(slots=True, kw_only=True)
class MethodCoverage(CoverageNode):
    element_type: ClassVar[ElementType] = ElementType.METHOD

    desc: str
    lines: dict[int, LineCoverage] = field(default_factory=dict)

    @property
    def first_line(self) -> int:
        return min(self.lines) if self.lines else -1

    @property
    def last_line(self) -> int:
        return max(self.lines) if self.lines else -1


@dataclass(slots=True, kw_only=True)
class ClassCoverage(CoverageNode):
    """Coverage of one class. ``name`` is the VM name, e.g. ``com/acme/Foo$Bar``."""

    element_type: ClassVar[ElementType] = ElementType.CLASS

    id: int
    no_match: bool = False
    super_name: str | None = None
    source_file_name: str | None = None
    methods: list[MethodCoverage] = field(default_factory=list)
    lines: dict[int, LineCoverage] = field(default_factory=dict)

    @property
    def package_name(self) -> str:
        """VM package name (``com/acme``); empty for the default package."""
        return self.name.rpartition("/")[0]

    @property
    def simple_name(self) -> str:
        return self.name.rpartition("/")[2]

    @property
    def first_line(self) -> int:
        return min(self.lines) if self.lines else -1


@dataclass(slots=True, kw_only=True)
class SourceFileCoverage(CoverageNode):
    element_type: ClassVar[ElementType] = ElementType.SOURCEFILE

    package_name: str
    lines: dict[int, LineCoverage] = field(default_factory=dict)

    @classmethod
    def from_classes(
        cls, name: str, package_name: str, classes: Iterable[ClassCoverage]
    ) -> SourceFileCoverage:
        classes = list(classes)
        lines: dict[int, LineCoverage] = {}
        for c in classes:
            merge_lines(lines, c.lines)
        counters = sum_counters(classes)
        counters[CounterEntity.LINE] = line_counter(lines)
        return cls(name=name, package_name=package_name, lines=lines, counters=counters)


@dataclass(slots=True, kw_only=True)
class PackageCoverage(CoverageNode):
    element_type: ClassVar[ElementType] = ElementType.PACKAGE

    classes: list[ClassCoverage] = field(default_factory=list)
    source_files: list[SourceFileCoverage] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.counters:
            self.counters = sum_counters(self.classes)


@dataclass(slots=True, kw_only=True)
class BundleCoverage(CoverageNode):
    element_type: ClassVar[ElementType] = ElementType.BUNDLE

    packages: list[PackageCoverage] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.counters:
            self.counters = sum_counters(self.packages)

    @property
    def classes(self) -> list[ClassCoverage]:
        return [c for p in self.packages for c in p.classes]


@dataclass(slots=True, kw_only=True)
class GroupCoverage(CoverageNode):
    """Report group: bundles and nested groups, in visit order."""

    element_type: ClassVar[ElementType] = ElementType.GROUP

    bundles: list[BundleCoverage] = field(default_factory=list)
    groups: list[GroupCoverage] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.counters:
            self.refresh()

    def refresh(self) -> None:
        """Recompute totals from the direct children."""
        self.counters = sum_counters([*self.bundles, *self.groups])
