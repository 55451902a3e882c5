"""Report visitor protocols and the collecting base used by every formatter.

A report is produced by one call sequence on a root visitor::

    visitor.visit_info(sessions, contents)
    group = visitor.visit_group("title")
    group.visit_bundle(bundle, locator)      # any number, groups may nest
    visitor.visit_end()

Formatters collect the whole tree and only write files in ``visit_end``.
A run that fails midway therefore leaves no partial report behind.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from aggrecov.analysis.coverage import BundleCoverage, GroupCoverage
from aggrecov.core.errors import InternalError
from aggrecov.execdata.models import ExecutionData, SessionInfo


@runtime_checkable
class SourceLocator(Protocol):
    tab_width: int

    def get_source_file(self, package_name: str, file_name: str) -> str | None:
        """Source text for ``<package_name>/<file_name>``, or None if not found."""
        ...


class ReportGroupVisitor(Protocol):
    def visit_bundle(self, bundle: BundleCoverage, locator: SourceLocator) -> None: ...

    def visit_group(self, name: str) -> ReportGroupVisitor: ...


class ReportVisitor(ReportGroupVisitor, Protocol):
    def visit_info(
        self, sessions: Sequence[SessionInfo], contents: Sequence[ExecutionData]
    ) -> None: ...

    def visit_end(self) -> None: ...


class _GroupCollector:
    """Appends bundles and sub-groups to one :class:`GroupCoverage`."""

    def __init__(self, owner: CollectingReportVisitor, group: GroupCoverage) -> None:
        self._owner = owner
        self._group = group

    def visit_bundle(self, bundle: BundleCoverage, locator: SourceLocator) -> None:
        self._group.bundles.append(bundle)
        self._owner.locators[id(bundle)] = locator

    def visit_group(self, name: str) -> ReportGroupVisitor:
        child = GroupCoverage(name=name)
        self._group.groups.append(child)
        return _GroupCollector(self._owner, child)


class CollectingReportVisitor:
    """Builds the group tree; subclasses implement :meth:`render`."""

    def __init__(self) -> None:
        self.sessions: list[SessionInfo] = []
        self.contents: list[ExecutionData] = []
        self.root: GroupCoverage | None = None
        self.locators: dict[int, SourceLocator] = {}
        self._ended = False

    def visit_info(
        self, sessions: Sequence[SessionInfo], contents: Sequence[ExecutionData]
    ) -> None:
        self.sessions = list(sessions)
        self.contents = list(contents)

    def visit_group(self, name: str) -> ReportGroupVisitor:
        if self.root is not None:
            raise InternalError.unexpected("report root visited twice", group=name)
        self.root = GroupCoverage(name=name)
        return _GroupCollector(self, self.root)

    def visit_bundle(self, bundle: BundleCoverage, locator: SourceLocator) -> None:
        """Report with a single bundle and no enclosing group."""
        if self.root is not None:
            raise InternalError.unexpected("report root visited twice", bundle=bundle.name)
        self.root = GroupCoverage(name=bundle.name)
        _GroupCollector(self, self.root).visit_bundle(bundle, locator)

    def visit_end(self) -> None:
        if self._ended:
            raise InternalError.unexpected("visit_end called twice")
        self._ended = True
        root = self.root if self.root is not None else GroupCoverage(name="")
        _refresh(root)
        self.render(root)

    def locator_for(self, bundle: BundleCoverage) -> SourceLocator | None:
        return self.locators.get(id(bundle))

    def render(self, root: GroupCoverage) -> None:
        raise NotImplementedError


def _refresh(group: GroupCoverage) -> None:
    for child in group.groups:
        _refresh(child)
    group.refresh()


class _MultiGroupVisitor:
    def __init__(self, visitors: Sequence[ReportGroupVisitor]) -> None:
        self._visitors = list(visitors)

    def visit_bundle(self, bundle: BundleCoverage, locator: SourceLocator) -> None:
        for v in self._visitors:
            v.visit_bundle(bundle, locator)

    def visit_group(self, name: str) -> ReportGroupVisitor:
        return _MultiGroupVisitor([v.visit_group(name) for v in self._visitors])


class MultiReportVisitor(_MultiGroupVisitor):
    """Forwards every call to all wrapped visitors, in order."""

    def __init__(self, visitors: Sequence[ReportVisitor]) -> None:
        super().__init__(visitors)
        self._roots = list(visitors)

    def visit_info(
        self, sessions: Sequence[SessionInfo], contents: Sequence[ExecutionData]
    ) -> None:
        for v in self._roots:
            v.visit_info(sessions, contents)

    def visit_end(self) -> None:
        for v in self._roots:
            v.visit_end()
