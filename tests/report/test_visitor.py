"""Tests for the collecting and multiplexing report visitors."""

from __future__ import annotations

from pathlib import Path

import pytest

from aggrecov.analysis.counters import Counter, CounterEntity
from aggrecov.analysis.coverage import GroupCoverage
from aggrecov.core.errors import InternalError
from aggrecov.report import (
    CollectingReportVisitor,
    MultiReportVisitor,
    NoSourceLocator,
    SourceFileCollection,
)
from tests.conftest import analyze_bundle


class _Recorder(CollectingReportVisitor):
    def __init__(self) -> None:
        super().__init__()
        self.rendered: list[GroupCoverage] = []

    def render(self, root: GroupCoverage) -> None:
        self.rendered.append(root)


class TestCollectingReportVisitor:
    """Tree collection and the call sequence."""

    def test_nested_groups_are_refreshed(self) -> None:
        visitor = _Recorder()
        root = visitor.visit_group("root")
        root.visit_bundle(analyze_bundle("a", {"A": None}), NoSourceLocator())
        root.visit_group("sub").visit_bundle(analyze_bundle("b", {"B": None}), NoSourceLocator())

        visitor.visit_end()

        (tree,) = visitor.rendered
        assert tree.name == "root"
        assert tree.groups[0].counter(CounterEntity.CLASS) == Counter(1, 0)
        assert tree.counter(CounterEntity.CLASS) == Counter(2, 0)

    def test_locator_kept_per_bundle(self, tmp_path: Path) -> None:
        visitor = _Recorder()
        locator = SourceFileCollection([tmp_path], "UTF-8")
        bundle = analyze_bundle("a", {"A": None})

        visitor.visit_group("root").visit_bundle(bundle, locator)

        assert visitor.locator_for(bundle) is locator

    def test_single_bundle_without_group(self) -> None:
        visitor = _Recorder()

        visitor.visit_bundle(analyze_bundle("solo", {"A": None}), NoSourceLocator())
        visitor.visit_end()

        assert visitor.rendered[0].name == "solo"
        assert [b.name for b in visitor.rendered[0].bundles] == ["solo"]

    def test_second_root_rejected(self) -> None:
        visitor = _Recorder()
        visitor.visit_group("one")

        with pytest.raises(InternalError):
            visitor.visit_group("two")

    def test_end_only_once(self) -> None:
        visitor = _Recorder()
        visitor.visit_end()

        with pytest.raises(InternalError):
            visitor.visit_end()

    def test_nothing_rendered_before_end(self) -> None:
        visitor = _Recorder()
        visitor.visit_group("root").visit_bundle(analyze_bundle("a", {}), NoSourceLocator())

        assert visitor.rendered == []


class TestMultiReportVisitor:
    def test_forwards_to_every_visitor(self) -> None:
        first, second = _Recorder(), _Recorder()
        multi = MultiReportVisitor([first, second])

        multi.visit_info([], [])
        multi.visit_group("root").visit_group("nested").visit_bundle(
            analyze_bundle("a", {"A": None}), NoSourceLocator()
        )
        multi.visit_end()

        for visitor in (first, second):
            (tree,) = visitor.rendered
            assert tree.groups[0].name == "nested"
            assert tree.counter(CounterEntity.CLASS) == Counter(1, 0)
