"""Shared plumbing for one report run: execution data, visitors, bundles."""

from __future__ import annotations

import codecs
from collections.abc import Sequence
from pathlib import Path

import structlog

from aggrecov.analysis.analyzer import Analyzer
from aggrecov.analysis.builder import CoverageBuilder
from aggrecov.analysis.counters import CounterEntity
from aggrecov.analysis.coverage import BundleCoverage
from aggrecov.config.constants import DEFAULT_ENCODING
from aggrecov.execdata.store import ExecFileLoader
from aggrecov.files.filter import FileFilter
from aggrecov.project.models import ModuleDescriptor
from aggrecov.report.check import Rule, RulesChecker
from aggrecov.report.locator import SourceFileCollection
from aggrecov.report.visitor import MultiReportVisitor, ReportGroupVisitor, ReportVisitor

log = structlog.get_logger(__name__)


def _source_encoding(
    bundle_name: str, module: ModuleDescriptor, configured: str | None
) -> str:
    """Configured encoding, else the module's, else UTF-8.

    The configured value is validated with the rest of the config; the
    module's comes unchecked from its descriptor.
    """
    if configured:
        return configured
    declared = module.source_encoding
    if not declared:
        return DEFAULT_ENCODING
    try:
        codecs.lookup(declared)
    except LookupError:
        log.warning(
            "source_encoding_unknown",
            module=bundle_name,
            encoding=declared,
            descriptor=str(module.descriptor_path),
            fallback=DEFAULT_ENCODING,
        )
        return DEFAULT_ENCODING
    return declared


class ReportSupport:
    """Owns the execution data store and the visitors of one report run.

    Execution data from every loaded file lands in one store, so a class
    executed by tests of several modules gets the union of their probes.
    """

    def __init__(self) -> None:
        self.loader = ExecFileLoader()
        self.no_match_classes: list[str] = []
        self.checker: RulesChecker | None = None
        self._visitors: list[ReportVisitor] = []

    def load_execution_data(self, path: Path) -> None:
        self.loader.load(path)

    def add_visitor(self, visitor: ReportVisitor) -> None:
        self._visitors.append(visitor)

    def add_rules_checker(self, rules: Sequence[Rule]) -> RulesChecker:
        self.checker = RulesChecker(rules)
        self._visitors.append(self.checker)
        return self.checker

    def init_root_visitor(self) -> ReportVisitor:
        """Combine all visitors and hand them the loaded session info."""
        visitor = MultiReportVisitor(self._visitors)
        visitor.visit_info(
            self.loader.session_infos.infos(), self.loader.execution_data.contents()
        )
        return visitor

    def process_project(
        self,
        visitor: ReportGroupVisitor,
        bundle_name: str,
        module: ModuleDescriptor,
        includes: Sequence[str],
        excludes: Sequence[str],
        source_encoding: str | None,
    ) -> BundleCoverage:
        """Analyze one module's classes and visit the resulting bundle.

        A module without an output directory still yields an empty bundle.
        """
        builder = CoverageBuilder()
        analyzer = Analyzer(self.loader.execution_data, builder)
        classes_dir = module.output_directory
        if classes_dir.is_dir():
            for path in FileFilter(includes, excludes).get_files(classes_dir):
                analyzer.analyze_all(path)
        else:
            log.debug("classes_directory_missing", module=bundle_name, path=str(classes_dir))

        bundle = builder.get_bundle(bundle_name)
        log.info("bundle_analyzed", module=bundle_name, classes=len(bundle.classes))

        for cls in builder.no_match_classes:
            log.warning(
                "class_execution_data_mismatch",
                module=bundle_name,
                class_name=cls.name.replace("/", "."),
            )
            self.no_match_classes.append(cls.name)

        if bundle.contains_code and bundle.counter(CounterEntity.LINE).total == 0:
            log.warning("bundle_missing_debug_info", module=bundle_name)

        encoding = _source_encoding(bundle_name, module, source_encoding)
        locator = SourceFileCollection(module.source_roots, encoding)
        visitor.visit_bundle(bundle, locator)
        return bundle
