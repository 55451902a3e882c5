"""Aggregated report run: discover modules, load data, analyze, write reports.

The run order is fixed:

1. Determine modules (``[project]`` with ``data_root_dir``, else the module
   tree below the project's parent).
2. Load every matching execution data file into one shared store.
3. Create the output directory.
4. Instantiate the configured formatters (and the rules checker).
5. Visit the report group: the current project first when requested, then
   every module in discovery order.
6. End the visit, which is when formatters write their files.

Formatters write into a staging directory inside the output directory,
which is moved into place only after every formatter finished. Any error
before that leaves the output directory without new report files.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from aggrecov.aggregate.support import ReportSupport
from aggrecov.analysis.coverage import BundleCoverage
from aggrecov.config.constants import DEFAULT_REPORT_SUBDIRECTORY
from aggrecov.config.models import ReportConfig
from aggrecov.core.errors import CoverageCheckError
from aggrecov.files.filter import FileFilter
from aggrecov.project.discovery import ModuleDiscovery
from aggrecov.project.models import ModuleDescriptor
from aggrecov.project.pom import PomLoader
from aggrecov.report.check import Violation
from aggrecov.report.formats import FormatterSettings, create_visitor
from aggrecov.report.output import ensure_directory, publish_tree

log = structlog.get_logger(__name__)


@dataclass(slots=True)
class ReportResult:
    """Outcome of one aggregated report run."""

    output_directory: Path
    modules: list[ModuleDescriptor] = field(default_factory=list)
    bundles: list[BundleCoverage] = field(default_factory=list)
    exec_files: list[Path] = field(default_factory=list)
    no_match_classes: list[str] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "output_directory": str(self.output_directory),
            "modules": [m.artifact_id for m in self.modules],
            "bundles": [b.name for b in self.bundles],
            "exec_files": [str(p) for p in self.exec_files],
            "no_match_classes": list(self.no_match_classes),
            "violations": [v.message for v in self.violations],
        }


class ReportAggregator:
    """Produces one coverage report over all modules of a project tree.

    Example:
        config = load_config(project_dir)
        project = load_project(project_dir)
        result = ReportAggregator(config.report).run(project)
    """

    def __init__(self, config: ReportConfig, loader: PomLoader | None = None) -> None:
        self.config = config
        self._discovery = ModuleDiscovery(loader)

    def output_directory_for(self, project: ModuleDescriptor) -> Path:
        if self.config.output_directory is not None:
            out = Path(self.config.output_directory).expanduser()
            return out if out.is_absolute() else project.base_dir / out
        return project.build_directory / DEFAULT_REPORT_SUBDIRECTORY

    def find_modules(self, project: ModuleDescriptor) -> list[ModuleDescriptor]:
        if self.config.data_root_dir:
            return [project]
        root = self._discovery.find_root(project)
        return self._discovery.discover(root)

    def _bundle_modules(
        self, project: ModuleDescriptor, modules: list[ModuleDescriptor]
    ) -> list[ModuleDescriptor]:
        """Modules to visit as bundles, the current project first when requested."""
        if not self.config.include_current_project:
            return list(modules)
        current = project.descriptor_path.resolve()
        if any(m.descriptor_path.resolve() == current for m in modules):
            # Already a discovered module; a second bundle would count its classes twice
            log.warning("current_project_already_a_module", module=project.artifact_id)
            return list(modules)
        return [project, *modules]

    def run(self, project: ModuleDescriptor) -> ReportResult:
        """Write the configured reports for ``project``.

        Raises:
            FilesystemError: Exec files or the output directory are unusable.
            CorruptDataError: An exec file is malformed.
            IncompatibleDataError: Exec files disagree about a class.
            CoverageCheckError: Rules were violated and ``halt_on_failure``
                is set. Reports are written before this is raised.
        """
        cfg = self.config
        support = ReportSupport()
        result = ReportResult(output_directory=self.output_directory_for(project))

        # 1. modules
        result.modules = self.find_modules(project)
        log.info("modules_resolved", count=len(result.modules), project=project.artifact_id)

        # 2. execution data, below the base directory of every module
        data_filter = FileFilter(cfg.data_file_includes, cfg.data_file_excludes)
        for root in (m.base_dir for m in result.modules):
            for exec_file in data_filter.get_files(root):
                support.load_execution_data(exec_file)
                result.exec_files.append(exec_file)
        log.info(
            "execution_data_loaded",
            files=len(result.exec_files),
            classes=len(support.loader.execution_data),
            sessions=len(support.loader.session_infos),
        )

        # 3. output directory
        ensure_directory(result.output_directory)

        with tempfile.TemporaryDirectory(
            prefix=".aggrecov-", dir=result.output_directory
        ) as staging:
            # 4. formatters
            settings = FormatterSettings(
                output_directory=Path(staging),
                output_encoding=cfg.output_encoding,
                locale=cfg.locale,
                footer=cfg.footer,
            )
            for fmt in cfg.formats:
                support.add_visitor(create_visitor(fmt, settings))
            checker = support.add_rules_checker(cfg.rules) if cfg.rules else None

            # 5. bundles
            visitor = support.init_root_visitor()
            group = visitor.visit_group(cfg.title or project.display_name)
            for module in self._bundle_modules(project, result.modules):
                result.bundles.append(
                    support.process_project(
                        group,
                        module.artifact_id,
                        module,
                        cfg.includes,
                        cfg.excludes,
                        cfg.source_encoding,
                    )
                )

            # 6. write
            visitor.visit_end()
            publish_tree(Path(staging), result.output_directory)

        result.no_match_classes = list(support.no_match_classes)
        log.info(
            "report_complete",
            output=str(result.output_directory),
            bundles=len(result.bundles),
            no_match=len(result.no_match_classes),
        )

        if checker is not None:
            result.violations = list(checker.violations)
            if result.violations and cfg.halt_on_failure:
                raise CoverageCheckError.violations(len(result.violations))
        return result
