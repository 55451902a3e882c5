"""Module tree discovery from a root descriptor.

The tree is walked with an explicit stack so deep module hierarchies do not
grow the Python call stack. Order is pre-order: a module comes before its
children, and children keep their declared order. A descriptor that fails to
load is logged and its branch skipped; siblings and ancestors still resolve.
Every descriptor path is visited at most once, which also breaks cycles.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from aggrecov.core.errors import ModuleResolutionError
from aggrecov.project.models import ModuleDescriptor
from aggrecov.project.pom import PomLoader, descriptor_path_for

log = structlog.get_logger(__name__)


class ModuleDiscovery:
    """Resolve the flat, ordered module list below a root module."""

    def __init__(self, loader: PomLoader | None = None) -> None:
        self._loader = loader or PomLoader()

    def discover(self, root: ModuleDescriptor) -> list[ModuleDescriptor]:
        """Return every module declared below ``root`` (root excluded).

        Args:
            root: The already loaded root descriptor.

        Returns:
            Modules in discovery order.
        """
        result: list[ModuleDescriptor] = []
        visited: set[Path] = {root.descriptor_path.resolve()}

        # Stack of (parent, module name); pushed reversed so pops keep declared order
        stack: list[tuple[ModuleDescriptor, str]] = [
            (root, name) for name in reversed(root.modules)
        ]
        while stack:
            parent, module_name = stack.pop()
            descriptor = descriptor_path_for(parent.base_dir / module_name).resolve()

            if descriptor in visited:
                log.warning(
                    "module_cycle_skipped",
                    module=module_name,
                    parent=parent.artifact_id,
                    path=str(descriptor),
                )
                continue
            visited.add(descriptor)

            try:
                module = self._loader.load(descriptor, parent=parent)
            except ModuleResolutionError as e:
                log.warning(
                    "module_resolution_failed",
                    module=module_name,
                    parent=parent.artifact_id,
                    path=str(descriptor),
                    reason=e.details.get("reason", e.message),
                )
                continue

            result.append(module)
            log.debug("module_discovered", artifact_id=module.artifact_id, path=str(descriptor))
            stack.extend((module, name) for name in reversed(module.modules))

        return result

    def find_root(self, project: ModuleDescriptor) -> ModuleDescriptor:
        """Return the discovery root for ``project``: its parent descriptor.

        Falls back to ``project`` itself when it declares no parent or the
        parent cannot be loaded.
        """
        if project.parent_descriptor is None:
            log.warning(
                "parent_missing_using_project",
                artifact_id=project.artifact_id,
                path=str(project.descriptor_path),
            )
            return project

        try:
            return self._loader.load(project.parent_descriptor)
        except ModuleResolutionError as e:
            log.warning(
                "parent_resolution_failed",
                artifact_id=project.artifact_id,
                path=str(project.parent_descriptor),
                reason=e.details.get("reason", e.message),
            )
            return project
