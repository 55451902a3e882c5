"""Tests for module tree discovery."""

from __future__ import annotations

from pathlib import Path

from structlog.testing import capture_logs

from aggrecov.project import ModuleDiscovery, load_project
from tests.conftest import write_pom


def _ids(modules) -> list[str]:
    return [m.artifact_id for m in modules]


class TestDiscover:
    """Ordering, failures and cycles."""

    def test_pre_order_with_declared_child_order(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "root", modules=["b", "a"], parent=False)
        write_pom(tmp_path / "b", "b", modules=["b1", "b2"])
        write_pom(tmp_path / "b" / "b1", "b1")
        write_pom(tmp_path / "b" / "b2", "b2")
        write_pom(tmp_path / "a", "a")

        modules = ModuleDiscovery().discover(load_project(tmp_path))

        assert _ids(modules) == ["b", "b1", "b2", "a"]

    def test_root_not_included(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "root", parent=False)

        assert ModuleDiscovery().discover(load_project(tmp_path)) == []

    def test_failed_module_skipped_siblings_kept(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "root", modules=["missing", "broken", "ok"], parent=False)
        (tmp_path / "broken").mkdir()
        (tmp_path / "broken" / "pom.xml").write_text("<project>")
        write_pom(tmp_path / "ok", "ok")

        with capture_logs() as logs:
            modules = ModuleDiscovery().discover(load_project(tmp_path))

        assert _ids(modules) == ["ok"]
        failures = [e for e in logs if e["event"] == "module_resolution_failed"]
        assert [e["module"] for e in failures] == ["missing", "broken"]

    def test_cycle_visited_once(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "root", modules=["a"], parent=False)
        write_pom(tmp_path / "a", "a", modules=[".."])

        with capture_logs() as logs:
            modules = ModuleDiscovery().discover(load_project(tmp_path))

        assert _ids(modules) == ["a"]
        assert any(e["event"] == "module_cycle_skipped" for e in logs)

    def test_module_path_may_name_descriptor_file(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "root", modules=["a/pom.xml"], parent=False)
        write_pom(tmp_path / "a", "a")

        assert _ids(ModuleDiscovery().discover(load_project(tmp_path))) == ["a"]

    def test_discovery_is_repeatable(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "root", modules=["a", "b"], parent=False)
        write_pom(tmp_path / "a", "a")
        write_pom(tmp_path / "b", "b")
        root = load_project(tmp_path)
        discovery = ModuleDiscovery()

        assert discovery.discover(root) == discovery.discover(root)


class TestFindRoot:
    """Choosing the discovery root."""

    def test_parent_descriptor_is_root(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "root", modules=["report"], parent=False)
        write_pom(tmp_path / "report", "report")

        root = ModuleDiscovery().find_root(load_project(tmp_path / "report"))

        assert root.artifact_id == "root"

    def test_no_parent_falls_back_to_project(self, tmp_path: Path) -> None:
        write_pom(tmp_path, "solo", parent=False)
        project = load_project(tmp_path)

        with capture_logs() as logs:
            root = ModuleDiscovery().find_root(project)

        assert root is project
        assert any(e["event"] == "parent_missing_using_project" for e in logs)

    def test_unloadable_parent_falls_back_to_project(self, tmp_path: Path) -> None:
        write_pom(tmp_path / "child", "child")
        project = load_project(tmp_path / "child")

        assert ModuleDiscovery().find_root(project) is project
