"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence: kwargs > env vars > project yaml > global yaml
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from aggrecov.config.loader import PROJECT_CONFIG_NAME, _deep_merge, _load_yaml, load_config
from aggrecov.core.errors import ConfigError, ErrorCode
from aggrecov.report import ReportFormat

GLOBAL = "aggrecov.config.loader.GLOBAL_CONFIG_PATH"


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("report:\n  title: Nightly\n")

        assert _load_yaml(yaml_file) == {"report": {"title": "Nightly"}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("report:\n  formats: [unclosed")

        with pytest.raises(ConfigError) as exc:
            _load_yaml(yaml_file)

        assert exc.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_rejects_non_mapping(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            _load_yaml(yaml_file)


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_nested_merge(self) -> None:
        base = {"report": {"title": "a", "footer": "f"}}
        override = {"report": {"title": "b"}}

        assert _deep_merge(base, override) == {"report": {"title": "b", "footer": "f"}}

    def test_override_replaces_non_dict(self) -> None:
        assert _deep_merge({"a": [1]}, {"a": {"b": 2}}) == {"a": {"b": 2}}

    def test_does_not_mutate_base(self) -> None:
        base = {"report": {"title": "a"}}

        _deep_merge(base, {"report": {"title": "b"}})

        assert base == {"report": {"title": "a"}}


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults_when_no_files(self, tmp_path: Path) -> None:
        with patch(GLOBAL, tmp_path / "none.yaml"):
            config = load_config(tmp_path)

        assert config.logging.level == "INFO"
        assert config.report.formats == [ReportFormat.HTML, ReportFormat.XML, ReportFormat.CSV]
        assert config.report.data_file_includes == ["target/*.exec"]
        assert config.report.halt_on_failure is True

    def test_project_yaml_overrides_global(self, tmp_path: Path) -> None:
        global_yaml = tmp_path / "global.yaml"
        global_yaml.write_text("report:\n  title: Global\n  footer: From global\n")
        (tmp_path / PROJECT_CONFIG_NAME).write_text("report:\n  title: Project\n")

        with patch(GLOBAL, global_yaml):
            config = load_config(tmp_path)

        assert config.report.title == "Project"
        assert config.report.footer == "From global"

    def test_rules_from_yaml(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_NAME).write_text(
            "report:\n"
            "  rules:\n"
            "    - element: PACKAGE\n"
            "      limits:\n"
            "        - counter: BRANCH\n"
            "          minimum: 0.5\n"
        )

        with patch(GLOBAL, tmp_path / "none.yaml"):
            config = load_config(tmp_path)

        (rule,) = config.report.rules
        assert rule.element == "PACKAGE"
        assert rule.limits[0].minimum == 0.5

    def test_env_vars_override_yaml(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_NAME).write_text("logging:\n  level: DEBUG\n")

        with (
            patch(GLOBAL, tmp_path / "none.yaml"),
            patch.dict(os.environ, {"AGGRECOV__LOGGING__LEVEL": "WARNING"}),
        ):
            config = load_config(tmp_path)

        assert config.logging.level == "WARNING"

    def test_kwargs_override_all(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_NAME).write_text("report:\n  title: From yaml\n")

        with (
            patch(GLOBAL, tmp_path / "none.yaml"),
            patch.dict(os.environ, {"AGGRECOV__REPORT__TITLE": "From env"}),
        ):
            config = load_config(tmp_path, report={"title": "From CLI"})

        assert config.report.title == "From CLI"

    @pytest.mark.parametrize(
        "report",
        [
            {"formats": []},
            {"formats": ["pdf"]},
            {"output_encoding": "no-such-codec"},
            {"rules": [{"limits": [{"minimum": 5}]}]},
        ],
    )
    def test_invalid_values(self, tmp_path: Path, report: dict) -> None:
        with patch(GLOBAL, tmp_path / "none.yaml"), pytest.raises(ConfigError) as exc:
            load_config(tmp_path, report=report)

        assert exc.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc.value.details["field"].startswith("report")

    def test_duplicate_formats_collapsed(self, tmp_path: Path) -> None:
        with patch(GLOBAL, tmp_path / "none.yaml"):
            config = load_config(tmp_path, report={"formats": ["xml", "csv", "xml"]})

        assert config.report.formats == [ReportFormat.XML, ReportFormat.CSV]

    def test_explicit_config_file_replaces_project_yaml(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_NAME).write_text(
            "report:\n  title: Project\n  footer: Project footer\n"
        )
        ci_yaml = tmp_path / "ci.yaml"
        ci_yaml.write_text("report:\n  title: CI\n")

        with patch(GLOBAL, tmp_path / "none.yaml"):
            config = load_config(tmp_path, config_file=ci_yaml)

        assert config.report.title == "CI"
        assert config.report.footer is None

    def test_missing_explicit_config_file(self, tmp_path: Path) -> None:
        with patch(GLOBAL, tmp_path / "none.yaml"), pytest.raises(ConfigError) as exc:
            load_config(tmp_path, config_file=tmp_path / "missing.yaml")

        assert exc.value.code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_unknown_section_rejected(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_NAME).write_text("reprot:\n  title: typo\n")

        with patch(GLOBAL, tmp_path / "none.yaml"), pytest.raises(ConfigError) as exc:
            load_config(tmp_path)

        assert exc.value.details["field"] == "reprot"
