"""Layered configuration for report runs.

Layers, lowest priority first:

- built-in defaults
- ``~/.config/aggrecov/config.yaml``
- ``<project>/.aggrecov.yaml`` (or an explicit ``config_file``)
- ``AGGRECOV__SECTION__KEY`` environment variables
- keyword overrides (the CLI options)
"""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from aggrecov.config.models import AggrecovConfig, LoggingConfig, ReportConfig
from aggrecov.core.errors import ConfigError

log = structlog.get_logger(__name__)

GLOBAL_CONFIG_PATH = Path("~/.config/aggrecov/config.yaml").expanduser()
PROJECT_CONFIG_NAME = ".aggrecov.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    """Mapping stored in ``path``; an absent or empty file is ``{}``."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class _FileLayer(PydanticBaseSettingsSource):
    """Already merged YAML files, offered below env vars and overrides."""

    def __init__(self, settings_cls: type[BaseSettings], data: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._data


class _Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AGGRECOV__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    logging: LoggingConfig = LoggingConfig()
    report: ReportConfig = ReportConfig()


def _settings_for(file_data: dict[str, Any]) -> type[_Settings]:
    class LayeredSettings(_Settings):
        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # First source wins
            return (init_settings, env_settings, _FileLayer(settings_cls, file_data))

    return LayeredSettings


def load_config(
    project_dir: Path | None = None,
    *,
    config_file: Path | None = None,
    **overrides: Any,
) -> AggrecovConfig:
    """Resolve the configuration for the project in ``project_dir``.

    Args:
        project_dir: Directory holding ``.aggrecov.yaml``. Defaults to the
            current working directory.
        config_file: Use this file instead of the project's
            ``.aggrecov.yaml``. It must exist.
        **overrides: Section overrides, e.g. ``report={"title": "Nightly"}``.

    Raises:
        ConfigError: A file is missing, malformed, or a value is invalid.
    """
    if config_file is not None:
        if not config_file.is_file():
            raise ConfigError.file_not_found(str(config_file))
        project_layer = config_file
    else:
        project_layer = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME

    file_data: dict[str, Any] = {}
    for layer in (GLOBAL_CONFIG_PATH, project_layer):
        data = _load_yaml(layer)
        if data:
            log.debug("config_layer_loaded", path=str(layer), sections=sorted(data))
            file_data = _deep_merge(file_data, data)

    try:
        settings = _settings_for(file_data)(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ConfigError.invalid_value(field, first.get("input"), first["msg"]) from e

    return AggrecovConfig(logging=settings.logging, report=settings.report)
