"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from aggrecov.config.models import LoggingConfig, LogOutputConfig
from aggrecov.core.logging import (
    clear_run_id,
    configure_logging,
    get_log_file_path,
    get_logger,
    get_run_id,
    set_run_id,
)


class TestRunIdCorrelation:
    """Run ID context variable tests."""

    def setup_method(self) -> None:
        clear_run_id()

    def test_given_run_id_when_set_then_can_retrieve(self) -> None:
        # When
        result = set_run_id("nightly-42")

        # Then
        assert result == "nightly-42"
        assert get_run_id() == "nightly-42"

    def test_given_no_id_when_set_then_generates_uuid(self) -> None:
        rid = set_run_id()

        assert len(rid) == 12

    def test_given_set_id_when_clear_then_removes_id(self) -> None:
        set_run_id("to-clear")

        clear_run_id()

        assert get_run_id() is None


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        clear_run_id()

    def teardown_method(self) -> None:
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_given_json_file_output_when_log_then_run_id_included(self, tmp_path: Path) -> None:
        """Every event of a run carries its correlation ID."""
        # Given
        log_file = tmp_path / "run.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        set_run_id("abc123")

        # When
        get_logger("aggregate").info("report_complete", bundles=2)

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "report_complete"
        assert data["bundles"] == 2
        assert data["run_id"] == "abc123"
        assert data["level"] == "info"
        assert get_log_file_path() == log_file

    def test_given_multi_output_config_when_configure_then_levels_respected(
        self, tmp_path: Path
    ) -> None:
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("class_analyzed")
        logger.info("bundle_analyzed")

        # Then
        assert "class_analyzed" not in info_file.read_text()
        assert "bundle_analyzed" in info_file.read_text()
        assert "class_analyzed" in debug_file.read_text()

    def test_given_console_only_when_configure_then_no_log_file(self) -> None:
        configure_logging(level="WARNING")

        assert get_log_file_path() is None

    def test_relative_file_destination_rejected(self) -> None:
        with pytest.raises(ValueError, match="absolute"):
            LogOutputConfig(destination="logs/run.log")
