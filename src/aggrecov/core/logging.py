"""structlog setup for report runs.

Every event goes through the stdlib root logger, so one run can write a
human-readable stream to the terminal and a JSON trail to a file at a
different level. Events logged after ``set_run_id()`` carry a ``run_id``
field, which ties the exec files, bundles and violations of one report run
together in a shared log file.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from aggrecov.config.models import LoggingConfig, LogOutputConfig

_STREAMS = ("stderr", "stdout")

_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_log_file: Path | None = None


def get_run_id() -> str | None:
    return _run_id.get()


def set_run_id(run_id: str | None = None) -> str:
    """Start tagging events with ``run_id`` (a fresh 12-char hex id if omitted)."""
    value = run_id or uuid4().hex[:12]
    _run_id.set(value)
    return value


def clear_run_id() -> None:
    _run_id.set(None)


def get_log_file_path() -> Path | None:
    """First file output of the active configuration, if any."""
    return _log_file


def _tag_run(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    run_id = _run_id.get()
    if run_id is not None:
        event_dict.setdefault("run_id", run_id)
    return event_dict


def _level(name: str | None, fallback: int = logging.INFO) -> int:
    if not name:
        return fallback
    return logging.getLevelNamesMapping().get(name.upper(), fallback)


class ConsoleSuppressingFilter(logging.Filter):
    """Drops terminal records while a spinner owns the line."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        from aggrecov.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _open_handler(destination: str) -> logging.Handler:
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _formatter(
    output: LogOutputConfig, pre_chain: list[structlog.types.Processor]
) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        stream = sys.stdout if output.destination == "stdout" else sys.stderr
        renderer = structlog.dev.ConsoleRenderer(
            colors=output.destination in _STREAMS and stream.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog through stdlib handlers, one per configured output.

    Without ``config`` a single stderr output at ``level`` is used.
    Calling this again replaces every handler installed before.
    """
    global _log_file
    from aggrecov.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        output = LogOutputConfig(format="json" if json_format else "console")
        config = LoggingConfig(level=level, outputs=[output])

    root_level = _level(config.level)
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _tag_run,  # type: ignore[list-item]
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(root_level)

    _log_file = None
    for output in config.outputs:
        handler = _open_handler(output.destination)
        if output.destination in _STREAMS:
            handler.addFilter(ConsoleSuppressingFilter())
        elif _log_file is None:
            _log_file = Path(output.destination)
        handler.setLevel(_level(output.level, root_level))
        handler.setFormatter(_formatter(output, pre_chain))
        root.addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    return logger.bind(logger=name) if name else logger  # type: ignore[no-any-return]
