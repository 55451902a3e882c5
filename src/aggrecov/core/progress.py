"""Terminal feedback for the CLI commands.

Everything goes to stderr through one rich console, so ``--json`` output on
stdout stays machine-readable. Outside a terminal the spinner degrades to a
plain line.

    with task("Writing coverage report"):
        aggregator.run(project)
    # ✓ Writing coverage report (1.3s)
"""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Literal

import structlog
from rich.console import Console

Style = Literal["success", "error", "warning", "info", "none"]

_PREFIXES: dict[str, str] = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_console = Console(stderr=True)
_spinner_state = threading.local()


def is_console_suppressed() -> bool:
    """True while a spinner in this thread owns the terminal line."""
    return bool(getattr(_spinner_state, "depth", 0))


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    # Nesting-safe: only the outermost block re-enables console records
    _spinner_state.depth = getattr(_spinner_state, "depth", 0) + 1
    try:
        yield
    finally:
        _spinner_state.depth -= 1


def get_console() -> Console:
    return _console


def _log() -> structlog.stdlib.BoundLogger:
    # Resolved per call so reconfiguration after import is honored
    return structlog.get_logger("aggrecov.progress")  # type: ignore[no-any-return]


def status(message: str, *, style: Style = "info", indent: int = 0) -> None:
    """Print one styled line, e.g. ``✓ 2 modules, 2 bundles``."""
    _console.print(f"{' ' * indent}{_PREFIXES.get(style, '')}{message}", highlight=False)
    _log().debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


@contextmanager
def spinner(message: str, *, indent: int = 0) -> Iterator[None]:
    padding = " " * indent
    if not sys.stderr.isatty():
        _console.print(f"{padding}{message}...", highlight=False)
        yield
        return
    with suppress_console_logs(), _console.status(f"{padding}[cyan]{message}[/cyan]"):
        yield


@contextmanager
def task(name: str) -> Iterator[None]:
    """Report ``name`` as done with its duration, or as failed and re-raise."""
    started = time.perf_counter()
    _log().debug("task_start", task=name)
    try:
        yield
    except Exception as e:
        elapsed = time.perf_counter() - started
        status(f"{name} failed: {e}", style="error")
        _log().error("task_failed", task=name, elapsed_s=round(elapsed, 3), error=str(e))
        raise
    elapsed = time.perf_counter() - started
    status(f"{name} ({elapsed:.1f}s)", style="success")
    _log().debug("task_done", task=name, elapsed_s=round(elapsed, 3))
