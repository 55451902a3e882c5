"""Source file lookup for source-annotated report pages."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

DEFAULT_TAB_WIDTH = 4


class NoSourceLocator:
    """Locator for bundles without source roots."""

    tab_width = DEFAULT_TAB_WIDTH

    def get_source_file(self, package_name: str, file_name: str) -> str | None:
        return None


class SourceFileCollection:
    """Looks up ``<package>/<file>`` below each root; the first hit wins."""

    def __init__(
        self, roots: Sequence[Path], encoding: str, tab_width: int = DEFAULT_TAB_WIDTH
    ) -> None:
        self.roots = list(roots)
        self.encoding = encoding
        self.tab_width = tab_width

    def get_source_file(self, package_name: str, file_name: str) -> str | None:
        rel = f"{package_name}/{file_name}" if package_name else file_name
        for root in self.roots:
            candidate = root / rel
            if not candidate.is_file():
                continue
            try:
                return candidate.read_text(encoding=self.encoding, errors="replace")
            except OSError as e:
                log.warning("source_file_unreadable", path=str(candidate), error=str(e))
        return None
