"""Include/exclude file selection below a root directory.

Patterns are matched against the ``/``-separated path relative to the root:

- ``*`` matches any run of characters inside one path segment
- ``?`` matches exactly one character inside a segment
- ``**`` matches any number of whole segments (including none)
- a trailing ``/`` is shorthand for ``/**``

A file is selected iff it matches at least one include pattern (everything
when no include is given) and no exclude pattern. VCS metadata directories
are never entered.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Sequence
from pathlib import Path

import structlog

from aggrecov.core.errors import FilesystemError

log = structlog.get_logger(__name__)

DEFAULT_EXCLUDED_DIRS: frozenset[str] = frozenset(
    (
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        "CVS",
        "SCCS",
        "RCS",
        "_darcs",
    )
)
"""Directories never traversed, whatever the patterns say."""

MATCH_ALL = "**"


def _translate_segment(segment: str) -> str:
    parts: list[str] = []
    for ch in segment:
        if ch == "*":
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile one wildcard pattern into an anchored regex over relative paths."""
    normalized = pattern.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    normalized = normalized.lstrip("/")
    if not normalized or normalized.endswith("/"):
        normalized += MATCH_ALL

    segments = normalized.split("/")
    regex: list[str] = []
    last = len(segments) - 1
    for i, segment in enumerate(segments):
        if segment == MATCH_ALL:
            regex.append(".*" if i == last else "(?:.*/)?")
        else:
            regex.append(_translate_segment(segment))
            if i != last:
                regex.append("/")
    return re.compile("".join(regex))


class FileFilter:
    """Select files below a directory by include/exclude patterns."""

    def __init__(
        self,
        includes: Sequence[str] | None = None,
        excludes: Sequence[str] | None = None,
    ) -> None:
        self._includes = [p for p in (includes or []) if p.strip()]
        self._excludes = [p for p in (excludes or []) if p.strip()]
        self._include_res = [compile_pattern(p) for p in self.get_includes()]
        self._exclude_res = [compile_pattern(p) for p in self._excludes]

    def get_includes(self) -> list[str]:
        """Effective include patterns (``**`` when none were given)."""
        return list(self._includes) if self._includes else [MATCH_ALL]

    def get_excludes(self) -> list[str]:
        return list(self._excludes)

    def matches(self, relative_path: str) -> bool:
        """Check a ``/``-separated path relative to the filter root."""
        if not any(r.fullmatch(relative_path) for r in self._include_res):
            return False
        return not any(r.fullmatch(relative_path) for r in self._exclude_res)

    def get_files(self, root: Path) -> list[Path]:
        """Return matching files below ``root``, sorted by relative path.

        Raises:
            FilesystemError: If root is missing, not a directory or unreadable.
        """
        if not root.exists():
            raise FilesystemError.not_found(str(root))
        if not root.is_dir():
            raise FilesystemError.not_a_directory(str(root))
        if not os.access(root, os.R_OK | os.X_OK):
            raise FilesystemError.unreadable(str(root), "permission denied")

        matched = [(rel, path) for rel, path in self._walk(root) if self.matches(rel)]
        matched.sort(key=lambda item: item[0])
        log.debug(
            "files_filtered",
            root=str(root),
            includes=self.get_includes(),
            excludes=self._excludes,
            matched=len(matched),
        )
        return [path for _, path in matched]

    def _walk(self, root: Path) -> Iterable[tuple[str, Path]]:
        visited: set[str] = set()

        def _on_error(err: OSError) -> None:
            log.warning("directory_unreadable", path=err.filename, error=err.strerror)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=True):
            real = os.path.realpath(dirpath)
            if real in visited:
                # Reached again through a symlink, do not descend
                dirnames[:] = []
                continue
            visited.add(real)

            dirnames[:] = sorted(d for d in dirnames if d not in DEFAULT_EXCLUDED_DIRS)
            base = Path(dirpath)
            rel_dir = base.relative_to(root).as_posix()
            for name in sorted(filenames):
                rel = name if rel_dir == "." else f"{rel_dir}/{name}"
                yield rel, base / name
