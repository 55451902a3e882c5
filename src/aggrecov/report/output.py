"""File output helpers shared by the formatters."""

from __future__ import annotations

import os
from pathlib import Path

from aggrecov.core.errors import FilesystemError


def ensure_directory(path: Path) -> Path:
    """Create ``path`` (and parents) if missing.

    Raises:
        FilesystemError: If the directory cannot be created, e.g. because a
            file of that name is in the way.
    """
    if path.exists() and not path.is_dir():
        raise FilesystemError.mkdir_failed(str(path), "a file with that name exists")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError.mkdir_failed(str(path), e.strerror or str(e)) from e
    return path


def write_text(path: Path, text: str, encoding: str) -> None:
    ensure_directory(path.parent)
    try:
        path.write_text(text, encoding=encoding, errors="xmlcharrefreplace")
    except OSError as e:
        raise FilesystemError.io_error(str(path), e.strerror or str(e)) from e


def publish_tree(staging: Path, target: Path) -> list[Path]:
    """Move every file below ``staging`` to the same relative path in ``target``.

    Existing files are replaced. Returns the published paths, sorted.

    Raises:
        FilesystemError: If a file cannot be moved.
    """
    published = []
    for source in sorted(p for p in staging.rglob("*") if p.is_file()):
        dest = target / source.relative_to(staging)
        ensure_directory(dest.parent)
        try:
            os.replace(source, dest)
        except OSError as e:
            raise FilesystemError.io_error(str(dest), e.strerror or str(e)) from e
        published.append(dest)
    return published
