"""File selection by include/exclude patterns."""

from aggrecov.files.filter import DEFAULT_EXCLUDED_DIRS, FileFilter, compile_pattern

__all__ = ["DEFAULT_EXCLUDED_DIRS", "FileFilter", "compile_pattern"]
