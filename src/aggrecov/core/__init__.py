"""Core module exports."""

from aggrecov.core.errors import (
    AggrecovError,
    ClassFormatError,
    ConfigError,
    CorruptDataError,
    CoverageCheckError,
    ErrorCode,
    FilesystemError,
    IncompatibleDataError,
    InternalError,
    ModuleResolutionError,
)
from aggrecov.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from aggrecov.core.progress import pluralize, spinner, status, task

__all__ = [
    # Errors
    "AggrecovError",
    "ClassFormatError",
    "ConfigError",
    "CorruptDataError",
    "CoverageCheckError",
    "ErrorCode",
    "FilesystemError",
    "IncompatibleDataError",
    "InternalError",
    "ModuleResolutionError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Progress
    "pluralize",
    "spinner",
    "status",
    "task",
]
