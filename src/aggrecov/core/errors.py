"""aggrecov error types with typed error codes.

Error code ranges:
- 1xxx: Filesystem
- 2xxx: Config
- 3xxx: Execution data
- 4xxx: Project / module resolution
- 5xxx: Analysis and coverage checks
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Filesystem (1xxx)
    FS_NOT_FOUND = 1001
    FS_NOT_A_DIRECTORY = 1002
    FS_UNREADABLE = 1003
    FS_MKDIR_FAILED = 1004
    FS_IO_ERROR = 1005

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Execution data (3xxx)
    EXEC_INVALID_HEADER = 3001
    EXEC_UNKNOWN_BLOCK = 3002
    EXEC_TRUNCATED = 3003
    EXEC_UNSUPPORTED_VERSION = 3004
    EXEC_INCOMPATIBLE = 3010

    # Project (4xxx)
    MODULE_RESOLUTION_FAILED = 4001

    # Analysis (5xxx)
    CLASS_FORMAT_ERROR = 5001
    COVERAGE_CHECK_FAILED = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class AggrecovError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'FS_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class FilesystemError(AggrecovError):
    """Missing or unreadable paths and failed directory creation."""

    @classmethod
    def not_found(cls, path: str) -> "FilesystemError":
        return cls(
            code=ErrorCode.FS_NOT_FOUND,
            message=f"Path does not exist: {path}",
            details={"path": path},
        )

    @classmethod
    def not_a_directory(cls, path: str) -> "FilesystemError":
        return cls(
            code=ErrorCode.FS_NOT_A_DIRECTORY,
            message=f"Not a directory: {path}",
            details={"path": path},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "FilesystemError":
        return cls(
            code=ErrorCode.FS_UNREADABLE,
            message=f"Cannot read {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def mkdir_failed(cls, path: str, reason: str) -> "FilesystemError":
        return cls(
            code=ErrorCode.FS_MKDIR_FAILED,
            message=f"Failed to create directory {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def io_error(cls, path: str, reason: str) -> "FilesystemError":
        return cls(
            code=ErrorCode.FS_IO_ERROR,
            message=f"I/O error on {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class ConfigError(AggrecovError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class CorruptDataError(AggrecovError):
    """Malformed execution data file."""

    @classmethod
    def invalid_header(cls, path: str) -> "CorruptDataError":
        return cls(
            code=ErrorCode.EXEC_INVALID_HEADER,
            message=f"Invalid execution data file: {path}",
            details={"path": path},
        )

    @classmethod
    def unknown_block(cls, path: str, block_type: int) -> "CorruptDataError":
        return cls(
            code=ErrorCode.EXEC_UNKNOWN_BLOCK,
            message=f"Unknown block type {block_type:#x} in {path}",
            details={"path": path, "block_type": block_type},
        )

    @classmethod
    def truncated(cls, path: str) -> "CorruptDataError":
        return cls(
            code=ErrorCode.EXEC_TRUNCATED,
            message=f"Unexpected end of execution data file: {path}",
            details={"path": path},
        )

    @classmethod
    def unsupported_version(cls, path: str, version: int) -> "CorruptDataError":
        return cls(
            code=ErrorCode.EXEC_UNSUPPORTED_VERSION,
            message=f"Incompatible execution data version {version:#x} in {path}",
            details={"path": path, "version": version},
        )


class IncompatibleDataError(AggrecovError):
    """Execution data for one class id that cannot be merged."""

    @classmethod
    def conflict(cls, class_id: int, reason: str) -> "IncompatibleDataError":
        return cls(
            code=ErrorCode.EXEC_INCOMPATIBLE,
            message=f"Incompatible execution data for class id {class_id:016x}: {reason}",
            details={"class_id": f"{class_id:016x}", "reason": reason},
        )


class ModuleResolutionError(AggrecovError):
    """A project descriptor could not be loaded."""

    @classmethod
    def failed(cls, path: str, reason: str) -> "ModuleResolutionError":
        return cls(
            code=ErrorCode.MODULE_RESOLUTION_FAILED,
            message=f"Cannot resolve module descriptor {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class ClassFormatError(AggrecovError):
    """Class file bytes that do not parse."""

    @classmethod
    def malformed(cls, reason: str) -> "ClassFormatError":
        return cls(
            code=ErrorCode.CLASS_FORMAT_ERROR,
            message=f"Malformed class file: {reason}",
            details={"reason": reason},
        )


class CoverageCheckError(AggrecovError):
    """Coverage rules were violated."""

    @classmethod
    def violations(cls, count: int) -> "CoverageCheckError":
        return cls(
            code=ErrorCode.COVERAGE_CHECK_FAILED,
            message=f"Coverage checks have not been met ({count} violation(s))",
            details={"violations": count},
        )


class InternalError(AggrecovError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
