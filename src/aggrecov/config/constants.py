"""Configuration constants.

Values that are not user-configurable: descriptor names and build layout
conventions. For configurable values, see models.py.
"""

# =============================================================================
# Project layout (Maven conventions)
# =============================================================================

DESCRIPTOR_FILE_NAME = "pom.xml"
"""Project descriptor file inside every module directory."""

DEFAULT_BUILD_DIRECTORY = "target"
DEFAULT_OUTPUT_DIRECTORY = "classes"
"""Compiled classes, relative to the build directory."""

DEFAULT_SOURCE_DIRECTORY = "src/main/java"
DEFAULT_PARENT_RELATIVE_PATH = "../pom.xml"

DEFAULT_REPORT_SUBDIRECTORY = "site/jacoco"
"""Report output below the current project's build directory."""

SOURCE_ENCODING_PROPERTY = "project.build.sourceEncoding"

# =============================================================================
# Report defaults
# =============================================================================

DEFAULT_ENCODING = "UTF-8"

DEFAULT_DATA_FILE_INCLUDES: tuple[str, ...] = ("target/*.exec",)
"""Execution data files searched relative to each module base directory."""
