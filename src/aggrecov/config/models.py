"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config() (CLI options)
2. Environment variables (AGGRECOV__SECTION__KEY)
3. Project YAML (<project>/.aggrecov.yaml)
4. Global YAML (~/.config/aggrecov/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    AGGRECOV__<SECTION>__<KEY>=<VALUE>

Examples:
    AGGRECOV__LOGGING__LEVEL=DEBUG
    AGGRECOV__REPORT__TITLE="Nightly coverage"
    AGGRECOV__REPORT__FORMATS='["xml","csv"]'
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from aggrecov.config.constants import DEFAULT_DATA_FILE_INCLUDES, DEFAULT_ENCODING
from aggrecov.report.check import Rule
from aggrecov.report.formats import ReportFormat

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        AGGRECOV__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG lists every class file and exec file touched.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ReportConfig(BaseModel):
    """Report aggregation options.

    Env vars:
        AGGRECOV__REPORT__DATA_ROOT_DIR: Report the current project alone, skip discovery
        AGGRECOV__REPORT__OUTPUT_DIRECTORY: Where reports are written
        AGGRECOV__REPORT__TITLE: Name of the top-level report group
    """

    data_root_dir: str | None = Field(
        default=None,
        description="When set, the current project is the only module and module "
        "discovery is skipped. Execution data is searched below the project base directory.",
    )
    output_directory: Path | None = Field(
        default=None,
        description="Report output directory. Default: <project>/target/site/jacoco.",
    )
    formats: list[ReportFormat] = Field(
        default_factory=lambda: [ReportFormat.HTML, ReportFormat.XML, ReportFormat.CSV],
        description="Report formats to emit.",
    )
    source_encoding: str | None = Field(
        default=None,
        description="Encoding of source files. Default: each module's "
        "project.build.sourceEncoding property, else UTF-8.",
    )
    output_encoding: str = Field(
        default=DEFAULT_ENCODING,
        description="Encoding of the generated reports.",
    )
    title: str | None = Field(
        default=None,
        description="Name of the top-level report group. Default: project name.",
    )
    footer: str | None = Field(default=None, description="Footer text of HTML pages.")
    locale: str | None = Field(
        default=None,
        description="Locale tag for HTML pages (e.g. en-US). Default: system locale.",
    )
    include_current_project: bool = Field(
        default=False,
        description="Add the current project as a bundle before the discovered modules.",
    )
    includes: list[str] = Field(
        default_factory=list,
        description="Class file patterns to include (* and ?). Empty: everything.",
    )
    excludes: list[str] = Field(
        default_factory=list,
        description="Class file patterns to exclude (* and ?). Empty: nothing.",
    )
    data_file_includes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DATA_FILE_INCLUDES),
        description="Execution data file patterns, relative to each module base directory.",
    )
    data_file_excludes: list[str] = Field(default_factory=list)
    rules: list[Rule] = Field(
        default_factory=list,
        description="Coverage rules checked against the analyzed bundles.",
    )
    halt_on_failure: bool = Field(
        default=True,
        description="Fail the run when a coverage rule is violated.",
    )

    @field_validator("formats")
    @classmethod
    def validate_formats(cls, v: list[ReportFormat]) -> list[ReportFormat]:
        if not v:
            raise ValueError("At least one report format is required")
        # Keep declared order, drop duplicates
        return list(dict.fromkeys(v))

    @field_validator("source_encoding", "output_encoding")
    @classmethod
    def validate_encoding(cls, v: str | None) -> str | None:
        if v is None:
            return v
        import codecs

        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
        return v


class AggrecovConfig(BaseModel):
    """Root configuration for aggrecov."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
