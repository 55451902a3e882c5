"""Config module exports."""

from aggrecov.config.loader import load_config
from aggrecov.config.models import (
    AggrecovConfig,
    LoggingConfig,
    LogOutputConfig,
    ReportConfig,
)

__all__ = [
    "load_config",
    "AggrecovConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "ReportConfig",
]
