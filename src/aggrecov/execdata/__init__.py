"""Execution data: binary format, records and the merging store.

Usage:
    from aggrecov.execdata import ExecFileLoader

    loader = ExecFileLoader()
    loader.load(Path("module-a/target/jacoco.exec"))
    loader.load(Path("module-b/target/jacoco.exec"))  # merged, never replaced
    data = loader.execution_data.get(class_id)
"""

from aggrecov.execdata.io import (
    ExecFileContents,
    ExecutionDataReader,
    ExecutionDataWriter,
)
from aggrecov.execdata.models import ExecutionData, SessionInfo
from aggrecov.execdata.store import ExecFileLoader, ExecutionDataStore, SessionInfoStore

__all__ = [
    "ExecFileContents",
    "ExecFileLoader",
    "ExecutionData",
    "ExecutionDataReader",
    "ExecutionDataStore",
    "ExecutionDataWriter",
    "SessionInfo",
    "SessionInfoStore",
]
