"""In-memory accumulation of execution data across files.

Loads only ever add: a record for a class id already present is OR-merged
into the existing one, never replacing it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

import structlog

from aggrecov.core.errors import FilesystemError
from aggrecov.execdata.io import ExecutionDataReader, ExecutionDataWriter
from aggrecov.execdata.models import ExecutionData, SessionInfo

log = structlog.get_logger(__name__)


class ExecutionDataStore:
    """Execution data keyed by structural class id."""

    def __init__(self) -> None:
        self._entries: dict[int, ExecutionData] = {}
        self._names: set[str] = set()

    def put(self, data: ExecutionData) -> None:
        """Add ``data``, merging with an existing record for the same id.

        Raises:
            IncompatibleDataError: If the existing record has another name or
                probe count.
        """
        existing = self._entries.get(data.id)
        if existing is None:
            self._entries[data.id] = data
            self._names.add(data.name)
        else:
            self._entries[data.id] = existing.merge(data)

    def get(self, class_id: int) -> ExecutionData | None:
        return self._entries.get(class_id)

    def contains(self, name: str) -> bool:
        """Whether any record was stored under this VM class name."""
        return name in self._names

    def contents(self) -> list[ExecutionData]:
        """All records, sorted by class name then id."""
        return sorted(self._entries.values(), key=lambda d: (d.name, d.id))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ExecutionData]:
        return iter(self.contents())


class SessionInfoStore:
    """Collects session infos from every loaded file."""

    def __init__(self) -> None:
        self._infos: list[SessionInfo] = []

    def put(self, info: SessionInfo) -> None:
        self._infos.append(info)

    def infos(self) -> list[SessionInfo]:
        """Sessions ordered by dump time."""
        return sorted(self._infos, key=lambda s: s.sort_key)

    def is_empty(self) -> bool:
        return not self._infos

    def __len__(self) -> int:
        return len(self._infos)


class ExecFileLoader:
    """Loads one or more exec files into a shared pair of stores."""

    def __init__(self) -> None:
        self.execution_data = ExecutionDataStore()
        self.session_infos = SessionInfoStore()
        self._reader = ExecutionDataReader()

    def load(self, path: Path) -> None:
        """Read ``path`` and add its content to the stores.

        Raises:
            FilesystemError: If the file cannot be read.
            CorruptDataError: If the content is malformed (names the path).
            IncompatibleDataError: If a record conflicts with loaded data.
        """
        log.info("loading_exec_file", path=str(path))
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            raise FilesystemError.not_found(str(path)) from e
        except OSError as e:
            raise FilesystemError.unreadable(str(path), e.strerror or str(e)) from e

        contents = self._reader.read(data, source=str(path))
        self.load_contents(contents.sessions, contents.executions)
        log.debug(
            "exec_file_loaded",
            path=str(path),
            sessions=len(contents.sessions),
            classes=len(contents.executions),
        )

    def load_contents(
        self, sessions: Iterable[SessionInfo], executions: Iterable[ExecutionData]
    ) -> None:
        for info in sessions:
            self.session_infos.put(info)
        for data in executions:
            self.execution_data.put(data)

    def dump(self) -> bytes:
        """Serialize both stores in execution data format."""
        writer = ExecutionDataWriter()
        for info in self.session_infos.infos():
            writer.visit_session_info(info)
        for data in self.execution_data.contents():
            writer.visit_class_execution(data)
        return writer.getvalue()

    def save(self, path: Path, *, append: bool = False) -> None:
        """Write the merged content to ``path``.

        Raises:
            FilesystemError: If the file cannot be written.
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("ab" if append else "wb") as f:
                f.write(self.dump())
        except OSError as e:
            raise FilesystemError.io_error(str(path), e.strerror or str(e)) from e
        log.info("exec_file_saved", path=str(path), classes=len(self.execution_data))

