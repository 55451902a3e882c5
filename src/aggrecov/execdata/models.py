"""Execution data records."""

from __future__ import annotations

from dataclasses import dataclass

from aggrecov.core.errors import IncompatibleDataError


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """One recorded session. Timestamps are epoch milliseconds."""

    id: str
    start: int
    dump: int

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.dump, self.start, self.id)


@dataclass(frozen=True, slots=True)
class ExecutionData:
    """Probe hits of one class, keyed by its structural id."""

    id: int
    name: str
    probes: tuple[bool, ...]

    @property
    def has_hits(self) -> bool:
        return any(self.probes)

    def assert_compatibility(self, id: int, name: str, probe_count: int) -> None:
        if self.id != id:
            raise IncompatibleDataError.conflict(
                self.id, f"different ids {self.id:016x} and {id:016x}"
            )
        if self.name != name:
            raise IncompatibleDataError.conflict(
                self.id, f"different class names {self.name} and {name}"
            )
        if len(self.probes) != probe_count:
            raise IncompatibleDataError.conflict(
                self.id,
                f"class {self.name} has {len(self.probes)} and {probe_count} probes",
            )

    def merge(self, other: ExecutionData) -> ExecutionData:
        """Return the probe-wise OR of both records.

        Raises:
            IncompatibleDataError: If id, name or probe count differ.
        """
        self.assert_compatibility(other.id, other.name, len(other.probes))
        return ExecutionData(
            id=self.id,
            name=self.name,
            probes=tuple(a or b for a, b in zip(self.probes, other.probes, strict=True)),
        )
