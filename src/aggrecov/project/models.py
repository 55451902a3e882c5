"""Project module descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ModuleDescriptor:
    """One project unit as declared by its descriptor file.

    Paths are absolute. ``modules`` keeps the declared order of child module
    names; they are relative to ``base_dir``.
    """

    artifact_id: str
    base_dir: Path
    descriptor_path: Path
    build_directory: Path
    output_directory: Path
    name: str = ""
    version: str = ""
    packaging: str = "jar"
    modules: tuple[str, ...] = ()
    source_roots: tuple[Path, ...] = ()
    source_encoding: str | None = None
    parent_descriptor: Path | None = None
    properties: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def display_name(self) -> str:
        """Human name, falling back to the artifact id."""
        return self.name or self.artifact_id

    @property
    def has_modules(self) -> bool:
        return bool(self.modules)
