"""Maven ``pom.xml`` descriptor loading.

Only the parts needed to locate coverage inputs are read:

<project>
  <parent><relativePath>../pom.xml</relativePath></parent>
  <artifactId>core</artifactId>
  <name>Core</name>
  <properties><project.build.sourceEncoding>UTF-8</project.build.sourceEncoding></properties>
  <modules><module>child</module></modules>
  <build>
    <directory>${project.basedir}/target</directory>
    <outputDirectory>${project.build.directory}/classes</outputDirectory>
    <sourceDirectory>src/main/java</sourceDirectory>
  </build>
</project>

The POM namespace is optional. ``${...}`` placeholders are resolved from
built-in project values and from properties, with the module's own
properties overriding those inherited from its parent.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path

from aggrecov.config.constants import (
    DEFAULT_BUILD_DIRECTORY,
    DEFAULT_OUTPUT_DIRECTORY,
    DEFAULT_PARENT_RELATIVE_PATH,
    DEFAULT_SOURCE_DIRECTORY,
    DESCRIPTOR_FILE_NAME,
    SOURCE_ENCODING_PROPERTY,
)
from aggrecov.core.errors import ModuleResolutionError
from aggrecov.project.models import ModuleDescriptor

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_MAX_INTERPOLATION_PASSES = 10


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element | None, name: str) -> ET.Element | None:
    if elem is None:
        return None
    for child in elem:
        if isinstance(child.tag, str) and _local(child.tag) == name:
            return child
    return None


def _text(elem: ET.Element | None, name: str) -> str | None:
    child = _child(elem, name)
    if child is None or child.text is None:
        return None
    value = child.text.strip()
    return value or None


def interpolate(value: str, values: dict[str, str]) -> str:
    """Replace ``${key}`` placeholders; unknown keys are left untouched."""
    for _ in range(_MAX_INTERPOLATION_PASSES):
        replaced = _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


def descriptor_path_for(path: Path) -> Path:
    """Map a module directory to its descriptor file; files pass through."""
    return path / DESCRIPTOR_FILE_NAME if path.is_dir() else path


class PomLoader:
    """Reads ``pom.xml`` files into :class:`ModuleDescriptor` objects."""

    def load(self, path: Path, parent: ModuleDescriptor | None = None) -> ModuleDescriptor:
        """Load one descriptor.

        Args:
            path: The ``pom.xml`` file or the directory holding it.
            parent: Already resolved parent, source of inherited properties.

        Raises:
            ModuleResolutionError: If the file is missing, malformed, or has
                no artifactId.
        """
        descriptor = descriptor_path_for(path).resolve()
        if not descriptor.is_file():
            raise ModuleResolutionError.failed(str(descriptor), "descriptor not found")

        try:
            root = ET.parse(descriptor).getroot()
        except ET.ParseError as e:
            raise ModuleResolutionError.failed(str(descriptor), f"invalid XML: {e}") from e
        except OSError as e:
            raise ModuleResolutionError.failed(str(descriptor), e.strerror or str(e)) from e

        if _local(root.tag) != "project":
            raise ModuleResolutionError.failed(
                str(descriptor), f"unexpected root element <{_local(root.tag)}>"
            )

        artifact_id = _text(root, "artifactId")
        if not artifact_id:
            raise ModuleResolutionError.failed(str(descriptor), "missing artifactId")

        base_dir = descriptor.parent
        parent_elem = _child(root, "parent")

        properties: dict[str, str] = dict(parent.properties) if parent else {}
        props_elem = _child(root, "properties")
        if props_elem is not None:
            for prop in props_elem:
                if isinstance(prop.tag, str):
                    properties[_local(prop.tag)] = (prop.text or "").strip()

        version = _text(root, "version") or _text(parent_elem, "version") or ""
        name = _text(root, "name") or artifact_id
        packaging = _text(root, "packaging") or "jar"

        values = dict(properties)
        values.update(
            {
                "basedir": str(base_dir),
                "project.basedir": str(base_dir),
                "project.artifactId": artifact_id,
                "project.version": version,
                "project.packaging": packaging,
            }
        )
        name = interpolate(name, values)
        values["project.name"] = name

        build = _child(root, "build")
        build_directory = self._resolve(
            base_dir,
            interpolate(_text(build, "directory") or DEFAULT_BUILD_DIRECTORY, values),
        )
        values["project.build.directory"] = str(build_directory)

        output_raw = _text(build, "outputDirectory") or "${project.build.directory}/" + (
            DEFAULT_OUTPUT_DIRECTORY
        )
        output_directory = self._resolve(base_dir, interpolate(output_raw, values))
        values["project.build.outputDirectory"] = str(output_directory)

        source_raw = _text(build, "sourceDirectory") or DEFAULT_SOURCE_DIRECTORY
        source_roots = (self._resolve(base_dir, interpolate(source_raw, values)),)

        resolved_props = {key: interpolate(val, values) for key, val in properties.items()}
        encoding = resolved_props.get(SOURCE_ENCODING_PROPERTY) or None

        modules_elem = _child(root, "modules")
        modules: list[str] = []
        if modules_elem is not None:
            for module in modules_elem:
                if isinstance(module.tag, str) and _local(module.tag) == "module":
                    text = (module.text or "").strip()
                    if text:
                        modules.append(interpolate(text, values))

        return ModuleDescriptor(
            artifact_id=artifact_id,
            base_dir=base_dir,
            descriptor_path=descriptor,
            build_directory=build_directory,
            output_directory=output_directory,
            name=name,
            version=version,
            packaging=packaging,
            modules=tuple(modules),
            source_roots=source_roots,
            source_encoding=encoding,
            parent_descriptor=self._parent_descriptor(base_dir, parent_elem),
            properties=resolved_props,
        )

    @staticmethod
    def _resolve(base_dir: Path, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else base_dir / path

    @staticmethod
    def _parent_descriptor(base_dir: Path, parent_elem: ET.Element | None) -> Path | None:
        if parent_elem is None:
            return None
        rel_elem = _child(parent_elem, "relativePath")
        if rel_elem is None:
            rel = DEFAULT_PARENT_RELATIVE_PATH
        else:
            # An empty <relativePath/> disables filesystem lookup of the parent
            rel = (rel_elem.text or "").strip()
            if not rel:
                return None
        candidate = base_dir / rel
        return descriptor_path_for(candidate)


def load_project(path: Path, loader: PomLoader | None = None) -> ModuleDescriptor:
    """Load the current project from a directory or descriptor path."""
    return (loader or PomLoader()).load(path)
