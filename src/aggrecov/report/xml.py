"""XML report (``jacoco.xml``).

Structure:
<report name="title">
  <sessioninfo id="..." start="..." dump="..."/>
  <group name="module-a">
    <package name="com/example">
      <class name="com/example/Foo" sourcefilename="Foo.java">
        <method name="bar" desc="()V" line="10">
          <counter type="INSTRUCTION" missed="5" covered="10"/>
        </method>
        <counter type="INSTRUCTION" missed="5" covered="10"/>
      </class>
      <sourcefile name="Foo.java">
        <line nr="10" mi="0" ci="3" mb="0" cb="0"/>
        <counter type="LINE" missed="1" covered="2"/>
      </sourcefile>
      <counter .../>
    </package>
    <counter .../>
  </group>
  <counter .../>
</report>

Counters with nothing to count are omitted.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import structlog

from aggrecov.analysis.counters import CounterEntity
from aggrecov.analysis.coverage import (
    BundleCoverage,
    ClassCoverage,
    CoverageNode,
    GroupCoverage,
    PackageCoverage,
    SourceFileCoverage,
)
from aggrecov.report.formats import FormatterSettings
from aggrecov.report.output import write_text
from aggrecov.report.visitor import CollectingReportVisitor, ReportVisitor

log = structlog.get_logger(__name__)

XML_FILE_NAME = "jacoco.xml"


def _counters(parent: ET.Element, node: CoverageNode) -> None:
    for entity in CounterEntity:
        counter = node.counter(entity)
        if counter.total:
            ET.SubElement(
                parent,
                "counter",
                type=entity.value,
                missed=str(counter.missed),
                covered=str(counter.covered),
            )


def _class(parent: ET.Element, cls: ClassCoverage) -> None:
    attrs = {"name": cls.name}
    if cls.source_file_name:
        attrs["sourcefilename"] = cls.source_file_name
    el = ET.SubElement(parent, "class", attrs)
    for method in cls.methods:
        m_attrs = {"name": method.name, "desc": method.desc}
        if method.first_line >= 0:
            m_attrs["line"] = str(method.first_line)
        _counters(ET.SubElement(el, "method", m_attrs), method)
    _counters(el, cls)


def _source_file(parent: ET.Element, source: SourceFileCoverage) -> None:
    el = ET.SubElement(parent, "sourcefile", name=source.name)
    for nr in sorted(source.lines):
        line = source.lines[nr]
        ET.SubElement(
            el,
            "line",
            nr=str(nr),
            mi=str(line.instructions.missed),
            ci=str(line.instructions.covered),
            mb=str(line.branches.missed),
            cb=str(line.branches.covered),
        )
    _counters(el, source)


def _package(parent: ET.Element, package: PackageCoverage) -> None:
    el = ET.SubElement(parent, "package", name=package.name)
    for cls in package.classes:
        _class(el, cls)
    for source in package.source_files:
        _source_file(el, source)
    _counters(el, package)


def _bundle(parent: ET.Element, bundle: BundleCoverage) -> None:
    el = ET.SubElement(parent, "group", name=bundle.name)
    for package in bundle.packages:
        _package(el, package)
    _counters(el, bundle)


def _group_children(el: ET.Element, group: GroupCoverage) -> None:
    for bundle in group.bundles:
        _bundle(el, bundle)
    for child in group.groups:
        sub = ET.SubElement(el, "group", name=child.name)
        _group_children(sub, child)
        _counters(sub, child)


class _XmlVisitor(CollectingReportVisitor):
    def __init__(self, settings: FormatterSettings) -> None:
        super().__init__()
        self._settings = settings

    def render(self, root: GroupCoverage) -> None:
        report = ET.Element("report", name=root.name)
        for info in self.sessions:
            ET.SubElement(
                report, "sessioninfo", id=info.id, start=str(info.start), dump=str(info.dump)
            )
        _group_children(report, root)
        _counters(report, root)
        ET.indent(report)

        encoding = self._settings.output_encoding
        body = ET.tostring(report, encoding="unicode")
        text = f'<?xml version="1.0" encoding="{encoding}" standalone="yes"?>\n{body}\n'
        path = self._settings.output_directory / XML_FILE_NAME
        write_text(path, text, encoding)
        log.info("report_rendered", format="xml", path=str(path))


class XmlFormatter:
    def __init__(self, settings: FormatterSettings) -> None:
        self.settings = settings

    def create_visitor(self) -> ReportVisitor:
        return _XmlVisitor(self.settings)
