"""HTML report: browsable pages from the report group down to source lines.

Layout below the output directory:
    index.html                       root group
    jacoco-sessions.html             sessions and classes with execution data
    jacoco-resources/report.css
    <group>/index.html               nested groups
    <bundle>/index.html              packages of a bundle
    <bundle>/<package>/index.html    classes of a package
    <bundle>/<package>/<Class>.html  methods of a class
    <bundle>/<package>/<File>.html   annotated source, when the locator finds it

Folder and file names are made unique within their parent.
"""

from __future__ import annotations

import html
import locale as _locale
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import PurePosixPath

import structlog

from aggrecov.analysis.counters import CounterEntity, CoverageStatus
from aggrecov.analysis.coverage import (
    BundleCoverage,
    ClassCoverage,
    CoverageNode,
    GroupCoverage,
    PackageCoverage,
    SourceFileCoverage,
)
from aggrecov.report.csv import java_class_name, java_package_name
from aggrecov.report.formats import FormatterSettings
from aggrecov.report.output import write_text
from aggrecov.report.visitor import CollectingReportVisitor, ReportVisitor, SourceLocator

log = structlog.get_logger(__name__)

INDEX_FILE = "index.html"
SESSIONS_FILE = "jacoco-sessions.html"
RESOURCES_DIR = "jacoco-resources"
STYLESHEET = "report.css"

TABLE_COUNTERS = (
    CounterEntity.INSTRUCTION,
    CounterEntity.BRANCH,
    CounterEntity.COMPLEXITY,
    CounterEntity.LINE,
    CounterEntity.METHOD,
    CounterEntity.CLASS,
)

_LINE_CLASS = {
    CoverageStatus.NOT_COVERED: "nc",
    CoverageStatus.FULLY_COVERED: "fc",
    CoverageStatus.PARTLY_COVERED: "pc",
}

_UNSAFE = re.compile(r"[^A-Za-z0-9._\-$]")
_RESERVED = frozenset({"index", INDEX_FILE, "jacoco-sessions", SESSIONS_FILE, RESOURCES_DIR})

CSS = """\
body { font-family: sans-serif; font-size: 10pt; margin: 1.5em; color: #222; }
h1 { font-size: 18pt; }
.breadcrumb { background: #eee; padding: 4px 8px; margin-bottom: 1em; }
.breadcrumb a { color: #05a; }
table.coverage { border-collapse: collapse; }
table.coverage th, table.coverage td { padding: 2px 8px; border-bottom: 1px solid #ddd; }
table.coverage td.ctr { text-align: right; }
table.coverage tfoot td { font-weight: bold; border-top: 2px solid #999; }
pre.source { border: 1px solid #ccc; padding: 4px; line-height: 1.3; }
pre.source span.nc { background-color: #fcc; }
pre.source span.pc { background-color: #ffc; }
pre.source span.fc { background-color: #cfc; }
.footer { margin-top: 2em; color: #777; font-size: 8pt; }
"""


def page_lang(tag: str | None) -> str:
    """HTML ``lang`` value for a locale tag, falling back to the system locale."""
    if not tag:
        tag = _locale.getlocale()[0] or "en"
    return tag.split(".")[0].replace("_", "-")


def _percent(node: CoverageNode, entity: CounterEntity) -> str:
    counter = node.counter(entity)
    return f"{counter.covered_ratio:.0%}" if counter.total else "n/a"


class _Names:
    """Hands out names unique within one directory (case-insensitively)."""

    def __init__(self) -> None:
        self._used: set[str] = set()

    def get(self, name: str) -> str:
        base = _UNSAFE.sub("_", name) or "_"
        candidate = base
        n = 1
        while candidate.lower() in self._used or candidate.lower() in _RESERVED:
            candidate = f"{base}~{n}"
            n += 1
        self._used.add(candidate.lower())
        return candidate


class _HtmlVisitor(CollectingReportVisitor):
    def __init__(self, settings: FormatterSettings) -> None:
        super().__init__()
        self._settings = settings
        self._lang = page_lang(settings.locale)
        self._created = datetime.now(UTC).strftime("%Y-%m-%d %H:%M")
        self._pages = 0

    # -- page scaffolding ----------------------------------------------------

    def _write(
        self, path: PurePosixPath, title: str, trail: Sequence[tuple[str, str]], body: str
    ) -> None:
        """Write one page. ``trail`` holds (label, href relative to root) pairs."""
        up = "../" * (len(path.parts) - 1)
        crumbs = "".join(
            f'<a href="{up}{href}">{html.escape(label)}</a> &gt; ' for label, href in trail
        )
        footer = html.escape(self._settings.footer) if self._settings.footer else ""
        charset = html.escape(self._settings.output_encoding)
        text = f"""<!DOCTYPE html>
<html lang="{html.escape(self._lang)}">
<head>
<meta charset="{charset}">
<title>{html.escape(title)}</title>
<link rel="stylesheet" href="{up}{RESOURCES_DIR}/{STYLESHEET}">
</head>
<body>
<div class="breadcrumb">{crumbs}<span>{html.escape(title)}</span>
 | <a href="{up}{SESSIONS_FILE}">Sessions</a></div>
<h1>{html.escape(title)}</h1>
{body}
<div class="footer">{footer} Created {self._created}</div>
</body>
</html>
"""
        write_text(self._settings.output_directory / path, text, self._settings.output_encoding)
        self._pages += 1

    def _table(
        self,
        rows: Sequence[tuple[str, str | None, CoverageNode]],
        total: CoverageNode,
        first_header: str = "Element",
    ) -> str:
        """Coverage table; rows are (label, href or None, node)."""
        header = "".join(
            f"<th>Missed {entity.value.title()}</th><th>Cov.</th>" for entity in TABLE_COUNTERS
        )
        lines = [
            '<table class="coverage">',
            f"<thead><tr><th>{html.escape(first_header)}</th>{header}</tr></thead>",
            f"<tfoot><tr><td>Total</td>{self._cells(total)}</tr></tfoot>",
            "<tbody>",
        ]
        for label, href, node in rows:
            cell = html.escape(label)
            if href is not None:
                cell = f'<a href="{href}">{cell}</a>'
            lines.append(f"<tr><td>{cell}</td>{self._cells(node)}</tr>")
        lines += ["</tbody>", "</table>"]
        return "\n".join(lines)

    @staticmethod
    def _cells(node: CoverageNode) -> str:
        cells = []
        for entity in TABLE_COUNTERS:
            counter = node.counter(entity)
            cells.append(
                f'<td class="ctr">{counter.missed} of {counter.total}</td>'
                f'<td class="ctr">{_percent(node, entity)}</td>'
            )
        return "".join(cells)

    # -- rendering -----------------------------------------------------------

    def render(self, root: GroupCoverage) -> None:
        css = self._settings.output_directory / RESOURCES_DIR / STYLESHEET
        write_text(css, CSS, "UTF-8")
        self._render_group(root, PurePosixPath(), [])
        self._render_sessions([(root.name, INDEX_FILE)])
        log.info(
            "report_rendered",
            format="html",
            path=str(self._settings.output_directory / INDEX_FILE),
            pages=self._pages,
        )

    def _render_group(
        self, group: GroupCoverage, folder: PurePosixPath, trail: list[tuple[str, str]]
    ) -> None:
        names = _Names()
        here = [*trail, (group.name, str(folder / INDEX_FILE))]
        rows: list[tuple[str, str | None, CoverageNode]] = []
        for child in group.groups:
            sub = folder / names.get(child.name)
            self._render_group(child, sub, here)
            rows.append((child.name, f"{sub.name}/{INDEX_FILE}", child))
        for bundle in group.bundles:
            sub = folder / names.get(bundle.name)
            self._render_bundle(bundle, sub, here)
            rows.append((bundle.name, f"{sub.name}/{INDEX_FILE}", bundle))
        self._write(folder / INDEX_FILE, group.name, trail, self._table(rows, group))

    def _render_bundle(
        self, bundle: BundleCoverage, folder: PurePosixPath, trail: list[tuple[str, str]]
    ) -> None:
        names = _Names()
        here = [*trail, (bundle.name, str(folder / INDEX_FILE))]
        locator = self.locator_for(bundle)
        rows: list[tuple[str, str | None, CoverageNode]] = []
        for package in bundle.packages:
            label = java_package_name(package.name)
            sub = folder / names.get(label)
            self._render_package(package, sub, here, locator)
            rows.append((label, f"{sub.name}/{INDEX_FILE}", package))
        body = self._table(rows, bundle, "Package")
        if not bundle.contains_code:
            body = "<p>No class files analyzed for this module.</p>\n" + body
        self._write(folder / INDEX_FILE, bundle.name, trail, body)

    def _render_package(
        self,
        package: PackageCoverage,
        folder: PurePosixPath,
        trail: list[tuple[str, str]],
        locator: SourceLocator | None,
    ) -> None:
        label = java_package_name(package.name)
        names = _Names()
        here = [*trail, (label, str(folder / INDEX_FILE))]

        source_pages: dict[str, str] = {}
        for source in package.source_files:
            text = locator.get_source_file(package.name, source.name) if locator else None
            if text is None:
                continue
            page = names.get(source.name) + ".html"
            tab_width = locator.tab_width if locator else 4
            self._render_source(source, text, tab_width, folder / page, here)
            source_pages[source.name] = page

        rows: list[tuple[str, str | None, CoverageNode]] = []
        for cls in package.classes:
            page = names.get(cls.simple_name) + ".html"
            source_page = source_pages.get(cls.source_file_name or "")
            self._render_class(cls, folder / page, here, source_page)
            rows.append((java_class_name(cls.simple_name), page, cls))
        self._write(folder / INDEX_FILE, label, trail, self._table(rows, package, "Class"))

    def _render_class(
        self,
        cls: ClassCoverage,
        path: PurePosixPath,
        trail: list[tuple[str, str]],
        source_page: str | None,
    ) -> None:
        rows: list[tuple[str, str | None, CoverageNode]] = []
        for method in cls.methods:
            href = None
            if source_page is not None and method.first_line >= 0:
                href = f"{source_page}#L{method.first_line}"
            rows.append((f"{method.name}{method.desc}", href, method))
        self._write(path, java_class_name(cls.simple_name), trail, self._table(rows, cls, "Method"))

    def _render_source(
        self,
        source: SourceFileCoverage,
        text: str,
        tab_width: int,
        path: PurePosixPath,
        trail: list[tuple[str, str]],
    ) -> None:
        out = []
        for nr, raw in enumerate(text.splitlines(), 1):
            escaped = html.escape(raw.expandtabs(tab_width))
            line = source.lines.get(nr)
            css = _LINE_CLASS.get(line.status) if line is not None else None
            if css is None:
                out.append(f'<span id="L{nr}">{escaped}</span>')
                continue
            title = ""
            if line.branches.total:
                title = (
                    f' title="{line.branches.missed} of {line.branches.total} branches missed."'
                )
            out.append(f'<span class="{css}" id="L{nr}"{title}>{escaped}</span>')
        body = '<pre class="source">' + "\n".join(out) + "</pre>"
        self._write(path, source.name, trail, body)

    def _render_sessions(self, trail: list[tuple[str, str]]) -> None:
        parts = [
            '<table class="coverage">',
            "<thead><tr><th>Session</th><th>Start Time</th><th>Dump Time</th></tr></thead>",
            "<tbody>",
        ]
        for info in self.sessions:
            start = datetime.fromtimestamp(info.start / 1000, UTC).strftime("%Y-%m-%d %H:%M:%S")
            dump = datetime.fromtimestamp(info.dump / 1000, UTC).strftime("%Y-%m-%d %H:%M:%S")
            parts.append(
                f"<tr><td>{html.escape(info.id)}</td><td>{start}</td><td>{dump}</td></tr>"
            )
        parts += ["</tbody>", "</table>"]
        if not self.sessions:
            parts.append("<p>No session information available.</p>")

        parts += [
            "<h2>Execution Data</h2>",
            '<table class="coverage">',
            "<thead><tr><th>Class</th><th>Id</th></tr></thead>",
            "<tbody>",
        ]
        for data in self.contents:
            parts.append(
                f"<tr><td>{html.escape(data.name.replace('/', '.'))}</td>"
                f"<td><code>{data.id:016x}</code></td></tr>"
            )
        parts += ["</tbody>", "</table>"]
        self._write(PurePosixPath(SESSIONS_FILE), "Sessions", trail, "\n".join(parts))


class HtmlFormatter:
    def __init__(self, settings: FormatterSettings) -> None:
        self.settings = settings

    def create_visitor(self) -> ReportVisitor:
        return _HtmlVisitor(self.settings)
