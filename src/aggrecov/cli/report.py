"""aggrecov report command - write the aggregated coverage report."""

import json
from pathlib import Path
from typing import Any

import click

from aggrecov.aggregate import ReportAggregator
from aggrecov.config import load_config
from aggrecov.core.errors import AggrecovError
from aggrecov.core.logging import configure_logging, set_run_id
from aggrecov.core.progress import pluralize, status, task
from aggrecov.project import load_project
from aggrecov.report.formats import ReportFormat


def _report_overrides(**options: Any) -> dict[str, Any]:
    """CLI options that were actually given, keyed by config field."""
    return {k: v for k, v in options.items() if v not in (None, (), False)}


@click.command()
@click.argument("project", default=".", type=click.Path(exists=True, path_type=Path))
@click.option("--data-root", "data_root_dir", help="Report only this project; skip discovery")
@click.option("--output", "-o", "output_directory", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "formats",
    multiple=True,
    type=click.Choice([f.value for f in ReportFormat], case_sensitive=False),
    help="Report format (repeatable). Default: html, xml and csv",
)
@click.option("--title", help="Name of the top-level report group")
@click.option("--footer", help="Footer text of HTML pages")
@click.option("--include-current-project", is_flag=True, help="Report the project itself first")
@click.option("--include", "includes", multiple=True, help="Class file pattern to include")
@click.option("--exclude", "excludes", multiple=True, help="Class file pattern to exclude")
@click.option("--data-include", "data_file_includes", multiple=True, help="Exec file pattern")
@click.option("--data-exclude", "data_file_excludes", multiple=True, help="Exec file pattern")
@click.option("--source-encoding", help="Encoding of source files")
@click.option("--output-encoding", help="Encoding of generated reports")
@click.option("--locale", help="Locale tag of HTML pages, e.g. en-US")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file to use instead of the project's .aggrecov.yaml",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def report_command(
    ctx: click.Context,
    project: Path,
    config_file: Path | None,
    as_json: bool,
    **options: Any,
) -> None:
    """Write one coverage report over every module of a project tree.

    PROJECT is the directory (or pom.xml) of the current project; modules
    are discovered from its parent (default: current directory).
    """
    project_path = project.resolve()
    project_dir = project_path if project_path.is_dir() else project_path.parent

    overrides = _report_overrides(**options)
    for key in ("includes", "excludes", "data_file_includes", "data_file_excludes", "formats"):
        if key in overrides:
            overrides[key] = list(overrides[key])

    try:
        config = load_config(project_dir, config_file=config_file, report=overrides)
        if not (ctx.obj or {}).get("verbose"):
            configure_logging(config=config.logging)
        set_run_id()

        descriptor = load_project(project_path)
        with task("Writing coverage report"):
            result = ReportAggregator(config.report).run(descriptor)
    except AggrecovError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    status(
        f"{pluralize(len(result.modules), 'module')}, "
        f"{pluralize(len(result.bundles), 'bundle')}, "
        f"{pluralize(len(result.exec_files), 'exec file')}",
        style="success",
    )
    if result.no_match_classes:
        status(
            f"{pluralize(len(result.no_match_classes), 'class', 'classes')} "
            "did not match their execution data",
            style="warning",
        )
    for violation in result.violations:
        status(violation.message, style="warning")
    click.echo(f"Report: {result.output_directory}")
