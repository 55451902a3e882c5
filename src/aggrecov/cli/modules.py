"""aggrecov modules command - list the modules a report would cover."""

import json
from pathlib import Path

import click
from rich.table import Table

from aggrecov.core.errors import AggrecovError
from aggrecov.core.progress import get_console, pluralize
from aggrecov.project import ModuleDiscovery, load_project


@click.command()
@click.argument("project", default=".", type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def modules_command(project: Path, as_json: bool) -> None:
    """Show the modules discovered from PROJECT's parent, in report order."""
    discovery = ModuleDiscovery()
    try:
        descriptor = load_project(project.resolve())
        root = discovery.find_root(descriptor)
        modules = discovery.discover(root)
    except AggrecovError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(
            json.dumps(
                {
                    "root": root.artifact_id,
                    "modules": [
                        {
                            "artifact_id": m.artifact_id,
                            "name": m.display_name,
                            "base_dir": str(m.base_dir),
                            "output_directory": str(m.output_directory),
                        }
                        for m in modules
                    ],
                },
                indent=2,
            )
        )
        return

    table = Table(title=f"{root.display_name}: {pluralize(len(modules), 'module')}")
    table.add_column("module", style="cyan")
    table.add_column("classes")
    table.add_column("path")
    for m in modules:
        has_classes = "yes" if m.output_directory.is_dir() else "[dim]no[/dim]"
        table.add_row(m.artifact_id, has_classes, str(m.base_dir))
    get_console().print(table)
