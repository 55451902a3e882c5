"""aggrecov merge command - combine execution data files."""

from pathlib import Path

import click

from aggrecov.core.errors import AggrecovError
from aggrecov.core.progress import pluralize, status
from aggrecov.execdata import ExecFileLoader


@click.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Merged exec file to write",
)
@click.option("--append", is_flag=True, help="Append to OUTPUT instead of replacing it")
def merge_command(files: tuple[Path, ...], output: Path, append: bool) -> None:
    """Merge FILES into one execution data file (probes are OR-ed per class)."""
    loader = ExecFileLoader()
    try:
        for path in files:
            loader.load(path)
        loader.save(output, append=append)
    except AggrecovError as e:
        raise click.ClickException(str(e)) from e

    status(
        f"Merged {pluralize(len(files), 'file')} "
        f"({pluralize(len(loader.execution_data), 'class', 'classes')}) into {output}",
        style="success",
    )
