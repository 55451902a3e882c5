"""aggrecov CLI - aggregated coverage reports for multi-module projects."""

import click

from aggrecov.cli.merge import merge_command
from aggrecov.cli.modules import modules_command
from aggrecov.cli.report import report_command
from aggrecov.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="aggrecov")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """aggrecov - Merge execution data of all modules into one coverage report."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(report_command, name="report")
cli.add_command(modules_command, name="modules")
cli.add_command(merge_command, name="merge")


if __name__ == "__main__":
    cli()
