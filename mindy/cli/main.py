"""CLI entrypoint."""

import click

from mindy import __version__
from mindy.cli.common import configure_logging
from mindy.cli.commands.check import check
from mindy.cli.commands.install import install
from mindy.cli.commands.run import run
from mindy.cli.commands.status import status


@click.group()
@click.version_option(version=__version__, prog_name="mindy")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Mindy CLI - run R code and install packages in a live RStudio session."""
    configure_logging(verbose)


cli.add_command(run)
cli.add_command(install)
cli.add_command(check)
cli.add_command(status)


if __name__ == "__main__":
    cli()
