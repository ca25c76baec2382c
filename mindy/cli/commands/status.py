"""Status command."""

import asyncio

import click

from mindy.bridge.client import FileChannel


@click.command()
@click.option("-w", "--wait", type=int, default=0, help="Wait up to this many milliseconds for the listener")
def status(wait: int):
    """Check whether the Mindy listener is running in RStudio."""
    channel = FileChannel()
    alive = asyncio.run(channel.wait_for_listener(wait)) if wait > 0 else channel.is_listener_alive()

    if alive:
        click.secho(f"✅ Listener is running ({channel.location})", fg="green")
        return

    click.secho("Mindy listener is not running in RStudio.", fg="red", err=True)
    click.echo("")
    click.secho("To start the listener, run this in RStudio Console:", fg="yellow", err=True)
    click.secho("  mindy::start()", fg="cyan", err=True)
    raise SystemExit(3)
