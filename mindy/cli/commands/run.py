"""Run command."""

import asyncio
from typing import Optional

import click

from mindy.config import settings
from mindy.bridge.client import FileChannel
from mindy.cli.common import echo_json, fail
from mindy.orchestrator.confirm import TerminalConfirmer
from mindy.orchestrator.run import RunOrchestrator
from mindy.orchestrator.schemas import ExecutionMode, RunResult


def display_result(result: RunResult) -> None:
    click.echo("")
    click.secho("─── Output ───────────────────────────────────", fg="cyan", bold=True)
    click.echo("")

    if result.output:
        click.echo(result.output)
    elif result.error:
        click.secho(result.error, fg="red")
    else:
        click.secho("(code sent to RStudio console)", dim=True)

    click.echo("")
    click.secho("───────────────────────────────────────────────", dim=True)

    if result.duration_ms:
        click.secho(f"Duration: {result.duration_ms}ms", dim=True)
    if result.file_path and result.mode != ExecutionMode.CODE:
        click.secho(f"File: {result.file_path}", dim=True)


@click.command()
@click.argument("code", required=False)
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt")
@click.option("-t", "--timeout", type=int, default=settings.EXECUTION_TIMEOUT_MS, show_default=True, help="Execution timeout in milliseconds")
@click.option("-j", "--json", "as_json", is_flag=True, help="Output result as JSON")
def run(code: Optional[str], yes: bool, timeout: int, as_json: bool):
    """Execute R code in the RStudio session (runs the current file by default).

    CODE is inline R code or a path to an .R/.Rmd file.
    """
    orchestrator = RunOrchestrator(FileChannel(timeout_ms=timeout), TerminalConfirmer(), timeout)

    try:
        result = asyncio.run(orchestrator.run(code, yes=yes))
    except Exception as e:
        fail(e, as_json)

    if as_json:
        echo_json(result.model_dump(mode="json", exclude_none=True))
    elif result.succeeded:
        click.secho("✅ Execution completed!", fg="green")
        display_result(result)
    else:
        click.secho(f"⚠️  Execution ended with status: {result.status.value}", fg="red" if result.error else "yellow")
        display_result(result)

    if not result.succeeded:
        raise SystemExit(1)
