"""Install command."""

import asyncio
from typing import List, Tuple

import click

from mindy.config import settings
from mindy.bridge.client import FileChannel
from mindy.cli.common import display_safety_reports, echo_json, fail
from mindy.orchestrator.confirm import TerminalConfirmer
from mindy.orchestrator.install import InstallOrchestrator
from mindy.orchestrator.schemas import InstallationResponse, InstallationStatus, InstallOptions
from mindy.safety.validator import PackageValidator


async def install_packages(packages: List[str], options: InstallOptions) -> InstallationResponse:
    """Install packages (internal function)."""
    channel = FileChannel(timeout_ms=options.timeout_ms, max_timeout_ms=settings.INSTALL_MAX_TIMEOUT_MS)
    async with PackageValidator() as validator:
        orchestrator = InstallOrchestrator(channel, validator, TerminalConfirmer())
        return await orchestrator.install(packages, options)


def display_response(response: InstallationResponse) -> None:
    display_safety_reports(response.reports)
    click.echo("")

    if response.status == InstallationStatus.COMPLETED and not response.installed:
        click.secho("All packages are already installed!", fg="green")
    elif response.status == InstallationStatus.COMPLETED:
        click.secho("✅ Installation completed!", fg="green")
    elif response.status == InstallationStatus.PARTIAL:
        click.secho("⚠️  Installation partially completed, check the packages in R", fg="yellow")
    else:
        click.secho("❌ Installation failed", fg="red")

    if response.skipped:
        click.secho("Already installed:", fg="yellow")
        for name in response.skipped:
            click.secho(f"  ✓ {name}", dim=True)
    if response.installed:
        click.secho("✓ Successfully installed:", fg="green")
        for name in response.installed:
            click.echo(f"  • {name}")
    if response.failed:
        click.secho("✗ Not confirmed as installed:", fg="red")
        for name in response.failed:
            click.echo(f"  • {name}")
    if response.error:
        click.secho(response.error, fg="red")
    if response.output and response.output.strip():
        click.echo("")
        click.secho("Installation output:", dim=True)
        click.secho(response.output, dim=True)
    if response.duration_ms:
        click.secho(f"Duration: {response.duration_ms / 1000:.1f}s", dim=True)


@click.command()
@click.argument("packages", nargs=-1, required=True)
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt")
@click.option("-r", "--repos", default=settings.DEFAULT_REPOS, show_default=True, help="CRAN repository URL")
@click.option("-s", "--source", type=click.Choice(["cran", "github", "bioconductor"]), default="cran", show_default=True, help="Installation source")
@click.option("--dependencies/--no-dependencies", default=True, help="Install dependencies")
@click.option("-t", "--timeout", type=int, default=settings.INSTALL_TIMEOUT_MS, show_default=True, help="Installation timeout in milliseconds")
@click.option("-j", "--json", "as_json", is_flag=True, help="Output result as JSON")
@click.option("--skip-safety", is_flag=True, help="Skip safety checks (not recommended)")
def install(packages: Tuple[str, ...], yes: bool, repos: str, source: str, dependencies: bool, timeout: int, as_json: bool, skip_safety: bool):
    """Install R packages in the RStudio session."""
    options = InstallOptions(
        yes=yes,
        repos=repos,
        source=source,
        dependencies=dependencies,
        timeout_ms=timeout,
        skip_safety=skip_safety,
    )

    try:
        response = asyncio.run(install_packages(list(packages), options))
    except Exception as e:
        fail(e, as_json)

    if as_json:
        echo_json(response.model_dump(mode="json", exclude_none=True))
    else:
        display_response(response)

    if response.status != InstallationStatus.COMPLETED:
        raise SystemExit(1)
