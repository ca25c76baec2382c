"""Shared CLI helpers: logging setup, error rendering and report display."""

import json
import logging
import sys
from typing import List, NoReturn

import click

from mindy.config import settings
from mindy.errors import InstallationBlocked, MindyError, suggest_fix
from mindy.safety.schemas import PackageSafetyReport, SafetyLevel

logger = logging.getLogger("mindy.cli")

SAFETY_STYLE = {
    SafetyLevel.SAFE: ("✅", "green"),
    SafetyLevel.WARNING: ("⚠️ ", "yellow"),
    SafetyLevel.RISKY: ("⚠️ ", "yellow"),
    SafetyLevel.DANGEROUS: ("❌", "red"),
    SafetyLevel.BLOCKED: ("🚫", "red"),
}


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose or settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def fail(error: Exception, as_json: bool = False) -> NoReturn:
    """Render an error and exit with its code."""
    exit_code = error.exit_code if isinstance(error, MindyError) else 1

    if as_json:
        payload = error.to_dict() if isinstance(error, MindyError) else {"type": type(error).__name__, "message": str(error)}
        echo_json({"error": payload})
        sys.exit(exit_code)

    if isinstance(error, InstallationBlocked):
        click.echo("")
        click.secho("❌ Installation blocked for the following packages:", fg="red", err=True)
        for report in error.reports:
            click.secho(f"  • {report.package_name}: {', '.join(report.errors)}", fg="red", err=True)
    else:
        click.secho(f"❌ {error}", fg="red", err=True)

    suggestion = suggest_fix(error)
    if suggestion:
        click.secho(f"   {suggestion}", fg="yellow", err=True)

    if not isinstance(error, MindyError):
        logger.debug("Unexpected error", exc_info=error)
    sys.exit(exit_code)


def display_safety_reports(reports: List[PackageSafetyReport]) -> None:
    if not reports:
        return

    click.echo("")
    click.secho("Safety Check Results:", fg="cyan", bold=True)
    click.echo("")

    for report in reports:
        icon, color = SAFETY_STYLE[report.safety_level]
        click.secho(f"{icon} {report.package_name} - {report.safety_level.value.upper()}", fg=color)
        for warning in report.warnings:
            click.secho(f"    ⚠️  {warning}", fg="yellow")
        for error in report.errors:
            click.secho(f"    ❌ {error}", fg="red")
        for recommendation in report.recommendations:
            click.secho(f"    💡 {recommendation}", dim=True)
