"""Check command."""

import asyncio
from typing import List, Tuple

import click

from mindy.cli.common import display_safety_reports, echo_json, fail
from mindy.safety.schemas import PackageSafetyReport
from mindy.safety.validator import PackageValidator


async def check_packages(packages: List[str], source: str) -> List[PackageSafetyReport]:
    async with PackageValidator() as validator:
        return await validator.validate_many(packages, source)


@click.command()
@click.argument("packages", nargs=-1, required=True)
@click.option("-s", "--source", type=click.Choice(["cran", "github"]), default="cran", show_default=True, help="Package source")
@click.option("-j", "--json", "as_json", is_flag=True, help="Output reports as JSON")
def check(packages: Tuple[str, ...], source: str, as_json: bool):
    """Run safety checks on packages without installing them."""
    try:
        reports = asyncio.run(check_packages(list(packages), source))
    except Exception as e:
        fail(e, as_json)

    if as_json:
        echo_json([report.model_dump(mode="json", exclude_none=True) for report in reports])
    else:
        display_safety_reports(reports)

    if not all(report.allow_installation for report in reports):
        raise SystemExit(5)
