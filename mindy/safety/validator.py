import asyncio
import logging
from typing import List, Optional

import httpx

from mindy.safety.checks import SafetyChecker
from mindy.safety.fetcher import get_fetcher
from mindy.safety.schemas import (
    CheckCategory,
    PackageSafetyReport,
    SafetyCheck,
    SafetyLevel,
    Severity,
)

logger = logging.getLogger("mindy.safety")


def calculate_safety_level(checks: List[SafetyCheck]) -> SafetyLevel:
    """Overall level from check severities; the most severe failure wins."""
    failed = {c.severity for c in checks if not c.passed}

    if Severity.CRITICAL in failed:
        return SafetyLevel.BLOCKED
    if Severity.ERROR in failed:
        return SafetyLevel.DANGEROUS
    if Severity.WARNING in failed:
        return SafetyLevel.RISKY

    return SafetyLevel.SAFE if all(c.passed for c in checks) else SafetyLevel.WARNING


def should_allow_installation(level: SafetyLevel, errors: List[str]) -> bool:
    if level == SafetyLevel.BLOCKED:
        return False
    return not errors


def build_report(package_name: str, checks: List[SafetyCheck]) -> PackageSafetyReport:
    warnings: List[str] = []
    errors: List[str] = []
    recommendations: List[str] = []

    for check in checks:
        if check.passed:
            continue
        if check.is_blocking:
            errors.append(check.message)
        elif check.category == CheckCategory.COMMUNITY_TRUST:
            recommendations.append(check.message)
        else:
            warnings.append(check.message)

    level = calculate_safety_level(checks)
    return PackageSafetyReport(
        package_name=package_name,
        safety_level=level,
        checks=checks,
        warnings=warnings,
        errors=errors,
        recommendations=recommendations,
        allow_installation=should_allow_installation(level, errors),
    )


def incomplete_report(package_name: str, error: Exception) -> PackageSafetyReport:
    """Report used when metadata could not be fetched: treated as risky and not installable."""
    return PackageSafetyReport(
        package_name=package_name,
        safety_level=SafetyLevel.RISKY,
        warnings=["Unable to perform complete safety check"],
        errors=[f"Validation error: {error}"],
        recommendations=["Proceed with caution"],
        allow_installation=False,
    )


class PackageValidator:
    """
    Validates R packages before installation.

    Fetches registry metadata for the package, runs the safety check
    battery and condenses the verdicts into a PackageSafetyReport.
    """

    def __init__(self, checker: Optional[SafetyChecker] = None, client: Optional[httpx.AsyncClient] = None):
        self.checker = checker or SafetyChecker()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(follow_redirects=True)

    async def close(self):
        """Close the underlying HTTP client if this validator created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "PackageValidator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def validate(self, package_name: str, source: str = "cran") -> PackageSafetyReport:
        """
        Validate a package before installation.

        Raises:
            UnsupportedSource: ``source`` has no metadata backend
        """
        fetcher = get_fetcher(source, self.client)

        try:
            metadata = await fetcher.fetch(package_name)
        except Exception as e:
            logger.warning(f"Safety validation incomplete for {package_name}: {e}")
            return incomplete_report(package_name, e)

        checks = self.checker.run_all(package_name, metadata)
        report = build_report(package_name, checks)
        logger.info(f"{package_name}: {report.safety_level.value} (allow={report.allow_installation})")
        return report

    async def validate_many(self, package_names: List[str], source: str = "cran") -> List[PackageSafetyReport]:
        """Validate packages concurrently; reports come back in request order."""
        get_fetcher(source, self.client)
        return list(await asyncio.gather(*(self.validate(name, source) for name in package_names)))
