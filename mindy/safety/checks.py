"""
Package safety checks.

Each check inspects one aspect of a package and always returns a
SafetyCheck verdict; a check that fails internally reports a warning
instead of raising.
"""

import functools
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Pattern, Tuple

from pydantic import TypeAdapter

from mindy.config import settings
from mindy.safety.schemas import (
    BlacklistEntry,
    CheckCategory,
    PackageMetadata,
    SafetyCheck,
    Severity,
    TrustedMaintainer,
)

logger = logging.getLogger("mindy.safety")

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

ACCEPTABLE_LICENSES = ["gpl", "lgpl", "mit", "apache", "bsd", "cc0", "artistic"]


def load_blacklist(path: Optional[Path] = None) -> List[BlacklistEntry]:
    path = path or settings.BLACKLIST_PATH or DATA_DIR / "blacklist.json"
    try:
        return TypeAdapter(List[BlacklistEntry]).validate_json(path.read_bytes())
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load blacklist from {path}: {e}")
        return []


def load_trusted_maintainers(path: Optional[Path] = None) -> List[TrustedMaintainer]:
    path = path or settings.TRUSTED_MAINTAINERS_PATH or DATA_DIR / "trusted_maintainers.json"
    try:
        return TypeAdapter(List[TrustedMaintainer]).validate_json(path.read_bytes())
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load trusted maintainers from {path}: {e}")
        return []


def _never_raises(name: str, category: CheckCategory) -> Callable:
    def decorator(check: Callable[..., SafetyCheck]) -> Callable[..., SafetyCheck]:
        @functools.wraps(check)
        def wrapper(*args, **kwargs) -> SafetyCheck:
            try:
                return check(*args, **kwargs)
            except Exception as e:
                logger.exception(f"{name} failed unexpectedly")
                return SafetyCheck(
                    name=name,
                    category=category,
                    passed=False,
                    severity=Severity.WARNING,
                    message=f"{name} could not be completed: {e}",
                )
        return wrapper
    return decorator


class SafetyChecker:
    """The fixed battery of package checks, run in catalog order by ``run_all``."""

    def __init__(
        self,
        blacklist: Optional[List[BlacklistEntry]] = None,
        trusted_maintainers: Optional[List[TrustedMaintainer]] = None,
        max_days_since_update: int = settings.MAX_DAYS_SINCE_UPDATE,
        max_dependencies: int = settings.MAX_DEPENDENCIES,
        min_monthly_downloads: int = settings.MIN_MONTHLY_DOWNLOADS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.blacklist = load_blacklist() if blacklist is None else blacklist
        self.trusted_maintainers = (
            load_trusted_maintainers() if trusted_maintainers is None else trusted_maintainers
        )
        self.max_days_since_update = max_days_since_update
        self.max_dependencies = max_dependencies
        self.min_monthly_downloads = min_monthly_downloads
        self.clock = clock
        self._patterns = self._compile_blacklist(self.blacklist)

    def run_all(self, package_name: str, metadata: PackageMetadata) -> List[SafetyCheck]:
        return [
            self.check_blacklist(package_name),
            self.check_registry_status(metadata),
            self.check_maintenance(metadata),
            self.check_dependencies(metadata),
            self.check_community_trust(metadata),
            self.check_license(metadata),
        ]

    @_never_raises("Blacklist Check", CheckCategory.BLACKLIST)
    def check_blacklist(self, package_name: str) -> SafetyCheck:
        for entry, pattern in self._patterns:
            if package_name == entry.package or (pattern is not None and pattern.fullmatch(package_name)):
                return SafetyCheck(
                    name="Blacklist Check",
                    category=CheckCategory.BLACKLIST,
                    passed=False,
                    severity=Severity.CRITICAL if entry.severity == Severity.CRITICAL else Severity.ERROR,
                    message=f"Package is blacklisted: {entry.reason}",
                    metadata={"entry": entry.model_dump(exclude_none=True)},
                )

        return SafetyCheck(
            name="Blacklist Check",
            category=CheckCategory.BLACKLIST,
            passed=True,
            message="Package is not blacklisted",
        )

    @_never_raises("Registry Status", CheckCategory.REGISTRY_STATUS)
    def check_registry_status(self, metadata: PackageMetadata) -> SafetyCheck:
        if metadata.archived:
            return SafetyCheck(
                name="Registry Status",
                category=CheckCategory.REGISTRY_STATUS,
                passed=False,
                severity=Severity.ERROR,
                message="Package has been archived (no longer maintained)",
            )

        if metadata.last_update:
            days_since_update = self._days_since(metadata.last_update)
            if days_since_update > self.max_days_since_update:
                return SafetyCheck(
                    name="Registry Status",
                    category=CheckCategory.REGISTRY_STATUS,
                    passed=False,
                    severity=Severity.WARNING,
                    message=f"Package hasn't been updated in {days_since_update} days",
                    metadata={"days_since_update": days_since_update},
                )

        return SafetyCheck(
            name="Registry Status",
            category=CheckCategory.REGISTRY_STATUS,
            passed=True,
            message="Package is active on its registry",
        )

    @_never_raises("Maintenance Status", CheckCategory.MAINTENANCE)
    def check_maintenance(self, metadata: PackageMetadata) -> SafetyCheck:
        maintainer = metadata.maintainer or ""

        if maintainer and any(tm.identifier in maintainer for tm in self.trusted_maintainers):
            return SafetyCheck(
                name="Maintenance Status",
                category=CheckCategory.MAINTENANCE,
                passed=True,
                message="Maintained by trusted developer",
            )

        if not maintainer or "orphaned" in maintainer.lower():
            return SafetyCheck(
                name="Maintenance Status",
                category=CheckCategory.MAINTENANCE,
                passed=False,
                severity=Severity.WARNING,
                message="Package appears to be orphaned (no active maintainer)",
            )

        return SafetyCheck(
            name="Maintenance Status",
            category=CheckCategory.MAINTENANCE,
            passed=True,
            message="Package has an active maintainer",
        )

    @_never_raises("Dependencies", CheckCategory.DEPENDENCY_FOOTPRINT)
    def check_dependencies(self, metadata: PackageMetadata) -> SafetyCheck:
        dep_count = len(metadata.dependencies)

        if dep_count > self.max_dependencies:
            return SafetyCheck(
                name="Dependencies",
                category=CheckCategory.DEPENDENCY_FOOTPRINT,
                passed=False,
                severity=Severity.WARNING,
                message=f"Package has {dep_count} dependencies (high complexity)",
                metadata={"dependency_count": dep_count},
            )

        return SafetyCheck(
            name="Dependencies",
            category=CheckCategory.DEPENDENCY_FOOTPRINT,
            passed=True,
            message=f"Package has {dep_count} dependencies",
            metadata={"dependency_count": dep_count},
        )

    @_never_raises("Community Trust", CheckCategory.COMMUNITY_TRUST)
    def check_community_trust(self, metadata: PackageMetadata) -> SafetyCheck:
        downloads = metadata.downloads or 0

        if downloads < self.min_monthly_downloads:
            return SafetyCheck(
                name="Community Trust",
                category=CheckCategory.COMMUNITY_TRUST,
                passed=False,
                severity=Severity.WARNING,
                message=f"Low download count ({downloads}/month). Package may not be widely used.",
                metadata={"downloads": downloads},
            )

        return SafetyCheck(
            name="Community Trust",
            category=CheckCategory.COMMUNITY_TRUST,
            passed=True,
            message=f"Popular package ({downloads:,} downloads/month)",
            metadata={"downloads": downloads},
        )

    @_never_raises("License", CheckCategory.LICENSE)
    def check_license(self, metadata: PackageMetadata) -> SafetyCheck:
        license_text = (metadata.license or "").lower()

        if not license_text:
            return SafetyCheck(
                name="License",
                category=CheckCategory.LICENSE,
                passed=False,
                severity=Severity.WARNING,
                message="No license information available",
            )

        if not any(name in license_text for name in ACCEPTABLE_LICENSES):
            return SafetyCheck(
                name="License",
                category=CheckCategory.LICENSE,
                passed=False,
                severity=Severity.WARNING,
                message=f"Unusual license: {metadata.license}",
                metadata={"license": metadata.license},
            )

        return SafetyCheck(
            name="License",
            category=CheckCategory.LICENSE,
            passed=True,
            message=f"Standard open-source license: {metadata.license}",
        )

    # ============================================================================
    # Helpers
    # ============================================================================

    def _days_since(self, when: datetime) -> int:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return (self.clock() - when).days

    @staticmethod
    def _compile_blacklist(entries: List[BlacklistEntry]) -> List[Tuple[BlacklistEntry, Optional[Pattern]]]:
        compiled = []
        for entry in entries:
            pattern = None
            if entry.pattern:
                try:
                    pattern = re.compile(entry.pattern)
                except re.error as e:
                    logger.warning(f"Blacklist pattern {entry.pattern!r} is not a valid regex: {e}")
            compiled.append((entry, pattern))
        return compiled
