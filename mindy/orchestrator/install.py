"""
``mindy install``: safety-checked package installation.

    mindy install dplyr ggplot2
    mindy install dplyr --yes
    mindy install tidyverse/dplyr --source github
"""

import logging
from typing import List, Optional

from mindy.config import settings
from mindy.bridge.channel import Channel
from mindy.errors import (
    InstallationBlocked,
    InstallationCancelled,
    InvalidPackageName,
    ListenerUnavailable,
    UnsupportedSource,
)
from mindy.orchestrator.base import translate_errors
from mindy.orchestrator.confirm import Confirmer
from mindy.orchestrator.installer import PackageInstaller, validate_package_name
from mindy.orchestrator.schemas import (
    InstallationRequest,
    InstallationResponse,
    InstallationSource,
    InstallationStatus,
    InstallOptions,
)
from mindy.safety.schemas import PackageSafetyReport
from mindy.safety.validator import PackageValidator

logger = logging.getLogger("mindy.orchestrator")


class InstallOrchestrator:
    """
    Runs one ``install`` request end to end.

    Phases: listener check, safety validation (all packages concurrently),
    installed-set filter, confirmation, one batched install command.
    Nothing is installed unless every package passes validation.
    """

    def __init__(
        self,
        channel: Channel,
        validator: PackageValidator,
        confirmer: Confirmer,
        installer: Optional[PackageInstaller] = None,
        safety_enabled: bool = settings.ENABLE_SAFETY_CHECKS,
    ):
        self.channel = channel
        self.validator = validator
        self.confirmer = confirmer
        self.installer = installer or PackageInstaller(channel)
        self.safety_enabled = safety_enabled

    async def install(self, packages: List[str], options: Optional[InstallOptions] = None) -> InstallationResponse:
        options = options or InstallOptions()
        source = self._parse_source(options.source)

        if not packages:
            raise InvalidPackageName("", source.value)
        for package in packages:
            validate_package_name(package, source)

        if not self.channel.is_listener_alive():
            raise ListenerUnavailable(self.channel.location)

        reports = await self.run_safety_checks(packages, source, options)

        with translate_errors(self.channel.location):
            package_info = await self.installer.check_packages(packages, source)

        already_installed = [info.name for info in package_info if info.installed]
        to_install = [info.name for info in package_info if not info.installed]

        if not to_install:
            logger.info("All requested packages are already installed")
            return InstallationResponse(
                status=InstallationStatus.COMPLETED,
                skipped=already_installed,
                reports=reports,
            )

        if not options.yes:
            if not self.confirmer.confirm(f"Proceed with installation of {', '.join(to_install)}?", default=True):
                raise InstallationCancelled()

        request = InstallationRequest(
            packages=to_install,
            source=source,
            repos=options.repos,
            dependencies=options.dependencies,
            timeout_ms=options.timeout_ms,
        )
        with translate_errors(self.channel.location):
            response = await self.installer.install(request)

        return response.model_copy(update={"skipped": already_installed, "reports": reports})

    async def run_safety_checks(
        self,
        packages: List[str],
        source: InstallationSource,
        options: InstallOptions,
    ) -> List[PackageSafetyReport]:
        """
        Validate every package and stop the batch if any is not installable.

        Raises:
            InstallationBlocked: at least one report disallows installation
            InstallationCancelled: the user declined to install risky packages
        """
        if not self.safety_enabled or options.skip_safety:
            logger.info("Safety checks skipped")
            return []

        reports = await self.validator.validate_many(packages, source.value)

        blocked = [report for report in reports if not report.allow_installation]
        if blocked:
            raise InstallationBlocked(blocked)

        risky = [report for report in reports if report.needs_confirmation]
        if risky and not options.yes:
            names = ", ".join(report.package_name for report in risky)
            if not self.confirmer.confirm(f"{names}: safety concerns found. Do you still want to proceed?", default=False):
                raise InstallationCancelled()

        return reports

    @staticmethod
    def _parse_source(source: str) -> InstallationSource:
        try:
            return InstallationSource(source)
        except ValueError:
            raise UnsupportedSource(source, [s.value for s in InstallationSource]) from None
