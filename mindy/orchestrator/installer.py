"""
Package installation through the listener.

Installation is expressed as R code sent with a ``run_code`` command, so
the listener needs no install-specific action.
"""

import json
import logging
import re
from typing import Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from mindy.config import settings, clamp_timeout
from mindy.bridge.channel import Channel
from mindy.bridge.schemas import Command, ExecutionResponse, ExecutionStatus
from mindy.errors import InvalidPackageName, ResponseParseError
from mindy.orchestrator.schemas import (
    InstallationRequest,
    InstallationResponse,
    InstallationSource,
    InstallationStatus,
    PackageInfo,
)

logger = logging.getLogger("mindy.orchestrator")

# Hyphenated look-alikes must still reach the blacklist check
PACKAGE_NAME_REGEX = re.compile(r"[A-Za-z][A-Za-z0-9._-]*")
GITHUB_REPO_REGEX = re.compile(r"[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+")
JSON_ARRAY_REGEX = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")

STATUS_MAP: Dict[ExecutionStatus, InstallationStatus] = {
    ExecutionStatus.PENDING: InstallationStatus.PENDING,
    ExecutionStatus.RUNNING: InstallationStatus.INSTALLING,
    ExecutionStatus.COMPLETED: InstallationStatus.COMPLETED,
    ExecutionStatus.ERROR: InstallationStatus.ERROR,
    ExecutionStatus.REJECTED: InstallationStatus.REJECTED,
    ExecutionStatus.TIMEOUT: InstallationStatus.TIMEOUT,
}


def validate_package_name(package_name: str, source: InstallationSource) -> None:
    regex = GITHUB_REPO_REGEX if source == InstallationSource.GITHUB else PACKAGE_NAME_REGEX
    if not regex.fullmatch(package_name):
        raise InvalidPackageName(package_name, source.value)


def r_package_name(package_name: str, source: InstallationSource) -> str:
    """Name the package will have inside R (the repository name for GitHub installs)."""
    if source == InstallationSource.GITHUB:
        return package_name.split("/")[-1]
    return package_name


def r_string(value: str) -> str:
    return json.dumps(value)


def r_vector(values: List[str]) -> str:
    return "c(" + ", ".join(r_string(v) for v in values) + ")"


def r_bool(value: bool) -> str:
    return "TRUE" if value else "FALSE"


def build_check_code(r_names: List[str]) -> str:
    return f"""
packages <- {r_vector(r_names)}
installed <- rownames(installed.packages())

result <- lapply(packages, function(pkg) {{
    is_installed <- pkg %in% installed
    version <- if (is_installed) as.character(packageVersion(pkg)) else NA
    list(
        name = pkg,
        installed = is_installed,
        version = version
    )
}})

cat(jsonlite::toJSON(result, auto_unbox = TRUE))
""".strip()


def build_install_code(request: InstallationRequest) -> str:
    packages = r_vector(request.packages)
    repos = r_string(request.repos)
    dependencies = r_bool(request.dependencies)

    if request.source == InstallationSource.GITHUB:
        return (
            f'if (!requireNamespace("remotes", quietly = TRUE)) install.packages("remotes", repos = {repos})\n'
            f"remotes::install_github({packages}, dependencies = {dependencies}, upgrade = \"never\")"
        )
    elif request.source == InstallationSource.BIOCONDUCTOR:
        return (
            f'if (!requireNamespace("BiocManager", quietly = TRUE)) install.packages("BiocManager", repos = {repos})\n'
            f"BiocManager::install({packages}, dependencies = {dependencies}, ask = FALSE, update = FALSE)"
        )
    return f"install.packages({packages}, repos = {repos}, dependencies = {dependencies})"


def extract_json_array(output: str) -> list:
    """Find the JSON array printed by the status query among any other console output."""
    match = JSON_ARRAY_REGEX.search(output)
    text = match.group(0) if match else output.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        preview = output[:100]
        raise ResponseParseError(f'Failed to parse package status. Output preview: "{preview}...". Error: {e}') from e
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ResponseParseError(f"Expected a list of package states, got: {type(data).__name__}")
    return data


class PackageInstaller:
    """Queries and installs packages in the R session over a Channel."""

    def __init__(self, channel: Channel, check_timeout_ms: int = settings.CHECK_TIMEOUT_MS):
        self.channel = channel
        self.check_timeout_ms = check_timeout_ms

    async def check_packages(self, packages: List[str], source: InstallationSource = InstallationSource.CRAN) -> List[PackageInfo]:
        """Report which of ``packages`` are already installed."""
        r_names = [r_package_name(p, source) for p in packages]
        response = await self.channel.send(Command.run_code(build_check_code(r_names)), self.check_timeout_ms)

        if response.status != ExecutionStatus.COMPLETED or not response.output:
            raise ResponseParseError(f"Failed to check package status: {response.error or response.status.value}")

        try:
            states = {
                info.name: info
                for info in TypeAdapter(List[PackageInfo]).validate_python(extract_json_array(response.output))
            }
        except ValidationError as e:
            raise ResponseParseError(f"Unexpected package status format: {e.error_count()} invalid field(s)") from e
        return [
            PackageInfo(
                name=requested,
                installed=states[r_name].installed if r_name in states else False,
                version=states[r_name].version if r_name in states else None,
            )
            for requested, r_name in zip(packages, r_names)
        ]

    async def install(self, request: InstallationRequest) -> InstallationResponse:
        timeout_ms = clamp_timeout(request.timeout_ms, settings.INSTALL_TIMEOUT_MS, settings.INSTALL_MAX_TIMEOUT_MS)
        command = Command.run_code(build_install_code(request))
        logger.info(f"Installing {', '.join(request.packages)} from {request.source.value}")

        response = await self.channel.send(command, timeout_ms)
        return self.convert_response(response, request.packages)

    @staticmethod
    def convert_response(response: ExecutionResponse, requested: List[str], skipped: Optional[List[str]] = None) -> InstallationResponse:
        """
        Map the listener's answer onto an installation outcome.

        Anything other than a clean ``completed`` or ``error`` is reported as
        ``partial``: the packages may or may not be installed and need a
        manual look.
        """
        status = STATUS_MAP.get(response.status, InstallationStatus.ERROR)

        if status == InstallationStatus.COMPLETED:
            installed, failed = list(requested), []
        elif status == InstallationStatus.ERROR:
            installed, failed = [], list(requested)
        else:
            installed, failed = [], list(requested)
            status = InstallationStatus.PARTIAL

        return InstallationResponse(
            id=response.id,
            status=status,
            installed=installed,
            failed=failed,
            skipped=skipped or [],
            output=response.output,
            error=response.error,
            duration_ms=response.duration_ms,
        )
