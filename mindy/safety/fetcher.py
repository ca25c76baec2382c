"""
Registry metadata fetchers.

Each fetcher turns one registry's schema into a PackageMetadata.
Failures to fetch the primary record raise MetadataFetchError; missing
download statistics degrade to zero.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from mindy.config import settings
from mindy.errors import MetadataFetchError, UnsupportedSource
from mindy.safety.schemas import PackageMetadata

logger = logging.getLogger("mindy.safety")

VALIDATABLE_SOURCES = ["cran", "github"]

GITHUB_URL_REGEX = re.compile(r"github\.com/([^/\s,]+/[^/\s,]+)")


class MetadataFetcher(ABC):
    """Base class for registry backends."""

    source: str = ""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @abstractmethod
    async def fetch(self, package_name: str) -> PackageMetadata:
        pass

    async def _get_json(self, url: str, not_found: str, timeout_ms: int, headers: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = await self.client.get(url, timeout=timeout_ms / 1000, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise MetadataFetchError(not_found) from e
            logger.error(f"Registry HTTP Error: {e.response.status_code} - {url}")
            raise MetadataFetchError(f"Registry request failed with HTTP {e.response.status_code}: {url}") from e
        except httpx.RequestError as e:
            logger.error(f"Registry Request Error: {e}")
            raise MetadataFetchError(f"Failed to reach registry at {url}: {e}") from e
        except ValueError as e:
            raise MetadataFetchError(f"Registry returned invalid JSON: {url}") from e


class CranFetcher(MetadataFetcher):
    source = "cran"

    async def fetch(self, package_name: str) -> PackageMetadata:
        data = await self._get_json(
            f"{settings.CRANDB_URL.rstrip('/')}/{package_name}",
            not_found=f"Package '{package_name}' not found on CRAN",
            timeout_ms=settings.METADATA_FETCH_TIMEOUT_MS,
        )
        if not isinstance(data, dict):
            raise MetadataFetchError(f"Unexpected CRAN record for '{package_name}'")

        downloads = await self.fetch_download_stats(package_name)

        return PackageMetadata(
            name=package_name,
            version=data.get("Version"),
            title=data.get("Title"),
            description=data.get("Description"),
            authors=parse_authors(data.get("Author")),
            maintainer=data.get("Maintainer"),
            license=data.get("License"),
            dependencies=parse_dependencies(data.get("Imports"), data.get("Depends")),
            published=parse_date(data.get("Published") or data.get("Date/Publication")),
            last_update=parse_date(data.get("Date") or data.get("Date/Publication")),
            cran_url=f"{settings.CRAN_PACKAGE_URL}{package_name}",
            github_url=extract_github_url(data),
            downloads=downloads,
            archived=bool(data.get("archived", False)),
        )

    async def fetch_download_stats(self, package_name: str) -> int:
        """Downloads over the last month, or 0 when the statistics service is unavailable."""
        url = f"{settings.CRANLOGS_URL.rstrip('/')}/downloads/total/last-month/{package_name}"
        try:
            response = await self.client.get(url, timeout=settings.STATS_FETCH_TIMEOUT_MS / 1000)
            response.raise_for_status()
            data = response.json()
            return int(data[0].get("downloads") or 0)
        except (httpx.HTTPError, ValueError, LookupError, TypeError, AttributeError) as e:
            logger.warning(f"Download stats unavailable for {package_name}: {e}")
            return 0


class GithubFetcher(MetadataFetcher):
    source = "github"

    async def fetch(self, package_name: str) -> PackageMetadata:
        parts = package_name.split("/")
        if len(parts) != 2 or not all(parts):
            raise MetadataFetchError("Invalid GitHub package format. Use: owner/repo")
        owner, repo = parts

        headers = {"Accept": "application/vnd.github.v3+json"}
        if settings.GITHUB_TOKEN:
            headers["Authorization"] = f"Bearer {settings.GITHUB_TOKEN}"

        data = await self._get_json(
            f"{settings.GITHUB_API_URL.rstrip('/')}/repos/{owner}/{repo}",
            not_found=f"GitHub repository '{package_name}' not found",
            timeout_ms=settings.METADATA_FETCH_TIMEOUT_MS,
            headers=headers,
        )

        license_info = data.get("license") or {}
        owner_info = data.get("owner") or {}

        return PackageMetadata(
            name=package_name,
            title=data.get("description"),
            description=data.get("description"),
            maintainer=owner_info.get("login"),
            license=license_info.get("spdx_id") or license_info.get("name"),
            published=parse_date(data.get("created_at")),
            last_update=parse_date(data.get("pushed_at") or data.get("updated_at")),
            github_url=data.get("html_url"),
            archived=bool(data.get("archived", False)),
        )


def get_fetcher(source: str, client: httpx.AsyncClient) -> MetadataFetcher:
    """
    Factory function to create the fetcher for a package source.
    """
    if source == "cran":
        return CranFetcher(client)
    elif source == "github":
        return GithubFetcher(client)
    else:
        raise UnsupportedSource(source, VALIDATABLE_SOURCES)


# ============================================================================
# Field parsing
# ============================================================================

def parse_authors(author: Any) -> List[str]:
    if not author:
        return []
    return [a.strip() for a in str(author).split(",") if a.strip()]


def parse_dependencies(imports: Any, depends: Any) -> List[str]:
    """Package names from DESCRIPTION Imports/Depends, without version constraints or R itself."""
    deps: List[str] = []
    for field in (imports, depends):
        if not field:
            continue
        # crandb returns these as {"pkg": "version constraint"} objects
        if isinstance(field, dict):
            names = list(field.keys())
        else:
            names = [part.strip().split("(")[0] for part in str(field).split(",")]
        deps.extend(name.strip().split()[0] for name in names if name.strip())
    return [d for d in deps if d and d != "R"]


def parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    text = str(value).strip()
    if text.endswith(" UTC"):
        text = text[:-4]
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparsable date: {value!r}")
        return None


def extract_github_url(data: Dict[str, Any]) -> Optional[str]:
    url = data.get("BugReports") or data.get("URL") or ""
    match = GITHUB_URL_REGEX.search(str(url))
    if not match:
        return None
    return f"https://github.com/{match.group(1).removesuffix('.git')}"
