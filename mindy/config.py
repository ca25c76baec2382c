from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # General
    DEBUG: bool = False
    LOG_LEVEL: str = "WARNING"

    # Mailbox Settings
    HOME_DIR: Path = Path.home() / ".mindy"
    COMMANDS_DIR_NAME: str = "commands"
    PENDING_FILE_NAME: str = "pending.json"
    RESULT_FILE_NAME: str = "result.json"
    LOCK_FILE_NAME: str = ".lock"

    # Execution Settings
    EXECUTION_TIMEOUT_MS: int = 30_000
    EXECUTION_MAX_TIMEOUT_MS: int = 10 * 60 * 1000
    POLL_INTERVAL_MS: int = 500
    PARSE_RETRY_DELAY_MS: int = 50
    LISTENER_WAIT_MS: int = 5_000

    # Installation Settings
    INSTALL_TIMEOUT_MS: int = 5 * 60 * 1000
    INSTALL_MAX_TIMEOUT_MS: int = 30 * 60 * 1000
    DEFAULT_REPOS: str = "https://cran.rstudio.com"
    CHECK_TIMEOUT_MS: int = 10_000

    # Safety Settings
    ENABLE_SAFETY_CHECKS: bool = True
    MAX_DAYS_SINCE_UPDATE: int = 730  # 2 years
    MAX_DEPENDENCIES: int = 50
    MIN_MONTHLY_DOWNLOADS: int = 100
    METADATA_FETCH_TIMEOUT_MS: int = 10_000
    STATS_FETCH_TIMEOUT_MS: int = 5_000
    BLACKLIST_PATH: Optional[Path] = None
    TRUSTED_MAINTAINERS_PATH: Optional[Path] = None

    # Registry Settings
    CRANDB_URL: str = "https://crandb.r-pkg.org"
    CRANLOGS_URL: str = "https://cranlogs.r-pkg.org"
    CRAN_PACKAGE_URL: str = "https://cran.r-project.org/package="
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="MINDY_", env_file=".env", extra="ignore")

    @property
    def commands_dir(self) -> Path:
        return self.HOME_DIR / self.COMMANDS_DIR_NAME


def clamp_timeout(requested_ms: Optional[int], default_ms: int, max_ms: int) -> int:
    """Return the requested timeout, falling back to the default and capped at the maximum."""
    if requested_ms is None or requested_ms <= 0:
        return default_ms
    return min(requested_ms, max_ms)


settings = Settings()
