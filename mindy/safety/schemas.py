from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SafetyLevel(str, Enum):
    SAFE = "safe"            # Nothing to report
    WARNING = "warning"      # Minor findings, install freely
    RISKY = "risky"          # Needs user confirmation
    DANGEROUS = "dangerous"  # Strongly discouraged
    BLOCKED = "blocked"      # Never installed


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class CheckCategory(str, Enum):
    BLACKLIST = "blacklist"
    REGISTRY_STATUS = "registry_status"
    MAINTENANCE = "maintenance"
    DEPENDENCY_FOOTPRINT = "dependency_footprint"
    COMMUNITY_TRUST = "community_trust"
    LICENSE = "license"


class SafetyCheck(BaseModel):
    """Verdict of a single check. Severity only matters when the check failed."""
    model_config = ConfigDict(frozen=True)

    name: str
    category: CheckCategory
    passed: bool
    severity: Severity = Severity.INFO
    message: str
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_blocking(self) -> bool:
        return not self.passed and self.severity in (Severity.ERROR, Severity.CRITICAL)


class PackageMetadata(BaseModel):
    """Registry descriptor normalised across sources."""
    name: str
    version: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    maintainer: Optional[str] = None
    license: Optional[str] = None
    dependencies: List[str] = Field(default_factory=list)
    published: Optional[datetime] = None
    last_update: Optional[datetime] = None
    cran_url: Optional[str] = None
    github_url: Optional[str] = None
    downloads: int = 0
    archived: bool = False


class PackageSafetyReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    package_name: str
    safety_level: SafetyLevel
    checks: Tuple[SafetyCheck, ...] = ()
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
    allow_installation: bool

    @property
    def needs_confirmation(self) -> bool:
        return self.safety_level in (SafetyLevel.RISKY, SafetyLevel.DANGEROUS)


class BlacklistEntry(BaseModel):
    package: Optional[str] = Field(None, description="Exact package name")
    pattern: Optional[str] = Field(None, description="Regular expression matched against the whole name")
    reason: str
    date_added: Optional[str] = None
    severity: Severity = Severity.ERROR
    reference: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self) -> "BlacklistEntry":
        if not self.package and not self.pattern:
            raise ValueError("blacklist entries need a package or a pattern")
        return self


class TrustedMaintainer(BaseModel):
    identifier: str = Field(..., description="Maintainer name or email fragment")
    organization: Optional[str] = None
    trust_level: str = "known"
    notable_packages: List[str] = Field(default_factory=list)
