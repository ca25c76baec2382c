from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from mindy.config import settings
from mindy.bridge.schemas import Command, ExecutionResponse, ExecutionStatus
from mindy.safety.schemas import PackageSafetyReport


class ExecutionMode(str, Enum):
    CURRENT = "current"  # File open in the RStudio editor
    CODE = "code"        # Inline code
    FILE = "file"        # .R script
    RMD = "rmd"          # .Rmd document


class RunInput(BaseModel):
    """What ``mindy run`` was asked to execute."""
    mode: ExecutionMode
    code: Optional[str] = None
    file_path: Optional[str] = None

    def to_command(self) -> Command:
        if self.mode == ExecutionMode.CURRENT:
            return Command.run_current()
        elif self.mode == ExecutionMode.FILE:
            return Command.run_file(self.file_path)
        elif self.mode == ExecutionMode.RMD:
            return Command.render_rmd(self.file_path)
        return Command.run_code(self.code)


class RunResult(BaseModel):
    command_id: str
    mode: ExecutionMode
    status: ExecutionStatus
    output: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None
    file_path: Optional[str] = None

    @classmethod
    def from_response(cls, command: Command, run_input: RunInput, response: ExecutionResponse) -> "RunResult":
        return cls(
            command_id=response.id or command.id,
            mode=run_input.mode,
            status=response.status,
            output=response.output,
            error=response.error,
            duration_ms=response.duration_ms,
            file_path=response.file or run_input.file_path,
        )

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED


class InstallationSource(str, Enum):
    CRAN = "cran"
    GITHUB = "github"
    BIOCONDUCTOR = "bioconductor"


class InstallationStatus(str, Enum):
    PENDING = "pending"
    CHECKING = "checking"
    INSTALLING = "installing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    ERROR = "error"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


class InstallOptions(BaseModel):
    yes: bool = False
    repos: str = settings.DEFAULT_REPOS
    source: str = InstallationSource.CRAN.value
    dependencies: bool = True
    timeout_ms: Optional[int] = None
    skip_safety: bool = False


class InstallationRequest(BaseModel):
    packages: List[str]
    source: InstallationSource = InstallationSource.CRAN
    repos: str = settings.DEFAULT_REPOS
    dependencies: bool = True
    timeout_ms: Optional[int] = None


class InstallationResponse(BaseModel):
    id: Optional[str] = None
    status: InstallationStatus
    installed: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    output: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None
    reports: List[PackageSafetyReport] = Field(default_factory=list)


class PackageInfo(BaseModel):
    """Installed state of one package in the R session."""
    name: str
    installed: bool
    version: Optional[str] = None

    @field_validator("version", mode="before")
    @classmethod
    def missing_version(cls, value: Any) -> Any:
        if isinstance(value, list):
            value = value[0] if value else None
        if value in ("NA", ""):
            return None
        return value

    @field_validator("name", "installed", mode="before")
    @classmethod
    def unbox(cls, value: Any) -> Any:
        if isinstance(value, list) and len(value) == 1:
            return value[0]
        return value
