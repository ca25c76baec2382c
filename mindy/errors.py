"""
Error taxonomy for the Mindy client.

Every failure surfaced to the CLI is a MindyError carrying its kind,
whether re-running the command may help, the process exit code and an
optional suggested fix.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from mindy.safety.schemas import PackageSafetyReport


class ErrorKind(str, Enum):
    """Broad classes of failure."""
    ENVIRONMENT = "environment"  # Missing listener, missing file, unsupported source
    PROTOCOL = "protocol"        # Channel timeout, unparsable or mismatched result
    POLICY = "policy"            # Blocked, rejected or cancelled by a rule or the user
    UPSTREAM = "upstream"        # Registry metadata could not be fetched


class MindyError(Exception):
    """Base class for all errors raised by the client."""

    kind: ErrorKind = ErrorKind.ENVIRONMENT
    retryable: bool = False
    exit_code: int = 1
    suggestion: Optional[str] = None

    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if suggestion is not None:
            self.suggestion = suggestion

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "suggestion": self.suggestion,
        }


# ============================================================================
# Environment errors
# ============================================================================

class ListenerUnavailable(MindyError):
    exit_code = 3
    suggestion = "Start the listener by running mindy::start() in the RStudio console."

    def __init__(self, location: str):
        super().__init__(f"Mindy listener is not running (no lock file at {location})")
        self.location = location


class ChannelUnavailable(MindyError):
    exit_code = 3
    suggestion = ListenerUnavailable.suggestion


class SourceFileNotFound(MindyError):
    exit_code = 2
    suggestion = "Check the path and make sure the file exists."

    def __init__(self, file_path: str):
        super().__init__(f"R file not found: {file_path}")
        self.file_path = file_path


class SourceFileUnreadable(MindyError):
    exit_code = 2
    suggestion = "Check the file's permissions and encoding."

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"R file could not be read: {file_path} ({reason})")
        self.file_path = file_path


class InvalidPackageName(MindyError):
    exit_code = 2

    def __init__(self, package_name: str, source: str):
        super().__init__(f"Invalid package name for {source}: {package_name!r}")
        self.package_name = package_name


class UnsupportedSource(MindyError):
    exit_code = 2

    def __init__(self, source: str, supported: Optional[List[str]] = None):
        message = f"Unsupported source: {source}"
        if supported:
            message += f" (expected one of: {', '.join(supported)})"
        super().__init__(message)
        self.source = source


# ============================================================================
# Protocol errors
# ============================================================================

class ChannelError(MindyError):
    kind = ErrorKind.PROTOCOL
    retryable = True
    exit_code = 4


class ChannelTimeout(ChannelError):
    suggestion = "The code may still be running in R. Retry with a larger --timeout."

    def __init__(self, timeout_ms: int):
        super().__init__(f"Execution timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class ChannelBusy(ChannelError):
    def __init__(self, outstanding_id: str):
        super().__init__(f"Command {outstanding_id} is still awaiting its result")
        self.outstanding_id = outstanding_id


class ResponseParseError(ChannelError):
    pass


# ============================================================================
# Policy errors
# ============================================================================

class ExecutionRejected(MindyError):
    kind = ErrorKind.POLICY
    exit_code = 5

    def __init__(self, message: str = "Code execution was rejected by user"):
        super().__init__(message)


class InstallationCancelled(MindyError):
    kind = ErrorKind.POLICY
    exit_code = 5

    def __init__(self, message: str = "Installation cancelled by user"):
        super().__init__(message)


class InstallationBlocked(MindyError):
    kind = ErrorKind.POLICY
    exit_code = 5
    suggestion = "Review the safety report, or pass --skip-safety if you trust these packages."

    def __init__(self, reports: List["PackageSafetyReport"]):
        details = "; ".join(
            f"{report.package_name}: {', '.join(report.errors) or report.safety_level.value}"
            for report in reports
        )
        super().__init__(f"Installation blocked by safety checks ({details})")
        self.reports = reports

    @property
    def blocked_packages(self) -> List[str]:
        return [report.package_name for report in self.reports]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["blocked"] = {report.package_name: list(report.errors) for report in self.reports}
        return data


# ============================================================================
# Upstream errors
# ============================================================================

class MetadataFetchError(MindyError):
    kind = ErrorKind.UPSTREAM
    retryable = True


def suggest_fix(error: BaseException) -> Optional[str]:
    """
    Get a suggested fix for an error.

    MindyError subclasses carry their own suggestion; anything else is
    matched on its message.
    """
    if isinstance(error, MindyError) and error.suggestion:
        return error.suggestion

    error_str = str(error).lower()

    if "permission denied" in error_str:
        return "Check permissions on the ~/.mindy directory"
    elif "not found" in error_str:
        return "Ensure the required resource exists"
    elif "connection" in error_str or "timeout" in error_str or "timed out" in error_str:
        return "Check network connectivity and retry"

    return None
