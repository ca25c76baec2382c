import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class CommandAction(str, Enum):
    """Actions the R listener knows how to perform."""
    RUN_CURRENT = "run_current"  # Source the file open in the RStudio editor
    RUN_CODE = "run_code"        # Evaluate inline code
    RUN_FILE = "run_file"        # Source a script file
    RENDER_RMD = "render_rmd"    # Render an R Markdown document


FILE_ACTIONS = (CommandAction.RUN_FILE, CommandAction.RENDER_RMD)


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


def generate_command_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class Command(BaseModel):
    """A request written to the mailbox for the listener to pick up."""
    id: str = Field(default_factory=generate_command_id)
    action: CommandAction
    code: Optional[str] = None
    file: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def check_payload(self) -> "Command":
        if self.action == CommandAction.RUN_CODE:
            if self.code is None or self.file is not None:
                raise ValueError("run_code commands carry code and no file")
        elif self.action in FILE_ACTIONS:
            if self.file is None or self.code is not None:
                raise ValueError(f"{self.action.value} commands carry a file and no code")
        elif self.code is not None or self.file is not None:
            raise ValueError("run_current commands carry no payload")
        return self

    @property
    def payload(self) -> Optional[str]:
        return self.code if self.code is not None else self.file

    @classmethod
    def run_current(cls) -> "Command":
        return cls(action=CommandAction.RUN_CURRENT)

    @classmethod
    def run_code(cls, code: str) -> "Command":
        return cls(action=CommandAction.RUN_CODE, code=code)

    @classmethod
    def run_file(cls, file_path: str) -> "Command":
        return cls(action=CommandAction.RUN_FILE, file=file_path)

    @classmethod
    def render_rmd(cls, file_path: str) -> "Command":
        return cls(action=CommandAction.RENDER_RMD, file=file_path)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True, indent=2)


class ExecutionResponse(BaseModel):
    """The listener's answer. A null id is accepted as the answer to the oldest pending command."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    status: ExecutionStatus
    output: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = Field(
        None, validation_alias=AliasChoices("duration_ms", "durationMs", "duration")
    )
    file: Optional[str] = None

    # jsonlite writes R's NULL as {} and, without auto_unbox, scalars as one-element arrays
    @field_validator("id", "output", "error", "file", mode="before")
    @classmethod
    def unbox_text(cls, value: Any) -> Any:
        if value == {}:
            return None
        if isinstance(value, list):
            if not value:
                return None
            return "\n".join(str(item) for item in value)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def unbox_status(cls, value: Any) -> Any:
        if isinstance(value, list) and len(value) == 1:
            return value[0]
        return value

    @field_validator("duration_ms", mode="before")
    @classmethod
    def round_duration(cls, value: Any) -> Any:
        if value == {}:
            return None
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, float):
            return int(round(value))
        return value

    def matches(self, command_id: str) -> bool:
        return self.id is None or self.id == command_id

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True, indent=2)
