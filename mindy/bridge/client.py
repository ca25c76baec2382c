import asyncio
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mindy.config import settings, clamp_timeout
from mindy.bridge.channel import Channel
from mindy.bridge.schemas import Command, ExecutionResponse
from mindy.errors import ChannelBusy, ChannelTimeout, ChannelUnavailable

logger = logging.getLogger("mindy.bridge")


@dataclass(frozen=True)
class Mailbox:
    """Locations shared with the R listener."""
    directory: Path

    @classmethod
    def default(cls) -> "Mailbox":
        return cls(settings.commands_dir)

    @property
    def pending_file(self) -> Path:
        return self.directory / settings.PENDING_FILE_NAME

    @property
    def result_file(self) -> Path:
        return self.directory / settings.RESULT_FILE_NAME

    @property
    def lock_file(self) -> Path:
        return self.directory / settings.LOCK_FILE_NAME

    def ensure(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)


class FileChannel(Channel):
    """
    Channel to the Mindy listener running inside RStudio.

    The listener polls ``pending.json``, executes the command and writes
    ``result.json``; its ``.lock`` file signals that it is running.
    """

    def __init__(
        self,
        mailbox: Optional[Mailbox] = None,
        timeout_ms: Optional[int] = None,
        poll_interval_ms: int = settings.POLL_INTERVAL_MS,
        max_timeout_ms: int = settings.EXECUTION_MAX_TIMEOUT_MS,
    ):
        self.mailbox = mailbox or Mailbox.default()
        self.max_timeout_ms = max_timeout_ms
        self.timeout_ms = clamp_timeout(timeout_ms, settings.EXECUTION_TIMEOUT_MS, max_timeout_ms)
        self.poll_interval = poll_interval_ms / 1000
        self._outstanding: Optional[str] = None

    @property
    def outstanding_id(self) -> Optional[str]:
        return self._outstanding

    def set_timeout(self, timeout_ms: int) -> None:
        self.timeout_ms = clamp_timeout(timeout_ms, self.timeout_ms, self.max_timeout_ms)

    @property
    def location(self) -> str:
        return str(self.mailbox.lock_file)

    def is_listener_alive(self) -> bool:
        return self.mailbox.lock_file.exists()

    async def wait_for_listener(self, max_wait_ms: int = settings.LISTENER_WAIT_MS) -> bool:
        """Poll for the listener's lock file for up to ``max_wait_ms``."""
        deadline = time.monotonic() + max_wait_ms / 1000
        while time.monotonic() < deadline:
            if self.is_listener_alive():
                return True
            await asyncio.sleep(0.1)
        return self.is_listener_alive()

    async def submit(self, command: Command) -> None:
        if self._outstanding is not None:
            raise ChannelBusy(self._outstanding)
        if not self.is_listener_alive():
            raise ChannelUnavailable(f"Mindy listener is not running (no lock file at {self.mailbox.lock_file})")

        self.mailbox.ensure()

        # A stale result must not be read as the answer to this command
        if self.mailbox.result_file.exists():
            logger.debug(f"Discarding stale result file {self.mailbox.result_file}")
            self.mailbox.result_file.unlink(missing_ok=True)

        self._write_pending(command)
        self._outstanding = command.id
        logger.info(f"Submitted command {command.id} ({command.action.value})")

    async def await_result(self, command_id: str, timeout_ms: Optional[int] = None) -> ExecutionResponse:
        timeout_ms = clamp_timeout(timeout_ms, self.timeout_ms, self.max_timeout_ms)
        deadline = time.monotonic() + timeout_ms / 1000

        while True:
            try:
                response = self._read_result()
            except ValueError:
                # Listener may still be writing the file
                logger.debug("Result file not parsable yet, retrying")
                response = None
                await asyncio.sleep(settings.PARSE_RETRY_DELAY_MS / 1000)

            if response is not None:
                if response.matches(command_id):
                    self.mailbox.result_file.unlink(missing_ok=True)
                    self._discard_pending(command_id)
                    if self._outstanding == command_id:
                        self._outstanding = None
                    logger.info(f"Received result for {command_id}: {response.status.value}")
                    return response
                logger.debug(f"Ignoring result for {response.id} while waiting for {command_id}")

            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(self.poll_interval)

        if self._outstanding == command_id:
            self._outstanding = None
        logger.warning(f"No result for {command_id} after {timeout_ms}ms")
        raise ChannelTimeout(timeout_ms)

    def _write_pending(self, command: Command) -> None:
        pending = self.mailbox.pending_file
        tmp = pending.with_name(pending.name + ".tmp")
        tmp.write_text(command.to_json(), encoding="utf-8")
        os.replace(tmp, pending)

    def _read_result(self) -> Optional[ExecutionResponse]:
        try:
            content = self.mailbox.result_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return ExecutionResponse.model_validate_json(content)

    def _discard_pending(self, command_id: str) -> None:
        pending = self.mailbox.pending_file
        try:
            current = Command.model_validate_json(pending.read_text(encoding="utf-8"))
        except (FileNotFoundError, ValueError):
            return
        if current.id == command_id:
            pending.unlink(missing_ok=True)
