import json
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

import httpx
import pytest

from mindy.config import settings
from mindy.bridge.channel import Channel
from mindy.bridge.client import FileChannel, Mailbox
from mindy.bridge.schemas import Command, ExecutionResponse, ExecutionStatus
from mindy.errors import ChannelTimeout, ChannelUnavailable
from mindy.safety.schemas import PackageMetadata


class FakeChannel(Channel):
    """In-memory channel answering each command with ``responder(command)``."""

    def __init__(self, responder: Optional[Callable[[Command], ExecutionResponse]] = None, alive: bool = True):
        self.responder = responder or (lambda command: ExecutionResponse(id=command.id, status=ExecutionStatus.COMPLETED))
        self.alive = alive
        self.submitted: List[Command] = []
        self._answers = {}

    def is_listener_alive(self) -> bool:
        return self.alive

    async def submit(self, command: Command) -> None:
        if not self.alive:
            raise ChannelUnavailable("listener gone")
        self.submitted.append(command)
        self._answers[command.id] = self.responder(command)

    async def await_result(self, command_id: str, timeout_ms: Optional[int] = None) -> ExecutionResponse:
        response = self._answers.pop(command_id, None)
        if response is None:
            raise ChannelTimeout(timeout_ms or 0)
        return response


class FakeListener:
    """Thread standing in for the R listener: answers pending.json by writing result.json."""

    def __init__(self, mailbox: Mailbox, answer: Callable[[dict], Optional[dict]], delay: float = 0.02):
        self.mailbox = mailbox
        self.answer = answer
        self.delay = delay
        self.seen: List[dict] = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)

    def __enter__(self) -> "FakeListener":
        self._thread.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self._stop.set()
        self._thread.join(timeout=2.0)

    def _loop(self) -> None:
        handled = set()
        while not self._stop.is_set():
            try:
                command = json.loads(self.mailbox.pending_file.read_text(encoding="utf-8"))
            except (FileNotFoundError, ValueError):
                command = None
            if command and command["id"] not in handled:
                handled.add(command["id"])
                self.seen.append(command)
                time.sleep(self.delay)
                result = self.answer(command)
                if result is not None:
                    self.mailbox.result_file.write_text(json.dumps(result), encoding="utf-8")
            time.sleep(0.005)


def cran_record(name: str, **fields) -> dict:
    record = {
        "Package": name,
        "Version": "1.0.0",
        "Maintainer": "Jane Doe <jane@example.org>",
        "License": "GPL-3",
        "Imports": {"stats": "*"},
        "Date/Publication": "2026-06-01 10:00:00 UTC",
    }
    record.update(fields)
    return record


def registry(records: dict, downloads: int = 50_000) -> httpx.AsyncClient:
    """AsyncClient serving crandb ``records`` by package name; unknown names are 404."""
    stats_host = httpx.URL(settings.CRANLOGS_URL).host

    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if request.url.host == stats_host:
            return httpx.Response(200, json=[{"downloads": downloads, "package": name}])
        record = records.get(name)
        if record is None:
            return httpx.Response(404)
        return httpx.Response(200, json=record)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def mailbox(tmp_path: Path) -> Mailbox:
    box = Mailbox(tmp_path / "commands")
    box.ensure()
    return box


@pytest.fixture
def live_mailbox(mailbox: Mailbox) -> Mailbox:
    mailbox.lock_file.write_text("", encoding="utf-8")
    return mailbox


@pytest.fixture
def channel(live_mailbox: Mailbox) -> FileChannel:
    return FileChannel(live_mailbox, timeout_ms=300, poll_interval_ms=10)


@pytest.fixture
def healthy_metadata() -> Callable[..., PackageMetadata]:
    def _make(name: str = "dplyr", **overrides) -> PackageMetadata:
        fields = dict(
            name=name,
            version="1.1.4",
            maintainer="Hadley Wickham <hadley@posit.co>",
            license="MIT + file LICENSE",
            dependencies=["cli", "generics", "glue"],
            last_update=datetime.now(timezone.utc),
            downloads=1_500_000,
        )
        fields.update(overrides)
        return PackageMetadata(**fields)
    return _make
