import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from mindy import __version__
from mindy.bridge.client import Mailbox
from mindy.cli.main import cli
from mindy.config import settings

from conftest import FakeListener


@pytest.fixture
def home(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setattr(settings, "HOME_DIR", tmp_path)
    return tmp_path


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_status_without_listener(home: Path) -> None:
    result = CliRunner().invoke(cli, ["status"])

    assert result.exit_code == 3
    assert "mindy::start()" in result.output


def test_status_with_listener(home: Path) -> None:
    mailbox = Mailbox.default()
    mailbox.ensure()
    mailbox.lock_file.write_text("", encoding="utf-8")

    result = CliRunner().invoke(cli, ["status"])

    assert result.exit_code == 0
    assert "Listener is running" in result.output


def test_run_missing_file_exit_code(home: Path, tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["run", str(tmp_path / "script.R"), "--json"])

    assert result.exit_code == 2
    assert json.loads(result.output)["error"]["type"] == "SourceFileNotFound"


def test_run_without_listener_exit_code(home: Path) -> None:
    result = CliRunner().invoke(cli, ["run", "1 + 1", "--yes"])

    assert result.exit_code == 3


def test_run_inline_code_as_json(home: Path) -> None:
    mailbox = Mailbox.default()
    mailbox.ensure()
    mailbox.lock_file.write_text("", encoding="utf-8")

    def answer(command: dict) -> dict:
        return {"id": command["id"], "status": "completed", "output": "[1] 2", "durationMs": 12}

    with FakeListener(mailbox, answer):
        result = CliRunner().invoke(cli, ["run", "1 + 1", "--yes", "--json", "--timeout", "5000"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["status"] == "completed"
    assert payload["output"] == "[1] 2"


def test_run_declined_at_prompt(home: Path) -> None:
    result = CliRunner().invoke(cli, ["run", "1 + 1"], input="n\n")

    assert result.exit_code == 5
