import asyncio
import json

import pytest

from mindy.bridge.client import FileChannel, Mailbox
from mindy.bridge.schemas import Command, ExecutionStatus
from mindy.errors import ChannelBusy, ChannelTimeout, ChannelUnavailable

from conftest import FakeListener


def completed(command: dict) -> dict:
    return {"id": command["id"], "status": "completed", "output": "[1] 2", "durationMs": 12}


def test_listener_liveness_follows_lock_file(mailbox: Mailbox) -> None:
    channel = FileChannel(mailbox)
    assert not channel.is_listener_alive()

    mailbox.lock_file.write_text("", encoding="utf-8")
    assert channel.is_listener_alive()
    assert channel.location == str(mailbox.lock_file)


def test_submit_without_listener_fails(mailbox: Mailbox) -> None:
    channel = FileChannel(mailbox)

    with pytest.raises(ChannelUnavailable):
        asyncio.run(channel.submit(Command.run_code("1 + 1")))
    assert not mailbox.pending_file.exists()


def test_submit_writes_pending_command(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_code("summary(mtcars)")
    asyncio.run(channel.submit(command))

    data = json.loads(live_mailbox.pending_file.read_text(encoding="utf-8"))
    assert data["id"] == command.id
    assert data["action"] == "run_code"
    assert data["code"] == "summary(mtcars)"
    assert channel.outstanding_id == command.id
    assert not list(live_mailbox.directory.glob("*.tmp"))


def test_send_returns_matching_result_and_consumes_it(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_code("1 + 1")

    with FakeListener(live_mailbox, completed) as listener:
        response = asyncio.run(channel.send(command, 2000))

    assert listener.seen[0]["id"] == command.id
    assert response.id == command.id
    assert response.status == ExecutionStatus.COMPLETED
    assert response.output == "[1] 2"
    assert response.duration_ms == 12
    assert not live_mailbox.result_file.exists()
    assert not live_mailbox.pending_file.exists()
    assert channel.outstanding_id is None


def test_result_is_consumed_exactly_once(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_code("1 + 1")

    with FakeListener(live_mailbox, completed):
        asyncio.run(channel.send(command, 2000))

    with pytest.raises(ChannelTimeout):
        asyncio.run(channel.await_result(command.id, 100))


def test_wildcard_result_answers_any_command(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_current()

    with FakeListener(live_mailbox, lambda c: {"id": None, "status": "completed", "output": "done"}):
        response = asyncio.run(channel.send(command, 2000))

    assert response.output == "done"
    assert not live_mailbox.result_file.exists()


def test_mismatched_result_is_left_in_place(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_code("1 + 1")
    asyncio.run(channel.submit(command))
    stray = json.dumps({"id": "someone-else", "status": "completed"})
    live_mailbox.result_file.write_text(stray, encoding="utf-8")

    with pytest.raises(ChannelTimeout):
        asyncio.run(channel.await_result(command.id, 100))

    assert live_mailbox.result_file.read_text(encoding="utf-8") == stray


def test_partial_result_is_retried_until_complete(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_code("1 + 1")
    asyncio.run(channel.submit(command))
    live_mailbox.result_file.write_text('{"id": "' + command.id + '", "sta', encoding="utf-8")

    async def finish_write_then_wait():
        async def finish():
            await asyncio.sleep(0.05)
            live_mailbox.result_file.write_text(json.dumps(completed({"id": command.id})), encoding="utf-8")

        writer = asyncio.ensure_future(finish())
        response = await channel.await_result(command.id, 1000)
        await writer
        return response

    response = asyncio.run(finish_write_then_wait())
    assert response.status == ExecutionStatus.COMPLETED


def test_timeout_leaves_no_result_consumed(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_code("Sys.sleep(60)")
    asyncio.run(channel.submit(command))

    with pytest.raises(ChannelTimeout) as exc_info:
        asyncio.run(channel.await_result(command.id, 100))

    assert exc_info.value.retryable
    assert channel.outstanding_id is None
    assert not live_mailbox.result_file.exists()


def test_second_submit_while_outstanding_is_rejected(channel: FileChannel) -> None:
    first = Command.run_code("1")
    asyncio.run(channel.submit(first))

    with pytest.raises(ChannelBusy):
        asyncio.run(channel.submit(Command.run_code("2")))

    with pytest.raises(ChannelTimeout):
        asyncio.run(channel.await_result(first.id, 50))
    asyncio.run(channel.submit(Command.run_code("3")))


def test_stale_result_is_discarded_on_submit(channel: FileChannel, live_mailbox: Mailbox) -> None:
    live_mailbox.result_file.write_text(json.dumps({"id": None, "status": "completed"}), encoding="utf-8")

    asyncio.run(channel.submit(Command.run_code("1 + 1")))

    assert not live_mailbox.result_file.exists()


def test_timeouts_are_clamped_to_maximum(live_mailbox: Mailbox) -> None:
    channel = FileChannel(live_mailbox, timeout_ms=10_000_000, max_timeout_ms=60_000)
    assert channel.timeout_ms == 60_000

    channel.set_timeout(5_000)
    assert channel.timeout_ms == 5_000
    channel.set_timeout(90_000)
    assert channel.timeout_ms == 60_000


def test_wait_for_listener(mailbox: Mailbox) -> None:
    channel = FileChannel(mailbox)
    assert asyncio.run(channel.wait_for_listener(150)) is False

    mailbox.lock_file.write_text("", encoding="utf-8")
    assert asyncio.run(channel.wait_for_listener(150)) is True


def test_listener_written_result_is_consumed(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_code("1 + 1")
    asyncio.run(channel.submit(command))
    live_mailbox.result_file.write_text(json.dumps({
        "id": command.id,
        "status": "completed",
        "output": "[1] 2",
        "file": {},
        "duration": 12.3,
        "timestamp": "2026-10-19T17:30:00+0200",
    }, indent=2), encoding="utf-8")

    response = asyncio.run(channel.await_result(command.id, 300))

    assert response.output == "[1] 2"
    assert response.duration_ms == 12
    assert not live_mailbox.result_file.exists()


def test_listener_error_without_id_answers_command(channel: FileChannel, live_mailbox: Mailbox) -> None:
    command = Command.run_current()

    with FakeListener(live_mailbox, lambda c: {"id": {}, "status": "error", "error": "Unknown command format"}):
        response = asyncio.run(channel.send(command, 2000))

    assert response.status == ExecutionStatus.ERROR
    assert response.error == "Unknown command format"
    assert channel.outstanding_id is None
