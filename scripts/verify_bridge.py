import asyncio
import json
import sys
import os
import tempfile
from pathlib import Path

# Add the project root to sys.path
sys.path.append(os.getcwd())

from mindy.bridge.client import FileChannel, Mailbox
from mindy.bridge.schemas import Command
from mindy.errors import ChannelTimeout

# Mock R listener: polls pending.json the way mindy::start() does
async def mock_listener(mailbox: Mailbox, stop: asyncio.Event):
    handled = set()
    while not stop.is_set():
        try:
            command = json.loads(mailbox.pending_file.read_text())
        except (FileNotFoundError, ValueError):
            command = None

        if command and command["id"] not in handled:
            handled.add(command["id"])
            print(f"Mock listener received: {command}")
            code = command.get("code") or ""

            if code == "Sys.sleep(60)":
                pass  # Never answers
            elif code == "stop('boom')":
                result = {"id": command["id"], "status": "error", "error": "Error: boom", "duration": 3}
                mailbox.result_file.write_text(json.dumps(result))
            else:
                result = {"id": command["id"], "status": "completed", "output": "[1] 2", "durationMs": 12}
                mailbox.result_file.write_text(json.dumps(result))

        await asyncio.sleep(0.05)

async def run_channel_test(mailbox: Mailbox):
    print("\n--- Testing File Channel ---")
    channel = FileChannel(mailbox, timeout_ms=2000, poll_interval_ms=50)

    try:
        print("1. Testing inline code...")
        res = await channel.send(Command.run_code("1 + 1"), 2000)
        print(f"✅ Result: {res.output} (Status: {res.status.value}, {res.duration_ms}ms)")

        print("\n2. Testing R error...")
        res = await channel.send(Command.run_code("stop('boom')"), 2000)
        print(f"✅ Result: {res.error} (Status: {res.status.value})")

        print("\n3. Testing timeout...")
        try:
            await channel.send(Command.run_code("Sys.sleep(60)"), 500)
            print("❌ FAIL: expected a timeout")
        except ChannelTimeout as e:
            print(f"✅ Timed out as expected: {e}")

    except Exception as e:
        print(f"❌ ERROR: {e}")

async def main():
    with tempfile.TemporaryDirectory() as tmp:
        mailbox = Mailbox(Path(tmp) / "commands")
        mailbox.ensure()
        mailbox.lock_file.write_text("")

        stop = asyncio.Event()
        listener_task = asyncio.create_task(mock_listener(mailbox, stop))

        await run_channel_test(mailbox)

        stop.set()
        await listener_task

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
