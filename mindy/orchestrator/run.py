"""
``mindy run``: execute code in the RStudio session.

    mindy run                 # run the file open in the editor
    mindy run "1 + 1"         # inline code
    mindy run script.R        # source a script
    mindy run report.Rmd      # render a document
"""

import logging
import re
from pathlib import Path
from typing import Optional

from mindy.bridge.channel import Channel
from mindy.errors import ExecutionRejected, ListenerUnavailable, SourceFileNotFound, SourceFileUnreadable
from mindy.orchestrator.base import translate_errors
from mindy.orchestrator.confirm import Confirmer
from mindy.orchestrator.schemas import ExecutionMode, RunInput, RunResult

logger = logging.getLogger("mindy.orchestrator")

RMD_FILE_REGEX = re.compile(r"\.[Rr]md$")
R_FILE_REGEX = re.compile(r"\.[Rr]$")


def parse_run_input(code_arg: Optional[str]) -> RunInput:
    """
    Classify the ``run`` argument.

    Raises:
        SourceFileNotFound: the argument names an .R/.Rmd file that does not exist
        SourceFileUnreadable: the file exists but cannot be read
    """
    if not code_arg:
        return RunInput(mode=ExecutionMode.CURRENT)

    if RMD_FILE_REGEX.search(code_arg):
        mode = ExecutionMode.RMD
    elif R_FILE_REGEX.search(code_arg):
        mode = ExecutionMode.FILE
    else:
        return RunInput(mode=ExecutionMode.CODE, code=code_arg)

    file_path = Path(code_arg).expanduser().resolve()
    if not file_path.is_file():
        raise SourceFileNotFound(str(file_path))

    try:
        code = file_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise SourceFileUnreadable(str(file_path), e.strerror or str(e)) from e

    return RunInput(mode=mode, code=code, file_path=str(file_path))


def confirmation_title(run_input: RunInput) -> str:
    if run_input.mode == ExecutionMode.FILE:
        return f"R File: {run_input.file_path}"
    elif run_input.mode == ExecutionMode.RMD:
        return f"R Markdown: {run_input.file_path}"
    return "R Code to Execute"


class RunOrchestrator:
    """Resolves the input, asks for confirmation and sends one command to the listener."""

    def __init__(self, channel: Channel, confirmer: Confirmer, timeout_ms: Optional[int] = None):
        self.channel = channel
        self.confirmer = confirmer
        self.timeout_ms = timeout_ms

    async def run(self, code_arg: Optional[str] = None, yes: bool = False) -> RunResult:
        run_input = parse_run_input(code_arg)

        # The editor's current file is the user's own buffer, no preview needed
        if not yes and run_input.mode != ExecutionMode.CURRENT:
            if not self.confirmer.confirm_code(run_input.code or "", confirmation_title(run_input)):
                raise ExecutionRejected()

        if not self.channel.is_listener_alive():
            raise ListenerUnavailable(self.channel.location)

        command = run_input.to_command()
        logger.info(f"Running {run_input.mode.value} as command {command.id}")

        with translate_errors(self.channel.location):
            response = await self.channel.send(command, self.timeout_ms)

        return RunResult.from_response(command, run_input, response)
