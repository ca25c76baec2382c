"""
Channel interface between the CLI and the R listener.

A channel carries exactly one outstanding command at a time: submit a
command, then await the response correlated to its id.
"""

from abc import ABC, abstractmethod
from typing import Optional

from mindy.bridge.schemas import Command, ExecutionResponse


class Channel(ABC):

    @property
    def location(self) -> str:
        """Where the listener is expected, for error messages."""
        return type(self).__name__

    @abstractmethod
    def is_listener_alive(self) -> bool:
        """Return True if the listener advertises itself as running. Must not block."""

    @abstractmethod
    async def submit(self, command: Command) -> None:
        """
        Hand a command to the listener.

        Raises:
            ChannelUnavailable: the listener is not running
            ChannelBusy: a previous command on this channel has not been answered
        """

    @abstractmethod
    async def await_result(self, command_id: str, timeout_ms: Optional[int] = None) -> ExecutionResponse:
        """
        Wait for the response to ``command_id`` and consume it.

        Raises:
            ChannelTimeout: no matching response arrived in time
        """

    async def send(self, command: Command, timeout_ms: Optional[int] = None) -> ExecutionResponse:
        """Submit a command and wait for its response."""
        await self.submit(command)
        return await self.await_result(command.id, timeout_ms)
