"""
File-based command channel to the Mindy listener inside RStudio.
"""

from mindy.bridge.channel import Channel
from mindy.bridge.client import FileChannel, Mailbox
from mindy.bridge.schemas import Command, CommandAction, ExecutionResponse, ExecutionStatus

__all__ = [
    "Channel",
    "Command",
    "CommandAction",
    "ExecutionResponse",
    "ExecutionStatus",
    "FileChannel",
    "Mailbox",
]
