"""
Confirmation prompts shown before code runs or packages are installed.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

import click


class Confirmer(ABC):
    """Asks the user to approve an action."""

    @abstractmethod
    def confirm_code(self, code: str, title: str) -> bool:
        """Show ``code`` under ``title`` and ask whether to execute it."""

    @abstractmethod
    def confirm(self, message: str, default: bool = False) -> bool:
        pass


class TerminalConfirmer(Confirmer):
    """Interactive prompt with a numbered code preview."""

    def __init__(self, max_preview_lines: int = 30, show_line_numbers: bool = True, default_answer: bool = False):
        self.max_preview_lines = max_preview_lines
        self.show_line_numbers = show_line_numbers
        self.default_answer = default_answer

    def confirm_code(self, code: str, title: str) -> bool:
        self.display_code_preview(code, title)
        return click.confirm(click.style("Execute this code?", fg="yellow"), default=self.default_answer)

    def confirm(self, message: str, default: bool = False) -> bool:
        return click.confirm(message, default=default)

    def display_code_preview(self, code: str, title: str) -> None:
        lines = code.split("\n")
        shown = lines[: self.max_preview_lines]

        click.echo("")
        click.secho("═" * 60, fg="cyan", bold=True)
        click.secho(f"  {title}", fg="cyan", bold=True)
        click.secho("═" * 60, fg="cyan", bold=True)
        click.echo("")

        for number, line in enumerate(shown, start=1):
            if self.show_line_numbers:
                click.echo(click.style(f"{number:>3} │ ", dim=True) + line)
            else:
                click.echo(f"  {line}")

        if len(lines) > self.max_preview_lines:
            click.echo("")
            click.secho(f"  ... ({len(lines) - self.max_preview_lines} more lines)", fg="yellow")

        click.echo("")
        click.secho("─" * 60, dim=True)


class AutoConfirmer(Confirmer):
    """Answers every prompt the same way and remembers what it was asked."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.prompts: List[Tuple[str, str]] = []

    def confirm_code(self, code: str, title: str) -> bool:
        self.prompts.append((title, code))
        return self.answer

    def confirm(self, message: str, default: bool = False) -> bool:
        self.prompts.append((message, ""))
        return self.answer
