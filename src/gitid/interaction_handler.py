"""User interaction abstraction for the CLI and for tests.

This module provides a protocol-based approach to user interaction: a
picker that renders selectable profile rows with per-row and global
actions, a single-line text prompt, and info/warning notices.

Example:
    >>> handler = CLIInteractionHandler()
    >>> name = handler.prompt_text("New git user name", placeholder="user.name")

    Testing example:
    >>> test_handler = MockInteractionHandler(
    ...     pick_responses=[PickerSelection(action=ACTION_ADD)],
    ...     text_responses=["Alice", "alice@x.com", ""],
    ... )
    >>> test_handler.prompt_text("name")
    'Alice'
"""

import re
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gitid.profile_store import Profile

ACTION_SWITCH = "switch"
ACTION_DELETE = "delete"
ACTION_ADD = "add"
ACTION_REFRESH = "refresh"

GLOBAL_ACTIONS = (ACTION_ADD, ACTION_REFRESH)


@dataclass(frozen=True)
class ProfileRow:
    """One selectable picker entry."""

    profile: Profile
    label: str
    description: str
    is_current: bool
    actions: tuple[str, ...] = (ACTION_SWITCH,)


@dataclass(frozen=True)
class PickerSelection:
    """What the user chose in the picker.

    Attributes:
        action: One of switch, delete, add, refresh
        index: Row index for per-row actions, None for global actions
    """

    action: str
    index: int | None = None


@runtime_checkable
class InteractionHandler(Protocol):
    """Protocol for user interaction."""

    def prompt_text(self, message: str, placeholder: str | None = None) -> str | None:
        """Prompt for one line of text.

        Returns:
            The entered text as typed (not trimmed), or None/"" if the user cancelled
        """
        ...

    def pick(
        self,
        title: str,
        rows: list[ProfileRow],
        global_actions: tuple[str, ...] = GLOBAL_ACTIONS,
    ) -> PickerSelection | None:
        """Show rows and return the selection, or None when dismissed."""
        ...

    def show_warning(self, message: str) -> None: ...

    def show_info(self, message: str) -> None: ...


class CLIInteractionHandler:
    """Click and rich based terminal interaction.

    Picker input:
        <n>    switch to row n
        d<n>   delete row n
        a      add a new profile
        r      refresh
        q      dismiss (also empty input)
    """

    _DELETE_RE = re.compile(r"^d\s*(\d+)$")

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def prompt_text(self, message: str, placeholder: str | None = None) -> str | None:
        label = f"{message} ({placeholder})" if placeholder else message
        try:
            value = click.prompt(label, default="", show_default=False, type=str)
        except click.Abort:
            click.echo()
            return None
        return value

    def render_rows(self, title: str, rows: list[ProfileRow]) -> None:
        table = Table(title=title)
        table.add_column("#", style="cyan", width=4)
        table.add_column("Name", style="green")
        table.add_column("Details")
        table.add_column("Actions", style="yellow")

        for i, row in enumerate(rows, 1):
            label = escape(row.label)
            table.add_row(
                str(i),
                f"[bold]{label}[/bold]" if row.is_current else label,
                escape(row.description),
                ", ".join(row.actions),
            )

        self.console.print(table)

    def _parse(
        self, choice: str, rows: list[ProfileRow], global_actions: tuple[str, ...]
    ) -> PickerSelection | None:
        """Translate picker input; raises ValueError on anything unusable."""
        if choice.isdigit():
            index = int(choice) - 1
            if not 0 <= index < len(rows):
                raise ValueError(f"Please enter a number between 1 and {len(rows)}")
            return PickerSelection(action=ACTION_SWITCH, index=index)

        match = self._DELETE_RE.match(choice)
        if match:
            index = int(match.group(1)) - 1
            if not 0 <= index < len(rows):
                raise ValueError(f"Please enter a number between 1 and {len(rows)}")
            if ACTION_DELETE not in rows[index].actions:
                raise ValueError("The current profile cannot be deleted")
            return PickerSelection(action=ACTION_DELETE, index=index)

        for action in global_actions:
            if choice == action[0]:
                return PickerSelection(action=action)

        raise ValueError(f"Unrecognized choice: {choice}")

    def pick(
        self,
        title: str,
        rows: list[ProfileRow],
        global_actions: tuple[str, ...] = GLOBAL_ACTIONS,
    ) -> PickerSelection | None:
        if rows:
            self.render_rows(title, rows)
        else:
            self.console.print("[yellow]No saved profiles yet.[/yellow]")

        hints = ["<n> switch"] if rows else []
        if any(ACTION_DELETE in row.actions for row in rows):
            hints.append("d<n> delete")
        hints.extend(f"{action[0]} {action}" for action in global_actions)
        hints.append("q quit")
        click.echo("  " + "  |  ".join(hints))

        while True:
            try:
                choice = click.prompt("Select", default="", show_default=False, type=str)
            except click.Abort:
                click.echo()
                return None

            choice = choice.strip().lower()
            if choice in ("", "q"):
                return None

            try:
                return self._parse(choice, rows, global_actions)
            except ValueError as e:
                click.secho(str(e), fg="red")

    def show_warning(self, message: str) -> None:
        click.secho(f"Warning: {message}", fg="yellow", err=True)

    def show_info(self, message: str) -> None:
        click.secho(message, fg="green")


class MockInteractionHandler:
    """Interaction handler with scripted responses for tests.

    Every call is recorded in ``interactions`` so tests can assert on what
    was shown. Running out of scripted responses raises IndexError.
    """

    def __init__(
        self,
        text_responses: list[str | None] | None = None,
        pick_responses: list[PickerSelection | None] | None = None,
    ):
        self.text_responses = list(text_responses or [])
        self.pick_responses = list(pick_responses or [])
        self.interactions: list[dict] = []
        self._text_index = 0
        self._pick_index = 0

    def prompt_text(self, message: str, placeholder: str | None = None) -> str | None:
        if self._text_index >= len(self.text_responses):
            raise IndexError(
                f"No more text responses available. "
                f"Provided {len(self.text_responses)}, needed {self._text_index + 1}"
            )
        response = self.text_responses[self._text_index]
        self._text_index += 1
        self.interactions.append({"type": "text", "message": message, "response": response})
        return response

    def pick(
        self,
        title: str,
        rows: list[ProfileRow],
        global_actions: tuple[str, ...] = GLOBAL_ACTIONS,
    ) -> PickerSelection | None:
        if self._pick_index >= len(self.pick_responses):
            raise IndexError(
                f"No more pick responses available. "
                f"Provided {len(self.pick_responses)}, needed {self._pick_index + 1}"
            )
        response = self.pick_responses[self._pick_index]
        self._pick_index += 1
        self.interactions.append(
            {"type": "pick", "title": title, "rows": list(rows), "response": response}
        )
        return response

    def show_warning(self, message: str) -> None:
        self.interactions.append({"type": "warning", "message": message})

    def show_info(self, message: str) -> None:
        self.interactions.append({"type": "info", "message": message})

    def get_interactions_by_type(self, interaction_type: str) -> list[dict]:
        """Get all interactions of one type ("text", "pick", "warning", "info")."""
        return [i for i in self.interactions if i["type"] == interaction_type]


__all__ = [
    "ACTION_ADD",
    "ACTION_DELETE",
    "ACTION_REFRESH",
    "ACTION_SWITCH",
    "GLOBAL_ACTIONS",
    "CLIInteractionHandler",
    "InteractionHandler",
    "MockInteractionHandler",
    "PickerSelection",
    "ProfileRow",
]
