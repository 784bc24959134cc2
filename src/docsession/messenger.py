"""One-way notification sink towards the chat UI."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from docsession.types import DeletedFileInfo, Interaction, NewFileInfo


class Messenger(Protocol):
    """What the session and its states may tell the UI."""

    def update_file_component(
        self,
        tab_id: str,
        file_paths: list[NewFileInfo],
        deleted_files: list[DeletedFileInfo],
        message_id: str,
        disable_file_actions: bool,
    ) -> None:
        ...

    def send_update_prompt_progress(self, tab_id: str, progress: str | None) -> None:
        """Show (or clear, with None) a progress line for the tab."""
        ...

    def send_answer(self, tab_id: str, message: str, message_type: str = "answer") -> None:
        ...


class ConsoleMessenger:
    """Messenger that renders to a terminal with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def update_file_component(
        self,
        tab_id: str,
        file_paths: list[NewFileInfo],
        deleted_files: list[DeletedFileInfo],
        message_id: str,
        disable_file_actions: bool,
    ) -> None:
        table = Table(title=f"Proposed changes ({message_id})", show_lines=False)
        table.add_column("Change")
        table.add_column("Path")
        table.add_column("Status")
        for new_file in file_paths:
            table.add_row("[green]write[/green]", new_file.relative_path, _status(new_file))
        for deleted in deleted_files:
            table.add_row("[red]delete[/red]", deleted.relative_path, _status(deleted))
        self._console.print(table)
        if disable_file_actions:
            self._console.print("[dim]File actions are disabled for this message.[/dim]")

    def send_update_prompt_progress(self, tab_id: str, progress: str | None) -> None:
        if progress:
            self._console.print(f"[cyan]…[/cyan] {progress}")

    def send_answer(self, tab_id: str, message: str, message_type: str = "answer") -> None:
        style = "red" if message_type == "error" else "bold"
        self._console.print(message, style=style)

    def show_interaction(self, tab_id: str, interaction: Interaction) -> None:
        message_type = "error" if interaction.response_type.value == "FAILED" else "answer"
        for line in interaction.content:
            self.send_answer(tab_id, line, message_type)


def _status(item: NewFileInfo | DeletedFileInfo) -> str:
    if item.rejected:
        return "rejected"
    if item.change_applied:
        return "applied"
    return "pending"
