"""Command-line entry point: run one documentation request against a workspace.

Usage:
    python -m docsession "Create a README for this project"
    python -m docsession --root ./project --folder src --mode edit --accept "Document the API"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from pathlib import Path

from rich.console import Console

from docsession.client import DocGenerationClient, DocV2AcceptanceEvent, DocV2GenerationEvent
from docsession.config import get_user_config_dir, load_config
from docsession.errors import ApiError
from docsession.logging import get_logger, setup_logging
from docsession.messenger import ConsoleMessenger
from docsession.references import FileReferenceLog
from docsession.session import Session, WorkspaceConfig
from docsession.telemetry import FileClientIdProvider
from docsession.types import (
    FolderLevel,
    InteractionResponseType,
    Mode,
    WorkspaceFolder,
    interaction_type_for_mode,
)

log = get_logger()

_MODES = {"create": Mode.CREATE, "edit": Mode.EDIT, "sync": Mode.SYNC}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="docsession", description=__doc__.splitlines()[0])
    parser.add_argument("message", help="What to do with the documentation")
    parser.add_argument("--root", default=".", help="Workspace root (default: current directory)")
    parser.add_argument("--folder", default=None, help="Limit the upload to this sub folder")
    parser.add_argument("--mode", choices=sorted(_MODES), default="create")
    parser.add_argument("--accept", action="store_true", help="Write the proposed changes")
    parser.add_argument("--verbose", "-v", type=int, default=None, help="Log verbosity 0-4")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace, console: Console) -> int:
    root = str(Path(args.root).resolve())
    config = load_config(project_root=root)
    setup_logging(config.logging, verbose=args.verbose)

    state_dir = get_user_config_dir() or Path.home() / ".docsession"
    reference_log = FileReferenceLog(config.reference_log or state_dir / "references.log")
    client_ids = FileClientIdProvider(config.telemetry.client_id_file or state_dir / "client_id.yaml")

    mode = _MODES[args.mode]
    interaction_type = interaction_type_for_mode(mode)
    folder_level = FolderLevel.SUB_FOLDER if args.folder else FolderLevel.ENTIRE_WORKSPACE
    tab_id = f"cli-{uuid.uuid4().hex[:8]}"
    messenger = ConsoleMessenger(console)

    async with DocGenerationClient(config.backend) as client:
        session = Session(
            WorkspaceConfig([WorkspaceFolder.from_path(root)], settings=config),
            messenger,
            tab_id,
            client,
            reference_log=reference_log,
            client_id_provider=client_ids,
        )
        try:
            interaction = await session.send(args.message, mode, args.folder)
        except ApiError as e:
            console.print(f"[red]Could not start the conversation:[/red] {e.user_message}")
            return 1

        messenger.show_interaction(tab_id, interaction)
        if interaction.response_type != InteractionResponseType.VALID:
            return 1

        state = session.state
        await session.update_files_paths(
            tab_id, state.file_paths, state.deleted_files, uuid.uuid4().hex, False
        )

        generated = await session.count_generated_content(interaction_type)
        await session.send_doc_generation_telemetry_event(
            DocV2GenerationEvent(
                conversation_id=session.conversation_id,
                number_of_add_chars=generated["total_generated_chars"],
                number_of_add_lines=generated["total_generated_lines"],
                number_of_add_files=generated["total_generated_files"],
                interaction_type=interaction_type.value,
                number_of_navigations=session.telemetry.number_of_navigations,
                folder_level=folder_level.value,
            )
        )

        if not args.accept:
            console.print("[dim]Run again with --accept to write these changes.[/dim]")
            return 0

        added = await session.count_added_content(interaction_type)
        await session.insert_changes()
        for new_file in state.file_paths:
            if not new_file.rejected:
                new_file.change_applied = True
        await session.send_doc_acceptance_telemetry_event(
            DocV2AcceptanceEvent(
                conversation_id=session.conversation_id,
                number_of_added_chars=added["total_added_chars"],
                number_of_added_lines=added["total_added_lines"],
                number_of_added_files=added["total_added_files"],
                user_decision="ACCEPT",
                interaction_type=interaction_type.value,
                number_of_navigations=session.telemetry.number_of_navigations,
                folder_level=folder_level.value,
            )
        )
        console.print(f"[green]Applied {added['total_added_files']} file(s).[/green]")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    console = Console(stderr=True)
    try:
        return asyncio.run(_run(args, console))
    except KeyboardInterrupt:
        log.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
