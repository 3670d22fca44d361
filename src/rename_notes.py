#!/usr/bin/env python3
"""Suggest (and optionally apply) titles for notes of one folder with an LLM agent."""

import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable

import anyio

from agent import (
    AgentRunResult,
    ChatConfig,
    chat_config_from_env,
    create_model,
    did_finish_successfully,
    run_agent,
)
from config import WORKSPACE_PATH, setup_logging
from prompts import (
    RENAME_NOTE_SYSTEM_PROMPT,
    ProviderRequestOptions,
    build_provider_request_options,
    build_rename_prompt,
)
from services.entries import (
    Entry,
    are_entries_in_same_directory,
    collect_entries_to_process,
    collect_sibling_note_names,
    parent_dir,
    scan_note_entries,
)
from services.filesystem import FileSystem, LocalFileSystem
from services.operations import (
    FAILED,
    RENAMED,
    InvalidStateError,
    RenameOperation,
    count_rename_operations,
    create_rename_ledger,
    has_pending_operations,
    to_public_rename_operation,
)
from tools.registry import ToolSet
from tools.rename import FINISH_TOOL_NAME, RenameNoteContext, create_rename_note_tools

logger = logging.getLogger(__name__)

RunAgentFn = Callable[..., Awaitable[AgentRunResult]]


async def _run_with_default_driver(
    *,
    model,
    prompt: str,
    request_options: ProviderRequestOptions,
    tools: ToolSet,
) -> AgentRunResult:
    return await run_agent(model, prompt, request_options, tools, FINISH_TOOL_NAME)


def _build_result(dir_path: str, public_operations: list[dict]) -> dict:
    return {
        **count_rename_operations(public_operations),
        "dirPath": dir_path,
        "operations": public_operations,
    }


def build_failed_rename_result(dir_path: str, entries: list[Entry], reason: str) -> dict:
    """Mark every target failed with the same reason."""
    return _build_result(
        dir_path,
        [{"path": entry.path, "status": FAILED, "reason": reason} for entry in entries],
    )


def finalize_rename_batch(
    run: AgentRunResult,
    dir_path: str,
    entries_to_process: list[Entry],
    operation_by_path: dict[str, RenameOperation],
) -> dict:
    """Verify the agent's claim of completion and build the batch result.

    Raises:
        RuntimeError: If no finish call succeeded.
        InvalidStateError: If a target has no ledger record or is pending.
    """
    if not did_finish_successfully(run, FINISH_TOOL_NAME):
        raise RuntimeError("Agent finished without successful finish_rename.")

    operations = []
    for entry in entries_to_process:
        operation = operation_by_path.get(entry.path)
        if operation is None:
            raise InvalidStateError("Operation result missing for target entry.")
        operations.append(operation)

    if has_pending_operations(operations):
        raise InvalidStateError("Rename finished with pending target notes.")

    return _build_result(dir_path, [to_public_rename_operation(op) for op in operations])


class NoteRenamer:
    """Suggests collision-free titles for a batch of notes in one folder.

    Args:
        file_system: Filesystem capability used by the tools.
        create_model: Builds the model handle from a chat config.
        run_agent: Agent loop driver; receives model, prompt,
            request_options and tools as keyword arguments.
    """

    def __init__(
        self,
        file_system: FileSystem,
        create_model: Callable[[ChatConfig], object] = create_model,
        run_agent: RunAgentFn | None = None,
    ):
        self.file_system = file_system
        self.create_model = create_model
        self.run_agent = run_agent or _run_with_default_driver

    async def suggest_rename(
        self,
        entries: list[Entry],
        chat_config: ChatConfig | None,
    ) -> dict | None:
        """Run one rename batch.

        Unlike the move batch, an agent that fails or stops early does not
        raise: every target comes back failed with the reason.

        Returns:
            {renamedCount, unchangedCount, failedCount, dirPath, operations},
            or None when there is nothing to do.

        Raises:
            ValueError: If the targets are not all in the same folder.
        """
        if chat_config is None:
            return None

        entries_to_process = collect_entries_to_process(entries)
        if not entries_to_process:
            return None
        if not are_entries_in_same_directory(entries_to_process):
            raise ValueError("Rename targets must all be in the same folder.")

        dir_path = parent_dir(entries_to_process[0].path)
        dir_entries = await self.file_system.read_dir(dir_path)
        sibling_note_names = collect_sibling_note_names(
            dir_entries, {entry.name for entry in entries_to_process},
        )

        operation_by_path = create_rename_ledger(entries_to_process)
        tools = create_rename_note_tools(
            RenameNoteContext(
                file_system=self.file_system,
                entries_to_process=entries_to_process,
                dir_path=dir_path,
                dir_entries=dir_entries,
                sibling_note_names=sibling_note_names,
                operation_by_path=operation_by_path,
            )
        )
        prompt = build_rename_prompt(dir_path, entries_to_process, sibling_note_names)
        request_options = build_provider_request_options(
            chat_config.provider, RENAME_NOTE_SYSTEM_PROMPT,
        )

        logger.info("Renaming %d notes in %s", len(entries_to_process), dir_path)
        try:
            run = await self.run_agent(
                model=self.create_model(chat_config),
                prompt=prompt,
                request_options=request_options,
                tools=tools,
            )
            return finalize_rename_batch(run, dir_path, entries_to_process, operation_by_path)
        except Exception as e:
            logger.warning("Rename batch failed for %s: %s", dir_path, e)
            return build_failed_rename_result(dir_path, entries_to_process, str(e))


async def apply_renames(result: dict, entries: list[Entry], file_system: LocalFileSystem) -> dict:
    """Rename notes on disk according to a suggest_rename() result.

    Operations that are not "renamed" pass through. Renames run in result
    order, which frees a target's old name before later targets need it.
    """
    entry_by_path = {entry.path: entry for entry in entries}
    applied = []

    for operation in result["operations"]:
        final_file_name = operation.get("finalFileName")
        if operation["status"] != RENAMED or not final_file_name:
            applied.append(
                {key: value for key, value in operation.items() if key != "suggestedBaseName"}
            )
            continue

        entry = entry_by_path.get(operation["path"])
        if entry is None:
            applied.append({
                "path": operation["path"],
                "status": FAILED,
                "reason": "Could not resolve rename target entry.",
            })
            continue

        try:
            moved = await file_system.rename_entry(
                entry.path, final_file_name, allow_locked_source_path=True,
            )
        except (OSError, ValueError) as e:
            logger.error("Rename failed for %s: %s", entry.path, e)
            applied.append({
                "path": entry.path,
                "status": FAILED,
                "finalFileName": final_file_name,
                "reason": str(e) or "Failed to rename note in the filesystem.",
            })
            continue

        if not moved.success or not moved.final_path or moved.final_path == entry.path:
            applied.append({
                "path": entry.path,
                "status": FAILED,
                "finalFileName": final_file_name,
                "reason": "Failed to rename note in the filesystem.",
            })
            continue

        applied.append({
            "path": entry.path,
            "status": RENAMED,
            "finalFileName": Path(moved.final_path).name,
            "newPath": moved.final_path,
        })

    return _build_result(result["dirPath"], applied)


def format_rename_summary(result: dict) -> str:
    """Format a rename batch result for the terminal."""
    parts = [
        f"Batch rename in {result['dirPath']}: {result['renamedCount']} renamed, "
        f"{result['unchangedCount']} unchanged, {result['failedCount']} failed"
    ]
    for operation in result["operations"]:
        name = Path(operation["path"]).name
        status = operation["status"]
        if status == RENAMED:
            parts.append(f"- {name} -> {operation['finalFileName']}")
        elif status == FAILED:
            parts.append(f"- {name}: failed ({operation.get('reason', 'unknown')})")
        else:
            parts.append(f"- {name}: unchanged")
    return "\n".join(parts)


async def _main(paths: list[str], apply: bool) -> int:
    chat_config = chat_config_from_env()
    if chat_config is None:
        print("Error: set AI_PROVIDER, AI_MODEL and AI_API_KEY in .env", file=sys.stderr)
        return 1

    file_system = LocalFileSystem(WORKSPACE_PATH)
    entries = scan_note_entries(paths)
    entry_paths = [entry.path for entry in entries]

    file_system.lock_paths(entry_paths)
    try:
        result = await NoteRenamer(file_system).suggest_rename(entries, chat_config)
        if result is not None and apply:
            result = await apply_renames(result, entries, file_system)
    except ValueError as e:
        print(f"\nError: {e}\n", file=sys.stderr)
        return 1
    finally:
        file_system.unlock_paths(entry_paths)

    if result is None:
        print("No notes to rename.")
        return 0
    print(format_rename_summary(result))
    if not apply:
        print("\nDry run. Pass --apply to rename the files.")
    return 0


if __name__ == "__main__":
    args = [arg for arg in sys.argv[1:] if arg != "--apply"]
    if not args:
        print("Usage: python rename_notes.py [--apply] NOTE_OR_FOLDER [...]")
        sys.exit(1)
    setup_logging("rename_notes")
    print(f"Workspace: {WORKSPACE_PATH}")
    sys.exit(anyio.run(_main, args, "--apply" in sys.argv))
