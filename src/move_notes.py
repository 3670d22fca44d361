#!/usr/bin/env python3
"""Move a batch of notes into existing workspace folders with an LLM agent."""

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
from config import EXCLUDED_DIRS, WORKSPACE_PATH, setup_logging
from prompts import (
    MOVE_NOTE_SYSTEM_PROMPT,
    ProviderRequestOptions,
    build_move_prompt,
    build_provider_request_options,
)
from services.entries import (
    Entry,
    collect_candidate_directories,
    collect_entries_to_process,
    scan_note_entries,
)
from services.filesystem import FileSystem, LocalFileSystem
from services.operations import (
    InvalidStateError,
    MoveOperation,
    count_move_operations,
    create_move_ledger,
    has_pending_operations,
    to_public_move_operation,
)
from tools.move import FINISH_TOOL_NAME, MoveNoteContext, create_move_note_tools
from tools.registry import ToolSet

logger = logging.getLogger(__name__)

RunAgentFn = Callable[..., Awaitable[AgentRunResult]]


class BatchIncompleteError(RuntimeError):
    """The agent run ended without every target reaching a terminal status."""


async def _run_with_default_driver(
    *,
    model,
    prompt: str,
    request_options: ProviderRequestOptions,
    tools: ToolSet,
) -> AgentRunResult:
    return await run_agent(model, prompt, request_options, tools, FINISH_TOOL_NAME)


def finalize_move_batch(
    run: AgentRunResult,
    entries_to_process: list[Entry],
    operation_by_path: dict[str, MoveOperation],
) -> dict:
    """Verify the agent's claim of completion and build the batch result.

    Raises:
        BatchIncompleteError: If no finish call succeeded or a target is
            still pending.
        InvalidStateError: If a target has no ledger record.
    """
    if not did_finish_successfully(run, FINISH_TOOL_NAME):
        raise BatchIncompleteError(
            "Agent finished without successful finish_organization."
        )

    operations = []
    for entry in entries_to_process:
        operation = operation_by_path.get(entry.path)
        if operation is None:
            raise InvalidStateError("Operation result missing for target entry.")
        operations.append(operation)

    if has_pending_operations(operations):
        raise BatchIncompleteError("Agent finished before processing all target notes.")

    public_operations = [to_public_move_operation(op) for op in operations]
    return {**count_move_operations(public_operations), "operations": public_operations}


class NoteMover:
    """Organizes notes into candidate folders, one agent run per batch.

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

    async def organize_notes(
        self,
        entries: list[Entry],
        workspace_path: str,
        candidate_directories: list[str],
        chat_config: ChatConfig | None,
    ) -> dict | None:
        """Move every eligible entry into one of the candidate directories.

        Returns:
            {movedCount, unchangedCount, failedCount, operations}, or None
            when there is nothing to do.

        Raises:
            BatchIncompleteError: If the agent did not finish the batch.
            ToolInputError: If a tool call violated the batch contract.
        """
        if chat_config is None or not candidate_directories or not entries:
            return None

        entries_to_process = collect_entries_to_process(entries)
        if not entries_to_process:
            return None

        operation_by_path = create_move_ledger(entries_to_process)
        tools = create_move_note_tools(
            MoveNoteContext(
                file_system=self.file_system,
                entries_to_process=entries_to_process,
                candidate_directories=candidate_directories,
                operation_by_path=operation_by_path,
            )
        )
        prompt = build_move_prompt(workspace_path, entries_to_process, candidate_directories)
        request_options = build_provider_request_options(
            chat_config.provider, MOVE_NOTE_SYSTEM_PROMPT,
        )

        logger.info(
            "Organizing %d notes across %d folders",
            len(entries_to_process), len(candidate_directories),
        )
        run = await self.run_agent(
            model=self.create_model(chat_config),
            prompt=prompt,
            request_options=request_options,
            tools=tools,
        )

        try:
            return finalize_move_batch(run, entries_to_process, operation_by_path)
        except BatchIncompleteError as e:
            logger.error("Move batch aborted: %s", e)
            raise


def format_move_summary(result: dict) -> str:
    """Format a move batch result for the terminal."""
    parts = [
        f"Batch move: {result['movedCount']} moved, "
        f"{result['unchangedCount']} unchanged, {result['failedCount']} failed"
    ]
    for operation in result["operations"]:
        status = operation["status"]
        if status == "moved":
            where = operation.get("newPath") or operation.get("destinationDirPath")
            parts.append(f"- moved {operation['path']} -> {where}")
        elif status == "failed":
            parts.append(f"- failed {operation['path']}: {operation.get('reason', 'unknown')}")
        else:
            parts.append(f"- unchanged {operation['path']}")
    return "\n".join(parts)


async def _main(paths: list[str]) -> int:
    chat_config = chat_config_from_env()
    if chat_config is None:
        print("Error: set AI_PROVIDER, AI_MODEL and AI_API_KEY in .env", file=sys.stderr)
        return 1

    file_system = LocalFileSystem(WORKSPACE_PATH)
    entries = scan_note_entries(paths)
    candidates = collect_candidate_directories(file_system.root, EXCLUDED_DIRS)
    entry_paths = [entry.path for entry in entries]

    file_system.lock_paths(entry_paths)
    try:
        result = await NoteMover(file_system).organize_notes(
            entries, str(file_system.root), candidates, chat_config,
        )
    except Exception as e:
        print(f"\nError: {e}\n", file=sys.stderr)
        return 1
    finally:
        file_system.unlock_paths(entry_paths)

    if result is None:
        print("No notes to organize.")
        return 0
    print(format_move_summary(result))
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python move_notes.py NOTE_OR_FOLDER [...]")
        sys.exit(1)
    setup_logging("move_notes")
    print(f"Workspace: {WORKSPACE_PATH}")
    sys.exit(anyio.run(_main, [str(Path(p)) for p in sys.argv[1:]]))
