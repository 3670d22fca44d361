"""Move batch tools - list, read, move, finish."""

import logging
from dataclasses import dataclass, field
from functools import partial

from pydantic import Field

from config import MAX_NOTE_CONTEXT_LENGTH
from services.entries import Entry, parent_dir
from services.filesystem import FileSystem
from services.operations import (
    FAILED,
    MOVED,
    PENDING,
    UNCHANGED,
    InvalidStateError,
    MoveOperation,
    pending_paths,
    to_public_move_operation,
)
from tools._validation import (
    AlreadyProcessedError,
    NotACandidateDirectoryError,
    require_target,
    truncate_note_content,
)
from tools.registry import (
    EMPTY_OBJECT_SCHEMA,
    NoArguments,
    PathInput,
    Tool,
    ToolInput,
    ToolSet,
)

logger = logging.getLogger(__name__)

FINISH_TOOL_NAME = "finish_organization"


@dataclass
class MoveNoteContext:
    """Everything the move tools read or mutate during one batch."""

    file_system: FileSystem
    entries_to_process: list[Entry]
    candidate_directories: list[str]
    operation_by_path: dict[str, MoveOperation]
    entry_path_set: set[str] = field(default_factory=set)
    candidate_directory_set: set[str] = field(default_factory=set)

    def __post_init__(self):
        if not self.entry_path_set:
            self.entry_path_set = {entry.path for entry in self.entries_to_process}
        if not self.candidate_directory_set:
            self.candidate_directory_set = set(self.candidate_directories)


class MoveNoteInput(ToolInput):
    source_path: str = Field(alias="sourcePath")
    destination_dir_path: str = Field(alias="destinationDirPath")


async def list_targets(ctx: MoveNoteContext, _params: NoArguments) -> dict:
    """List the notes this batch must organize.

    Returns:
        {"targets": [{"path", "name", "currentDirectoryPath"}, ...]} in
        batch order.
    """
    return {
        "targets": [
            {
                "path": entry.path,
                "name": entry.name,
                "currentDirectoryPath": parent_dir(entry.path),
            }
            for entry in ctx.entries_to_process
        ]
    }


async def list_directories(ctx: MoveNoteContext, _params: NoArguments) -> dict:
    """Returns {"directories": [...]}, the only allowed destinations."""
    return {"directories": list(ctx.candidate_directories)}


async def read_note(ctx: MoveNoteContext, params: PathInput) -> dict:
    """Read a target note, truncated for the model's context.

    Args:
        params.path: Absolute path of a target note.

    Returns:
        {"path": ..., "content": ...}

    Raises:
        NotATargetError: If path is not a target of this batch.
    """
    require_target("read_note", "path", params.path, ctx.entry_path_set)
    content = await ctx.file_system.read_text_file(params.path)
    return {
        "path": params.path,
        "content": truncate_note_content(content, MAX_NOTE_CONTEXT_LENGTH),
    }


async def move_note(ctx: MoveNoteContext, params: MoveNoteInput) -> dict:
    """Move one target into a candidate directory and record the outcome.

    Choosing the note's current directory marks it unchanged without
    touching the disk. Name conflicts at the destination are auto-renamed.

    Args:
        params.source_path: Absolute path of a pending target note.
        params.destination_dir_path: One of the candidate directories.

    Returns:
        The public view of the note's operation after the move.
    """
    source_path = params.source_path
    destination_dir_path = params.destination_dir_path

    require_target("move_note", "sourcePath", source_path, ctx.entry_path_set)
    if destination_dir_path not in ctx.candidate_directory_set:
        raise NotACandidateDirectoryError(
            "move_note destinationDirPath is not in candidate directories."
        )

    operation = ctx.operation_by_path.get(source_path)
    if operation is None:
        raise InvalidStateError("Operation state not found for sourcePath.")
    if operation.status != PENDING:
        raise AlreadyProcessedError("Target note was already processed.")

    operation.destination_dir_path = destination_dir_path
    if destination_dir_path == operation.current_directory_path:
        operation.status = UNCHANGED
        return to_public_move_operation(operation)

    result = await ctx.file_system.move_entry(
        source_path,
        destination_dir_path,
        on_conflict="auto-rename",
        allow_locked_source_path=True,
    )
    if result.success:
        operation.status = MOVED
        operation.new_path = result.final_path
    else:
        logger.warning("Move failed: %s -> %s", source_path, destination_dir_path)
        operation.status = FAILED
        operation.reason = "moveEntry returned false"

    return to_public_move_operation(operation)


async def finish_organization(ctx: MoveNoteContext, _params: NoArguments) -> dict:
    """Report whether every target has been handled.

    Returns:
        {"success": bool, "pendingPaths": [...]}; success is true only when
        no target is still pending.
    """
    remaining = pending_paths(ctx.operation_by_path.values())
    return {"success": not remaining, "pendingPaths": remaining}


def create_move_note_tools(ctx: MoveNoteContext) -> ToolSet:
    """Build the move tool set bound to one batch context."""
    return ToolSet([
        Tool(
            name="list_targets",
            description="List target notes that must be organized.",
            parameters=EMPTY_OBJECT_SCHEMA,
            input_model=NoArguments,
            handler=partial(list_targets, ctx),
        ),
        Tool(
            name="list_directories",
            description="List available destination directories in workspace.",
            parameters=EMPTY_OBJECT_SCHEMA,
            input_model=NoArguments,
            handler=partial(list_directories, ctx),
        ),
        Tool(
            name="read_note",
            description="Read target note content for classification.",
            parameters={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Absolute path of a target markdown note.",
                    },
                },
                "required": ["path"],
                "additionalProperties": False,
            },
            input_model=PathInput,
            handler=partial(read_note, ctx),
        ),
        Tool(
            name="move_note",
            description="Move a target note to one existing destination directory.",
            parameters={
                "type": "object",
                "properties": {
                    "sourcePath": {
                        "type": "string",
                        "description": "Absolute path of a target markdown note.",
                    },
                    "destinationDirPath": {
                        "type": "string",
                        "description": "Absolute path of an existing destination directory.",
                    },
                },
                "required": ["sourcePath", "destinationDirPath"],
                "additionalProperties": False,
            },
            input_model=MoveNoteInput,
            handler=partial(move_note, ctx),
        ),
        Tool(
            name=FINISH_TOOL_NAME,
            description="Finish organization after all targets are handled.",
            parameters=EMPTY_OBJECT_SCHEMA,
            input_model=NoArguments,
            handler=partial(finish_organization, ctx),
        ),
    ])
