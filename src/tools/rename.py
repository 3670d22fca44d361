"""Rename batch tools - list, read, propose titles, finalize."""

import logging
from dataclasses import dataclass, field
from functools import partial

from config import MAX_NOTE_CONTEXT_LENGTH
from services.entries import DirEntry, Entry, strip_extension
from services.filesystem import FileSystem
from services.naming import finalize_rename_operations
from services.operations import RenameOperation
from tools._validation import FinalizedError, require_target, truncate_note_content
from tools.registry import (
    EMPTY_OBJECT_SCHEMA,
    NoArguments,
    PathInput,
    Tool,
    ToolInput,
    ToolSet,
)

logger = logging.getLogger(__name__)

FINISH_TOOL_NAME = "finish_rename"


@dataclass
class RenameNoteContext:
    """Everything the rename tools read or mutate during one batch.

    Titles are stored raw in suggestion_by_path and only sanitized when
    finish_rename resolves the whole batch at once.
    """

    file_system: FileSystem
    entries_to_process: list[Entry]
    dir_path: str
    dir_entries: list[DirEntry]
    sibling_note_names: list[str]
    operation_by_path: dict[str, RenameOperation]
    suggestion_by_path: dict[str, str] = field(default_factory=dict)
    entry_path_set: set[str] = field(default_factory=set)
    finalized: bool = False

    def __post_init__(self):
        if not self.entry_path_set:
            self.entry_path_set = {entry.path for entry in self.entries_to_process}


class SetTitleInput(ToolInput):
    path: str
    title: str


async def list_targets(ctx: RenameNoteContext, _params: NoArguments) -> dict:
    """List the notes that need a new title.

    Returns:
        {"targets": [{"path", "name", "currentTitle"}, ...]} in batch order.
    """
    return {
        "targets": [
            {
                "path": entry.path,
                "name": entry.name,
                "currentTitle": strip_extension(entry.name, ".md"),
            }
            for entry in ctx.entries_to_process
        ]
    }


async def list_sibling_notes(ctx: RenameNoteContext, _params: NoArguments) -> dict:
    """Returns {"dirPath": ..., "noteNames": [...]} for the folder's other notes."""
    return {"dirPath": ctx.dir_path, "noteNames": list(ctx.sibling_note_names)}


async def read_note(ctx: RenameNoteContext, params: PathInput) -> dict:
    """Read a target note, truncated for the model's context.

    Args:
        params.path: Absolute path of a target note.

    Returns:
        {"path": ..., "content": ...}
    """
    require_target("read_note", "path", params.path, ctx.entry_path_set)
    content = await ctx.file_system.read_text_file(params.path)
    return {
        "path": params.path,
        "content": truncate_note_content(content, MAX_NOTE_CONTEXT_LENGTH),
    }


async def set_title(ctx: RenameNoteContext, params: SetTitleInput) -> dict:
    """Record a proposed title for a target. A later call replaces it.

    The title is stored as given; it is sanitized and made unique only
    when finish_rename finalizes the batch.

    Args:
        params.path: Absolute path of a target note.
        params.title: Proposed title, without file extension.

    Returns:
        {"path": ..., "title": ...}

    Raises:
        FinalizedError: If finish_rename already finalized the batch.
    """
    require_target("set_title", "path", params.path, ctx.entry_path_set)
    if ctx.finalized:
        raise FinalizedError("Cannot call set_title after finish_rename.")

    ctx.suggestion_by_path[params.path] = params.title
    return {"path": params.path, "title": params.title}


async def finish_rename(ctx: RenameNoteContext, _params: NoArguments) -> dict:
    """Report missing proposals, or resolve final filenames exactly once.

    Returns:
        {"success": false, "pendingPaths": [...]} while some target has no
        title, otherwise {"success": true, "pendingPaths": []}. Repeat calls
        after success do not finalize again.
    """
    remaining = [
        entry.path
        for entry in ctx.entries_to_process
        if entry.path not in ctx.suggestion_by_path
    ]
    if remaining:
        return {"success": False, "pendingPaths": remaining}

    if not ctx.finalized:
        await finalize_rename_operations(
            ctx.entries_to_process,
            ctx.operation_by_path,
            ctx.suggestion_by_path,
            ctx.dir_entries,
            ctx.dir_path,
            ctx.file_system.exists,
        )
        ctx.finalized = True
        logger.info("Finalized rename batch for %s", ctx.dir_path)

    return {"success": True, "pendingPaths": []}


def create_rename_note_tools(ctx: RenameNoteContext) -> ToolSet:
    """Build the rename tool set bound to one batch context."""
    return ToolSet([
        Tool(
            name="list_targets",
            description="List target notes that must be renamed.",
            parameters=EMPTY_OBJECT_SCHEMA,
            input_model=NoArguments,
            handler=partial(list_targets, ctx),
        ),
        Tool(
            name="list_sibling_notes",
            description="List other markdown note names that already exist in the same folder.",
            parameters=EMPTY_OBJECT_SCHEMA,
            input_model=NoArguments,
            handler=partial(list_sibling_notes, ctx),
        ),
        Tool(
            name="read_note",
            description="Read target note content for title generation.",
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
            name="set_title",
            description="Set a proposed title for one target note.",
            parameters={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Absolute path of a target markdown note.",
                    },
                    "title": {
                        "type": "string",
                        "description": "Suggested title without file extension.",
                    },
                },
                "required": ["path", "title"],
                "additionalProperties": False,
            },
            input_model=SetTitleInput,
            handler=partial(set_title, ctx),
        ),
        Tool(
            name=FINISH_TOOL_NAME,
            description=(
                "Finalize suggestions and resolve missing suggestions and "
                "filename collisions."
            ),
            parameters=EMPTY_OBJECT_SCHEMA,
            input_model=NoArguments,
            handler=partial(finish_rename, ctx),
        ),
    ])
