"""Batch tool sets exposed to the model, one per batch variant."""

from tools.move import (
    MoveNoteContext,
    create_move_note_tools,
)
from tools.registry import (
    Tool,
    ToolSet,
)
from tools.rename import (
    RenameNoteContext,
    create_rename_note_tools,
)

__all__ = [
    # move
    "MoveNoteContext",
    "create_move_note_tools",
    # registry
    "Tool",
    "ToolSet",
    # rename
    "RenameNoteContext",
    "create_rename_note_tools",
]
