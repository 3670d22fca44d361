"""System prompts and task prompts for the batch agents."""

import os
from dataclasses import dataclass
from pathlib import Path

from config import MAX_NOTE_CONTEXT_LENGTH
from services.entries import Entry, parent_dir, strip_extension

ROOT_LABEL = "."

MOVE_NOTE_SYSTEM_PROMPT = """You are an assistant that organizes markdown notes into existing folders.
Work only through the provided tools. Move every target note exactly once.
Prefer the folder whose existing topic best matches the note content.
Keep a note in its current folder when no other folder is clearly better."""

RENAME_NOTE_SYSTEM_PROMPT = """You are an assistant that suggests concise, unique titles for markdown notes.
Work only through the provided tools. Propose a title for every target note.
Keep each title under 60 characters and avoid special characters like / \\ : * ? " < > |."""

# Providers served only through the Responses API, which takes the system
# prompt as `instructions` instead of a system message
INSTRUCTIONS_PROVIDERS = {"codex_oauth"}


@dataclass
class ProviderRequestOptions:
    """Provider-specific shaping of the model request.

    Exactly one of system / instructions is set. instructions selects the
    Responses API (sent with store=False); system is the first message of
    a chat-completions conversation.
    """

    system: str | None = None
    instructions: str | None = None

    @property
    def uses_responses_api(self) -> bool:
        return self.instructions is not None


def build_provider_request_options(provider: str, system_prompt: str) -> ProviderRequestOptions:
    """Route the system prompt the way the provider expects it."""
    if provider in INSTRUCTIONS_PROVIDERS:
        return ProviderRequestOptions(instructions=system_prompt)
    return ProviderRequestOptions(system=system_prompt)


def format_directory_path(workspace_path: str, directory_path: str) -> str:
    """Label a directory relative to the workspace root ("." for the root)."""
    if directory_path == workspace_path:
        return ROOT_LABEL
    relative = os.path.relpath(directory_path, workspace_path)
    if not relative or relative == ".":
        return ROOT_LABEL
    return Path(relative).as_posix()


def build_move_prompt(
    workspace_path: str,
    entries: list[Entry],
    candidate_directories: list[str],
) -> str:
    """Render the move task for the model."""
    candidates = "\n".join(
        f"{index}. {format_directory_path(workspace_path, directory)}"
        for index, directory in enumerate(candidate_directories, start=1)
    )
    targets = "\n".join(
        f"{index}. {entry.path} (current folder: "
        f"{format_directory_path(workspace_path, parent_dir(entry.path))})"
        for index, entry in enumerate(entries, start=1)
    )

    return f"""Organize the target markdown notes by calling tools.
Workspace root: {workspace_path}

Targets:
{targets}

Available existing folders:
{candidates}

Rules:
- Use list_targets and list_directories first.
- Use read_note before deciding where to move a note.
- Use move_note once per target note.
- Existing folders only. Do not create folders.
- Call finish_organization only after all targets are handled.
- Keep note-content context usage concise (each read_note result may be truncated to {MAX_NOTE_CONTEXT_LENGTH} chars)."""


def build_rename_prompt(
    dir_path: str,
    entries: list[Entry],
    sibling_note_names: list[str],
) -> str:
    """Render the rename task for the model."""
    targets = "\n".join(
        f"{index}. {entry.path} (current title: {strip_extension(entry.name, '.md')})"
        for index, entry in enumerate(entries, start=1)
    )
    others = (
        "\n".join(f"- {name}" for name in sibling_note_names)
        if sibling_note_names
        else "None"
    )

    return f"""Rename the target markdown notes by calling tools.
Folder: {dir_path}

Targets:
{targets}

Other notes in this folder:
{others}

Rules:
- Use list_targets and list_sibling_notes first.
- Use read_note before proposing a title for a note.
- Use set_title once per target note. Titles have no file extension.
- Keep titles under 60 characters and avoid / \\ : * ? " < > |.
- Call finish_rename after every target has a title. If it reports pendingPaths, set titles for those notes and call it again.
- Keep note-content context usage concise (each read_note result may be truncated to {MAX_NOTE_CONTEXT_LENGTH} chars)."""
