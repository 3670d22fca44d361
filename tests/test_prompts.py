"""Tests for prompt rendering and provider request shaping."""

from conftest import make_entry
from prompts import (
    MOVE_NOTE_SYSTEM_PROMPT,
    RENAME_NOTE_SYSTEM_PROMPT,
    build_move_prompt,
    build_provider_request_options,
    build_rename_prompt,
    format_directory_path,
)


class TestProviderRequestOptions:
    def test_system_message_for_regular_providers(self):
        options = build_provider_request_options("openai", MOVE_NOTE_SYSTEM_PROMPT)
        assert options.system == MOVE_NOTE_SYSTEM_PROMPT
        assert options.instructions is None
        assert not options.uses_responses_api

    def test_codex_uses_instructions(self):
        options = build_provider_request_options("codex_oauth", RENAME_NOTE_SYSTEM_PROMPT)
        assert options.system is None
        assert options.instructions == RENAME_NOTE_SYSTEM_PROMPT
        assert options.uses_responses_api


class TestFormatDirectoryPath:
    def test_root(self):
        assert format_directory_path("/ws", "/ws") == "."

    def test_nested(self):
        assert format_directory_path("/ws", "/ws/projects/2024") == "projects/2024"


def test_move_prompt_lists_targets_and_folders():
    prompt = build_move_prompt(
        "/ws",
        [make_entry("/ws/inbox/plan.md")],
        ["/ws", "/ws/inbox", "/ws/projects"],
    )

    assert prompt.startswith("Organize the target markdown notes by calling tools.\nWorkspace root: /ws")
    assert "1. /ws/inbox/plan.md (current folder: inbox)" in prompt
    assert "Available existing folders:\n1. .\n2. inbox\n3. projects" in prompt
    assert "truncated to 4000 chars" in prompt
    assert "finish_organization" in prompt


def test_rename_prompt_lists_siblings():
    prompt = build_rename_prompt(
        "/ws/inbox",
        [make_entry("/ws/inbox/a.md"), make_entry("/ws/inbox/b.md")],
        ["plan", "ideas"],
    )

    assert "Folder: /ws/inbox" in prompt
    assert "2. /ws/inbox/b.md (current title: b)" in prompt
    assert "Other notes in this folder:\n- plan\n- ideas" in prompt
    assert "finish_rename" in prompt


def test_rename_prompt_without_siblings():
    prompt = build_rename_prompt("/ws/inbox", [make_entry("/ws/inbox/a.md")], [])
    assert "Other notes in this folder:\nNone" in prompt
