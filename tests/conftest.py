"""Pytest configuration and fixtures for note-batch-agent tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agent import AgentRunResult, AgentStep, ChatConfig, ToolResult  # noqa: E402
from services.entries import DirEntry, Entry  # noqa: E402
from services.filesystem import MoveResult  # noqa: E402


def make_entry(path: str, is_directory: bool = False) -> Entry:
    """Build an Entry whose name is the last path component."""
    return Entry(path=path, name=Path(path).name, is_directory=is_directory)


def finish_run(tool_name: str, output: dict) -> AgentRunResult:
    """A run whose only step holds one tool result."""
    return AgentRunResult(steps=[AgentStep(tool_results=[ToolResult(tool_name, output)])])


@pytest.fixture
def chat_config():
    return ChatConfig(provider="openai", model="gpt-4.1-mini", api_key="test-key")


@pytest.fixture
def mock_fs():
    """In-memory stand-in for the FileSystem protocol.

    read_text_file returns "# note", read_dir is empty, nothing exists and
    every move succeeds without reporting a final path.
    """
    fs = MagicMock()
    fs.read_text_file = AsyncMock(return_value="# note")
    fs.read_dir = AsyncMock(return_value=[])
    fs.exists = AsyncMock(return_value=False)
    fs.move_entry = AsyncMock(return_value=MoveResult(True))
    return fs


@pytest.fixture
def inbox_entries():
    """Two notes in /ws/inbox."""
    return [make_entry("/ws/inbox/plan.md"), make_entry("/ws/inbox/todo.md")]


@pytest.fixture
def inbox_dir_entries():
    return [
        DirEntry("plan.md"),
        DirEntry("todo.md"),
        DirEntry("ideas.md"),
        DirEntry(".hidden.md"),
        DirEntry("archive", is_directory=True),
        DirEntry("image.png"),
    ]


@pytest.fixture
def temp_workspace(tmp_path):
    """Create a temporary workspace with a few folders and notes.

    Returns:
        Path to the temporary workspace root.
    """
    workspace = tmp_path / "workspace"
    workspace.mkdir()

    inbox = workspace / "inbox"
    inbox.mkdir()
    (inbox / "plan.md").write_text("# Plan\n\nShip the release.\n")
    (inbox / "todo.md").write_text("# Todo\n\n- [ ] Write tests\n")

    projects = workspace / "projects"
    projects.mkdir()
    (projects / "roadmap.md").write_text("# Roadmap\n")
    (projects / "2024").mkdir()

    (workspace / ".obsidian").mkdir()
    (workspace / "node_modules").mkdir()
    (workspace / ".hidden").mkdir()

    return workspace
