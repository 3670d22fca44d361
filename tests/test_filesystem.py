"""Tests for LocalFileSystem against a temporary workspace."""

import pytest

from services.entries import DirEntry
from services.filesystem import LocalFileSystem


@pytest.fixture
def fs(temp_workspace):
    return LocalFileSystem(temp_workspace)


@pytest.mark.anyio
async def test_read_text_file(fs, temp_workspace):
    content = await fs.read_text_file(str(temp_workspace / "inbox" / "plan.md"))
    assert content.startswith("# Plan")


@pytest.mark.anyio
async def test_read_text_file_relative_path(fs):
    assert (await fs.read_text_file("projects/roadmap.md")) == "# Roadmap\n"


@pytest.mark.anyio
async def test_read_outside_workspace_rejected(fs, tmp_path):
    outside = tmp_path / "outside.md"
    outside.write_text("secret")
    with pytest.raises(ValueError, match="Path must be within workspace"):
        await fs.read_text_file(str(outside))


@pytest.mark.anyio
async def test_read_dir(fs, temp_workspace):
    entries = await fs.read_dir(str(temp_workspace / "projects"))
    assert entries == [DirEntry("2024", is_directory=True), DirEntry("roadmap.md")]


@pytest.mark.anyio
async def test_exists(fs, temp_workspace, tmp_path):
    assert await fs.exists(str(temp_workspace / "inbox" / "todo.md"))
    assert not await fs.exists(str(temp_workspace / "inbox" / "missing.md"))
    assert not await fs.exists(str(tmp_path))


@pytest.mark.anyio
async def test_move_entry(fs, temp_workspace):
    source = temp_workspace / "inbox" / "plan.md"

    result = await fs.move_entry(str(source), str(temp_workspace / "projects"))

    assert result.success
    assert result.final_path == str(temp_workspace / "projects" / "plan.md")
    assert not source.exists()


@pytest.mark.anyio
async def test_move_conflict_fails_by_default(fs, temp_workspace):
    (temp_workspace / "projects" / "plan.md").write_text("other")
    source = temp_workspace / "inbox" / "plan.md"

    result = await fs.move_entry(str(source), str(temp_workspace / "projects"))

    assert not result.success
    assert source.exists()


@pytest.mark.anyio
async def test_move_conflict_auto_rename(fs, temp_workspace):
    projects = temp_workspace / "projects"
    (projects / "plan.md").write_text("other")
    (projects / "plan (1).md").write_text("other")

    result = await fs.move_entry(
        str(temp_workspace / "inbox" / "plan.md"), str(projects), on_conflict="auto-rename",
    )

    assert result.success
    assert result.final_path == str(projects / "plan (2).md")
    assert (projects / "plan.md").read_text() == "other"


@pytest.mark.anyio
async def test_move_to_missing_directory_fails(fs, temp_workspace):
    result = await fs.move_entry(
        str(temp_workspace / "inbox" / "plan.md"), str(temp_workspace / "nowhere"),
    )
    assert not result.success


@pytest.mark.anyio
async def test_locked_source_needs_permission(fs, temp_workspace):
    source = str(temp_workspace / "inbox" / "plan.md")
    destination = str(temp_workspace / "projects")
    fs.lock_paths([source])

    refused = await fs.move_entry(source, destination)
    allowed = await fs.move_entry(source, destination, allow_locked_source_path=True)

    assert not refused.success
    assert allowed.success


def test_unlock_paths(fs, temp_workspace):
    source = str(temp_workspace / "inbox" / "plan.md")
    fs.lock_paths([source])
    fs.unlock_paths([source])
    assert not fs.is_locked(source)


@pytest.mark.anyio
async def test_rename_entry(fs, temp_workspace):
    source = temp_workspace / "inbox" / "todo.md"

    result = await fs.rename_entry(str(source), "Tasks.md")

    assert result.success
    assert result.final_path == str(temp_workspace / "inbox" / "Tasks.md")
    assert not source.exists()


@pytest.mark.anyio
async def test_rename_never_overwrites(fs, temp_workspace):
    inbox = temp_workspace / "inbox"
    result = await fs.rename_entry(str(inbox / "todo.md"), "plan.md")
    assert not result.success
    assert (inbox / "plan.md").read_text().startswith("# Plan")


@pytest.mark.anyio
async def test_move_symlink_moves_the_link(fs, temp_workspace):
    target = temp_workspace / "projects" / "roadmap.md"
    link = temp_workspace / "inbox" / "link.md"
    link.symlink_to(target)

    result = await fs.move_entry(str(link), str(temp_workspace))

    assert result.success
    assert result.final_path == str(fs.root / "link.md")
    assert (temp_workspace / "link.md").is_symlink()
    assert not link.is_symlink()
    assert target.read_text() == "# Roadmap\n"


@pytest.mark.anyio
async def test_rename_symlink_never_replaces_its_target(fs, temp_workspace):
    target = temp_workspace / "projects" / "roadmap.md"
    link = temp_workspace / "projects" / "link.md"
    link.symlink_to(target)

    result = await fs.rename_entry(str(link), "roadmap.md")

    assert not result.success
    assert link.is_symlink()
    assert not target.is_symlink()
    assert target.read_text() == "# Roadmap\n"
