"""Tests for services/entries.py - target collection and directory scanning."""

from pathlib import Path

from conftest import make_entry
from services.entries import (
    DirEntry,
    Entry,
    are_entries_in_same_directory,
    collect_candidate_directories,
    collect_entries_to_process,
    collect_sibling_note_names,
    is_note_path,
    scan_note_entries,
    strip_extension,
)


class TestIsNotePath:
    def test_markdown(self):
        assert is_note_path("/ws/a.md")

    def test_uppercase_extension(self):
        assert is_note_path("/ws/A.MD")

    def test_other_extension(self):
        assert not is_note_path("/ws/a.txt")
        assert not is_note_path("/ws/md")


class TestStripExtension:
    def test_strips_case_insensitive(self):
        assert strip_extension("Plan.MD") == "Plan"

    def test_leaves_other_names(self):
        assert strip_extension("Plan.txt") == "Plan.txt"


class TestCollectEntriesToProcess:
    def test_drops_directories_and_non_notes(self):
        entries = [
            make_entry("/ws/inbox/a.md"),
            make_entry("/ws/inbox/sub.md", is_directory=True),
            make_entry("/ws/inbox/image.png"),
            make_entry("/ws/inbox/b.md"),
        ]
        result = collect_entries_to_process(entries)
        assert [e.path for e in result] == ["/ws/inbox/a.md", "/ws/inbox/b.md"]

    def test_duplicates_keep_first_position_last_value(self):
        first = Entry(path="/ws/a.md", name="old.md")
        last = Entry(path="/ws/a.md", name="a.md")
        entries = [first, make_entry("/ws/b.md"), last]

        result = collect_entries_to_process(entries)

        assert [e.path for e in result] == ["/ws/a.md", "/ws/b.md"]
        assert result[0] is last

    def test_empty(self):
        assert collect_entries_to_process([]) == []


class TestAreEntriesInSameDirectory:
    def test_same(self, inbox_entries):
        assert are_entries_in_same_directory(inbox_entries)

    def test_different(self):
        entries = [make_entry("/ws/a/one.md"), make_entry("/ws/b/two.md")]
        assert not are_entries_in_same_directory(entries)

    def test_empty_is_false(self):
        assert not are_entries_in_same_directory([])


class TestCollectSiblingNoteNames:
    def test_excludes_targets_hidden_dirs_and_non_notes(self, inbox_dir_entries):
        names = collect_sibling_note_names(inbox_dir_entries, {"plan.md", "todo.md"})
        assert names == ["ideas"]

    def test_caps_at_thirty(self):
        dir_entries = [DirEntry(f"note {i:02d}.md") for i in range(40)]
        names = collect_sibling_note_names(dir_entries, set())
        assert len(names) == 30
        assert names[0] == "note 00"
        assert names[-1] == "note 29"


class TestCollectCandidateDirectories:
    def test_root_first_then_sorted_walk(self, temp_workspace):
        directories = collect_candidate_directories(temp_workspace)
        assert directories == [
            str(temp_workspace),
            str(temp_workspace / "inbox"),
            str(temp_workspace / "projects"),
            str(temp_workspace / "projects" / "2024"),
        ]

    def test_custom_exclusions(self, temp_workspace):
        directories = collect_candidate_directories(temp_workspace, {"projects"})
        assert str(temp_workspace / "projects") not in directories
        assert str(temp_workspace / "projects" / "2024") not in directories
        assert str(temp_workspace / "node_modules") in directories


class TestScanNoteEntries:
    def test_file_and_folder(self, temp_workspace):
        entries = scan_note_entries([
            temp_workspace / "projects" / "roadmap.md",
            temp_workspace / "inbox",
        ])
        names = [e.name for e in entries]
        assert names == ["roadmap.md", "plan.md", "todo.md"]
        assert all(Path(e.path).is_absolute() for e in entries)

    def test_folder_children_keep_directory_flag(self, temp_workspace):
        entries = scan_note_entries([temp_workspace / "projects"])
        by_name = {e.name: e for e in entries}
        assert by_name["2024"].is_directory
        assert not by_name["roadmap.md"].is_directory

    def test_missing_path_skipped(self, temp_workspace):
        assert scan_note_entries([temp_workspace / "missing.md"]) == []
