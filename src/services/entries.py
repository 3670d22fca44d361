"""Target collection - which workspace entries a batch may touch."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from config import EXCLUDED_DIRS, MAX_SIBLING_NOTE_NAMES, NOTE_EXTENSIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entry:
    """A workspace entry handed to a batch by the caller."""

    path: str
    name: str
    is_directory: bool = False


@dataclass(frozen=True)
class DirEntry:
    """One item of a directory listing."""

    name: str
    is_directory: bool = False


def is_note_path(path: str) -> bool:
    """Check whether a path has a note extension (case-insensitive)."""
    return path.lower().endswith(NOTE_EXTENSIONS)


def parent_dir(path: str) -> str:
    """Return the parent directory of a path as a string."""
    return str(Path(path).parent)


def strip_extension(file_name: str, extension: str = ".md") -> str:
    """Remove extension from file_name when present (case-insensitive)."""
    if extension and file_name.lower().endswith(extension.lower()):
        return file_name[: -len(extension)]
    return file_name


def collect_entries_to_process(entries: list[Entry]) -> list[Entry]:
    """Filter raw entries down to the eligible, de-duplicated note set.

    Directories and non-note files are dropped. When the same path appears
    more than once the last occurrence wins, but the path keeps the position
    of its first occurrence.
    """
    by_path: dict[str, Entry] = {}
    for entry in entries:
        if entry.is_directory or not is_note_path(entry.path):
            continue
        by_path[entry.path] = entry
    return list(by_path.values())


def are_entries_in_same_directory(entries: list[Entry]) -> bool:
    """Check that all entries share one parent directory."""
    if not entries:
        return False
    directory = parent_dir(entries[0].path)
    return all(parent_dir(entry.path) == directory for entry in entries)


def collect_sibling_note_names(
    dir_entries: list[DirEntry],
    target_names: set[str],
) -> list[str]:
    """List note titles in a folder that are not part of the batch.

    Hidden files and directories are skipped and the extension is stripped.
    At most MAX_SIBLING_NOTE_NAMES names are returned.
    """
    names = []
    for dir_entry in dir_entries:
        name = dir_entry.name
        if not name or dir_entry.is_directory:
            continue
        if name in target_names or name.startswith("."):
            continue
        if not is_note_path(name):
            continue
        title = strip_extension(name).strip()
        if title:
            names.append(title)
    return names[:MAX_SIBLING_NOTE_NAMES]


def collect_candidate_directories(
    workspace_path: str | Path,
    excluded_dirs: set[str] | None = None,
) -> list[str]:
    """List the directories a note may be moved into.

    The workspace root comes first, followed by every directory below it in
    sorted walk order. Hidden and excluded directories (and everything under
    them) are skipped.

    Args:
        workspace_path: Root of the workspace.
        excluded_dirs: Directory names to skip. Defaults to EXCLUDED_DIRS.

    Returns:
        List of absolute directory paths.
    """
    excluded = EXCLUDED_DIRS if excluded_dirs is None else excluded_dirs
    root = Path(workspace_path)
    directories: dict[str, None] = {str(root): None}

    for current, subdirs, _files in os.walk(root):
        subdirs[:] = sorted(
            d for d in subdirs if d not in excluded and not d.startswith(".")
        )
        for subdir in subdirs:
            directories.setdefault(str(Path(current) / subdir), None)

    return list(directories)


def scan_note_entries(paths: list[str | Path]) -> list[Entry]:
    """Build entries from command-line paths.

    Files are taken as-is; folders contribute their direct children.
    Missing paths are logged and skipped.
    """
    entries = []
    for raw in paths:
        path = Path(raw).expanduser().resolve()
        if path.is_dir():
            for child in sorted(path.iterdir()):
                entries.append(
                    Entry(path=str(child), name=child.name, is_directory=child.is_dir())
                )
        elif path.is_file():
            entries.append(Entry(path=str(path), name=path.name))
        else:
            logger.warning("Skipping missing path: %s", raw)
    return entries
