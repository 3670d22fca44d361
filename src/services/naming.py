"""Title sanitization and batch-wide unique filename resolution."""

import logging
import re
from pathlib import Path
from typing import Awaitable, Callable

from config import MAX_TITLE_LENGTH, MAX_UNIQUE_NAME_ATTEMPTS
from services.entries import DirEntry, Entry
from services.operations import (
    FAILED,
    RENAMED,
    UNCHANGED,
    InvalidStateError,
    RenameOperation,
)

logger = logging.getLogger(__name__)

MARKDOWN_EXT_RE = re.compile(r"\.md$", re.IGNORECASE)
INVALID_FILENAME_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
MULTIPLE_WHITESPACE_RE = re.compile(r"\s+")
TRAILING_DOTS_RE = re.compile(r"\.+$")
_QUOTE_CHARS_RE = re.compile(r"[`\"'<>]")

ExistsFn = Callable[[str], Awaitable[bool]]


class UniqueNameError(Exception):
    """Raised when no free filename is found within the attempt budget."""


def extract_name(raw: str) -> str:
    """Take the first line of a model reply and blank out quote characters."""
    first_line = raw.split("\n")[0]
    return _QUOTE_CHARS_RE.sub(" ", first_line).strip()


def sanitize_file_name(name: str) -> str:
    """Turn a proposed title into a safe base filename (no extension).

    Returns an empty string when nothing usable is left.
    """
    cleaned = MARKDOWN_EXT_RE.sub("", name)
    cleaned = INVALID_FILENAME_CHARS_RE.sub(" ", cleaned)
    cleaned = MULTIPLE_WHITESPACE_RE.sub(" ", cleaned)
    cleaned = TRAILING_DOTS_RE.sub("", cleaned).strip()
    return cleaned[:MAX_TITLE_LENGTH].strip()


def extract_and_sanitize_name(raw: str) -> str:
    """Sanitize a raw model title into a base filename."""
    return sanitize_file_name(extract_name(raw))


async def resolve_unique_file_name_in_batch(
    suggested_base_name: str,
    dir_path: str,
    entry_name: str,
    exists: ExistsFn,
    occupied_lower: set[str],
) -> str:
    """Find the first free "{base}.md" / "{base} N.md" filename.

    A candidate is accepted when it matches the entry's own current filename
    (case-insensitive), or when it is neither taken earlier in the batch nor
    present on disk.

    Raises:
        UniqueNameError: If every attempt is taken.
    """
    entry_name_lower = entry_name.lower()

    for attempt in range(MAX_UNIQUE_NAME_ATTEMPTS + 1):
        suffix = "" if attempt == 0 else f" {attempt}"
        candidate = f"{suggested_base_name}{suffix}.md"
        candidate_lower = candidate.lower()

        if candidate_lower == entry_name_lower:
            return candidate
        if candidate_lower in occupied_lower:
            continue
        if await exists(str(Path(dir_path) / candidate)):
            continue
        return candidate

    raise UniqueNameError(
        f"Unable to generate unique filename after {MAX_UNIQUE_NAME_ATTEMPTS} attempts"
    )


async def finalize_rename_operations(
    entries_to_process: list[Entry],
    operation_by_path: dict[str, RenameOperation],
    suggestion_by_path: dict[str, str],
    dir_entries: list[DirEntry],
    dir_path: str,
    exists: ExistsFn,
) -> None:
    """Assign collision-free final filenames to every target, in target order.

    Target order decides who keeps the unsuffixed name, independent of the
    order in which titles were proposed. Per-target problems mark that
    target failed and never abort the batch.

    Raises:
        InvalidStateError: If a target has no ledger record.
    """
    occupied_lower = {
        dir_entry.name.lower() for dir_entry in dir_entries if dir_entry.name
    }

    for entry in entries_to_process:
        operation = operation_by_path.get(entry.path)
        if operation is None:
            raise InvalidStateError("Operation state not found for target path.")

        entry_name_lower = entry.name.lower()
        occupied_lower.discard(entry_name_lower)
        operation.suggested_base_name = None
        operation.final_file_name = None
        operation.reason = None

        raw_title = suggestion_by_path.get(entry.path)
        if not raw_title:
            operation.status = FAILED
            operation.reason = "No rename suggestion was returned for this note."
            occupied_lower.add(entry_name_lower)
            continue

        suggested_base_name = extract_and_sanitize_name(raw_title)
        if not suggested_base_name:
            operation.status = FAILED
            operation.reason = "The AI returned an invalid title."
            occupied_lower.add(entry_name_lower)
            continue

        try:
            final_file_name = await resolve_unique_file_name_in_batch(
                suggested_base_name, dir_path, entry.name, exists, occupied_lower,
            )
        except UniqueNameError as e:
            logger.warning("No free filename for %s: %s", entry.path, e)
            operation.status = FAILED
            operation.suggested_base_name = suggested_base_name
            operation.reason = str(e)
            occupied_lower.add(entry_name_lower)
            continue

        occupied_lower.add(final_file_name.lower())
        operation.status = UNCHANGED if final_file_name == entry.name else RENAMED
        operation.suggested_base_name = suggested_base_name
        operation.final_file_name = final_file_name
