"""Operation ledger - per-target state for one batch."""

from dataclasses import dataclass

from services.entries import Entry, parent_dir

PENDING = "pending"
MOVED = "moved"
RENAMED = "renamed"
UNCHANGED = "unchanged"
FAILED = "failed"


class InvalidStateError(RuntimeError):
    """Raised when ledger state contradicts what the engine guarantees."""


@dataclass
class MoveOperation:
    """Ledger record for one note of a move batch."""

    path: str
    current_directory_path: str
    status: str = PENDING
    destination_dir_path: str | None = None
    new_path: str | None = None
    reason: str | None = None


@dataclass
class RenameOperation:
    """Ledger record for one note of a rename batch."""

    path: str
    status: str = PENDING
    suggested_base_name: str | None = None
    final_file_name: str | None = None
    reason: str | None = None


def create_move_ledger(targets: list[Entry]) -> dict[str, MoveOperation]:
    """Create one pending move operation per target path."""
    return {
        entry.path: MoveOperation(
            path=entry.path,
            current_directory_path=parent_dir(entry.path),
        )
        for entry in targets
    }


def create_rename_ledger(targets: list[Entry]) -> dict[str, RenameOperation]:
    """Create one pending rename operation per target path."""
    return {entry.path: RenameOperation(path=entry.path) for entry in targets}


def to_public_move_operation(operation: MoveOperation) -> dict:
    """Serialize a terminal move operation, omitting unset fields.

    Raises:
        InvalidStateError: If the operation is still pending.
    """
    if operation.status == PENDING:
        raise InvalidStateError("Pending operation cannot be returned.")

    public = {"path": operation.path, "status": operation.status}
    if operation.destination_dir_path:
        public["destinationDirPath"] = operation.destination_dir_path
    if operation.new_path:
        public["newPath"] = operation.new_path
    if operation.reason:
        public["reason"] = operation.reason
    return public


def to_public_rename_operation(operation: RenameOperation) -> dict:
    """Serialize a terminal rename operation, omitting unset fields.

    Raises:
        InvalidStateError: If the operation is still pending.
    """
    if operation.status == PENDING:
        raise InvalidStateError("Pending operation cannot be returned.")

    public = {"path": operation.path, "status": operation.status}
    if operation.suggested_base_name:
        public["suggestedBaseName"] = operation.suggested_base_name
    if operation.final_file_name:
        public["finalFileName"] = operation.final_file_name
    if operation.reason:
        public["reason"] = operation.reason
    return public


def has_pending_operations(operations) -> bool:
    """Check whether any operation is still pending."""
    return any(operation.status == PENDING for operation in operations)


def pending_paths(operations) -> list[str]:
    """Paths of operations still pending, in iteration order."""
    return [operation.path for operation in operations if operation.status == PENDING]


def count_move_operations(operations: list[dict]) -> dict[str, int]:
    """Count public move operations by terminal status."""
    counts = {"movedCount": 0, "unchangedCount": 0, "failedCount": 0}
    for operation in operations:
        status = operation["status"]
        if status == MOVED:
            counts["movedCount"] += 1
        elif status == UNCHANGED:
            counts["unchangedCount"] += 1
        elif status == FAILED:
            counts["failedCount"] += 1
    return counts


def count_rename_operations(operations: list[dict]) -> dict[str, int]:
    """Count public rename operations by terminal status."""
    counts = {"renamedCount": 0, "unchangedCount": 0, "failedCount": 0}
    for operation in operations:
        status = operation["status"]
        if status == RENAMED:
            counts["renamedCount"] += 1
        elif status == UNCHANGED:
            counts["unchangedCount"] += 1
        elif status == FAILED:
            counts["failedCount"] += 1
    return counts
