"""Filesystem capability used by the batch engine, plus a local implementation."""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

import anyio

from services.entries import DirEntry

logger = logging.getLogger(__name__)

OnConflict = Literal["fail", "auto-rename"]


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a move or rename.

    final_path is the path the entry ended up at, which may differ from the
    requested one when a conflict was auto-renamed. Implementations may leave
    it unset.
    """

    success: bool
    final_path: str | None = None


class FileSystem(Protocol):
    """The filesystem operations the engine is allowed to perform."""

    async def read_text_file(self, path: str) -> str: ...

    async def read_dir(self, path: str) -> list[DirEntry]: ...

    async def exists(self, path: str) -> bool: ...

    async def move_entry(
        self,
        source_path: str,
        destination_dir_path: str,
        *,
        on_conflict: OnConflict = "fail",
        allow_locked_source_path: bool = False,
    ) -> MoveResult: ...


# =============================================================================
# Local implementation
# =============================================================================


def _auto_rename_target(directory: Path, file_name: str) -> Path:
    """Return the first free "name (n).ext" path in directory."""
    candidate = directory / file_name
    stem, suffix = Path(file_name).stem, Path(file_name).suffix
    counter = 1
    while os.path.lexists(candidate):
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


class LocalFileSystem:
    """FileSystem backed by the local disk, constrained to one workspace root.

    Blocking calls run in a worker thread. Paths registered with lock_paths()
    cannot be moved or renamed unless the caller passes
    allow_locked_source_path=True.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser().resolve()
        self._locked: set[str] = set()

    # -- locking --------------------------------------------------------------

    def lock_paths(self, paths: list[str]) -> None:
        """Mark paths as in use by a running batch."""
        self._locked.update(paths)

    def unlock_paths(self, paths: list[str]) -> None:
        """Release paths previously passed to lock_paths()."""
        self._locked.difference_update(paths)

    def is_locked(self, path: str) -> bool:
        return path in self._locked

    # -- path resolution ------------------------------------------------------

    def resolve(self, path: str, *, follow_symlinks: bool = True) -> Path:
        """Resolve a path ensuring it stays within the workspace root.

        Args:
            path: Absolute path, or a path relative to the workspace root.
            follow_symlinks: When False, only the parent is resolved so a
                symlink at path names the link itself, not its target.

        Raises:
            ValueError: If path escapes the workspace root.
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        if follow_symlinks:
            resolved = candidate.resolve()
        else:
            candidate = Path(os.path.normpath(candidate))
            if candidate.name in ("", ".", ".."):
                resolved = candidate.resolve()
            else:
                resolved = candidate.parent.resolve() / candidate.name
        try:
            resolved.relative_to(self.root)
        except ValueError:
            raise ValueError(f"Path must be within workspace: {self.root}")
        return resolved

    # -- FileSystem -----------------------------------------------------------

    async def read_text_file(self, path: str) -> str:
        return await anyio.Path(self.resolve(path)).read_text(encoding="utf-8")

    async def read_dir(self, path: str) -> list[DirEntry]:
        return await anyio.to_thread.run_sync(self._read_dir_sync, path)

    async def exists(self, path: str) -> bool:
        try:
            resolved = self.resolve(path)
        except ValueError:
            return False
        return await anyio.Path(resolved).exists()

    async def move_entry(
        self,
        source_path: str,
        destination_dir_path: str,
        *,
        on_conflict: OnConflict = "fail",
        allow_locked_source_path: bool = False,
    ) -> MoveResult:
        return await anyio.to_thread.run_sync(
            lambda: self._move_entry_sync(
                source_path, destination_dir_path, on_conflict, allow_locked_source_path,
            )
        )

    async def rename_entry(
        self,
        path: str,
        new_file_name: str,
        *,
        allow_locked_source_path: bool = False,
    ) -> MoveResult:
        """Rename a file inside its own folder. Never overwrites."""
        return await anyio.to_thread.run_sync(
            lambda: self._rename_entry_sync(path, new_file_name, allow_locked_source_path)
        )

    # -- blocking helpers -----------------------------------------------------

    def _read_dir_sync(self, path: str) -> list[DirEntry]:
        directory = self.resolve(path)
        return [
            DirEntry(name=child.name, is_directory=child.is_dir())
            for child in sorted(directory.iterdir())
        ]

    def _check_source(self, source_path: str, allow_locked: bool) -> Path | None:
        if not allow_locked and self.is_locked(source_path):
            logger.warning("Refusing to touch locked entry: %s", source_path)
            return None
        try:
            source = self.resolve(source_path, follow_symlinks=False)
        except ValueError as e:
            logger.warning("Rejected source %s: %s", source_path, e)
            return None
        if not os.path.lexists(source):
            logger.warning("Source not found: %s", source_path)
            return None
        return source

    def _move_entry_sync(
        self,
        source_path: str,
        destination_dir_path: str,
        on_conflict: OnConflict,
        allow_locked: bool,
    ) -> MoveResult:
        source = self._check_source(source_path, allow_locked)
        if source is None:
            return MoveResult(False)

        try:
            destination_dir = self.resolve(destination_dir_path)
        except ValueError as e:
            logger.warning("Rejected destination %s: %s", destination_dir_path, e)
            return MoveResult(False)
        if not destination_dir.is_dir():
            logger.warning("Destination is not a folder: %s", destination_dir_path)
            return MoveResult(False)

        target = destination_dir / source.name
        if target == source:
            return MoveResult(True, str(target))
        if os.path.lexists(target):
            if on_conflict != "auto-rename":
                logger.warning("Destination already exists: %s", target)
                return MoveResult(False)
            target = _auto_rename_target(destination_dir, source.name)

        try:
            shutil.move(str(source), str(target))
        except OSError as e:
            logger.error("Move failed for %s: %s", source_path, e)
            return MoveResult(False)

        logger.info("Moved %s to %s", source, target)
        return MoveResult(True, str(target))

    def _rename_entry_sync(
        self, path: str, new_file_name: str, allow_locked: bool,
    ) -> MoveResult:
        source = self._check_source(path, allow_locked)
        if source is None:
            return MoveResult(False)

        target = source.with_name(new_file_name)
        if target == source:
            return MoveResult(True, str(target))
        # Case-only renames hit the source itself on case-insensitive disks
        if os.path.lexists(target) and not os.path.samestat(target.lstat(), source.lstat()):
            logger.warning("Rename target already exists: %s", target)
            return MoveResult(False)

        try:
            source.rename(target)
        except OSError as e:
            logger.error("Rename failed for %s: %s", path, e)
            return MoveResult(False)

        logger.info("Renamed %s to %s", source, target.name)
        return MoveResult(True, str(target))
