"""Shared validation errors and helpers for batch tool inputs."""


class ToolInputError(ValueError):
    """A tool was called with arguments outside the batch contract."""


class NotATargetError(ToolInputError):
    """The path is not one of the batch targets."""


class NotACandidateDirectoryError(ToolInputError):
    """The destination is not one of the candidate directories."""


class AlreadyProcessedError(ToolInputError):
    """The target already reached a terminal status."""


class FinalizedError(ToolInputError):
    """The batch was already finalized."""


def require_target(tool_name: str, field: str, path: str, target_paths: set[str]) -> None:
    """Raise NotATargetError unless path is a batch target.

    Args:
        tool_name: Tool name used in the error message.
        field: Argument name used in the error message.
        path: Path supplied by the model.
        target_paths: Eligible target paths of the batch.
    """
    if path not in target_paths:
        raise NotATargetError(f"{tool_name} {field} is not in target list.")


def truncate_note_content(content: str, max_length: int) -> str:
    """Clip note content to max_length characters, marking the cut."""
    if len(content) > max_length:
        return f"{content[:max_length]}\n..."
    return content
