"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    GIT_ERROR = 5
    VALIDATION_ERROR = 7
    MERGE_ERROR = 9


@dataclass
class MergePreviewError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


class GitCommandError(MergePreviewError):
    """A git invocation failed in a way the caller cannot interpret."""


class MergeSimulationError(MergePreviewError):
    """Tree-merge simulation failed; the preview degrades to unknown."""


class MergeExecutionError(MergePreviewError):
    """The actual merge command failed."""


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
