"""Merge preview domain models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Union

from typing_extensions import NotRequired, TypedDict


@dataclass(frozen=True)
class BranchRef:
    """A branch as enumerated from the repository.

    Two refs are the same branch when their ``identity`` (the full ref name)
    matches; the short ``name`` is only for display and git arguments.
    """

    name: str = field(compare=False)
    identity: str = ""

    def __post_init__(self) -> None:
        if not self.identity:
            object.__setattr__(self, "identity", f"refs/heads/{self.name}")


@dataclass(frozen=True)
class Repository:
    path: Path


class MergeResultKind(str, Enum):
    LOADING = "loading"
    CLEAN = "clean"
    CONFLICTED = "conflicted"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Loading:
    kind: MergeResultKind = field(default=MergeResultKind.LOADING, init=False)


@dataclass(frozen=True)
class Clean:
    commit_count: int | None = None
    kind: MergeResultKind = field(default=MergeResultKind.CLEAN, init=False)


@dataclass(frozen=True)
class Conflicted:
    conflicted_file_count: int
    commit_count: int | None = None
    kind: MergeResultKind = field(default=MergeResultKind.CONFLICTED, init=False)


@dataclass(frozen=True)
class Unknown:
    kind: MergeResultKind = field(default=MergeResultKind.UNKNOWN, init=False)


MergePreviewResult = Union[Loading, Clean, Conflicted, Unknown]


@dataclass(frozen=True)
class AheadBehind:
    ahead: int
    behind: int


class PreviewPayload(TypedDict):
    selected_branch: str | None
    merge_result: str | None
    commit_count: int | None
    conflicted_file_count: NotRequired[int]
    evaluation_error: NotRequired[str]


@dataclass(frozen=True)
class SelectionState:
    """Snapshot of what the merge preview currently shows.

    ``commit_count`` is ``None`` while unknown or recomputing, ``0`` when there
    is nothing to merge and a positive count otherwise.
    """

    selected_branch: BranchRef | None = None
    merge_result: MergePreviewResult | None = None
    commit_count: int | None = None
    filter_text: str = ""
    evaluation_error: str = ""

    def preview(self) -> MergePreviewResult | None:
        """Merge result with the live commit count folded in."""
        result = self.merge_result
        if isinstance(result, (Clean, Conflicted)):
            return replace(result, commit_count=self.commit_count)
        return result

    def to_dict(self) -> PreviewPayload:
        result = self.preview()
        payload = PreviewPayload(
            selected_branch=self.selected_branch.name if self.selected_branch else None,
            merge_result=result.kind.value if result is not None else None,
            commit_count=self.commit_count,
        )
        if isinstance(result, Conflicted):
            payload["conflicted_file_count"] = result.conflicted_file_count
        if self.evaluation_error:
            payload["evaluation_error"] = self.evaluation_error
        return payload
