"""Collaborator interface consumed by the merge status resolver."""

from __future__ import annotations

from typing import Protocol

from mergepreview.git.operations import get_ahead_behind, merge_branch, merge_tree
from mergepreview.git.runner import AsyncRunner, run_subprocess
from mergepreview.models import AheadBehind, BranchRef, MergePreviewResult, Repository


class MergePreviewGateway(Protocol):
    async def simulate_tree_merge(
        self,
        repository: Repository,
        base: BranchRef,
        candidate: BranchRef,
    ) -> MergePreviewResult: ...

    async def compute_ahead_behind(
        self,
        repository: Repository,
        range_spec: str,
    ) -> AheadBehind | None: ...

    async def execute_merge(self, repository: Repository, branch_name: str) -> None: ...


class GitGateway:
    """``MergePreviewGateway`` backed by the git command line."""

    def __init__(self, *, runner: AsyncRunner = run_subprocess, executable: str = "git") -> None:
        self._runner = runner
        self._executable = executable

    async def simulate_tree_merge(
        self,
        repository: Repository,
        base: BranchRef,
        candidate: BranchRef,
    ) -> MergePreviewResult:
        return await merge_tree(
            repository,
            base,
            candidate,
            self._runner,
            executable=self._executable,
        )

    async def compute_ahead_behind(
        self,
        repository: Repository,
        range_spec: str,
    ) -> AheadBehind | None:
        return await get_ahead_behind(
            repository,
            range_spec,
            self._runner,
            executable=self._executable,
        )

    async def execute_merge(self, repository: Repository, branch_name: str) -> None:
        await merge_branch(repository, branch_name, self._runner, executable=self._executable)
