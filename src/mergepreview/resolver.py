"""Merge status resolution for a selected branch."""

from __future__ import annotations

import asyncio
import logging as py_logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from mergepreview.floor import MERGE_STATUS_FLOOR_SECONDS, Sleep, run_with_floor
from mergepreview.git.gateway import MergePreviewGateway
from mergepreview.git.operations import rev_symmetric_difference
from mergepreview.models import BranchRef, Loading, MergePreviewResult, Repository, Unknown

logger = py_logging.getLogger(__name__)

HEAD = "HEAD"


class ResultSink(Protocol):
    """Receives resolver updates; the owner decides whether they are stale."""

    def apply_merge_result(self, branch: BranchRef, result: MergePreviewResult) -> None: ...

    def apply_commit_count(self, branch: BranchRef, count: int) -> None: ...

    def apply_evaluation_error(self, branch: BranchRef, message: str) -> None: ...


class MergeStatusResolver:
    def __init__(
        self,
        gateway: MergePreviewGateway,
        *,
        conflict_detection_enabled: Callable[[], bool] = lambda: True,
        floor_seconds: float = MERGE_STATUS_FLOOR_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if floor_seconds < 0:
            raise ValueError(f"Invalid floor: {floor_seconds}")
        self._gateway = gateway
        self._conflict_detection_enabled = conflict_detection_enabled
        self.floor_seconds = floor_seconds
        self._sleep = sleep

    async def evaluate(
        self,
        repository: Repository,
        current_branch: BranchRef | None,
        candidate: BranchRef,
        sink: ResultSink,
    ) -> None:
        """Resolve merge shape and commit count for ``candidate``.

        Both evaluations run concurrently and report to ``sink`` as soon as
        each one finishes. With conflict detection disabled no merge shape is
        reported at all; without a current branch the shape is ``Unknown``.
        A failing simulation degrades to ``Unknown`` and a failing count to 0,
        so the preview never stays in its loading state.
        """
        detect_conflicts = self._conflict_detection_enabled()
        evaluations: list[Awaitable[None]] = [
            self._resolve_commit_count(repository, candidate, sink),
        ]
        if detect_conflicts:
            sink.apply_merge_result(candidate, Loading())
            if current_branch is None:
                logger.debug("No current branch; merge shape unknown candidate=%s", candidate.name)
                sink.apply_merge_result(candidate, Unknown())
            else:
                evaluations.insert(
                    0,
                    self._resolve_merge_shape(repository, current_branch, candidate, sink),
                )
        else:
            logger.debug("Conflict detection disabled candidate=%s", candidate.name)

        outcomes = await asyncio.gather(*evaluations, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _resolve_merge_shape(
        self,
        repository: Repository,
        current_branch: BranchRef,
        candidate: BranchRef,
        sink: ResultSink,
    ) -> None:
        logger.debug(
            "Simulating merge repo=%s base=%s candidate=%s",
            repository.path,
            current_branch.name,
            candidate.name,
        )
        try:
            result = await run_with_floor(
                lambda: self._gateway.simulate_tree_merge(repository, current_branch, candidate),
                self.floor_seconds,
                sleep=self._sleep,
            )
        except Exception as exc:
            logger.warning(
                "Merge simulation failed repo=%s base=%s candidate=%s error=%s",
                repository.path,
                current_branch.name,
                candidate.name,
                exc,
            )
            sink.apply_merge_result(candidate, Unknown())
            sink.apply_evaluation_error(candidate, str(exc) or type(exc).__name__)
            return

        logger.debug("Merge shape resolved candidate=%s kind=%s", candidate.name, result.kind.value)
        sink.apply_merge_result(candidate, result)

    async def _resolve_commit_count(
        self,
        repository: Repository,
        candidate: BranchRef,
        sink: ResultSink,
    ) -> None:
        range_spec = rev_symmetric_difference(HEAD, candidate.name)
        try:
            counts = await self._gateway.compute_ahead_behind(repository, range_spec)
        except Exception as exc:
            logger.warning("Ahead/behind failed repo=%s range=%s error=%s", repository.path, range_spec, exc)
            counts = None

        if counts is None:
            logger.debug("Commit count unavailable range=%s", range_spec)
            commit_count = 0
        else:
            commit_count = counts.behind
        sink.apply_commit_count(candidate, commit_count)
