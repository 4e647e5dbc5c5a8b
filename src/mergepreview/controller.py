"""Selection state owner for a merge preview."""

from __future__ import annotations

import asyncio
import logging as py_logging
from collections.abc import Callable
from dataclasses import replace

from mergepreview.errors import ExitCode, MergePreviewError
from mergepreview.git.gateway import MergePreviewGateway
from mergepreview.models import BranchRef, MergePreviewResult, Repository, SelectionState
from mergepreview.resolver import MergeStatusResolver

logger = py_logging.getLogger(__name__)

StateListener = Callable[[SelectionState], None]


def initial_selection(
    current_branch: BranchRef | None,
    default_branch: BranchRef | None,
    override: BranchRef | None = None,
) -> BranchRef | None:
    """Branch to preselect when the preview opens.

    An explicit override always wins. Otherwise the default branch is used
    unless it is the branch already checked out.
    """
    if override is not None:
        return override
    if current_branch == default_branch:
        return None
    return default_branch


class SelectionController:
    def __init__(
        self,
        repository: Repository,
        gateway: MergePreviewGateway,
        resolver: MergeStatusResolver,
        *,
        current_branch: BranchRef | None,
        default_branch: BranchRef | None = None,
        initial_branch: BranchRef | None = None,
        on_dismiss: Callable[[], None] | None = None,
    ) -> None:
        self.repository = repository
        self.current_branch = current_branch
        self._gateway = gateway
        self._resolver = resolver
        self._on_dismiss = on_dismiss
        self._listeners: list[StateListener] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._closed = False
        self._state = SelectionState(
            selected_branch=initial_selection(current_branch, default_branch, initial_branch)
        )

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def open(self) -> asyncio.Task[None] | None:
        """Start evaluating the preselected branch, if there is one."""
        branch = self._state.selected_branch
        if branch is None:
            return None
        return self._start_evaluation(branch)

    def close(self) -> None:
        self._closed = True
        self._listeners.clear()

    def on_selection_changed(self, branch: BranchRef | None) -> asyncio.Task[None] | None:
        """Select ``branch`` and start evaluating it.

        The new selection is applied synchronously with ``merge_result=None``
        and ``commit_count=None``. ``Loading`` follows on the first step of the
        returned task, once the resolver has checked whether conflict
        detection is enabled; with detection off it never appears.
        """
        if self._closed:
            return None
        if branch is None:
            self._set_state(
                selected_branch=None,
                commit_count=0,
                merge_result=None,
                evaluation_error="",
            )
            return None

        self._set_state(
            selected_branch=branch,
            commit_count=None,
            merge_result=None,
            evaluation_error="",
        )
        return self._start_evaluation(branch)

    def on_filter_text_changed(self, text: str) -> None:
        self._set_state(filter_text=text)

    def can_submit_merge(self) -> bool:
        selected = self._state.selected_branch
        current = self.current_branch
        if selected is None or current is None:
            return False
        if current.name == selected.name:
            return False
        return self._state.commit_count != 0

    async def submit_merge(self) -> None:
        selected = self._state.selected_branch
        if selected is None or not self.can_submit_merge():
            raise MergePreviewError(
                "Nothing to merge.",
                code=ExitCode.VALIDATION_ERROR,
                hint="Select a branch other than the current one that has commits to bring in.",
            )
        await self._gateway.execute_merge(self.repository, selected.name)
        if self._on_dismiss is not None:
            self._on_dismiss()

    async def wait_idle(self) -> None:
        """Wait until every evaluation started so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Resolver sink. Each write re-checks that the result still belongs to the
    # live selection.

    def apply_merge_result(self, branch: BranchRef, result: MergePreviewResult) -> None:
        if self._is_stale(branch, "merge_result"):
            return
        self._set_state(merge_result=result)

    def apply_commit_count(self, branch: BranchRef, count: int) -> None:
        if self._is_stale(branch, "commit_count"):
            return
        self._set_state(commit_count=count)

    def apply_evaluation_error(self, branch: BranchRef, message: str) -> None:
        if self._is_stale(branch, "evaluation_error"):
            return
        self._set_state(evaluation_error=message)

    def _is_stale(self, branch: BranchRef, field_name: str) -> bool:
        if not self._closed and self._state.selected_branch == branch:
            return False
        logger.debug("Dropping stale %s branch=%s", field_name, branch.name)
        return True

    def _start_evaluation(self, branch: BranchRef) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(
            self._resolver.evaluate(self.repository, self.current_branch, branch, self)
        )
        self._pending.add(task)
        task.add_done_callback(self._on_evaluation_done)
        return task

    def _on_evaluation_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Merge status evaluation failed", exc_info=exc)

    def _set_state(self, **changes: object) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
