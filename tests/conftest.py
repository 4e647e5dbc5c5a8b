from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from mergepreview.models import AheadBehind, BranchRef, Clean, MergePreviewResult, Repository

_SLOW_TEST_FILES = {
    "test_controller_timeline.py",
}


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))

        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)

        if path.name in _SLOW_TEST_FILES:
            item.add_marker(pytest.mark.slow)


class FakeGateway:
    """In-memory collaborators keyed by candidate branch name."""

    def __init__(self) -> None:
        self.shapes: dict[str, MergePreviewResult] = {}
        self.shape_errors: dict[str, Exception] = {}
        self.counts: dict[str, AheadBehind | None] = {}
        self.count_errors: dict[str, Exception] = {}
        self.shape_delays: dict[str, float] = {}
        self.count_delays: dict[str, float] = {}
        self.shape_gates: dict[str, asyncio.Event] = {}
        self.count_gates: dict[str, asyncio.Event] = {}
        self.shape_calls: list[tuple[str, str]] = []
        self.count_calls: list[str] = []
        self.merged: list[str] = []
        self.merge_error: Exception | None = None

    async def simulate_tree_merge(
        self,
        repository: Repository,
        base: BranchRef,
        candidate: BranchRef,
    ) -> MergePreviewResult:
        self.shape_calls.append((base.name, candidate.name))
        await self._hold(candidate.name, self.shape_delays, self.shape_gates)
        if candidate.name in self.shape_errors:
            raise self.shape_errors[candidate.name]
        return self.shapes.get(candidate.name, Clean())

    async def compute_ahead_behind(self, repository: Repository, range_spec: str) -> AheadBehind | None:
        self.count_calls.append(range_spec)
        name = range_spec.split("...", 1)[1]
        await self._hold(name, self.count_delays, self.count_gates)
        if name in self.count_errors:
            raise self.count_errors[name]
        return self.counts.get(name)

    async def execute_merge(self, repository: Repository, branch_name: str) -> None:
        if self.merge_error is not None:
            raise self.merge_error
        self.merged.append(branch_name)

    @staticmethod
    async def _hold(name: str, delays: dict[str, float], gates: dict[str, asyncio.Event]) -> None:
        if name in delays:
            await asyncio.sleep(delays[name])
        gate = gates.get(name)
        if gate is not None:
            await gate.wait()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def repository(tmp_path: Path) -> Repository:
    return Repository(path=tmp_path)
