from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from mergepreview.errors import ExitCode, GitCommandError, MergeExecutionError, MergeSimulationError
from mergepreview.git.gateway import GitGateway
from mergepreview.git.operations import (
    get_ahead_behind,
    merge_branch,
    merge_tree,
    parse_ahead_behind,
    parse_conflicted_paths,
    rev_symmetric_difference,
)
from mergepreview.git.runner import git_command, run_git
from mergepreview.models import AheadBehind, BranchRef, Clean, Conflicted, Repository, Unknown

REPO = Repository(path=Path("/tmp/repo"))
MAIN = BranchRef("main")
FEATURE = BranchRef("feature")
MERGE_TREE = "merge-tree --write-tree --name-only --no-messages main feature"


def _cp(returncode: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def _runner(responses: dict[str, subprocess.CompletedProcess], calls: list[list[str]] | None = None):
    async def runner(cmd: list[str]) -> subprocess.CompletedProcess:
        if calls is not None:
            calls.append(cmd)
        return responses[" ".join(cmd[3:])]

    return runner


def test_git_command_targets_the_repository() -> None:
    assert git_command(Path("/r"), ["status"], executable="/usr/bin/git") == [
        "/usr/bin/git",
        "-C",
        "/r",
        "status",
    ]


def test_rev_symmetric_difference() -> None:
    assert rev_symmetric_difference("HEAD", "feature") == "HEAD...feature"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("3\t5\n", AheadBehind(ahead=3, behind=5)),
        ("0 0", AheadBehind(ahead=0, behind=0)),
        ("", None),
        ("1", None),
        ("a\tb", None),
        ("-1\t2", None),
    ],
)
def test_parse_ahead_behind(raw: str, expected: AheadBehind | None) -> None:
    assert parse_ahead_behind(raw) == expected


def test_parse_conflicted_paths_skips_tree_id_and_dedupes() -> None:
    raw = "4b825dc642cb6eb9a060e54bf8d69288fbee4904\nsrc/a.py\nsrc/b.py\nsrc/a.py\n\nAuto-merging src/a.py\n"

    assert parse_conflicted_paths(raw) == ["src/a.py", "src/b.py"]


@pytest.mark.asyncio
async def test_ahead_behind_parses_rev_list_counts() -> None:
    calls: list[list[str]] = []
    runner = _runner({"rev-list --left-right --count HEAD...feature --": _cp(0, "2\t7\n")}, calls)

    result = await get_ahead_behind(REPO, "HEAD...feature", runner)

    assert result == AheadBehind(ahead=2, behind=7)
    assert calls[0][:3] == ["git", "-C", "/tmp/repo"]


@pytest.mark.asyncio
async def test_ahead_behind_returns_none_for_unknown_revision() -> None:
    runner = _runner({"rev-list --left-right --count HEAD...gone --": _cp(128, stderr="bad revision")})

    assert await get_ahead_behind(REPO, "HEAD...gone", runner) is None


@pytest.mark.asyncio
async def test_ahead_behind_returns_none_for_garbled_output() -> None:
    runner = _runner({"rev-list --left-right --count HEAD...feature --": _cp(0, "garbage")})

    assert await get_ahead_behind(REPO, "HEAD...feature", runner) is None


@pytest.mark.asyncio
async def test_merge_tree_clean() -> None:
    runner = _runner(
        {
            "merge-base main feature": _cp(0, "abc\n"),
            MERGE_TREE: _cp(0, "treeid\n"),
        }
    )

    assert await merge_tree(REPO, MAIN, FEATURE, runner) == Clean()


@pytest.mark.asyncio
async def test_merge_tree_counts_conflicted_files() -> None:
    runner = _runner(
        {
            "merge-base main feature": _cp(0, "abc\n"),
            MERGE_TREE: _cp(1, "treeid\na.txt\nb.txt\nc.txt\n"),
        }
    )

    assert await merge_tree(REPO, MAIN, FEATURE, runner) == Conflicted(conflicted_file_count=3)


@pytest.mark.asyncio
async def test_merge_tree_without_merge_base_is_unknown() -> None:
    calls: list[list[str]] = []
    runner = _runner({"merge-base main feature": _cp(1)}, calls)

    assert await merge_tree(REPO, MAIN, FEATURE, runner) == Unknown()
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_merge_tree_failure_raises_simulation_error() -> None:
    runner = _runner(
        {
            "merge-base main feature": _cp(0, "abc\n"),
            MERGE_TREE: _cp(129, stderr="usage: git merge-tree"),
        }
    )

    with pytest.raises(MergeSimulationError) as exc:
        await merge_tree(REPO, MAIN, FEATURE, runner)
    assert "usage" in exc.value.hint


@pytest.mark.asyncio
async def test_merge_tree_bad_revision_raises_simulation_error() -> None:
    runner = _runner({"merge-base main feature": _cp(128, stderr="Not a valid object name feature")})

    with pytest.raises(MergeSimulationError):
        await merge_tree(REPO, MAIN, FEATURE, runner)


@pytest.mark.asyncio
async def test_missing_git_executable_becomes_git_error() -> None:
    async def runner(cmd: list[str]) -> subprocess.CompletedProcess:
        raise FileNotFoundError(cmd[0])

    with pytest.raises(GitCommandError) as exc:
        await run_git(Path("/tmp/repo"), ["status"], runner, executable="nogit")
    assert exc.value.code is ExitCode.GIT_ERROR

    with pytest.raises(MergeSimulationError):
        await merge_tree(REPO, MAIN, FEATURE, runner)


@pytest.mark.asyncio
async def test_unrunnable_git_executable_becomes_git_error() -> None:
    async def runner(cmd: list[str]) -> subprocess.CompletedProcess:
        raise PermissionError(13, "Permission denied", cmd[0])

    with pytest.raises(GitCommandError) as exc:
        await run_git(Path("/tmp/repo"), ["status"], runner, executable="/etc/passwd")
    assert exc.value.code is ExitCode.GIT_ERROR
    assert "could not be started" in exc.value.message

    with pytest.raises(MergeSimulationError):
        await merge_tree(REPO, MAIN, FEATURE, runner)


@pytest.mark.asyncio
async def test_merge_branch_success() -> None:
    calls: list[list[str]] = []
    runner = _runner({"merge --no-edit feature": _cp(0, "Merge made\n")}, calls)

    await merge_branch(REPO, "feature", runner)

    assert calls[0][3:] == ["merge", "--no-edit", "feature"]


@pytest.mark.asyncio
async def test_merge_branch_failure_raises_execution_error() -> None:
    runner = _runner({"merge --no-edit feature": _cp(1, stdout="CONFLICT (content): a.txt")})

    with pytest.raises(MergeExecutionError) as exc:
        await merge_branch(REPO, "feature", runner)
    assert exc.value.code is ExitCode.MERGE_ERROR
    assert "CONFLICT" in exc.value.hint


@pytest.mark.asyncio
async def test_git_gateway_uses_configured_executable() -> None:
    calls: list[list[str]] = []
    runner = _runner({"rev-list --left-right --count HEAD...feature --": _cp(0, "0\t1\n")}, calls)
    gateway = GitGateway(runner=runner, executable="/opt/git/bin/git")

    assert await gateway.compute_ahead_behind(REPO, "HEAD...feature") == AheadBehind(ahead=0, behind=1)
    assert calls[0][0] == "/opt/git/bin/git"
