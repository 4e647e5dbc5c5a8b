"""Git plumbing used to evaluate and execute merges."""

from __future__ import annotations

import logging as py_logging

from mergepreview.errors import (
    ExitCode,
    GitCommandError,
    MergeExecutionError,
    MergeSimulationError,
)
from mergepreview.git.runner import AsyncRunner, run_git, run_subprocess
from mergepreview.models import (
    AheadBehind,
    BranchRef,
    Clean,
    Conflicted,
    MergePreviewResult,
    Repository,
    Unknown,
)

logger = py_logging.getLogger(__name__)


def rev_symmetric_difference(base: str, compare: str) -> str:
    """Range selecting commits on either side but not both."""
    return f"{base}...{compare}"


def parse_ahead_behind(raw: str) -> AheadBehind | None:
    parts = raw.split()
    if len(parts) != 2:
        return None
    try:
        ahead, behind = (int(part) for part in parts)
    except ValueError:
        return None
    if ahead < 0 or behind < 0:
        return None
    return AheadBehind(ahead=ahead, behind=behind)


def parse_conflicted_paths(raw: str) -> list[str]:
    """Paths listed by ``merge-tree --name-only`` after the tree id."""
    lines = raw.splitlines()
    paths: list[str] = []
    seen: set[str] = set()
    for line in lines[1:]:
        path = line.strip()
        if not path:
            break
        if path in seen:
            continue
        seen.add(path)
        paths.append(path)
    return paths


async def get_ahead_behind(
    repository: Repository,
    range_spec: str,
    runner: AsyncRunner = run_subprocess,
    *,
    executable: str = "git",
) -> AheadBehind | None:
    result = await run_git(
        repository.path,
        ["rev-list", "--left-right", "--count", range_spec, "--"],
        runner,
        executable=executable,
    )
    if result.returncode != 0:
        logger.debug(
            "Ahead/behind unavailable repo=%s range=%s stderr=%s",
            repository.path,
            range_spec,
            result.stderr.strip(),
        )
        return None
    counts = parse_ahead_behind(result.stdout)
    if counts is None:
        logger.warning(
            "Unexpected rev-list output repo=%s range=%s stdout=%r",
            repository.path,
            range_spec,
            result.stdout,
        )
    return counts


async def merge_tree(
    repository: Repository,
    base: BranchRef,
    candidate: BranchRef,
    runner: AsyncRunner = run_subprocess,
    *,
    executable: str = "git",
) -> MergePreviewResult:
    """Dry-run merge of ``candidate`` into ``base`` without touching the worktree."""
    try:
        merge_base = await run_git(
            repository.path,
            ["merge-base", base.name, candidate.name],
            runner,
            executable=executable,
        )
        if merge_base.returncode == 1:
            logger.debug(
                "No merge base repo=%s base=%s candidate=%s",
                repository.path,
                base.name,
                candidate.name,
            )
            return Unknown()
        if merge_base.returncode != 0:
            raise MergeSimulationError(
                f"Failed to find merge base of {base.name} and {candidate.name}.",
                code=ExitCode.GIT_ERROR,
                hint=(merge_base.stderr or "Check that both branches exist.").strip(),
            )

        result = await run_git(
            repository.path,
            ["merge-tree", "--write-tree", "--name-only", "--no-messages", base.name, candidate.name],
            runner,
            executable=executable,
        )
    except MergeSimulationError:
        raise
    except GitCommandError as exc:
        raise MergeSimulationError(exc.message, code=exc.code, hint=exc.hint) from exc

    if result.returncode == 0:
        return Clean()
    if result.returncode == 1:
        return Conflicted(conflicted_file_count=len(parse_conflicted_paths(result.stdout)))

    logger.error(
        "merge-tree failed repo=%s base=%s candidate=%s stderr=%s",
        repository.path,
        base.name,
        candidate.name,
        result.stderr.strip(),
    )
    raise MergeSimulationError(
        f"Failed to simulate merge of {candidate.name} into {base.name}.",
        code=ExitCode.GIT_ERROR,
        hint=(result.stderr or "git 2.38 or newer is required for merge-tree --write-tree.").strip(),
    )


async def merge_branch(
    repository: Repository,
    branch_name: str,
    runner: AsyncRunner = run_subprocess,
    *,
    executable: str = "git",
) -> None:
    logger.info("Merging branch repo=%s branch=%s", repository.path, branch_name)
    try:
        result = await run_git(
            repository.path,
            ["merge", "--no-edit", branch_name],
            runner,
            executable=executable,
        )
    except GitCommandError as exc:
        raise MergeExecutionError(exc.message, code=ExitCode.MERGE_ERROR, hint=exc.hint) from exc

    if result.returncode != 0:
        logger.error(
            "Merge failed repo=%s branch=%s stderr=%s",
            repository.path,
            branch_name,
            result.stderr.strip(),
        )
        raise MergeExecutionError(
            f"Failed to merge {branch_name}.",
            code=ExitCode.MERGE_ERROR,
            hint=(result.stderr or result.stdout or "Run `git status` to inspect the merge.").strip(),
        )
    logger.debug("Merge completed repo=%s branch=%s", repository.path, branch_name)
