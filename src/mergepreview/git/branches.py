"""Local branch enumeration."""

from __future__ import annotations

import logging as py_logging
from dataclasses import dataclass
from pathlib import Path

from mergepreview.errors import ExitCode, GitCommandError
from mergepreview.git.runner import AsyncRunner, run_git, run_subprocess
from mergepreview.models import BranchRef, Repository

logger = py_logging.getLogger(__name__)

_HEADS_PREFIX = "refs/heads/"
_FALLBACK_DEFAULTS = ("main", "master")


@dataclass
class BranchListing:
    branches: list[BranchRef]
    current: BranchRef | None = None
    default: BranchRef | None = None
    warning: str = ""

    def find(self, name: str) -> BranchRef | None:
        for branch in self.branches:
            if branch.name == name or branch.identity == name:
                return branch
        return None


def parse_branch_refs(raw: str) -> list[BranchRef]:
    refs: list[BranchRef] = []
    seen: set[str] = set()
    for line in raw.splitlines():
        refname = line.strip()
        if not refname.startswith(_HEADS_PREFIX) or refname in seen:
            continue
        seen.add(refname)
        refs.append(BranchRef(name=refname[len(_HEADS_PREFIX):], identity=refname))
    return sorted(refs, key=lambda ref: ref.name)


async def list_branches(
    repository: Repository,
    runner: AsyncRunner = run_subprocess,
    *,
    default_branch: str = "",
    executable: str = "git",
) -> BranchListing:
    repo = repository.path
    logger.debug("Listing local branches repo=%s", repo)

    inside = await run_git(repo, ["rev-parse", "--is-inside-work-tree"], runner, executable=executable)
    if inside.returncode != 0:
        logger.error("Repository is not accessible repo=%s", repo)
        raise GitCommandError(
            f"Repository is not accessible: {repo}",
            code=ExitCode.GIT_ERROR,
            hint="Check the path and ensure it is a valid Git repository.",
        )

    listing = await run_git(
        repo,
        ["for-each-ref", "--format=%(refname)", _HEADS_PREFIX.rstrip("/")],
        runner,
        executable=executable,
    )
    if listing.returncode != 0:
        logger.error("Failed to list local branches repo=%s stderr=%s", repo, listing.stderr.strip())
        raise GitCommandError(
            f"Failed to list local branches for {repo}",
            code=ExitCode.GIT_ERROR,
            hint="Run `git branch` manually to inspect repository state.",
        )
    branches = parse_branch_refs(listing.stdout)
    by_identity = {branch.identity: branch for branch in branches}

    warning = ""
    current: BranchRef | None = None
    head = await run_git(repo, ["symbolic-ref", "-q", "HEAD"], runner, executable=executable)
    if head.returncode != 0:
        warning = "Detached HEAD detected. Merging into the current branch is unavailable."
        logger.warning("Detached HEAD detected repo=%s", repo)
    else:
        head_ref = head.stdout.strip()
        current = by_identity.get(head_ref)
        if current is None and head_ref.startswith(_HEADS_PREFIX):
            # Unborn branch: HEAD points at a ref with no commits yet.
            current = BranchRef(name=head_ref[len(_HEADS_PREFIX):], identity=head_ref)

    default = await _resolve_default_branch(repo, by_identity, runner, default_branch, executable)
    logger.debug(
        "Discovered branches repo=%s count=%s current=%s default=%s",
        repo,
        len(branches),
        current.name if current else None,
        default.name if default else None,
    )
    return BranchListing(branches=branches, current=current, default=default, warning=warning)


async def _resolve_default_branch(
    repo: Path,
    by_identity: dict[str, BranchRef],
    runner: AsyncRunner,
    configured: str,
    executable: str,
) -> BranchRef | None:
    remote_head = await run_git(
        repo,
        ["symbolic-ref", "-q", "--short", "refs/remotes/origin/HEAD"],
        runner,
        executable=executable,
    )
    candidates: list[str] = []
    if remote_head.returncode == 0:
        value = remote_head.stdout.strip()
        if value.startswith("origin/"):
            candidates.append(value[len("origin/"):])
    if configured.strip():
        candidates.append(configured.strip())
    candidates.extend(_FALLBACK_DEFAULTS)

    for name in candidates:
        branch = by_identity.get(f"{_HEADS_PREFIX}{name}")
        if branch is not None:
            return branch
    return None
