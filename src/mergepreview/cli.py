"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging as py_logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from .config import MAX_FLOOR_SECONDS, AppConfig, load_config
from .controller import SelectionController
from .errors import ExitCode, MergePreviewError, user_facing_error
from .git import AsyncRunner, GitGateway, list_branches, run_subprocess
from .logging import configure_logging, default_log_path, normalize_level
from .models import BranchRef, Clean, Conflicted, Loading, Repository, SelectionState
from .resolver import MergeStatusResolver

logger = py_logging.getLogger(__name__)

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _floor_type(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--floor must be a number of seconds") from exc
    if seconds < 0 or seconds > MAX_FLOOR_SECONDS:
        raise argparse.ArgumentTypeError(f"--floor must be between 0 and {MAX_FLOOR_SECONDS:g}")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mergepreview",
        description="Preview merging a branch into the current branch.",
    )
    parser.add_argument("--repo", type=Path, default=Path("."))
    parser.add_argument("--branch", default=None, help="Branch to merge (defaults to the default branch)")
    parser.add_argument("--merge", action="store_true", help="Run the merge when the preview allows it")
    parser.add_argument("--no-conflict-detection", action="store_true")
    parser.add_argument("--floor", type=_floor_type, default=None, help="Minimum merge status delay in seconds")
    parser.add_argument("--json", action="store_true", help="Print the resolved preview as JSON")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def describe_preview(
    state: SelectionState,
    current_branch: BranchRef | None,
    *,
    conflict_detection: bool = True,
) -> str:
    """One-line summary of the preview, worded like the merge dialog."""
    selected = state.selected_branch
    if selected is None or current_branch is None:
        return "No branch selected."
    if current_branch.name == selected.name:
        return f"{selected.name} is already checked out."

    count = state.commit_count
    if not conflict_detection:
        if count == 0:
            return "Nothing to merge."
        commits = "commits" if count is None else _plural(count, "commit")
        return f"This will bring in {commits} from {selected.name}."

    result = state.preview()
    if result is None or isinstance(result, Loading):
        return "Checking for ability to merge automatically..."
    if isinstance(result, Clean):
        if count:
            return f"This will merge {_plural(count, 'commit')} from {selected.name} into {current_branch.name}."
        return "Nothing to merge." if count == 0 else "No conflicts found."
    if isinstance(result, Conflicted):
        files = _plural(result.conflicted_file_count, "conflicted file")
        return f"There will be {files} when merging {selected.name} into {current_branch.name}."
    return f"Unable to determine whether {selected.name} merges cleanly into {current_branch.name}."


async def run_preview(
    namespace: argparse.Namespace,
    *,
    config: AppConfig,
    runner: AsyncRunner = run_subprocess,
    stdout: TextIO | None = None,
) -> int:
    out = stdout or sys.stdout
    repository = Repository(path=namespace.repo.expanduser().resolve())
    gateway = GitGateway(runner=runner, executable=config.git_executable)

    listing = await list_branches(
        repository,
        runner,
        default_branch=config.default_branch,
        executable=config.git_executable,
    )
    if listing.warning:
        print(listing.warning, file=sys.stderr)

    override: BranchRef | None = None
    if namespace.branch:
        override = listing.find(namespace.branch)
        if override is None:
            raise MergePreviewError(
                f"Unknown branch: {namespace.branch}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Run `git branch` to list local branches.",
            )

    conflict_detection = config.conflict_detection_enabled and not namespace.no_conflict_detection
    floor = namespace.floor if namespace.floor is not None else config.merge_status_floor_seconds
    resolver = MergeStatusResolver(
        gateway,
        conflict_detection_enabled=lambda: conflict_detection,
        floor_seconds=floor,
    )
    controller = SelectionController(
        repository,
        gateway,
        resolver,
        current_branch=listing.current,
        default_branch=listing.default,
        initial_branch=override,
        on_dismiss=lambda: logger.debug("Merge submitted; closing preview"),
    )
    try:
        controller.open()
        await controller.wait_idle()
        state = controller.state
        if namespace.json:
            payload: dict[str, object] = dict(state.to_dict())
            payload["current_branch"] = listing.current.name if listing.current else None
            payload["can_merge"] = controller.can_submit_merge()
            print(json.dumps(payload, sort_keys=True), file=out)
        else:
            print(describe_preview(state, listing.current, conflict_detection=conflict_detection), file=out)
            if state.evaluation_error:
                print(f"Warning: {state.evaluation_error}", file=sys.stderr)

        if namespace.merge:
            await controller.submit_merge()
            selected = controller.state.selected_branch
            current = listing.current
            if selected is not None and current is not None:
                print(f"Merged {selected.name} into {current.name}.", file=out)
    finally:
        controller.close()
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    runner: AsyncRunner | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    config = load_config(namespace.config)
    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    level = namespace.log_level or config.log_level
    logger = configure_logging(level=level, log_file=log_path)

    try:
        logger.debug("Starting merge preview repo=%s branch=%s", namespace.repo, namespace.branch)
        return asyncio.run(run_preview(namespace, config=config, runner=runner or run_subprocess))
    except MergePreviewError as exc:
        logger.error(
            "Handled MergePreviewError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        hint = f"Inspect logs: {log_path}"
        print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)

