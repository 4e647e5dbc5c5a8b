"""Async git subprocess runner."""

from __future__ import annotations

import asyncio
import logging as py_logging
import subprocess
from collections.abc import Awaitable, Callable
from pathlib import Path

from mergepreview.errors import ExitCode, GitCommandError

logger = py_logging.getLogger(__name__)

AsyncRunner = Callable[[list[str]], Awaitable["subprocess.CompletedProcess[str]"]]


async def run_subprocess(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    """Run ``cmd`` without a shell and capture decoded output."""
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return subprocess.CompletedProcess(
        args=cmd,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def git_command(repo: Path, args: list[str], *, executable: str = "git") -> list[str]:
    return [executable, "-C", str(repo), *args]


async def run_git(
    repo: Path,
    args: list[str],
    runner: AsyncRunner = run_subprocess,
    *,
    executable: str = "git",
) -> subprocess.CompletedProcess[str]:
    cmd = git_command(repo, args, executable=executable)
    logger.debug("Running git repo=%s args=%s", repo, " ".join(args))
    try:
        return await runner(cmd)
    except FileNotFoundError as exc:
        logger.error("git executable not found executable=%s", executable)
        raise GitCommandError(
            f"git executable not found: {executable}",
            code=ExitCode.GIT_ERROR,
            hint="Install git or set git_executable in the config file.",
        ) from exc
    except OSError as exc:
        logger.error("git executable could not be started executable=%s error=%s", executable, exc)
        raise GitCommandError(
            f"git executable could not be started: {executable} ({exc})",
            code=ExitCode.GIT_ERROR,
            hint="Check that git_executable in the config file points to a runnable git.",
        ) from exc
