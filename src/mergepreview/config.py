"""XDG config loading/saving."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from mergepreview.floor import MERGE_STATUS_FLOOR_SECONDS
from mergepreview.logging import LOG_LEVELS, normalize_level

DEFAULT_CONFIG_PATH = Path("~/.config/mergepreview/config.toml").expanduser()
CONFLICT_DETECTION_ENV = "MERGEPREVIEW_CONFLICT_DETECTION"
MAX_FLOOR_SECONDS = 10.0

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    conflict_detection_enabled: bool = True
    merge_status_floor_seconds: float = Field(
        default=MERGE_STATUS_FLOOR_SECONDS,
        ge=0.0,
        le=MAX_FLOOR_SECONDS,
    )
    default_branch: str = ""
    git_executable: str = "git"
    log_level: str = "INFO"

    @field_validator("git_executable")
    @classmethod
    def _validate_git_executable(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("git_executable must not be empty")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = normalize_level(value)
        if normalized not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}")
        return normalized


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def parse_flag(value: str) -> bool | None:
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    return None


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    conflict_detection = raw.get("conflict_detection_enabled", cfg.conflict_detection_enabled)
    if isinstance(conflict_detection, bool):
        cfg.conflict_detection_enabled = conflict_detection

    floor = raw.get("merge_status_floor_seconds", cfg.merge_status_floor_seconds)
    if (
        isinstance(floor, (int, float))
        and not isinstance(floor, bool)
        and 0.0 <= floor <= MAX_FLOOR_SECONDS
    ):
        cfg.merge_status_floor_seconds = float(floor)

    default_branch = raw.get("default_branch", cfg.default_branch)
    if isinstance(default_branch, str):
        cfg.default_branch = default_branch.strip()

    git_executable = raw.get("git_executable", cfg.git_executable)
    if isinstance(git_executable, str) and git_executable.strip():
        cfg.git_executable = git_executable

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str) and normalize_level(log_level) in LOG_LEVELS:
        cfg.log_level = log_level

    return cfg


def _apply_env(cfg: AppConfig) -> AppConfig:
    env_flag = parse_flag(os.getenv(CONFLICT_DETECTION_ENV, ""))
    if env_flag is not None:
        cfg.conflict_detection_enabled = env_flag
    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _apply_env(AppConfig())
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _apply_env(AppConfig())
    if not isinstance(raw, dict):
        return _apply_env(AppConfig())
    return _apply_env(_sanitize(raw))


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        f"conflict_detection_enabled = {_toml_scalar(config.conflict_detection_enabled)}",
        f"merge_status_floor_seconds = {_toml_scalar(float(config.merge_status_floor_seconds))}",
        f"default_branch = {_toml_scalar(config.default_branch)}",
        f"git_executable = {_toml_scalar(config.git_executable)}",
        f"log_level = {_toml_scalar(config.log_level)}",
    ]

    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved
