"""XDG settings loading/saving."""

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

from tabtree.logging import normalize_level
from tabtree.models import DEFAULT_GRID_COLS, DEFAULT_GRID_ROWS
from tabtree.store import DEFAULT_STORE_PATH

DEFAULT_CONFIG_PATH = Path("~/.config/tabtree/config.toml").expanduser()
DEFAULT_LOG_LEVEL = "INFO"
STORE_PATH_ENV = "TABTREE_STORE_PATH"
GRID_DIMENSION_MIN = 1
GRID_DIMENSION_MAX = 12


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    store_path: str = ""
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str = ""
    default_group_rows: int = Field(default=DEFAULT_GRID_ROWS, ge=GRID_DIMENSION_MIN, le=GRID_DIMENSION_MAX)
    default_group_cols: int = Field(default=DEFAULT_GRID_COLS, ge=GRID_DIMENSION_MIN, le=GRID_DIMENSION_MAX)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = normalize_level(value)
        if not normalized:
            raise ValueError(f"Invalid log level: {value}")
        return normalized


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def resolve_store_path(config: AppConfig) -> Path:
    if config.store_path.strip():
        return Path(config.store_path.strip()).expanduser()
    return DEFAULT_STORE_PATH.expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _grid_dimension(value: object, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return fallback
    if GRID_DIMENSION_MIN <= value <= GRID_DIMENSION_MAX:
        return value
    return fallback


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    store_path = raw.get("store_path", cfg.store_path)
    if isinstance(store_path, str):
        cfg.store_path = store_path
    env_store = os.getenv(STORE_PATH_ENV, "").strip()
    if env_store:
        cfg.store_path = env_store

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str) and normalize_level(log_level):
        cfg.log_level = log_level

    log_file = raw.get("log_file", cfg.log_file)
    if isinstance(log_file, str):
        cfg.log_file = log_file

    cfg.default_group_rows = _grid_dimension(raw.get("default_group_rows"), cfg.default_group_rows)
    cfg.default_group_cols = _grid_dimension(raw.get("default_group_cols"), cfg.default_group_cols)
    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _sanitize({})
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _sanitize({})
    return _sanitize(raw)


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        f"store_path = {_toml_scalar(config.store_path)}",
        f"log_level = {_toml_scalar(config.log_level)}",
        f"log_file = {_toml_scalar(config.log_file)}",
        f"default_group_rows = {_toml_scalar(config.default_group_rows)}",
        f"default_group_cols = {_toml_scalar(config.default_group_cols)}",
    ]
    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved
