"""Full-document workspace configuration stores."""

from __future__ import annotations

import logging as py_logging
import os
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from tabtree.errors import ErrorKind, TabTreeError
from tabtree.models import WorkspaceConfig

logger = py_logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path("~/.config/tabtree/workspaces.json")


class ConfigStore(Protocol):
    def read(self) -> WorkspaceConfig: ...

    def write(self, config: WorkspaceConfig) -> None: ...


class JsonConfigStore:
    """Stores the whole configuration as one JSON document on disk.

    A missing file reads as an empty configuration. A file that exists but
    cannot be parsed is reported instead of being replaced, so a later write
    never discards layouts the user still has on disk.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path if path is not None else DEFAULT_STORE_PATH).expanduser()

    def read(self) -> WorkspaceConfig:
        if not self.path.exists():
            logger.debug("Store file missing path=%s; starting empty", self.path)
            return WorkspaceConfig()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TabTreeError(
                f"Cannot read workspace store {self.path}: {exc}",
                kind=ErrorKind.UNEXPECTED,
                hint="Check file permissions.",
            ) from exc
        except UnicodeDecodeError as exc:
            raise TabTreeError(
                f"Workspace store {self.path} is not valid UTF-8",
                kind=ErrorKind.UNEXPECTED,
                hint="Restore the file from a backup or move it aside.",
            ) from exc
        if not raw.strip():
            return WorkspaceConfig()
        try:
            return WorkspaceConfig.model_validate_json(raw)
        except ValidationError as exc:
            raise TabTreeError(
                f"Workspace store {self.path} is not a valid layout document",
                kind=ErrorKind.UNEXPECTED,
                hint="Restore the file from a backup or move it aside.",
            ) from exc

    def write(self, config: WorkspaceConfig) -> None:
        payload = config.to_json() + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=".workspaces-", suffix=".tmp", dir=self.path.parent)
        except OSError as exc:
            raise TabTreeError(
                f"Cannot write workspace store {self.path}: {exc}",
                kind=ErrorKind.UNEXPECTED,
            ) from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(temp_path, self.path)
        except OSError as exc:
            with suppress(OSError):
                os.unlink(temp_path)
            raise TabTreeError(
                f"Cannot write workspace store {self.path}: {exc}",
                kind=ErrorKind.UNEXPECTED,
            ) from exc
        with suppress(OSError):
            self.path.chmod(0o600)
        logger.debug("Store written path=%s workspaces=%s", self.path, len(config.workspaces))


class MemoryConfigStore:
    """In-process store; reads and writes copy so callers never share state."""

    def __init__(self, config: WorkspaceConfig | None = None) -> None:
        self._config = (config or WorkspaceConfig()).model_copy(deep=True)
        self.write_count = 0

    def read(self) -> WorkspaceConfig:
        return self._config.model_copy(deep=True)

    def write(self, config: WorkspaceConfig) -> None:
        self._config = config.model_copy(deep=True)
        self.write_count += 1
