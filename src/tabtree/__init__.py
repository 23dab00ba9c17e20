"""Persisted tab layout trees for workspaces."""

from .engine import CreateTabInput, TabOperationResult, TabTreeEngine
from .errors import ErrorKind, ExitCode, TabTreeError
from .models import (
    TOP_LEVEL_COLUMNS,
    CellWeights,
    GridShape,
    GroupTab,
    LeafTab,
    Position,
    Span,
    Tab,
    TabKind,
    Workspace,
    WorkspaceConfig,
    Worktree,
)
from .store import ConfigStore, JsonConfigStore, MemoryConfigStore

__all__ = [
    "CellWeights",
    "ConfigStore",
    "CreateTabInput",
    "ErrorKind",
    "ExitCode",
    "GridShape",
    "GroupTab",
    "JsonConfigStore",
    "LeafTab",
    "MemoryConfigStore",
    "Position",
    "Span",
    "Tab",
    "TabKind",
    "TabOperationResult",
    "TabTreeEngine",
    "TabTreeError",
    "TOP_LEVEL_COLUMNS",
    "Workspace",
    "WorkspaceConfig",
    "Worktree",
]
