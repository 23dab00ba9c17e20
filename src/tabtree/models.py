"""Workspace, worktree and tab models persisted by the layout store."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Worktree top-level tabs are not rendered as a grid, but their positions are
# still derived against this column count.
TOP_LEVEL_COLUMNS = 2
DEFAULT_GRID_ROWS = 2
DEFAULT_GRID_COLS = 2

_STRUCTURAL_KEYS = frozenset({"children", "gridShape", "grid_shape", "cellWeights", "cell_weights"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TabKind(str, Enum):
    TERMINAL = "terminal"
    EDITOR = "editor"
    BROWSER = "browser"
    PREVIEW = "preview"
    GROUP = "group"


LEAF_KINDS = frozenset(kind for kind in TabKind if kind is not TabKind.GROUP)


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, ser_json_inf_nan="constants")


class Position(_Model):
    order: int = Field(default=0, ge=0)
    row: int = Field(default=0, ge=0)
    col: int = Field(default=0, ge=0)


class Span(_Model):
    row_span: int = Field(default=1, ge=1)
    col_span: int = Field(default=1, ge=1)


class GridShape(_Model):
    rows: int = Field(default=DEFAULT_GRID_ROWS, ge=1)
    cols: int = Field(default=DEFAULT_GRID_COLS, ge=1)


class CellWeights(_Model):
    row_weights: list[float] = Field(default_factory=list)
    col_weights: list[float] = Field(default_factory=list)


class _TabRecord(_Model):
    id: str
    name: str = ""
    position: Position = Field(default_factory=Position)
    span: Span = Field(default_factory=Span)
    created_at: datetime = Field(default_factory=utc_now)


class LeafTab(_TabRecord):
    """Content pane. Unknown fields are kept as opaque kind-specific payload."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["terminal", "editor", "browser", "preview"] = "terminal"
    command: str | None = None
    cwd: str | None = None

    @model_validator(mode="after")
    def _reject_container_fields(self) -> LeafTab:
        extra = set(self.model_extra or {})
        offending = sorted(extra & _STRUCTURAL_KEYS)
        if offending:
            raise ValueError(f"{self.kind} tab {self.id} cannot carry {', '.join(offending)}")
        return self


class GroupTab(_TabRecord):
    kind: Literal["group"] = "group"
    children: list[Tab] = Field(default_factory=list)
    grid_shape: GridShape = Field(default_factory=GridShape)
    cell_weights: CellWeights | None = None

    @property
    def cols(self) -> int:
        return self.grid_shape.cols


Tab = Annotated[Union[LeafTab, GroupTab], Field(discriminator="kind")]

GroupTab.model_rebuild()


class Worktree(_Model):
    id: str
    branch: str = ""
    path: str = ""
    tabs: list[Tab] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


class Workspace(_Model):
    id: str
    name: str = ""
    repo_path: str = ""
    branch: str = ""
    worktrees: list[Worktree] = Field(default_factory=list)
    active_worktree_id: str | None = None
    active_tab_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def find_worktree(self, worktree_id: str) -> Worktree | None:
        for worktree in self.worktrees:
            if worktree.id == worktree_id:
                return worktree
        return None


class WorkspaceConfig(_Model):
    workspaces: list[Workspace] = Field(default_factory=list)
    last_opened_workspace_id: str | None = None
    active_workspace_id: str | None = None

    def index_of(self, workspace_id: str) -> int | None:
        for index, workspace in enumerate(self.workspaces):
            if workspace.id == workspace_id:
                return index
        return None

    def find_workspace(self, workspace_id: str) -> Workspace | None:
        index = self.index_of(workspace_id)
        return None if index is None else self.workspaces[index]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
