"""Structural tab operations over a persisted workspace.

Every operation is one read-modify-write cycle against a :class:`ConfigStore`:
read the whole configuration, mutate a working copy of the workspace, stamp
``updated_at`` and write the configuration back. Validation happens before
any structural change and a failed operation never writes.
"""

from __future__ import annotations

import logging as py_logging
import threading
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field

from tabtree.config import AppConfig, resolve_store_path
from tabtree.errors import ErrorKind, TabTreeError
from tabtree.models import (
    DEFAULT_GRID_COLS,
    DEFAULT_GRID_ROWS,
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
    Worktree,
    utc_now,
)
from tabtree.store import ConfigStore, JsonConfigStore
from tabtree.tree import contains, find, find_parent, iter_tabs, recalculate, remove

logger = py_logging.getLogger(__name__)

Mutation = Callable[[Workspace], "Tab | None"]


class CreateTabInput(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    worktree_id: str
    name: str = ""
    kind: TabKind = TabKind.TERMINAL
    parent_tab_id: str | None = None
    command: str | None = None
    cwd: str | None = None
    rows: int | None = Field(default=None, ge=1)
    cols: int | None = Field(default=None, ge=1)
    row: int | None = Field(default=None, ge=0)
    col: int | None = Field(default=None, ge=0)
    row_span: int | None = Field(default=None, ge=1)
    col_span: int | None = Field(default=None, ge=1)


@dataclass
class TabOperationResult:
    success: bool
    error: str = ""
    error_kind: ErrorKind | None = None
    tab: Tab | None = None
    workspace: Workspace | None = None

    @classmethod
    def failed(cls, exc: TabTreeError) -> TabOperationResult:
        return cls(success=False, error=exc.message, error_kind=exc.kind)


def _require_worktree(workspace: Workspace, worktree_id: str) -> Worktree:
    worktree = workspace.find_worktree(worktree_id)
    if worktree is None:
        raise TabTreeError(
            f"Worktree not found: {worktree_id}",
            kind=ErrorKind.NOT_FOUND,
            hint="Select an existing worktree.",
        )
    return worktree


def _container(worktree: Worktree, parent_tab_id: str | None, *, role: str = "Parent") -> tuple[list[Tab], int]:
    """Resolve a sibling list and its column count.

    ``None`` selects the worktree's top-level list.
    """
    if not parent_tab_id:
        return worktree.tabs, TOP_LEVEL_COLUMNS
    parent = find(worktree.tabs, parent_tab_id)
    if not isinstance(parent, GroupTab):
        raise TabTreeError(
            f"{role} tab not found or not a group: {parent_tab_id}",
            kind=ErrorKind.INVALID_PARENT,
            hint="Only group tabs can hold other tabs.",
        )
    return parent.children, parent.cols


def _derived(index: int, cols: int) -> Position:
    return Position(order=index, row=index // cols, col=index % cols)


class TabTreeEngine:
    def __init__(
        self,
        store: ConfigStore,
        *,
        default_rows: int = DEFAULT_GRID_ROWS,
        default_cols: int = DEFAULT_GRID_COLS,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.default_rows = default_rows
        self.default_cols = default_cols
        self._clock = clock or utc_now
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        # Guards the whole read-modify-write cycle on the shared document.
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AppConfig) -> TabTreeEngine:
        return cls(
            JsonConfigStore(resolve_store_path(config)),
            default_rows=config.default_group_rows,
            default_cols=config.default_group_cols,
        )

    def create_tab(self, workspace: Workspace, request: CreateTabInput) -> TabOperationResult:
        def mutation(working: Workspace) -> Tab:
            worktree = _require_worktree(working, request.worktree_id)
            siblings, cols = _container(worktree, request.parent_tab_id)
            tab = self._build_tab(working, request)
            if request.parent_tab_id and request.row is not None and request.col is not None:
                # Explicit placement may leave gaps; callers reorder to compact.
                tab.position = Position(
                    order=request.row * cols + request.col,
                    row=request.row,
                    col=request.col,
                )
            else:
                tab.position = _derived(len(siblings), cols)
            siblings.append(tab)
            return tab

        return self._execute("create", workspace, mutation)

    def delete_tab(self, workspace: Workspace, *, worktree_id: str, tab_id: str) -> TabOperationResult:
        def mutation(working: Workspace) -> None:
            worktree = _require_worktree(working, worktree_id)
            target = find(worktree.tabs, tab_id)
            if target is None:
                raise TabTreeError(f"Tab not found: {tab_id}", kind=ErrorKind.NOT_FOUND)
            removed_ids = {tab.id for tab in iter_tabs([target])}
            top_level = find_parent(worktree.tabs, tab_id) is None

            remove(worktree.tabs, tab_id)
            if top_level:
                recalculate(worktree.tabs, TOP_LEVEL_COLUMNS)
            if working.active_tab_id in removed_ids:
                working.active_tab_id = None
            return None

        return self._execute("delete", workspace, mutation, target=tab_id)

    def reorder_tabs(
        self,
        workspace: Workspace,
        *,
        worktree_id: str,
        tab_ids: Sequence[str],
        parent_tab_id: str | None = None,
    ) -> TabOperationResult:
        def mutation(working: Workspace) -> None:
            worktree = _require_worktree(working, worktree_id)
            siblings, cols = _container(worktree, parent_tab_id)
            by_id = {tab.id: tab for tab in siblings}
            reordered = [by_id[tab_id] for tab_id in tab_ids if tab_id in by_id]
            distinct = {tab.id for tab in reordered}
            if len(reordered) != len(siblings) or len(distinct) != len(siblings):
                raise TabTreeError(
                    f"Tab count mismatch during reorder: got {len(reordered)} known ids "
                    f"({len(distinct)} distinct) for {len(siblings)} tabs",
                    kind=ErrorKind.COUNT_MISMATCH,
                    hint="Pass every sibling id exactly once.",
                )
            siblings[:] = reordered
            recalculate(siblings, cols)
            return None

        return self._execute("reorder", workspace, mutation, target=parent_tab_id or "<top>")

    def move_tab(
        self,
        workspace: Workspace,
        *,
        worktree_id: str,
        tab_id: str,
        target_index: int,
        source_parent_tab_id: str | None = None,
        target_parent_tab_id: str | None = None,
    ) -> TabOperationResult:
        def mutation(working: Workspace) -> None:
            worktree = _require_worktree(working, worktree_id)
            source, source_cols = _container(worktree, source_parent_tab_id, role="Source parent")
            target, target_cols = _container(worktree, target_parent_tab_id, role="Target parent")

            index = next((i for i, tab in enumerate(source) if tab.id == tab_id), None)
            if index is None:
                raise TabTreeError(f"Tab not found in source: {tab_id}", kind=ErrorKind.NOT_FOUND)
            if target_parent_tab_id and contains(source[index], target_parent_tab_id):
                raise TabTreeError(
                    f"Cannot move tab {tab_id} into itself or one of its descendants",
                    kind=ErrorKind.INVALID_PARENT,
                )

            moving = source.pop(index)
            target.insert(min(max(target_index, 0), len(target)), moving)
            recalculate(source, source_cols)
            if target is not source:
                recalculate(target, target_cols)
            return None

        return self._execute("move", workspace, mutation, target=tab_id)

    def update_tab_grid_sizes(
        self,
        workspace: Workspace,
        *,
        worktree_id: str,
        tab_id: str,
        row_sizes: Sequence[float] | None = None,
        col_sizes: Sequence[float] | None = None,
    ) -> TabOperationResult:
        def mutation(working: Workspace) -> None:
            worktree = _require_worktree(working, worktree_id)
            tab = find(worktree.tabs, tab_id)
            if tab is None:
                raise TabTreeError(f"Tab not found: {tab_id}", kind=ErrorKind.NOT_FOUND)
            if not isinstance(tab, GroupTab):
                raise TabTreeError(f"Tab is not a group: {tab_id}", kind=ErrorKind.NOT_A_CONTAINER)
            weights = tab.cell_weights or CellWeights()
            if row_sizes is not None:
                weights.row_weights = [float(value) for value in row_sizes]
            if col_sizes is not None:
                weights.col_weights = [float(value) for value in col_sizes]
            tab.cell_weights = weights
            return None

        return self._execute("resize", workspace, mutation, target=tab_id)

    def update_terminal_cwd(self, workspace: Workspace, *, worktree_id: str, tab_id: str, cwd: str) -> bool:
        def mutation(working: Workspace) -> None:
            worktree = _require_worktree(working, worktree_id)
            tab = find(worktree.tabs, tab_id)
            if not isinstance(tab, LeafTab) or tab.kind != TabKind.TERMINAL.value:
                raise TabTreeError(f"Terminal tab not found: {tab_id}", kind=ErrorKind.NOT_FOUND)
            tab.cwd = cwd
            return None

        return self._execute("set-cwd", workspace, mutation, target=tab_id).success

    def _build_tab(self, working: Workspace, request: CreateTabInput) -> Tab:
        tab_id = self._id_factory()
        if any(tab.id == tab_id for worktree in working.worktrees for tab in iter_tabs(worktree.tabs)):
            raise TabTreeError(f"Generated tab id already in use: {tab_id}")
        span = Span(row_span=request.row_span or 1, col_span=request.col_span or 1)
        created_at = self._clock()

        if request.kind is TabKind.GROUP:
            return GroupTab(
                id=tab_id,
                name=request.name,
                span=span,
                created_at=created_at,
                grid_shape=GridShape(
                    rows=request.rows or self.default_rows,
                    cols=request.cols or self.default_cols,
                ),
            )
        tab = LeafTab(id=tab_id, name=request.name, kind=request.kind.value, span=span, created_at=created_at)
        if request.kind is TabKind.TERMINAL:
            tab.command = request.command
            tab.cwd = request.cwd
        return tab

    def _next_timestamp(self, previous: datetime) -> datetime:
        if previous.tzinfo is None:
            previous = previous.replace(tzinfo=timezone.utc)
        now = self._clock()
        if now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def _commit(self, workspace: Workspace, mutation: Mutation) -> tuple[Workspace, Tab | None]:
        with self._lock:
            config = self.store.read()
            index = config.index_of(workspace.id)
            if index is None:
                working = workspace.model_copy(deep=True)
            else:
                working = config.workspaces[index]

            tab = mutation(working)
            working.updated_at = self._next_timestamp(working.updated_at)

            if index is None:
                logger.warning("Workspace %s is not in the store; change was not persisted", workspace.id)
            else:
                self.store.write(config)
            return working, tab

    def _execute(
        self,
        operation: str,
        workspace: Workspace,
        mutation: Mutation,
        *,
        target: str = "-",
    ) -> TabOperationResult:
        try:
            updated, tab = self._commit(workspace, mutation)
        except TabTreeError as exc:
            if exc.kind is ErrorKind.UNEXPECTED:
                logger.error("tab-op op=%s workspace=%s failed: %s", operation, workspace.id, exc)
            else:
                logger.warning(
                    "tab-op op=%s workspace=%s tab=%s rejected kind=%s: %s",
                    operation,
                    workspace.id,
                    target,
                    exc.kind.value,
                    exc.message,
                )
            return TabOperationResult.failed(exc)
        except Exception as exc:
            logger.exception("tab-op op=%s workspace=%s unexpected failure", operation, workspace.id)
            return TabOperationResult(
                success=False,
                error=str(exc) or exc.__class__.__name__,
                error_kind=ErrorKind.UNEXPECTED,
            )

        if tab is not None:
            target = tab.id
        logger.info("tab-op op=%s workspace=%s tab=%s", operation, workspace.id, target)
        return TabOperationResult(
            success=True,
            tab=tab.model_copy(deep=True) if tab is not None else None,
            workspace=updated,
        )
