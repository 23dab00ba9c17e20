from __future__ import annotations

import itertools
from collections.abc import Callable
from pathlib import Path

import pytest

from tabtree.engine import TabTreeEngine
from tabtree.models import TOP_LEVEL_COLUMNS, GridShape, GroupTab, LeafTab, Tab, Workspace, Worktree
from tabtree.store import MemoryConfigStore
from tabtree.tree import recalculate


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))

        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)

        if "property" in path.parts:
            item.add_marker(pytest.mark.property)


@pytest.fixture
def leaf() -> Callable[..., LeafTab]:
    def build(tab_id: str, kind: str = "terminal", **payload: object) -> LeafTab:
        return LeafTab(id=tab_id, name=tab_id.upper(), kind=kind, **payload)

    return build


@pytest.fixture
def group() -> Callable[..., GroupTab]:
    def build(tab_id: str, children: list[Tab] | None = None, *, rows: int = 2, cols: int = 2) -> GroupTab:
        items = list(children or [])
        recalculate(items, cols)
        return GroupTab(
            id=tab_id,
            name=tab_id.upper(),
            children=items,
            grid_shape=GridShape(rows=rows, cols=cols),
        )

    return build


@pytest.fixture
def store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture
def engine(store: MemoryConfigStore) -> TabTreeEngine:
    counter = itertools.count(1)
    return TabTreeEngine(store, id_factory=lambda: f"new-{next(counter)}")


@pytest.fixture
def seed(store: MemoryConfigStore) -> Callable[..., Workspace]:
    """Persist a one-worktree workspace and return the caller's copy of it."""

    def build(tabs: list[Tab] | None = None, *, workspace_id: str = "ws1") -> Workspace:
        top_level = list(tabs or [])
        recalculate(top_level, TOP_LEVEL_COLUMNS)
        workspace = Workspace(
            id=workspace_id,
            name="demo",
            repo_path="/repo",
            branch="main",
            worktrees=[Worktree(id="wt1", branch="main", path="/repo", tabs=top_level)],
            active_worktree_id="wt1",
        )
        config = store.read()
        config.workspaces.append(workspace)
        config.active_workspace_id = workspace_id
        store.write(config)
        store.write_count = 0
        return workspace.model_copy(deep=True)

    return build


@pytest.fixture
def stored_tabs(store: MemoryConfigStore) -> Callable[..., list[Tab]]:
    def read(workspace_id: str = "ws1", worktree_id: str = "wt1") -> list[Tab]:
        workspace = store.read().find_workspace(workspace_id)
        assert workspace is not None
        worktree = workspace.find_worktree(worktree_id)
        assert worktree is not None
        return worktree.tabs

    return read
