from __future__ import annotations

import itertools

from hypothesis import given, settings
from hypothesis import strategies as st

from tabtree.engine import CreateTabInput, TabTreeEngine
from tabtree.models import GroupTab, LeafTab, Tab, Workspace, WorkspaceConfig, Worktree
from tabtree.store import MemoryConfigStore
from tabtree.tree import check_forest, find, find_parent, iter_tabs, recalculate

_ACTIONS = st.sampled_from(["leaf", "group", "delete", "move", "reorder"])
_STEPS = st.lists(
    st.tuples(_ACTIONS, st.integers(0, 64), st.integers(0, 64), st.integers(-3, 12)),
    max_size=40,
)


def _fresh_engine() -> tuple[TabTreeEngine, MemoryConfigStore, Workspace]:
    workspace = Workspace(id="ws1", worktrees=[Worktree(id="wt1")])
    store = MemoryConfigStore(WorkspaceConfig(workspaces=[workspace]))
    counter = itertools.count(1)
    return TabTreeEngine(store, id_factory=lambda: f"t{next(counter)}"), store, workspace


def _tabs(store: MemoryConfigStore) -> list[Tab]:
    return store.read().workspaces[0].worktrees[0].tabs


def _pick(values: list[str], seed: int) -> str | None:
    return values[seed % len(values)] if values else None


def _apply(engine: TabTreeEngine, workspace: Workspace, tabs: list[Tab], step: tuple[str, int, int, int]) -> None:
    action, first, second, index = step
    all_ids = [tab.id for tab in iter_tabs(tabs)]
    group_ids = [tab.id for tab in iter_tabs(tabs) if isinstance(tab, GroupTab)]
    parent = _pick(group_ids, first) if second % 2 else None

    if action == "leaf":
        engine.create_tab(workspace, CreateTabInput(worktree_id="wt1", parent_tab_id=parent))
    elif action == "group":
        engine.create_tab(
            workspace,
            CreateTabInput(worktree_id="wt1", kind="group", parent_tab_id=parent, cols=second % 3 + 1),
        )
    elif action == "delete" and all_ids:
        engine.delete_tab(workspace, worktree_id="wt1", tab_id=_pick(all_ids, first))
    elif action == "move" and all_ids:
        tab_id = _pick(all_ids, first)
        source = find_parent(tabs, tab_id)
        engine.move_tab(
            workspace,
            worktree_id="wt1",
            tab_id=tab_id,
            source_parent_tab_id=source.id if source else None,
            target_parent_tab_id=parent,
            target_index=index,
        )
    elif action == "reorder":
        container = find(tabs, parent) if parent else None
        siblings = container.children if isinstance(container, GroupTab) else tabs
        ids = [tab.id for tab in siblings]
        if ids:
            shift = second % len(ids)
            ids = ids[shift:] + ids[:shift]
        engine.reorder_tabs(workspace, worktree_id="wt1", parent_tab_id=parent, tab_ids=ids)


@settings(max_examples=75, deadline=None)
@given(_STEPS)
def test_random_edit_sequences_keep_layout_consistent(steps: list[tuple[str, int, int, int]]) -> None:
    engine, store, workspace = _fresh_engine()

    for step in steps:
        _apply(engine, workspace, _tabs(store), step)
        assert check_forest(_tabs(store)) == []


@settings(max_examples=75, deadline=None)
@given(_STEPS, st.integers(0, 64), st.integers(-3, 12))
def test_move_between_groups_preserves_count_and_payload(
    steps: list[tuple[str, int, int, int]], seed: int, index: int
) -> None:
    engine, store, workspace = _fresh_engine()
    for step in steps:
        _apply(engine, workspace, _tabs(store), step)
    for _ in range(2):
        engine.create_tab(workspace, CreateTabInput(worktree_id="wt1", kind="group"))
    tabs = _tabs(store)
    source, target = [tab for tab in tabs if isinstance(tab, GroupTab)][-2:]
    engine.create_tab(workspace, CreateTabInput(worktree_id="wt1", parent_tab_id=source.id, cwd="/w"))
    tabs = _tabs(store)
    source = find(tabs, source.id)
    moving = source.children[seed % len(source.children)]
    before_total = len(source.children) + len(target.children)
    before_payload = moving.model_dump(exclude={"position"})

    result = engine.move_tab(
        workspace,
        worktree_id="wt1",
        tab_id=moving.id,
        source_parent_tab_id=source.id,
        target_parent_tab_id=target.id,
        target_index=index,
    )

    assert result.success, result.error
    tabs = _tabs(store)
    after_source = find(tabs, source.id)
    after_target = find(tabs, target.id)
    assert len(after_source.children) + len(after_target.children) == before_total
    assert find(after_target.children, moving.id).model_dump(exclude={"position"}) == before_payload


@settings(max_examples=75, deadline=None)
@given(_STEPS, st.integers(0, 64))
def test_delete_removes_exactly_the_subtree(steps: list[tuple[str, int, int, int]], seed: int) -> None:
    engine, store, workspace = _fresh_engine()
    for step in steps:
        _apply(engine, workspace, _tabs(store), step)
    tabs = _tabs(store)
    all_ids = [tab.id for tab in iter_tabs(tabs)]
    if not all_ids:
        return
    victim = find(tabs, _pick(all_ids, seed))
    doomed = {tab.id for tab in iter_tabs([victim])}

    engine.delete_tab(workspace, worktree_id="wt1", tab_id=victim.id)

    remaining = {tab.id for tab in iter_tabs(_tabs(store))}
    assert remaining == set(all_ids) - doomed


@given(st.integers(0, 30), st.integers(1, 6))
def test_recalculate_is_idempotent_and_contiguous(count: int, cols: int) -> None:
    tabs: list[Tab] = [LeafTab(id=f"t{index}") for index in range(count)]

    once = [tab.position.model_copy() for tab in recalculate(tabs, cols)]
    twice = [tab.position for tab in recalculate(tabs, cols)]

    assert once == twice
    assert [position.order for position in twice] == list(range(count))
    assert all(position.row * cols + position.col == position.order for position in twice)
