"""Pure search and position helpers over a forest of tabs."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator

from tabtree.models import TOP_LEVEL_COLUMNS, GroupTab, Position, Tab


def is_container(tab: Tab | None) -> bool:
    return isinstance(tab, GroupTab)


def find(forest: list[Tab], tab_id: str) -> Tab | None:
    """Depth-first lookup; the first match wins."""
    for tab in forest:
        if tab.id == tab_id:
            return tab
        if isinstance(tab, GroupTab):
            found = find(tab.children, tab_id)
            if found is not None:
                return found
    return None


def find_parent(forest: list[Tab], tab_id: str) -> GroupTab | None:
    """Return the group whose immediate children include ``tab_id``.

    Top-level tabs and unknown ids both yield ``None``.
    """
    for tab in forest:
        if not isinstance(tab, GroupTab):
            continue
        if any(child.id == tab_id for child in tab.children):
            return tab
        found = find_parent(tab.children, tab_id)
        if found is not None:
            return found
    return None


def recalculate(children: list[Tab], cols: int) -> list[Tab]:
    """Derive order/row/col from array position. Membership never changes."""
    if cols < 1:
        raise ValueError(f"Column count must be positive, got {cols}")
    for index, tab in enumerate(children):
        tab.position = Position(order=index, row=index // cols, col=index % cols)
    return children


def remove(forest: list[Tab], tab_id: str) -> bool:
    """Drop ``tab_id`` and its subtree.

    A removal inside a group recalculates that group's children before
    returning; groups further up keep their positions. Top-level lists are
    left for the caller to recalculate.
    """
    for index, tab in enumerate(forest):
        if tab.id == tab_id:
            del forest[index]
            return True

    for tab in forest:
        if not isinstance(tab, GroupTab):
            continue
        for index, child in enumerate(tab.children):
            if child.id == tab_id:
                del tab.children[index]
                recalculate(tab.children, tab.cols)
                return True
        if remove(tab.children, tab_id):
            return True
    return False


def iter_tabs(forest: list[Tab]) -> Iterator[Tab]:
    for tab in forest:
        yield tab
        if isinstance(tab, GroupTab):
            yield from iter_tabs(tab.children)


def contains(tab: Tab, tab_id: str) -> bool:
    """Whether ``tab_id`` is ``tab`` itself or anywhere below it."""
    if tab.id == tab_id:
        return True
    return isinstance(tab, GroupTab) and find(tab.children, tab_id) is not None


def _check_siblings(children: list[Tab], cols: int, label: str) -> list[str]:
    problems: list[str] = []
    for index, tab in enumerate(children):
        position = tab.position
        if position.order != index:
            problems.append(f"{label}: tab {tab.id} has order {position.order}, expected {index}")
        elif (position.row, position.col) != (index // cols, index % cols):
            problems.append(
                f"{label}: tab {tab.id} at ({position.row}, {position.col}), "
                f"expected ({index // cols}, {index % cols})"
            )
    return problems


def check_forest(forest: list[Tab], top_level_cols: int = TOP_LEVEL_COLUMNS) -> list[str]:
    """Describe every structural problem in ``forest``; empty means consistent."""
    problems: list[str] = []

    counts = Counter(tab.id for tab in iter_tabs(forest))
    for tab_id, count in sorted(counts.items()):
        if count > 1:
            problems.append(f"duplicate id {tab_id} appears {count} times")

    problems.extend(_check_siblings(forest, top_level_cols, "top level"))
    for tab in iter_tabs(forest):
        if isinstance(tab, GroupTab):
            problems.extend(_check_siblings(tab.children, tab.cols, f"group {tab.id}"))
    return problems
