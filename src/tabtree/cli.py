"""Command line front end over the tab tree engine."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from .config import AppConfig, load_config
from .engine import CreateTabInput, TabOperationResult, TabTreeEngine
from .errors import ErrorKind, ExitCode, TabTreeError, exit_code_for, user_facing_error
from .logging import configure_logging, default_log_path, normalize_level
from .models import TOP_LEVEL_COLUMNS, GroupTab, Tab, TabKind, Workspace, WorkspaceConfig
from .store import ConfigStore, JsonConfigStore
from .tree import check_forest

_VALID_KINDS = tuple(kind.value for kind in TabKind)


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if not normalized:
        raise argparse.ArgumentTypeError("--log-level must be one of: DEBUG, INFO, WARN, ERROR")
    return normalized


def _non_negative(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {number}")
    return number


def _positive(value: str) -> int:
    number = _non_negative(value)
    if number < 1:
        raise argparse.ArgumentTypeError("expected a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tabtree")
    parser.add_argument("--config", type=Path, default=None, help="Settings TOML file")
    parser.add_argument("--store", type=Path, default=None, help="Workspace JSON document")
    parser.add_argument("--workspace", default=None, help="Workspace id (defaults to the active one)")
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("show", help="Print the tab tree of every worktree")
    commands.add_parser("check", help="Report structural problems in the stored layout")

    create = commands.add_parser("create", help="Create a tab")
    create.add_argument("--worktree", required=True)
    create.add_argument("--name", default="")
    create.add_argument("--kind", choices=_VALID_KINDS, default=TabKind.TERMINAL.value)
    create.add_argument("--parent", default=None)
    create.add_argument("--command", dest="tab_command", default=None)
    create.add_argument("--cwd", default=None)
    create.add_argument("--rows", type=_positive, default=None)
    create.add_argument("--cols", type=_positive, default=None)
    create.add_argument("--row", type=_non_negative, default=None)
    create.add_argument("--col", type=_non_negative, default=None)
    create.add_argument("--row-span", type=_positive, default=None)
    create.add_argument("--col-span", type=_positive, default=None)

    delete = commands.add_parser("delete", help="Delete a tab and everything inside it")
    delete.add_argument("--worktree", required=True)
    delete.add_argument("tab")

    reorder = commands.add_parser("reorder", help="Set the full sibling order")
    reorder.add_argument("--worktree", required=True)
    reorder.add_argument("--parent", default=None)
    reorder.add_argument("tabs", nargs="+")

    move = commands.add_parser("move", help="Move a tab between sibling lists")
    move.add_argument("--worktree", required=True)
    move.add_argument("--source", default=None)
    move.add_argument("--target", default=None)
    move.add_argument("--index", type=int, required=True)
    move.add_argument("tab")

    resize = commands.add_parser("resize", help="Set row/column weights of a group")
    resize.add_argument("--worktree", required=True)
    resize.add_argument("--row-sizes", type=float, nargs="+", default=None)
    resize.add_argument("--col-sizes", type=float, nargs="+", default=None)
    resize.add_argument("tab")

    set_cwd = commands.add_parser("set-cwd", help="Update a terminal's working directory")
    set_cwd.add_argument("--worktree", required=True)
    set_cwd.add_argument("tab")
    set_cwd.add_argument("cwd")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def select_workspace(config: WorkspaceConfig, workspace_id: str | None) -> Workspace:
    candidates = [workspace_id] if workspace_id else [config.active_workspace_id, config.last_opened_workspace_id]
    for candidate in candidates:
        if not candidate:
            continue
        workspace = config.find_workspace(candidate)
        if workspace is not None:
            return workspace
    raise TabTreeError(
        f"Workspace not found: {workspace_id or '<active>'}",
        kind=ErrorKind.NOT_FOUND,
        hint="Pass --workspace with an id from the store.",
    )


def _describe(tab: Tab) -> str:
    position = tab.position
    label = f"[{position.order}] ({position.row},{position.col}) {tab.kind} {tab.name or '-'} {tab.id}"
    if isinstance(tab, GroupTab):
        label += f" {tab.grid_shape.rows}x{tab.grid_shape.cols}"
        if tab.cell_weights is not None:
            label += f" rows={tab.cell_weights.row_weights} cols={tab.cell_weights.col_weights}"
    elif tab.cwd:
        label += f" cwd={tab.cwd}"
    return label


def render_workspace(workspace: Workspace) -> list[str]:
    lines = [f"workspace {workspace.id} ({workspace.name or '-'}) updated {workspace.updated_at.isoformat()}"]

    def walk(tabs: list[Tab], depth: int) -> None:
        for tab in tabs:
            lines.append("  " * depth + _describe(tab))
            if isinstance(tab, GroupTab):
                walk(tab.children, depth + 1)

    for worktree in workspace.worktrees:
        lines.append(f"  worktree {worktree.id} [{worktree.branch or '-'}] {worktree.path}")
        walk(worktree.tabs, 2)
    return lines


def _report(result: TabOperationResult, out: TextIO) -> int:
    if not result.success:
        kind = result.error_kind or ErrorKind.UNEXPECTED
        print(user_facing_error(result.error), file=sys.stderr)
        return int(exit_code_for(kind))
    print(result.tab.id if result.tab is not None else "ok", file=out)
    return int(ExitCode.SUCCESS)


def run_command(
    namespace: argparse.Namespace,
    engine: TabTreeEngine,
    *,
    out: TextIO | None = None,
) -> int:
    stream = out or sys.stdout
    workspace = select_workspace(engine.store.read(), namespace.workspace)

    if namespace.command == "show":
        for line in render_workspace(workspace):
            print(line, file=stream)
        return int(ExitCode.SUCCESS)

    if namespace.command == "check":
        problems: list[str] = []
        for worktree in workspace.worktrees:
            problems.extend(
                f"{worktree.id}: {problem}" for problem in check_forest(worktree.tabs, TOP_LEVEL_COLUMNS)
            )
        for problem in problems:
            print(problem, file=stream)
        if problems:
            return int(ExitCode.VALIDATION_ERROR)
        print("ok", file=stream)
        return int(ExitCode.SUCCESS)

    if namespace.command == "create":
        request = CreateTabInput(
            worktree_id=namespace.worktree,
            name=namespace.name,
            kind=namespace.kind,
            parent_tab_id=namespace.parent,
            command=namespace.tab_command,
            cwd=namespace.cwd,
            rows=namespace.rows,
            cols=namespace.cols,
            row=namespace.row,
            col=namespace.col,
            row_span=namespace.row_span,
            col_span=namespace.col_span,
        )
        return _report(engine.create_tab(workspace, request), stream)

    if namespace.command == "delete":
        return _report(engine.delete_tab(workspace, worktree_id=namespace.worktree, tab_id=namespace.tab), stream)

    if namespace.command == "reorder":
        result = engine.reorder_tabs(
            workspace,
            worktree_id=namespace.worktree,
            parent_tab_id=namespace.parent,
            tab_ids=namespace.tabs,
        )
        return _report(result, stream)

    if namespace.command == "move":
        result = engine.move_tab(
            workspace,
            worktree_id=namespace.worktree,
            tab_id=namespace.tab,
            source_parent_tab_id=namespace.source,
            target_parent_tab_id=namespace.target,
            target_index=namespace.index,
        )
        return _report(result, stream)

    if namespace.command == "resize":
        result = engine.update_tab_grid_sizes(
            workspace,
            worktree_id=namespace.worktree,
            tab_id=namespace.tab,
            row_sizes=namespace.row_sizes,
            col_sizes=namespace.col_sizes,
        )
        return _report(result, stream)

    if namespace.command == "set-cwd":
        updated = engine.update_terminal_cwd(
            workspace,
            worktree_id=namespace.worktree,
            tab_id=namespace.tab,
            cwd=namespace.cwd,
        )
        if not updated:
            print(user_facing_error(f"Could not update working directory of {namespace.tab}"), file=sys.stderr)
            return int(ExitCode.NOT_FOUND)
        print("ok", file=stream)
        return int(ExitCode.SUCCESS)

    raise TabTreeError(f"Unknown command: {namespace.command}")


def _engine_for(namespace: argparse.Namespace, settings: AppConfig, store: ConfigStore | None) -> TabTreeEngine:
    if store is None:
        store = JsonConfigStore(namespace.store) if namespace.store is not None else None
    if store is None:
        return TabTreeEngine.from_config(settings)
    return TabTreeEngine(
        store,
        default_rows=settings.default_group_rows,
        default_cols=settings.default_group_cols,
    )


def main(
    argv: Sequence[str] | None = None,
    *,
    store: ConfigStore | None = None,
    out: TextIO | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    settings = load_config(namespace.config)
    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    elif settings.log_file.strip():
        log_path = Path(settings.log_file.strip()).expanduser()
    logger = configure_logging(level=namespace.log_level or settings.log_level, log_file=log_path)

    try:
        engine = _engine_for(namespace, settings, store)
        logger.debug("Running command=%s", namespace.command)
        return run_command(namespace, engine, out=out)
    except TabTreeError as exc:
        logger.error(
            "Handled TabTreeError (kind=%s): %s",
            exc.kind.value,
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        print(user_facing_error("Unexpected runtime failure", hint=f"Inspect logs: {log_path}"), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
