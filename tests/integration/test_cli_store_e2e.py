from __future__ import annotations

import io
import json
from contextlib import redirect_stderr
from pathlib import Path

from tabtree import cli
from tabtree.models import Workspace, WorkspaceConfig, Worktree
from tabtree.store import JsonConfigStore


def _invoke(tmp_path: Path, *args: str) -> tuple[int, str]:
    out = io.StringIO()
    argv = [
        "--config",
        str(tmp_path / "config.toml"),
        "--store",
        str(tmp_path / "workspaces.json"),
        "--log-file",
        str(tmp_path / "tabtree.log"),
        *args,
    ]
    with redirect_stderr(io.StringIO()):
        code = cli.main(argv, out=out)
    return code, out.getvalue().strip()


def test_layout_edits_persist_between_invocations(tmp_path: Path) -> None:
    store_path = tmp_path / "workspaces.json"
    workspace = Workspace(id="ws1", name="demo", worktrees=[Worktree(id="wt1", branch="main")])
    JsonConfigStore(store_path).write(WorkspaceConfig(workspaces=[workspace], active_workspace_id="ws1"))

    code, group_id = _invoke(tmp_path, "create", "--worktree", "wt1", "--kind", "group", "--cols", "3")
    assert code == 0
    created = []
    for name in ("left", "middle", "right"):
        code, tab_id = _invoke(tmp_path, "create", "--worktree", "wt1", "--parent", group_id, "--name", name)
        assert code == 0
        created.append(tab_id)

    code, _ = _invoke(tmp_path, "reorder", "--worktree", "wt1", "--parent", group_id, *reversed(created))
    assert code == 0
    code, _ = _invoke(tmp_path, "delete", "--worktree", "wt1", created[1])
    assert code == 0

    code, report = _invoke(tmp_path, "check")
    assert code == 0
    assert report == "ok"

    document = json.loads(store_path.read_text(encoding="utf-8"))
    group = document["workspaces"][0]["worktrees"][0]["tabs"][0]
    assert group["gridShape"]["cols"] == 3
    assert [child["name"] for child in group["children"]] == ["right", "left"]
    assert [child["position"] for child in group["children"]] == [
        {"order": 0, "row": 0, "col": 0},
        {"order": 1, "row": 0, "col": 1},
    ]


def test_corrupt_store_is_reported_not_overwritten(tmp_path: Path) -> None:
    store_path = tmp_path / "workspaces.json"
    store_path.write_text("{broken", encoding="utf-8")

    code, _ = _invoke(tmp_path, "show")

    assert code == 4
    assert store_path.read_text(encoding="utf-8") == "{broken"
