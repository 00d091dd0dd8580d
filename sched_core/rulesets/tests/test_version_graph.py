# sched_core/rulesets/tests/test_version_graph.py
from sched_core.rulesets.version_graph import GraphStyle, build_version_graph

PALETTE = ("#111111", "#222222", "#333333")


def version(vid, parents=(), **extra):
    return {"id": vid, "parents": list(parents), "message": f"msg {vid}", "createdAt": None, **extra}


def test_empty_history():
    assert build_version_graph([]).to_dict() == {"nodes": [], "columns": [], "connections": []}


def test_linear_history_is_one_column():
    history = [version("v3", ["v2"]), version("v2", ["v1"]), version("v1", isActive=True)]

    graph = build_version_graph(history, GraphStyle(branch_colors=PALETTE))
    out = graph.to_dict()

    assert [(n["id"], n["x"], n["y"]) for n in out["nodes"]] == [("v3", 0, 0), ("v2", 0, 1), ("v1", 0, 2)]
    assert out["columns"] == [[{"start": 0, "end": 2, "endCommitHash": "v1", "branchOrder": 0, "color": "#111111"}]]
    assert out["connections"] == []
    assert graph.nodes["v1"].children == ["v2"]
    assert graph.nodes["v1"].is_active is True


def test_branch_opens_second_column_with_connector():
    # v2 and v3 were both forked from v1
    history = [version("v3", ["v1"]), version("v2", ["v1"]), version("v1")]

    out = build_version_graph(history, GraphStyle(branch_colors=PALETTE)).to_dict()
    nodes = {n["id"]: n for n in out["nodes"]}

    assert (nodes["v3"]["x"], nodes["v2"]["x"], nodes["v1"]["x"]) == (0, 1, 0)
    assert out["columns"][0][0]["end"] == 2
    # the side branch ends just above the fork point
    assert out["columns"][1] == [{"start": 1, "end": 1, "endCommitHash": "v1", "branchOrder": 1, "color": "#222222"}]

    assert out["connections"] == [
        {"parent": "v1", "child": "v2", "path": "M 8 108 L 8 118 L 28 118 L 28 58", "color": "#222222"}
    ]
    assert nodes["v1"]["color"] == nodes["v3"]["color"] == "#111111"


def test_open_head_column_has_no_end():
    # an unsaved head whose parent is outside the listed history keeps its column open
    out = build_version_graph([version("v9", ["gone"])]).to_dict()
    assert out["columns"][0][0]["end"] is None


def test_layout_is_deterministic():
    a = build_version_graph([version("b", ["r"]), version("a", ["r"]), version("r")], GraphStyle(branch_colors=PALETTE))
    b = build_version_graph([version("b", ["r"]), version("a", ["r"]), version("r")], GraphStyle(branch_colors=PALETTE))
    assert a.to_dict() == b.to_dict()
