# sched_core/rulesets/version_graph.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from django.conf import settings

DEFAULT_BRANCH_COLORS = (
    "#010A40",
    "#FC42C9",
    "#3D91F0",
    "#29E3C1",
    "#C5A15A",
    "#FA7978",
    "#5D6280",
    "#5AC58D",
    "#5C5AC5",
    "#EB7340",
)
FALLBACK_STROKE = "#666666"


@dataclass(frozen=True)
class GraphStyle:
    branch_colors: tuple = DEFAULT_BRANCH_COLORS
    branch_spacing: int = 20
    commit_spacing: int = 50
    node_radius: int = 2


def graph_style_from_settings() -> GraphStyle:
    colors = getattr(settings, "SCHEDULING_VERSION_GRAPH_COLORS", None) or DEFAULT_BRANCH_COLORS
    return GraphStyle(branch_colors=tuple(colors))


@dataclass
class VersionNode:
    hash: str
    parents: list[str]
    children: list[str]
    message: str = ""
    created_at: Any = None
    is_active: bool = False
    version: Optional[int] = None
    saved: Optional[bool] = None
    x: int = -1
    y: int = -1
    color: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.hash,
            "parents": list(self.parents),
            "children": list(self.children),
            "message": self.message,
            "createdAt": self.created_at,
            "isActive": self.is_active,
            "version": self.version,
            "saved": self.saved,
            "x": self.x,
            "y": self.y,
            "color": self.color,
        }


@dataclass
class BranchPath:
    """One vertical segment of a column, rows start..end (end may be open)."""
    start: int
    end: float
    end_commit_hash: str
    branch_order: int
    color: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": None if math.isinf(self.end) else int(self.end),
            "endCommitHash": self.end_commit_hash,
            "branchOrder": self.branch_order,
            "color": self.color,
        }


@dataclass(frozen=True)
class Connection:
    parent: str
    child: str
    path: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"parent": self.parent, "child": self.child, "path": self.path, "color": self.color}


@dataclass
class VersionGraph:
    nodes: dict[str, VersionNode] = field(default_factory=dict)
    columns: list[list[BranchPath]] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in sorted(self.nodes.values(), key=lambda n: n.y)],
            "columns": [[p.to_dict() for p in col] for col in self.columns],
            "connections": [c.to_dict() for c in self.connections],
        }


# -----------------------
# Layout
# -----------------------
def format_versions(versions: Iterable[Mapping[str, Any]]) -> list[VersionNode]:
    """
    History entries ({id, parents, ...}, newest first) -> nodes with children.
    """
    versions = list(versions)
    children: dict[str, list[str]] = {}
    for v in versions:
        for parent in v.get("parents") or []:
            children.setdefault(str(parent), []).append(str(v["id"]))

    return [
        VersionNode(
            hash=str(v["id"]),
            parents=[str(p) for p in v.get("parents") or []],
            children=children.get(str(v["id"]), []),
            message=v.get("message", ""),
            created_at=v.get("createdAt"),
            is_active=bool(v.get("isActive", False)),
            version=v.get("version"),
            saved=v.get("saved"),
        )
        for v in versions
    ]


def _topological_order(nodes: list[VersionNode], by_hash: dict[str, VersionNode]) -> list[str]:
    # children before parents; input is newest first
    ordered: list[str] = []
    seen: set[str] = set()

    def dfs(node: VersionNode) -> None:
        if node.hash in seen:
            return
        seen.add(node.hash)
        for child_hash in node.children:
            child = by_hash.get(child_hash)
            if child is not None:
                dfs(child)
        ordered.append(node.hash)

    for node in nodes:
        dfs(node)
    return ordered


def compute_positions(nodes: list[VersionNode]) -> tuple[dict[str, VersionNode], list[list[BranchPath]]]:
    """
    Assign row (y, topological rank) and column (x) to every node.

    - a leaf opens a new column
    - a node with first-parent children takes the smallest of their columns;
      the other children's columns end just above it
    - otherwise (merge children only) the node goes into the first column to
      the right of its children that is free from the row below them
    """
    by_hash = {n.hash: n for n in nodes}
    order = _topological_order(nodes, by_hash)
    for index, h in enumerate(order):
        by_hash[h].y = index

    columns: list[list[BranchPath]] = []
    xs: dict[str, int] = {}
    branch_order = 0

    def update_column_end(col: int, end: float, end_commit_hash: str) -> None:
        if 0 <= col < len(columns) and columns[col]:
            columns[col][-1].end = end
            columns[col][-1].end_commit_hash = end_commit_hash

    for index, h in enumerate(order):
        node = by_hash[h]
        branch_children = [
            c for c in node.children if c in by_hash and by_hash[c].parents and by_hash[c].parents[0] == node.hash
        ]
        end: float = index if not node.parents else math.inf

        if not node.children:
            columns.append([BranchPath(start=index, end=end, end_commit_hash=h, branch_order=branch_order)])
            branch_order += 1
            x = len(columns) - 1

        elif branch_children:
            child_xs = [xs[c] for c in branch_children if c in xs]
            x = min(child_xs)
            update_column_end(x, end, h)
            for child_x in child_xs:
                if child_x != x:
                    update_column_end(child_x, index - 1, h)

        else:
            min_child_y = math.inf
            max_child_x = -1
            for c in node.children:
                if c in xs and c in by_hash:
                    min_child_y = min(min_child_y, by_hash[c].y)
                    max_child_x = max(max_child_x, xs[c])

            col = -1
            for offset, column in enumerate(columns[max_child_x + 1:]):
                if column and min_child_y >= column[-1].end:
                    col = max_child_x + 1 + offset
                    break

            segment = BranchPath(start=int(min_child_y) + 1, end=end, end_commit_hash=h, branch_order=branch_order)
            branch_order += 1
            if col == -1:
                columns.append([segment])
                x = len(columns) - 1
            else:
                columns[col].append(segment)
                x = col

        xs[h] = x
        node.x = x

    return by_hash, columns


def assign_colors(columns: list[list[BranchPath]], nodes: dict[str, VersionNode], palette: Iterable[str]) -> None:
    """
    Stable colours: columns are ranked by a signature (their sorted segment
    end hashes joined by ","), not by position, so the same history always
    gets the same colours.
    """
    palette = list(palette)
    if not palette:
        return

    signed = [
        (",".join(sorted(p.end_commit_hash for p in column)), index, column)
        for index, column in enumerate(columns)
        if column
    ]
    signed.sort(key=lambda item: item[0])

    for rank, (_, original_index, column) in enumerate(signed):
        color = palette[rank % len(palette)]
        for segment in column:
            segment.color = color
        for node in nodes.values():
            if node.x == original_index:
                node.color = color


def connection_lines(nodes: dict[str, VersionNode], style: GraphStyle) -> list[Connection]:
    """
    L-shaped connectors for parent -> child edges that change column:
    down from the parent by 20% of the row spacing, across, then to the child.
    """
    out: list[Connection] = []
    r = style.node_radius
    for node in sorted(nodes.values(), key=lambda n: n.y):
        for parent_hash in node.parents:
            parent = nodes.get(parent_hash)
            if parent is None or parent.x == node.x:
                continue

            child_x = r * 4 + node.x * style.branch_spacing
            child_y = node.y * style.commit_spacing + r * 4
            parent_x = r * 4 + parent.x * style.branch_spacing
            parent_y = parent.y * style.commit_spacing + r * 4
            mid_y = parent_y + style.commit_spacing * 0.2

            out.append(
                Connection(
                    parent=parent.hash,
                    child=node.hash,
                    path=f"M {parent_x} {parent_y} L {parent_x} {mid_y:g} L {child_x} {mid_y:g} L {child_x} {child_y}",
                    color=node.color or parent.color or FALLBACK_STROKE,
                )
            )
    return out


def build_version_graph(history: Iterable[Mapping[str, Any]], style: Optional[GraphStyle] = None) -> VersionGraph:
    style = style or GraphStyle()
    nodes = format_versions(history)
    if not nodes:
        return VersionGraph()

    by_hash, columns = compute_positions(nodes)
    assign_colors(columns, by_hash, style.branch_colors)
    return VersionGraph(nodes=by_hash, columns=columns, connections=connection_lines(by_hash, style))
