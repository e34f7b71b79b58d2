"""Board graph visualization.

Renders a board as DOT (Graphviz) or Mermaid markup for debugging and
documentation. Connections come from :meth:`BoardGraph.successors`, so forks
appear as a split fanning out to every path and each path converging on its
join. When the board has been laid out, DOT output pins nodes to their
layout coordinates.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from branchboard.board.models import Space, SpaceKind
from branchboard.observability.logging import get_logger

if TYPE_CHECKING:
    from branchboard.board.graph import BoardGraph

log = get_logger(__name__)

_MAIN_COLOR = "#ADD8E6"  # light blue
_BRANCH_COLORS = [
    "#FFD700",  # gold
    "#FFA07A",  # light salmon
    "#98FB98",  # pale green
    "#DDA0DD",  # plum
]
_MARKER_COLOR = "#D3D3D3"  # light grey
_HIGHLIGHT_BORDER = "#FF4500"  # orange-red

# Layout units per Graphviz inch
_DOT_SCALE = 100.0

_KIND_ABBREVIATIONS = {
    SpaceKind.NORMAL: "",
    SpaceKind.PLOT_TWIST: "twist",
    SpaceKind.SKIP_TURN: "skip",
    SpaceKind.DOUBLE_CONTRIBUTION: "x2",
    SpaceKind.WILDCARD: "wild",
    SpaceKind.REWIND: "rewind",
    SpaceKind.BONUS_ROLL: "bonus",
    SpaceKind.COLLABORATION: "collab",
    SpaceKind.BRANCH_SPLIT: "split",
    SpaceKind.BRANCH_JOIN: "join",
}


@dataclass
class BoardView:
    """Nodes and edges ready for rendering."""

    spaces: list[Space]
    edges: list[tuple[int, int]]
    highlighted: set[int] = field(default_factory=set)


def build_board_view(graph: BoardGraph, *, highlight: Iterable[int] = ()) -> BoardView:
    """Extract renderable data from a board.

    Args:
        graph: Board to render.
        highlight: Positions to emphasise, e.g. a resolved movement path.
    """
    highlighted = set(highlight)
    missing = sorted(p for p in highlighted if p not in graph)
    if missing:
        log.warning("highlight_positions_missing", positions=missing)
    return BoardView(spaces=list(graph), edges=graph.edges(), highlighted=highlighted)


def space_label(space: Space) -> str:
    """Short label: position plus an abbreviation of the kind."""
    abbreviation = _KIND_ABBREVIATIONS.get(space.kind, str(space.kind))
    return f"{space.position} {abbreviation}".strip()


def render_dot(view: BoardView) -> str:
    """Render a BoardView as DOT (Graphviz) markup.

    Returns:
        DOT format string.
    """
    lines = [
        "digraph board {",
        "  rankdir=LR;",
        '  node [fontname="Helvetica" fontsize=10 style="filled,solid"];',
        "",
    ]

    for space in view.spaces:
        attrs = _dot_node_attrs(space, highlighted=space.position in view.highlighted)
        attr_str = " ".join(f"{k}={v}" for k, v in attrs.items())
        lines.append(f"  {space.position} [{attr_str}];")

    lines.append("")

    for src, dst in view.edges:
        lines.append(f"  {src} -> {dst};")

    lines.append("}")
    return "\n".join(lines)


def render_mermaid(view: BoardView) -> str:
    """Render a BoardView as Mermaid markup.

    Returns:
        Mermaid format string.
    """
    lines = ["graph LR"]

    for space in view.spaces:
        node_id = f"s{space.position}"
        label = space_label(space)
        if space.is_split or space.is_join:
            lines.append(f"  {node_id}{{{{{label}}}}}")
        else:
            lines.append(f'  {node_id}["{label}"]')
        if space.position in view.highlighted:
            lines.append(f"  class {node_id} highlight")

    lines.append("")

    for src, dst in view.edges:
        lines.append(f"  s{src} --> s{dst}")

    lines.append("")
    lines.append(f"  classDef highlight stroke:{_HIGHLIGHT_BORDER},stroke-width:3px")
    return "\n".join(lines)


def _fill_color(space: Space) -> str:
    if space.kind.is_marker:
        return _MARKER_COLOR
    if space.branch_index is not None:
        return _BRANCH_COLORS[space.branch_index % len(_BRANCH_COLORS)]
    return _MAIN_COLOR


def _dot_node_attrs(space: Space, *, highlighted: bool) -> dict[str, str]:
    """Build DOT attribute dict for a space."""
    attrs: dict[str, str] = {
        "shape": "diamond" if space.kind.is_marker else "circle",
        "fillcolor": f'"{_fill_color(space)}"',
        "label": f'"{space_label(space)}"',
    }
    if space.coordinates is not None:
        x, y = space.coordinates
        # Graphviz Y grows upward; layout Y grows downward
        attrs["pos"] = f'"{x / _DOT_SCALE:.2f},{0.0 - y / _DOT_SCALE:.2f}!"'
    if highlighted:
        attrs["color"] = f'"{_HIGHLIGHT_BORDER}"'
        attrs["penwidth"] = '"2.5"'
    return attrs
