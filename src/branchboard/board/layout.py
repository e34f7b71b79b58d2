"""Board layout: 2D coordinates for every space.

Main line spaces advance along X at a fixed spacing on a baseline. At a
split, its paths fan out symmetrically in Y around the line the split sits
on, each path growing one spacing at a time from the column after the split.
The join sits one spacing past the longest path, and the line it sits on
resumes after it.

A split on a path opens a nested fork whose lanes share that path's band:
the lane spacing is divided by the nested path count, so inner paths stay
strictly between the outer path's neighbours, and the outer join is pushed
past the inner join.

Active forks are tracked on an explicit stack, so a join always closes the
most recent unclosed split. Spaces whose branch context cannot be found are
left without coordinates and reported as topology issues rather than
aborting the layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from branchboard.board.graph import BoardGraph
from branchboard.board.models import BranchInfo, Space
from branchboard.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_SPACING = 150.0
DEFAULT_BRANCH_SPACING = 120.0


@dataclass(frozen=True)
class LayoutConfig:
    """Geometry constants for the layout.

    Attributes:
        spacing: Horizontal distance between consecutive spaces.
        branch_spacing: Vertical distance between parallel branch paths.
        baseline_y: Y coordinate of the main line.
        origin_x: X coordinate of the first space.
    """

    spacing: float = DEFAULT_SPACING
    branch_spacing: float = DEFAULT_BRANCH_SPACING
    baseline_y: float = 0.0
    origin_x: float = 0.0


@dataclass(frozen=True)
class TopologyIssue:
    """A layout-time inconsistency in the board graph.

    Attributes:
        position: Position of the offending space.
        code: Machine-readable issue code.
        message: Human-readable description.
    """

    position: int
    code: str
    message: str


@dataclass
class LayoutResult:
    """Laid-out graph plus any topology issues found on the way."""

    graph: BoardGraph
    issues: list[TopologyIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def bounds(self) -> tuple[float, float, float, float] | None:
        """``(min_x, min_y, max_x, max_y)`` over placed spaces."""
        points = [s.coordinates for s in self.graph if s.coordinates is not None]
        if not points:
            return None
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return min(xs), min(ys), max(xs), max(ys)


@dataclass
class _BranchContext:
    """One open fork: where its paths start and how far each has grown."""

    info: BranchInfo
    first_x: float
    lane_y: float
    lane_spacing: float
    cursors: dict[int, float] = field(default_factory=dict)
    current_path: int | None = None

    def path_y(self, path_index: int) -> float:
        total_height = (self.info.path_count - 1) * self.lane_spacing
        return self.lane_y - total_height / 2 + path_index * self.lane_spacing

    def advance(self, path_index: int, spacing: float) -> tuple[float, float]:
        """Place the next space of ``path_index`` and move its cursor on."""
        x = self.cursors.get(path_index, self.first_x)
        self.cursors[path_index] = x + spacing
        self.current_path = path_index
        return x, self.path_y(path_index)

    @property
    def end_x(self) -> float:
        """X of the first free column after every path."""
        return max([self.first_x, *self.cursors.values()])


class LayoutEngine:
    """Assigns coordinates to a board graph.

    Args:
        config: Geometry constants. Defaults to :class:`LayoutConfig`.
    """

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def layout(self, graph: BoardGraph) -> LayoutResult:
        """Compute coordinates for every space of ``graph``.

        Returns:
            LayoutResult holding a new graph with coordinates and the list of
            topology issues. The input graph is not modified.
        """
        cfg = self.config
        coords: dict[int, tuple[float, float]] = {}
        issues: list[TopologyIssue] = []
        stack: list[_BranchContext] = []
        main_x = cfg.origin_x

        def report(space: Space, code: str, message: str) -> None:
            issues.append(TopologyIssue(position=space.position, code=code, message=message))
            log.warning("topology_inconsistency", position=space.position, code=code, detail=message)

        def place_inline(min_x: float | None = None) -> tuple[float, float]:
            # Splits, joins and plain spaces continue whichever line they sit
            # on: the path last entered in the innermost open fork, or the
            # main line.
            nonlocal main_x
            ctx = stack[-1] if stack else None
            if ctx is not None and ctx.current_path is not None:
                path_index = ctx.current_path
                if min_x is not None:
                    start = ctx.cursors.get(path_index, ctx.first_x)
                    ctx.cursors[path_index] = max(start, min_x)
                return ctx.advance(path_index, cfg.spacing)
            x = main_x if min_x is None else max(main_x, min_x)
            main_x = x + cfg.spacing
            return x, cfg.baseline_y

        for space in graph:
            if space.is_split:
                parent = stack[-1] if stack and stack[-1].current_path is not None else None
                x, y = place_inline()
                coords[space.position] = (x, y)
                if space.branch_count is None:
                    report(space, "split_missing_branch_count", "split has no branch_count")
                info = graph.branch_info(space)
                lane_spacing = (
                    parent.lane_spacing / max(info.path_count, 1)
                    if parent is not None
                    else cfg.branch_spacing
                )
                stack.append(
                    _BranchContext(
                        info=info, first_x=x + cfg.spacing, lane_y=y, lane_spacing=lane_spacing
                    )
                )

            elif space.is_join:
                if stack:
                    ctx = stack.pop()
                    coords[space.position] = place_inline(min_x=ctx.end_x)
                else:
                    report(space, "unmatched_join", "join has no open split")
                    coords[space.position] = place_inline()

            elif space.on_branch:
                placed = self._place_branch_space(space, stack)
                if placed is None:
                    report(
                        space,
                        "orphan_branch_space",
                        f"branch space {space.branch_id} has no matching open split",
                    )
                    continue
                coords[space.position] = placed

            else:
                coords[space.position] = place_inline()

        for ctx in stack:
            split = graph[ctx.info.split_position]
            report(split, "unclosed_split", "split has no join")

        log.debug("board_laid_out", spaces=len(coords), issues=len(issues))
        return LayoutResult(graph=graph.with_coordinates(coords), issues=issues)

    def _place_branch_space(
        self,
        space: Space,
        stack: list[_BranchContext],
    ) -> tuple[float, float] | None:
        key = space.branch_key
        if key is None:
            return None
        split_position, path_from_id = key
        ctx = next((c for c in reversed(stack) if c.info.split_position == split_position), None)
        if ctx is None:
            return None

        path_index = space.branch_index if space.branch_index is not None else path_from_id
        if path_index >= ctx.info.path_count:
            return None
        return ctx.advance(path_index, self.config.spacing)


def layout_board(graph: BoardGraph, config: LayoutConfig | None = None) -> LayoutResult:
    """Lay out ``graph`` with the given (or default) geometry."""
    return LayoutEngine(config).layout(graph)
