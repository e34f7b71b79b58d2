"""Topology checks for board graphs.

Pure, deterministic checks over a BoardGraph that confirm the invariants the
generator promises: contiguous positions, one join per split, branch paths
that are non-empty and all lead to their split's join, and the expected main
line length. They return a ValidationReport rather than raising;
:func:`ensure_well_formed` turns failures into an exception for callers that
want one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from branchboard.board.errors import TopologyInconsistencyError
from branchboard.board.models import format_branch_id

if TYPE_CHECKING:
    from branchboard.board.graph import BoardGraph

Severity = Literal["pass", "warn", "fail"]


@dataclass
class ValidationCheck:
    """Result of a single validation check.

    Attributes:
        name: Identifier for the check.
        severity: "pass", "warn", or "fail".
        message: Human-readable description of the result.
        positions: Positions of the spaces involved in a failure.
    """

    name: str
    severity: Severity
    message: str = ""
    positions: list[int] = field(default_factory=list)


@dataclass
class ValidationReport:
    """Aggregated results of validation checks."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return any(c.severity == "fail" for c in self.checks)

    @property
    def failures(self) -> list[ValidationCheck]:
        return [c for c in self.checks if c.severity == "fail"]

    @property
    def summary(self) -> str:
        """Human-readable summary, e.g. ``"1 failed, 4 passed"``."""
        counts = {sev: 0 for sev in ("fail", "warn", "pass")}
        for check in self.checks:
            counts[check.severity] += 1
        labels = {"fail": "failed", "warn": "warnings", "pass": "passed"}
        return ", ".join(f"{n} {labels[sev]}" for sev, n in counts.items() if n)


def _fail(name: str, problems: list[str], positions: list[int]) -> ValidationCheck:
    return ValidationCheck(
        name=name,
        severity="fail",
        message="; ".join(problems),
        positions=sorted(set(positions)),
    )


def check_position_contiguity(graph: BoardGraph) -> ValidationCheck:
    """Positions must be exactly ``0..N-1`` and match array indices."""
    bad = [i for i, space in enumerate(graph) if space.position != i]
    if not bad:
        return ValidationCheck(
            name="position_contiguity",
            severity="pass",
            message=f"{len(graph)} contiguous positions",
        )
    return _fail(
        "position_contiguity",
        [f"index {i} holds position {graph.spaces[i].position}" for i in bad[:5]],
        [graph.spaces[i].position for i in bad],
    )


def check_split_join_pairing(graph: BoardGraph) -> ValidationCheck:
    """Every split has exactly one join, with matching ``branch_count``."""
    problems: list[str] = []
    positions: list[int] = []
    open_splits = []
    for space in graph:
        if space.is_split:
            open_splits.append(space)
        elif space.is_join:
            if not open_splits:
                problems.append(f"join {space.position} has no split")
                positions.append(space.position)
                continue
            split = open_splits.pop()
            if split.branch_count != space.branch_count:
                problems.append(
                    f"split {split.position} has branch_count {split.branch_count} "
                    f"but join {space.position} has {space.branch_count}"
                )
                positions.extend([split.position, space.position])
    for split in open_splits:
        problems.append(f"split {split.position} has no join")
        positions.append(split.position)

    if problems:
        return _fail("split_join_pairing", problems, positions)
    return ValidationCheck(
        name="split_join_pairing",
        severity="pass",
        message=f"{len(graph.splits())} split/join pair(s)",
    )


def check_branch_paths(graph: BoardGraph) -> ValidationCheck:
    """Each split's paths are ``0..branch_count-1``, all non-empty."""
    problems: list[str] = []
    positions: list[int] = []
    split_positions = {s.position for s in graph.splits()}
    for split in graph.splits():
        expected = set(range(split.branch_count or 0))
        found = graph.path_indices(split.position)
        if found != expected:
            problems.append(
                f"split {split.position} declares {split.branch_count} path(s) "
                f"but has path indices {sorted(found)}"
            )
            positions.append(split.position)
    for branch_id in graph.branch_ids():
        members = graph.branch_members(branch_id)
        split_pos, path_index = members[0].branch_key  # type: ignore[misc]
        if split_pos not in split_positions:
            problems.append(f"branch {branch_id} has no split at {split_pos}")
            positions.extend(m.position for m in members)
        mismatched = [m.position for m in members if m.branch_index != path_index]
        if mismatched:
            problems.append(f"branch {branch_id} has spaces with a different branch_index")
            positions.extend(mismatched)

    if problems:
        return _fail("branch_paths", problems, positions)
    return ValidationCheck(
        name="branch_paths",
        severity="pass",
        message=f"{len(graph.branch_ids())} non-empty branch path(s)",
    )


def check_paths_reach_join(graph: BoardGraph) -> ValidationCheck:
    """Walking any path from a split ends on that split's own join."""
    problems: list[str] = []
    positions: list[int] = []
    for split in graph.splits():
        join = graph.join_for_split(split.position)
        if join is None:
            continue  # reported by check_split_join_pairing
        for path_index in range(split.branch_count or 0):
            members = graph.branch_members(format_branch_id(split.position, path_index))
            if not members:
                continue  # reported by check_branch_paths
            end = graph.next_in_branch(members[-1])
            if end is None or end.position != join.position:
                reached = "nothing" if end is None else f"position {end.position}"
                problems.append(
                    f"path {split.position}-{path_index} reaches {reached}, "
                    f"expected join {join.position}"
                )
                positions.append(members[-1].position)

    if problems:
        return _fail("paths_reach_join", problems, positions)
    return ValidationCheck(
        name="paths_reach_join",
        severity="pass",
        message="All branch paths rejoin at their split's join",
    )


def check_main_line_length(graph: BoardGraph, board_length: int) -> ValidationCheck:
    """The main line holds exactly ``board_length`` spaces."""
    actual = len(graph.main_line())
    expected = max(board_length, 0)
    if actual == expected:
        return ValidationCheck(
            name="main_line_length",
            severity="pass",
            message=f"{actual} main line space(s)",
        )
    return ValidationCheck(
        name="main_line_length",
        severity="fail",
        message=f"Expected {expected} main line space(s), found {actual}",
    )


def run_topology_checks(graph: BoardGraph, *, board_length: int | None = None) -> ValidationReport:
    """Run all topology checks.

    Args:
        graph: Board to check.
        board_length: If given, also check the main line length.

    Returns:
        ValidationReport with one check per invariant.
    """
    checks = [
        check_position_contiguity(graph),
        check_split_join_pairing(graph),
        check_branch_paths(graph),
        check_paths_reach_join(graph),
    ]
    if board_length is not None:
        checks.append(check_main_line_length(graph, board_length))
    return ValidationReport(checks=checks)


def ensure_well_formed(graph: BoardGraph, *, board_length: int | None = None) -> None:
    """Raise if the graph fails any topology check.

    Raises:
        TopologyInconsistencyError: Listing every failed check.
    """
    report = run_topology_checks(graph, board_length=board_length)
    if report.has_failures:
        raise TopologyInconsistencyError(
            violations=[f"{c.name}: {c.message}" for c in report.failures]
        )
