"""Immutable board graph with a lookup index.

A board is an ordered sequence of spaces in emission order: position ``i``
lives at index ``i``. Forks are encoded in place, so the sequence for one
fork reads ``split, path 0 ..., path 1 ..., ..., join``. Traversal is not
array order inside a fork; :meth:`BoardGraph.successors` describes the
actual connections.

The index (position -> space, branch id -> members, split -> join) is built
once when the graph is constructed so lookups during layout and movement are
O(1) instead of repeated scans.
"""

from __future__ import annotations

from bisect import bisect_right
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from branchboard.board.models import BranchInfo, Space, SpaceKind, format_branch_id


@dataclass(frozen=True)
class BoardSummary:
    """Counts describing a board, for logs and CLI output."""

    total_spaces: int
    main_line_spaces: int
    branch_spaces: int
    splits: int
    joins: int
    kind_counts: dict[str, int] = field(default_factory=dict)


class BoardGraph:
    """Ordered, immutable sequence of board spaces.

    Args:
        spaces: Spaces in emission order.
    """

    def __init__(self, spaces: Iterable[Space] = ()) -> None:
        self._spaces: tuple[Space, ...] = tuple(spaces)
        self._index_of: dict[int, int] = {}
        self._branch_members: dict[str, list[Space]] = {}
        self._paths_by_split: dict[int, set[int]] = {}
        self._split_to_join: dict[int, int] = {}
        self._join_positions: list[int] = []
        self._build_index()

    def _build_index(self) -> None:
        open_splits: list[int] = []
        for idx, space in enumerate(self._spaces):
            self._index_of.setdefault(space.position, idx)
            if space.branch_id is not None:
                self._branch_members.setdefault(space.branch_id, []).append(space)
                key = space.branch_key
                if key is not None:
                    self._paths_by_split.setdefault(key[0], set()).add(key[1])
            if space.is_split:
                open_splits.append(space.position)
            elif space.is_join:
                self._join_positions.append(space.position)
                if open_splits:
                    self._split_to_join[open_splits.pop()] = space.position
        for members in self._branch_members.values():
            members.sort(key=lambda s: s.position)
        self._join_positions.sort()

    # -------------------------------------------------------------------------
    # Sequence protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._spaces)

    def __iter__(self) -> Iterator[Space]:
        return iter(self._spaces)

    def __getitem__(self, position: int) -> Space:
        """Look up a space by position.

        Raises:
            KeyError: If no space has this position.
        """
        idx = self._index_of.get(position)
        if idx is None:
            raise KeyError(position)
        return self._spaces[idx]

    def __contains__(self, position: object) -> bool:
        return position in self._index_of

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoardGraph):
            return NotImplemented
        return self._spaces == other._spaces

    def __hash__(self) -> int:
        return hash(self._spaces)

    def __repr__(self) -> str:
        return f"BoardGraph(spaces={len(self._spaces)})"

    @property
    def spaces(self) -> tuple[Space, ...]:
        return self._spaces

    @property
    def is_empty(self) -> bool:
        return not self._spaces

    @property
    def last_position(self) -> int | None:
        """Position of the final space in array order, if any."""
        return self._spaces[-1].position if self._spaces else None

    def space_at(self, position: int) -> Space | None:
        """Look up a space by position, returning None if absent."""
        idx = self._index_of.get(position)
        return None if idx is None else self._spaces[idx]

    def index_of(self, position: int) -> int | None:
        """Array index of the space with this position."""
        return self._index_of.get(position)

    # -------------------------------------------------------------------------
    # Branch queries
    # -------------------------------------------------------------------------

    def splits(self) -> list[Space]:
        return [s for s in self._spaces if s.is_split]

    def joins(self) -> list[Space]:
        return [s for s in self._spaces if s.is_join]

    def main_line(self) -> list[Space]:
        """Plain main line spaces, in order."""
        return [s for s in self._spaces if s.on_main_line]

    def branch_members(self, branch_id: str) -> list[Space]:
        """Spaces sharing ``branch_id``, ordered by position."""
        return list(self._branch_members.get(branch_id, ()))

    def branch_ids(self) -> list[str]:
        return list(self._branch_members)

    def first_of_branch(self, split_position: int, path_index: int) -> Space | None:
        """First space of the given path of a split, if it exists."""
        members = self._branch_members.get(format_branch_id(split_position, path_index))
        return members[0] if members else None

    def ordinal_in_branch(self, space: Space) -> int | None:
        """0-based position of ``space`` within its own branch path."""
        if space.branch_id is None:
            return None
        members = self._branch_members.get(space.branch_id, [])
        for i, member in enumerate(members):
            if member.position == space.position:
                return i
        return None

    def path_indices(self, split_position: int) -> set[int]:
        """Distinct path indices found among the split's branch spaces."""
        return set(self._paths_by_split.get(split_position, set()))

    def join_for_split(self, split_position: int) -> Space | None:
        """The join paired with a split by bracket matching."""
        join_position = self._split_to_join.get(split_position)
        return None if join_position is None else self.space_at(join_position)

    def next_join_after(self, position: int) -> Space | None:
        """Nearest branch-join whose position is greater than ``position``."""
        i = bisect_right(self._join_positions, position)
        if i >= len(self._join_positions):
            return None
        return self.space_at(self._join_positions[i])

    def branch_info(self, split: Space) -> BranchInfo:
        """Describe the fork opened by ``split``.

        The path count is the split's ``branch_count`` when present,
        otherwise the number of paths actually found in the graph.
        """
        found = self._paths_by_split.get(split.position, set())
        path_count = split.branch_count or len(found)
        lengths = [
            len(self._branch_members.get(format_branch_id(split.position, i), ()))
            for i in range(path_count)
        ]
        return BranchInfo(
            split_position=split.position,
            path_count=path_count,
            path_lengths=lengths,
        )

    # -------------------------------------------------------------------------
    # Connectivity
    # -------------------------------------------------------------------------

    def next_in_branch(self, space: Space) -> Space | None:
        """Follow a branch path one step.

        Returns the next member of the path, or the nearest following join
        when ``space`` is the last member. None if there is neither.
        """
        ordinal = self.ordinal_in_branch(space)
        if ordinal is None:
            return None
        members = self._branch_members[space.branch_id]  # type: ignore[index]
        if ordinal < len(members) - 1:
            return members[ordinal + 1]
        return self.next_join_after(space.position)

    def next_in_sequence(self, space: Space) -> Space | None:
        """Space at the next array index, if any."""
        idx = self._index_of.get(space.position)
        if idx is None or idx + 1 >= len(self._spaces):
            return None
        return self._spaces[idx + 1]

    def successors(self, position: int) -> list[int]:
        """Positions a token may move to from ``position`` in one step.

        A split connects to the first space of each of its paths, a branch
        space to the next space on its path (or its join), anything else to
        the next space in sequence.
        """
        space = self.space_at(position)
        if space is None:
            return []
        if space.is_split:
            info = self.branch_info(space)
            targets = []
            for path_index in range(info.path_count):
                first = self.first_of_branch(space.position, path_index)
                if first is not None:
                    targets.append(first.position)
            return targets
        nxt = self.next_in_branch(space) if space.on_branch else self.next_in_sequence(space)
        return [] if nxt is None else [nxt.position]

    def edges(self) -> list[tuple[int, int]]:
        """All ``(from, to)`` connections, in array order of the source."""
        return [(s.position, t) for s in self._spaces for t in self.successors(s.position)]

    # -------------------------------------------------------------------------
    # Derivation
    # -------------------------------------------------------------------------

    def with_coordinates(self, coordinates: Mapping[int, tuple[float, float]]) -> BoardGraph:
        """Return a copy of the graph with coordinates attached.

        Spaces absent from ``coordinates`` keep their current value.
        """
        return BoardGraph(
            s.model_copy(update={"coordinates": coordinates[s.position]})
            if s.position in coordinates
            else s
            for s in self._spaces
        )

    def summary(self) -> BoardSummary:
        kinds = Counter(str(s.kind) for s in self._spaces)
        return BoardSummary(
            total_spaces=len(self._spaces),
            main_line_spaces=sum(1 for s in self._spaces if s.on_main_line),
            branch_spaces=sum(1 for s in self._spaces if s.on_branch),
            splits=kinds.get(SpaceKind.BRANCH_SPLIT.value, 0),
            joins=kinds.get(SpaceKind.BRANCH_JOIN.value, 0),
            kind_counts=dict(sorted(kinds.items())),
        )
