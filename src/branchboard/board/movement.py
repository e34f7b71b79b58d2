"""Movement resolution: where a token goes for a given roll.

Resolution applies a single step function ``roll`` times:

- From a split, take the first space of the chosen path.
- From a branch space, take the next space of the same path, or the
  nearest following join after the last one.
- From anything else, take the next space in sequence.

Resolution never fails. An out-of-range fork choice falls back to the
session's default pick, and reaching the end of the board simply yields a
shorter path.

Only the first split crossed in a roll uses ``fork_choice``. Later splits in
the same roll use ``fork_choices`` (keyed by split position) when the caller
supplies them, otherwise the default pick.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from branchboard.board.graph import BoardGraph
from branchboard.board.models import BranchSelectionMode, Space
from branchboard.board.random_source import RandomSource, choose_index, ensure_random_source
from branchboard.observability.logging import get_logger

log = get_logger(__name__)

MAX_ROLL = 100
DIE_FACES = 6


@dataclass(frozen=True)
class MovementResult:
    """Outcome of one movement request.

    Attributes:
        start_position: Position the token started from.
        roll: Roll actually applied (after clamping).
        path: Positions passed through, in order, excluding the start.
        forks: ``(split_position, path_index)`` for each split left, in order.
        fork_fallbacks: Split positions where a supplied choice was out of
            range and the default pick was used instead.
        reached_end: True if the board ran out before the roll did.
    """

    start_position: int
    roll: int
    path: tuple[int, ...] = ()
    forks: tuple[tuple[int, int], ...] = ()
    fork_fallbacks: tuple[int, ...] = ()
    reached_end: bool = False

    @property
    def final_position(self) -> int:
        return self.path[-1] if self.path else self.start_position

    @property
    def steps(self) -> int:
        return len(self.path)

    @property
    def forks_taken(self) -> MappingProxyType[int, int]:
        """Read-only split position -> chosen path index view of ``forks``."""
        return MappingProxyType(dict(self.forks))


class MovementResolver:
    """Resolves token movement over one board graph.

    Args:
        graph: The session's board.
        rng: Source for default fork picks. Only drawn from at splits
            without a usable explicit choice.
        selection_mode: How default fork picks are made. ``dice-roll``
            rolls a six-sided die, re-rolling faces that would favour some
            paths, and maps the face onto the paths; the
            other modes pick uniformly.
    """

    def __init__(
        self,
        graph: BoardGraph,
        rng: RandomSource | None = None,
        *,
        selection_mode: BranchSelectionMode = BranchSelectionMode.RANDOM,
    ) -> None:
        self.graph = graph
        self.rng = ensure_random_source(rng)
        self.selection_mode = BranchSelectionMode(selection_mode)

    def resolve(
        self,
        start_position: int,
        roll: int,
        fork_choice: int | None = None,
        *,
        fork_choices: Mapping[int, int] | None = None,
    ) -> MovementResult:
        """Move a token ``roll`` steps from ``start_position``.

        Args:
            start_position: Current position of the token.
            roll: Number of steps. Negative rolls move nowhere; rolls above
                ``MAX_ROLL`` are clamped.
            fork_choice: Path index for the first split crossed.
            fork_choices: Path index per split position; takes precedence
                over ``fork_choice``.

        Returns:
            MovementResult with the traversed positions.
        """
        steps = max(0, roll)
        if steps > MAX_ROLL:
            log.warning("roll_clamped", roll=roll, max_roll=MAX_ROLL)
            steps = MAX_ROLL

        current = self.graph.space_at(start_position)
        if current is None:
            log.warning("movement_start_not_found", start_position=start_position)
            return MovementResult(start_position=start_position, roll=steps)

        path: list[int] = []
        forks_taken: dict[int, int] = {}
        fallbacks: list[int] = []
        first_choice_pending = fork_choice is not None
        reached_end = False

        for _ in range(steps):
            if current.is_split:
                requested = None
                if fork_choices is not None and current.position in fork_choices:
                    requested = fork_choices[current.position]
                elif first_choice_pending:
                    requested = fork_choice
                first_choice_pending = False

                path_index, fell_back = self._pick_path(current, requested)
                if fell_back:
                    fallbacks.append(current.position)
                forks_taken[current.position] = path_index
                nxt = self.graph.first_of_branch(current.position, path_index)
                if nxt is None:
                    log.warning(
                        "topology_inconsistency",
                        position=current.position,
                        code="missing_branch_path",
                        path_index=path_index,
                    )
            elif current.on_branch:
                nxt = self.graph.next_in_branch(current)
            else:
                nxt = self.graph.next_in_sequence(current)

            if nxt is None:
                reached_end = True
                break
            current = nxt
            path.append(current.position)

        if reached_end:
            log.debug(
                "movement_end_of_graph",
                start_position=start_position,
                roll=steps,
                moved=len(path),
            )
        return MovementResult(
            start_position=start_position,
            roll=steps,
            path=tuple(path),
            forks=tuple(forks_taken.items()),
            fork_fallbacks=tuple(fallbacks),
            reached_end=reached_end,
        )

    def _pick_path(self, split: Space, requested: int | None) -> tuple[int, bool]:
        """Choose a path index at ``split``.

        Returns:
            ``(path_index, fell_back)`` where ``fell_back`` is True if a
            requested index was out of range and replaced by a default pick.
        """
        count = split.branch_count or max(len(self.graph.path_indices(split.position)), 1)
        if requested is not None:
            if 0 <= requested < count:
                return requested, False
            log.warning(
                "fork_choice_out_of_range",
                split_position=split.position,
                fork_choice=requested,
                branch_count=count,
            )
            return self._default_pick(count), True
        return self._default_pick(count), False

    def _default_pick(self, count: int) -> int:
        if self.selection_mode is BranchSelectionMode.DICE_ROLL and count <= DIE_FACES:
            return self._dice_pick(count)
        return choose_index(self.rng, count)

    def _dice_pick(self, count: int) -> int:
        """Roll a d6 and map the face onto ``count`` paths uniformly.

        Faces above the largest multiple of ``count`` are re-rolled, so a
        4-way fork re-rolls 5 and 6 instead of favouring paths 0 and 1.
        """
        highest_fair_face = DIE_FACES - DIE_FACES % count
        while True:
            face = choose_index(self.rng, DIE_FACES) + 1
            if face <= highest_fair_face:
                return (face - 1) % count


def resolve_movement(
    graph: BoardGraph,
    start_position: int,
    roll: int,
    fork_choice: int | None = None,
    *,
    rng: RandomSource | None = None,
    fork_choices: Mapping[int, int] | None = None,
    selection_mode: BranchSelectionMode = BranchSelectionMode.RANDOM,
) -> MovementResult:
    """Resolve one movement request over ``graph``.

    See :meth:`MovementResolver.resolve` for argument details.
    """
    resolver = MovementResolver(graph, rng, selection_mode=selection_mode)
    return resolver.resolve(start_position, roll, fork_choice, fork_choices=fork_choices)
