"""Board graph generation.

Builds the ordered space sequence for a session from its settings:

1. Decide how many forks the board gets from its length tier and the
   randomization level.
2. Schedule the forks on the main line, away from the start and end and at
   least ``MIN_FORK_GAP`` apart.
3. Walk the main line emitting normal or special spaces; at each scheduled
   point emit a whole fork (split marker, every path, join marker) instead.

Only main line spaces count toward ``board_length``. Every random decision
draws from the injected RandomSource, so a seeded source reproduces the same
board exactly.
"""

from __future__ import annotations

import itertools
import math
from typing import TYPE_CHECKING

from branchboard.board.graph import BoardGraph
from branchboard.board.models import (
    MIN_BRANCH_PATHS,
    BoardSettings,
    BranchInfo,
    RandomizationLevel,
    Space,
    SpaceKind,
    format_branch_id,
)
from branchboard.board.random_source import (
    RandomSource,
    ensure_random_source,
    uniform_int,
    weighted_choice,
)
from branchboard.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

log = get_logger(__name__)

NORMAL_PROBABILITY = 0.7

SPECIAL_KIND_WEIGHTS: tuple[tuple[SpaceKind, float], ...] = (
    (SpaceKind.PLOT_TWIST, 0.15),
    (SpaceKind.SKIP_TURN, 0.15),
    (SpaceKind.DOUBLE_CONTRIBUTION, 0.15),
    (SpaceKind.WILDCARD, 0.15),
    (SpaceKind.REWIND, 0.15),
    (SpaceKind.BONUS_ROLL, 0.15),
    (SpaceKind.COLLABORATION, 0.10),
)

# Inclusive (min, max) length of each branch path
PATH_LENGTH_RANGES: dict[RandomizationLevel, tuple[int, int]] = {
    RandomizationLevel.LOW: (3, 5),
    RandomizationLevel.MEDIUM: (2, 5),
    RandomizationLevel.HIGH: (2, 7),
}

# Forks never start before this main line count...
FORK_MARGIN_START = 5
# ...nor later than board_length - FORK_MARGIN_END
FORK_MARGIN_END = 10
MIN_FORK_GAP = 3
FORK_JITTER = 0.3


class BoardGraphGenerator:
    """Generates a board graph from settings and a random source.

    Args:
        settings: Board settings for the session.
        rng: Random source. A fresh unseeded source is used if omitted.
    """

    def __init__(self, settings: BoardSettings, rng: RandomSource | None = None) -> None:
        self.settings = settings
        self.rng = ensure_random_source(rng)

    def generate(self) -> BoardGraph:
        """Generate the board.

        Returns:
            A new BoardGraph. Empty if ``board_length`` is not positive.
        """
        length = self.settings.board_length
        if length <= 0:
            log.info("board_generation_skipped", board_length=length)
            return BoardGraph()

        fork_points = self._schedule_forks(self._fork_count())
        log.debug("fork_schedule", board_length=length, fork_points=fork_points)

        counter = itertools.count()
        open_branches: list[BranchInfo] = []
        spaces: list[Space] = []
        main_count = 0
        next_fork = 0

        while main_count < length:
            if next_fork < len(fork_points) and main_count >= fork_points[next_fork]:
                spaces.extend(self._emit_branch(counter, open_branches))
                next_fork += 1
            else:
                spaces.append(Space(position=next(counter), kind=self._random_kind()))
                main_count += 1

        graph = BoardGraph(spaces)
        summary = graph.summary()
        log.info(
            "board_generated",
            board_length=length,
            total_spaces=summary.total_spaces,
            forks=summary.splits,
            branch_spaces=summary.branch_spaces,
        )
        return graph

    # -------------------------------------------------------------------------
    # Fork scheduling
    # -------------------------------------------------------------------------

    def _fork_count(self) -> int:
        """Number of forks to request, before capacity limits."""
        length = self.settings.board_length
        level = self.settings.randomization_level

        if length >= 50:
            base = 3 + math.floor(self.rng.random() * 2)
        elif length >= 30:
            base = 2
        elif length >= 20:
            base = 1 if self.rng.random() < 0.5 else 2
        elif length >= 15:
            base = 1
        else:
            base = 0

        if level is RandomizationLevel.HIGH:
            base += math.floor(self.rng.random() * 2)
        elif level is RandomizationLevel.LOW:
            base = max(1, base - 1)

        return min(base, fork_capacity(length))

    def _schedule_forks(self, count: int) -> list[int]:
        """Pick ascending main line counts at which forks are emitted."""
        if count <= 0:
            return []
        length = self.settings.board_length
        lowest = FORK_MARGIN_START
        highest = length - FORK_MARGIN_END
        section = length // (count + 1)
        variance = math.floor(section * FORK_JITTER)

        candidates = []
        for i in range(count):
            base = section * (i + 1)
            jitter = math.floor(self.rng.random() * variance * 2) - variance
            candidates.append(max(lowest, min(highest, base + jitter)))
        candidates.sort()

        points: list[int] = []
        for candidate in candidates:
            if points:
                candidate = max(candidate, points[-1] + MIN_FORK_GAP)
            if candidate > highest:
                log.debug("fork_dropped", candidate=candidate, highest=highest)
                continue
            points.append(candidate)
        return points

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def _emit_branch(self, counter: Iterator[int], open_branches: list[BranchInfo]) -> list[Space]:
        """Emit one fork: split marker, every path, join marker."""
        max_paths = max(MIN_BRANCH_PATHS, self.settings.max_branch_paths)
        path_count = uniform_int(self.rng, MIN_BRANCH_PATHS, max_paths)
        min_len, max_len = PATH_LENGTH_RANGES[self.settings.randomization_level]
        lengths = [uniform_int(self.rng, min_len, max_len) for _ in range(path_count)]

        split = Space(
            position=next(counter),
            kind=SpaceKind.BRANCH_SPLIT,
            branch_count=path_count,
        )
        open_branches.append(
            BranchInfo(split_position=split.position, path_count=path_count, path_lengths=lengths)
        )
        spaces = [split]

        for path_index, path_length in enumerate(lengths):
            branch_id = format_branch_id(split.position, path_index)
            for _ in range(path_length):
                spaces.append(
                    Space(
                        position=next(counter),
                        kind=self._random_kind(),
                        branch_id=branch_id,
                        branch_index=path_index,
                    )
                )

        info = open_branches.pop()
        spaces.append(
            Space(
                position=next(counter),
                kind=SpaceKind.BRANCH_JOIN,
                branch_count=info.path_count,
            )
        )
        log.debug(
            "branch_emitted",
            split_position=info.split_position,
            path_count=info.path_count,
            path_lengths=info.path_lengths,
        )
        return spaces

    def _random_kind(self) -> SpaceKind:
        if self.rng.random() < NORMAL_PROBABILITY:
            return SpaceKind.NORMAL
        return weighted_choice(self.rng, SPECIAL_KIND_WEIGHTS)


def fork_capacity(board_length: int) -> int:
    """Most forks that fit on a main line of this length."""
    usable = board_length - FORK_MARGIN_END - FORK_MARGIN_START
    if usable < 0:
        return 0
    return usable // MIN_FORK_GAP + 1


def generate_board(
    settings: BoardSettings,
    rng: RandomSource | None = None,
    *,
    seed: int | None = None,
) -> BoardGraph:
    """Generate a board graph.

    Args:
        settings: Board settings for the session.
        rng: Random source to draw from. Takes precedence over ``seed``.
        seed: Seed for a fresh source when ``rng`` is not given.

    Returns:
        The generated BoardGraph.
    """
    return BoardGraphGenerator(settings, ensure_random_source(rng, seed)).generate()
