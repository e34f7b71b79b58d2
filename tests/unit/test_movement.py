"""Tests for movement resolution."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

import pytest

from branchboard.board.generator import generate_board
from branchboard.board.graph import BoardGraph
from branchboard.board.models import BoardSettings, BranchSelectionMode, Space, SpaceKind
from branchboard.board.movement import MAX_ROLL, MovementResolver, resolve_movement
from branchboard.board.random_source import ScriptedRandomSource, SeededRandomSource

if TYPE_CHECKING:
    from branchboard.board.movement import MovementResult


def _two_fork_board() -> BoardGraph:
    """0 [1 split] 2 | 3 [4 join] [5 split] 6 | 7 [8 join] 9"""
    return BoardGraph(
        [
            Space(position=0),
            Space(position=1, kind=SpaceKind.BRANCH_SPLIT, branch_count=2),
            Space(position=2, branch_id="1-0", branch_index=0),
            Space(position=3, branch_id="1-1", branch_index=1),
            Space(position=4, kind=SpaceKind.BRANCH_JOIN, branch_count=2),
            Space(position=5, kind=SpaceKind.BRANCH_SPLIT, branch_count=2),
            Space(position=6, branch_id="5-0", branch_index=0),
            Space(position=7, branch_id="5-1", branch_index=1),
            Space(position=8, kind=SpaceKind.BRANCH_JOIN, branch_count=2),
            Space(position=9),
        ]
    )


def _four_way_board() -> BoardGraph:
    """0 [1 split] 2 | 3 | 4 | 5 [6 join] 7"""
    return BoardGraph(
        [
            Space(position=0),
            Space(position=1, kind=SpaceKind.BRANCH_SPLIT, branch_count=4),
            *(
                Space(position=2 + i, branch_id=f"1-{i}", branch_index=i)
                for i in range(4)
            ),
            Space(position=6, kind=SpaceKind.BRANCH_JOIN, branch_count=4),
            Space(position=7),
        ]
    )


def _no_draws() -> ScriptedRandomSource:
    """A source that fails the test if anything draws from it."""
    return ScriptedRandomSource([])


class TestStepFunction:
    """The three traversal rules."""

    def test_main_line_steps_in_sequence(self, linear_board: BoardGraph) -> None:
        result = resolve_movement(linear_board, 2, 3, rng=_no_draws())
        assert result.path == (3, 4, 5)
        assert result.final_position == 5
        assert not result.reached_end

    def test_chosen_path_through_fork(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 0, 4, fork_choice=1, rng=_no_draws())
        assert result.path == (1, 2, 5, 9)
        assert result.forks_taken == {2: 1}

    def test_from_split_takes_first_space_of_path(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 2, 1, fork_choice=1, rng=_no_draws())
        assert result.final_position == 5

    def test_last_space_of_path_goes_to_join(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 2, 3, fork_choice=0, rng=_no_draws())
        assert result.path == (3, 4, 9)

    def test_longest_path_then_main_line(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 2, 5, fork_choice=2, rng=_no_draws())
        assert result.path == (6, 7, 8, 9, 10)

    def test_start_on_branch_follows_path(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 6, 3, rng=_no_draws())
        assert result.path == (7, 8, 9)
        assert result.forks_taken == {}

    def test_start_on_join_continues_main_line(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 9, 1, rng=_no_draws())
        assert result.path == (10,)


class TestEndOfBoard:
    """Movement past the last space is truncated."""

    def test_roll_past_end(self, forked_board: BoardGraph) -> None:
        last = forked_board.last_position
        assert last is not None
        result = resolve_movement(forked_board, last - 1, 6, rng=_no_draws())
        assert result.path == (last,)
        assert result.reached_end
        assert result.steps == 1

    def test_at_end_moves_nowhere(self, linear_board: BoardGraph) -> None:
        result = resolve_movement(linear_board, 9, 3, rng=_no_draws())
        assert result.path == ()
        assert result.final_position == 9
        assert result.reached_end


class TestRolls:
    """Roll edge cases."""

    def test_zero_roll(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 4, 0, rng=_no_draws())
        assert result.path == ()
        assert result.final_position == 4

    def test_negative_roll_moves_nowhere(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 3, -2, rng=_no_draws())
        assert result.path == ()
        assert result.roll == 0

    def test_roll_is_clamped(self) -> None:
        graph = BoardGraph(Space(position=i) for i in range(300))
        result = resolve_movement(graph, 0, 1000, rng=_no_draws())
        assert result.roll == MAX_ROLL
        assert result.steps == MAX_ROLL
        assert result.final_position == MAX_ROLL

    def test_unknown_start_gives_empty_result(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 99, 3, rng=_no_draws())
        assert result.path == ()
        assert result.final_position == 99
        assert not result.reached_end

    def test_empty_board(self) -> None:
        result = resolve_movement(BoardGraph(), 0, 4, rng=_no_draws())
        assert result.path == ()


class TestForkChoices:
    """Explicit and default fork picks."""

    def test_out_of_range_choice_falls_back(self, forked_board: BoardGraph) -> None:
        rng = ScriptedRandomSource([0.5])
        result = resolve_movement(forked_board, 2, 1, fork_choice=7, rng=rng)
        # floor(0.5 * 3) == 1
        assert result.path == (5,)
        assert result.fork_fallbacks == (2,)
        assert rng.consumed == 1

    def test_negative_choice_falls_back(self, forked_board: BoardGraph) -> None:
        rng = ScriptedRandomSource([0.0])
        result = resolve_movement(forked_board, 2, 1, fork_choice=-1, rng=rng)
        assert result.path == (3,)
        assert result.fork_fallbacks == (2,)

    def test_default_pick_without_choice(self, forked_board: BoardGraph) -> None:
        rng = ScriptedRandomSource([0.99])
        result = resolve_movement(forked_board, 2, 1, rng=rng)
        assert result.path == (6,)
        assert result.fork_fallbacks == ()
        assert result.forks_taken == {2: 2}

    def test_fork_choice_only_applies_to_first_split(self) -> None:
        rng = ScriptedRandomSource([0.0])
        result = resolve_movement(_two_fork_board(), 0, 6, fork_choice=1, rng=rng)
        assert result.path == (1, 3, 4, 5, 6, 8)
        assert result.forks_taken == {1: 1, 5: 0}
        assert rng.consumed == 1

    def test_fork_choices_per_split(self) -> None:
        result = resolve_movement(
            _two_fork_board(), 0, 6, fork_choices={1: 0, 5: 1}, rng=_no_draws()
        )
        assert result.path == (1, 2, 4, 5, 7, 8)
        assert result.forks_taken == {1: 0, 5: 1}

    def test_fork_choices_take_precedence(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(
            forked_board, 2, 1, fork_choice=0, fork_choices={2: 2}, rng=_no_draws()
        )
        assert result.path == (6,)

    def test_fork_choice_ignored_if_no_split_crossed(self, linear_board: BoardGraph) -> None:
        result = resolve_movement(linear_board, 0, 2, fork_choice=3, rng=_no_draws())
        assert result.path == (1, 2)
        assert result.fork_fallbacks == ()

    @pytest.mark.parametrize(
        ("draw", "expected_path_index"),
        [
            (0.0, 0),  # face 1
            (0.2, 1),  # face 2
            (0.4, 2),  # face 3
            (0.55, 0),  # face 4
            (0.9, 2),  # face 6
        ],
    )
    def test_dice_roll_mode_maps_face_onto_paths(
        self, forked_board: BoardGraph, draw: float, expected_path_index: int
    ) -> None:
        resolver = MovementResolver(
            forked_board,
            ScriptedRandomSource([draw]),
            selection_mode=BranchSelectionMode.DICE_ROLL,
        )
        result = resolver.resolve(2, 1)
        assert result.forks_taken == {2: expected_path_index}

    def test_selection_mode_accepts_plain_string(self, forked_board: BoardGraph) -> None:
        resolver = MovementResolver(
            forked_board, ScriptedRandomSource([0.9]), selection_mode="dice-roll"
        )
        assert resolver.selection_mode is BranchSelectionMode.DICE_ROLL

    def test_dice_roll_rerolls_unfair_faces(self) -> None:
        """On a 4-way fork faces 5 and 6 are rolled again."""
        # 0.7 -> face 5, 0.9 -> face 6, 0.5 -> face 4
        rng = ScriptedRandomSource([0.7, 0.9, 0.5])
        resolver = MovementResolver(
            _four_way_board(), rng, selection_mode=BranchSelectionMode.DICE_ROLL
        )
        result = resolver.resolve(1, 1)
        assert result.forks_taken == {1: 3}
        assert rng.consumed == 3

    def test_dice_roll_is_uniform_on_four_paths(self) -> None:
        resolver = MovementResolver(
            _four_way_board(),
            SeededRandomSource(1),
            selection_mode=BranchSelectionMode.DICE_ROLL,
        )
        draws = 20_000
        counts = Counter(resolver.resolve(1, 1).forks_taken[1] for _ in range(draws))
        assert set(counts) == {0, 1, 2, 3}
        for path_index in range(4):
            assert abs(counts[path_index] / draws - 0.25) < 0.02


class TestMovementResult:
    """Results are immutable values."""

    def test_forks_taken_is_read_only(self, forked_board: BoardGraph) -> None:
        result = resolve_movement(forked_board, 0, 4, fork_choice=1, rng=_no_draws())
        assert result.forks == ((2, 1),)
        with pytest.raises(TypeError):
            result.forks_taken[2] = 0  # type: ignore[index]
        assert result.forks_taken == {2: 1}

    def test_result_is_hashable(self, forked_board: BoardGraph) -> None:
        first = resolve_movement(forked_board, 0, 4, fork_choice=1, rng=_no_draws())
        second = resolve_movement(forked_board, 0, 4, fork_choice=1, rng=_no_draws())
        assert hash(first) == hash(second)
        assert len({first, second}) == 1


class TestGeneratedBoards:
    """Movement over generated boards follows the graph's connections."""

    @staticmethod
    def _assert_follows_edges(graph: BoardGraph, result: MovementResult) -> None:
        previous = result.start_position
        for position in result.path:
            assert position in graph.successors(previous)
            previous = position

    def test_every_move_follows_successors(self) -> None:
        for seed in range(25):
            rng = SeededRandomSource(seed)
            graph = generate_board(BoardSettings(board_length=30), rng)
            resolver = MovementResolver(graph, rng)
            position = 0
            while True:
                result = resolver.resolve(position, 6)
                self._assert_follows_edges(graph, result)
                assert result.steps <= 6
                assert all(p in graph for p in result.path)
                if result.reached_end:
                    break
                assert result.steps == 6
                position = result.final_position
            assert result.final_position == graph.last_position

    def test_same_seed_same_path(self) -> None:
        settings = BoardSettings(board_length=50)
        graph = generate_board(settings, seed=11)
        first = resolve_movement(graph, 0, 40, rng=SeededRandomSource(3))
        second = resolve_movement(graph, 0, 40, rng=SeededRandomSource(3))
        assert first == second
