"""Tests for board and movement serialization."""

from __future__ import annotations

import json

import pytest

from branchboard.board.generator import generate_board
from branchboard.board.graph import BoardGraph
from branchboard.board.layout import layout_board
from branchboard.board.models import BoardSettings
from branchboard.board.movement import resolve_movement
from branchboard.board.random_source import ScriptedRandomSource
from branchboard.board.serialize import (
    FORMAT_VERSION,
    BoardFormatError,
    board_from_dict,
    board_to_dict,
    movement_to_dict,
)


def test_board_to_dict_omits_unset_fields(forked_board: BoardGraph) -> None:
    data = board_to_dict(forked_board)
    assert data["version"] == FORMAT_VERSION
    assert data["spaces"][0] == {"position": 0, "kind": "normal"}
    assert data["spaces"][2] == {"position": 2, "kind": "branch-split", "branch_count": 3}
    assert data["spaces"][3] == {
        "position": 3,
        "kind": "normal",
        "branch_id": "2-0",
        "branch_index": 0,
    }


def test_board_survives_json(forked_board: BoardGraph) -> None:
    placed = layout_board(forked_board).graph
    restored = board_from_dict(json.loads(json.dumps(board_to_dict(placed))))
    assert restored == placed


def test_generated_board_survives_json() -> None:
    graph = generate_board(BoardSettings(board_length=50), seed=8)
    assert board_from_dict(json.loads(json.dumps(board_to_dict(graph)))) == graph


def test_unsupported_version() -> None:
    with pytest.raises(BoardFormatError, match="version"):
        board_from_dict({"version": 99, "spaces": []})


def test_missing_spaces() -> None:
    with pytest.raises(BoardFormatError, match="spaces"):
        board_from_dict({"version": FORMAT_VERSION})


def test_invalid_space() -> None:
    with pytest.raises(BoardFormatError, match="Invalid space"):
        board_from_dict({"spaces": [{"position": 0, "kind": "lava"}]})


def test_movement_to_dict(forked_board: BoardGraph) -> None:
    result = resolve_movement(
        forked_board, 0, 4, fork_choice=1, rng=ScriptedRandomSource([])
    )
    data = movement_to_dict(result)
    assert data == {
        "start_position": 0,
        "roll": 4,
        "path": [1, 2, 5, 9],
        "final_position": 9,
        "forks_taken": {"2": 1},
        "fork_fallbacks": [],
        "reached_end": False,
    }
    json.dumps(data)


def test_movement_to_dict_reports_fallbacks(forked_board: BoardGraph) -> None:
    result = resolve_movement(
        forked_board, 2, 1, fork_choice=7, rng=ScriptedRandomSource([0.5])
    )
    data = movement_to_dict(result)
    assert data["forks_taken"] == {"2": 1}
    assert data["fork_fallbacks"] == [2]
