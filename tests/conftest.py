"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from branchboard.board.graph import BoardGraph
from branchboard.board.models import Space, SpaceKind


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


def make_forked_board() -> BoardGraph:
    """Hand-built board with one three-way fork.

    Layout by position::

        0 1 [2 split] 3 4 (path 0) | 5 (path 1) | 6 7 8 (path 2) [9 join] 10 11
    """
    spaces = [
        Space(position=0),
        Space(position=1, kind=SpaceKind.WILDCARD),
        Space(position=2, kind=SpaceKind.BRANCH_SPLIT, branch_count=3),
        Space(position=3, branch_id="2-0", branch_index=0),
        Space(position=4, kind=SpaceKind.REWIND, branch_id="2-0", branch_index=0),
        Space(position=5, branch_id="2-1", branch_index=1),
        Space(position=6, branch_id="2-2", branch_index=2),
        Space(position=7, kind=SpaceKind.BONUS_ROLL, branch_id="2-2", branch_index=2),
        Space(position=8, branch_id="2-2", branch_index=2),
        Space(position=9, kind=SpaceKind.BRANCH_JOIN, branch_count=3),
        Space(position=10),
        Space(position=11),
    ]
    return BoardGraph(spaces)


def make_linear_board(length: int) -> BoardGraph:
    """Board with ``length`` plain main line spaces and no forks."""
    return BoardGraph(Space(position=i) for i in range(length))


@pytest.fixture
def forked_board() -> BoardGraph:
    """A small board with a single three-way fork at position 2."""
    return make_forked_board()


@pytest.fixture
def linear_board() -> BoardGraph:
    """A ten-space board without forks."""
    return make_linear_board(10)
