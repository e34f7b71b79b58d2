"""Plain-dict forms of boards and movement results.

The session layer owns the wire protocol; these helpers only produce and
accept JSON-compatible dicts it can broadcast. Optional fields that are not
set are omitted, so a freshly generated board carries no coordinates.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from branchboard.board.errors import BoardError
from branchboard.board.graph import BoardGraph
from branchboard.board.models import Space
from branchboard.board.movement import MovementResult

FORMAT_VERSION = 1


class BoardFormatError(BoardError):
    """Raised when a serialized board cannot be read back."""


def board_to_dict(graph: BoardGraph) -> dict[str, Any]:
    """Serialize a board for broadcast."""
    return {
        "version": FORMAT_VERSION,
        "spaces": [s.model_dump(mode="json", exclude_none=True) for s in graph],
    }


def board_from_dict(data: dict[str, Any]) -> BoardGraph:
    """Rebuild a board from :func:`board_to_dict` output.

    Raises:
        BoardFormatError: If the version is unsupported or a space is invalid.
    """
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise BoardFormatError(f"Unsupported board format version {version!r}")
    raw_spaces = data.get("spaces")
    if not isinstance(raw_spaces, list):
        raise BoardFormatError("Board data has no 'spaces' list")
    try:
        return BoardGraph(Space.model_validate(raw) for raw in raw_spaces)
    except ValidationError as e:
        raise BoardFormatError(f"Invalid space in board data: {e}") from e


def movement_to_dict(result: MovementResult) -> dict[str, Any]:
    """Serialize a movement result so all clients animate the same path."""
    return {
        "start_position": result.start_position,
        "roll": result.roll,
        "path": list(result.path),
        "final_position": result.final_position,
        "forks_taken": {str(k): v for k, v in result.forks_taken.items()},
        "fork_fallbacks": list(result.fork_fallbacks),
        "reached_end": result.reached_end,
    }
