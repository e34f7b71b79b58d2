"""Board package - branching board generation, layout and movement.

The board is generated once per session from BoardSettings and is immutable
afterwards. Layout attaches coordinates for renderers; movement resolution
turns a roll (and optional fork choice) into the positions a token passes.
"""

from branchboard.board.errors import (
    BoardConfigError,
    BoardError,
    InvalidSettingsError,
    RandomSourceExhaustedError,
    TopologyInconsistencyError,
)
from branchboard.board.generator import BoardGraphGenerator, generate_board
from branchboard.board.graph import BoardGraph, BoardSummary
from branchboard.board.layout import (
    LayoutConfig,
    LayoutEngine,
    LayoutResult,
    TopologyIssue,
    layout_board,
)
from branchboard.board.models import (
    BoardSettings,
    BranchInfo,
    BranchSelectionMode,
    RandomizationLevel,
    Space,
    SpaceKind,
    format_branch_id,
    parse_branch_id,
)
from branchboard.board.movement import (
    MAX_ROLL,
    MovementResolver,
    MovementResult,
    resolve_movement,
)
from branchboard.board.random_source import (
    RandomSource,
    ScriptedRandomSource,
    SeededRandomSource,
)
from branchboard.board.validation import (
    ValidationCheck,
    ValidationReport,
    ensure_well_formed,
    run_topology_checks,
)

__all__ = [
    "MAX_ROLL",
    "BoardConfigError",
    "BoardError",
    "BoardGraph",
    "BoardGraphGenerator",
    "BoardSettings",
    "BoardSummary",
    "BranchInfo",
    "BranchSelectionMode",
    "InvalidSettingsError",
    "LayoutConfig",
    "LayoutEngine",
    "LayoutResult",
    "MovementResolver",
    "MovementResult",
    "RandomSource",
    "RandomSourceExhaustedError",
    "RandomizationLevel",
    "ScriptedRandomSource",
    "SeededRandomSource",
    "Space",
    "SpaceKind",
    "TopologyInconsistencyError",
    "TopologyIssue",
    "ValidationCheck",
    "ValidationReport",
    "ensure_well_formed",
    "format_branch_id",
    "generate_board",
    "layout_board",
    "parse_branch_id",
    "resolve_movement",
    "run_topology_checks",
]
