"""Board data models.

Defines the space kinds, the per-session settings, and the Space node that
makes up a board graph. Spaces are frozen pydantic models so a generated
board can be shared between the session layer and renderers without
defensive copies.

Branch ids use the ``"{split_position}-{path_index}"`` form, e.g. ``"10-2"``
for the third path spawned by the split at position 10.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from branchboard.board.errors import InvalidSettingsError
from branchboard.observability.logging import get_logger

log = get_logger(__name__)

MIN_BRANCH_PATHS = 2
MAX_BRANCH_PATHS = 4
MAX_BOARD_LENGTH = 500

DEFAULT_BOARD_LENGTH = 20
DEFAULT_MAX_BRANCH_PATHS = 3

BOARD_LENGTH_OPTIONS = (15, 20, 30, 50)


class SpaceKind(StrEnum):
    """What landing on a space means to the game rules."""

    NORMAL = "normal"
    PLOT_TWIST = "plot-twist"
    SKIP_TURN = "skip-turn"
    DOUBLE_CONTRIBUTION = "double-contribution"
    WILDCARD = "wildcard"
    REWIND = "rewind"
    BONUS_ROLL = "bonus-roll"
    COLLABORATION = "collaboration"
    BRANCH_SPLIT = "branch-split"
    BRANCH_JOIN = "branch-join"

    @property
    def is_marker(self) -> bool:
        """True for the split/join markers that bracket a fork."""
        return self in (SpaceKind.BRANCH_SPLIT, SpaceKind.BRANCH_JOIN)

    @property
    def is_special(self) -> bool:
        """True for gameplay kinds other than normal."""
        return not self.is_marker and self is not SpaceKind.NORMAL


class RandomizationLevel(StrEnum):
    """How chaotic board generation is: fork count and path length spread."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BranchSelectionMode(StrEnum):
    """How a fork is resolved when the token passes a split."""

    RANDOM = "random"
    PLAYER_CHOICE = "player-choice"
    DICE_ROLL = "dice-roll"


def format_branch_id(split_position: int, path_index: int) -> str:
    """Format a branch id from its split position and path index.

    Examples:
        >>> format_branch_id(10, 2)
        '10-2'
    """
    return f"{split_position}-{path_index}"


def parse_branch_id(branch_id: str) -> tuple[int, int]:
    """Parse ``"{split_position}-{path_index}"`` into its two integers.

    Raises:
        ValueError: If the id is not two dash-separated non-negative integers.

    Examples:
        >>> parse_branch_id("10-2")
        (10, 2)
    """
    split_part, sep, path_part = branch_id.partition("-")
    if not sep or not split_part.isdigit() or not path_part.isdigit():
        msg = f"Malformed branch id {branch_id!r}, expected '<split>-<path>'"
        raise ValueError(msg)
    return int(split_part), int(path_part)


class Space(BaseModel):
    """A single node of the board graph.

    ``position`` is both the array index of the space and its identity.
    Branch fields are set only where they apply: ``branch_id`` and
    ``branch_index`` on spaces lying on a branch path, ``branch_count`` on
    split and join markers. ``coordinates`` is filled in by the layout
    engine.
    """

    model_config = ConfigDict(frozen=True)

    position: int = Field(ge=0)
    kind: SpaceKind = SpaceKind.NORMAL
    branch_id: str | None = None
    branch_index: int | None = Field(default=None, ge=0)
    branch_count: int | None = Field(default=None, ge=1)
    coordinates: tuple[float, float] | None = None

    @field_validator("branch_id")
    @classmethod
    def _check_branch_id(cls, value: str | None) -> str | None:
        if value is not None:
            parse_branch_id(value)
        return value

    @property
    def is_split(self) -> bool:
        return self.kind is SpaceKind.BRANCH_SPLIT

    @property
    def is_join(self) -> bool:
        return self.kind is SpaceKind.BRANCH_JOIN

    @property
    def on_branch(self) -> bool:
        """True if the space lies on a branch path."""
        return self.branch_id is not None

    @property
    def on_main_line(self) -> bool:
        """True for plain main line spaces (not markers, not on a branch)."""
        return self.branch_id is None and not self.kind.is_marker

    @property
    def branch_key(self) -> tuple[int, int] | None:
        """The ``(split_position, path_index)`` pair for branch spaces."""
        if self.branch_id is None:
            return None
        return parse_branch_id(self.branch_id)


class BoardSettings(BaseModel):
    """Immutable per-session board configuration.

    Out-of-range values are clamped rather than rejected: ``max_branch_paths``
    into [2, 4] and ``board_length`` to at most ``MAX_BOARD_LENGTH``. A
    non-positive ``board_length`` is kept and yields an empty board. Use
    :meth:`from_dict` with ``strict=True`` to reject instead.
    """

    model_config = ConfigDict(frozen=True)

    board_length: int = DEFAULT_BOARD_LENGTH
    max_branch_paths: int = DEFAULT_MAX_BRANCH_PATHS
    randomization_level: RandomizationLevel = RandomizationLevel.MEDIUM
    branch_selection_mode: BranchSelectionMode = BranchSelectionMode.PLAYER_CHOICE

    @field_validator("board_length")
    @classmethod
    def _cap_board_length(cls, value: int) -> int:
        if value > MAX_BOARD_LENGTH:
            log.warning("board_length_capped", requested=value, cap=MAX_BOARD_LENGTH)
            return MAX_BOARD_LENGTH
        return value

    @field_validator("max_branch_paths")
    @classmethod
    def _clamp_branch_paths(cls, value: int) -> int:
        clamped = max(MIN_BRANCH_PATHS, min(MAX_BRANCH_PATHS, value))
        if clamped != value:
            log.warning("max_branch_paths_clamped", requested=value, clamped=clamped)
        return clamped

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, strict: bool = False) -> BoardSettings:
        """Build settings from a plain dict (config file or session payload).

        Args:
            data: Mapping with any subset of the settings fields.
            strict: If True, reject out-of-range values instead of clamping.

        Returns:
            BoardSettings instance.

        Raises:
            InvalidSettingsError: In strict mode, if a value is out of range.
        """
        if strict:
            check_settings_strict(data)
        known = {k: v for k, v in data.items() if k in cls.model_fields}
        return cls(**known)


def check_settings_strict(data: dict[str, Any]) -> None:
    """Reject out-of-range settings values.

    Raises:
        InvalidSettingsError: On the first offending field.
    """
    length = data.get("board_length", DEFAULT_BOARD_LENGTH)
    if not isinstance(length, int) or length <= 0 or length > MAX_BOARD_LENGTH:
        raise InvalidSettingsError(
            "board_length", length, f"must be an integer in [1, {MAX_BOARD_LENGTH}]"
        )
    paths = data.get("max_branch_paths", DEFAULT_MAX_BRANCH_PATHS)
    if not isinstance(paths, int) or not MIN_BRANCH_PATHS <= paths <= MAX_BRANCH_PATHS:
        raise InvalidSettingsError(
            "max_branch_paths",
            paths,
            f"must be an integer in [{MIN_BRANCH_PATHS}, {MAX_BRANCH_PATHS}]",
        )
    level = data.get("randomization_level", RandomizationLevel.MEDIUM)
    if level not in {m.value for m in RandomizationLevel}:
        raise InvalidSettingsError(
            "randomization_level", level, "must be one of low, medium, high"
        )
    mode = data.get("branch_selection_mode", BranchSelectionMode.PLAYER_CHOICE)
    if mode not in {m.value for m in BranchSelectionMode}:
        raise InvalidSettingsError(
            "branch_selection_mode", mode, "must be one of random, player-choice, dice-roll"
        )


@dataclass
class BranchInfo:
    """Bookkeeping for one fork while it is being emitted or laid out.

    Attributes:
        split_position: Position of the branch-split marker.
        path_count: Number of parallel paths spawned at the split.
        path_lengths: Length of each path, indexed by path index.
    """

    split_position: int
    path_count: int
    path_lengths: list[int] = field(default_factory=list)

    @property
    def max_length(self) -> int:
        return max(self.path_lengths, default=0)

    @property
    def total_spaces(self) -> int:
        """Spaces on all paths, excluding the split and join markers."""
        return sum(self.path_lengths)
