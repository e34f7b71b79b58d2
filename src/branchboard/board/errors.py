"""Board engine error types.

The engine itself degrades instead of failing: settings are clamped, bad
fork choices fall back to a default pick, and short paths are a normal
movement result. These exceptions exist for callers that opt into hard
failures at their own boundary (strict settings checks, topology guards,
configuration loading).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any


class BoardError(Exception):
    """Base class for all board engine errors."""


@dataclass
class InvalidSettingsError(BoardError):
    """Raised by strict settings validation when a value is out of range.

    Attributes:
        field_name: Settings field that failed validation.
        value: The rejected value.
        reason: Human-readable explanation of the allowed range.
    """

    field_name: str
    value: Any
    reason: str = ""

    def __post_init__(self) -> None:
        msg = f"Invalid board setting {self.field_name}={self.value!r}"
        if self.reason:
            msg += f": {self.reason}"
        super().__init__(msg)


@dataclass
class TopologyInconsistencyError(BoardError):
    """Raised when a board graph violates its split/branch/join invariants.

    Generation never produces such a graph, so this points at a bug or at a
    graph that was deserialized from an untrusted source.

    Attributes:
        violations: Human-readable descriptions of each violation.
    """

    violations: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        msg = "Board topology is inconsistent"
        if self.violations:
            msg += f": {len(self.violations)} violation(s)"
        super().__init__(msg)

    def __str__(self) -> str:
        lines = ["Board topology is inconsistent:"]
        for v in self.violations[:5]:
            lines.append(f"  - {v}")
        if len(self.violations) > 5:
            lines.append(f"  - ... and {len(self.violations) - 5} more")
        return "\n".join(lines)


class RandomSourceExhaustedError(BoardError):
    """Raised when a scripted random source runs out of values."""


class BoardConfigError(BoardError):
    """Raised when board configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load board config at {path}: {reason}")
