"""Board configuration loading.

A board config file is YAML:

.. code-block:: yaml

    seed: 42
    board:
      board_length: 30
      max_branch_paths: 3
      randomization_level: high
      branch_selection_mode: player-choice
    layout:
      spacing: 150
      branch_spacing: 120

Environment variables override file values (``BB_SEED``,
``BB_BOARD_LENGTH``, ``BB_MAX_BRANCH_PATHS``, ``BB_RANDOMIZATION_LEVEL``,
``BB_BRANCH_SELECTION_MODE``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML

from branchboard.board.errors import BoardConfigError, BoardError
from branchboard.board.layout import LayoutConfig
from branchboard.board.models import BoardSettings

DEFAULT_CONFIG_FILENAME = "board.yaml"

# Environment variable -> settings field
_ENV_SETTINGS: dict[str, str] = {
    "BB_BOARD_LENGTH": "board_length",
    "BB_MAX_BRANCH_PATHS": "max_branch_paths",
    "BB_RANDOMIZATION_LEVEL": "randomization_level",
    "BB_BRANCH_SELECTION_MODE": "branch_selection_mode",
}
_INT_FIELDS = {"board_length", "max_branch_paths"}


@dataclass
class BoardConfig:
    """Everything needed to generate and lay out a board.

    Attributes:
        settings: Board settings for generation and movement.
        seed: Seed for reproducible generation. None draws from system entropy.
        layout: Geometry constants for the layout engine.
    """

    settings: BoardSettings = field(default_factory=BoardSettings)
    seed: int | None = None
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, strict: bool = False) -> BoardConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary with optional ``seed``, ``board`` and ``layout``.
            strict: Reject out-of-range settings instead of clamping.

        Returns:
            BoardConfig instance.
        """
        board_data = dict(data.get("board") or {})
        layout_data = dict(data.get("layout") or {})
        seed = data.get("seed")
        return cls(
            settings=BoardSettings.from_dict(board_data, strict=strict),
            seed=int(seed) if seed is not None else None,
            layout=LayoutConfig(
                **{k: float(v) for k, v in layout_data.items() if k in _layout_fields()}
            ),
        )

    def with_env_overrides(self) -> BoardConfig:
        """Return a copy with ``BB_*`` environment variables applied."""
        overrides: dict[str, Any] = {}
        for env_name, field_name in _ENV_SETTINGS.items():
            raw = os.getenv(env_name)
            if raw:
                overrides[field_name] = int(raw) if field_name in _INT_FIELDS else raw
        settings = self.settings
        if overrides:
            settings = BoardSettings(**{**settings.model_dump(), **overrides})
        raw_seed = os.getenv("BB_SEED")
        seed = int(raw_seed) if raw_seed else self.seed
        return BoardConfig(settings=settings, seed=seed, layout=self.layout)


def _layout_fields() -> set[str]:
    return set(LayoutConfig.__dataclass_fields__)


def load_board_config(path: Path, *, strict: bool = False) -> BoardConfig:
    """Load board configuration from a YAML file.

    Args:
        path: Path to the YAML file, or a directory containing ``board.yaml``.
        strict: Reject out-of-range settings instead of clamping.

    Returns:
        BoardConfig with environment overrides applied.

    Raises:
        BoardConfigError: If the file is missing, empty, or invalid.
    """
    config_path = path / DEFAULT_CONFIG_FILENAME if path.is_dir() else path

    if not config_path.exists():
        raise BoardConfigError(config_path, "File not found")

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            raise BoardConfigError(config_path, "Empty file")
        if not isinstance(data, dict):
            raise BoardConfigError(config_path, "Top level must be a mapping")

        return BoardConfig.from_dict(dict(data), strict=strict).with_env_overrides()
    except BoardConfigError:
        raise
    except (BoardError, ValidationError, ValueError, TypeError) as e:
        raise BoardConfigError(config_path, str(e)) from e
    except Exception as e:
        raise BoardConfigError(config_path, f"Unreadable YAML: {e}") from e


def write_board_config(config: BoardConfig, path: Path) -> None:
    """Write ``config`` as YAML to ``path``."""
    data: dict[str, Any] = {
        "board": config.settings.model_dump(mode="json"),
        "layout": {
            "spacing": config.layout.spacing,
            "branch_spacing": config.layout.branch_spacing,
            "baseline_y": config.layout.baseline_y,
            "origin_x": config.layout.origin_x,
        },
    }
    if config.seed is not None:
        data = {"seed": config.seed, **data}

    yaml_writer = YAML()
    yaml_writer.default_flow_style = False
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml_writer.dump(data, f)
