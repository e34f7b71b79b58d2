"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest
from rich.logging import RichHandler

import branchboard.observability.logging as log_module
from branchboard.board.models import BoardSettings
from branchboard.observability import (
    bind_board_context,
    clear_board_context,
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def _read_events(log_dir: Path) -> list[dict]:
    log_file = log_dir / "logs" / "debug.jsonl"
    return [json.loads(line) for line in log_file.read_text().splitlines()]


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    clear_board_context()
    close_file_logging()
    configure_logging(verbosity=0)


@pytest.mark.parametrize(
    ("verbosity", "expected"),
    [(0, logging.WARNING), (1, logging.DEBUG), (2, logging.DEBUG)],
)
def test_root_level_follows_verbosity(verbosity: int, expected: int) -> None:
    """Root logger is DEBUG whenever any verbosity is requested."""
    configure_logging(verbosity=verbosity)
    assert logging.getLogger().level == expected


def test_console_handler_filters_by_verbosity() -> None:
    """-v shows INFO on the console."""
    configure_logging(verbosity=1)
    handler = next(h for h in logging.getLogger().handlers if isinstance(h, RichHandler))
    assert handler.level == logging.INFO


def test_get_logger_auto_configures() -> None:
    """get_logger configures logging if not already done."""
    log_module._state.configured = False

    logger = get_logger("branchboard.test")

    assert log_module._state.configured is True
    assert hasattr(logger, "warning")


def test_file_logging_requires_log_dir() -> None:
    """log_to_file=True without log_dir raises ValueError."""
    with pytest.raises(ValueError, match="log_dir is required"):
        configure_logging(log_to_file=True, log_dir=None)


def test_file_logging_creates_logs_dir(tmp_path: Path) -> None:
    """File logging creates {log_dir}/logs and reports it until closed."""
    configure_logging(log_to_file=True, log_dir=tmp_path)

    assert (tmp_path / "logs").is_dir()
    assert get_logs_dir() == tmp_path / "logs"

    close_file_logging()
    assert get_logs_dir() is None


def test_console_only_creates_nothing(tmp_path: Path) -> None:
    """Without file logging no logs directory appears."""
    configure_logging(verbosity=2, log_to_file=False, log_dir=tmp_path)
    assert not (tmp_path / "logs").exists()


def test_reconfiguring_closes_previous_handler(tmp_path: Path) -> None:
    """A second configure call closes and detaches the first file handler."""
    configure_logging(log_to_file=True, log_dir=tmp_path)
    first = log_module._state.file_handler
    configure_logging(log_to_file=True, log_dir=tmp_path)

    assert first is not None
    assert first.stream is None or first.stream.closed
    assert first not in logging.getLogger().handlers
    assert log_module._state.file_handler is not first


def test_jsonl_carries_structlog_context(tmp_path: Path) -> None:
    """Key/value context lands as top-level JSON fields."""
    configure_logging(verbosity=2, log_to_file=True, log_dir=tmp_path)

    get_logger("branchboard.test").info("fork_picked", split_position=10, path_index=2)
    close_file_logging()

    entry = next(e for e in _read_events(tmp_path) if e["event"] == "fork_picked")
    assert entry["split_position"] == 10
    assert entry["path_index"] == 2
    assert entry["level"] == "INFO"
    assert entry["logger"] == "branchboard.test"


def test_bound_board_context_on_every_event(tmp_path: Path) -> None:
    """bind_board_context tags later events until cleared."""
    configure_logging(log_to_file=True, log_dir=tmp_path)
    logger = get_logger("branchboard.test")

    bind_board_context(seed=42)
    logger.info("first")
    clear_board_context()
    logger.info("second")
    close_file_logging()

    events = {e["event"]: e for e in _read_events(tmp_path)}
    assert events["first"]["seed"] == 42
    assert "seed" not in events["second"]


def test_board_warnings_reach_file(tmp_path: Path) -> None:
    """Settings clamping is logged as a warning event."""
    configure_logging(log_to_file=True, log_dir=tmp_path)

    BoardSettings(max_branch_paths=7)
    close_file_logging()

    entry = next(
        e for e in _read_events(tmp_path) if e["event"] == "max_branch_paths_clamped"
    )
    assert entry["level"] == "WARNING"
    assert entry["requested"] == 7
    assert entry["clamped"] == 4


def test_stdlib_records_are_written(tmp_path: Path) -> None:
    """Plain logging calls still produce JSON lines."""
    configure_logging(log_to_file=True, log_dir=tmp_path)

    logging.getLogger("plain").warning("disk %s", "full")
    close_file_logging()

    entry = next(e for e in _read_events(tmp_path) if e["logger"] == "plain")
    assert entry["event"] == "disk full"
