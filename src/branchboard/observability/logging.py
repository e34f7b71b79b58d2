"""Structured logging for BranchBoard.

Events are emitted with structlog and routed through stdlib ``logging``:

- Console: a rich handler on stderr whose level follows ``-v``
  (WARNING, INFO with ``-v``, DEBUG with ``-vv``).
- File: with ``--log-dir``, every event at DEBUG and above is appended as
  one JSON object per line to ``{log_dir}/logs/debug.jsonl``.

Board context (seed, board length, ...) bound with
:func:`bind_board_context` is attached to every event logged afterwards,
so a JSONL file can be filtered down to a single generated board.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import Processor

LOG_SUBDIR = "logs"
LOG_FILENAME = "debug.jsonl"

_VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}


@dataclass
class _LoggingState:
    configured: bool = False
    file_handler: logging.FileHandler | None = None
    logs_dir: Path | None = None


_state = _LoggingState()


class JSONLFileHandler(logging.FileHandler):
    """Append each record as one JSON object per line.

    structlog hands the whole event dict over as ``record.msg``; its keys
    become top-level fields next to ``timestamp``, ``level`` and ``logger``.
    Plain stdlib records are written with their formatted message as
    ``event``.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: dict[str, Any] = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
            }
            if isinstance(record.msg, dict):
                context = {
                    k: v for k, v in record.msg.items() if k not in ("level", "timestamp")
                }
                entry["event"] = context.pop("event", "")
                entry.update(context)
            else:
                entry["event"] = record.getMessage()

            if self.stream is None:
                self.stream = self._open()
            self.stream.write(json.dumps(entry, default=str) + "\n")
            self.flush()
        except Exception:
            self.handleError(record)


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        level=_VERBOSITY_LEVELS.get(verbosity, logging.DEBUG),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
    )


def _jsonl_handler(log_dir: Path) -> JSONLFileHandler:
    logs_dir = log_dir / LOG_SUBDIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    handler = JSONLFileHandler(str(logs_dir / LOG_FILENAME), mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    _state.logs_dir = logs_dir
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure console (and optionally file) logging.

    Safe to call repeatedly; a previously opened log file is closed first.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also write every event to ``{log_dir}/logs/debug.jsonl``.
        log_dir: Base directory for the log file. Required if log_to_file=True.

    Raises:
        ValueError: If log_to_file=True but log_dir is not provided.
    """
    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        _state.file_handler = _jsonl_handler(log_dir)
        handlers.append(_state.file_handler)

    # The root level is the lowest any handler needs; handlers filter further.
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=False,
    )
    _state.configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring defaults on first use.

    Args:
        name: Logger name (typically __name__).
    """
    if not _state.configured:
        configure_logging()
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def bind_board_context(**context: Any) -> None:
    """Attach key/value context (e.g. ``seed``) to all subsequent events."""
    structlog.contextvars.bind_contextvars(**context)


def clear_board_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logs_dir() -> Path | None:
    """Directory holding the JSONL log, or None if file logging is off."""
    return _state.logs_dir if _state.file_handler is not None else None


def close_file_logging() -> None:
    """Flush and close the JSONL log file, if one is open."""
    if _state.file_handler is not None:
        logging.getLogger().removeHandler(_state.file_handler)
        _state.file_handler.close()
        _state.file_handler = None
