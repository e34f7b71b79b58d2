"""Observability for BranchBoard: structured logging for the engine and CLI."""

from branchboard.observability.logging import (
    bind_board_context,
    clear_board_context,
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "bind_board_context",
    "clear_board_context",
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
