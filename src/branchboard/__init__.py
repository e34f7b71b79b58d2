"""BranchBoard: branching board generation and movement resolution."""

__version__ = "0.1.0"
