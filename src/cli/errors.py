"""Typed exception hierarchy for CLI-related errors.

All exceptions inherit from CLIError so that stage commands can catch them
together with the other migration errors.
"""

from src.redmine_source.errors import MigrationError


class CLIError(MigrationError):
    """Base exception for all CLI-related errors."""
    pass


class WorkspaceNotFoundError(CLIError):
    """Raised when a stage runs against a workspace that was never analyzed."""

    def __init__(self, workspace_dir: str):
        super().__init__(
            f"No analyzed workspace found at {workspace_dir}. "
            f"Run 'redmine-wiki-migrate analyze' first"
        )
        self.workspace_dir = workspace_dir
