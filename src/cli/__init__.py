"""Command-line interface for the Redmine wiki migration.

This package provides the `redmine-wiki-migrate` CLI tool that runs the
analyze, extract, convert and compose stages against a shared workspace
directory, with progress indication and exit codes per error class.
"""

from .models import ExitCode
from .errors import CLIError, WorkspaceNotFoundError

__all__ = [
    'ExitCode',
    'CLIError',
    'WorkspaceNotFoundError',
]
