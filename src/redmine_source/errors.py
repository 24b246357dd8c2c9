"""Typed exception hierarchy for Redmine source errors.

This module defines the root exception of the migration tool and the errors
raised while talking to the Redmine database. All exceptions include
descriptive messages with context to help with debugging.
"""

from typing import Optional


class MigrationError(Exception):
    """Base exception for all redmine-wiki-migrate errors.

    Use this to catch any application-level error from the migration tool.
    """
    pass


class SourceDataError(MigrationError):
    """Raised when a query against the Redmine database fails."""

    def __init__(self, query_name: str, reason: Optional[str] = None):
        message = f"Source query '{query_name}' failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.query_name = query_name
        self.reason = reason


class ConnectionSettingsError(MigrationError):
    """Raised when database connection settings are missing or malformed."""

    def __init__(self, message: str, source: Optional[str] = None):
        if source:
            full_message = f"Connection settings error in {source}: {message}"
        else:
            full_message = f"Connection settings error: {message}"
        super().__init__(full_message)
        self.source = source
        self.original_message = message
