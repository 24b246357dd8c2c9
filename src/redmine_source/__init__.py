"""Read-only access to the Redmine database.

This package provides the SQLAlchemy-backed source connection, the loader for
its connection settings, and the root exception of the migration tool.
"""

from .connection import RedmineSource
from .errors import (
    MigrationError,
    SourceDataError,
    ConnectionSettingsError,
)
from .settings import ConnectionSettings, SettingsLoader

__all__ = [
    'RedmineSource',
    'MigrationError',
    'SourceDataError',
    'ConnectionSettingsError',
    'ConnectionSettings',
    'SettingsLoader',
]
