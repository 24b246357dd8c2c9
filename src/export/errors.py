"""Typed exceptions for the extract and compose stages."""

from src.redmine_source.errors import MigrationError


class ExportError(MigrationError):
    """Raised when an output file or directory cannot be written.

    Attributes:
        path: Path that could not be written
        message: Error description
    """

    def __init__(self, path: str, message: str):
        super().__init__(f"Export error at {path}: {message}")
        self.path = path
        self.message = message
