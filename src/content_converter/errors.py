"""Typed exceptions for content conversion.

Per-call failures of the external converter never raise; they degrade to
passing the input through. ConversionError is reserved for usage errors
such as a missing converter binary or an unknown dialect.
"""

from src.redmine_source.errors import MigrationError


class ConversionError(MigrationError):
    """Raised when the converter is used incorrectly or cannot run at all."""
    pass
