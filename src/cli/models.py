"""Data models for CLI operations."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for the migration stages.

    - SUCCESS (0): Stage completed successfully
    - GENERAL_ERROR (1): General error (configuration, workspace or file problems)
    - INTEGRITY_ERROR (2): Source data violates a structural invariant
    - SOURCE_ERROR (3): The Redmine database could not be queried

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    INTEGRITY_ERROR = 2
    SOURCE_ERROR = 3
