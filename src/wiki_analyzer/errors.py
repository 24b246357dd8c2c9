"""Typed exception hierarchy for analyzer errors.

This module defines the exceptions raised while building the page and
revision sets. Integrity errors are fatal and abort the run; all exceptions
carry the offending ids as attributes.
"""

from typing import List, Optional

from src.redmine_source.errors import MigrationError


class AnalyzerError(MigrationError):
    """Base exception for all analyzer errors."""
    pass


class ConfigError(AnalyzerError):
    """Raised when customization validation fails."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        if config_field:
            full_message = f"Configuration error in field '{config_field}': {message}"
        else:
            full_message = f"Configuration error: {message}"
        super().__init__(full_message)
        self.config_field = config_field
        self.original_message = message


class IntegrityError(AnalyzerError):
    """Base exception for source data that violates a structural invariant."""
    pass


class ParentCycleError(IntegrityError):
    """Raised when a page's parent chain loops or exceeds the depth bound."""

    def __init__(self, page_id: int, chain: List[int]):
        path = " -> ".join(str(node) for node in chain)
        super().__init__(f"Parent chain of page {page_id} does not reach a root: {path}")
        self.page_id = page_id
        self.chain = chain


class MissingParentError(IntegrityError):
    """Raised when a page references a parent that was not loaded."""

    def __init__(self, page_id: int, parent_id: int):
        super().__init__(f"Page {page_id} references missing parent page {parent_id}")
        self.page_id = page_id
        self.parent_id = parent_id


class RevisionChainError(IntegrityError):
    """Raised when a revision references a predecessor that is not present."""

    def __init__(self, page_id: int, version: int, message: str):
        super().__init__(f"Revision chain of page {page_id} broken at version {version}: {message}")
        self.page_id = page_id
        self.version = version


class DuplicateTitleError(IntegrityError):
    """Raised when two pages end up with the same formatted title."""

    def __init__(self, formatted_title: str, page_ids: List[int]):
        ids = ", ".join(str(page_id) for page_id in page_ids)
        super().__init__(f"Formatted title '{formatted_title}' is used by pages {ids}")
        self.formatted_title = formatted_title
        self.page_ids = page_ids


class IdRangeError(IntegrityError):
    """Raised when an id falls outside the range reserved for its kind."""

    def __init__(self, kind: str, value: int, low: int, high: int):
        super().__init__(f"{kind} id {value} outside reserved range [{low}, {high})")
        self.kind = kind
        self.value = value
