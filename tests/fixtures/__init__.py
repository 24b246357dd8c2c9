"""Test fixtures for the migration tests.

This module provides test fixtures for:
- An in-memory Redmine database with sample data
- Sample page records and Redmine HTML bodies
"""

from .redmine_db import PNG_BASE64, RedmineDatabase, build_sample_database
from .sample_pages import (
    SAMPLE_BODY_WITH_CODE,
    SAMPLE_BODY_WITH_MEDIA,
    IdentityRunner,
    make_file_page,
    make_page,
    sample_title_space,
)

__all__ = [
    "PNG_BASE64",
    "RedmineDatabase",
    "build_sample_database",
    "SAMPLE_BODY_WITH_CODE",
    "SAMPLE_BODY_WITH_MEDIA",
    "IdentityRunner",
    "make_file_page",
    "make_page",
    "sample_title_space",
]
