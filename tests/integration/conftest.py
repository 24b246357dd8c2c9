"""Pytest configuration and fixtures for integration tests.

Integration tests run every migration stage against an in-memory Redmine
database and a temporary workspace. The external converter is replaced by
an identity runner so pandoc is not needed.
"""

from pathlib import Path

import pytest

from src.workspace import buckets
from src.workspace.bucket_store import BucketStore
from tests.fixtures.redmine_db import RedmineDatabase, build_sample_database
from tests.fixtures.sample_pages import IdentityRunner


@pytest.fixture
def redmine_db() -> RedmineDatabase:
    """Sample Redmine database with two projects, a redirect and attachments."""
    return build_sample_database()


@pytest.fixture
def workspace_dir(tmp_path) -> Path:
    """Empty workspace directory."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def files_dir(tmp_path) -> Path:
    """Redmine files directory holding the sample attachments."""
    path = tmp_path / "files"
    (path / "2021" / "04").mkdir(parents=True)
    (path / "2021" / "04" / "501_1_logo.png").write_bytes(b"ops-logo")
    (path / "2021" / "04" / "502_1_logo.png").write_bytes(b"handbook-logo")
    return path


@pytest.fixture
def identity_runner() -> IdentityRunner:
    """Converter stand-in returning its input."""
    return IdentityRunner()


@pytest.fixture
def all_buckets_store(workspace_dir) -> BucketStore:
    """Store managing every bucket of every stage."""
    names = list(dict.fromkeys(
        buckets.ANALYZE_BUCKETS + buckets.EXTRACT_BUCKETS
        + buckets.CONVERT_BUCKETS + buckets.COMPOSE_BUCKETS
    ))
    return BucketStore(str(workspace_dir), names)
