"""Unit tests for redmine_source.connection module."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.redmine_source.connection import RedmineSource
from src.redmine_source.errors import SourceDataError
from tests.fixtures.redmine_db import RedmineDatabase


class TestRedmineSource:
    """Test cases for RedmineSource queries."""

    @pytest.fixture
    def db(self):
        """Create a database with one project, two wikis and a page."""
        db = RedmineDatabase()
        db.add_project(7, "Operations", "ops")
        db.add_wiki(1, project_id=7)
        db.add_wiki(2, project_id=7, status=2)
        db.add_page(10, wiki_id=1, title="Start", bodies=["<p>v1</p>", "<p>v2</p>"])
        return db

    def test_fetch_wikis_skips_inactive(self, db):
        """Only wikis with status 1 are returned, joined with their project."""
        wikis = db.source().fetch_wikis()

        assert [w['wiki_id'] for w in wikis] == [1]
        assert wikis[0]['project_name'] == "Operations"
        assert wikis[0]['project_identifier'] == "ops"

    def test_fetch_wikis_by_id(self, db):
        """Restrict wikis to the given ids."""
        assert db.source().fetch_wikis([2]) == []
        assert len(db.source().fetch_wikis([1])) == 1

    def test_fetch_pages_joins_content(self, db):
        """Pages carry their current content id and version."""
        pages = db.source().fetch_pages([1])

        assert len(pages) == 1
        assert pages[0]['page_id'] == 10
        assert pages[0]['version'] == 2
        assert pages[0]['project_id'] == 7

    def test_fetch_content_versions_ordered(self, db):
        """Content versions come back oldest first."""
        rows = db.source().fetch_content_versions([10])

        assert [row['version'] for row in rows] == [1, 2]
        assert [row['rev_id'] for row in rows] == [1001, 1002]

    def test_empty_id_list_skips_query(self):
        """An empty id list returns no rows without touching the database."""
        engine = MagicMock()
        source = RedmineSource(engine)

        assert source.fetch_pages([]) == []
        engine.connect.assert_not_called()

    def test_query_failure_raises_source_data_error(self):
        """Database errors are wrapped with the query name."""
        engine = MagicMock()
        engine.connect.side_effect = OperationalError("SELECT", {}, Exception("no such table"))
        source = RedmineSource(engine)

        with pytest.raises(SourceDataError) as exc_info:
            source.fetch_users()

        assert exc_info.value.query_name == 'users'
