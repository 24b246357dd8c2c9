"""Unit tests for wiki_analyzer.redirect_synthesizer module."""

import pytest

from src.wiki_analyzer.ids import INT_MAX
from src.wiki_analyzer.models import Page, PageKind, Revision
from src.wiki_analyzer.redirect_synthesizer import RedirectSynthesizer


def _revision(rev_id, page_id, version, parent_rev_id=None):
    return Revision(
        rev_id=rev_id, page_id=page_id, version=version, parent_rev_id=parent_rev_id,
        author_id=1, author_name="Alice", text="<p>body</p>", updated_on="2021-03-01T10:00:00Z",
    )


def _redirect(redirect_id, title, redirects_to, wiki_id=1, target_wiki_id=None):
    return {
        'id': redirect_id,
        'wiki_id': wiki_id,
        'title': title,
        'redirects_to': redirects_to,
        'redirects_to_wiki_id': target_wiki_id,
        'created_on': "2022-01-15 08:30:00",
    }


class TestRedirectSynthesizer:
    """Test cases for RedirectSynthesizer."""

    @pytest.fixture
    def pages(self):
        """Create pages A and Moved of wiki 1 and A of wiki 2."""
        return {
            10: Page(10, wiki_id=1, project_id=7, title="A", version=1, formatted_title="7_A"),
            11: Page(11, wiki_id=1, project_id=7, title="Moved", version=2, formatted_title="7_Moved"),
            20: Page(20, wiki_id=2, project_id=8, title="A", version=1, formatted_title="8_A"),
        }

    @pytest.fixture
    def revisions(self):
        """Create revision chains for the three pages."""
        return {
            10: {1: _revision(1001, 10, 1)},
            11: {1: _revision(1101, 11, 1), 2: _revision(1102, 11, 2, 1101)},
            20: {1: _revision(2001, 20, 1)},
        }

    @pytest.fixture
    def wikis(self):
        """Create wiki rows of projects 7 and 8."""
        return {
            1: {'wiki_id': 1, 'project_id': 7, 'project_name': "Ops", 'project_identifier': "ops"},
            2: {'wiki_id': 2, 'project_id': 8, 'project_name': "Hb", 'project_identifier': "hb"},
        }

    def _synthesizer(self, pages, revisions, wikis):
        return RedirectSynthesizer(pages, revisions, wikis, "Redmine")

    def test_missing_source_creates_redirect_page(self, pages, revisions, wikis):
        """A redirect whose source page is gone gets a synthetic root page."""
        result = self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Old", "A")])

        assert len(result.created) == 1
        page = pages[INT_MAX]
        assert page.kind == PageKind.REDIRECT
        assert page.formatted_title == "7_Old"
        assert page.redirects_to == "7_A"
        revision = revisions[INT_MAX][1]
        assert revision.rev_id == INT_MAX
        assert revision.text == "#REDIRECT [[7_A]]"
        assert revision.author_name == "Redmine"
        assert revision.needs_conversion is False

    def test_existing_source_gets_appended_revision(self, pages, revisions, wikis):
        """A redirect whose source still exists appends a revision to it."""
        result = self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Moved", "A")])

        assert len(result.appended) == 1
        chain = revisions[11]
        assert sorted(chain) == [1, 2, 3]
        assert chain[3].parent_rev_id == 1102
        assert chain[3].text == "#REDIRECT [[7_A]]"
        assert pages[11].version == 3

    def test_cross_wiki_target(self, pages, revisions, wikis):
        """The target is looked up in redirects_to_wiki_id when given."""
        self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Old", "A", target_wiki_id=2)])

        assert revisions[INT_MAX][1].text == "#REDIRECT [[8_A]]"

    def test_loose_target_match(self, pages, revisions, wikis):
        """Targets differing in case and separators still resolve."""
        self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Old", "moved")])

        assert revisions[INT_MAX][1].text == "#REDIRECT [[7_Moved]]"

    def test_unresolved_synthetic_page_is_discarded(self, pages, revisions, wikis):
        """A synthetic page whose target is unknown is removed again."""
        result = self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Old", "Nowhere")])

        assert INT_MAX not in pages
        assert INT_MAX not in revisions
        assert [note.redirect_id for note in result.dropped] == [1]

    def test_unresolved_appended_revision_is_removed(self, pages, revisions, wikis):
        """An appended revision with an unknown target is removed and the version restored."""
        self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Moved", "Nowhere")])

        assert sorted(revisions[11]) == [1, 2]
        assert pages[11].version == 2

    def test_ids_are_deterministic(self, wikis):
        """Unordered input allocates the same ids as ordered input."""
        rows = [_redirect(2, "Second", "A"), _redirect(1, "First", "A")]
        results = []
        for ordering in (rows, list(reversed(rows))):
            pages = {10: Page(10, wiki_id=1, project_id=7, title="A", version=1, formatted_title="7_A")}
            revisions = {10: {1: _revision(1001, 10, 1)}}
            RedirectSynthesizer(pages, revisions, wikis, "Redmine").run(ordering)
            results.append({pid: page.formatted_title for pid, page in pages.items()})

        assert results[0] == results[1]
        assert results[0][INT_MAX] == "7_First"
        assert results[0][INT_MAX - 1] == "7_Second"

    def test_rows_of_unselected_wikis_are_ignored(self, pages, revisions, wikis):
        """Redirects of wikis outside the migration are skipped."""
        result = self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Old", "A", wiki_id=9)])

        assert result.created == []
        assert INT_MAX not in pages

    def test_redirect_to_dropped_redirect_page_is_dropped(self, pages, revisions, wikis):
        """A redirect pointing at a synthetic page that is discarded goes with it."""
        rows = [_redirect(1, "Old1", "Old2"), _redirect(2, "Old2", "Nowhere")]

        result = self._synthesizer(pages, revisions, wikis).run(rows)

        assert sorted(note.redirect_id for note in result.dropped) == [1, 2]
        assert result.resolved == []
        assert sorted(page.formatted_title for page in pages.values()) == ["7_A", "7_Moved", "8_A"]
        assert INT_MAX not in revisions

    def test_redirect_to_resolved_redirect_page(self, pages, revisions, wikis):
        """A redirect pointing at a surviving synthetic page targets its title."""
        rows = [_redirect(1, "Old1", "Old2"), _redirect(2, "Old2", "A")]

        self._synthesizer(pages, revisions, wikis).run(rows)

        assert revisions[INT_MAX][1].text == "#REDIRECT [[7_Old2]]"
        assert revisions[INT_MAX - 1][1].text == "#REDIRECT [[7_A]]"

    def test_appended_revision_never_predates_its_parent(self, pages, revisions, wikis):
        """An old redirect row is stamped with the time of the revision it follows."""
        row = _redirect(1, "Moved", "A")
        row['created_on'] = "2020-01-01 00:00:00"

        self._synthesizer(pages, revisions, wikis).run([row])

        assert revisions[11][3].updated_on == "2021-03-01T10:00:00Z"

    def test_appended_revision_keeps_later_creation_time(self, pages, revisions, wikis):
        """A redirect created after the last revision keeps its own time."""
        self._synthesizer(pages, revisions, wikis).run([_redirect(1, "Moved", "A")])

        assert revisions[11][3].updated_on == "2022-01-15T08:30:00Z"
