"""Unit tests for wiki_analyzer.attachment_loader module."""

import pytest

from src.wiki_analyzer.attachment_loader import AttachmentLoader, sanitize_filename
from src.wiki_analyzer.config_loader import Customizations
from src.wiki_analyzer.ids import ATTACHMENT_ID_OFFSET, DIAGRAM_ID_OFFSET
from src.wiki_analyzer.models import NS_FILE, PageKind
from src.wiki_analyzer.page_loader import PageLoader
from tests.fixtures.redmine_db import PNG_BASE64, RedmineDatabase


class TestAttachmentLoader:
    """Test cases for AttachmentLoader."""

    @pytest.fixture
    def db(self):
        """Create two wikis whose pages carry attachments and a diagram."""
        db = RedmineDatabase()
        db.add_user(1, "alice")
        db.add_project(7, "Operations", "ops")
        db.add_project(8, "Handbook", "handbook")
        db.add_wiki(1, project_id=7)
        db.add_wiki(2, project_id=8)
        db.add_page(
            10, wiki_id=1, title="A",
            bodies=["<p>{{include_diagram(3--Network)}}</p>", "<p>{{include_diagram(3--Net)}}</p>"],
        )
        db.add_page(20, wiki_id=2, title="A", bodies=["<p>handbook</p>"])
        db.add_attachment(501, page_id=10, filename="logo.png", versions=2)
        db.add_attachment(502, page_id=20, filename="logo.png")
        db.add_attachment(503, page_id=1001, filename="old notes.txt",
                          container_type="WikiContentVersion")
        db.add_diagram(3, "Network map")
        db.add_diagram(4, "Unused")
        return db

    def _load(self, db):
        loaded = PageLoader(db.source(), Customizations()).load()
        loader = AttachmentLoader(db.source(), loaded.pages, loaded.revisions, loaded.user_names, "Redmine")
        return loader.load(), loaded

    def test_colliding_filenames_get_distinct_targets(self, db):
        """The lowest id keeps the filename, others get their id appended."""
        result, _ = self._load(db)

        assert result.attachments[501].latest.target_filename == "logo.png"
        assert result.attachments[502].latest.target_filename == "logo_502.png"
        assert result.samename == {"logo.png": [501, 502]}

    def test_all_versions_share_the_target(self, db):
        """Every version of one attachment uses the same target filename."""
        result, _ = self._load(db)

        versions = result.attachments[501].versions
        assert sorted(versions) == [1, 2]
        assert {v.target_filename for v in versions.values()} == {"logo.png"}
        assert versions[1].source_path == "2021/04/501_1_logo.png"

    def test_file_pages_are_synthesized(self, db):
        """Each attachment gets a file namespace page and one revision."""
        _, loaded = self._load(db)

        page = loaded.pages[ATTACHMENT_ID_OFFSET + 502]
        assert page.namespace == NS_FILE
        assert page.kind == PageKind.FILE
        assert page.formatted_title == "File:logo_502.png"
        assert page.wiki_id == 2
        revision = loaded.revisions[page.page_id][1]
        assert revision.rev_id == page.page_id
        assert revision.needs_conversion is False
        assert revision.author_name == "alice"

    def test_content_version_container_maps_to_page(self, db):
        """Attachments of a content version belong to the version's page."""
        result, loaded = self._load(db)

        assert result.attachments[503].latest.page_id == 10
        assert result.attachments[503].latest.target_filename == "old_notes.txt"
        assert loaded.pages[ATTACHMENT_ID_OFFSET + 503].project_id == 7

    def test_only_referenced_diagrams_are_loaded(self, db):
        """Diagrams are fetched only when a revision embeds them."""
        result, loaded = self._load(db)

        assert list(result.diagrams) == [3]
        diagram = result.diagrams[3]
        assert diagram.data_base64 == PNG_BASE64
        assert diagram.target_filename == "Network_map_3.png"
        page = loaded.pages[DIAGRAM_ID_OFFSET + 3]
        assert page.kind == PageKind.DIAGRAM
        assert page.formatted_title == "File:Network_map_3.png"
        assert loaded.revisions[page.page_id][1].updated_on == "2021-03-02T10:00:00Z"

    def test_empty_diagram_payload_is_skipped(self):
        """A diagram without PNG data is skipped with a warning."""
        db = RedmineDatabase()
        db.add_project(7, "Operations", "ops")
        db.add_wiki(1, project_id=7)
        db.add_page(10, wiki_id=1, title="A", bodies=["{{include_diagram(5--x)}}"])
        db.insert("diagrams", id=5, title="Empty", xml_png="")

        result, loaded = self._load(db)

        assert result.diagrams == {}
        assert DIAGRAM_ID_OFFSET + 5 not in loaded.pages


class TestSanitizeFilename:
    """Test cases for sanitize_filename."""

    def test_replaces_title_breaking_characters(self):
        """Characters that break titles become underscores."""
        assert sanitize_filename("a/b:c#d[1].png") == "a_b_c_d_1_.png"

    def test_normalizes_whitespace(self):
        """Spaces become underscores."""
        assert sanitize_filename("my file.txt") == "my_file.txt"
