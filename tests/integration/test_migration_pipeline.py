"""Integration tests for the analyze, extract, convert and compose stages.

Each test runs the real stage classes against the sample Redmine database
and checks the buckets and the XML dump they leave in the workspace.
"""

import xml.etree.ElementTree as ET
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from src.cli.main import app
from src.cli.models import ExitCode
from src.content_converter.wiki_converter import WikiConverter
from src.export.composer import DumpComposer
from src.export.extractor import AttachmentExtractor
from src.wiki_analyzer.analyzer import WikiAnalyzer
from src.wiki_analyzer.config_loader import Customizations
from src.wiki_analyzer.ids import INT_MAX
from src.workspace import buckets
from src.workspace.bucket_store import BucketStore


runner = CliRunner()


def _titles(root):
    return {page.findtext('id'): page.findtext('title') for page in root.findall('page')}


class TestStagePipeline:
    """Stage classes chained through one bucket store."""

    def test_titles_are_hierarchical_and_unique(self, redmine_db, all_buckets_store):
        """Child pages are prefixed with their parent and root titles with the project."""
        WikiAnalyzer(redmine_db.source(), all_buckets_store, Customizations()).run()

        pages = all_buckets_store.get(buckets.WIKI_PAGES)
        titles = [page["formatted_title"] for page in pages.values()]
        assert pages["10"]["formatted_title"] == "7_A"
        assert pages["11"]["formatted_title"] == "7_A/B"
        assert pages["20"]["formatted_title"] == "8_A"
        assert len(titles) == len(set(titles))

    def test_revision_chains(self, redmine_db, all_buckets_store):
        """Revisions of a page link to their predecessor."""
        WikiAnalyzer(redmine_db.source(), all_buckets_store, Customizations()).run()

        chain = all_buckets_store.get(buckets.PAGE_REVISIONS)["10"]
        assert chain["1"]["parent_rev_id"] is None
        assert chain["2"]["parent_rev_id"] == chain["1"]["rev_id"] == 1001

    def test_redirect_page(self, redmine_db, all_buckets_store):
        """The resolved redirect becomes a page whose body is the directive."""
        WikiAnalyzer(redmine_db.source(), all_buckets_store, Customizations()).run()

        page = all_buckets_store.get(buckets.WIKI_PAGES)[str(INT_MAX)]
        revision = all_buckets_store.get(buckets.PAGE_REVISIONS)[str(INT_MAX)]["1"]
        assert page["formatted_title"] == "7_Old"
        assert revision["text"] == "#REDIRECT [[7_A]]"

    def test_same_name_attachments_get_distinct_targets(self, redmine_db, all_buckets_store):
        """Attachments sharing a filename are disambiguated by id."""
        WikiAnalyzer(redmine_db.source(), all_buckets_store, Customizations()).run()

        files = all_buckets_store.get(buckets.ATTACHMENT_FILES)
        assert files["501"]["1"]["target_filename"] == "logo.png"
        assert files["502"]["1"]["target_filename"] == "logo_502.png"

    def test_rerun_allocates_the_same_ids(self, redmine_db, tmp_path):
        """Analyzing the same database twice gives identical buckets."""
        first = BucketStore(str(tmp_path / "one"), buckets.ANALYZE_BUCKETS)
        second = BucketStore(str(tmp_path / "two"), buckets.ANALYZE_BUCKETS)

        WikiAnalyzer(redmine_db.source(), first, Customizations()).run()
        WikiAnalyzer(redmine_db.source(), second, Customizations()).run()

        assert first.get(buckets.WIKI_PAGES) == second.get(buckets.WIKI_PAGES)
        assert first.get(buckets.PAGE_REVISIONS) == second.get(buckets.PAGE_REVISIONS)

    def test_unresolved_link_reported_for_latest_version(
        self, redmine_db, all_buckets_store, identity_runner
    ):
        """A missing link target is kept and reported once, for the latest version."""
        WikiAnalyzer(redmine_db.source(), all_buckets_store, Customizations()).run()
        WikiConverter(all_buckets_store, identity_runner).run()

        wikitext = all_buckets_store.get(buckets.REVISION_WIKITEXT)
        assert wikitext["12"]["1"] == "<p>See [[NonExistentPage]]</p>"
        assert "[[NonExistentPage]]" in wikitext["12"]["2"]
        assert all_buckets_store.get(buckets.INVALID_LINKS) == {
            "12": {'formatted_title': "7_Links", 'version': 2, 'links': ["[[NonExistentPage]]"]}
        }

    def test_plain_text_survives(self, redmine_db, all_buckets_store, identity_runner):
        """Bodies without markup to rewrite come out unchanged."""
        WikiAnalyzer(redmine_db.source(), all_buckets_store, Customizations()).run()
        WikiConverter(all_buckets_store, identity_runner).run()

        assert all_buckets_store.get(buckets.REVISION_WIKITEXT)["11"]["1"] == "<p>Child page</p>"

    def test_extract_then_compose(
        self, redmine_db, all_buckets_store, identity_runner, files_dir, workspace_dir
    ):
        """Files land in the images folder and every page lands in the dump."""
        WikiAnalyzer(redmine_db.source(), all_buckets_store, Customizations()).run()
        summary = AttachmentExtractor(all_buckets_store, str(files_dir), str(workspace_dir)).run()
        WikiConverter(all_buckets_store, identity_runner).run()
        path = workspace_dir / "result" / "redmine-output.xml"
        count = DumpComposer(all_buckets_store).write(str(path))

        assert summary.copied == 2
        assert (workspace_dir / "images" / "logo.png").read_bytes() == b"ops-logo"
        assert (workspace_dir / "images" / "logo_502.png").read_bytes() == b"handbook-logo"
        titles = _titles(ET.parse(str(path)).getroot())
        assert count == len(titles)
        assert {"7_A", "7_A/B", "7_Links", "8_A", "7_Old", "File:logo.png", "File:logo_502.png"} <= set(
            titles.values()
        )


class TestCommandLinePipeline:
    """The four stage commands run one after another on a workspace."""

    @pytest.fixture
    def connection_file(self, tmp_path):
        """Write a connection file for the sample database."""
        path = tmp_path / "connection.yaml"
        path.write_text('url: "sqlite://"\n')
        return path

    def test_all_stages(self, redmine_db, identity_runner, connection_file, files_dir, workspace_dir):
        """analyze, extract, convert and compose each succeed and produce the dump."""
        dest = str(workspace_dir)
        with patch('src.cli.main.RedmineSource.from_url', return_value=redmine_db.source()), \
                patch('src.cli.main.PandocRunner', return_value=identity_runner):
            steps = [
                ["analyze", "--src", str(connection_file), "--dest", dest, "--no-color"],
                ["extract", "--src", str(files_dir), "--dest", dest, "--no-color"],
                ["convert", "--dest", dest, "--workers", "2", "--no-color"],
                ["compose", "--dest", dest, "--no-color"],
            ]
            for step in steps:
                result = runner.invoke(app, step)
                assert result.exit_code == ExitCode.SUCCESS, f"{step[0]}: {result.output}"

        root = ET.parse(str(workspace_dir / "result" / "redmine-output.xml")).getroot()
        redirect = next(page for page in root.findall('page') if page.findtext('title') == "7_Old")
        assert redirect.find('redirect').get('title') == "7_A"
        assert (workspace_dir / "buckets" / "invalid-links.json").exists()
