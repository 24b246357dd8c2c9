"""The compose stage.

Serializes pages, revisions and converted wikitext into one XML dump that
a wiki importer reads: a ``<mediawiki>`` root with one ``<page>`` per page
and one ``<revision>`` per version, in version order.
"""

import logging
import os
import xml.etree.ElementTree as ET
from typing import Any, Optional

from src.workspace import buckets
from src.workspace.bucket_store import BucketStore
from src.wiki_analyzer.analyzer import AnalysisResult
from src.wiki_analyzer.models import Revision

from .errors import ExportError

logger = logging.getLogger(__name__)

RESULT_DIR = "result"
OUTPUT_FILENAME = "redmine-output.xml"


def format_username(name: str) -> str:
    """Lower-case an author name and upper-case its first letter."""
    lowered = name.lower()
    return lowered[:1].upper() + lowered[1:]


def _add_text(parent: ET.Element, name: str, value: Any) -> Optional[ET.Element]:
    """Append a text element, skipping null values."""
    if value is None:
        return None
    element = ET.SubElement(parent, name)
    element.text = str(value)
    return element


class DumpComposer:
    """Builds the XML dump from the workspace buckets.

    Example:
        >>> store = BucketStore("workspace", buckets.COMPOSE_BUCKETS)
        >>> store.load()
        >>> DumpComposer(store).write("workspace/result/redmine-output.xml")
    """

    def __init__(self, store: BucketStore):
        self._store = store

    def build(self) -> ET.Element:
        """Build the ``<mediawiki>`` element tree."""
        analysis = AnalysisResult.from_store(self._store)
        wikitext = self._store.get(buckets.REVISION_WIKITEXT)
        fallback_author = analysis.customizations.fallback_author

        root = ET.Element('mediawiki')
        for page_id in sorted(analysis.pages):
            page = analysis.pages[page_id]
            page_element = ET.SubElement(root, 'page')
            _add_text(page_element, 'title', page.formatted_title)
            _add_text(page_element, 'id', page_id)
            if page.redirects_to:
                ET.SubElement(page_element, 'redirect', title=page.redirects_to)

            chain = analysis.revisions.get(page_id, {})
            texts = wikitext.get(str(page_id), {})
            for version in sorted(chain):
                text = texts.get(str(version))
                if text is None:
                    logger.warning(
                        f"No converted text for page {page_id} version {version}, using source text"
                    )
                    text = chain[version].text
                self._add_revision(page_element, chain[version], text, fallback_author)

        return root

    @staticmethod
    def _add_revision(
        page_element: ET.Element,
        revision: Revision,
        text: str,
        fallback_author: str
    ) -> None:
        element = ET.SubElement(page_element, 'revision')
        _add_text(element, 'id', revision.rev_id)
        _add_text(element, 'parentid', revision.parent_rev_id)
        _add_text(element, 'timestamp', revision.updated_on)
        _add_text(element, 'comment', revision.comments)
        _add_text(element, 'model', 'wikitext')
        _add_text(element, 'format', 'text/x-wiki')
        contributor = ET.SubElement(element, 'contributor')
        _add_text(contributor, 'username', format_username(revision.author_name or fallback_author))
        _add_text(contributor, 'id', revision.author_id)
        _add_text(element, 'text', text)

    def write(self, path: str) -> int:
        """Write the dump to path.

        Returns:
            Number of pages written

        Raises:
            ExportError: If the file cannot be written
        """
        root = self.build()
        ET.indent(root)
        try:
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
            ET.ElementTree(root).write(path, encoding='utf-8', xml_declaration=True)
        except OSError as e:
            raise ExportError(path, f"Failed to write dump: {e}")
        logger.info(f"Wrote {len(root)} pages to {path}")
        return len(root)
