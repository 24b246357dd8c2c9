"""Attachment and diagram loading.

Attachments and embedded diagrams become pages in the file namespace so
that links and images can address them like any other title. This module
collects attachment version histories, disambiguates colliding filenames,
fetches only the diagrams that revisions actually embed, and synthesizes
one page with one revision for every attachment and diagram.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from src.redmine_source.connection import RedmineSource
from src.wiki_analyzer.ids import attachment_page_id, diagram_page_id
from src.wiki_analyzer.models import (
    FILE_PREFIX,
    NS_FILE,
    AttachmentFile,
    AttachmentVersion,
    DiagramContent,
    Page,
    PageKind,
    Revision,
    format_timestamp,
)
from src.wiki_analyzer.title_matching import normalize_whitespace

logger = logging.getLogger(__name__)

PAGE_CONTAINER = 'WikiPage'
CONTENT_VERSION_CONTAINER = 'WikiContentVersion'

DIAGRAM_MACRO = re.compile(r'\{\{include_diagram\((\d+)--([^)]+)\)\}\}', re.IGNORECASE)

_DATA_URI_PREFIX = re.compile(r'^data:[^;,]*;base64,', re.IGNORECASE)
_UNSAFE_FILENAME = re.compile(r'[/\\:#<>\[\]|{}]')


@dataclass
class AttachmentResult:
    """Attachments, diagrams and the filename disambiguation table.

    Attributes:
        attachments: Attachment histories keyed by attachment id
        diagrams: Referenced diagrams keyed by diagram id
        samename: Original filename -> attachment ids sharing it (only collisions)
    """
    attachments: Dict[int, AttachmentFile] = field(default_factory=dict)
    diagrams: Dict[int, DiagramContent] = field(default_factory=dict)
    samename: Dict[str, List[int]] = field(default_factory=dict)


class AttachmentLoader:
    """Loads attachments and diagrams and synthesizes their file pages.

    Example:
        >>> loader = AttachmentLoader(source, pages, revisions, user_names, "Redmine")
        >>> result = loader.load()
    """

    def __init__(
        self,
        source: RedmineSource,
        pages: Dict[int, Page],
        revisions: Dict[int, Dict[int, Revision]],
        user_names: Dict[int, str],
        fallback_author: str
    ):
        """Initialize the loader.

        Args:
            source: Redmine database source
            pages: Page map, extended in place with file pages
            revisions: Revision map, extended in place
            user_names: Author display names keyed by user id
            fallback_author: Author name for diagram pages
        """
        self._source = source
        self._pages = pages
        self._revisions = revisions
        self._user_names = user_names
        self._fallback_author = fallback_author

    def load(self) -> AttachmentResult:
        """Load attachments and diagrams and add their file pages."""
        result = AttachmentResult()
        self._load_attachments(result)
        self._assign_target_filenames(result)
        for attachment in result.attachments.values():
            self._synthesize_attachment_page(attachment)

        self._load_diagrams(result)
        logger.info(
            f"Loaded {len(result.attachments)} attachments and {len(result.diagrams)} diagrams"
        )
        return result

    def _load_attachments(self, result: AttachmentResult) -> None:
        native_page_ids = [
            page.page_id for page in self._pages.values() if page.kind == PageKind.NATIVE
        ]
        content_owners = {
            revision.rev_id: page_id
            for page_id in native_page_ids
            for revision in self._revisions.get(page_id, {}).values()
        }

        live_rows = self._source.fetch_attachment_versions(PAGE_CONTAINER, native_page_ids)
        for row in live_rows:
            self._add_version(result, row, PAGE_CONTAINER, row['container_id'])

        orphan_rows = self._source.fetch_attachment_versions(
            CONTENT_VERSION_CONTAINER, list(content_owners)
        )
        for row in orphan_rows:
            self._add_version(
                result, row, CONTENT_VERSION_CONTAINER, content_owners.get(row['container_id'])
            )

    def _add_version(
        self,
        result: AttachmentResult,
        row: Dict[str, Any],
        container_type: str,
        page_id: Optional[int]
    ) -> None:
        attachment = result.attachments.setdefault(
            row['attachment_id'], AttachmentFile(attachment_id=row['attachment_id'])
        )
        if row['version'] in attachment.versions:
            return
        disk_directory = row.get('disk_directory') or ""
        attachment.versions[row['version']] = AttachmentVersion(
            version=row['version'],
            created_on=format_timestamp(row.get('created_on')),
            updated_on=format_timestamp(row.get('updated_at') or row.get('created_on')),
            summary=row.get('description') or "",
            author_id=row.get('author_id'),
            filename=row['filename'],
            target_filename="",
            source_path=os.path.join(disk_directory, row['disk_filename']),
            page_id=page_id,
            container_id=row['container_id'],
            container_type=container_type,
        )

    def _assign_target_filenames(self, result: AttachmentResult) -> None:
        """Give every attachment a unique target filename.

        The lowest attachment id keeps the plain filename; every other
        attachment with the same filename gets its id appended to the stem.
        """
        groups: Dict[str, List[int]] = {}
        for attachment_id in sorted(result.attachments):
            filename = sanitize_filename(result.attachments[attachment_id].latest.filename)
            groups.setdefault(filename, []).append(attachment_id)

        used: Set[str] = set(groups)
        for filename, attachment_ids in groups.items():
            if len(attachment_ids) > 1:
                result.samename[filename] = attachment_ids
            for position, attachment_id in enumerate(attachment_ids):
                target = filename
                if position > 0:
                    stem, ext = os.path.splitext(filename)
                    target = f"{stem}_{attachment_id}{ext}"
                    while target in used:
                        stem = f"{stem}_{attachment_id}"
                        target = f"{stem}{ext}"
                    used.add(target)
                for version in result.attachments[attachment_id].versions.values():
                    version.target_filename = target

        if result.samename:
            logger.info(f"Disambiguated {len(result.samename)} colliding attachment filenames")

    def _synthesize_attachment_page(self, attachment: AttachmentFile) -> None:
        latest = attachment.latest
        owner = self._pages.get(latest.page_id) if latest.page_id is not None else None
        page_id = attachment_page_id(attachment.attachment_id)

        self._pages[page_id] = Page(
            page_id=page_id,
            wiki_id=owner.wiki_id if owner else 0,
            project_id=owner.project_id if owner else 0,
            title=latest.filename,
            version=1,
            namespace=NS_FILE,
            kind=PageKind.FILE,
            formatted_title=FILE_PREFIX + latest.target_filename,
            project_name=owner.project_name if owner else "",
            project_identifier=owner.project_identifier if owner else "",
        )
        self._revisions[page_id] = {
            1: Revision(
                rev_id=page_id,
                page_id=page_id,
                version=1,
                parent_rev_id=None,
                author_id=latest.author_id,
                author_name=self._user_names.get(latest.author_id),
                text=latest.summary,
                comments=latest.summary,
                updated_on=latest.updated_on or latest.created_on,
                needs_conversion=False,
            )
        }

    def _load_diagrams(self, result: AttachmentResult) -> None:
        """Fetch diagrams embedded by any loaded revision and add their pages."""
        references: Dict[int, Revision] = {}
        for chain in self._revisions.values():
            for revision in chain.values():
                if not revision.needs_conversion:
                    continue
                for match in DIAGRAM_MACRO.finditer(revision.text):
                    diagram_id = int(match.group(1))
                    known = references.get(diagram_id)
                    if known is None or revision.updated_on > known.updated_on:
                        references[diagram_id] = revision

        if not references:
            return

        for row in self._source.fetch_diagrams(sorted(references)):
            encoded = _DATA_URI_PREFIX.sub('', (row.get('xml_png') or '').strip())
            if not encoded:
                logger.warning(f"Diagram {row['id']} has no PNG payload, skipped")
                continue
            title = row.get('title') or f"Diagram {row['id']}"
            target_filename = f"{sanitize_filename(title)}_{row['id']}.png"
            diagram = DiagramContent(
                diagram_id=row['id'],
                title=title,
                data_base64=encoded,
                target_filename=target_filename,
                formatted_title=FILE_PREFIX + target_filename,
            )
            result.diagrams[diagram.diagram_id] = diagram
            self._synthesize_diagram_page(diagram, references[diagram.diagram_id])

        missing = set(references) - set(result.diagrams)
        for diagram_id in sorted(missing):
            logger.warning(f"Diagram {diagram_id} is embedded but could not be loaded")

    def _synthesize_diagram_page(self, diagram: DiagramContent, reference: Revision) -> None:
        owner = self._pages[reference.page_id]
        page_id = diagram_page_id(diagram.diagram_id)
        self._pages[page_id] = Page(
            page_id=page_id,
            wiki_id=owner.wiki_id,
            project_id=owner.project_id,
            title=diagram.target_filename,
            version=1,
            namespace=NS_FILE,
            kind=PageKind.DIAGRAM,
            formatted_title=diagram.formatted_title,
            project_name=owner.project_name,
            project_identifier=owner.project_identifier,
        )
        self._revisions[page_id] = {
            1: Revision(
                rev_id=page_id,
                page_id=page_id,
                version=1,
                parent_rev_id=None,
                author_id=reference.author_id,
                author_name=reference.author_name or self._fallback_author,
                text=diagram.title,
                comments=diagram.title,
                updated_on=reference.updated_on,
                needs_conversion=False,
            )
        }


def sanitize_filename(filename: str) -> str:
    """Make a filename usable as a title in the file namespace."""
    return normalize_whitespace(_UNSAFE_FILENAME.sub('_', filename))
