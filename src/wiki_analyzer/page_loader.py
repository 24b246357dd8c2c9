"""Page and revision loading from the Redmine database.

This module reads wikis, pages, content versions and users, applies the
exclusion and renaming rules of the customizations, runs the title builder
for every page and links each page's versions into a revision chain.
"""

import logging
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.redmine_source.connection import RedmineSource
from src.wiki_analyzer.config_loader import Customizations
from src.wiki_analyzer.ids import check_native_id
from src.wiki_analyzer.models import Page, Revision, format_timestamp
from src.wiki_analyzer.title_builder import TitleBuilder

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Pages, revisions and lookup tables produced by the loader.

    Attributes:
        pages: Pages keyed by page id
        revisions: Revisions keyed by page id, then version
        wikis: Wiki rows keyed by wiki id
        user_names: Author display names keyed by user id
        excluded_page_ids: Pages dropped by customization rules
    """
    pages: Dict[int, Page] = field(default_factory=dict)
    revisions: Dict[int, Dict[int, Revision]] = field(default_factory=dict)
    wikis: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    user_names: Dict[int, str] = field(default_factory=dict)
    excluded_page_ids: List[int] = field(default_factory=list)


class PageLoader:
    """Builds the canonical page and revision sets.

    Example:
        >>> loader = PageLoader(source, Customizations())
        >>> result = loader.load()
        >>> print(result.pages[12].formatted_title)
    """

    def __init__(
        self,
        source: RedmineSource,
        customizations: Customizations,
        wiki_names: Optional[Dict[int, str]] = None
    ):
        """Initialize the loader.

        Args:
            source: Redmine database source
            customizations: Migration customizations
            wiki_names: Optional root segment prefix per wiki id
        """
        self._source = source
        self._customizations = customizations
        self._wiki_names = wiki_names or {}

    def load(self, wiki_ids: Optional[List[int]] = None) -> LoadResult:
        """Load pages and revisions of the selected wikis.

        Args:
            wiki_ids: Wiki ids to migrate (None or empty for every active wiki)

        Returns:
            LoadResult with titled pages and chained revisions

        Raises:
            IntegrityError: If a parent chain is cyclic or broken, or an id is out of range
            SourceDataError: If a query fails
        """
        result = LoadResult()

        unwanted = set(self._customizations.unwanted_projects)
        for row in self._source.fetch_wikis(wiki_ids):
            if row['project_id'] in unwanted:
                logger.info(f"Skipping wiki {row['wiki_id']} of unwanted project {row['project_id']}")
                continue
            result.wikis[row['wiki_id']] = row

        if not result.wikis:
            logger.warning("No wikis selected for migration")
            return result

        result.user_names = {
            row['id']: row['login'] for row in self._source.fetch_users() if row.get('login')
        }

        for row in self._source.fetch_pages(list(result.wikis)):
            page = self._create_page(row, result.wikis[row['wiki_id']])
            result.pages[page.page_id] = page
        logger.info(f"Loaded {len(result.pages)} pages from {len(result.wikis)} wikis")

        titles = TitleBuilder(result.pages, self._wiki_names).build_all()
        for page_id, title in titles.items():
            result.pages[page_id].formatted_title = title

        self._apply_customizations(result)

        rows = self._source.fetch_content_versions(list(result.pages))
        self._load_revisions(rows, result)
        return result

    def _create_page(self, row: Dict[str, Any], wiki: Dict[str, Any]) -> Page:
        return Page(
            page_id=check_native_id(row['page_id']),
            wiki_id=row['wiki_id'],
            project_id=row['project_id'],
            title=row['title'],
            parent_id=row['parent_id'],
            content_id=row['content_id'],
            version=row['version'],
            protected=bool(row['protected']),
            project_name=wiki.get('project_name') or "",
            project_identifier=wiki.get('project_identifier') or "",
        )

    def _apply_customizations(self, result: LoadResult) -> None:
        """Apply pages-to-modify and categories-to-add by formatted title."""
        modify = self._customizations.pages_to_modify
        categories = self._customizations.categories_to_add

        for page_id in list(result.pages):
            page = result.pages[page_id]
            original_title = page.formatted_title
            if original_title in modify:
                new_title = modify[original_title]
                if new_title is False:
                    logger.info(f"Excluding page {page_id} ('{original_title}') by customization")
                    del result.pages[page_id]
                    result.excluded_page_ids.append(page_id)
                    continue
                page.formatted_title = str(new_title)
                logger.debug(f"Renamed page {page_id}: '{original_title}' -> '{new_title}'")

            for title in (original_title, page.formatted_title):
                for category in categories.get(title, []):
                    if category not in page.categories:
                        page.categories.append(category)

    def _load_revisions(self, rows: List[Dict[str, Any]], result: LoadResult) -> None:
        """Group content versions per page and link them into chains."""
        current_only = self._customizations.current_revision_only
        missing_authors = set()

        for row in rows:
            page = result.pages.get(row['page_id'])
            if page is None:
                continue
            if current_only and row['version'] != page.version:
                continue

            author_name = result.user_names.get(row['author_id'])
            if author_name is None and row['author_id'] not in missing_authors:
                missing_authors.add(row['author_id'])
                logger.warning(
                    f"No user name for author {row['author_id']} "
                    f"(page {page.page_id}, version {row['version']})"
                )

            chain = result.revisions.setdefault(page.page_id, {})
            parent_rev_id = None
            if chain:
                parent_rev_id = chain[max(chain)].rev_id

            chain[row['version']] = Revision(
                rev_id=check_native_id(row['rev_id']),
                page_id=page.page_id,
                version=row['version'],
                parent_rev_id=parent_rev_id,
                author_id=row['author_id'],
                author_name=author_name,
                text=decode_content(row['data'], row.get('compression')),
                comments=row.get('comments') or "",
                updated_on=format_timestamp(row['updated_on']),
            )

        for page_id in result.pages:
            if page_id not in result.revisions:
                logger.warning(f"Page {page_id} has no content versions")
        logger.info(f"Loaded {sum(len(c) for c in result.revisions.values())} revisions")


def decode_content(data: Any, compression: Optional[str] = None) -> str:
    """Decode a stored content version body.

    Redmine stores version data either plain or zlib-deflated when the
    compression column says 'gzip'.
    """
    if data is None:
        return ""
    if isinstance(data, str):
        if compression == 'gzip':
            data = data.encode('latin-1')
        else:
            return data
    if compression == 'gzip':
        data = zlib.decompress(data)
    return bytes(data).decode('utf-8', errors='replace')
