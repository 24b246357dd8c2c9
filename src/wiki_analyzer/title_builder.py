"""Hierarchical title building from Redmine parent chains.

This module walks a page's parent chain up to its root and composes a
path-like title, root segment first. Root titles are not unique across
projects, so the root segment is disambiguated by the project id (or by a
configured wiki name).
"""

import logging
from typing import Dict, List, Mapping, Optional

from src.wiki_analyzer.errors import MissingParentError, ParentCycleError
from src.wiki_analyzer.models import Page
from src.wiki_analyzer.title_matching import normalize_whitespace

logger = logging.getLogger(__name__)

SEPARATOR = "/"


class TitleBuilder:
    """Builds unique hierarchical titles for pages.

    The walk is an iterative loop over the page map with a visited set, so a
    cyclic parent chain is detected instead of looping forever, and a depth
    bound rejects chains that are implausibly deep.

    Example:
        >>> pages = {1: Page(1, wiki_id=1, project_id=7, title="Start"),
        ...          2: Page(2, wiki_id=1, project_id=7, title="Setup", parent_id=1)}
        >>> TitleBuilder(pages).build(2)
        '7_Start/Setup'
    """

    MAX_DEPTH = 256

    def __init__(
        self,
        pages: Mapping[int, Page],
        wiki_names: Optional[Mapping[int, str]] = None,
        max_depth: int = MAX_DEPTH
    ):
        """Initialize the builder.

        Args:
            pages: Every loaded page keyed by page id
            wiki_names: Optional root segment per wiki id
            max_depth: Maximum number of parent hops before giving up
        """
        self._pages = pages
        self._wiki_names: Dict[int, str] = dict(wiki_names or {})
        self._max_depth = max_depth

    def build(self, page_id: int) -> str:
        """Build the formatted title of a page.

        Args:
            page_id: Id of the page to title

        Returns:
            Root-to-leaf segments joined by '/', whitespace normalized to '_'

        Raises:
            ParentCycleError: If the parent chain loops or exceeds max_depth
            MissingParentError: If a parent id is not in the page map
        """
        segments: List[str] = []
        visited: List[int] = []
        current = self._pages[page_id]

        while current.parent_id is not None:
            if current.page_id in visited or len(visited) >= self._max_depth:
                raise ParentCycleError(page_id, visited + [current.page_id])
            visited.append(current.page_id)
            segments.append(current.title)

            parent = self._pages.get(current.parent_id)
            if parent is None:
                raise MissingParentError(current.page_id, current.parent_id)
            current = parent

        segments.append(self.root_segment(current))
        segments.reverse()
        return SEPARATOR.join(normalize_whitespace(segment) for segment in segments)

    def root_segment(self, page: Page) -> str:
        """Return the disambiguated title segment of a root page.

        The configured wiki name replaces the project id as prefix when one
        is given for the page's wiki.
        """
        prefix = self._wiki_names.get(page.wiki_id, page.project_id)
        return f"{prefix}_{page.title}"

    def build_all(self) -> Dict[int, str]:
        """Build formatted titles for every page in the map."""
        titles = {page_id: self.build(page_id) for page_id in self._pages}
        logger.debug(f"Built {len(titles)} formatted titles")
        return titles
