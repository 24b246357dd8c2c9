"""Lookups over the frozen title space.

TitleSpace indexes every page once so the conversion stages can map raw
titles, page ids and attachment URLs to formatted titles. It is read-only
after construction and safe to share between worker threads.
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from src.wiki_analyzer.config_loader import Customizations
from src.wiki_analyzer.ids import ATTACHMENT_ID_OFFSET
from src.wiki_analyzer.models import Page
from src.wiki_analyzer.title_matching import loose_key

from .diagnostics import ConversionDiagnostics

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = ('.png', '.jpg', '.gif')


class TitleSpace:
    """Index of formatted titles, raw titles and loose title keys.

    Example:
        >>> space = TitleSpace(pages, Customizations(), ConversionDiagnostics())
        >>> space.formatted_title("logo.png")
        'File:logo.png'
    """

    def __init__(
        self,
        pages: Dict[int, Page],
        customizations: Customizations,
        diagnostics: ConversionDiagnostics
    ):
        """Initialize the index.

        Args:
            pages: Every page of the migrated title space
            customizations: Migration customizations (domain, cheatsheet, stories)
            diagnostics: Collector for titles and attachments that cannot be found
        """
        self.pages = pages
        self.customizations = customizations
        self.diagnostics = diagnostics

        self._ordered: List[Page] = [pages[page_id] for page_id in sorted(pages)]
        self._by_formatted: Dict[str, Page] = {}
        self._by_raw: Dict[str, Page] = {}
        for page in self._ordered:
            self._by_formatted.setdefault(page.formatted_title, page)
            self._by_raw.setdefault(page.title, page)
        self._loose: List[Tuple[Page, str]] = [
            (page, loose_key(page.title)) for page in self._ordered
        ]

        self._attachment_link = None
        if customizations.redmine_domain:
            self._attachment_link = re.compile(
                r'https?://' + re.escape(customizations.redmine_domain) + r'/attachments/'
                r'(?:(?:download|thumbnail)/)?(\d+)(?:/[^?#\s]*)?(?:\?[^#\s]*)?(?:#\S*)?'
            )

    @property
    def domain(self) -> Optional[str]:
        return self.customizations.redmine_domain

    def page(self, page_id: int) -> Optional[Page]:
        return self.pages.get(page_id)

    def by_formatted_title(self, formatted_title: str) -> Optional[Page]:
        return self._by_formatted.get(formatted_title)

    def find_loose(self, title: str, accept: Optional[Callable[[Page], bool]] = None) -> Optional[Page]:
        """Return the first page whose raw title loosely equals title.

        Args:
            title: Raw title to compare against
            accept: Optional filter a candidate page must pass
        """
        key = loose_key(title)
        for page, page_key in self._loose:
            if accept is not None and not accept(page):
                continue
            if page.title == title or page_key == key:
                return page
        return None

    def formatted_title(self, title: str) -> str:
        """Map a raw title used by an inline reference to a formatted title.

        Tries an exact raw title match, then for image names the first page
        whose raw title starts with the base name, then the title cheatsheet.
        Titles that cannot be mapped are recorded and returned unchanged.
        """
        page = self._by_raw.get(title)
        if page is not None:
            return page.formatted_title

        if title.endswith(IMAGE_SUFFIXES):
            base_name = title[:-4]
            for candidate in self._ordered:
                if candidate.title.startswith(base_name):
                    return candidate.formatted_title

        if title in self.customizations.title_cheatsheet:
            return self.customizations.title_cheatsheet[title]

        logger.debug(f"No page found for inline title '{title}'")
        self.diagnostics.add_missing_title(title)
        return title

    def attachment_title_from_link(self, link: str) -> Optional[str]:
        """Map a Redmine attachment URL to the title of its file page.

        Returns:
            The file page title, ``Attachment-<id>`` when the attachment was
            not migrated (recorded as missing), or None if link is not an
            attachment URL of the configured domain
        """
        if self._attachment_link is None:
            return None
        match = self._attachment_link.search(link)
        if not match:
            return None

        attachment_id = int(match.group(1))
        page = self.pages.get(ATTACHMENT_ID_OFFSET + attachment_id)
        if page is not None:
            return page.formatted_title
        self.diagnostics.add_missing_attachment(link)
        return f"Attachment-{attachment_id}"
