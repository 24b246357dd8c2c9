"""Diagnostics collected while converting revisions.

Conversion never fails on unresolved references; it records them here so
they can be reviewed after the run. The collector may be shared by worker
threads, so every write takes a lock.
"""

import logging
import threading
from typing import Any, Dict, List

from src.workspace import buckets
from src.workspace.bucket_store import BucketStore

logger = logging.getLogger(__name__)


class ConversionDiagnostics:
    """Collects missing titles, missing attachments and invalid links.

    Example:
        >>> diagnostics = ConversionDiagnostics()
        >>> diagnostics.add_invalid_link(12, "3_Start", 4, "[[Nowhere]]")
        >>> diagnostics.invalid_links[12]['links']
        ['[[Nowhere]]']
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.missing_titles: Dict[str, bool] = {}
        self.missing_attachments: Dict[str, bool] = {}
        self.invalid_links: Dict[int, Dict[str, Any]] = {}

    def add_missing_title(self, title: str) -> None:
        with self._lock:
            self.missing_titles[title] = True

    def add_missing_attachment(self, link: str) -> None:
        with self._lock:
            self.missing_attachments[link] = True

    def add_invalid_link(self, page_id: int, formatted_title: str, version: int, token: str) -> None:
        """Record a link that could not be resolved on a page's latest version."""
        with self._lock:
            entry = self.invalid_links.setdefault(
                page_id,
                {'formatted_title': formatted_title, 'version': version, 'links': []},
            )
            links: List[str] = entry['links']
            if token not in links:
                links.append(token)
        logger.warning(f"{formatted_title} ({page_id}-{version}) has invalid link {token}")

    @property
    def total(self) -> int:
        return (
            len(self.missing_titles)
            + len(self.missing_attachments)
            + sum(len(entry['links']) for entry in self.invalid_links.values())
        )

    def to_store(self, store: BucketStore) -> None:
        """Overwrite the diagnostics buckets with the collected entries."""
        store.overwrite(buckets.MISSING_TITLES, self.missing_titles)
        store.overwrite(buckets.MISSING_ATTACHMENTS, self.missing_attachments)
        store.overwrite(buckets.INVALID_LINKS, dict(sorted(self.invalid_links.items())))
