"""Structural checks on the finished page and revision sets."""

import logging
from typing import Dict, List

from src.wiki_analyzer.errors import DuplicateTitleError, RevisionChainError
from src.wiki_analyzer.models import Page, Revision

logger = logging.getLogger(__name__)


def check_unique_titles(pages: Dict[int, Page]) -> None:
    """Raise DuplicateTitleError if two pages share a formatted title."""
    owners: Dict[str, List[int]] = {}
    for page in pages.values():
        owners.setdefault(page.formatted_title, []).append(page.page_id)

    for title, page_ids in owners.items():
        if len(page_ids) > 1:
            raise DuplicateTitleError(title, sorted(page_ids))


def check_revision_chains(revisions: Dict[int, Dict[int, Revision]]) -> None:
    """Verify every page's revisions form one linked chain.

    Sorted by version, the first revision has no parent and each later
    revision's parent is the revision right before it.

    Raises:
        RevisionChainError: On the first broken link found
    """
    for page_id, chain in revisions.items():
        previous = None
        for version in sorted(chain):
            revision = chain[version]
            expected = previous.rev_id if previous else None
            if revision.parent_rev_id != expected:
                raise RevisionChainError(
                    page_id,
                    version,
                    f"parent is {revision.parent_rev_id}, expected {expected}",
                )
            previous = revision
    logger.debug(f"Checked revision chains of {len(revisions)} pages")
