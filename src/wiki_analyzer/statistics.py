"""Migration statistics.

Counts what the analyzer produced and flags data gaps that are worth a
manual look. Collecting statistics never fails a run.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from src.wiki_analyzer.models import Page, PageKind, Revision

logger = logging.getLogger(__name__)


@dataclass
class MigrationStatistics:
    """Record counts and integrity gap counters."""
    native_pages: int = 0
    redirect_pages: int = 0
    file_pages: int = 0
    diagram_pages: int = 0
    revisions: int = 0
    attachments: int = 0
    diagrams: int = 0
    redirects_resolved: int = 0
    redirects_dropped: int = 0
    unnamed_authors: int = 0
    version_mismatches: int = 0
    chain_gaps: int = 0

    @property
    def total_pages(self) -> int:
        return self.native_pages + self.redirect_pages + self.file_pages + self.diagram_pages

    def to_dict(self) -> Dict[str, int]:
        data = asdict(self)
        data['total_pages'] = self.total_pages
        return data

    def gaps(self) -> List[str]:
        """Human readable descriptions of non-zero gap counters."""
        messages = []
        if self.unnamed_authors:
            messages.append(f"{self.unnamed_authors} revisions without a resolved author name")
        if self.version_mismatches:
            messages.append(
                f"{self.version_mismatches} pages whose revision count differs from their version"
            )
        if self.chain_gaps:
            messages.append(f"{self.chain_gaps} missing versions inside revision chains")
        if self.redirects_dropped:
            messages.append(f"{self.redirects_dropped} redirects with an unknown target")
        return messages


def collect_statistics(
    pages: Dict[int, Page],
    revisions: Dict[int, Dict[int, Revision]],
    attachments: int = 0,
    diagrams: int = 0,
    redirects_resolved: int = 0,
    redirects_dropped: int = 0,
    current_revision_only: bool = False
) -> MigrationStatistics:
    """Count pages and revisions and cross-check their consistency.

    Args:
        pages: Final page map
        revisions: Final revision map
        attachments: Number of loaded attachments
        diagrams: Number of loaded diagrams
        redirects_resolved: Redirects whose target was found
        redirects_dropped: Redirects whose target was not found
        current_revision_only: Skip the revision count check when only the
            latest version of each page was loaded
    """
    stats = MigrationStatistics(
        attachments=attachments,
        diagrams=diagrams,
        redirects_resolved=redirects_resolved,
        redirects_dropped=redirects_dropped,
    )
    kind_counters = {
        PageKind.NATIVE: 'native_pages',
        PageKind.REDIRECT: 'redirect_pages',
        PageKind.FILE: 'file_pages',
        PageKind.DIAGRAM: 'diagram_pages',
    }

    for page in pages.values():
        counter = kind_counters[page.kind]
        setattr(stats, counter, getattr(stats, counter) + 1)

        chain = revisions.get(page.page_id, {})
        stats.revisions += len(chain)
        stats.unnamed_authors += sum(1 for rev in chain.values() if not rev.author_name)

        if not chain:
            continue
        versions = sorted(chain)
        stats.chain_gaps += (versions[-1] - versions[0] + 1) - len(versions)
        if not current_revision_only and len(chain) != page.version:
            stats.version_mismatches += 1

    return stats


def log_statistics(stats: MigrationStatistics, log: Optional[logging.Logger] = None) -> None:
    """Log the counters at INFO and every gap at WARNING."""
    log = log or logger
    log.info(
        f"Pages: {stats.total_pages} ({stats.native_pages} native, "
        f"{stats.redirect_pages} redirect, {stats.file_pages} file, "
        f"{stats.diagram_pages} diagram); revisions: {stats.revisions}"
    )
    for message in stats.gaps():
        log.warning(message)
