"""The analyze stage.

WikiAnalyzer builds the complete, frozen title space from the Redmine
database: native pages and revisions, redirect pages and revisions,
attachment and diagram file pages. The result is written to the workspace
buckets for the later stages; AnalysisResult also rebuilds it from there.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.redmine_source.connection import RedmineSource
from src.redmine_source.settings import ConnectionSettings
from src.workspace import buckets
from src.workspace.bucket_store import BucketStore
from src.wiki_analyzer.attachment_loader import AttachmentLoader
from src.wiki_analyzer.config_loader import CustomizationLoader, Customizations
from src.wiki_analyzer.integrity import check_revision_chains, check_unique_titles
from src.wiki_analyzer.models import AttachmentFile, DiagramContent, Page, Revision
from src.wiki_analyzer.page_loader import PageLoader
from src.wiki_analyzer.redirect_synthesizer import RedirectSynthesizer
from src.wiki_analyzer.statistics import MigrationStatistics, collect_statistics, log_statistics
from src.wiki_analyzer.title_builder import TitleBuilder

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """The frozen title space and everything attached to it."""
    pages: Dict[int, Page] = field(default_factory=dict)
    revisions: Dict[int, Dict[int, Revision]] = field(default_factory=dict)
    attachments: Dict[int, AttachmentFile] = field(default_factory=dict)
    diagrams: Dict[int, DiagramContent] = field(default_factory=dict)
    samename: Dict[str, List[int]] = field(default_factory=dict)
    customizations: Customizations = field(default_factory=Customizations)

    def to_store(self, store: BucketStore) -> None:
        """Overwrite the analysis buckets with this result."""
        store.overwrite(
            buckets.WIKI_PAGES,
            {page_id: page.to_dict() for page_id, page in sorted(self.pages.items())},
        )
        store.overwrite(
            buckets.PAGE_REVISIONS,
            {
                page_id: {str(version): rev.to_dict() for version, rev in sorted(chain.items())}
                for page_id, chain in sorted(self.revisions.items())
            },
        )
        store.overwrite(
            buckets.ATTACHMENT_FILES,
            {att_id: att.to_dict() for att_id, att in sorted(self.attachments.items())},
        )
        store.overwrite(
            buckets.DIAGRAM_CONTENTS,
            {diagram_id: d.to_dict() for diagram_id, d in sorted(self.diagrams.items())},
        )
        store.overwrite(buckets.SAMENAME_ATTACHMENTS, self.samename)
        store.overwrite(buckets.CUSTOMIZATIONS, self.customizations.to_dict())

    @classmethod
    def from_store(cls, store: BucketStore) -> "AnalysisResult":
        """Rebuild the result from the buckets a store manages.

        Buckets the store does not manage are left empty.
        """
        def bucket(name):
            return store.get(name) if name in store.names else {}

        customization_data = bucket(buckets.CUSTOMIZATIONS)
        return cls(
            pages={
                int(page_id): Page.from_dict(data)
                for page_id, data in bucket(buckets.WIKI_PAGES).items()
            },
            revisions={
                int(page_id): {
                    int(version): Revision.from_dict(data) for version, data in chain.items()
                }
                for page_id, chain in bucket(buckets.PAGE_REVISIONS).items()
            },
            attachments={
                int(att_id): AttachmentFile.from_dict(int(att_id), data)
                for att_id, data in bucket(buckets.ATTACHMENT_FILES).items()
            },
            diagrams={
                int(diagram_id): DiagramContent.from_dict(data)
                for diagram_id, data in bucket(buckets.DIAGRAM_CONTENTS).items()
            },
            samename=dict(bucket(buckets.SAMENAME_ATTACHMENTS)),
            customizations=(
                CustomizationLoader.parse(customization_data)
                if customization_data else Customizations()
            ),
        )


class WikiAnalyzer:
    """Runs loading, redirect synthesis and attachment loading in order.

    Example:
        >>> analyzer = WikiAnalyzer(source, store, customizations, settings)
        >>> stats = analyzer.run()
    """

    def __init__(
        self,
        source: RedmineSource,
        store: BucketStore,
        customizations: Optional[Customizations] = None,
        settings: Optional[ConnectionSettings] = None
    ):
        """Initialize the analyzer.

        Args:
            source: Redmine database source
            store: Bucket store managing the analysis buckets
            customizations: Migration customizations
            settings: Connection settings (wiki selection and names)
        """
        self._source = source
        self._store = store
        self._customizations = customizations or Customizations()
        self._wiki_ids = list(settings.wiki_ids) if settings else []
        self._wiki_names = dict(settings.wiki_names) if settings else {}

    def run(self) -> MigrationStatistics:
        """Build the title space and write it to the store.

        Returns:
            Statistics of the analyzed data

        Raises:
            IntegrityError: If the source data violates a structural invariant
            SourceDataError: If a query fails
        """
        loaded = PageLoader(self._source, self._customizations, self._wiki_names).load(
            self._wiki_ids or None
        )
        result = AnalysisResult(
            pages=loaded.pages,
            revisions=loaded.revisions,
            customizations=self._customizations,
        )

        synthesizer = RedirectSynthesizer(
            result.pages,
            result.revisions,
            loaded.wikis,
            self._customizations.fallback_author,
            title_builder=TitleBuilder(result.pages, self._wiki_names),
        )
        redirects = synthesizer.run(self._source.fetch_redirects(list(loaded.wikis)))

        attachments = AttachmentLoader(
            self._source,
            result.pages,
            result.revisions,
            loaded.user_names,
            self._customizations.fallback_author,
        ).load()
        result.attachments = attachments.attachments
        result.diagrams = attachments.diagrams
        result.samename = attachments.samename

        check_unique_titles(result.pages)
        check_revision_chains(result.revisions)

        result.to_store(self._store)
        self._store.overwrite(
            buckets.MISSING_REDIRECT_TARGETS,
            {
                note.redirect_id: {
                    'page_id': note.page_id,
                    'version': note.version,
                    'target_wiki_id': note.target_wiki_id,
                    'target_title': note.target_title,
                    'synthetic': note.synthetic,
                }
                for note in redirects.dropped
            },
        )

        stats = collect_statistics(
            result.pages,
            result.revisions,
            attachments=len(result.attachments),
            diagrams=len(result.diagrams),
            redirects_resolved=len(redirects.resolved),
            redirects_dropped=len(redirects.dropped),
            current_revision_only=self._customizations.current_revision_only,
        )
        log_statistics(stats)
        return stats
