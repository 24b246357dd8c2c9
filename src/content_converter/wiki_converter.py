"""The convert stage.

WikiConverter reads the frozen title space from the workspace, converts
every revision body and writes the wikitext and diagnostics buckets. Pages
are independent once the title space is frozen, so they may be converted
by a bounded thread pool; results are collected in page id order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from src.workspace import buckets
from src.workspace.bucket_store import BucketStore
from src.wiki_analyzer.analyzer import AnalysisResult

from .diagnostics import ConversionDiagnostics
from .pandoc_runner import PandocRunner
from .revision_converter import RevisionConverter
from .title_lookup import TitleSpace

logger = logging.getLogger(__name__)


@dataclass
class ConversionSummary:
    """Counts of a convert stage run."""
    pages: int = 0
    converted: int = 0
    passed_through: int = 0
    diagnostics: int = 0


class WikiConverter:
    """Converts all revisions stored in the workspace.

    Example:
        >>> store = BucketStore("workspace", buckets.CONVERT_BUCKETS)
        >>> store.load()
        >>> summary = WikiConverter(store, PandocRunner()).run()
        >>> store.save()
    """

    def __init__(
        self,
        store: BucketStore,
        runner: Optional[PandocRunner] = None,
        max_workers: int = 1
    ):
        """Initialize the converter stage.

        Args:
            store: Bucket store managing the convert buckets (already loaded)
            runner: External converter (default: pandoc on PATH)
            max_workers: Pages converted concurrently (1 converts sequentially)
        """
        self._store = store
        self._runner = runner or PandocRunner()
        self._max_workers = max(1, max_workers)

    def run(self, on_page: Optional[Callable[[int], None]] = None) -> ConversionSummary:
        """Convert every revision and write the results to the store.

        Args:
            on_page: Called with the page id after each page is collected

        Returns:
            ConversionSummary with revision and diagnostic counts
        """
        analysis = AnalysisResult.from_store(self._store)
        diagnostics = ConversionDiagnostics()
        space = TitleSpace(analysis.pages, analysis.customizations, diagnostics)
        converter = RevisionConverter(space, analysis.diagrams, self._runner)
        summary = ConversionSummary()

        def convert_page(page_id: int) -> Dict[str, str]:
            page = analysis.pages[page_id]
            chain = analysis.revisions.get(page_id, {})
            # Appended redirect revisions are never converted.
            latest = max(
                (version for version, revision in chain.items() if revision.needs_conversion),
                default=None,
            )
            texts = {}
            for version in sorted(chain):
                revision = chain[version]
                if revision.needs_conversion:
                    texts[str(version)] = converter.convert(revision.text, page, version, latest)
                else:
                    texts[str(version)] = revision.text
            return texts

        page_ids = sorted(analysis.pages)
        logger.info(f"Converting {len(page_ids)} pages with {self._max_workers} worker(s)")

        wikitext = {}

        def collect(results: Iterable[Dict[str, str]]) -> None:
            for page_id, texts in zip(page_ids, results):
                wikitext[page_id] = texts
                summary.pages += 1
                for revision in analysis.revisions.get(page_id, {}).values():
                    if revision.needs_conversion:
                        summary.converted += 1
                    else:
                        summary.passed_through += 1
                if on_page is not None:
                    on_page(page_id)

        if self._max_workers > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                collect(pool.map(convert_page, page_ids))
        else:
            collect(map(convert_page, page_ids))

        self._store.overwrite(buckets.REVISION_WIKITEXT, wikitext)
        diagnostics.to_store(self._store)
        summary.diagnostics = diagnostics.total
        logger.info(
            f"Converted {summary.converted} revisions, passed through {summary.passed_through}; "
            f"{summary.diagnostics} diagnostics recorded"
        )
        return summary
