"""Redirect synthesis.

The target wiki has no native notion of Redmine's redirect table, so every
redirect becomes a revision whose body is a redirect directive. When the
redirect source still exists as a page the revision is appended to it;
otherwise a root-level page is synthesized to carry it. A resolution pass
then writes the directive once every title is known.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from src.wiki_analyzer.ids import RedirectIdAllocator
from src.wiki_analyzer.models import (
    NS_MAIN,
    Page,
    PageKind,
    RedirectNote,
    Revision,
    format_timestamp,
)
from src.wiki_analyzer.title_builder import TitleBuilder
from src.wiki_analyzer.title_matching import is_same_title, normalize_whitespace

logger = logging.getLogger(__name__)

REDIRECT_DIRECTIVE = "#REDIRECT [[{title}]]"


@dataclass
class RedirectResult:
    """Outcome of redirect synthesis.

    Attributes:
        appended: Notes for revisions appended to existing pages
        created: Notes for synthesized redirect pages
        resolved: Notes whose target was found
        dropped: Notes whose target was not found (their revisions are removed)
    """
    appended: List[RedirectNote] = field(default_factory=list)
    created: List[RedirectNote] = field(default_factory=list)
    resolved: List[RedirectNote] = field(default_factory=list)
    dropped: List[RedirectNote] = field(default_factory=list)


class RedirectSynthesizer:
    """Turns Redmine redirect rows into redirect revisions and pages.

    Must run after every native page is loaded and before any content is
    converted, so that existence checks are complete and redirect pages are
    part of the resolvable title space.

    Example:
        >>> synthesizer = RedirectSynthesizer(pages, revisions, wikis, "Redmine")
        >>> result = synthesizer.run(source.fetch_redirects(wiki_ids))
    """

    def __init__(
        self,
        pages: Dict[int, Page],
        revisions: Dict[int, Dict[int, Revision]],
        wikis: Dict[int, Dict[str, Any]],
        fallback_author: str,
        title_builder: Optional[TitleBuilder] = None,
        allocator: Optional[RedirectIdAllocator] = None
    ):
        """Initialize the synthesizer.

        Args:
            pages: Page map, extended in place
            revisions: Revision map, extended in place
            wikis: Wiki rows keyed by wiki id
            fallback_author: Author name of synthesized revisions
            title_builder: Builder used for root segments of new pages
            allocator: Id allocator for synthetic pages and revisions
        """
        self._pages = pages
        self._revisions = revisions
        self._wikis = wikis
        self._fallback_author = fallback_author
        self._title_builder = title_builder or TitleBuilder(pages)
        self._allocator = allocator or RedirectIdAllocator()

    def run(self, redirect_rows: List[Dict[str, Any]]) -> RedirectResult:
        """Synthesize and resolve all redirects.

        Rows whose source page exists are handled first, then rows that need
        a synthetic page. Rows are processed in id order so repeated runs
        over the same data allocate the same ids.
        """
        result = RedirectResult()
        rows = sorted(
            (row for row in redirect_rows if row['wiki_id'] in self._wikis),
            key=lambda row: row['id'],
        )
        index = self._title_index()

        pending = []
        for row in rows:
            page_id = index.get((row['wiki_id'], row['title']))
            if page_id is not None:
                result.appended.append(self._append_revision(self._pages[page_id], row))
            else:
                pending.append(row)

        for row in pending:
            key = (row['wiki_id'], row['title'])
            if key in index:
                logger.warning(
                    f"Skipping redirect {row['id']}: source '{row['title']}' "
                    f"of wiki {row['wiki_id']} already synthesized"
                )
                continue
            note = self._create_page(row)
            index[key] = note.page_id
            result.created.append(note)

        logger.info(
            f"Redirects: {len(result.appended)} appended, {len(result.created)} synthesized"
        )
        self.resolve(result)
        return result

    def resolve(self, result: RedirectResult) -> None:
        """Write redirect directives for every note whose target exists.

        Unresolved synthetic pages are discarded together with their
        revision. Unresolved revisions appended to existing pages are
        removed again so no body-less revision remains. Notes are checked
        until none is dropped before any directive is written, since a
        discarded synthetic page may be the target of another note.
        """
        pending = result.appended + result.created
        dropping = True
        while dropping:
            dropping = False
            surviving = []
            for note in pending:
                if self._find_target(note.target_wiki_id, note.target_title) is None:
                    logger.warning(
                        f"Redirect {note.redirect_id} of page {note.page_id}: target "
                        f"'{note.target_title}' not found in wiki {note.target_wiki_id}"
                    )
                    self._discard(note)
                    result.dropped.append(note)
                    dropping = True
                else:
                    surviving.append(note)
            pending = surviving

        for note in pending:
            target = self._find_target(note.target_wiki_id, note.target_title)
            revision = self._revisions[note.page_id][note.version]
            revision.text = REDIRECT_DIRECTIVE.format(title=target.formatted_title)
            revision.comments = revision.comments or f"Redirect to {target.formatted_title}"
            self._pages[note.page_id].redirects_to = target.formatted_title
            result.resolved.append(note)

    def _title_index(self) -> Dict[Tuple[int, str], int]:
        return {
            (page.wiki_id, page.title): page.page_id
            for page in self._pages.values()
            if page.kind in (PageKind.NATIVE, PageKind.REDIRECT)
        }

    def _append_revision(self, page: Page, row: Dict[str, Any]) -> RedirectNote:
        chain = self._revisions.setdefault(page.page_id, {})
        latest = chain[max(chain)] if chain else None
        version = (max(chain) if chain else page.version) + 1
        # Never earlier than the revision it follows.
        updated_on = format_timestamp(row.get('created_on'))
        if latest:
            updated_on = max(updated_on, latest.updated_on or "")

        chain[version] = Revision(
            rev_id=self._allocator.next_revision_id(),
            page_id=page.page_id,
            version=version,
            parent_rev_id=latest.rev_id if latest else None,
            author_id=latest.author_id if latest else None,
            author_name=latest.author_name if latest else self._fallback_author,
            text="",
            comments="",
            updated_on=updated_on,
            needs_conversion=False,
        )
        page.version = version
        logger.debug(f"Appended redirect revision {version} to page {page.page_id}")
        return self._note(row, page.page_id, version, synthetic=False)

    def _create_page(self, row: Dict[str, Any]) -> RedirectNote:
        wiki = self._wikis[row['wiki_id']]
        page = Page(
            page_id=self._allocator.next_page_id(),
            wiki_id=row['wiki_id'],
            project_id=wiki['project_id'],
            title=row['title'],
            parent_id=None,
            version=1,
            namespace=NS_MAIN,
            kind=PageKind.REDIRECT,
            project_name=wiki.get('project_name') or "",
            project_identifier=wiki.get('project_identifier') or "",
        )
        page.formatted_title = normalize_whitespace(self._title_builder.root_segment(page))
        self._pages[page.page_id] = page
        self._revisions[page.page_id] = {
            1: Revision(
                rev_id=self._allocator.next_revision_id(),
                page_id=page.page_id,
                version=1,
                parent_rev_id=None,
                author_id=None,
                author_name=self._fallback_author,
                text="",
                comments="",
                updated_on=format_timestamp(row.get('created_on')),
                needs_conversion=False,
            )
        }
        logger.debug(f"Synthesized redirect page {page.page_id} '{page.formatted_title}'")
        return self._note(row, page.page_id, 1, synthetic=True)

    @staticmethod
    def _note(row: Dict[str, Any], page_id: int, version: int, synthetic: bool) -> RedirectNote:
        return RedirectNote(
            redirect_id=row['id'],
            page_id=page_id,
            version=version,
            target_wiki_id=row.get('redirects_to_wiki_id') or row['wiki_id'],
            target_title=row['redirects_to'],
            synthetic=synthetic,
        )

    def _find_target(self, wiki_id: int, title: str) -> Optional[Page]:
        candidates = [
            page for page in self._pages.values()
            if page.wiki_id == wiki_id and page.kind in (PageKind.NATIVE, PageKind.REDIRECT)
        ]
        for page in candidates:
            if page.title == title:
                return page
        for page in candidates:
            if is_same_title(page.title, title):
                return page
        return None

    def _discard(self, note: RedirectNote) -> None:
        if note.synthetic:
            del self._pages[note.page_id]
            del self._revisions[note.page_id]
            return
        chain = self._revisions[note.page_id]
        del chain[note.version]
        page = self._pages[note.page_id]
        page.version = max(chain) if chain else page.version - 1
