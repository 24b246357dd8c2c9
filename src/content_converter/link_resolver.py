"""Resolution of double-bracket link tokens to formatted titles.

A link written in Redmine names a page by its raw title, optionally with a
project prefix and a fragment. The resolver maps it to the unique formatted
title of the target page, trying match strategies from strict to loose:

1. exact formatted title (with or without the namespace prefix)
2. loose raw title match inside the project named by the namespace
3. loose raw title match inside the linking page's wiki
4. loose raw title match anywhere

Unresolved tokens are kept verbatim and reported once, for the linking
page's latest version only.
"""

import logging
import re
from typing import Optional
from urllib.parse import unquote

from src.wiki_analyzer.models import Page

from .title_lookup import TitleSpace
from .url_mapper import STORY_NAMESPACE

logger = logging.getLogger(__name__)

FILE_NAMESPACE = "File"
UNTOUCHED_NAMESPACES = frozenset(["Category", "User"])
IMAGE_TEXT_PREFIXES = ("class=image", "class=ckeditor")

LINK_TOKEN = re.compile(r'\[\[([^\]|]+)(?:\|([^\]]+))?\]\]')
_NAMESPACED = re.compile(r'^([^:]+):(.+)$', re.DOTALL)
_FRAGMENT = re.compile(r'^(.+?)(?:#(.+))?$', re.DOTALL)


class LinkResolver:
    """Rewrites link tokens against the frozen title space.

    Example:
        >>> resolver = LinkResolver(space)
        >>> resolver.resolve_links("See [[Setup]]", page, page.version)
        'See [[7_Start/Setup|Setup]]'
    """

    def __init__(self, title_space: TitleSpace):
        self._space = title_space
        self._stories = title_space.customizations.knowledge_stories

    def resolve_links(
        self,
        content: str,
        page: Page,
        version: int,
        latest_version: Optional[int] = None
    ) -> str:
        """Rewrite every link token of a revision body.

        Args:
            content: Revision body
            page: Page owning the revision (resolution context)
            version: Version of the revision being converted
            latest_version: Version whose unresolved links are reported
                (default: page.version)
        """
        report = version == (page.version if latest_version is None else latest_version)
        return LINK_TOKEN.sub(lambda match: self._rewrite(match, page, version, report), content)

    def _rewrite(self, match, page: Page, version: int, report: bool) -> str:
        token = match.group(0)
        written = unquote(match.group(1))
        target = written.replace(' ', '_')
        text = unquote(match.group(2)).strip() if match.group(2) else written.strip()

        namespace = ''
        title = target
        namespaced = _NAMESPACED.match(title)
        if namespaced:
            namespace = namespaced.group(1)
            title = namespaced.group(2).strip()
        fragmented = _FRAGMENT.match(title)
        fragment = ''
        if fragmented:
            title = fragmented.group(1).strip()
            fragment = fragmented.group(2) or ''

        if namespace in UNTOUCHED_NAMESPACES:
            return token
        if namespace == STORY_NAMESPACE and title in self._stories:
            return f"[[{self._stories[title]}]]"
        if target.startswith('#'):
            return unquote(token)

        resolved = self.resolve(target, namespace, title, page)
        if resolved is None:
            if report:
                self._space.diagnostics.add_invalid_link(
                    page.page_id, page.formatted_title, version, token
                )
            return token

        if fragment:
            resolved = f"{resolved}#{fragment}"
        bare_file = namespace == FILE_NAMESPACE and not match.group(2)
        if bare_file or text.startswith(IMAGE_TEXT_PREFIXES):
            text = resolved
        return f"[[{resolved}]]" if resolved == text else f"[[{resolved}|{text}]]"

    def resolve(self, target: str, namespace: str, title: str, page: Page) -> Optional[str]:
        """Return the formatted title a link refers to, or None.

        Args:
            target: Whole link target (namespace and fragment included)
            namespace: Namespace prefix of the target ('' if none)
            title: Target title without namespace and fragment
            page: Page the link appears on
        """
        space = self._space
        exact = space.by_formatted_title(target)
        if exact is None and namespace:
            exact = space.by_formatted_title(f"{namespace}:{title}")
        if exact is None and namespace == FILE_NAMESPACE:
            exact = space.by_formatted_title(title)
        if exact is None and not namespace:
            exact = space.by_formatted_title(title)
        if exact is not None:
            return exact.formatted_title

        match = None
        if namespace and namespace != FILE_NAMESPACE:
            match = space.find_loose(
                title,
                lambda candidate: namespace in (
                    candidate.project_name,
                    candidate.project_identifier,
                    str(candidate.project_id),
                ),
            )
        else:
            match = space.find_loose(title, lambda candidate: candidate.wiki_id == page.wiki_id)

        if match is None:
            match = space.find_loose(target) or space.find_loose(title)
        return match.formatted_title if match is not None else None
