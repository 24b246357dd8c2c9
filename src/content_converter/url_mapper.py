"""Mapping of absolute Redmine URLs to internal links.

Users often link wiki pages, attachments and knowledge stories by their full
Redmine URL. With a configured Redmine domain such URLs are rewritten into
double-bracket links, which the link resolver then maps to formatted titles.
URLs of other hosts stay external links.
"""

import logging
import re
from typing import Optional

from .title_lookup import TitleSpace

logger = logging.getLogger(__name__)

STORY_NAMESPACE = "EKBStory"

_URL_IN_DOUBLE_BRACKETS = re.compile(r'\[\[([^\]]*://[^\]]*)\]\]', re.IGNORECASE)
_FILE_PREFIXED_URL = re.compile(r'\[File:(https?://[^\]\s]+)(?:\s+([^\]]+))?\]', re.IGNORECASE)
_BRACKETED_URL = re.compile(r'\[https?://([^\]\s]+)(?:\s+([^\]]+))?\]', re.IGNORECASE)
_RAW_URL = re.compile(r'(?<![\[\w|"\'])https?://([^\s<>"\'\]\[]+)(?!["\'\w\]])', re.IGNORECASE)


class UrlMapper:
    """Rewrites Redmine URLs into internal link tokens.

    Example:
        >>> mapper = UrlMapper(space)
        >>> mapper.map_urls("see https://redmine.example.com/projects/ops/wiki/Backup")
        'see [[ops:Backup]]'
    """

    def __init__(self, title_space: TitleSpace):
        self._space = title_space
        domain = title_space.domain
        self._domain = domain
        if domain:
            quoted = re.escape(domain)
            self._project_path = re.compile(quoted + r'/projects/([^?\s]+)', re.IGNORECASE)
            self._attachment_path = re.compile(quoted + r'/attachments/([^?\s]+)', re.IGNORECASE)
            self._story_path = re.compile(quoted + r'/easy_knowledge_stories/(\d+)', re.IGNORECASE)

    def map_urls(self, content: str) -> str:
        """Repair URL pseudo-links and map Redmine URLs to internal links."""
        content = _URL_IN_DOUBLE_BRACKETS.sub(
            lambda match: '[' + match.group(1).replace('|', ' ') + ']', content
        )
        content = _FILE_PREFIXED_URL.sub(self._repair_file_link, content)
        if not self._domain:
            return content

        content = _BRACKETED_URL.sub(self._map_bracketed, content)
        return _RAW_URL.sub(self._map_raw, content)

    @staticmethod
    def _repair_file_link(match) -> str:
        text = match.group(2)
        return f"[{match.group(1)} {text}]" if text else f"[{match.group(1)}]"

    def _map_bracketed(self, match) -> str:
        title = self.correspond(match.group(1))
        if title is None:
            return match.group(0)
        text = match.group(2)
        return f"[[{title}|{text}]]" if text else f"[[{title}]]"

    def _map_raw(self, match) -> str:
        title = self.correspond(match.group(1))
        return f"[[{title}]]" if title is not None else match.group(0)

    def correspond(self, url: str) -> Optional[str]:
        """Map a URL without scheme to a link target.

        Project wiki URLs map to ``<project>:<page>``, attachment URLs to
        the attachment's file page, knowledge story URLs to the story
        namespace. Issue URLs and unknown paths are not mapped.
        """
        if not self._domain or self._domain not in url:
            return None

        match = self._project_path.search(url)
        if match:
            parts = [part for part in match.group(1).split('?', 1)[0].split('/') if part]
            if not parts:
                return None
            if len(parts) == 1:
                return parts[0] if ':' in parts[0] else None
            if parts[1] == 'issues':
                return None
            return f"{parts[0]}:{parts[-1]}"

        match = self._attachment_path.search(url)
        if match:
            return self._space.attachment_title_from_link("https://" + match.group(0))

        match = self._story_path.search(url)
        if match:
            return f"{STORY_NAMESPACE}:{match.group(1)}"

        return None
