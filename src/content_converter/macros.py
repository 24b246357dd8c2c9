"""Expansion of Redmine wiki macros into target wiki equivalents."""

import re
from typing import Dict, Optional

from src.wiki_analyzer.models import DiagramContent

_DIAGRAM = re.compile(r'\{\{include_diagram\((\d+)--([^)]+)\)\}\}', re.IGNORECASE)
_THUMBNAIL = re.compile(
    r'\{\{thumbnail\(([^,)]+)(?:,\s*(?:size=(\d+))?(?:,\s*title=([^)]+))?)?\)\}\}', re.IGNORECASE
)
_ISSUE = re.compile(r'\{\{issue\((\d+)(?:,\s*([^)]+))?\)\}\}', re.IGNORECASE)
_INCLUDE = re.compile(r'\{\{include\(([^)]+)\)\}\}', re.IGNORECASE)
_CHILD_PAGES = re.compile(r'\{\{child_pages(?:\(([^)]*)\))?\}\}', re.IGNORECASE)
_PNG_SUFFIX = re.compile(r'\.png$', re.IGNORECASE)


class MacroExpander:
    """Rewrites diagram, thumbnail, issue, include and child page macros.

    Example:
        >>> MacroExpander({}, "redmine.example.com").expand("{{issue(42)}}")
        '[https://redmine.example.com/issues/42 #42]'
    """

    def __init__(self, diagrams: Dict[int, DiagramContent], domain: Optional[str] = None):
        self._diagrams = diagrams
        self._domain = domain.rstrip('/') if domain else None

    def expand(self, content: str) -> str:
        content = _DIAGRAM.sub(self._diagram, content)
        content = _THUMBNAIL.sub(lambda match: f"[[File:{match.group(1).strip()}]]", content)
        content = _ISSUE.sub(self._issue, content)
        content = _INCLUDE.sub(lambda match: "{{:" + match.group(1).strip() + "}}", content)
        return _CHILD_PAGES.sub(self._child_pages, content)

    def _diagram(self, match) -> str:
        diagram = self._diagrams.get(int(match.group(1)))
        if diagram is None:
            return match.group(0)
        filename = _PNG_SUFFIX.sub('', diagram.target_filename)
        return f'<drawio filename="{filename}" alt="{match.group(2)}"></drawio>'

    def _issue(self, match) -> str:
        if not self._domain:
            return match.group(0)
        issue_id = match.group(1)
        return f"[https://{self._domain}/issues/{issue_id} #{issue_id}]"

    @staticmethod
    def _child_pages(match) -> str:
        # The first positional argument names the parent page
        arguments = match.group(1)
        if not arguments:
            return "{{#subpages:}}"
        title = next((part for part in arguments.split(',') if '=' not in part), "")
        return "{{#subpages:" + title.strip() + "}}"
