"""Normalization of images, anchors and tables left as raw HTML.

Pandoc keeps HTML it cannot express in the intermediate dialect as raw
markup. Images become file links, anchors become bracketed external links
and tables run through pandoc once more, straight from HTML to wikitext.
"""

import logging
import re
from typing import Optional
from urllib.parse import unquote

from bs4 import BeautifulSoup

from .pandoc_runner import PandocRunner
from .title_lookup import TitleSpace

logger = logging.getLogger(__name__)

_IMAGE_FIGURE = re.compile(r'<figure class="image[^>]*>(.*?)</figure>', re.DOTALL)
_TABLE_FIGURE = re.compile(r'<figure class="table">(.*?)</figure>', re.DOTALL)
_IMG_TAG = re.compile(r'<img\s[^>]*>', re.IGNORECASE)
_TEXTILE_IMAGE = re.compile(r'^!([^!\n]+?)!', re.MULTILINE)
_ANCHOR = re.compile(r'<a\s[^>]*>(.*?)</a>', re.DOTALL | re.IGNORECASE)
_TABLE = re.compile(r'<table(?:\s[^>]*)?>.*?</table>', re.DOTALL | re.IGNORECASE)
_CELL_LIST = re.compile(r'\| \*')
_BREAK_TAG = re.compile(r'<br\s*/?>', re.IGNORECASE)


def _attribute(markup: str, tag: str, name: str) -> Optional[str]:
    """Read one attribute of the first tag in a markup snippet."""
    element = BeautifulSoup(markup, "html.parser").find(tag)
    if element is None:
        return None
    value = element.get(name)
    return value if value else None


class MediaNormalizer:
    """Rewrites raw image, anchor and table HTML into wikitext.

    Example:
        >>> normalizer = MediaNormalizer(space, runner)
        >>> normalizer.handle_images('<img src="logo.png" alt="">')
        '[[File:logo.png]]'
    """

    def __init__(self, title_space: TitleSpace, runner: PandocRunner):
        self._space = title_space
        self._runner = runner

    def handle_images(self, content: str) -> str:
        """Unwrap image figures and turn images into links."""
        content = _IMAGE_FIGURE.sub(r'\1', content)
        content = _IMG_TAG.sub(self._image, content)
        return _TEXTILE_IMAGE.sub(lambda match: f"[[File:{match.group(1).strip()}]]", content)

    def _image(self, match) -> str:
        src = _attribute(match.group(0), 'img', 'src')
        if src is None:
            return match.group(0)
        if ':/' not in src:
            return f"[[{self._space.formatted_title(unquote(src))}]]"

        domain = self._space.domain
        if not domain or domain not in src:
            return f"[{src}]"
        title = self._space.attachment_title_from_link(src)
        return f"[[{title}]]" if title else f"[{src}]"

    def handle_anchors(self, content: str) -> str:
        """Turn raw anchors into ``[href text]`` links."""
        return _ANCHOR.sub(self._anchor, content)

    @staticmethod
    def _anchor(match) -> str:
        href = _attribute(match.group(0), 'a', 'href')
        if href is None:
            logger.warning(f"Anchor without href left unchanged: {match.group(0)[:80]}")
            return match.group(0)

        text = _BREAK_TAG.sub('', match.group(1))
        text = text.replace('\n', '').replace('[[', '').replace(']]', '').strip()
        return f"[{href} {text or href}]"

    def handle_tables(self, content: str) -> str:
        """Unwrap table figures and convert remaining HTML tables."""
        content = _TABLE_FIGURE.sub(lambda match: _CELL_LIST.sub('|\n*', match.group(1)), content)
        return _TABLE.sub(self._table, content)

    def _table(self, match) -> str:
        converted = self._runner.convert(match.group(0), 'html', 'mediawiki')
        return _CELL_LIST.sub('|\n*', converted)
