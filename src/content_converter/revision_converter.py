"""Per-revision markup conversion pipeline.

RevisionConverter turns one Redmine revision body (HTML) into target
wikitext. Each stage is a function ``(text, context) -> text`` and the
stages run strictly in the order of ``RevisionConverter.stages``:

    customize -> preprocess -> html to textile -> list item fix ->
    textile to wikitext -> restore pre blocks -> post-conversion fixes ->
    isolate code -> inline titles -> macros -> images, anchors, tables ->
    URLs -> links -> categories -> restore code

Code regions are protected twice: as hex tokens across the two converter
hops, and in a placeholder table while the wikitext is rewritten.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from src.wiki_analyzer.models import DiagramContent, Page

from .code_blocks import convert_code_block
from .link_resolver import LinkResolver
from .macros import MacroExpander
from .markup_fixes import (
    fix_after_conversion,
    fix_list_items,
    preprocess,
    replace_customized,
    replace_encoded_entities,
    replace_inline_elements,
)
from .media import MediaNormalizer
from .pandoc_runner import PandocRunner
from .placeholders import PlaceholderTable, protect_pre_blocks, restore_pre_blocks
from .title_lookup import TitleSpace
from .url_mapper import UrlMapper

logger = logging.getLogger(__name__)

_PLAINTEXT_PRE = re.compile(r'<pre class="plaintext">')
_PRE_REGION = re.compile(r'(<pre(?:\s[^>]*)?>)(.*?)</pre>', re.DOTALL)
_HIGHLIGHT_REGION = re.compile(
    r'<syntaxhighlight\s+lang\s*=\s*["\'](.*?)["\']\s*>(.*?)</syntaxhighlight>', re.DOTALL
)
_CODE_REGION = re.compile(r'<code>(.*?)</code>', re.DOTALL)
_INLINE_ATTACHMENT = re.compile(r'attachment:"([^"\n]*)"')


@dataclass
class ConversionContext:
    """State of one revision while it passes through the stages."""
    page: Page
    version: int
    latest_version: Optional[int] = None
    placeholders: PlaceholderTable = field(default_factory=PlaceholderTable)


Stage = Callable[[str, ConversionContext], str]


class RevisionConverter:
    """Converts revision bodies against a frozen title space.

    Example:
        >>> converter = RevisionConverter(space, diagrams, PandocRunner())
        >>> wikitext = converter.convert("<p>Hello</p>", page, 1)
    """

    def __init__(
        self,
        title_space: TitleSpace,
        diagrams: Dict[int, DiagramContent],
        runner: PandocRunner
    ):
        """Initialize the converter.

        Args:
            title_space: Index of every page of the migration
            diagrams: Diagram records keyed by diagram id
            runner: External converter
        """
        self._space = title_space
        self._runner = runner
        self._customizations = title_space.customizations
        self._macros = MacroExpander(diagrams, title_space.domain)
        self._media = MediaNormalizer(title_space, runner)
        self._urls = UrlMapper(title_space)
        self._links = LinkResolver(title_space)

        self.stages: List[Stage] = [
            self._customize,
            self._preprocess,
            self._html_to_textile,
            self._fix_list_items,
            self._textile_to_wikitext,
            self._restore_pre_blocks,
            self._fix_after_conversion,
            self._isolate_code,
            self._replace_inline_titles,
            self._expand_macros,
            self._normalize_media,
            self._map_urls,
            self._resolve_links,
            self._inject_categories,
            self._restore_code,
        ]

    def convert(
        self,
        text: str,
        page: Page,
        version: int,
        latest_version: Optional[int] = None
    ) -> str:
        """Run every stage over one revision body.

        Args:
            text: Revision body as stored in Redmine
            page: Page owning the revision
            version: Version of the revision
            latest_version: Latest converted version of the page, whose
                unresolved links are reported (default: page.version)

        Returns:
            Target wikitext
        """
        context = ConversionContext(page=page, version=version, latest_version=latest_version)
        for stage in self.stages:
            text = stage(text, context)
        return text

    def _customize(self, text: str, context: ConversionContext) -> str:
        return replace_customized(text, self._customizations.customized_replace)

    def _preprocess(self, text: str, context: ConversionContext) -> str:
        return protect_pre_blocks(preprocess(text))

    def _html_to_textile(self, text: str, context: ConversionContext) -> str:
        return self._runner.convert(text, 'html', 'textile')

    def _fix_list_items(self, text: str, context: ConversionContext) -> str:
        return fix_list_items(text)

    def _textile_to_wikitext(self, text: str, context: ConversionContext) -> str:
        return self._runner.convert(text, 'textile', 'mediawiki')

    def _restore_pre_blocks(self, text: str, context: ConversionContext) -> str:
        return restore_pre_blocks(text, convert_code_block)

    def _fix_after_conversion(self, text: str, context: ConversionContext) -> str:
        return fix_after_conversion(text)

    def _isolate_code(self, text: str, context: ConversionContext) -> str:
        table = context.placeholders
        text = _PLAINTEXT_PRE.sub('<pre>', text)
        text = table.protect(
            text,
            _PRE_REGION,
            lambda match: f"{match.group(1)}{replace_encoded_entities(match.group(2))}</pre>",
        )
        text = table.protect(
            text,
            _HIGHLIGHT_REGION,
            lambda match: (
                f'<syntaxhighlight lang="{match.group(1)}">'
                f'{replace_encoded_entities(match.group(2))}</syntaxhighlight>'
            ),
        )
        return table.protect(
            text,
            _CODE_REGION,
            lambda match: f"<code>{replace_encoded_entities(match.group(1))}</code>",
        )

    def _replace_inline_titles(self, text: str, context: ConversionContext) -> str:
        text = replace_encoded_entities(text)
        text = _INLINE_ATTACHMENT.sub(
            lambda match: f"[[{self._space.formatted_title(match.group(1))}]]", text
        )
        return replace_inline_elements(text)

    def _expand_macros(self, text: str, context: ConversionContext) -> str:
        return self._macros.expand(text)

    def _normalize_media(self, text: str, context: ConversionContext) -> str:
        text = self._media.handle_images(text)
        text = self._media.handle_anchors(text)
        return self._media.handle_tables(text)

    def _map_urls(self, text: str, context: ConversionContext) -> str:
        return self._urls.map_urls(text)

    def _resolve_links(self, text: str, context: ConversionContext) -> str:
        return self._links.resolve_links(
            text, context.page, context.version, context.latest_version
        )

    def _inject_categories(self, text: str, context: ConversionContext) -> str:
        if not context.page.categories:
            return text
        markers = "\n".join(f"[[Category:{name}]]" for name in context.page.categories)
        return f"{text.rstrip()}\n{markers}\n"

    def _restore_code(self, text: str, context: ConversionContext) -> str:
        return context.placeholders.restore(text)
