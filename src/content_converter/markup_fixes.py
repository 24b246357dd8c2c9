"""Text fixes applied around the external converter.

Every function here is a pure ``str -> str`` rewrite. The preprocess fixes
prepare Redmine HTML for pandoc's line-oriented readers; the post fixes
undo escaping and artefacts pandoc introduces.
"""

import re
from typing import Dict

_BR_WITHOUT_NEWLINE = re.compile(r'<br />(?!\n)')
_CLOSING_ANCHOR = re.compile(r'</a>')
_LIST_WITHOUT_NEWLINE = re.compile(r'(?<!\n)<ul>')
_TABLE_WITHOUT_NEWLINE = re.compile(r'(?<!\n)<table>')
_LIST_ITEM_END = re.compile(r'([^\n])</li>')

_ESCAPED_HASH_AT_LINE_START = re.compile(r'(\n|^)\\#')
_ESCAPED_STAR_AT_LINE_START = re.compile(r'(\n|^)\\\*')
_ESCAPED_HASH_IN_CELL_SPACED = re.compile(r'(\|\s+)\\#(\s+)')
_ESCAPED_STAR_IN_CELL_SPACED = re.compile(r'(\|\s+)\\\*(\s+)')
_ESCAPED_HASH_IN_CELL = re.compile(r'(\|\s+)\\#(\S)')
_ESCAPED_STAR_IN_CELL = re.compile(r'(\|\s+)\\\*(\S)')

_INJECTED_HEADING = re.compile(r'^=+\s+.+\s+=+$')

_DOUBLE_ENCODED = {
    '&amp;lt;': '<',
    '&amp;gt;': '>',
    '&amp;quot;': '"',
    '&amp;amp;': '&',
}
_ENCODED = {
    '&lt;': '<',
    '&gt;': '>',
    '&quot;': '"',
}
_DOUBLE_ENCODED_NAMED = re.compile(r'&amp;([a-z0-9]+);', re.IGNORECASE)
_DOUBLE_ENCODED_DECIMAL = re.compile(r'&amp;#([0-9]+);')
_DOUBLE_ENCODED_HEX = re.compile(r'&amp;#x([0-9a-f]+);', re.IGNORECASE)

_COLLAPSE_IN_HEADING = re.compile(r'===\s*\{\{collapse\((.*?)\)\s*===')
_COLLAPSE_WITH_TITLE = re.compile(r'\{\{collapse\((.*?)\)(.*?)(?<!\})\}\}(?!\})', re.DOTALL)
_COLLAPSE = re.compile(r'\{\{collapse(.*?)(?<!\})\}\}(?!\})', re.DOTALL)
COLLAPSIBLE_OPEN = '<div class="toccolours mw-collapsible mw-collapsed">'
COLLAPSIBLE_CONTENT = '<div class="mw-collapsible-content">'

_EMPTY_SPAN = re.compile(r'<span\s+id="[^"]*"></span>')
_TOC_MACRO = re.compile(r'\{\{\s*(?:toc|>toc)\s*\}\}')


def replace_customized(content: str, replacements: Dict[str, str]) -> str:
    """Apply literal replacements in their configured order."""
    for old, new in replacements.items():
        content = content.replace(old, new)
    return content


def preprocess(content: str) -> str:
    """Put block-level tags on their own lines and pad closing anchors."""
    content = _BR_WITHOUT_NEWLINE.sub('<br />\n', content)
    content = _CLOSING_ANCHOR.sub('</a> ', content)
    content = _LIST_WITHOUT_NEWLINE.sub('\n<ul>', content)
    return _TABLE_WITHOUT_NEWLINE.sub('\n<table>', content)


def fix_list_items(content: str) -> str:
    """Move every closing ``</li>`` onto its own line.

    Runs between the two converter hops; the intermediate dialect reader
    otherwise merges the item with the following text.
    """
    return _LIST_ITEM_END.sub('\\1\n</li>', content)


def unescape_markers(content: str) -> str:
    """Undo the converter's escaping of ``#`` and ``*``.

    At line starts the escape is removed. In table cells a marker followed
    by whitespace starts a list on a new line; any other marker (e.g. the
    star of ``*.jpg``) only loses its escape.
    """
    content = _ESCAPED_HASH_AT_LINE_START.sub(r'\1#', content)
    content = _ESCAPED_STAR_AT_LINE_START.sub(r'\1*', content)
    content = _ESCAPED_HASH_IN_CELL_SPACED.sub('\\1\n#\\2', content)
    content = _ESCAPED_STAR_IN_CELL_SPACED.sub('\\1\n*\\2', content)
    content = _ESCAPED_HASH_IN_CELL.sub(r'\1#\2', content)
    return _ESCAPED_STAR_IN_CELL.sub(r'\1*\2', content)


def comment_out_injected_heading(content: str) -> str:
    """Comment out a heading the converter derived from the first lines."""
    lines = content.split('\n', 2)
    for index in (0, 1):
        if index < len(lines) and lines[index] and _INJECTED_HEADING.match(lines[index]):
            lines[index] = f'<!--{lines[index]}-->'
            return '\n'.join(lines)
    return content


def replace_encoded_entities(content: str) -> str:
    """Decode HTML entities left behind by the converter.

    Double-encoded entities are reduced by one level first, so
    ``&amp;lt;`` becomes ``<`` and ``&amp;nbsp;`` becomes ``&nbsp;``.
    """
    for encoded, decoded in _DOUBLE_ENCODED.items():
        content = content.replace(encoded, decoded)
    content = _DOUBLE_ENCODED_DECIMAL.sub(r'&#\1;', content)
    content = _DOUBLE_ENCODED_HEX.sub(r'&#x\1;', content)
    content = _DOUBLE_ENCODED_NAMED.sub(r'&\1;', content)
    for encoded, decoded in _ENCODED.items():
        content = content.replace(encoded, decoded)
    return content.replace('&amp;', '&')


def replace_collapsed_blocks(content: str) -> str:
    """Rewrite collapse macros as collapsible divs."""
    content = _COLLAPSE_IN_HEADING.sub(r'{{collapse(=== \1 ===)', content)
    content = _COLLAPSE_WITH_TITLE.sub(
        f'{COLLAPSIBLE_OPEN}\n\\1\n{COLLAPSIBLE_CONTENT}\n\\2\n</div></div>', content
    )
    return _COLLAPSE.sub(
        f'{COLLAPSIBLE_OPEN}{COLLAPSIBLE_CONTENT}\n\\1\n</div></div>', content
    )


def fix_after_conversion(content: str) -> str:
    """Apply every post-converter fix in order."""
    content = unescape_markers(content)
    content = comment_out_injected_heading(content)
    content = replace_encoded_entities(content)
    return replace_collapsed_blocks(content)


def replace_inline_elements(content: str) -> str:
    """Drop empty anchor span lines and turn toc macros into ``__TOC__``."""
    lines = []
    for line in content.split('\n'):
        if _EMPTY_SPAN.search(line):
            continue
        lines.append(_TOC_MACRO.sub('__TOC__', line))
    return '\n'.join(lines)
