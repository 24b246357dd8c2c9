"""Placeholder protection of code regions.

Two kinds of protection are used. Before the external converter runs,
``<pre>`` blocks are replaced by a token that carries the hex encoding of
the block, so the block survives both converter hops without a side table.
After conversion, code regions are moved into a PlaceholderTable so that
the wikitext rewriting stages never see them.
"""

import re
from typing import Callable, List, Optional

PRE_TOKEN_PREFIX = "PREBLOCKPLACEHOLDER"
PRE_TOKEN_SUFFIX = "END"

_PRE_BLOCK = re.compile(r'<pre(?:\s[^>]*)?>(.*?)</pre>', re.DOTALL | re.IGNORECASE)
_PRE_TOKEN = re.compile(PRE_TOKEN_PREFIX + r'([0-9a-f]*)' + PRE_TOKEN_SUFFIX)


def protect_pre_blocks(content: str) -> str:
    """Replace every ``<pre>`` block by a standalone hex token paragraph."""
    def encode(match):
        token = PRE_TOKEN_PREFIX + match.group(1).encode('utf-8').hex() + PRE_TOKEN_SUFFIX
        return f"\n\n{token}\n\n"

    return _PRE_BLOCK.sub(encode, content)


def restore_pre_blocks(content: str, render: Callable[[str], str]) -> str:
    """Replace hex tokens by ``render(original block body)``.

    Args:
        content: Converted text containing tokens
        render: Turns the original body of a ``<pre>`` block into wikitext
    """
    def decode(match):
        body = bytes.fromhex(match.group(1)).decode('utf-8')
        return render(body)

    return _PRE_TOKEN.sub(decode, content)


class PlaceholderTable:
    """Side table of protected regions keyed by inserted tokens.

    Example:
        >>> table = PlaceholderTable()
        >>> text = table.protect("a <code>[[x]]</code>", re.compile(r"<code>.*?</code>"))
        >>> text
        'a CODEBLOCKPLACEHOLDER0END'
        >>> table.restore(text)
        'a <code>[[x]]</code>'
    """

    PREFIX = "CODEBLOCKPLACEHOLDER"
    SUFFIX = "END"

    def __init__(self):
        self._blocks: List[str] = []
        self._token = re.compile(self.PREFIX + r'(\d+)' + self.SUFFIX)

    def __len__(self) -> int:
        return len(self._blocks)

    def protect(
        self,
        content: str,
        pattern: "re.Pattern",
        render: Optional[Callable[["re.Match"], str]] = None
    ) -> str:
        """Move every match of pattern into the table.

        Args:
            content: Text to protect regions of
            pattern: Compiled pattern matching whole regions
            render: Builds the stored text from the match (default: the match itself)
        """
        def store(match):
            self._blocks.append(render(match) if render else match.group(0))
            return f"{self.PREFIX}{len(self._blocks) - 1}{self.SUFFIX}"

        return pattern.sub(store, content)

    def restore(self, content: str) -> str:
        """Put every protected region back in place of its token.

        A region protected after another one may contain the earlier
        region's token, so restoring repeats until no known token is left.
        """
        def load(match):
            index = int(match.group(1))
            if index >= len(self._blocks):
                return match.group(0)
            return self._blocks[index]

        # Each pass resolves one level of nesting.
        for _ in range(len(self._blocks) + 1):
            restored = self._token.sub(load, content)
            if restored == content:
                break
            content = restored
        return content
