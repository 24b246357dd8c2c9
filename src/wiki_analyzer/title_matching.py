"""Title normalization and loose title equivalence.

Redmine page titles use spaces and free punctuation while links written by
users rarely reproduce a title byte for byte. These helpers normalize
whitespace to the target wiki's joiner character and compare titles while
ignoring case and a fixed set of punctuation.
"""

import re

JOINER = "_"

_WHITESPACE = re.compile(r"[\s\u00a0]+")

# Removed from both sides before a loose comparison
_STRIPPED_PUNCTUATION = str.maketrans({
    '.': None,
    ',': None,
    '/': None,
    '?': None,
    '¶': None,
    '‘': "'",
    '’': "'",
    '“': '"',
    '”': '"',
})


def normalize_whitespace(title: str) -> str:
    """Replace every whitespace run (including non-breaking spaces) with the joiner.

    Examples:
        >>> normalize_whitespace("Getting started")
        'Getting_started'
        >>> normalize_whitespace(" Release\\u00a0notes ")
        'Release_notes'
    """
    return _WHITESPACE.sub(JOINER, title.strip())


def loose_key(title: str) -> str:
    """Comparison key used by is_same_title."""
    return normalize_whitespace(title).translate(_STRIPPED_PUNCTUATION).casefold()


def is_same_title(page_title: str, target_title: str) -> bool:
    """Check whether two raw titles refer to the same page.

    Titles are equivalent when byte-equal, or equal case-insensitively after
    whitespace normalization and punctuation stripping on both sides. The
    relation is only used pairwise and is not guaranteed to be transitive.

    Examples:
        >>> is_same_title("Release Notes", "release_notes")
        True
        >>> is_same_title("FAQ?", "faq")
        True
        >>> is_same_title("Install", "Installation")
        False
    """
    if page_title == target_title:
        return True
    return loose_key(page_title) == loose_key(target_title)
