"""Id allocation for synthetic pages and revisions.

Native Redmine ids stay below NATIVE_ID_LIMIT. Attachment and diagram pages
use a fixed offset added to their source id, each inside its own block.
Redirect pages and revisions count down from INT_MAX. The ranges never
overlap and every allocation is checked against its range.
"""

from src.wiki_analyzer.errors import IdRangeError

INT_MAX = 2147483647

NATIVE_ID_LIMIT = 1_000_000_000
ATTACHMENT_ID_OFFSET = 1_000_000_000
DIAGRAM_ID_OFFSET = 1_200_000_000
SYNTHETIC_BLOCK_SIZE = 200_000_000
REDIRECT_ID_FLOOR = 1_400_000_000


def check_native_id(value: int) -> int:
    """Return a native id, rejecting ids that would collide with synthetic ranges."""
    if not 0 < value < NATIVE_ID_LIMIT:
        raise IdRangeError('native', value, 1, NATIVE_ID_LIMIT)
    return value


def attachment_page_id(attachment_id: int) -> int:
    """Synthetic page (and revision) id of an attachment file page."""
    if not 0 < attachment_id < SYNTHETIC_BLOCK_SIZE:
        raise IdRangeError('attachment', attachment_id, 1, SYNTHETIC_BLOCK_SIZE)
    return ATTACHMENT_ID_OFFSET + attachment_id


def diagram_page_id(diagram_id: int) -> int:
    """Synthetic page (and revision) id of a diagram file page."""
    if not 0 < diagram_id < SYNTHETIC_BLOCK_SIZE:
        raise IdRangeError('diagram', diagram_id, 1, SYNTHETIC_BLOCK_SIZE)
    return DIAGRAM_ID_OFFSET + diagram_id


class RedirectIdAllocator:
    """Hands out descending ids for redirect pages and revisions.

    Pages and revisions have separate counters, so the n-th redirect page
    and the n-th redirect revision both get ``INT_MAX - n``. Given the same
    ordered input the allocator always returns the same ids.

    Example:
        >>> allocator = RedirectIdAllocator()
        >>> allocator.next_page_id()
        2147483647
    """

    def __init__(self):
        self._pages = 0
        self._revisions = 0

    def next_page_id(self) -> int:
        value = self._allocate(self._pages)
        self._pages += 1
        return value

    def next_revision_id(self) -> int:
        value = self._allocate(self._revisions)
        self._revisions += 1
        return value

    @staticmethod
    def _allocate(counter: int) -> int:
        value = INT_MAX - counter
        if value <= REDIRECT_ID_FLOOR:
            raise IdRangeError('redirect', value, REDIRECT_ID_FLOOR + 1, INT_MAX + 1)
        return value
