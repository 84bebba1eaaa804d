"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/pagination.py
Version:        1.0.0
Description:    Deterministic auto-pagination. Re-flows the concatenated text
                of an entry into pages of at most `limit` characters, splitting
                at paragraph boundaries where that does not waste most of a
                page.
------------------------------------------------------------------------------
"""

from typing import List

from core.logger import get_logger
from core.models.document import Entry, Page

logger = get_logger("pagination")

# A newline found before this fraction of the limit is "too far back": cut hard instead.
SPLIT_THRESHOLD: float = 0.7

# Separator used when an entry's pages are joined before re-flowing.
PAGE_JOINER: str = "\n\n"


def join_pages(pages: List[Page]) -> str:
    return PAGE_JOINER.join(p.content for p in pages)


def paginate(full_text: str, limit: int) -> List[Page]:
    """
    Splits text into pages of at most `limit` characters.

    Searches backward from `limit` for the nearest newline. If none exists, or
    it lies before SPLIT_THRESHOLD * limit, the page is cut exactly at `limit`.
    Every emitted page is trimmed, so runs of blank lines between pages
    collapse; all non-whitespace characters keep their order.

    Args:
        full_text: The text to distribute.
        limit: Maximum characters per page (>= 1).

    Returns:
        The ordered list of pages. Whitespace-only input yields a single
        empty page so an entry is never left without pages.
    """
    if limit < 1:
        raise ValueError(f"Pagination limit must be positive, got {limit}")

    pages: List[Page] = []
    remaining = full_text

    while len(remaining) > limit:
        split_idx = remaining.rfind("\n", 0, limit + 1)
        if split_idx == -1 or split_idx < limit * SPLIT_THRESHOLD:
            split_idx = limit

        chunk = remaining[:split_idx].strip()
        if chunk:
            pages.append(Page(content=chunk))
        remaining = remaining[split_idx:].strip()

    remaining = remaining.strip()
    if remaining:
        pages.append(Page(content=remaining))

    if not pages:
        pages.append(Page(content=""))
    return pages


def repaginate_entry(entry: Entry, limit: int) -> bool:
    """
    Re-flows the whole entry (all pages joined) in place.

    Returns:
        False when nothing changed: the joined text fits into one page and the
        entry already has at most one page. True otherwise.
    """
    if not entry.pages:
        entry.pages = [Page(content="")]
        return True

    full_text = join_pages(entry.pages)
    if len(full_text) <= limit and len(entry.pages) <= 1:
        return False

    before = len(entry.pages)
    entry.pages = paginate(full_text, limit)
    logger.debug(f"Entry '{entry.id}' re-paginated: {before} -> {len(entry.pages)} pages (limit {limit})")
    return True
