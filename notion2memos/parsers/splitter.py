"""
Splitting of memos that exceed the Memos content limit.

Memos rejects content longer than :data:`MEMOS_MAX_LENGTH` characters.  A
page rendered longer than that is cut into several memos at line
boundaries.  Each part gets a numbered title (``Title (2/3)``), ellipsis
markers that show where the text continues, and a creation time five
seconds after the previous part so the parts sort in order.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, NamedTuple

MEMOS_MAX_LENGTH = 8192
SPLIT_HEADROOM = 200
PART_TIME_STEP = timedelta(seconds=5)

SPLIT_MARKER = "\n\n..."
CONTINUATION_MARKER = "...\n\n"

# Room for " (nn/nn)", "# ", the blank line and both markers.
_PART_OVERHEAD = 40

# A newline in the first tenth of the window is not used as a cut point.
MIN_CHUNK_FRACTION = 10


class MemoPart(NamedTuple):
    content: str
    created_time: datetime


def needs_split(content: str, max_length: int = MEMOS_MAX_LENGTH) -> bool:
    return len(content) > max_length


def _headroom(page_title: str, max_length: int) -> int:
    reserve = max(SPLIT_HEADROOM, len(page_title) + _PART_OVERHEAD)
    return min(reserve, max_length - 1)


def chunk_text(content: str, chunk_size: int) -> List[str]:
    """
    Cut ``content`` into chunks of at most ``chunk_size`` characters.

    Each cut is made at the last newline at or before ``chunk_size``; when
    there is no newline in range, or it sits so early that the chunk would
    be nearly empty, the text is cut hard at ``chunk_size``.  Newlines at the
    end of a chunk and spaces and newlines at the start of the remainder are
    dropped.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    chunks: List[str] = []
    remaining = content
    while len(remaining) > chunk_size:
        break_point = remaining.rfind("\n", 0, chunk_size + 1)
        if break_point <= chunk_size // MIN_CHUNK_FRACTION:
            break_point = chunk_size
        chunk = remaining[:break_point].rstrip("\n")
        if chunk:
            chunks.append(chunk)
        remaining = remaining[break_point:].lstrip("\n ")

    if remaining:
        chunks.append(remaining)
    return chunks


def _strip_title(chunk: str, page_title: str) -> str:
    first, sep, rest = chunk.partition("\n")
    if first == f"# {page_title}":
        return rest.lstrip("\n")
    return chunk


def split_content(
    content: str,
    page_title: str,
    created_time: datetime,
    *,
    max_length: int = MEMOS_MAX_LENGTH,
) -> List[MemoPart]:
    """
    Split an oversized memo into numbered parts.

    The plain ``# <title>`` line is removed from the chunk that carries it
    and every part gets ``# <title> (i/n)`` instead.  The first part ends with
    :data:`SPLIT_MARKER`, the last one starts with :data:`CONTINUATION_MARKER`,
    and parts in between carry both.  Part ``i`` (0-based) is timestamped
    ``created_time + 5 * i`` seconds.

    :param content: Rendered Markdown, usually longer than ``max_length``.
    :param page_title: Title of the page, without numbering.
    :param created_time: Creation time of the page.
    :return: The parts in order.  Content that does not need splitting is
        returned as a single part unchanged.
    """
    if not needs_split(content, max_length):
        return [MemoPart(content, created_time)]

    chunks = chunk_text(content, max_length - _headroom(page_title, max_length))
    total = len(chunks)

    parts: List[MemoPart] = []
    for i, chunk in enumerate(chunks):
        body = _strip_title(chunk, page_title)
        heading = f"# {page_title} ({i + 1}/{total})\n\n"
        if i == 0:
            text = heading + body + SPLIT_MARKER
        elif i == total - 1:
            text = heading + CONTINUATION_MARKER + body
        else:
            text = heading + CONTINUATION_MARKER + body + SPLIT_MARKER
        parts.append(MemoPart(text, created_time + PART_TIME_STEP * i))
    return parts
