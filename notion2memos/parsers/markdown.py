from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Union

from notion2memos.models.notion import Block, RichText, parse_timestamp
from notion2memos.utils.tags import format_tag_line

CREATED_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_CODE_LANGUAGE = "text"

# Source heading level -> Markdown prefix; shifted one level down because the
# page title takes level 1.
_HEADING_PREFIXES = {
    "heading_1": "## ",
    "heading_2": "### ",
    "heading_3": "#### ",
}


def blocks_to_markdown(
    blocks: Sequence[Block],
    created_time: Union[str, datetime, None],
    page_title: str,
    tags: Optional[Iterable[str]] = None,
) -> str:
    """
    Convert a page's blocks to a single Markdown memo.

    The memo starts with the page title as a level-1 heading, followed by
    the sanitized tags on one line, an HTML comment holding the creation
    time (only when ``created_time`` parses), and one entry per non-empty
    block, separated by blank lines.

    Covered block types: paragraphs, headings 1-3 (rendered one level
    deeper), bulleted, numbered and to-do list items, and code blocks.
    Anything else renders to nothing.
    """
    sections: List[str] = []

    if page_title:
        sections.append(f"# {page_title}")

    tag_line = format_tag_line(tags or [])
    if tag_line:
        sections.append(tag_line)

    created = parse_timestamp(created_time)
    if created is not None:
        sections.append(f"<!-- Created: {created.strftime(CREATED_FORMAT)} -->")

    for block in blocks:
        text = block_to_markdown(block)
        if text:
            sections.append(text)

    return "\n\n".join(sections).strip()


def block_to_markdown(block: Block) -> str:
    """Render one block, or return ``""`` when it has nothing to show."""
    content = block.content
    if content is None:
        return ""

    kind = block.type
    if kind == "paragraph":
        return rich_text_to_markdown(content.rich_text)
    if kind in _HEADING_PREFIXES:
        return _HEADING_PREFIXES[kind] + rich_text_to_markdown(content.rich_text)
    if kind == "bulleted_list_item":
        return "- " + rich_text_to_markdown(content.rich_text)
    if kind == "numbered_list_item":
        # Memos renumbers ordered lists itself
        return "1. " + rich_text_to_markdown(content.rich_text)
    if kind == "to_do":
        checkbox = "- [x]" if block.to_do.checked else "- [ ]"
        return f"{checkbox} {rich_text_to_markdown(content.rich_text)}"
    if kind == "code":
        lang = block.code.language or DEFAULT_CODE_LANGUAGE
        return f"```{lang}\n{rich_text_to_plain_text(content.rich_text)}\n```"
    return ""


def format_run(run: RichText) -> str:
    """Apply a run's annotations and link to its text."""
    text = run.plain_text
    if not text:
        return ""

    ann = run.annotations
    if ann is not None:
        if ann.code:
            text = f"`{text}`"
        if ann.bold:
            text = f"**{text}**"
        if ann.italic:
            text = f"*{text}*"
        if ann.strikethrough:
            text = f"~~{text}~~"

    url = run.link_url
    if url:
        text = f"[{text}]({url})"
    return text


def rich_text_to_markdown(runs: Iterable[RichText]) -> str:
    return "".join(format_run(run) for run in runs)


def rich_text_to_plain_text(runs: Iterable[RichText]) -> str:
    return "".join(run.plain_text for run in runs)
