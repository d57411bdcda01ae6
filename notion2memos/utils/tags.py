from __future__ import annotations

import re
from typing import Dict, Iterable, List

_DISALLOWED = re.compile(r"[^A-Za-z0-9_-]")

# Fixed cosmetic corrections applied to resolved tags before rendering.
KNOWN_TAG_SUBSTITUTIONS: Dict[str, str] = {
    "Tagebuch": "tagebuch",
}


def sanitize_tag(tag: str) -> str:
    """
    Turn a page or database title into a Memos tag.

    - Replaces spaces and '.' with '_'
    - Drops every character outside ``[A-Za-z0-9_-]``

    The result of sanitizing is a fixed point: ``sanitize_tag(sanitize_tag(x))
    == sanitize_tag(x)``.
    """
    if not tag:
        return ""
    text = tag.replace(" ", "_").replace(".", "_")
    return _DISALLOWED.sub("", text)


def normalize_known_tags(tags: Iterable[str]) -> List[str]:
    """
    Apply :data:`KNOWN_TAG_SUBSTITUTIONS` to a list of resolved tags.

    Each known value is replaced at its first occurrence only; the order of
    the tags is preserved.
    """
    result = list(tags)
    for original, replacement in KNOWN_TAG_SUBSTITUTIONS.items():
        for i, tag in enumerate(result):
            if tag == original:
                result[i] = replacement
                break
    return result


def format_tag_line(tags: Iterable[str]) -> str:
    """Render tags as ``#tag`` tokens on one line, skipping tags that sanitize to nothing."""
    cleaned = [sanitize_tag(t) for t in tags]
    return " ".join(f"#{t}" for t in cleaned if t)
