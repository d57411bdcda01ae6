"""
Shared fakes for the test suite: canned HTTP responses, a recording session
and builders for the Notion JSON shapes the client decodes.
"""

import json
from typing import Any, Callable, Dict, List, Optional


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; ``handler`` decides every response."""

    def __init__(self, handler: Callable[[str, str, Dict[str, Any]], Any]):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers, "timeout": timeout, **kwargs})
        result = self.handler(method, url, kwargs)
        if isinstance(result, Exception):
            raise result
        return result


class NullLimiter:
    def __init__(self):
        self.acquired = 0

    def acquire(self, cancel_event=None):
        self.acquired += 1


def rich(text: str, href: Optional[str] = None, **annotations) -> Dict[str, Any]:
    run: Dict[str, Any] = {
        "type": "text",
        "plain_text": text,
        "text": {"content": text, "link": {"url": href} if href else None},
        "annotations": {
            "bold": False,
            "italic": False,
            "strikethrough": False,
            "underline": False,
            "code": False,
            "color": "default",
            **annotations,
        },
        "href": href,
    }
    return run


def make_block(kind: str, *runs: Dict[str, Any], block_id: str = "blk", **payload) -> Dict[str, Any]:
    return {
        "object": "block",
        "id": block_id,
        "type": kind,
        "has_children": False,
        kind: {"rich_text": list(runs), "color": "default", **payload},
    }


def make_page(
    page_id: str,
    title: Optional[str] = "Untitled",
    *,
    parent: Optional[Dict[str, Any]] = None,
    created_time: str = "2024-03-15T10:30:00.000Z",
) -> Dict[str, Any]:
    properties: Dict[str, Any] = {}
    if title is not None:
        properties["Name"] = {"id": "title", "type": "title", "title": [rich(title)]}
    return {
        "object": "page",
        "id": page_id,
        "created_time": created_time,
        "last_edited_time": created_time,
        "parent": parent or {"type": "workspace", "workspace": True},
        "properties": properties,
        "url": f"https://www.notion.so/{page_id}",
    }


def page_parent(page_id: str) -> Dict[str, Any]:
    return {"type": "page_id", "page_id": page_id}


def database_parent(database_id: str) -> Dict[str, Any]:
    return {"type": "database_id", "database_id": database_id}


def make_database(database_id: str, title: str) -> Dict[str, Any]:
    return {"object": "database", "id": database_id, "title": [rich(title)]}


def listing(results: List[Dict[str, Any]], next_cursor: Optional[str] = None) -> Dict[str, Any]:
    return {
        "object": "list",
        "results": results,
        "next_cursor": next_cursor,
        "has_more": next_cursor is not None,
    }
