"""
Readers for the Notion workspace.

This subpackage provides the rate-limited, paginated Notion API client and
the tag resolver that walks a page's ancestors through it.
"""

from .notion_client import NotionClient, RateLimiter
from .tag_resolver import TagResolver

__all__ = ["NotionClient", "RateLimiter", "TagResolver"]
