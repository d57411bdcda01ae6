"""
Hierarchical tag resolution for Notion pages.

A page's tags are the titles of its ancestors, outermost first, preceded by
the title of the database that owns the page when there is one.  Ancestors
are looked up through two run-scoped caches so pages that share a parent do
not refetch it.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from notion2memos.extractors.notion_client import NotionClient
from notion2memos.models.notion import Database, Page
from notion2memos.utils.errors import DecodeError, TagResolutionWarning, TransportError

logger = logging.getLogger(__name__)

# Bounds the ancestor walk so a cyclic parent chain still terminates.
MAX_ANCESTOR_HOPS = 10


class TagResolver:
    """
    Resolve ancestor tags for pages, caching every page and database it
    fetches for the lifetime of the instance.  Create one resolver per
    migration run and drop it afterwards.
    """

    def __init__(self, client: NotionClient, *, max_hops: int = MAX_ANCESTOR_HOPS) -> None:
        self._client = client
        self.max_hops = max_hops
        self.pages: Dict[str, Page] = {}
        self.databases: Dict[str, Database] = {}
        self.warnings: List[TagResolutionWarning] = []

    def get_page_cached(self, page_id: str) -> Page:
        cached = self.pages.get(page_id)
        if cached is not None:
            return cached
        page = self._client.retrieve_page(page_id)
        self.pages.setdefault(page_id, page)
        return self.pages[page_id]

    def get_database_cached(self, database_id: str) -> Database:
        cached = self.databases.get(database_id)
        if cached is not None:
            return cached
        database = self._client.retrieve_database(database_id)
        self.databases.setdefault(database_id, database)
        return self.databases[database_id]

    def _warn(self, page: Page, message: str, tags: List[str]) -> None:
        warning = TagResolutionWarning(message, partial_tags=tags)
        warning.attach_page(page.title, page.id)
        self.warnings.append(warning)
        logger.warning("Failed to retrieve parent tags for page %s: %s", page.title, message)

    def resolve_tags(self, page: Page) -> List[str]:
        """
        Return the ordered tags for ``page``.

        The owning database's title comes first when the page's parent is a
        database.  Then the parent-page chain is walked upwards for at most
        :attr:`max_hops` steps, prepending each ancestor's title so the root
        of the hierarchy ends up first.  A failed lookup ends the walk and the
        tags gathered so far are returned; the failure is recorded in
        :attr:`warnings`.
        """
        tags: List[str] = []

        database_id = page.parent_database_id
        if database_id:
            try:
                tags.append(self.get_database_cached(database_id).display_title)
            except (TransportError, DecodeError) as e:
                self._warn(page, f"database {database_id}: {e}", tags)

        current_id = page.parent_page_id
        hops = 0
        while current_id and hops < self.max_hops:
            hops += 1
            try:
                parent = self.get_page_cached(current_id)
            except (TransportError, DecodeError) as e:
                self._warn(page, f"parent page {current_id}: {e}", tags)
                break
            tags.insert(0, parent.title)
            current_id = parent.parent_page_id

        return tags
