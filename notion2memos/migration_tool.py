"""
High-level orchestration of the Notion → Memos migration.

This module defines a :class:`NotionToMemosMigrationTool` class that ties
together the Notion client, the tag resolver, the Markdown renderer, the
splitter, the Memos client and the state tracker into a complete pipeline:
search every page, apply the title and resume filters, then for each page
fetch its blocks, resolve its tags, render it, split it if it is too long,
create the memo(s) and record the page as processed.

Configuration is supplied as a dictionary (see :mod:`notion2memos.config`)
or loaded from a JSON file path.  Collaborators can be injected, which is
how the tests drive the pipeline without a network.

A run is all-or-nothing per page: the first error while fetching,
rendering, splitting or dispatching a page stops the whole run, after the
pages migrated before it have been persisted.  Only tag lookups are allowed
to fail; the page is then migrated with whatever tags were found.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from tqdm import tqdm

from notion2memos.config import load_config
from notion2memos.extractors.notion_client import NotionClient
from notion2memos.extractors.tag_resolver import TagResolver
from notion2memos.migrators.memos_migrator import DryRunWriter, MemosClient
from notion2memos.models.notion import Page
from notion2memos.parsers.markdown import blocks_to_markdown
from notion2memos.parsers.splitter import needs_split, split_content
from notion2memos.utils.errors import (
    MigrationError,
    SplitDispatchError,
    error_code_for,
    report_error,
    report_ok,
)
from notion2memos.utils.state import StateTracker
from notion2memos.utils.tags import normalize_known_tags

logger = logging.getLogger("notion2memos")


class MemoDispatcher(Protocol):
    def create_memo(self, content: str, created_time: Optional[datetime] = None) -> str:
        ...


@dataclass
class MigrationSummary:
    found: int = 0
    selected: int = 0
    migrated: int = 0
    skipped_empty: int = 0
    memos_created: int = 0
    tag_warnings: int = 0


def filter_pages_by_title(pages: Iterable[Page], titles: Optional[Iterable[str]]) -> List[Page]:
    """Keep only pages whose title exactly equals one of ``titles``."""
    wanted = set(titles or [])
    if not wanted:
        return list(pages)
    return [page for page in pages if page.title in wanted]


def filter_processed_pages(pages: Iterable[Page], state: StateTracker) -> List[Page]:
    """Drop pages the state tracker already records as migrated."""
    return [page for page in pages if not state.contains(page.id)]


class NotionToMemosMigrationTool:
    """
    Encapsulates all state and behavior required to migrate a Notion
    workspace to Memos.  Success and failure information for each page is
    recorded using the :mod:`notion2memos.utils.errors` module.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        config_file: Optional[str] = None,
        dry_run: bool = False,
        notion_client: Optional[NotionClient] = None,
        dispatcher: Optional[MemoDispatcher] = None,
        state: Optional[StateTracker] = None,
        show_progress: bool = True,
    ) -> None:
        if config is None:
            config = load_config(config_file)
        self.config = config
        self.dry_run = dry_run
        self.show_progress = show_progress
        self.report_dir: str = config["migration"]["report_dir"]
        self.cancel_event = threading.Event()

        self.notion = notion_client or NotionClient(
            config["notion"]["token"],
            base_url=config["notion"]["base_url"],
            version=config["notion"]["version"],
            cancel_event=self.cancel_event,
        )
        if dispatcher is not None:
            self.dispatcher = dispatcher
        elif dry_run:
            self.dispatcher = DryRunWriter(config["migration"]["dry_run_dir"])
        else:
            self.dispatcher = MemosClient(config["memos"]["url"], config["memos"]["token"])
        self.state = state or StateTracker(config["migration"]["state_file"])

    def log_message(self, message: str, level: str = "INFO") -> None:
        logger.log(getattr(logging, level.upper(), logging.INFO), message)

    def cancel(self) -> None:
        """Stop the run at its next Notion request with :class:`CancelledError`."""
        self.cancel_event.set()

    def migrate(self, *, resume: bool = False, filter_titles: Optional[List[str]] = None) -> MigrationSummary:
        """
        Run the migration.

        :param resume: Skip pages recorded as processed by an earlier run.
        :param filter_titles: If given, only pages whose title exactly
            matches one of these strings are migrated.
        :return: Counts describing what the run did.
        :raises MigrationError: on the first fatal error.  Errors raised for
            a specific page carry its title and id.
        """
        summary = MigrationSummary()
        self.log_message("Starting migration from Notion to Memos...")
        if self.dry_run:
            self.log_message(
                f"DRY RUN MODE: memos will be saved to {self.config['migration']['dry_run_dir']}/ instead of being created"
            )

        self.state.load()
        resolver = TagResolver(self.notion)

        self.log_message("Searching for pages in Notion...")
        try:
            pages = self.notion.search_pages()
        except MigrationError as e:
            report_error(error_code_for(e), None, e, report_dir=self.report_dir)
            raise
        summary.found = len(pages)
        self.log_message(f"Found {len(pages)} pages")

        if filter_titles:
            pages = filter_pages_by_title(pages, filter_titles)
            self.log_message(f"Filtered to {len(pages)} pages matching specified titles")

        if resume:
            before = len(pages)
            pages = filter_processed_pages(pages, self.state)
            skipped = before - len(pages)
            if skipped:
                self.log_message(f"Skipping {skipped} already processed pages (resume mode)")

        summary.selected = len(pages)
        if not pages:
            self.log_message("No pages to migrate")
            return summary

        with tqdm(total=len(pages), desc="Migrating pages", unit="page", disable=not self.show_progress) as bar:
            for page in pages:
                warnings_before = len(resolver.warnings)
                try:
                    created = self.migrate_page(page, resolver)
                    self.state.mark_processed(page.id)
                    self.state.persist()
                except MigrationError as e:
                    e.attach_page(page.title, page.id)
                    report_error(error_code_for(e), page, e, report_dir=self.report_dir)
                    raise
                finally:
                    summary.tag_warnings += len(resolver.warnings) - warnings_before

                if created:
                    summary.migrated += 1
                    summary.memos_created += created
                    report_ok("PAGE_MIGRATED", page, {"memos": created}, report_dir=self.report_dir)
                else:
                    summary.skipped_empty += 1
                    report_ok("PAGE_SKIPPED_EMPTY", page, report_dir=self.report_dir)
                bar.update(1)

        self.log_message(f"Migration completed successfully! Migrated {summary.migrated} pages")
        if self.dry_run:
            self.log_message(f"Check {self.config['migration']['dry_run_dir']}/ for the generated markdown files")
        return summary

    def migrate_page(self, page: Page, resolver: TagResolver) -> int:
        """
        Migrate one page.

        :return: The number of memos created, ``0`` when the page had no
            content and was skipped.
        """
        title = page.title
        blocks = self.notion.retrieve_blocks(page.id)
        if not blocks:
            self.log_message(f"Skipping empty page (no blocks): {title}")
            return 0

        tags = normalize_known_tags(resolver.resolve_tags(page))
        markdown = blocks_to_markdown(blocks, page.created_time, title, tags)
        if not markdown:
            self.log_message(f"Skipping empty page: {title}")
            return 0

        created_time = page.created_at
        if created_time is None:
            self.log_message(
                f"Failed to parse created time for page '{title}' ({page.created_time!r}). Using current time as fallback.",
                level="WARNING",
            )
            created_time = datetime.now(timezone.utc)

        if not needs_split(markdown):
            self.dispatcher.create_memo(markdown, created_time)
            return 1

        self.log_message(f"Page '{title}' exceeds character limit ({len(markdown)} chars). Splitting into multiple memos...")
        return self.create_split_memos(markdown, title, created_time)

    def create_split_memos(self, content: str, title: str, created_time: datetime) -> int:
        parts = split_content(content, title, created_time)
        self.log_message(f"Split page '{title}' into {len(parts)} parts")
        for number, part in enumerate(parts, start=1):
            try:
                self.dispatcher.create_memo(part.content, part.created_time)
            except MigrationError as e:
                raise SplitDispatchError(number, len(parts), e) from e
            self.log_message(f"Created memo part {number}/{len(parts)} for page '{title}'", level="DEBUG")
        return len(parts)
