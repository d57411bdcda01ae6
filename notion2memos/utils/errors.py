"""
Error taxonomy and structured run reports for the migration.

The exception classes defined here are the only errors the pipeline raises
on purpose.  All of them derive from :class:`MigrationError`, so the CLI can
turn any of them into a non-zero exit code with a single ``except`` clause.
Only :class:`TagResolutionWarning` is never propagated: the tag resolver
records it and carries on with the tags it already has.

Besides the exceptions, the module centralizes the writing of log entries for
both failed and successful operations during a run.  Each entry is appended
to a JSON Lines file under ``reports/migration`` so that the information can
be reviewed or parsed afterwards.

``report_error``
    Record an error that occurred for a page.  An optional exception can be
    supplied and will be serialized to the log.

``report_ok``
    Record a successful step for a page.  Additional key/value information
    can be attached to the entry via the ``extra`` parameter.

The ``ERRORS`` dictionary maps error or event codes to human readable
messages.  Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """Base class for every fatal error raised while migrating."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.page_title: Optional[str] = None
        self.page_id: Optional[str] = None

    def attach_page(self, title: str, page_id: str) -> "MigrationError":
        """Record the page that was being migrated when the error happened."""
        if self.page_id is None:
            self.page_title = title
            self.page_id = page_id
        return self

    def __str__(self) -> str:
        if self.page_id is not None:
            return f"failed to migrate page '{self.page_title}' ({self.page_id}): {self.message}"
        return self.message


class ConfigError(MigrationError):
    """A required setting is missing or the config file cannot be used."""


class TransportError(MigrationError):
    """An HTTP call failed: non-2xx status, timeout or connection error.

    ``status_code`` is ``None`` when no response was received at all.
    """

    def __init__(
        self,
        status_code: Optional[int],
        body: str = "",
        *,
        url: str = "",
        service: str = "notion",
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        self.service = service
        if status_code is None:
            message = f"request to {url or 'remote service'} failed: {body}"
        else:
            message = f"API request failed with status {status_code}: {body}"
        super().__init__(message)


class DecodeError(MigrationError):
    """A response body could not be decoded into the expected shape."""


class TagResolutionWarning(MigrationError):
    """An ancestor lookup failed while resolving tags.

    Never raised out of the resolver; instances are collected on
    :attr:`TagResolver.warnings` and logged.
    """

    def __init__(self, message: str, *, partial_tags: Optional[list] = None) -> None:
        super().__init__(message)
        self.partial_tags = list(partial_tags or [])


class StateIOError(MigrationError):
    """The durable processed-set could not be read, written or removed."""


class DispatchError(MigrationError):
    """A memo could not be handed to its destination."""


class SplitDispatchError(DispatchError):
    """One part of a split page could not be created."""

    def __init__(self, part_number: int, total_parts: int, cause: BaseException) -> None:
        self.part_number = part_number
        self.total_parts = total_parts
        self.cause = cause
        super().__init__(f"failed to create memo part {part_number}/{total_parts}: {cause}")


class CancelledError(MigrationError):
    """The run was cancelled while waiting for a rate-limiter permit."""


# Mapping of event codes used throughout the migration to descriptive messages.
# The keys include both error and success codes as the same lookup is used by
# :func:`report_error` and :func:`report_ok`.
ERRORS: Dict[str, str] = {
    "NOTION_NETWORK": "Network error communicating with Notion",
    "MEMOS_NETWORK": "Network error communicating with Memos",
    "DECODE": "Unexpected response body",
    "STATE_IO": "Failed to persist migration state",
    "SPLIT_DISPATCH": "Failed to create one part of a split page",
    "DISPATCH": "Failed to write memo",
    "CANCELLED": "Migration cancelled",
    "MIGRATION_FAILED": "Unexpected error while migrating page",
    "MEMO_CREATED": "Memo created successfully",
    "PAGE_MIGRATED": "Page migrated successfully",
    "PAGE_SKIPPED_EMPTY": "Page has no content and was skipped",
}

REPORT_DIR = os.path.join("reports", "migration")


def error_code_for(exc: BaseException) -> str:
    """Return the report code matching the kind of ``exc``."""
    if isinstance(exc, SplitDispatchError):
        return "SPLIT_DISPATCH"
    if isinstance(exc, DispatchError):
        return "DISPATCH"
    if isinstance(exc, TransportError):
        return "MEMOS_NETWORK" if exc.service == "memos" else "NOTION_NETWORK"
    if isinstance(exc, DecodeError):
        return "DECODE"
    if isinstance(exc, StateIOError):
        return "STATE_IO"
    if isinstance(exc, CancelledError):
        return "CANCELLED"
    return "MIGRATION_FAILED"


def _page_fields(page: Any) -> Dict[str, Any]:
    if page is None:
        return {"page_id": None, "title": None}
    if isinstance(page, dict):
        return {"page_id": page.get("id"), "title": page.get("title")}
    return {"page_id": getattr(page, "id", None), "title": getattr(page, "title", None)}


def _write_jsonl(path: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``path``."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def report_error(
    code: str,
    page: Any,
    exc: Optional[BaseException] = None,
    *,
    report_dir: str = REPORT_DIR,
) -> None:
    """Log an error event for ``page``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    page:
        The page the error belongs to, either a
        :class:`~notion2memos.models.notion.Page` or a dict with ``id`` and
        ``title`` keys.  ``None`` for run-level errors.
    exc:
        Optional exception instance that triggered the error.  The string
        representation of the exception will be included in the log entry.
    report_dir:
        Directory holding ``errors.jsonl``.
    """
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {"code": code, "message": message, **_page_fields(page)}
    if exc is not None:
        entry["error"] = str(exc)
        if isinstance(exc, TransportError):
            entry["status_code"] = exc.status_code
    logger.error("%s - %s", message, entry.get("title") or "")
    _write_jsonl(os.path.join(report_dir, "errors.jsonl"), entry)


def report_ok(
    code: str,
    page: Any,
    extra: Optional[Dict[str, Any]] = None,
    *,
    report_dir: str = REPORT_DIR,
) -> None:
    """Log a successful event for ``page``.

    Parameters
    ----------
    code:
        A key identifying the type of event.
    page:
        The page the event belongs to.
    extra:
        Optional dictionary of additional fields to merge into the log entry.
    report_dir:
        Directory holding ``success.jsonl``.
    """
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {"code": code, "message": message, **_page_fields(page)}
    if extra:
        entry.update(extra)
    logger.debug("%s - %s", message, entry.get("title") or "")
    _write_jsonl(os.path.join(report_dir, "success.jsonl"), entry)
