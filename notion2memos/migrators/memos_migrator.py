"""
Memos API helpers for the Notion → Memos migration.

:class:`MemosClient` creates memos through the Memos REST API.  Creation is
a two-step operation: the memo is created with its content, then its
display time is patched to the Notion creation time, since not every Memos
version honors a creation time sent with the create call.

:class:`DryRunWriter` has the same ``create_memo`` signature but writes each
memo to a Markdown file instead, so a migration can be previewed without
touching the Memos instance.

Usage example::

    from notion2memos.migrators.memos_migrator import MemosClient

    memos = MemosClient("https://memos.example.com", token)
    name = memos.create_memo("# Groceries\\n\\nMilk", created_time)

"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from notion2memos.utils.errors import DecodeError, DispatchError, TransportError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0
DRY_RUN_DIR = "dry-run-output"
DRY_RUN_FILENAME_FORMAT = "%Y-%m-%d-%H%M%S"
DRY_RUN_CREATED_FORMAT = "%Y-%m-%d %H:%M:%S"


def memos_headers(token: str) -> Dict[str, str]:
    """
    Construct the default headers required for Memos API requests.

    :param token: A Memos access token.
    :return: A dictionary of headers including Authorization.
    """
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def to_rfc3339(value: datetime) -> str:
    """Format ``value`` as RFC 3339 in UTC; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class MemosClient:
    """Creates memos on a Memos instance."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(
                method,
                url,
                headers=memos_headers(self._token),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as e:
            raise TransportError(None, f"timed out after {self.timeout:g}s: {e}", url=url, service="memos") from e
        except requests.RequestException as e:
            raise TransportError(None, str(e), url=url, service="memos") from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise TransportError(resp.status_code, resp.text, url=url, service="memos")
        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"failed to decode response from {url}: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError(f"unexpected memo payload from {url}: {data!r}")
        return data

    def create_memo(self, content: str, created_time: Optional[datetime] = None) -> str:
        """
        Create a memo and set its displayed creation time.

        :param content: Markdown content, at most 8192 characters.
        :param created_time: Creation time to show on the memo.
        :return: The memo's resource name (``memos/<id>``), or its id for
            servers that do not return a name.
        :raises TransportError: on any non-2xx response.
        :raises DecodeError: if a response body is not the expected JSON.
        """
        body: Dict[str, Any] = {"content": content}
        if created_time is not None:
            stamp = to_rfc3339(created_time)
            body["createTime"] = stamp
            body["displayTime"] = stamp

        created = self._request("POST", "/api/v1/memos", json=body)
        name = created.get("name") or ""
        identifier = name or str(created.get("id") or created.get("uid") or "")
        if not identifier:
            raise DecodeError(f"memo creation returned no identifier: {created!r}")
        logger.debug("Created memo %s", identifier)

        if created_time is not None and name:
            self._request(
                "PATCH",
                f"/api/v1/{name}",
                params={"updateMask": "display_time"},
                json={"name": name, "displayTime": body["displayTime"]},
            )
        return identifier


class DryRunWriter:
    """
    Stand-in for :class:`MemosClient` that saves each memo as a local
    Markdown file named after its creation time.
    """

    def __init__(self, output_dir: str = DRY_RUN_DIR) -> None:
        self.output_dir = output_dir

    def create_memo(self, content: str, created_time: Optional[datetime] = None) -> str:
        created = created_time or datetime.now(timezone.utc)
        path = os.path.join(self.output_dir, f"{created.strftime(DRY_RUN_FILENAME_FORMAT)}.md")
        full_content = (
            f"---\nCreated: {created.strftime(DRY_RUN_CREATED_FORMAT)}\nDry Run: true\n---\n\n{content}"
        )
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(full_content)
        except OSError as e:
            raise DispatchError(f"failed to write dry-run file {path}: {e}") from e
        logger.debug("Wrote dry-run memo %s", path)
        return path
