"""
Top-level package for the Notion → Memos migration utility.

This package bundles all components required to read pages from a Notion
workspace, derive tags from their ancestors, convert their blocks to
Markdown, split oversized notes, create them in Memos, and remember which
pages are done so an interrupted migration can resume.  Modules are split
into subpackages:

* :mod:`notion2memos.extractors` – Notion API client and tag resolution
* :mod:`notion2memos.parsers` – Markdown rendering and memo splitting
* :mod:`notion2memos.migrators` – Memos API interactions and dry-run output
* :mod:`notion2memos.models` – pydantic models of Notion objects
* :mod:`notion2memos.utils` – errors, run reports, tags and migration state

Each layer has no direct knowledge of configuration or execution strategy;
orchestration is handled in :mod:`notion2memos.migration_tool`.
"""

__version__ = "0.1.0"
