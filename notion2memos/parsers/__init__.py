"""
Converters used by the migration pipeline.

This subpackage exposes ``blocks_to_markdown`` from
:mod:`notion2memos.parsers.markdown` and ``split_content`` from
:mod:`notion2memos.parsers.splitter`.
"""

from .markdown import blocks_to_markdown
from .splitter import MemoPart, needs_split, split_content

__all__ = ["blocks_to_markdown", "MemoPart", "needs_split", "split_content"]
