"""
Data models for Notion objects.

Responses from the Notion API are validated into these pydantic models as
soon as they are received, so the rest of the pipeline works with typed
attributes instead of raw dictionaries.
"""

from .notion import (
    Annotations,
    Block,
    Database,
    Page,
    PaginatedResponse,
    RichText,
    parse_timestamp,
)

__all__ = [
    "Annotations",
    "Block",
    "Database",
    "Page",
    "PaginatedResponse",
    "RichText",
    "parse_timestamp",
]
