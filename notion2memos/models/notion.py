from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNTITLED = "Untitled"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as Notion returns it.

    Accepts ``datetime`` instances unchanged.  Returns ``None`` for empty or
    unparseable values.
    """
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # RFC 3339 requires an offset
    if parsed.tzinfo is None:
        return None
    return parsed


class Link(BaseModel):
    url: str = ""

    model_config = ConfigDict(extra="allow")


class TextContent(BaseModel):
    content: str = ""
    link: Optional[Link] = None

    model_config = ConfigDict(extra="allow")


class Annotations(BaseModel):
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"

    model_config = ConfigDict(extra="allow")


class RichText(BaseModel):
    """One inline run of text with its own formatting and link."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = "text"
    plain_text: str = ""
    text: Optional[TextContent] = None
    annotations: Optional[Annotations] = None
    href: Optional[str] = None

    @property
    def link_url(self) -> Optional[str]:
        """Run-level ``href`` first, then the link embedded in the text payload."""
        if self.href:
            return self.href
        if self.text is not None and self.text.link is not None and self.text.link.url:
            return self.text.link.url
        return None


class TextBlockContent(BaseModel):
    rich_text: List[RichText] = Field(default_factory=list)
    color: str = "default"

    model_config = ConfigDict(extra="allow")


class ToDoBlockContent(TextBlockContent):
    checked: bool = False


class CodeBlockContent(TextBlockContent):
    language: str = ""

    @field_validator("language", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Optional[str]):
        return v or ""


class Block(BaseModel):
    """A single structural unit of a page body.

    Only the payload matching ``type`` is expected to be set.  Block types
    without a payload field here (images, tables, embeds...) are still
    accepted and simply have no content.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    object: str = "block"
    id: str = ""
    type: str = ""
    created_time: Optional[str] = None
    last_edited_time: Optional[str] = None
    has_children: bool = False

    paragraph: Optional[TextBlockContent] = None
    heading_1: Optional[TextBlockContent] = None
    heading_2: Optional[TextBlockContent] = None
    heading_3: Optional[TextBlockContent] = None
    bulleted_list_item: Optional[TextBlockContent] = None
    numbered_list_item: Optional[TextBlockContent] = None
    to_do: Optional[ToDoBlockContent] = None
    code: Optional[CodeBlockContent] = None

    @property
    def content(self) -> Optional[TextBlockContent]:
        """The payload for this block's type, if it is a supported one."""
        value = getattr(self, self.type, None) if self.type in _SUPPORTED_BLOCK_TYPES else None
        return value


_SUPPORTED_BLOCK_TYPES = frozenset(
    {
        "paragraph",
        "heading_1",
        "heading_2",
        "heading_3",
        "bulleted_list_item",
        "numbered_list_item",
        "to_do",
        "code",
    }
)


class Property(BaseModel):
    id: str = ""
    type: str = ""
    title: List[RichText] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("title", mode="before")
    @classmethod
    def _title_only_for_title_props(cls, v: Any):
        # Non-title properties may carry a differently shaped "title" key
        return v if isinstance(v, list) else []


class Page(BaseModel):
    """A Notion page.  Immutable once fetched."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    object: str = "page"
    id: str
    created_time: str = ""
    last_edited_time: str = ""
    parent: Dict[str, Any] = Field(default_factory=dict)
    properties: Dict[str, Property] = Field(default_factory=dict)
    url: str = ""

    @property
    def title(self) -> str:
        for prop in self.properties.values():
            if prop.type == "title" and prop.title:
                return prop.title[0].plain_text
        return UNTITLED

    @property
    def parent_page_id(self) -> str:
        if self.parent.get("type") == "page_id":
            return self.parent.get("page_id") or ""
        return ""

    @property
    def parent_database_id(self) -> str:
        # Rows of a data source still name the database that owns it
        if self.parent.get("type") in ("database_id", "data_source_id"):
            return self.parent.get("database_id") or ""
        return ""

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self.created_time)


class Database(BaseModel):
    """A Notion database; only its display title is used."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    object: str = "database"
    id: str
    title: List[RichText] = Field(default_factory=list)

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title[0].plain_text
        return UNTITLED


class PaginatedResponse(BaseModel):
    """One page of results from a cursor-driven Notion endpoint."""

    model_config = ConfigDict(extra="allow")

    object: str = "list"
    results: List[Dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False
