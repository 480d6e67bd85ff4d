"""Pydantic models for knowledge items and chat messages."""

import secrets
import string
import time
from enum import Enum
from typing import Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from ..errors import StoreCorruptedError

UNCATEGORIZED = "Uncategorized"

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Generate an opaque 26-character base-36 identifier."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(26))


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _normalize_tags(tags) -> list[str]:
    if tags is None:
        return []
    if not isinstance(tags, (list, tuple)):
        raise ValueError(f"tags must be a list, got {type(tags).__name__}")
    normalized = []
    for tag in tags:
        tag = str(tag).strip().lower()
        if tag:
            normalized.append(tag)
    return normalized


def _normalize_category(category: str | None) -> str:
    category = (category or "").strip()
    return category or UNCATEGORIZED


class ItemType(str, Enum):
    """How the content was submitted."""

    TEXT = "TEXT"
    URL = "URL"


class AnalysisResult(BaseModel):
    """Metadata derived from content by the analysis capability."""

    title: str
    summary: str
    tags: list[str] = Field(default_factory=list)
    category: str = UNCATEGORIZED
    is_fallback: bool = Field(default=False, exclude=True)

    @field_validator("tags", mode="before")
    @classmethod
    def _check_tags(cls, value) -> list[str]:
        return _normalize_tags(value)

    @field_validator("category", mode="before")
    @classmethod
    def _check_category(cls, value) -> str:
        return _normalize_category(value)

    @classmethod
    def fallback(cls) -> "AnalysisResult":
        """The record substituted whenever analysis fails."""
        return cls(
            title="Untitled Knowledge",
            summary="Could not analyze content automatically.",
            tags=["misc"],
            category=UNCATEGORIZED,
            is_fallback=True,
        )


class KnowledgeItem(BaseModel):
    """One captured unit of knowledge plus its derived metadata.

    Items are immutable once created. ``created_at`` is serialized as
    ``createdAt`` (epoch milliseconds) to stay compatible with stored
    working sets.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=generate_id, min_length=1)
    type: ItemType = ItemType.TEXT
    content: str
    title: str
    summary: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str = UNCATEGORIZED
    created_at: int = Field(default_factory=now_ms, alias="createdAt")

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _check_tags(cls, value) -> list[str]:
        return _normalize_tags(value)

    @field_validator("category", mode="before")
    @classmethod
    def _check_category(cls, value) -> str:
        return _normalize_category(value)

    @classmethod
    def from_analysis(
        cls,
        content: str,
        item_type: ItemType,
        analysis: AnalysisResult,
    ) -> "KnowledgeItem":
        """Construct a new item from user content and its analysis."""
        return cls(
            type=item_type,
            content=content,
            title=analysis.title,
            summary=analysis.summary,
            tags=analysis.tags,
            category=analysis.category,
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return self.model_dump(mode="json", by_alias=True)


class ChatMessage(BaseModel):
    """A single role-tagged entry in a chat transcript."""

    id: str = Field(default_factory=generate_id)
    role: Literal["user", "model"]
    text: str
    timestamp: int = Field(default_factory=now_ms)


_ITEMS_ADAPTER = TypeAdapter(list[KnowledgeItem])


def serialize_items(items: Iterable[KnowledgeItem]) -> str:
    """Serialize a working set to a JSON array."""
    return _ITEMS_ADAPTER.dump_json(list(items), by_alias=True, indent=2).decode("utf-8")


def deserialize_items(text: str) -> list[KnowledgeItem]:
    """Parse a JSON array produced by :func:`serialize_items`.

    Raises:
        StoreCorruptedError: If the text is not a valid working set.
    """
    try:
        return _ITEMS_ADAPTER.validate_json(text)
    except ValidationError as e:
        raise StoreCorruptedError(f"Invalid working set: {e.error_count()} error(s)") from e
