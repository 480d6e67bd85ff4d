"""Knowledge item schema, persistence, and browsing."""

from .index import Indexer, group_by_category, render_index
from .schema import (
    UNCATEGORIZED,
    AnalysisResult,
    ChatMessage,
    ItemType,
    KnowledgeItem,
    deserialize_items,
    serialize_items,
)
from .store import JsonItemStore, KnowledgeBase

__all__ = [
    "UNCATEGORIZED",
    "AnalysisResult",
    "ChatMessage",
    "Indexer",
    "ItemType",
    "JsonItemStore",
    "KnowledgeBase",
    "KnowledgeItem",
    "deserialize_items",
    "group_by_category",
    "render_index",
    "serialize_items",
]
