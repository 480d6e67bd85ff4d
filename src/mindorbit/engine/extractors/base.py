"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ...knowledge.schema import ItemType


@dataclass
class ExtractedContent:
    """Content extracted from a file or web page."""

    text: str = ""
    source_url: Optional[str] = None
    suggested_title: Optional[str] = None

    @property
    def item_type(self) -> ItemType:
        return ItemType.URL if self.source_url else ItemType.TEXT


class Extractor(ABC):
    """Base class for content extractors."""

    @abstractmethod
    def can_handle(self, path: Path) -> bool:
        """Check if this extractor can handle the given file."""

    @abstractmethod
    def extract(self, path: Path) -> ExtractedContent:
        """Extract content from the file."""
