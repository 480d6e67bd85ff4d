"""Content extractors for inbox files and fetched pages."""

from .base import ExtractedContent, Extractor
from .html import HTMLExtractor
from .text import TextExtractor

__all__ = ["ExtractedContent", "Extractor", "HTMLExtractor", "TextExtractor"]
