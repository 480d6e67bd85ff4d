"""Plain text, markdown and JSON capture extractor."""

import json
import re
from pathlib import Path
from typing import Optional

from .base import ExtractedContent, Extractor

TEXT_EXTENSIONS = {".txt", ".md", ".markdown", ".rst", ".json"}

_HEADING_RE = re.compile(r"^[ \t]*#{1,2}[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)


def heading_title(text: str) -> Optional[str]:
    """First level-1 or level-2 markdown heading, if any."""
    match = _HEADING_RE.search(text)
    return match.group(1) if match else None


def filename_title(path: Path) -> str:
    return re.sub(r"[_-]+", " ", path.stem).strip().title()


class TextExtractor(Extractor):
    """Extracts content from plain text files and saved JSON captures."""

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in TEXT_EXTENSIONS

    def extract(self, path: Path) -> ExtractedContent:
        text = path.read_text(encoding="utf-8", errors="ignore")

        if path.suffix.lower() == ".json":
            return self._extract_json(text)

        return ExtractedContent(
            text=text,
            suggested_title=heading_title(text) or filename_title(path),
        )

    def _extract_json(self, text: str) -> ExtractedContent:
        """A capture saved as ``{"content", "url" | "source_url", "title"}``.

        Any other JSON document is captured as its pretty-printed form, and
        invalid JSON as the raw text.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return ExtractedContent(text=text)

        if not isinstance(data, dict):
            return ExtractedContent(text=json.dumps(data, indent=2))

        return ExtractedContent(
            text=data.get("content") or json.dumps(data, indent=2),
            source_url=data.get("source_url") or data.get("url"),
            suggested_title=data.get("title"),
        )
