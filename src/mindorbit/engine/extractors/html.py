"""HTML content extractor."""

from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup

from .base import ExtractedContent, Extractor

NOISE_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "aside", "form"]

# First match wins; falls back to <body>
CONTENT_SELECTORS = ["article", "main", "[role=main]", ".content", "#content"]

# (tag, attrs, attribute holding the URL)
SOURCE_URL_HINTS = [
    ("link", {"rel": "canonical"}, "href"),
    ("meta", {"property": "og:url"}, "content"),
]


class HTMLExtractor(Extractor):
    """Extracts readable text, a title and the canonical URL from HTML."""

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in {".html", ".htm"}

    def extract(self, path: Path) -> ExtractedContent:
        return self.extract_from_string(path.read_text(encoding="utf-8", errors="ignore"))

    def extract_from_string(self, html: str) -> ExtractedContent:
        soup = BeautifulSoup(html, "lxml")
        title = self._title(soup)
        source_url = self._source_url(soup)

        for tag in soup.find_all(NOISE_TAGS):
            tag.decompose()

        root = next(
            (el for el in map(soup.select_one, CONTENT_SELECTORS) if el is not None),
            soup.body,
        )
        text = root.get_text(separator="\n", strip=True) if root else ""

        return ExtractedContent(text=text, source_url=source_url, suggested_title=title)

    @staticmethod
    def _title(soup: BeautifulSoup) -> Optional[str]:
        og_title = soup.find("meta", property="og:title")
        if og_title and og_title.get("content", "").strip():
            return og_title["content"].strip()
        if soup.title:
            return soup.title.get_text(strip=True) or None
        return None

    @staticmethod
    def _source_url(soup: BeautifulSoup) -> Optional[str]:
        for name, attrs, attr in SOURCE_URL_HINTS:
            tag = soup.find(name, attrs=attrs)
            if tag and tag.get(attr):
                return tag[attr]
        return None
