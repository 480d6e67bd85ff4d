"""Capture pipeline: content -> analysis -> knowledge item."""

import ipaddress
import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..config import Settings
from ..errors import CaptureError, MissingCredentialError
from ..knowledge.schema import AnalysisResult, ItemType, KnowledgeItem
from ..knowledge.store import KnowledgeBase
from ..llm import OpenAIClient
from ..utils import get_unique_path
from .extractors import Extractor, HTMLExtractor, TextExtractor

logger = logging.getLogger(__name__)

MISSING_KEY_ALERT = "OpenAI API key is not configured. Set OPENAI_API_KEY to analyze content."
FALLBACK_ALERT = "Failed to analyze content automatically; stored with default metadata."

_BARE_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)

BLOCKED_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "169.254.169.254"}


def is_bare_url(content: str) -> bool:
    return bool(_BARE_URL_RE.match(content.strip()))


@dataclass
class CaptureResult:
    """Outcome of a capture. ``alert`` is a message for the user, if any."""

    item: Optional[KnowledgeItem]
    alert: Optional[str] = None

    @property
    def created(self) -> bool:
        return self.item is not None


class Processor:
    """Turns user submissions and inbox files into knowledge items."""

    def __init__(
        self,
        settings: Settings,
        knowledge_base: KnowledgeBase,
        llm: Optional[OpenAIClient] = None,
    ):
        self.settings = settings
        self.knowledge_base = knowledge_base
        self.llm = llm or OpenAIClient(settings)
        self.extractors: list[Extractor] = [HTMLExtractor(), TextExtractor()]

    async def capture(
        self,
        content: str,
        item_type: ItemType = ItemType.TEXT,
        suggested_title: Optional[str] = None,
    ) -> CaptureResult:
        """Analyze ``content`` and add the resulting item to the knowledge base.

        ``suggested_title`` replaces the placeholder title when analysis
        falls back to default metadata.

        Raises:
            CaptureError: If the content is blank.
        """
        if not content or not content.strip():
            raise CaptureError("Content must not be empty")

        logger.info(f"[CAPTURE] New {item_type.value} capture ({len(content)} chars)")

        analysis_text = content
        if item_type == ItemType.URL and is_bare_url(content):
            analysis_text = await self._page_text_or_raw(content.strip())

        try:
            analysis = await self.llm.analyze_content(analysis_text, item_type)
        except MissingCredentialError:
            logger.error("[CAPTURE] Cannot analyze content: no API key configured")
            return CaptureResult(item=None, alert=MISSING_KEY_ALERT)
        except Exception:
            logger.exception("[CAPTURE] Analysis failed, using fallback metadata")
            analysis = AnalysisResult.fallback()

        if analysis.is_fallback and suggested_title and suggested_title.strip():
            analysis = analysis.model_copy(update={"title": suggested_title.strip()})

        item = KnowledgeItem.from_analysis(content, item_type, analysis)
        self.knowledge_base.add(item)

        if analysis.is_fallback:
            logger.warning(f"[CAPTURE] Stored {item.id} with fallback metadata")
            return CaptureResult(item=item, alert=FALLBACK_ALERT)

        logger.info(f"[CAPTURE] Created '{item.title}' [{item.category}]")
        return CaptureResult(item=item)

    def _get_extractor(self, path: Path) -> Extractor | None:
        for extractor in self.extractors:
            if extractor.can_handle(path):
                return extractor
        return None

    async def process_file(self, path: Path) -> KnowledgeItem | None:
        """Capture an inbox file. Returns the created item, or None."""
        logger.info(f"[CAPTURE] Processing file: {path.name}")

        extractor = self._get_extractor(path)
        if not extractor:
            logger.warning(f"[CAPTURE] No extractor for: {path.suffix}")
            return None

        try:
            extracted = extractor.extract(path)
            content = extracted.text
            if extracted.source_url:
                content = f"{extracted.source_url}\n\n{content}"

            result = await self.capture(
                content, extracted.item_type, suggested_title=extracted.suggested_title
            )
        except Exception as e:
            logger.error(f"[CAPTURE] Error processing {path.name}: {type(e).__name__}: {e}")
            self._log_error(path, e)
            self._move_to_failed(path)
            return None

        if not result.created:
            # Leave the file in place so it is picked up once a key is configured
            logger.error(f"[CAPTURE] {path.name} not processed: {result.alert}")
            return None

        try:
            path.unlink(missing_ok=True)
        except PermissionError as e:
            logger.warning(f"[CAPTURE] Could not remove source file {path.name}: {e}")

        logger.info(f"[CAPTURE] Completed: {path.name} -> {result.item.id}")
        return result.item

    def _log_error(self, path: Path, error: Exception) -> None:
        self.settings.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.settings.error_log_path, "a", encoding="utf-8") as f:
            timestamp = datetime.now().isoformat()
            f.write(f"[{timestamp}] {path.name}: {error}\n")

    def _move_to_failed(self, path: Path) -> None:
        try:
            if not path.exists():
                return
            self.settings.failed_path.mkdir(parents=True, exist_ok=True)
            shutil.move(path, get_unique_path(self.settings.failed_path / path.name))
        except (FileNotFoundError, PermissionError) as e:
            logger.warning(f"[CAPTURE] Could not move {path.name} to failed folder: {e}")

    async def _page_text_or_raw(self, url: str) -> str:
        """Readable text of the page at ``url``, or ``url`` itself on failure."""
        try:
            html = await self._fetch_url(url)
        except ValueError as e:
            logger.warning(f"[CAPTURE] Refusing to fetch {url}: {e}")
            return url
        except httpx.HTTPError as e:
            logger.warning(f"[CAPTURE] Could not fetch {url}: {type(e).__name__}: {e}")
            return url

        text = HTMLExtractor().extract_from_string(html).text
        if len(text.strip()) < 50:
            logger.warning(f"[CAPTURE] Insufficient content extracted from {url}")
            return url

        logger.info(f"[CAPTURE] Extracted {len(text)} chars from {url}")
        return f"{url}\n\n{text}"

    def _validate_url(self, url: str) -> None:
        """Reject URLs that target internal resources.

        Raises:
            ValueError: If the URL is not fetchable.
        """
        parsed = urlparse(url)

        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Invalid URL scheme: {parsed.scheme}")

        hostname = parsed.hostname
        if not hostname:
            raise ValueError("Invalid URL: missing hostname")

        if hostname.lower() in BLOCKED_HOSTS:
            raise ValueError("Access to internal resources is blocked")

        try:
            ip = ipaddress.ip_address(hostname)
        except ValueError:
            return
        if ip.is_private or ip.is_loopback or ip.is_link_local:
            raise ValueError("Access to private IP addresses is blocked")

    async def _fetch_url(self, url: str) -> str:
        self._validate_url(url)

        headers = {
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

        async with httpx.AsyncClient(
            follow_redirects=True, timeout=self.settings.request_timeout
        ) as client:
            response = await client.get(url, headers=headers)
            response.raise_for_status()
            logger.debug(f"[CAPTURE] Fetched {len(response.text)} bytes from {response.url}")
            return response.text
