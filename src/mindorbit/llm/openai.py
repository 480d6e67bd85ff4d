"""Language model client for content analysis and question answering."""

import json
import logging
import re
from typing import Sequence

from openai import APIConnectionError, APIError, AsyncOpenAI, RateLimitError
from pydantic import ValidationError

from ..config import Settings
from ..errors import AnalysisError, MissingCredentialError
from ..knowledge.schema import AnalysisResult, ItemType, KnowledgeItem
from .prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    ANSWER_SYSTEM_PROMPT,
    analysis_user_prompt,
    answer_user_prompt,
    format_context,
)

logger = logging.getLogger(__name__)

MAX_ANALYSIS_CHARS = 5000

APOLOGY_MESSAGE = "Sorry, I encountered an error while processing your question."
EMPTY_ANSWER_MESSAGE = "I couldn't generate an answer."
MISSING_KEY_MESSAGE = "Please configure your API Key."

_FENCE_RE = re.compile(r"```(?:json)?")


def clean_json(text: str) -> str:
    """Strip markdown code fences a model may wrap around JSON."""
    return _FENCE_RE.sub("", text).strip()


class OpenAIClient:
    """Client for any OpenAI-compatible chat completions endpoint.

    Every call is a single request; failures degrade to fixed fallback
    values instead of being retried.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.model = settings.openai_model
        self.client = None
        if settings.has_api_key:
            self.client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.request_timeout,
            )

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise MissingCredentialError()
        return self.client

    async def _complete(
        self,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
        json_mode: bool = False,
    ) -> str:
        client = self._require_client()
        logger.debug(f"[LLM] Model: {self.model}, max_tokens: {max_tokens}")

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        text = response.choices[0].message.content if response.choices else None
        preview = (text or "")[:100].replace("\n", " ")
        logger.debug(f"[LLM] Response ({len(text or '')} chars): {preview}...")
        return text or ""

    def _parse_analysis(self, text: str) -> AnalysisResult:
        try:
            data = json.loads(clean_json(text))
        except json.JSONDecodeError as e:
            raise AnalysisError(f"LLM returned invalid JSON: {text[:200]}...") from e

        if not isinstance(data, dict):
            raise AnalysisError("LLM returned JSON that is not an object")

        try:
            return AnalysisResult(
                title=data["title"],
                summary=data["summary"],
                tags=data.get("tags") or [],
                category=data.get("category"),
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise AnalysisError(f"LLM response missing fields: {e}") from e

    async def analyze_content(self, content: str, item_type: ItemType) -> AnalysisResult:
        """Derive title, summary, tags and category for ``content``.

        Raises:
            MissingCredentialError: If no API key is configured.

        Any other failure returns :meth:`AnalysisResult.fallback`.
        """
        self._require_client()
        logger.info(f"[LLM] Analyzing {item_type.value} content ({len(content)} chars)")

        messages = [
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": analysis_user_prompt(content[:MAX_ANALYSIS_CHARS], item_type.value),
            },
        ]

        try:
            text = await self._complete(messages, temperature=0.2, max_tokens=600, json_mode=True)
            result = self._parse_analysis(text)
        except AnalysisError as e:
            logger.error(f"[LLM] Analysis response unusable: {e}")
            return AnalysisResult.fallback()
        except (RateLimitError, APIConnectionError, APIError) as e:
            logger.error(f"[LLM] Analysis request failed: {type(e).__name__}: {e}")
            return AnalysisResult.fallback()
        except Exception as e:
            logger.exception(f"[LLM] Unexpected analysis error: {type(e).__name__}: {e}")
            return AnalysisResult.fallback()

        logger.info(f"[LLM] Analyzed: '{result.title}' [{result.category}]")
        return result

    async def answer_question(self, question: str, context: Sequence[KnowledgeItem]) -> str:
        """Answer ``question`` using ``context`` items as grounding.

        Never raises; failures return a fixed message.
        """
        if self.client is None:
            logger.warning("[LLM] No API key configured, cannot answer")
            return MISSING_KEY_MESSAGE

        logger.info(f"[LLM] Answering question with {len(context)} context item(s)")
        messages = [
            {"role": "system", "content": ANSWER_SYSTEM_PROMPT},
            {"role": "user", "content": answer_user_prompt(question, format_context(context))},
        ]

        try:
            text = await self._complete(messages, temperature=0.7, max_tokens=800)
        except (RateLimitError, APIConnectionError, APIError) as e:
            logger.error(f"[LLM] Question answering failed: {type(e).__name__}: {e}")
            return APOLOGY_MESSAGE
        except Exception as e:
            logger.exception(f"[LLM] Unexpected question answering error: {type(e).__name__}: {e}")
            return APOLOGY_MESSAGE

        return text.strip() or EMPTY_ANSWER_MESSAGE
