"""Chat transcript over the knowledge base."""

import logging
from typing import Protocol, Sequence

from ..config import Settings
from ..knowledge.schema import ChatMessage, KnowledgeItem
from ..knowledge.store import KnowledgeBase
from ..llm.openai import APOLOGY_MESSAGE
from .selector import select_context

logger = logging.getLogger(__name__)


class QuestionAnswerer(Protocol):
    async def answer_question(self, question: str, context: Sequence[KnowledgeItem]) -> str: ...


def welcome_message(item_count: int) -> ChatMessage:
    return ChatMessage(
        id="welcome",
        role="model",
        text=(
            f"Hello! I'm Orbit. I can answer questions based on the {item_count} "
            "knowledge nodes you've created. What would you like to know?"
        ),
    )


class ChatSession:
    """An append-only conversation with the knowledge assistant."""

    def __init__(self, knowledge_base: KnowledgeBase, llm: QuestionAnswerer, settings: Settings):
        self.knowledge_base = knowledge_base
        self.llm = llm
        self.settings = settings
        self._messages: list[ChatMessage] = [welcome_message(len(knowledge_base))]

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def last_message(self) -> ChatMessage:
        return self._messages[-1]

    async def ask(self, question: str) -> ChatMessage:
        """Record ``question``, answer it, and return the model's reply."""
        question = question.strip()
        if not question:
            raise ValueError("Question must not be empty")

        self._messages.append(ChatMessage(role="user", text=question))

        context = select_context(
            question,
            self.knowledge_base.items,
            limit=self.settings.context_limit,
            keyword_filter=self.settings.keyword_filter,
        )
        if context:
            logger.info(f"[CHAT] Selected {len(context)} context item(s)")
        else:
            logger.info("[CHAT] No context items, answering from general knowledge only")

        try:
            answer = await self.llm.answer_question(question, context)
        except Exception:
            logger.exception("[CHAT] Question answering failed")
            answer = APOLOGY_MESSAGE

        reply = ChatMessage(role="model", text=answer)
        self._messages.append(reply)
        return reply
