"""Context selection for chat questions.

Before each question the knowledge base is cut down to a bounded context
window so the prompt stays within the model's token limits.
"""

from typing import Iterable, Sequence

from ..knowledge.schema import KnowledgeItem

DEFAULT_CONTEXT_LIMIT = 15
MIN_KEYWORD_LENGTH = 4


def extract_keywords(question: str) -> list[str]:
    """Lowercase words of four or more characters.

    Any run of whitespace separates words, so tabs and newlines in a pasted
    question split it the same way spaces do.
    """
    return [w for w in question.lower().split() if len(w) >= MIN_KEYWORD_LENGTH]


def search_text(item: KnowledgeItem) -> str:
    """Searchable surrogate for an item: title plus tags."""
    return f"{item.title} {' '.join(item.tags)}".lower()


def matches_keywords(item: KnowledgeItem, keywords: Iterable[str]) -> bool:
    text = search_text(item)
    return any(k in text for k in keywords)


def select_context(
    question: str,
    items: Sequence[KnowledgeItem],
    limit: int = DEFAULT_CONTEXT_LIMIT,
    keyword_filter: bool = False,
) -> list[KnowledgeItem]:
    """Pick at most ``limit`` items to send along with ``question``.

    With ``keyword_filter`` off every item is a candidate and the first
    ``limit`` items in collection order are returned, ignoring keywords.
    With it on, only items whose title or tags contain a question keyword
    are kept. Either way the input order is preserved and nothing is
    re-ranked.
    """
    if not items or limit <= 0:
        return []

    if keyword_filter:
        keywords = extract_keywords(question)
        candidates = [item for item in items if matches_keywords(item, keywords)]
    else:
        candidates = list(items)

    return candidates[:limit]
