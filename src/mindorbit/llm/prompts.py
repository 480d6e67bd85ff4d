"""System prompts and context rendering for the language model."""

from typing import Sequence

from ..knowledge.schema import KnowledgeItem

ANALYSIS_SYSTEM_PROMPT = """You are a Knowledge Manager for MindOrbit, a personal knowledge base.

Analyze the content the user gives you and extract:
1. A short, concise title (max 6 words)
2. A 2-sentence summary of the key insights
3. 3-5 relevant tags (lowercase, single words)
4. A broad category, e.g. "Technology", "Science", "Health", "Philosophy", "Art", "Productivity"

Respond with a single valid JSON object matching this schema:
{
  "title": "string",
  "summary": "string",
  "tags": ["string"],
  "category": "string"
}"""

ANSWER_SYSTEM_PROMPT = """You are a personal knowledge assistant named "Orbit".
Use the context from the user's personal knowledge base to answer their question.
If the answer is not in the context, use your general knowledge but mention that it wasn't explicitly found in their notes.
Keep the answer concise and helpful."""


def analysis_user_prompt(content: str, item_type: str) -> str:
    return f'Analyze the following content (which is a {item_type}) and return JSON only.\n\nContent:\n"{content}"'


def answer_user_prompt(question: str, context: str) -> str:
    return f"Context:\n{context}\n\nUser Question:\n{question}"


SNIPPET_LENGTH = 300
CONTEXT_SEPARATOR = "\n---\n"
EMPTY_CONTEXT = "(no notes available)"


def format_context_item(item: KnowledgeItem) -> str:
    return "\n".join([
        f"[Title: {item.title}]",
        f"[Category: {item.category}]",
        f"[Summary: {item.summary}]",
        f"[Content Snippet: {item.content[:SNIPPET_LENGTH]}...]",
    ])


def format_context(items: Sequence[KnowledgeItem]) -> str:
    """Render selected items for the question-answering prompt."""
    if not items:
        return EMPTY_CONTEXT
    return CONTEXT_SEPARATOR.join(format_context_item(item) for item in items)
