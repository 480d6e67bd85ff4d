"""Context selection and chat sessions."""

from .selector import DEFAULT_CONTEXT_LIMIT, extract_keywords, select_context
from .session import ChatSession

__all__ = ["ChatSession", "DEFAULT_CONTEXT_LIMIT", "extract_keywords", "select_context"]
