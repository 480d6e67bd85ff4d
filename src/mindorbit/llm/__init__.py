"""Language model integration."""

from .openai import APOLOGY_MESSAGE, MISSING_KEY_MESSAGE, OpenAIClient

__all__ = ["APOLOGY_MESSAGE", "MISSING_KEY_MESSAGE", "OpenAIClient"]
