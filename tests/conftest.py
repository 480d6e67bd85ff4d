"""Shared pytest fixtures for MindOrbit tests."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from mindorbit.config import Settings
from mindorbit.knowledge import JsonItemStore, KnowledgeBase
from mindorbit.knowledge.schema import ItemType, KnowledgeItem


def make_item(
    item_id: str,
    category: str = "Technology",
    title: str | None = None,
    summary: str = "A short summary of the item.",
    tags: list[str] | None = None,
    content: str = "Some captured content.",
    created_at: int = 1_700_000_000_000,
) -> KnowledgeItem:
    """Build a KnowledgeItem with sensible defaults."""
    return KnowledgeItem(
        id=item_id,
        type=ItemType.TEXT,
        content=content,
        title=title or f"Item {item_id}",
        summary=summary,
        tags=tags if tags is not None else ["testing"],
        category=category,
        created_at=created_at,
    )


def mock_completion(content: str | None) -> MagicMock:
    """Build a chat completion response carrying ``content``."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def item_factory():
    """Factory for KnowledgeItems, see :func:`make_item`."""
    return make_item


@pytest.fixture
def completion_factory():
    """Factory for mocked chat completion responses."""
    return mock_completion


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Temporary data directory."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def settings(data_dir: Path, monkeypatch) -> Settings:
    """Settings with an API key and a temporary data directory."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-api-key")
    return Settings(_env_file=None, data_dir=data_dir, openai_api_key="test-api-key")


@pytest.fixture
def settings_no_key(data_dir: Path, monkeypatch) -> Settings:
    """Settings without an API key."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return Settings(_env_file=None, data_dir=data_dir)


@pytest.fixture
def sample_items() -> list[KnowledgeItem]:
    """Three items: two Science notes and one Art note."""
    return [
        make_item("a", category="Science", title="Black Holes", tags=["space", "physics"]),
        make_item("b", category="Science", title="Cell Biology", tags=["biology"]),
        make_item("c", category="Art", title="Impressionism", tags=["painting"]),
    ]


@pytest.fixture
def store(settings: Settings) -> JsonItemStore:
    return JsonItemStore(settings.items_path)


@pytest.fixture
def knowledge_base(store: JsonItemStore) -> KnowledgeBase:
    """Empty knowledge base backed by a temporary file."""
    return KnowledgeBase(store)


@pytest.fixture
def populated_knowledge_base(store: JsonItemStore, sample_items) -> KnowledgeBase:
    """Knowledge base preloaded with ``sample_items``."""
    store.save(sample_items)
    return KnowledgeBase(store)


@pytest.fixture
def mock_openai_client():
    """Create a mock AsyncOpenAI client."""
    mock = MagicMock()
    mock.chat = MagicMock()
    mock.chat.completions = MagicMock()
    mock.chat.completions.create = AsyncMock()
    return mock


@pytest.fixture
def sample_analysis() -> dict:
    """Sample analysis response from the model."""
    return {
        "title": "Generated Title",
        "summary": "An AI-generated summary. It has two sentences.",
        "tags": ["AI", "Knowledge"],
        "category": "Technology",
    }


@pytest.fixture
def sample_analysis_json(sample_analysis) -> str:
    return json.dumps(sample_analysis)


@pytest.fixture
def sample_html() -> str:
    """Sample HTML content for extraction tests."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Sample Article Title</title>
        <link rel="canonical" href="https://example.com/canonical-url">
    </head>
    <body>
        <nav>Navigation to skip</nav>
        <article>
            <h1>Main Heading</h1>
            <p>This is the main article content.</p>
            <p>It has multiple paragraphs.</p>
        </article>
        <footer>Footer to skip</footer>
    </body>
    </html>
    """


@pytest.fixture
def sample_markdown() -> str:
    """Sample markdown content for extraction tests."""
    return """# Main Title

This is the introduction paragraph.

## Section One

Content of section one.
"""


@pytest.fixture
def sample_json_capture() -> str:
    """Sample JSON capture dropped by a browser extension."""
    return """{
    "content": "Captured content from browser",
    "source_url": "https://example.com/page",
    "title": "Browser Captured Title"
}"""
