"""FastAPI dashboard application."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .. import __version__
from ..chat import ChatSession
from ..config import Settings
from ..engine import Processor
from ..knowledge import Indexer, JsonItemStore, KnowledgeBase
from ..llm import OpenAIClient
from .graph_view import GraphView
from .routes import create_router


class CSRFProtectionMiddleware(BaseHTTPMiddleware):
    """Rejects state-changing requests from unknown origins.

    Requests without an Origin header (same-origin, CLI clients) and
    browser extensions are allowed.
    """

    def __init__(self, app, allowed_origins: set[str | None]):
        super().__init__(app)
        self.allowed_origins = allowed_origins

    async def dispatch(self, request: Request, call_next):
        if request.method in ("POST", "PUT", "DELETE", "PATCH"):
            origin = request.headers.get("origin")
            is_allowed = (
                origin is None
                or origin in self.allowed_origins
                or origin.startswith("chrome-extension://")
                or origin.startswith("moz-extension://")
            )
            if not is_allowed:
                return JSONResponse(
                    status_code=403,
                    content={"detail": "CSRF validation failed: invalid origin"},
                )

        return await call_next(request)


def create_app(
    settings: Settings,
    knowledge_base: Optional[KnowledgeBase] = None,
    llm: Optional[OpenAIClient] = None,
) -> FastAPI:
    """Create the dashboard application.

    ``knowledge_base`` is shared with the caller when given (the coordinator
    passes its own); otherwise one is loaded from ``settings.items_path``.
    """
    if knowledge_base is None:
        knowledge_base = KnowledgeBase(JsonItemStore(settings.items_path))
    llm = llm or OpenAIClient(settings)

    indexer = Indexer(settings.index_path)
    processor = Processor(settings, knowledge_base, llm=llm)
    chat = ChatSession(knowledge_base, llm, settings)
    graph_view = GraphView(knowledge_base, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        unsubscribe = knowledge_base.subscribe(indexer.regenerate)
        await graph_view.refresh()
        try:
            yield
        finally:
            unsubscribe()
            await graph_view.close()

    app = FastAPI(
        title="MindOrbit",
        description="Personal knowledge capture, graph and chat",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CSRFProtectionMiddleware,
        allowed_origins=settings.get_allowed_origins(),
    )

    app.state.knowledge_base = knowledge_base
    app.state.chat = chat
    app.state.graph_view = graph_view

    app.include_router(create_router(settings, knowledge_base, processor, chat, graph_view))
    return app
