"""Dashboard API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..chat import ChatSession
from ..config import Settings
from ..engine import Processor
from ..errors import CaptureError
from ..graph import category_color
from ..knowledge.schema import ItemType, KnowledgeItem
from ..knowledge.store import KnowledgeBase
from .graph_view import GraphView

logger = logging.getLogger(__name__)


class CaptureRequest(BaseModel):
    content: str
    type: ItemType = ItemType.TEXT


class ChatRequest(BaseModel):
    question: str


class DragRequest(BaseModel):
    x: float
    y: float


def _matches(item: KnowledgeItem, category: Optional[str], tag: Optional[str], q: Optional[str]) -> bool:
    if category and item.category != category:
        return False
    if tag and tag.lower() not in item.tags:
        return False
    if q:
        q_lower = q.lower()
        return (
            q_lower in item.title.lower()
            or q_lower in item.content.lower()
            or any(q_lower in t for t in item.tags)
        )
    return True


def create_router(
    settings: Settings,
    knowledge_base: KnowledgeBase,
    processor: Processor,
    chat: ChatSession,
    graph_view: GraphView,
) -> APIRouter:
    """Create the dashboard router."""
    router = APIRouter(prefix="/api")

    def get_item_or_404(item_id: str) -> KnowledgeItem:
        item = knowledge_base.get(item_id)
        if item is None:
            raise HTTPException(404, "Item not found")
        return item

    async def get_layout_or_404(node_id: str):
        layout = await graph_view.current()
        if node_id not in layout.simulation.positions():
            raise HTTPException(404, "Node not found")
        return layout

    @router.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "items": len(knowledge_base),
            "api_key_configured": settings.has_api_key,
        }

    @router.get("/items")
    async def list_items(
        category: Optional[str] = None,
        tag: Optional[str] = None,
        q: Optional[str] = None,
    ):
        items = [i for i in knowledge_base.items if _matches(i, category, tag, q)]
        return {"items": [i.to_dict() for i in items], "total": len(items)}

    @router.get("/items/{item_id}")
    async def get_item(item_id: str):
        return get_item_or_404(item_id).to_dict()

    @router.post("/items")
    async def create_item(req: CaptureRequest):
        try:
            result = await processor.capture(req.content, req.type)
        except CaptureError as e:
            logger.info(f"[DASHBOARD] Invalid capture request: {e}")
            raise HTTPException(400, str(e)) from e

        if not result.created:
            logger.warning(f"[DASHBOARD] Capture rejected: {result.alert}")
            return JSONResponse(
                status_code=503,
                content={"created": False, "item": None, "alert": result.alert},
            )

        return JSONResponse(
            status_code=201,
            content={"created": True, "item": result.item.to_dict(), "alert": result.alert},
        )

    @router.delete("/items/{item_id}")
    async def delete_item(item_id: str):
        if not knowledge_base.delete(item_id):
            raise HTTPException(404, "Item not found")
        return {"deleted": item_id}

    @router.get("/categories")
    async def categories():
        return {
            "categories": [
                {"name": name, "count": count, "color": category_color(name)}
                for name, count in knowledge_base.categories().items()
            ]
        }

    @router.get("/rediscover")
    async def rediscover():
        item = knowledge_base.random_item()
        return {"item": item.to_dict() if item else None}

    @router.get("/graph")
    async def graph():
        return await graph_view.snapshot()

    @router.post("/graph/layout/pause")
    async def pause_layout():
        layout = await graph_view.current()
        layout.pause()
        return layout.snapshot()

    @router.post("/graph/layout/resume")
    async def resume_layout():
        layout = await graph_view.current()
        layout.resume()
        return layout.snapshot()

    @router.post("/graph/layout/reheat")
    async def reheat_layout():
        layout = await graph_view.current()
        layout.reheat()
        return layout.snapshot()

    @router.post("/graph/nodes/{node_id}/drag")
    async def drag_node(node_id: str, req: DragRequest):
        layout = await get_layout_or_404(node_id)
        layout.drag(node_id, req.x, req.y)
        return layout.snapshot()

    @router.post("/graph/nodes/{node_id}/release")
    async def release_node(node_id: str):
        layout = await get_layout_or_404(node_id)
        layout.release(node_id)
        return layout.snapshot()

    @router.get("/chat")
    async def chat_history():
        return {"messages": [m.model_dump() for m in chat.messages]}

    @router.post("/chat")
    async def ask(req: ChatRequest):
        if not req.question.strip():
            raise HTTPException(400, "Question must not be empty")
        reply = await chat.ask(req.question)
        return reply.model_dump()

    return router
