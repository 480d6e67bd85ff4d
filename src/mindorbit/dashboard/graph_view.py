"""Graph view state: the relation graph and the layout task that owns it."""

import asyncio
import logging
from typing import Optional

from ..config import Settings
from ..graph import EMPTY_GRAPH_MESSAGE, ForceSimulation, LayoutTask, RelationGraph, build_graph
from ..knowledge.store import KnowledgeBase

logger = logging.getLogger(__name__)


class GraphView:
    """Keeps one running layout for the current working set.

    The graph is rebuilt from scratch after every change to the knowledge
    base; node positions that survive the change are carried over.
    """

    def __init__(self, knowledge_base: KnowledgeBase, settings: Settings):
        self.knowledge_base = knowledge_base
        self.settings = settings
        self.graph = RelationGraph()
        self.layout: Optional[LayoutTask] = None
        self._dirty = True
        # Only one rebuild at a time, so no replaced layout is left running
        self._lock = asyncio.Lock()
        self._unsubscribe = knowledge_base.subscribe(self._on_change)

    def _on_change(self, _items) -> None:
        self._dirty = True

    async def refresh(self) -> LayoutTask:
        """Rebuild the graph and restart the layout."""
        async with self._lock:
            return await self._rebuild()

    async def _rebuild(self) -> LayoutTask:
        previous = {}
        if self.layout is not None:
            previous = self.layout.simulation.positions()
            await self.layout.stop()

        self.graph = build_graph(self.knowledge_base.items)
        simulation = ForceSimulation(
            self.graph,
            width=self.settings.layout_width,
            height=self.settings.layout_height,
            initial_positions=previous,
        )
        self.layout = LayoutTask(simulation, tick_interval=self.settings.layout_tick_interval)
        self.layout.start()
        self._dirty = False

        logger.info(
            f"[GRAPH] Layout restarted: {len(self.graph.nodes)} node(s), {len(self.graph.edges)} edge(s)"
        )
        return self.layout

    async def current(self) -> LayoutTask:
        async with self._lock:
            if self._dirty or self.layout is None:
                return await self._rebuild()
            return self.layout

    async def snapshot(self) -> dict:
        layout = await self.current()
        data = self.graph.to_dict()
        data["empty"] = self.graph.is_empty
        data["message"] = EMPTY_GRAPH_MESSAGE if self.graph.is_empty else None
        data["layout"] = layout.snapshot()
        return data

    async def close(self) -> None:
        self._unsubscribe()
        async with self._lock:
            if self.layout is not None:
                await self.layout.stop()
