"""Service coordinator for running the inbox watcher and dashboard together."""

import asyncio
import logging
import signal
from typing import Optional

import uvicorn

from .config import Settings
from .dashboard import create_app
from .engine import FileWatcher, Processor
from .knowledge import JsonItemStore, KnowledgeBase
from .llm import OpenAIClient

logger = logging.getLogger(__name__)


class ServiceCoordinator:
    """Owns the knowledge base and the services that share it."""

    def __init__(self, settings: Settings, verbose: bool = False):
        self.settings = settings
        self.verbose = verbose
        self.knowledge_base = KnowledgeBase(JsonItemStore(settings.items_path))
        self.llm = OpenAIClient(settings)
        self.watcher: Optional[FileWatcher] = None
        self.server: Optional[uvicorn.Server] = None
        self._shutdown_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    async def run(self) -> None:
        """Run both services until a shutdown signal arrives."""
        logger.info(f"[STARTUP] Starting MindOrbit ({len(self.knowledge_base)} item(s))")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._shutdown_event.set)

        try:
            self._start_services()
            logger.info(
                f"[DASHBOARD] Ready at http://{self.settings.host}:{self.settings.port}"
            )
            logger.info("[STARTUP] All services running. Press Ctrl+C to stop.")
            await self._shutdown_event.wait()
        finally:
            await self._stop_services()

    def _start_services(self) -> None:
        processor = Processor(self.settings, self.knowledge_base, llm=self.llm)
        self.watcher = FileWatcher(self.settings, processor)

        app = create_app(self.settings, knowledge_base=self.knowledge_base, llm=self.llm)
        config = uvicorn.Config(
            app=app,
            host=self.settings.host,
            port=self.settings.port,
            log_level="warning",
            access_log=self.verbose,
        )
        self.server = uvicorn.Server(config)

        self._tasks = [
            asyncio.create_task(self.watcher.start(), name="watcher"),
            asyncio.create_task(self.server.serve(), name="dashboard"),
        ]

    async def _stop_services(self) -> None:
        logger.info("[STARTUP] Shutting down services...")

        if self.server:
            self.server.should_exit = True

        # Let uvicorn run its lifespan shutdown, which stops the graph layout
        for task in self._tasks:
            if task.get_name() == "dashboard" and not task.done():
                try:
                    await asyncio.wait_for(asyncio.shield(task), timeout=5.0)
                except asyncio.TimeoutError:
                    logger.warning("[DASHBOARD] Did not stop within 5s")

        for task in self._tasks:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        logger.info("[STARTUP] Shutdown complete")
