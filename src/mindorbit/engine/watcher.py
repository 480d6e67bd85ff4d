"""Inbox folder watcher.

Files dropped (or moved) into the inbox are captured once they have stopped
changing for ``SETTLE_DELAY`` seconds.
"""

import asyncio
import logging
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import Settings
from .processor import Processor

logger = logging.getLogger(__name__)

SETTLE_DELAY = 1.0


def is_inbox_candidate(path: Path) -> bool:
    """Whether a file in the inbox should be captured."""
    return not path.name.startswith(".") and "failed" not in path.parts


class InboxHandler(FileSystemEventHandler):
    """Debounces inbox file events and hands settled files to the processor.

    Watchdog calls the ``on_*`` methods on its observer thread; all state is
    only touched on the event loop thread.
    """

    def __init__(
        self,
        processor: Processor,
        loop: asyncio.AbstractEventLoop,
        settle_delay: float = SETTLE_DELAY,
    ):
        self.processor = processor
        self.loop = loop
        self.settle_delay = settle_delay
        self._timers: dict[Path, asyncio.TimerHandle] = {}
        self._in_progress: set[Path] = set()
        self._tasks: set[asyncio.Task] = set()

    def on_created(self, event: FileSystemEvent):
        self._on_event(event, event.src_path)

    def on_modified(self, event: FileSystemEvent):
        self._on_event(event, event.src_path)

    def on_moved(self, event: FileSystemEvent):
        self._on_event(event, event.dest_path)

    def _on_event(self, event: FileSystemEvent, raw_path) -> None:
        if event.is_directory:
            return
        path = Path(raw_path)
        if not is_inbox_candidate(path):
            logger.debug(f"[WATCHER] Ignoring {path.name}")
            return
        self.loop.call_soon_threadsafe(self.schedule, path)

    def schedule(self, path: Path) -> None:
        """(Re)start the settle timer for ``path``. Loop thread only."""
        if path in self._in_progress:
            return
        timer = self._timers.pop(path, None)
        if timer is not None:
            timer.cancel()
        else:
            logger.info(f"[WATCHER] Queued: {path.name} (pending: {len(self._timers) + 1})")
        self._timers[path] = self.loop.call_later(self.settle_delay, self._settled, path)

    @property
    def pending(self) -> set[Path]:
        return set(self._timers) | self._in_progress

    def _settled(self, path: Path) -> None:
        self._timers.pop(path, None)
        self._in_progress.add(path)
        task = self.loop.create_task(self.process(path), name=f"capture:{path.name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def process(self, path: Path) -> None:
        try:
            if not path.exists():
                logger.warning(f"[WATCHER] File no longer exists: {path.name}")
                return
            await self.processor.process_file(path)
        except Exception as e:
            logger.error(f"[WATCHER] Processing failed for {path.name}: {e}")
        finally:
            self._in_progress.discard(path)

    def cancel_pending(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()


class FileWatcher:
    """Watches the inbox folder for new files to capture."""

    def __init__(self, settings: Settings, processor: Processor):
        self.settings = settings
        self.processor = processor
        self.observer = Observer()
        self.handler: InboxHandler | None = None

    def _capture_existing(self) -> None:
        """Queue files that arrived while nothing was watching."""
        for path in sorted(self.settings.inbox_path.iterdir()):
            if path.is_file() and is_inbox_candidate(path):
                self.handler.schedule(path)

    async def start(self):
        """Start watching and block until cancelled."""
        inbox = self.settings.inbox_path
        inbox.mkdir(parents=True, exist_ok=True)

        self.handler = InboxHandler(self.processor, asyncio.get_running_loop())
        self.observer.schedule(self.handler, str(inbox), recursive=False)
        self.observer.start()
        logger.info(f"[WATCHER] Watching: {inbox}")
        self._capture_existing()

        try:
            await asyncio.Event().wait()
        finally:
            self.stop()

    def stop(self):
        if self.handler is not None:
            self.handler.cancel_pending()
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=5.0)
            if self.observer.is_alive():
                logger.warning("[WATCHER] Observer thread did not stop cleanly")
        logger.info("[WATCHER] File watcher stopped")
