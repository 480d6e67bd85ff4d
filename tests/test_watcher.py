"""Tests for mindorbit.engine.watcher module."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from mindorbit.engine.watcher import FileWatcher, InboxHandler, is_inbox_candidate


@pytest.fixture
def processor():
    mock = MagicMock()
    mock.process_file = AsyncMock(return_value=None)
    return mock


class TestIsInboxCandidate:
    def test_regular_file(self):
        assert is_inbox_candidate(Path("/inbox/note.txt"))

    def test_hidden_file(self):
        assert not is_inbox_candidate(Path("/inbox/.DS_Store"))

    def test_failed_folder(self):
        assert not is_inbox_candidate(Path("/inbox/failed/note.txt"))


class TestInboxHandlerEvents:
    """Tests for the observer-thread side of InboxHandler."""

    @pytest.fixture
    def loop(self):
        return MagicMock()

    def test_created_file_is_scheduled(self, processor, loop, tmp_path):
        handler = InboxHandler(processor, loop)

        handler.on_created(FileCreatedEvent(str(tmp_path / "note.txt")))

        loop.call_soon_threadsafe.assert_called_once_with(handler.schedule, tmp_path / "note.txt")

    def test_moved_file_uses_destination(self, processor, loop, tmp_path):
        handler = InboxHandler(processor, loop)

        handler.on_moved(FileMovedEvent(str(tmp_path / "x.part"), str(tmp_path / "x.html")))

        loop.call_soon_threadsafe.assert_called_once_with(handler.schedule, tmp_path / "x.html")

    def test_ignores_directories(self, processor, loop, tmp_path):
        handler = InboxHandler(processor, loop)

        handler.on_created(DirCreatedEvent(str(tmp_path / "sub")))

        loop.call_soon_threadsafe.assert_not_called()

    def test_ignores_hidden_files(self, processor, loop, tmp_path):
        handler = InboxHandler(processor, loop)

        handler.on_modified(FileModifiedEvent(str(tmp_path / ".note.txt.swp")))

        loop.call_soon_threadsafe.assert_not_called()


class TestInboxHandlerDebounce:
    """Tests for settle-time debouncing on the event loop."""

    async def test_settled_file_is_processed(self, processor, tmp_path):
        path = tmp_path / "note.txt"
        path.write_text("content")
        handler = InboxHandler(processor, asyncio.get_running_loop(), settle_delay=0.01)

        handler.schedule(path)
        assert handler.pending == {path}

        await asyncio.sleep(0.1)

        processor.process_file.assert_awaited_once_with(path)
        assert handler.pending == set()

    async def test_repeated_events_are_coalesced(self, processor, tmp_path):
        """Test that a file still being written is processed once."""
        path = tmp_path / "note.txt"
        path.write_text("content")
        handler = InboxHandler(processor, asyncio.get_running_loop(), settle_delay=0.05)

        for _ in range(5):
            handler.schedule(path)
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.2)

        assert processor.process_file.await_count == 1

    async def test_missing_file_is_skipped(self, processor, tmp_path):
        handler = InboxHandler(processor, asyncio.get_running_loop(), settle_delay=0.01)

        handler.schedule(tmp_path / "gone.txt")
        await asyncio.sleep(0.1)

        processor.process_file.assert_not_called()

    async def test_processing_error_is_contained(self, processor, tmp_path):
        path = tmp_path / "note.txt"
        path.write_text("content")
        processor.process_file.side_effect = RuntimeError("boom")
        handler = InboxHandler(processor, asyncio.get_running_loop(), settle_delay=0.01)

        handler.schedule(path)
        await asyncio.sleep(0.1)

        assert handler.pending == set()

    async def test_cancel_pending(self, processor, tmp_path):
        path = tmp_path / "note.txt"
        path.write_text("content")
        handler = InboxHandler(processor, asyncio.get_running_loop(), settle_delay=0.05)

        handler.schedule(path)
        handler.cancel_pending()
        await asyncio.sleep(0.1)

        processor.process_file.assert_not_called()


class TestFileWatcher:
    async def test_start_and_cancel(self, settings, processor):
        """Test that cancelling the watcher stops the observer."""
        watcher = FileWatcher(settings, processor)
        task = asyncio.create_task(watcher.start())
        await asyncio.sleep(0.1)

        assert settings.inbox_path.is_dir()
        assert watcher.observer.is_alive()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not watcher.observer.is_alive()

    async def test_existing_files_are_queued(self, settings, processor):
        """Test that files already in the inbox are picked up on start."""
        settings.inbox_path.mkdir(parents=True)
        (settings.inbox_path / "waiting.txt").write_text("queued while offline")
        (settings.inbox_path / ".hidden").write_text("skip me")
        watcher = FileWatcher(settings, processor)
        task = asyncio.create_task(watcher.start())
        await asyncio.sleep(0.1)

        assert watcher.handler.pending == {settings.inbox_path / "waiting.txt"}

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
