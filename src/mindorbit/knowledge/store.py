"""Working-set persistence and the knowledge base state container."""

import logging
import os
import random
import tempfile
from collections import Counter
from pathlib import Path
from typing import Callable, Optional

from ..errors import DuplicateItemError, StoreCorruptedError
from .schema import KnowledgeItem, deserialize_items, serialize_items

logger = logging.getLogger(__name__)

Listener = Callable[[tuple[KnowledgeItem, ...]], None]


class JsonItemStore:
    """Persists the working set as a JSON array in a single file."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> list[KnowledgeItem]:
        """Load the stored working set.

        A missing file is an empty working set. A file that cannot be parsed
        is moved aside to ``<name>.corrupt`` and the working set starts empty.
        """
        if not self.path.exists():
            logger.debug(f"[STORE] No stored items at {self.path}")
            return []

        try:
            items = deserialize_items(self.path.read_text(encoding="utf-8"))
        except (StoreCorruptedError, UnicodeDecodeError) as e:
            logger.warning(f"[STORE] Discarding unreadable working set {self.path.name}: {e}")
            self._quarantine()
            return []
        except OSError as e:
            logger.warning(f"[STORE] Could not read {self.path}: {e}")
            return []

        items = self._drop_repeated_ids(items)
        logger.info(f"[STORE] Loaded {len(items)} item(s) from {self.path.name}")
        return items

    def save(self, items: list[KnowledgeItem] | tuple[KnowledgeItem, ...]) -> None:
        """Write the working set, replacing the previous file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = serialize_items(items)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"[STORE] Saved {len(items)} item(s) to {self.path.name}")

    def _drop_repeated_ids(self, items: list[KnowledgeItem]) -> list[KnowledgeItem]:
        """Keep the first item for each id."""
        seen: set[str] = set()
        unique = []
        for item in items:
            if item.id in seen:
                logger.warning(f"[STORE] Dropping repeated item id {item.id} in {self.path.name}")
                continue
            seen.add(item.id)
            unique.append(item)
        return unique

    def _quarantine(self) -> None:
        try:
            self.path.replace(self.path.with_name(f"{self.path.name}.corrupt"))
        except OSError as e:
            logger.warning(f"[STORE] Could not move corrupt file aside: {e}")


class KnowledgeBase:
    """The single owner of the working set.

    Created by the top-level coordinator (or CLI command) and handed to every
    view. Each mutation saves the new working set through the store and
    notifies subscribers with an immutable snapshot.
    """

    def __init__(self, store: JsonItemStore, items: Optional[list[KnowledgeItem]] = None):
        self.store = store
        self._items: list[KnowledgeItem] = list(items) if items is not None else store.load()
        self._listeners: list[Listener] = []

    @property
    def items(self) -> tuple[KnowledgeItem, ...]:
        """Snapshot of the working set in insertion order."""
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> Optional[KnowledgeItem]:
        return next((i for i in self._items if i.id == item_id), None)

    def add(self, item: KnowledgeItem) -> KnowledgeItem:
        """Append a new item and persist."""
        if self.get(item.id) is not None:
            raise DuplicateItemError(item.id)
        self._items.append(item)
        logger.info(f"[STORE] Added '{item.title}' [{item.category}]")
        self._commit()
        return item

    def delete(self, item_id: str) -> bool:
        """Remove an item by id. Returns False if nothing was removed."""
        remaining = [i for i in self._items if i.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        logger.info(f"[STORE] Deleted item {item_id}")
        self._commit()
        return True

    def reload(self) -> None:
        """Replace the in-memory working set with the stored one."""
        self._items = self.store.load()
        self._notify()

    def categories(self) -> dict[str, int]:
        """Item count per category, most populated first."""
        return dict(Counter(i.category for i in self._items).most_common())

    def random_item(self, rng: Optional[random.Random] = None) -> Optional[KnowledgeItem]:
        """Pick an item to resurface as a reminder."""
        if not self._items:
            return None
        return (rng or random).choice(self._items)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self) -> None:
        try:
            self.store.save(self._items)
        except OSError as e:
            logger.error(f"[STORE] Failed to save working set: {e}")
        self._notify()

    def _notify(self) -> None:
        snapshot = self.items
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("[STORE] Change listener failed")
