"""Category-grouped knowledge map (INDEX.md) generation."""

import logging
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Iterable

from .schema import KnowledgeItem

logger = logging.getLogger(__name__)

MAX_PER_CATEGORY = 20


def group_by_category(items: Iterable[KnowledgeItem]) -> dict[str, list[KnowledgeItem]]:
    """Group items by category, newest first within each category."""
    by_category: dict[str, list[KnowledgeItem]] = defaultdict(list)
    for item in items:
        by_category[item.category].append(item)

    for category in by_category:
        by_category[category].sort(key=lambda i: i.created_at, reverse=True)

    return dict(by_category)


def format_item_line(item: KnowledgeItem) -> str:
    """Format a single item as a markdown list entry."""
    tag_str = f" `{'` `'.join(item.tags)}`" if item.tags else ""
    return f"- **{item.title}** ({item.id}){tag_str}"


def render_index(items: Iterable[KnowledgeItem]) -> str:
    """Render the knowledge map as markdown."""
    by_category = group_by_category(items)

    lines = [
        "# MindOrbit",
        "",
        f"*Last updated: {datetime.now().strftime('%Y-%m-%d %H:%M')}*",
        "",
        "## Knowledge Map",
        "",
    ]

    if not by_category:
        lines.extend(["No knowledge stored yet.", ""])

    for category in sorted(by_category):
        category_items = by_category[category]
        lines.append(f"### {category}")
        lines.append("")
        for item in category_items[:MAX_PER_CATEGORY]:
            lines.append(format_item_line(item))
        if len(category_items) > MAX_PER_CATEGORY:
            lines.append(f"  *...and {len(category_items) - MAX_PER_CATEGORY} more*")
        lines.append("")

    total = sum(len(c) for c in by_category.values())
    lines.extend([
        "---",
        "",
        f"**Total items:** {total} | **Categories:** {len(by_category)}",
        "",
    ])

    return "\n".join(lines)


class Indexer:
    """Rewrites INDEX.md whenever the working set changes."""

    def __init__(self, index_path: Path):
        self.index_path = index_path

    def regenerate(self, items: Iterable[KnowledgeItem]) -> None:
        content = render_index(items)
        try:
            self.index_path.parent.mkdir(parents=True, exist_ok=True)
            self.index_path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning(f"[STORE] Could not write {self.index_path.name}: {e}")
            return
        logger.debug(f"[STORE] {self.index_path.name} regenerated")
