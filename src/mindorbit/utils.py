"""Shared utility functions."""

from pathlib import Path


def get_unique_path(dest: Path) -> Path:
    """Return ``dest``, or ``dest`` with a numeric suffix if it already exists."""
    if not dest.exists():
        return dest

    stem, suffix, parent = dest.stem, dest.suffix, dest.parent
    counter = 1
    while dest.exists():
        dest = parent / f"{stem}_{counter}{suffix}"
        counter += 1

    return dest
