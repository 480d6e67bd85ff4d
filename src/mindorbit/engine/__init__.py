"""Capture engine."""

from .processor import CaptureResult, Processor
from .watcher import FileWatcher

__all__ = ["CaptureResult", "FileWatcher", "Processor"]
