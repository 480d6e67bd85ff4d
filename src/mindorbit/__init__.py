"""MindOrbit - personal knowledge capture, relation graph and chat."""

__version__ = "0.1.0"
