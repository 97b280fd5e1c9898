"""Markdown export of Cursor composer conversations."""

__version__ = "1.0.0"
