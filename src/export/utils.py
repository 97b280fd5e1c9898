"""Shared helpers for Markdown export."""

from __future__ import annotations

from typing import Iterable


def base_name(path: str) -> str:
    """Return the last path element, treating ``/`` as the separator."""

    trimmed = path.rstrip("/")
    if not trimmed:
        return "/" if path else "."
    return trimmed.rsplit("/", 1)[-1]


def file_link(path: str) -> str:
    return f"[{base_name(path)}]({path})"


def join_file_links(paths: Iterable[str], separator: str = "\t") -> str:
    return separator.join(file_link(path) for path in paths)
