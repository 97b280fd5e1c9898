"""Output file naming for exported conversations."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

UNSAFE_FILENAME_CHARS = '<>:"/\\|?*'
FALLBACK_TITLE = "untitled"
MARKDOWN_SUFFIX = ".md"
COLLISION_STAMP_FORMAT = "%Y%m%d-%H%M%S"

_UNSAFE_TABLE = str.maketrans({char: "_" for char in UNSAFE_FILENAME_CHARS})


def sanitize_title(title: str) -> str:
    """Replace characters that are unsafe in file names; blank titles become ``untitled``."""

    safe = title.translate(_UNSAFE_TABLE)
    if not safe.strip():
        return FALLBACK_TITLE
    return safe


def title_filename(title: str) -> str:
    return f"{sanitize_title(title)}{MARKDOWN_SUFFIX}"


def sequence_filename(total: int, index: int, title: str) -> str:
    """Name the ``index``-th (zero-based) of ``total`` items, e.g. ``007-title.md``.

    The number reflects position in the caller's ordering, whichever direction
    it was sorted.
    """

    width = len(str(total))
    return f"{index + 1:0{width}d}-{sanitize_title(title)}{MARKDOWN_SUFFIX}"


def collision_safe_path(directory: Path, filename: str, start_time: datetime) -> Path:
    """Return ``directory / filename`` or, if taken, a start-time suffixed variant.

    The existence check is not atomic with the later write.
    """

    candidate = directory / filename
    if not candidate.exists():
        return candidate
    stem = filename[: -len(MARKDOWN_SUFFIX)] if filename.endswith(MARKDOWN_SUFFIX) else filename
    return directory / f"{stem}-{start_time.strftime(COLLISION_STAMP_FORMAT)}{MARKDOWN_SUFFIX}"
