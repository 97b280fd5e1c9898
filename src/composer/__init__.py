"""Decoding and filtering of Cursor composer conversations."""
from __future__ import annotations

from .filters import (
    TimeRangeFilter,
    in_range,
    is_skipped_entry,
    is_valid,
    parse_time_arg,
    rejection_reason,
)
from .model import (
    CodeBlock,
    Conversation,
    RecordDecodeError,
    Role,
    Snippet,
    Turn,
    decode_conversation,
    ms_to_local,
)

__all__ = [
    "CodeBlock",
    "Conversation",
    "RecordDecodeError",
    "Role",
    "Snippet",
    "TimeRangeFilter",
    "Turn",
    "decode_conversation",
    "in_range",
    "is_skipped_entry",
    "is_valid",
    "ms_to_local",
    "parse_time_arg",
    "rejection_reason",
]
