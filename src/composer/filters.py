"""Validity and time-range checks applied to decoded conversations."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from catalog import COMPOSER_KEY_PREFIX, EMPTY_VALUE, SCRATCH_KEY, UserVisibleError

from .model import Conversation

TIME_ARG_FORMATS = ("%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S")
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
# strptime alone accepts unpadded fields such as 2024-1-5.
TIME_ARG_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}(?: \d{2}:\d{2}(?::\d{2})?)?", re.ASCII)


def is_skipped_entry(key: str, value: Union[bytes, str, None]) -> bool:
    """Return True for store entries that are never conversations."""

    if key == SCRATCH_KEY:
        return True
    if isinstance(value, (bytes, bytearray)):
        return bytes(value) == EMPTY_VALUE.encode("ascii")
    return value == EMPTY_VALUE


def is_valid(conversation: Conversation) -> bool:
    """Return True when the conversation carries user-visible content."""

    # Titles fall back to the store key, so an unnamed composer record lands here.
    if conversation.title.startswith(COMPOSER_KEY_PREFIX):
        return False
    if not conversation.turns:
        return False
    return any(turn.text for turn in conversation.turns)


def parse_time_arg(text: Optional[str]) -> Optional[datetime]:
    """Parse a command-line time bound in local time; blank means unset."""

    if not text:
        return None
    if TIME_ARG_PATTERN.fullmatch(text):
        for fmt in TIME_ARG_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
    raise UserVisibleError(
        f"Invalid time format: {text!r} (expected YYYY-MM-DD, YYYY-MM-DD HH:MM or YYYY-MM-DD HH:MM:SS)"
    )


@dataclass(frozen=True)
class TimeRangeFilter:
    start_after: Optional[datetime] = None
    start_before: Optional[datetime] = None
    end_after: Optional[datetime] = None
    end_before: Optional[datetime] = None

    @property
    def enabled(self) -> bool:
        return any(
            bound is not None
            for bound in (self.start_after, self.start_before, self.end_after, self.end_before)
        )

    @classmethod
    def from_args(
        cls,
        start_after: Optional[str] = None,
        start_before: Optional[str] = None,
        end_after: Optional[str] = None,
        end_before: Optional[str] = None,
    ) -> "TimeRangeFilter":
        return cls(
            start_after=parse_time_arg(start_after),
            start_before=parse_time_arg(start_before),
            end_after=parse_time_arg(end_after),
            end_before=parse_time_arg(end_before),
        )


def rejection_reason(conversation: Conversation, time_filter: Optional[TimeRangeFilter]) -> Optional[str]:
    """Explain why ``conversation`` falls outside ``time_filter``; None if it passes.

    End bounds only apply to conversations with a resolved end time.
    """

    if time_filter is None or not time_filter.enabled:
        return None

    start = conversation.start_time
    if time_filter.start_after is not None and start < time_filter.start_after:
        return f"start time {start:{DISPLAY_FORMAT}} is before {time_filter.start_after:{DISPLAY_FORMAT}}"
    if time_filter.start_before is not None and start > time_filter.start_before:
        return f"start time {start:{DISPLAY_FORMAT}} is after {time_filter.start_before:{DISPLAY_FORMAT}}"

    end = conversation.end_time
    if end is not None:
        if time_filter.end_after is not None and end < time_filter.end_after:
            return f"end time {end:{DISPLAY_FORMAT}} is before {time_filter.end_after:{DISPLAY_FORMAT}}"
        if time_filter.end_before is not None and end > time_filter.end_before:
            return f"end time {end:{DISPLAY_FORMAT}} is after {time_filter.end_before:{DISPLAY_FORMAT}}"
    return None


def in_range(conversation: Conversation, time_filter: Optional[TimeRangeFilter]) -> bool:
    return rejection_reason(conversation, time_filter) is None
