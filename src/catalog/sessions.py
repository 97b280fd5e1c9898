"""Scan the store and build ordered session listings and export descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from composer import (
    Conversation,
    RecordDecodeError,
    TimeRangeFilter,
    decode_conversation,
    is_skipped_entry,
    is_valid,
    rejection_reason,
)

from . import KeyValueStore, RowReadError, session_id_from_key


@dataclass(frozen=True)
class SessionSummary:
    id: str
    title: str
    start_time: datetime
    end_time: Optional[datetime]


@dataclass
class ExportDescriptor:
    id: str
    key: str
    title: str
    start_time: datetime
    end_time: Optional[datetime]
    output_path: Optional[Path] = None


def scan_conversations(
    store: KeyValueStore,
    *,
    time_filter: Optional[TimeRangeFilter] = None,
    warnings: Optional[List[str]] = None,
    skipped: Optional[List[str]] = None,
) -> Iterator[Tuple[str, Conversation]]:
    """Yield ``(key, conversation)`` for every record worth showing.

    Unreadable rows and undecodable payloads are reported through
    ``warnings``. Sentinel entries, invalid conversations and time-filter
    rejections are excluded on purpose; their reasons go to ``skipped``.
    """

    for key, value in store.iter_entries():
        if isinstance(value, RowReadError):
            _warn(warnings, f"Skipped {key}: {value}")
            continue
        if is_skipped_entry(key, value):
            _warn(skipped, f"{key}: placeholder entry")
            continue
        try:
            conversation = decode_conversation(key, value)
        except RecordDecodeError as exc:
            _warn(warnings, f"Skipped {key}: {exc.reason}")
            continue
        if not is_valid(conversation):
            _warn(skipped, f"{key}: no conversation content")
            continue
        reason = rejection_reason(conversation, time_filter)
        if reason is not None:
            _warn(skipped, f"{key} ({conversation.title}): {reason}")
            continue
        yield key, conversation


def load_conversation(store: KeyValueStore, key: str) -> Optional[Conversation]:
    """Fetch and decode one record; None when the key is absent or skipped."""

    value = store.fetch_value(key)
    if value is None or is_skipped_entry(key, value):
        return None
    return decode_conversation(key, value)


def list_sessions(
    store: KeyValueStore,
    *,
    warnings: Optional[List[str]] = None,
    skipped: Optional[List[str]] = None,
) -> List[SessionSummary]:
    sessions = [
        SessionSummary(
            id=session_id_from_key(key),
            title=conversation.title,
            start_time=conversation.start_time,
            end_time=conversation.end_time,
        )
        for key, conversation in scan_conversations(store, warnings=warnings, skipped=skipped)
    ]
    sessions.sort(key=lambda session: session.start_time)
    return sessions


def collect_export_descriptors(
    store: KeyValueStore,
    *,
    time_filter: Optional[TimeRangeFilter] = None,
    descending: bool = True,
    warnings: Optional[List[str]] = None,
    skipped: Optional[List[str]] = None,
) -> List[ExportDescriptor]:
    descriptors = [
        describe(key, conversation)
        for key, conversation in scan_conversations(
            store, time_filter=time_filter, warnings=warnings, skipped=skipped
        )
    ]
    descriptors.sort(key=lambda item: item.start_time, reverse=descending)
    return descriptors


def describe(key: str, conversation: Conversation) -> ExportDescriptor:
    return ExportDescriptor(
        id=session_id_from_key(key),
        key=key,
        title=conversation.title,
        start_time=conversation.start_time,
        end_time=conversation.end_time,
    )


def _warn(warnings: Optional[List[str]], message: str) -> None:
    if warnings is not None:
        warnings.append(message)


__all__ = [
    "ExportDescriptor",
    "SessionSummary",
    "collect_export_descriptors",
    "describe",
    "list_sessions",
    "load_conversation",
    "scan_conversations",
]
