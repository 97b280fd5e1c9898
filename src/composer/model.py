"""Normalized conversation model decoded from Cursor ``composerData`` payloads.

The stored JSON has no published schema and gains fields between editor
releases. Decoding walks only the fields this tool reads, fills anything
missing with its zero value, and ignores everything else. A mapped field with
the wrong JSON type fails the record; nothing outside the mapped fields is
inspected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union


class Role(IntEnum):
    USER = 1
    ASSISTANT = 2


class RecordDecodeError(ValueError):
    """A stored value could not be decoded into a :class:`Conversation`."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason


@dataclass
class CodeBlock:
    language_tag: str = ""
    file_path: str = ""
    content: str = ""


@dataclass
class Snippet:
    file_path: Optional[str]
    text: str


@dataclass
class Turn:
    role: int = 0
    text: str = ""
    referenced_files: List[str] = field(default_factory=list)
    referenced_snippets: List[Snippet] = field(default_factory=list)
    code_blocks: List[CodeBlock] = field(default_factory=list)
    end_timing_ms: int = 0


@dataclass
class Conversation:
    title: str
    turns: List[Turn] = field(default_factory=list)
    related_files: List[str] = field(default_factory=list)
    created_at_ms: int = 0
    ended_at_ms: int = 0

    def refresh_end_time(self) -> int:
        """Recompute ``ended_at_ms`` from the last turn and return it."""

        self.ended_at_ms = self.turns[-1].end_timing_ms if self.turns else 0
        return self.ended_at_ms

    @property
    def start_time(self) -> datetime:
        return ms_to_local(self.created_at_ms)

    @property
    def end_time(self) -> Optional[datetime]:
        if self.refresh_end_time() == 0:
            return None
        return ms_to_local(self.ended_at_ms)


def ms_to_local(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to naive local time, truncated to seconds."""

    return datetime.fromtimestamp(timestamp_ms // 1000)


class _Reader:
    """Typed field access over one decoded JSON payload."""

    def __init__(self, key: str) -> None:
        self.key = key

    def fail(self, where: str, expected: str, value: Any) -> RecordDecodeError:
        found = "bool" if isinstance(value, bool) else type(value).__name__
        return RecordDecodeError(self.key, f"field '{where}' should be {expected}, found {found}")

    def obj(self, parent: Mapping[str, Any], name: str, where: str) -> Mapping[str, Any]:
        value = parent.get(name)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise self.fail(where, "an object", value)
        return value

    def array(self, parent: Mapping[str, Any], name: str, where: str) -> Sequence[Any]:
        value = parent.get(name)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self.fail(where, "an array", value)
        return value

    def text(self, parent: Mapping[str, Any], name: str, where: str) -> str:
        value = parent.get(name)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise self.fail(where, "a string", value)
        return value

    def integer(self, parent: Mapping[str, Any], name: str, where: str) -> int:
        value = parent.get(name)
        if value is None:
            return 0
        if isinstance(value, bool) or not isinstance(value, int):
            raise self.fail(where, "an integer", value)
        return value

    def element(self, value: Any, where: str) -> Mapping[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise self.fail(where, "an object", value)
        return value

    def uri_path(self, parent: Mapping[str, Any], where: str) -> str:
        uri = self.obj(parent, "uri", f"{where}.uri")
        return self.text(uri, "path", f"{where}.uri.path")

    def file_selections(self, context: Mapping[str, Any], where: str) -> List[str]:
        paths: List[str] = []
        for index, item in enumerate(self.array(context, "fileSelections", f"{where}.fileSelections")):
            item_where = f"{where}.fileSelections[{index}]"
            paths.append(self.uri_path(self.element(item, item_where), item_where))
        return paths


def _decode_turn(reader: _Reader, payload: Mapping[str, Any], where: str) -> Turn:
    context = reader.obj(payload, "context", f"{where}.context")
    snippets: List[Snippet] = []
    for index, item in enumerate(reader.array(context, "selections", f"{where}.context.selections")):
        item_where = f"{where}.context.selections[{index}]"
        selection = reader.element(item, item_where)
        path = reader.uri_path(selection, item_where)
        snippets.append(Snippet(file_path=path or None, text=reader.text(selection, "text", f"{item_where}.text")))

    blocks: List[CodeBlock] = []
    for index, item in enumerate(reader.array(payload, "codeBlocks", f"{where}.codeBlocks")):
        item_where = f"{where}.codeBlocks[{index}]"
        block = reader.element(item, item_where)
        blocks.append(
            CodeBlock(
                language_tag=reader.text(block, "languageId", f"{item_where}.languageId"),
                file_path=reader.uri_path(block, item_where),
                content=reader.text(block, "content", f"{item_where}.content"),
            )
        )

    timing = reader.obj(payload, "timingInfo", f"{where}.timingInfo")
    return Turn(
        role=reader.integer(payload, "type", f"{where}.type"),
        text=reader.text(payload, "text", f"{where}.text"),
        referenced_files=reader.file_selections(context, f"{where}.context"),
        referenced_snippets=snippets,
        code_blocks=blocks,
        end_timing_ms=reader.integer(timing, "clientEndTime", f"{where}.timingInfo.clientEndTime"),
    )


def decode_conversation(key: str, raw: Union[bytes, str]) -> Conversation:
    """Decode one stored value into a :class:`Conversation`.

    Raises :class:`RecordDecodeError` tagged with ``key`` when the value is
    not text, the bytes are not JSON, the payload is not an object, or a mapped field has the wrong
    type.
    """

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RecordDecodeError(key, f"value is not valid UTF-8 ({exc.reason})") from exc
    elif raw is not None and not isinstance(raw, str):
        raise RecordDecodeError(key, f"unexpected value type {type(raw).__name__}")
    if not raw:
        raise RecordDecodeError(key, "value is empty")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RecordDecodeError(
            key,
            f"invalid JSON (line {exc.lineno} column {exc.colno}, {len(raw)} characters)",
        ) from exc
    if not isinstance(payload, dict):
        raise RecordDecodeError(key, f"expected a JSON object, found {type(payload).__name__}")

    reader = _Reader(key)
    turns = [
        _decode_turn(reader, reader.element(item, f"conversation[{index}]"), f"conversation[{index}]")
        for index, item in enumerate(reader.array(payload, "conversation", "conversation"))
    ]
    conversation = Conversation(
        title=reader.text(payload, "name", "name") or key,
        turns=turns,
        related_files=reader.file_selections(reader.obj(payload, "context", "context"), "context"),
        created_at_ms=reader.integer(payload, "createdAt", "createdAt"),
    )
    conversation.refresh_end_time()
    _check_timestamps(key, conversation)
    return conversation


def _check_timestamps(key: str, conversation: Conversation) -> None:
    checks: Tuple[Tuple[str, int], ...] = (
        ("createdAt", conversation.created_at_ms),
        ("clientEndTime", conversation.ended_at_ms),
    )
    for name, value in checks:
        try:
            ms_to_local(value)
        except (OverflowError, OSError, ValueError) as exc:
            raise RecordDecodeError(key, f"{name} {value} is out of range") from exc
