"""Single-session and batch export of composer conversations to Markdown."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from catalog import KeyValueStore, UserVisibleError, composer_key
from catalog.sessions import ExportDescriptor, collect_export_descriptors, describe, load_conversation
from composer import Conversation, RecordDecodeError, TimeRangeFilter, is_valid

from .markdown import TIME_FORMAT, render_conversation_markdown
from .naming import collision_safe_path, sequence_filename, title_filename

DEFAULT_OUTPUT_DIR = Path("markdown_output")


@dataclass
class ExportOptions:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    by_name: bool = False
    descending: bool = True
    time_filter: Optional[TimeRangeFilter] = None


@dataclass
class ExportReport:
    sessions: List[ExportDescriptor] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def written(self) -> List[ExportDescriptor]:
        return [item for item in self.sessions if item.output_path is not None]

    @property
    def total(self) -> int:
        return len(self.written)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def fail(self, message: str) -> "ExportReport":
        self.success = False
        self.error = message
        return self

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sessions": [descriptor_to_dict(item) for item in self.sessions],
            "total": self.total,
            "success": self.success,
        }
        if self.error:
            payload["error"] = self.error
        if self.warnings:
            payload["warnings"] = list(self.warnings)
        return payload


def descriptor_to_dict(item: ExportDescriptor) -> Dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "output_path": str(item.output_path) if item.output_path is not None else None,
        "start_time": item.start_time.strftime(TIME_FORMAT),
        "end_time": item.end_time.strftime(TIME_FORMAT) if item.end_time is not None else None,
    }


def ensure_output_dir(output_dir: Path) -> Path:
    output_dir = Path(output_dir).expanduser()
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise UserVisibleError(f"Failed to create output directory {output_dir}: {exc}") from exc
    return output_dir


def write_document(destination: Path, conversation: Conversation) -> None:
    destination.write_text(render_conversation_markdown(conversation), encoding="utf-8")


def export_single(store: KeyValueStore, session_id: str, options: ExportOptions) -> ExportReport:
    """Export exactly the session stored under ``composerData:<session_id>``."""

    report = ExportReport()
    key = composer_key(session_id)
    try:
        conversation = load_conversation(store, key)
    except RecordDecodeError as exc:
        return report.fail(f"Session '{session_id}' could not be decoded: {exc.reason}")
    if conversation is None:
        return report.fail(f"Session '{session_id}' was not found.")
    if not is_valid(conversation):
        return report.fail(f"Session '{session_id}' has no conversation content.")

    output_dir = ensure_output_dir(options.output_dir)
    if options.by_name:
        filename = title_filename(conversation.title)
    else:
        filename = sequence_filename(1, 0, conversation.title)
    destination = output_dir / filename

    descriptor = describe(key, conversation)
    report.sessions.append(descriptor)
    try:
        write_document(destination, conversation)
    except OSError as exc:
        return report.fail(f"Failed to write {destination}: {exc}")
    descriptor.output_path = destination
    return report


def export_batch(store: KeyValueStore, options: ExportOptions) -> ExportReport:
    """Export every session that passes ``options.time_filter``.

    Items are numbered or named in the sorted order. Each payload is fetched
    again by key for rendering; per-item failures become warnings and records
    left out by the filters are listed in ``report.skipped``.
    """

    report = ExportReport()
    output_dir = ensure_output_dir(options.output_dir)
    descriptors = collect_export_descriptors(
        store,
        time_filter=options.time_filter,
        descending=options.descending,
        warnings=report.warnings,
        skipped=report.skipped,
    )
    total = len(descriptors)
    for index, descriptor in enumerate(descriptors):
        report.sessions.append(descriptor)
        try:
            conversation = load_conversation(store, descriptor.key)
        except RecordDecodeError as exc:
            report.add_warning(f"Skipped {descriptor.key}: {exc.reason}")
            continue
        if conversation is None:
            report.add_warning(f"Skipped {descriptor.key}: record disappeared during export")
            continue

        if options.by_name:
            destination = collision_safe_path(output_dir, title_filename(descriptor.title), descriptor.start_time)
        else:
            destination = output_dir / sequence_filename(total, index, descriptor.title)
        try:
            write_document(destination, conversation)
        except OSError as exc:
            report.add_warning(f"Failed to write {destination}: {exc}")
            continue
        descriptor.output_path = destination
    return report
