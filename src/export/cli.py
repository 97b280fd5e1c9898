"""Command-line entry point: list Cursor chat sessions or export them to Markdown."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from catalog import KeyValueStore, UserVisibleError, default_db_path
from catalog.sessions import SessionSummary, list_sessions
from composer import TimeRangeFilter

from . import __version__
from .session_export import DEFAULT_OUTPUT_DIR, ExportOptions, ExportReport, export_batch, export_single

LIST_DATE_FORMAT = "%Y-%m-%d"
LIST_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
OPEN_SESSION_LABEL = "not ended"
COMMANDS = ("ls", "export", "version")
SORT_DESC_VALUE_FLAG = "--sort-desc-value"
EXPLICIT_BOOL_FLAGS = {"-sort-desc": SORT_DESC_VALUE_FLAG, "--sort-desc": SORT_DESC_VALUE_FLAG}


def parse_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in {"1", "t", "true", "yes", "y"}:
        return True
    if lowered in {"0", "f", "false", "no", "n"}:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {text!r}")


def normalize_bool_flags(arguments: Sequence[str]) -> List[str]:
    """Route ``-flag=value`` booleans to their value-taking option.

    A bare boolean flag never consumes the following token, so
    ``export -sort-desc ID`` keeps ``ID`` as the session id.
    """

    normalized: List[str] = []
    for argument in arguments:
        flag, separator, value = argument.partition("=")
        if separator and flag in EXPLICIT_BOOL_FLAGS:
            normalized.append(f"{EXPLICIT_BOOL_FLAGS[flag]}={value}")
        else:
            normalized.append(argument)
    return normalized


def _add_db_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-db",
        "--db",
        dest="db",
        help="Path to Cursor's state.vscdb (default: the platform's Cursor global storage).",
    )


def _add_verbose_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-verbose",
        "--verbose",
        dest="verbose",
        action="store_true",
        help="Print every skipped record instead of a count.",
    )


def _add_json_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-json",
        "--json",
        dest="json",
        action="store_true",
        help="Emit a machine-readable JSON report instead of text.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cursor2md",
        description="Export Cursor AI chat sessions from state.vscdb to Markdown.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="{ls,export,version,help}")

    ls_parser = subparsers.add_parser("ls", help="List chat sessions sorted by start time.")
    _add_db_argument(ls_parser)
    _add_json_argument(ls_parser)
    _add_verbose_argument(ls_parser)
    ls_parser.set_defaults(handler=run_list)

    export_parser = subparsers.add_parser(
        "export",
        help="Export one session by ID, or every session matching the time filters.",
    )
    export_parser.add_argument(
        "session_id",
        nargs="?",
        metavar="ID",
        help="Session ID (the composerData key without its prefix). Omit to export all sessions.",
    )
    _add_db_argument(export_parser)
    export_parser.add_argument(
        "-out",
        "--out",
        dest="out",
        default=str(DEFAULT_OUTPUT_DIR),
        help=f"Directory for Markdown files (default: {DEFAULT_OUTPUT_DIR}).",
    )
    _add_json_argument(export_parser)
    export_parser.add_argument(
        "-sort-desc",
        "--sort-desc",
        dest="sort_desc",
        action="store_const",
        const=True,
        default=True,
        help="Sort by start time, newest first (default: true). Use -sort-desc=false for oldest first.",
    )
    export_parser.add_argument(
        SORT_DESC_VALUE_FLAG,
        dest="sort_desc",
        type=parse_bool,
        default=argparse.SUPPRESS,
        help=argparse.SUPPRESS,
    )
    export_parser.add_argument(
        "-byname",
        "--byname",
        dest="by_name",
        action="store_true",
        help="Name files after the session title instead of numbering them.",
    )
    for flag, noun in (
        ("start-after", "started at or after"),
        ("start-before", "started at or before"),
        ("end-after", "ended at or after"),
        ("end-before", "ended at or before"),
    ):
        export_parser.add_argument(
            f"-{flag}",
            f"--{flag}",
            dest=flag.replace("-", "_"),
            metavar="TIME",
            help=f"Only include sessions {noun} TIME (YYYY-MM-DD, YYYY-MM-DD HH:MM or YYYY-MM-DD HH:MM:SS).",
        )
    _add_verbose_argument(export_parser)
    export_parser.set_defaults(handler=run_export)

    version_parser = subparsers.add_parser("version", help="Print the version.")
    _add_json_argument(version_parser)
    version_parser.set_defaults(handler=run_version)

    subparsers.add_parser("help", help="Show this message.")
    return parser


def resolve_db_path(value: Optional[str]) -> Path:
    if value:
        return Path(value).expanduser()
    return default_db_path()


def emit_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def summary_to_dict(session: SessionSummary) -> Dict[str, Any]:
    return {
        "id": session.id,
        "title": session.title,
        "start_time": session.start_time.strftime(LIST_TIME_FORMAT),
        "end_time": session.end_time.strftime(LIST_TIME_FORMAT) if session.end_time is not None else None,
    }


def format_session_table(sessions: Sequence[SessionSummary]) -> List[str]:
    id_width = max([len("HASH")] + [len(session.id) for session in sessions])
    title_width = max([len("TITLE")] + [len(session.title) for session in sessions])

    def row(session_id: str, start: str, end: str, title: str) -> str:
        return f"{session_id:<{id_width}}  {start:>10}  {end:>10}  {title:<{title_width}}".rstrip()

    lines = [row("HASH", "START TIME", "END TIME", "TITLE"), "-" * (id_width + title_width + 26)]
    for session in sessions:
        end = session.end_time.strftime(LIST_DATE_FORMAT) if session.end_time is not None else OPEN_SESSION_LABEL
        lines.append(row(session.id, session.start_time.strftime(LIST_DATE_FORMAT), end, session.title))
    return lines


def run_list(args: argparse.Namespace) -> int:
    db_path = resolve_db_path(args.db)
    warnings: List[str] = []
    skipped: List[str] = []
    with KeyValueStore(db_path) as store:
        sessions = list_sessions(store, warnings=warnings, skipped=skipped)

    if args.json:
        payload: Dict[str, Any] = {
            "sessions": [summary_to_dict(session) for session in sessions],
            "total": len(sessions),
            "success": True,
        }
        if warnings:
            payload["warnings"] = warnings
        emit_json(payload)
        return 0

    print_warnings(warnings, args.verbose)
    print_skipped(skipped, args.verbose)
    if not sessions:
        print("No valid sessions found in the database.")
        return 0
    for line in format_session_table(sessions):
        print(line)
    print(f"\nFound {len(sessions)} session(s)")
    return 0


def print_warnings(warnings: Sequence[str], verbose: bool) -> None:
    if not warnings:
        return
    if verbose:
        for warning in warnings:
            print(f"Warning: {warning}", file=sys.stderr)
    else:
        print(
            f"Skipped {len(warnings)} record(s) that could not be read or written; rerun with -verbose for details.",
            file=sys.stderr,
        )


def print_skipped(skipped: Sequence[str], verbose: bool) -> None:
    if not verbose:
        return
    for entry in skipped:
        print(f"Skipped {entry}", file=sys.stderr)


def run_export(args: argparse.Namespace) -> int:
    time_filter = TimeRangeFilter.from_args(
        args.start_after,
        args.start_before,
        args.end_after,
        args.end_before,
    )
    db_path = resolve_db_path(args.db)
    options = ExportOptions(
        output_dir=Path(args.out),
        by_name=args.by_name,
        descending=args.sort_desc,
        time_filter=time_filter,
    )
    with KeyValueStore(db_path) as store:
        if args.session_id:
            report = export_single(store, args.session_id, options)
        else:
            report = export_batch(store, options)
    return report_export(report, args)


def report_export(report: ExportReport, args: argparse.Namespace) -> int:
    if args.json:
        emit_json(report.to_dict())
        return 0 if report.success else 1

    for item in report.written:
        print(f"Wrote {item.output_path}")
    print_warnings(report.warnings, args.verbose)
    print_skipped(report.skipped, args.verbose)
    if not report.success:
        print(f"Error: {report.error}", file=sys.stderr)
        return 1
    print(f"Exported {report.total} session(s) to {Path(args.out)}")
    return 0


def run_version(args: argparse.Namespace) -> int:
    if args.json:
        emit_json({"version": __version__, "success": True})
    else:
        print(f"cursor2md {__version__}")
    return 0


def _failure_payload(command: str, message: str) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": False, "error": message}
    if command in {"ls", "export"}:
        payload = {"sessions": [], "total": 0, **payload}
    return payload


def main(argv: Optional[Sequence[str]] = None) -> int:
    arguments = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    if not arguments or arguments[0] not in COMMANDS:
        parser.print_help()
        return 0

    args = parser.parse_args(normalize_bool_flags(arguments))
    handler: Callable[[argparse.Namespace], int] = args.handler
    try:
        return handler(args)
    except UserVisibleError as exc:
        if getattr(args, "json", False):
            emit_json(_failure_payload(args.command, str(exc)))
        else:
            print(f"Error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(1)


if __name__ == "__main__":
    run()
