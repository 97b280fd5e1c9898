"""Read-only access to the Cursor ``state.vscdb`` key-value store."""
from __future__ import annotations

import os
import sqlite3
import sys
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

ConnectionLike = Union[str, Path, sqlite3.Connection]

STORE_TABLE = "cursorDiskKV"
STORE_FILE_NAME = "state.vscdb"
COMPOSER_KEY_PREFIX = "composerData:"
SCRATCH_KEY = "inlineDiffsData"
EMPTY_VALUE = "[]"
STATE_DB_ENV = "CURSOR_STATE_DB"


class UserVisibleError(RuntimeError):
    """Raised when an actionable, friendly error message should be surfaced."""


class RowReadError(Exception):
    """Raised for a single unreadable row; the scan continues past it."""


def default_db_path(platform: Optional[str] = None) -> Path:
    """Return the global ``state.vscdb`` path for the current platform."""

    override = os.getenv(STATE_DB_ENV)
    if override:
        return Path(override).expanduser()

    platform = platform or sys.platform
    home = Path.home()
    if platform.startswith("win"):
        appdata = os.getenv("APPDATA")
        if not appdata:
            raise UserVisibleError("Could not determine the default database path: APPDATA is not set.")
        base = Path(appdata)
    elif platform == "darwin":
        base = home / "Library" / "Application Support"
    elif platform.startswith("linux"):
        base = Path(os.getenv("XDG_CONFIG_HOME") or home / ".config")
    else:
        raise UserVisibleError(f"Could not determine the default database path on platform '{platform}'.")
    return base / "Cursor" / "User" / "globalStorage" / STORE_FILE_NAME


def _ensure_connection(database: ConnectionLike) -> Tuple[sqlite3.Connection, bool]:
    if isinstance(database, sqlite3.Connection):
        return database, False
    path = Path(database).expanduser()
    if not path.is_file():
        raise UserVisibleError(f"Database file does not exist: {path}")
    try:
        conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as exc:
        raise UserVisibleError(f"Failed to open database {path}: {exc}") from exc
    return conn, True


def value_to_text(value: Union[bytes, str, None]) -> str:
    """Return a stored value as text; raises ``RowReadError`` for undecodable bytes."""

    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RowReadError(f"value is not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc
    if isinstance(value, str):
        return value
    raise RowReadError(f"unexpected value type {type(value).__name__}")


class KeyValueStore:
    """Sequential reader over the ``cursorDiskKV`` table.

    Use as a context manager; connections passed in by the caller are left
    open on exit.
    """

    def __init__(self, database: ConnectionLike) -> None:
        self._database = database
        self._conn: Optional[sqlite3.Connection] = None
        self._owns_connection = False

    def __enter__(self) -> "KeyValueStore":
        self._conn, self._owns_connection = _ensure_connection(self._database)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._conn is not None and self._owns_connection:
            self._conn.close()
        self._conn = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("KeyValueStore must be used inside a 'with' block.")
        return self._conn

    def iter_entries(self) -> Iterator[Tuple[str, Union[bytes, str, RowReadError]]]:
        """Yield ``(key, value)`` pairs in table order.

        A row whose key cannot be read is yielded with a ``RowReadError`` in
        place of its value so callers can record it and move on.
        """

        try:
            cursor = self.connection.execute(f"SELECT key, value FROM {STORE_TABLE}")
        except sqlite3.Error as exc:
            raise UserVisibleError(f"Failed to query database: {exc}") from exc
        while True:
            try:
                row = cursor.fetchone()
            except sqlite3.Error as exc:
                raise UserVisibleError(f"Error while iterating records: {exc}") from exc
            if row is None:
                return
            raw_key, value = row
            try:
                key = value_to_text(raw_key)
            except RowReadError as exc:
                yield repr(raw_key), RowReadError(f"unreadable key: {exc}")
                continue
            yield key, value

    def fetch_value(self, key: str) -> Optional[Union[bytes, str]]:
        """Return the raw value stored under ``key`` or ``None`` when absent."""

        try:
            row = self.connection.execute(
                f"SELECT value FROM {STORE_TABLE} WHERE key = ?",
                (key,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise UserVisibleError(f"Failed to query database: {exc}") from exc
        if row is None:
            return None
        return row[0]


def composer_key(session_id: str) -> str:
    return f"{COMPOSER_KEY_PREFIX}{session_id}"


def session_id_from_key(key: str) -> str:
    if key.startswith(COMPOSER_KEY_PREFIX):
        return key[len(COMPOSER_KEY_PREFIX):]
    return key


__all__ = [
    "COMPOSER_KEY_PREFIX",
    "EMPTY_VALUE",
    "KeyValueStore",
    "RowReadError",
    "SCRATCH_KEY",
    "STORE_TABLE",
    "UserVisibleError",
    "composer_key",
    "default_db_path",
    "session_id_from_key",
    "value_to_text",
]
