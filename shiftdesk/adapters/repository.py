"""SQLite repository the committed shift state is synced to."""
from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Tuple

from ..domain.models import Shift
from .serializers import shift_from_dict, shift_to_dict


class RepositoryError(RuntimeError):
    """Raised when the SQLite layer encounters an unexpected error."""


class ShiftRepository:
    """Wholesale snapshot storage: every sync replaces the stored state."""

    def __init__(self, path: str | Path = "shiftdesk.db") -> None:
        self.path = Path(path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS shifts (
                    id TEXT PRIMARY KEY,
                    shift_date TEXT NOT NULL,
                    payload_json TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS service_types (
                    position INTEGER PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE
                );
                CREATE TABLE IF NOT EXISTS sync_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    synced_at TEXT NOT NULL,
                    shift_count INTEGER NOT NULL
                );
                """
            )
            conn.commit()

    def save_snapshot(self, shifts: Iterable[Shift], service_types: Iterable[str] = ()) -> int:
        rows = [
            (shift.id, shift.date.isoformat(), json.dumps(shift_to_dict(shift), ensure_ascii=False))
            for shift in shifts
        ]
        names = [(position, name) for position, name in enumerate(service_types)]
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM shifts")
                conn.executemany("INSERT INTO shifts(id, shift_date, payload_json) VALUES (?, ?, ?)", rows)
                if names:
                    conn.execute("DELETE FROM service_types")
                    conn.executemany("INSERT INTO service_types(position, name) VALUES (?, ?)", names)
                conn.execute(
                    "INSERT INTO sync_log(synced_at, shift_count) VALUES (?, ?)",
                    (datetime.now().isoformat(timespec="seconds"), len(rows)),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(str(exc)) from exc
        return len(rows)

    def load_snapshot(self) -> Tuple[List[Shift], List[str]]:
        with self._connect() as conn:
            shift_rows = conn.execute("SELECT payload_json FROM shifts ORDER BY shift_date, id").fetchall()
            type_rows = conn.execute("SELECT name FROM service_types ORDER BY position").fetchall()
        shifts = [shift_from_dict(json.loads(row[0])) for row in shift_rows]
        return shifts, [row[0] for row in type_rows]

    def last_synced_at(self) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT synced_at FROM sync_log ORDER BY id DESC LIMIT 1").fetchone()
        return row[0] if row else None
