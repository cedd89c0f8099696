"""SQLite database for per-book reading progress."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from .models import ReadingProgress

_SCHEMA = """
CREATE TABLE IF NOT EXISTS reading_progress (
    file_path TEXT PRIMARY KEY,
    chapter_index INTEGER DEFAULT 0,
    byte_offset INTEGER DEFAULT 0,
    updated_at REAL NOT NULL
);
"""


class Database:
    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._conn = sqlite3.connect(str(db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # ── Reading Progress ───────────────────────────────────

    def save_progress(self, progress: ReadingProgress) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO reading_progress
               (file_path, chapter_index, byte_offset, updated_at)
               VALUES (?, ?, ?, ?)""",
            (
                progress.file_path,
                progress.chapter_index,
                progress.byte_offset,
                progress.updated_at,
            ),
        )
        self._conn.commit()

    def get_progress(self, file_path: str) -> Optional[ReadingProgress]:
        row = self._conn.execute(
            "SELECT * FROM reading_progress WHERE file_path = ?",
            (file_path,),
        ).fetchone()
        return self._row_to_progress(row) if row else None

    def get_last_progress(self) -> Optional[ReadingProgress]:
        """Return the most recently read book, if any."""
        row = self._conn.execute(
            "SELECT * FROM reading_progress ORDER BY updated_at DESC LIMIT 1"
        ).fetchone()
        return self._row_to_progress(row) if row else None

    @staticmethod
    def _row_to_progress(row: sqlite3.Row) -> ReadingProgress:
        return ReadingProgress(
            file_path=row["file_path"],
            chapter_index=row["chapter_index"],
            byte_offset=row["byte_offset"],
            updated_at=row["updated_at"],
        )
