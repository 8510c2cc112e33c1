"""SQLite log of applied rename batches, used for undo.

Each executed plan with at least one APPLIED entry becomes one batch row;
every applied entry is stored with the match that named it, so the log
also tells which TMDB record a file was renamed after.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .models import PlanStatus, RenamePlanEntry, Resolved
from .planner import RenamePlan, revert_plan
from .settings import config_dir

log = logging.getLogger(__name__)

DB_FILENAME = "rename_history.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS batches (
    batch_id    TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL,
    folder      TEXT NOT NULL,
    provider    TEXT NOT NULL DEFAULT 'tmdb',
    undone_at   TEXT
);

CREATE TABLE IF NOT EXISTS moves (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    batch_id    TEXT NOT NULL REFERENCES batches(batch_id),
    position    INTEGER NOT NULL,
    source      TEXT NOT NULL,
    target      TEXT NOT NULL,
    kind        TEXT,
    record_id   INTEGER,
    record_title TEXT,
    confidence  REAL
);

CREATE INDEX IF NOT EXISTS idx_moves_batch ON moves(batch_id, position);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


@dataclass
class MoveRecord:
    """A single applied rename as stored in the log."""
    source: str
    target: str
    kind: str | None = None
    record_id: int | None = None
    record_title: str | None = None
    confidence: float | None = None


@dataclass
class RenameTransaction:
    batch_id: str
    created_at: str
    folder: str
    provider: str
    items: list[MoveRecord] = field(default_factory=list)
    undone_at: str | None = None

    @property
    def reverted(self) -> bool:
        return self.undone_at is not None

    def as_plan(self) -> RenamePlan:
        """The batch as an executed plan, every entry APPLIED."""
        return RenamePlan(tuple(
            RenamePlanEntry(Path(item.source), Path(item.target), PlanStatus.APPLIED)
            for item in self.items
        ))

    def undo_plan(self) -> RenamePlan:
        """Plan moving every file of the batch back to its old name."""
        return revert_plan(self.as_plan())


class RenameHistoryManager:
    """Rename log kept in a SQLite file.

    Usage::

        history = RenameHistoryManager()
        history.save_transaction(folder, executed_plan)
        tx = history.get_last_undoable()
        execute(tx.undo_plan())
        history.mark_reverted(tx.batch_id)
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = Path(db_path) if db_path is not None else config_dir() / DB_FILENAME
        self._conn: sqlite3.Connection | None = None
        with self._connection() as conn:
            conn.executescript(_SCHEMA)

    def _connection(self) -> sqlite3.Connection:
        # Reopened lazily after close()
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys=ON")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def save_transaction(
        self,
        folder: str,
        executed: RenamePlan,
        metadata_source: str = "tmdb",
    ) -> str | None:
        """
        Log the APPLIED entries of an executed plan.

        Args:
            folder: Folder the batch was run on (for display)
            executed: Plan returned by execute()
            metadata_source: Provider that named the files

        Returns:
            The new batch id, or None if nothing was applied
        """
        applied = executed.with_status(PlanStatus.APPLIED)
        if not applied:
            return None

        batch_id = uuid.uuid4().hex[:12]
        rows = []
        for position, entry in enumerate(applied):
            match = entry.result if isinstance(entry.result, Resolved) else None
            rows.append((
                batch_id,
                position,
                str(entry.source),
                str(entry.target),
                match.kind.value if match else None,
                match.record.id if match else None,
                match.record.title if match else None,
                match.confidence if match else None,
            ))

        with self._connection() as conn:
            conn.execute(
                "INSERT INTO batches (batch_id, created_at, folder, provider) VALUES (?, ?, ?, ?)",
                (batch_id, _now(), folder, metadata_source),
            )
            conn.executemany(
                "INSERT INTO moves (batch_id, position, source, target, kind, record_id, "
                "record_title, confidence) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        log.debug("Logged batch %s with %d rename(s)", batch_id, len(rows))
        return batch_id

    def _load(self, row: sqlite3.Row) -> RenameTransaction:
        moves = self._connection().execute(
            "SELECT * FROM moves WHERE batch_id = ? ORDER BY position",
            (row["batch_id"],),
        ).fetchall()
        return RenameTransaction(
            batch_id=row["batch_id"],
            created_at=row["created_at"],
            folder=row["folder"],
            provider=row["provider"],
            undone_at=row["undone_at"],
            items=[
                MoveRecord(
                    source=m["source"],
                    target=m["target"],
                    kind=m["kind"],
                    record_id=m["record_id"],
                    record_title=m["record_title"],
                    confidence=m["confidence"],
                )
                for m in moves
            ],
        )

    def has_undoable(self) -> bool:
        row = self._connection().execute(
            "SELECT COUNT(*) FROM batches WHERE undone_at IS NULL"
        ).fetchone()
        return row[0] > 0

    def get_last_undoable(self) -> RenameTransaction | None:
        """Newest batch that has not been undone yet."""
        row = self._connection().execute(
            "SELECT * FROM batches WHERE undone_at IS NULL "
            "ORDER BY created_at DESC, rowid DESC LIMIT 1"
        ).fetchone()
        return self._load(row) if row is not None else None

    def mark_reverted(self, batch_id: str) -> None:
        with self._connection() as conn:
            conn.execute(
                "UPDATE batches SET undone_at = ? WHERE batch_id = ?",
                (_now(), batch_id),
            )

    def get_all_transactions(self, limit: int = 50) -> list[RenameTransaction]:
        """Logged batches, newest first."""
        rows = self._connection().execute(
            "SELECT * FROM batches ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._load(row) for row in rows]
