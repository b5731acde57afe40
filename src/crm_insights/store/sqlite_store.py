"""SQLite-backed opportunity store keyed by (owner_id, fingerprint)."""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from crm_insights.errors import PersistenceError
from crm_insights.models.opportunity import Opportunity

from .base import RowStore, RunRecord

logger = logging.getLogger(__name__)


class SQLiteRowStore(RowStore):
    """
    SQLite store for canonical opportunities.
    Each upsert_many call is one transaction; a repeated fingerprint replaces
    every non-key field of the stored record.
    """

    def __init__(self, db_path: str | Path = "crm_insights.db"):
        self._db_path = Path(db_path)
        self._ensure_schema()

    def _connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        schema_path = Path(__file__).parent / "schema.sql"
        with self._connection() as conn:
            conn.executescript(schema_path.read_text())

    def _serialize(self, opp: Opportunity) -> str:
        return json.dumps(opp.model_dump(mode="json"), default=str)

    def _deserialize(self, row: sqlite3.Row) -> Opportunity:
        return Opportunity.model_validate(json.loads(row["data"]))

    def upsert_many(self, records: list[Opportunity]) -> int:
        if not records:
            return 0
        now = datetime.now(timezone.utc).isoformat()
        params = [
            (r.owner_id, r.fingerprint, r.status.value, self._serialize(r), now, now)
            for r in records
        ]
        try:
            with self._connection() as conn:
                conn.executemany(
                    """
                    INSERT INTO opportunities (owner_id, fingerprint, status, data, first_seen_at, last_seen_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (owner_id, fingerprint) DO UPDATE SET
                        status = excluded.status,
                        data = excluded.data,
                        last_seen_at = excluded.last_seen_at
                    """,
                    params,
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Upsert of {len(records)} rows failed: {e}") from e
        return len(records)

    def fetch_range(self, owner_id: str, start: int, end: int) -> list[Opportunity]:
        limit = max(0, end - start + 1)
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    "SELECT data FROM opportunities WHERE owner_id = ? ORDER BY id LIMIT ? OFFSET ?",
                    (owner_id, limit, start),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Range read {start}-{end} failed: {e}") from e
        return [self._deserialize(r) for r in rows]

    def count(self, owner_id: str) -> int:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM opportunities WHERE owner_id = ?", (owner_id,)
            ).fetchone()
        return int(row["n"])

    def delete_owner(self, owner_id: str) -> int:
        """Remove every record of one owner. Returns rows deleted."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM opportunities WHERE owner_id = ?", (owner_id,))
        logger.info("Deleted %d opportunities for owner %s", cursor.rowcount, owner_id)
        return cursor.rowcount

    def start_run(self, owner_id: str) -> RunRecord:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO runs (owner_id, started_at, status) VALUES (?, ?, 'running')",
                (owner_id, now),
            )
            run_id = cursor.lastrowid
        return RunRecord(
            id=run_id or 0,
            owner_id=owner_id,
            started_at=datetime.fromisoformat(now),
            finished_at=None,
            status="running",
            rows_read=0,
            rows_accepted=0,
            duplicates_dropped=0,
        )

    def finish_run(
        self,
        run_id: int,
        rows_read: int,
        rows_accepted: int,
        duplicates_dropped: int,
        status: str = "completed",
    ) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            conn.execute(
                """
                UPDATE runs SET finished_at = ?, status = ?, rows_read = ?, rows_accepted = ?, duplicates_dropped = ?
                WHERE id = ?
                """,
                (now, status, rows_read, rows_accepted, duplicates_dropped, run_id),
            )

    def get_run(self, run_id: int) -> RunRecord | None:
        """Fetch one run record by id."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
        if not row:
            return None
        return RunRecord(
            id=row["id"],
            owner_id=row["owner_id"],
            started_at=datetime.fromisoformat(row["started_at"]),
            finished_at=datetime.fromisoformat(row["finished_at"]) if row["finished_at"] else None,
            status=row["status"],
            rows_read=row["rows_read"],
            rows_accepted=row["rows_accepted"],
            duplicates_dropped=row["duplicates_dropped"],
        )
