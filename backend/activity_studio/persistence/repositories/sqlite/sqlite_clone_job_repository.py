"""SQLite implementation of CloneJobRepository."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from activity_studio.domain.activity.models import CLONE_RUNNING, CLONE_SCHEDULED, CloneJob
from activity_studio.persistence.db import get_connection
from activity_studio.persistence.interfaces.clone_job_repository import CloneJobRepository


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_job(row) -> CloneJob:
    return CloneJob(
        token=row["token"],
        source_activity_id=row["source_activity_id"],
        target_playlist_id=row["target_playlist_id"],
        requester_credential=row["requester_credential"],
        state=row["state"],
        is_duplicate=bool(row["is_duplicate"]),
        new_activity_id=row["new_activity_id"],
        error_code=row["error_code"],
        error=row["error"],
        requested_at=row["requested_at"],
        updated_at=row["updated_at"],
    )


class SqliteCloneJobRepository(CloneJobRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def create(self, job: CloneJob) -> None:
        conn = get_connection(self._db_path)
        conn.execute(
            """
            INSERT INTO clone_jobs (
                token, source_activity_id, target_playlist_id, requester_credential,
                state, is_duplicate, requested_at, updated_at
            ) VALUES (
                :token, :source_activity_id, :target_playlist_id, :requester_credential,
                :state, :is_duplicate, :requested_at, :updated_at
            )
            """,
            {
                "token": job.token,
                "source_activity_id": job.source_activity_id,
                "target_playlist_id": job.target_playlist_id,
                "requester_credential": job.requester_credential,
                "state": job.state,
                "is_duplicate": int(job.is_duplicate),
                "requested_at": job.requested_at,
                "updated_at": job.updated_at or job.requested_at,
            },
        )
        conn.commit()
        conn.close()

    def get(self, token: str) -> Optional[CloneJob]:
        conn = get_connection(self._db_path)
        row = conn.execute("SELECT * FROM clone_jobs WHERE token = ?", (token,)).fetchone()
        conn.close()
        return _row_to_job(row) if row else None

    def list_by_state(self, states: Iterable[str]) -> List[CloneJob]:
        states = list(states)
        if not states:
            return []
        placeholders = ", ".join("?" for _ in states)
        conn = get_connection(self._db_path)
        rows = conn.execute(
            f"SELECT * FROM clone_jobs WHERE state IN ({placeholders}) ORDER BY requested_at, token",
            states,
        ).fetchall()
        conn.close()
        return [_row_to_job(r) for r in rows]

    def set_state(self, token: str, state: str) -> None:
        conn = get_connection(self._db_path)
        conn.execute(
            "UPDATE clone_jobs SET state = ?, updated_at = ? WHERE token = ?",
            (state, _now_iso(), token),
        )
        conn.commit()
        conn.close()

    def claim(self, token: str) -> bool:
        conn = get_connection(self._db_path)
        # Compare-and-set: only the first delivery sees rowcount == 1
        cur = conn.execute(
            "UPDATE clone_jobs SET state = ?, updated_at = ? WHERE token = ? AND state = ?",
            (CLONE_RUNNING, _now_iso(), token, CLONE_SCHEDULED),
        )
        conn.commit()
        conn.close()
        return cur.rowcount == 1

    def finish(
        self,
        token: str,
        state: str,
        is_duplicate: bool,
        new_activity_id: Optional[int] = None,
        error_code: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        conn = get_connection(self._db_path)
        conn.execute(
            """
            UPDATE clone_jobs SET
                state           = :state,
                is_duplicate    = :is_duplicate,
                new_activity_id = :new_activity_id,
                error_code      = :error_code,
                error           = :error,
                updated_at      = :updated_at
            WHERE token = :token
            """,
            {
                "token": token,
                "state": state,
                "is_duplicate": int(is_duplicate),
                "new_activity_id": new_activity_id,
                "error_code": error_code,
                "error": error,
                "updated_at": _now_iso(),
            },
        )
        conn.commit()
        conn.close()
