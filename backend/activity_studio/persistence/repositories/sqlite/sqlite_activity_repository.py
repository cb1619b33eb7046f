"""SQLite implementation of ActivityRepository."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Dict, List, Optional

from activity_studio.domain.activity.models import Activity
from activity_studio.domain.activity.rules import next_order
from activity_studio.persistence.db import get_connection
from activity_studio.persistence.interfaces.activity_repository import ActivityRepository

# Column name → SQL identifier ("order" is a keyword)
_UPDATABLE_COLUMNS = {
    "playlist_id": "playlist_id",
    "title": "title",
    "type": "type",
    "h5p_content_id": "h5p_content_id",
    "order": '"order"',
    "shared": "shared",
    "thumb_url": "thumb_url",
    "subject_id": "subject_id",
    "education_level_id": "education_level_id",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_activity(row) -> Activity:
    return Activity(
        id=row["id"],
        playlist_id=row["playlist_id"],
        title=row["title"],
        type=row["type"],
        h5p_content_id=row["h5p_content_id"],
        order=row["order"],
        shared=bool(row["shared"]),
        thumb_url=row["thumb_url"],
        subject_id=row["subject_id"],
        education_level_id=row["education_level_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqliteActivityRepository(ActivityRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def list_all(self) -> List[Activity]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            'SELECT * FROM activities ORDER BY playlist_id ASC, "order" ASC, id ASC'
        ).fetchall()
        conn.close()
        return [_row_to_activity(r) for r in rows]

    def get_by_id(self, activity_id: int) -> Optional[Activity]:
        conn = get_connection(self._db_path)
        row = conn.execute("SELECT * FROM activities WHERE id = ?", (activity_id,)).fetchone()
        conn.close()
        return _row_to_activity(row) if row else None

    def list_by_playlist(self, playlist_id: int) -> List[Activity]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            'SELECT * FROM activities WHERE playlist_id = ? ORDER BY "order" ASC, id ASC',
            (playlist_id,),
        ).fetchall()
        conn.close()
        return [_row_to_activity(r) for r in rows]

    def list_playlist_ids(self) -> List[int]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            "SELECT DISTINCT playlist_id FROM activities ORDER BY playlist_id ASC"
        ).fetchall()
        conn.close()
        return [r[0] for r in rows]

    def create(self, activity: Activity) -> Activity:
        now = _now_iso()
        activity.created_at = activity.created_at or now
        activity.updated_at = now
        conn = get_connection(self._db_path)
        try:
            # Write lock up front: concurrent appends to one playlist queue here
            conn.execute("BEGIN IMMEDIATE")
            if activity.order is None:
                row = conn.execute(
                    'SELECT MAX("order") FROM activities WHERE playlist_id = ?', (activity.playlist_id,)
                ).fetchone()
                activity.order = next_order(row[0])
            cur = conn.execute(
                """
                INSERT INTO activities (
                    playlist_id, title, type, h5p_content_id, "order", shared,
                    thumb_url, subject_id, education_level_id, created_at, updated_at
                ) VALUES (
                    :playlist_id, :title, :type, :h5p_content_id, :order, :shared,
                    :thumb_url, :subject_id, :education_level_id, :created_at, :updated_at
                )
                """,
                {
                    "playlist_id": activity.playlist_id,
                    "title": activity.title,
                    "type": activity.type,
                    "h5p_content_id": activity.h5p_content_id,
                    "order": activity.order,
                    "shared": int(activity.shared),
                    "thumb_url": activity.thumb_url,
                    "subject_id": activity.subject_id,
                    "education_level_id": activity.education_level_id,
                    "created_at": activity.created_at,
                    "updated_at": activity.updated_at,
                },
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        activity.id = cur.lastrowid
        return activity

    def update(self, activity_id: int, fields: dict) -> bool:
        values = {k: v for k, v in fields.items() if k in _UPDATABLE_COLUMNS}
        if "shared" in values:
            values["shared"] = int(bool(values["shared"]))
        values["updated_at"] = _now_iso()
        assignments = ", ".join(
            f"{_UPDATABLE_COLUMNS.get(k, k)} = :{k}" for k in values
        )
        values["id"] = activity_id
        conn = get_connection(self._db_path)
        cur = conn.execute(f"UPDATE activities SET {assignments} WHERE id = :id", values)
        conn.commit()
        conn.close()
        return cur.rowcount > 0

    def set_orders(self, orders: Dict[int, int]) -> None:
        conn = get_connection(self._db_path)
        with conn:
            conn.executemany(
                'UPDATE activities SET "order" = ? WHERE id = ?',
                [(order, activity_id) for activity_id, order in orders.items()],
            )
        conn.close()

    def delete(self, activity_id: int) -> bool:
        conn = get_connection(self._db_path)
        cur = conn.execute("DELETE FROM activities WHERE id = ?", (activity_id,))
        conn.commit()
        conn.close()
        return cur.rowcount > 0
