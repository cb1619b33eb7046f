"""SQLite implementation of ContentRepository."""
from __future__ import annotations
import json
from typing import Iterable, List, Optional, Tuple

from activity_studio.domain.h5p.models import ContentRecord, LibraryReference
from activity_studio.persistence.db import get_connection
from activity_studio.persistence.interfaces.content_repository import ContentRepository


def _row_to_content(row) -> ContentRecord:
    return ContentRecord(
        id=row["id"],
        library=LibraryReference(
            machine_name=row["machine_name"],
            major_version=row["major_version"],
            minor_version=row["minor_version"],
            library_id=row["library_id"],
        ),
        params=json.loads(row["params"]),
        metadata=json.loads(row["metadata"] or "{}"),
        display_options=row["display_options"],
        disable_flag=row["disable_flag"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _record_values(record: ContentRecord) -> dict:
    return {
        "library_id": record.library.library_id,
        "params": json.dumps(record.params),
        "metadata": json.dumps(record.metadata),
        "title": record.title,
        "display_options": record.display_options,
        "disable_flag": record.disable_flag,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


class SqliteContentRepository(ContentRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def get(self, content_id: int) -> Optional[ContentRecord]:
        conn = get_connection(self._db_path)
        row = conn.execute(
            """
            SELECT c.*, l.machine_name, l.major_version, l.minor_version
            FROM h5p_contents c
            JOIN h5p_libraries l ON l.id = c.library_id
            WHERE c.id = ?
            """,
            (content_id,),
        ).fetchone()
        conn.close()
        return _row_to_content(row) if row else None

    def create(self, record: ContentRecord) -> int:
        if not record.library.is_resolved:
            raise ValueError("Cannot store a content record with an unresolved library.")
        conn = get_connection(self._db_path)
        cur = conn.execute(
            """
            INSERT INTO h5p_contents (
                library_id, params, metadata, title,
                display_options, disable_flag, created_at, updated_at
            ) VALUES (
                :library_id, :params, :metadata, :title,
                :display_options, :disable_flag, :created_at, :updated_at
            )
            """,
            _record_values(record),
        )
        conn.commit()
        conn.close()
        return cur.lastrowid

    def put(self, content_id: int, record: ContentRecord) -> bool:
        if not record.library.is_resolved:
            raise ValueError("Cannot store a content record with an unresolved library.")
        values = _record_values(record)
        values["id"] = content_id
        conn = get_connection(self._db_path)
        # One statement replaces every column, so readers see the old row or the new one.
        cur = conn.execute(
            """
            UPDATE h5p_contents SET
                library_id      = :library_id,
                params          = :params,
                metadata        = :metadata,
                title           = :title,
                display_options = :display_options,
                disable_flag    = :disable_flag,
                created_at      = :created_at,
                updated_at      = :updated_at
            WHERE id = :id
            """,
            values,
        )
        conn.commit()
        conn.close()
        return cur.rowcount > 0

    def delete(self, content_id: int) -> bool:
        conn = get_connection(self._db_path)
        cur = conn.execute("DELETE FROM h5p_contents WHERE id = ?", (content_id,))
        conn.commit()
        conn.close()
        return cur.rowcount > 0

    def replace_dependencies(self, content_id: int, dependencies: Iterable[Tuple[int, str]]) -> None:
        conn = get_connection(self._db_path)
        with conn:
            conn.execute("DELETE FROM h5p_contents_libraries WHERE content_id = ?", (content_id,))
            conn.executemany(
                """
                INSERT OR REPLACE INTO h5p_contents_libraries (content_id, library_id, dependency_type)
                VALUES (?, ?, ?)
                """,
                [(content_id, library_id, dep_type) for library_id, dep_type in dependencies],
            )
        conn.close()

    def get_dependencies(self, content_id: int) -> List[Tuple[int, str]]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            """
            SELECT library_id, dependency_type FROM h5p_contents_libraries
            WHERE content_id = ?
            ORDER BY library_id ASC
            """,
            (content_id,),
        ).fetchall()
        conn.close()
        return [(r["library_id"], r["dependency_type"]) for r in rows]
