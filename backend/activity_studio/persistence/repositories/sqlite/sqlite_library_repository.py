"""SQLite implementation of LibraryRepository."""
from __future__ import annotations
from typing import Iterable, List, Optional, Tuple

from activity_studio.domain.h5p.models import Library
from activity_studio.persistence.db import get_connection
from activity_studio.persistence.interfaces.library_repository import LibraryRepository


def _row_to_library(row) -> Library:
    return Library(
        id=row["id"],
        machine_name=row["machine_name"],
        major_version=row["major_version"],
        minor_version=row["minor_version"],
        patch_version=row["patch_version"],
        title=row["title"],
        embed_types=row["embed_types"],
        runnable=bool(row["runnable"]),
    )


class SqliteLibraryRepository(LibraryRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def find(self, machine_name: str, major_version: int, minor_version: int) -> Optional[Library]:
        conn = get_connection(self._db_path)
        row = conn.execute(
            """
            SELECT * FROM h5p_libraries
            WHERE machine_name = ? AND major_version = ? AND minor_version = ?
            """,
            (machine_name, major_version, minor_version),
        ).fetchone()
        conn.close()
        return _row_to_library(row) if row else None

    def get_by_id(self, library_id: int) -> Optional[Library]:
        conn = get_connection(self._db_path)
        row = conn.execute("SELECT * FROM h5p_libraries WHERE id = ?", (library_id,)).fetchone()
        conn.close()
        return _row_to_library(row) if row else None

    def save_library(self, library: Library) -> Library:
        conn = get_connection(self._db_path)
        conn.execute(
            """
            INSERT INTO h5p_libraries (
                machine_name, title, major_version, minor_version,
                patch_version, embed_types, runnable
            ) VALUES (
                :machine_name, :title, :major_version, :minor_version,
                :patch_version, :embed_types, :runnable
            )
            ON CONFLICT(machine_name, major_version, minor_version) DO UPDATE SET
                title         = excluded.title,
                patch_version = excluded.patch_version,
                embed_types   = excluded.embed_types,
                runnable      = excluded.runnable
            """,
            {
                "machine_name": library.machine_name,
                "title": library.title,
                "major_version": library.major_version,
                "minor_version": library.minor_version,
                "patch_version": library.patch_version,
                "embed_types": library.embed_types,
                "runnable": int(library.runnable),
            },
        )
        conn.commit()
        row = conn.execute(
            """
            SELECT * FROM h5p_libraries
            WHERE machine_name = ? AND major_version = ? AND minor_version = ?
            """,
            (library.machine_name, library.major_version, library.minor_version),
        ).fetchone()
        conn.close()
        return _row_to_library(row)

    def replace_dependencies(self, library_id: int, dependencies: Iterable[Tuple[int, str]]) -> None:
        conn = get_connection(self._db_path)
        with conn:
            conn.execute("DELETE FROM h5p_library_dependencies WHERE library_id = ?", (library_id,))
            conn.executemany(
                """
                INSERT OR REPLACE INTO h5p_library_dependencies (library_id, required_library_id, dependency_type)
                VALUES (?, ?, ?)
                """,
                [(library_id, required_id, dep_type) for required_id, dep_type in dependencies],
            )
        conn.close()

    def get_dependencies(self, library_id: int) -> List[Tuple[Library, str]]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            """
            SELECT l.*, d.dependency_type
            FROM h5p_library_dependencies d
            JOIN h5p_libraries l ON l.id = d.required_library_id
            WHERE d.library_id = ?
            ORDER BY l.machine_name ASC
            """,
            (library_id,),
        ).fetchall()
        conn.close()
        return [(_row_to_library(r), r["dependency_type"]) for r in rows]
