"""SQLite implementation of PlaylistRepository."""
from __future__ import annotations
from typing import List, Optional

from activity_studio.domain.activity.models import Playlist, Project
from activity_studio.persistence.db import get_connection
from activity_studio.persistence.interfaces.playlist_repository import PlaylistRepository


class SqlitePlaylistRepository(PlaylistRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def get_playlist(self, playlist_id: int) -> Optional[Playlist]:
        conn = get_connection(self._db_path)
        row = conn.execute("SELECT * FROM playlists WHERE id = ?", (playlist_id,)).fetchone()
        conn.close()
        if not row:
            return None
        return Playlist(id=row["id"], project_id=row["project_id"], title=row["title"], order=row["order"])

    def get_project(self, project_id: int) -> Optional[Project]:
        conn = get_connection(self._db_path)
        row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        conn.close()
        if not row:
            return None
        return Project(id=row["id"], name=row["name"], owner_id=row["owner_id"], indexing=row["indexing"])

    def get_project_user_ids(self, project_id: int) -> List[str]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            """
            SELECT user_id FROM project_users WHERE project_id = :id
            UNION
            SELECT owner_id FROM projects WHERE id = :id AND owner_id IS NOT NULL
            """,
            {"id": project_id},
        ).fetchall()
        conn.close()
        return [r[0] for r in rows]

    def create_project(self, project: Project) -> Project:
        conn = get_connection(self._db_path)
        cur = conn.execute(
            "INSERT INTO projects (name, owner_id, indexing) VALUES (?, ?, ?)",
            (project.name, project.owner_id, project.indexing),
        )
        conn.commit()
        conn.close()
        project.id = cur.lastrowid
        return project

    def add_project_user(self, project_id: int, user_id: str) -> None:
        conn = get_connection(self._db_path)
        conn.execute(
            "INSERT OR IGNORE INTO project_users (project_id, user_id) VALUES (?, ?)",
            (project_id, user_id),
        )
        conn.commit()
        conn.close()

    def create_playlist(self, playlist: Playlist) -> Playlist:
        conn = get_connection(self._db_path)
        cur = conn.execute(
            'INSERT INTO playlists (project_id, title, "order") VALUES (?, ?, ?)',
            (playlist.project_id, playlist.title, playlist.order),
        )
        conn.commit()
        conn.close()
        playlist.id = cur.lastrowid
        return playlist
