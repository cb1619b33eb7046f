"""Abstract repository interface for playlists and their owning projects."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from activity_studio.domain.activity.models import Playlist, Project


class PlaylistRepository(ABC):

    @abstractmethod
    def get_playlist(self, playlist_id: int) -> Optional[Playlist]:
        ...

    @abstractmethod
    def get_project(self, project_id: int) -> Optional[Project]:
        ...

    @abstractmethod
    def get_project_user_ids(self, project_id: int) -> List[str]:
        """Ids of the users attached to a project, owner included."""
        ...

    @abstractmethod
    def create_project(self, project: Project) -> Project:
        ...

    @abstractmethod
    def add_project_user(self, project_id: int, user_id: str) -> None:
        ...

    @abstractmethod
    def create_playlist(self, playlist: Playlist) -> Playlist:
        ...
