"""Activity, playlist and clone job models: pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

ACTIVITY_TYPE_H5P = "h5p"


@dataclass
class Project:
    id: int
    name: str
    owner_id: Optional[str] = None
    indexing: Optional[int] = None


@dataclass
class Playlist:
    id: int
    project_id: int
    title: str
    order: Optional[int] = None


@dataclass
class Activity:
    id: Optional[int]
    playlist_id: int
    title: str
    type: str
    h5p_content_id: Optional[int] = None
    order: Optional[int] = None
    shared: bool = False
    thumb_url: Optional[str] = None
    subject_id: Optional[str] = None
    education_level_id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_h5p(self) -> bool:
        return self.type == ACTIVITY_TYPE_H5P


# Clone job lifecycle: requested → scheduled → running → completed | failed
CLONE_REQUESTED = "requested"
CLONE_SCHEDULED = "scheduled"
CLONE_RUNNING = "running"
CLONE_COMPLETED = "completed"
CLONE_FAILED = "failed"


@dataclass
class CloneJob:
    token: str
    source_activity_id: int
    target_playlist_id: int
    requester_credential: Optional[str]
    state: str = CLONE_REQUESTED
    is_duplicate: bool = False
    new_activity_id: Optional[int] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    requested_at: str = ""
    updated_at: str = ""

    @property
    def process(self) -> str:
        return "duplicate" if self.is_duplicate else "clone"


@dataclass
class Viewer:
    """The authenticated caller, as seen by the core."""
    id: str
    is_admin: bool = False
    name: Optional[str] = None
    email: Optional[str] = None
