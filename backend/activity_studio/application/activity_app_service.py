"""Application service: activity CRUD wired to the content versioning engine."""
from __future__ import annotations
import json
import logging
from typing import List, Optional

from activity_studio.domain.activity.models import Activity, Viewer
from activity_studio.domain.activity.rules import (
    ACTIVITY_FIELDS,
    dense_orders,
    validate_activity_content,
)
from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.domain.h5p.models import DISPLAY_OPTION_NAMES
from activity_studio.application.content_versioning_service import ContentVersioningEngine
from activity_studio.application.embed_service import ACCESS_SHARED, EmbedBuilder
from activity_studio.persistence.interfaces.activity_repository import ActivityRepository
from activity_studio.persistence.interfaces.playlist_repository import PlaylistRepository

logger = logging.getLogger(__name__)


def _display_flags(h5p_data: dict) -> dict:
    return {name: h5p_data.get(name) for name in DISPLAY_OPTION_NAMES}


class ActivityAppService:
    def __init__(
        self,
        repo: ActivityRepository,
        playlists: PlaylistRepository,
        engine: ContentVersioningEngine,
        embeds: EmbedBuilder,
    ):
        self._repo = repo
        self._playlists = playlists
        self._engine = engine
        self._embeds = embeds

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def list_activities(self) -> List[Activity]:
        return self._repo.list_all()

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        return self._repo.get_by_id(activity_id)

    def get_detail(self, activity_id: int) -> Result[dict]:
        activity = self._repo.get_by_id(activity_id)
        if not activity:
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)

        detail = {"activity": activity, "h5p_parameters": None, "user_id": None, "project_id": None}
        playlist = self._playlists.get_playlist(activity.playlist_id)
        project = self._playlists.get_project(playlist.project_id) if playlist else None
        if project:
            detail["user_id"] = project.owner_id
            detail["project_id"] = project.id

        if activity.is_h5p and activity.h5p_content_id is not None:
            content = self._engine.get_content(activity.h5p_content_id)
            if not content.is_success:
                return Result.from_failure(content)
            detail["h5p_parameters"] = json.dumps(
                {"params": content.value.params, "metadata": content.value.metadata}
            )
        return Result.ok(detail)

    def get_resource_settings(self, activity_id: int, viewer: Optional[Viewer], access: str) -> Result[dict]:
        """The raw content record behind an activity, guarded like the embed paths."""
        activity = self._repo.get_by_id(activity_id)
        if not activity:
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)
        guard = self._embeds.check_access(activity, viewer, access)
        if not guard.is_success:
            return Result.from_failure(guard)

        settings = {"activity": activity, "h5p": None}
        if activity.is_h5p and activity.h5p_content_id is not None:
            content = self._engine.get_content(activity.h5p_content_id)
            if not content.is_success:
                return Result.from_failure(content)
            settings["h5p"] = content.value
        return Result.ok(settings)

    def get_shared_resource_settings(self, activity_id: int) -> Result[dict]:
        """Player-ready embed for a publicly viewable activity; never carries viewer identity."""
        activity = self._repo.get_by_id(activity_id)
        if not activity:
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)
        guard = self._embeds.check_access(activity, None, ACCESS_SHARED)
        if not guard.is_success:
            return Result.from_failure(guard)

        settings = {"activity": activity, "h5p": None}
        if activity.is_h5p and activity.h5p_content_id is not None:
            embed = self._embeds.build_embed(activity.h5p_content_id, None)
            if not embed.is_success:
                return Result.from_failure(embed)
            settings["h5p"] = {
                "settings": embed.value["settings"],
                "user": None,
                "embed_code": embed.value["embed_code"],
            }
        return Result.ok(settings)

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------
    def create_activity(self, data: dict) -> Result[Activity]:
        validation = validate_activity_content(data)
        if not validation.is_success:
            return Result.from_failure(validation)

        playlist_id = data.get("playlist_id")
        if playlist_id is None or not self._playlists.get_playlist(playlist_id):
            return Result.fail(f"Playlist '{playlist_id}' not found.", errors.PLAYLIST_NOT_FOUND)

        activity = Activity(
            id=None,
            playlist_id=playlist_id,
            title=data["title"].strip(),
            type=data["type"].strip(),
            shared=bool(data.get("shared", False)),
            thumb_url=data.get("thumb_url"),
            subject_id=data.get("subject_id"),
            education_level_id=data.get("education_level_id"),
        )

        if activity.is_h5p:
            h5p_data = data.get("data") or {}
            if not h5p_data.get("library"):
                return Result.fail("H5P activities require a content library.", errors.INVALID_ACTIVITY)
            parameters = h5p_data.get("parameters") or {"params": {}, "metadata": {"title": activity.title}}
            content = self._engine.create_content(h5p_data["library"], parameters, _display_flags(h5p_data))
            if not content.is_success:
                return Result.from_failure(content)
            activity.h5p_content_id = content.value.id

        created = self._repo.create(activity)
        logger.info("Activity %s created in playlist %s at order %s", created.id, playlist_id, created.order)
        return Result.ok(created)

    # ------------------------------------------------------------------
    # UPDATE
    # ------------------------------------------------------------------
    def update_activity(self, activity_id: int, data: dict) -> Result[Activity]:
        activity = self._repo.get_by_id(activity_id)
        if not activity:
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)

        fields = {k: v for k, v in data.items() if k in ACTIVITY_FIELDS and v is not None}
        if "title" in fields and not str(fields["title"]).strip():
            return Result.fail("Activity 'title' is required and cannot be empty.", errors.INVALID_ACTIVITY)
        if "playlist_id" in fields and not self._playlists.get_playlist(fields["playlist_id"]):
            return Result.fail(f"Playlist '{fields['playlist_id']}' not found.", errors.PLAYLIST_NOT_FOUND)

        # Content first, so a rejected content update leaves the activity untouched too
        h5p_data = data.get("data")
        if h5p_data and activity.is_h5p and activity.h5p_content_id is not None:
            updated = self._engine.apply_update(
                activity.h5p_content_id,
                h5p_data.get("library"),
                h5p_data.get("parameters"),
                _display_flags(h5p_data),
            )
            if not updated.is_success:
                return Result.from_failure(updated)

        if fields and not self._repo.update(activity_id, fields):
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)
        return Result.ok(self._repo.get_by_id(activity_id))

    def set_shared(self, activity_id: int, shared: bool) -> Result[Activity]:
        if not self._repo.update(activity_id, {"shared": shared}):
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)
        return Result.ok(self._repo.get_by_id(activity_id))

    # ------------------------------------------------------------------
    # DELETE
    # ------------------------------------------------------------------
    def delete_activity(self, activity_id: int) -> Result[bool]:
        activity = self._repo.get_by_id(activity_id)
        if not activity or not self._repo.delete(activity_id):
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)
        if activity.h5p_content_id is not None:
            self._engine.delete_content(activity.h5p_content_id)
        return Result.ok(True)

    # ------------------------------------------------------------------
    # ORDER REPAIR
    # ------------------------------------------------------------------
    def populate_order_number(self) -> int:
        """Reassign every playlist's orders to 1..N. Returns how many rows changed."""
        changed = {}
        for playlist_id in self._repo.list_playlist_ids():
            activities = self._repo.list_by_playlist(playlist_id)
            current = {a.id: a.order for a in activities}
            for activity_id, order in dense_orders(activities).items():
                if current[activity_id] != order:
                    changed[activity_id] = order
        if changed:
            self._repo.set_orders(changed)
        logger.info("Populated order numbers, %d activities changed", len(changed))
        return len(changed)
