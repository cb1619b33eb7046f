"""Embed builder: renderable markup and player settings for stored content."""
from __future__ import annotations
import html
import json
import logging
from typing import Optional

from activity_studio.core import config
from activity_studio.domain.activity.models import Activity, Viewer
from activity_studio.domain.activity.rules import is_publicly_viewable
from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.domain.h5p.display_options import display_options_for_view
from activity_studio.domain.h5p.models import ContentRecord
from activity_studio.domain.h5p.rules import library_to_string
from activity_studio.application.library_registry import LibraryRegistry
from activity_studio.integrations.notifier import EventQueue
from activity_studio.persistence.interfaces.activity_repository import ActivityRepository
from activity_studio.persistence.interfaces.content_repository import ContentRepository
from activity_studio.persistence.interfaces.playlist_repository import PlaylistRepository

logger = logging.getLogger(__name__)

ACCESS_PRIVATE = "private"
ACCESS_SHARED = "shared"
ACCESS_OPEN = "open"


class EmbedBuilder:
    """Read-only: never writes to the content store."""

    def __init__(
        self,
        content_repo: ContentRepository,
        registry: LibraryRegistry,
        activity_repo: ActivityRepository,
        playlist_repo: PlaylistRepository,
        events: EventQueue,
    ):
        self._content_repo = content_repo
        self._registry = registry
        self._activity_repo = activity_repo
        self._playlist_repo = playlist_repo
        self._events = events

    # ------------------------------------------------------------------
    # ACCESS PATHS
    # ------------------------------------------------------------------
    def build_for_activity(
        self,
        activity_id: int,
        viewer: Optional[Viewer],
        access: str = ACCESS_PRIVATE,
    ) -> Result[dict]:
        activity = self._activity_repo.get_by_id(activity_id)
        if not activity:
            return Result.fail(f"Activity '{activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)

        guard = self.check_access(activity, viewer, access)
        if not guard.is_success:
            return Result.from_failure(guard)

        if not activity.is_h5p or activity.h5p_content_id is None:
            return Result.fail(f"Activity '{activity_id}' has no H5P content.", errors.CONTENT_NOT_FOUND)

        # The shared path never carries viewer identity
        return self.build_embed(activity.h5p_content_id, None if access == ACCESS_SHARED else viewer)

    def check_access(self, activity: Activity, viewer: Optional[Viewer], access: str) -> Result[Activity]:
        if access == ACCESS_OPEN:
            return Result.ok(activity)
        playlist = self._playlist_repo.get_playlist(activity.playlist_id)
        project = self._playlist_repo.get_project(playlist.project_id) if playlist else None

        if access == ACCESS_SHARED:
            if is_publicly_viewable(activity, project, config.INDEXING_APPROVED):
                return Result.ok(activity)
            return Result.fail("Activity not found.", errors.CONTENT_NOT_ACCESSIBLE)

        if viewer and (viewer.is_admin or (project and viewer.id in self._playlist_repo.get_project_user_ids(project.id))):
            return Result.ok(activity)
        return Result.fail("Activity doesn't belong to this user.", errors.CONTENT_NOT_ACCESSIBLE)

    # ------------------------------------------------------------------
    # EMBED
    # ------------------------------------------------------------------
    def build_embed(self, content_id: int, viewer: Optional[Viewer] = None) -> Result[dict]:
        record = self._content_repo.get(content_id)
        if not record:
            return Result.fail(f"Content '{content_id}' not found.", errors.CONTENT_NOT_FOUND)

        # Preview override applies to this render only
        disable_flag = config.H5P_PREVIEW_FLAG
        library = self._registry.get_library(record.library)
        embed_type = "div" if library and "div" in (library.embed_types or "").split(",") else "iframe"

        settings = self._settings(record, disable_flag, viewer)
        self._publish_viewed(record, viewer)
        return Result.ok({
            "embed_code": self._markup(record, embed_type),
            "embed_type": embed_type,
            "settings": settings,
        })

    def _markup(self, record: ContentRecord, embed_type: str) -> str:
        if embed_type == "div":
            return f'<div class="h5p-content" data-content-id="{record.id}"></div>'
        return (
            '<div class="h5p-iframe-wrapper">'
            f'<iframe id="h5p-iframe-{record.id}" class="h5p-iframe" data-content-id="{record.id}" '
            f'style="height:1px" src="about:blank" frameBorder="0" scrolling="no" '
            f'title="{html.escape(record.title)}"></iframe>'
            "</div>"
        )

    def _settings(self, record: ContentRecord, disable_flag: str, viewer: Optional[Viewer]) -> dict:
        base = f"{config.APP_URL}{config.H5P_BASE_PATH}"
        embed_url = f"{base}/embed/{record.id}"
        settings = {
            "baseUrl": config.APP_URL,
            "url": config.H5P_BASE_PATH,
            "siteUrl": config.APP_URL,
            "postUserStatistics": viewer is not None,
            "saveFreq": False,
            "contents": {
                f"cid-{record.id}": {
                    "library": library_to_string(record.library),
                    "jsonContent": json.dumps(record.params),
                    "fullScreen": False,
                    "exportUrl": f"{base}/export/{record.id}",
                    "embedCode": (
                        f'<iframe src="{embed_url}" width=":w" height=":h" frameborder="0" '
                        f'allowfullscreen="allowfullscreen" title="{html.escape(record.title)}"></iframe>'
                    ),
                    "resizeCode": f'<script src="{base}/resizer.js" charset="UTF-8"></script>',
                    "url": embed_url,
                    "title": record.title,
                    "displayOptions": display_options_for_view(record.display_options, disable_flag),
                    "metadata": record.metadata,
                },
            },
        }
        if viewer is not None:
            settings["user"] = {"id": viewer.id, "name": viewer.name, "mail": viewer.email}
        return settings

    def _publish_viewed(self, record: ContentRecord, viewer: Optional[Viewer]) -> None:
        self._events.publish(
            viewer.id if viewer else None,
            {
                "kind": "content-viewed",
                "contentId": record.id,
                "title": record.title,
                "libraryName": record.library.machine_name,
                "libraryVersion": record.library.version,
            },
        )
