"""Activity CRUD, H5P content, embed and clone endpoints."""
from __future__ import annotations
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from activity_studio.api.auth import (
    get_bearer_token,
    get_current_user,
    optional_current_user,
    require_admin,
)
from activity_studio.application.activity_app_service import ActivityAppService
from activity_studio.application.clone_service import CloneOrchestrator
from activity_studio.application.embed_service import (
    ACCESS_OPEN,
    ACCESS_PRIVATE,
    ACCESS_SHARED,
    EmbedBuilder,
)
from activity_studio.container import (
    get_activity_app_service,
    get_clone_orchestrator,
    get_embed_builder,
)
from activity_studio.domain.activity.models import Activity, CloneJob, Viewer
from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.domain.h5p.models import ContentRecord
from activity_studio.domain.h5p.rules import library_to_string

router = APIRouter(tags=["activities"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class H5pDataBody(BaseModel):
    library: Optional[str] = None
    parameters: Any = None
    frame: Any = None
    download: Any = None
    embed: Any = None
    copyright: Any = None


class ActivityBody(BaseModel):
    title: str
    type: str
    playlist_id: int
    shared: bool = False
    thumb_url: Optional[str] = None
    subject_id: Optional[str] = None
    education_level_id: Optional[str] = None
    data: Optional[H5pDataBody] = None


class ActivityUpdateBody(BaseModel):
    title: Optional[str] = None
    type: Optional[str] = None
    playlist_id: Optional[int] = None
    shared: Optional[bool] = None
    order: Optional[int] = None
    thumb_url: Optional[str] = None
    subject_id: Optional[str] = None
    education_level_id: Optional[str] = None
    data: Optional[H5pDataBody] = None


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def _serialize_activity(a: Activity) -> dict:
    return {
        "id": a.id,
        "playlist_id": a.playlist_id,
        "title": a.title,
        "type": a.type,
        "h5p_content_id": a.h5p_content_id,
        "order": a.order,
        "shared": a.shared,
        "thumb_url": a.thumb_url,
        "subject_id": a.subject_id,
        "education_level_id": a.education_level_id,
        "created_at": a.created_at,
        "updated_at": a.updated_at,
    }


def _serialize_content(c: ContentRecord) -> dict:
    return {
        "id": c.id,
        "title": c.title,
        "library": library_to_string(c.library),
        "library_id": c.library.library_id,
        "params": c.params,
        "metadata": c.metadata,
        "display_options": c.display_options,
        "disable": c.disable_flag,
        "created_at": c.created_at,
        "updated_at": c.updated_at,
    }


def _serialize_job(j: CloneJob) -> dict:
    return {
        "token": j.token,
        "process": j.process,
        "state": j.state,
        "source_activity_id": j.source_activity_id,
        "target_playlist_id": j.target_playlist_id,
        "new_activity_id": j.new_activity_id,
        "error_code": j.error_code,
        "error": j.error,
        "requested_at": j.requested_at,
        "updated_at": j.updated_at,
    }


def _unwrap(result: Result) -> Any:
    """Map a failed Result to an HTTP error."""
    if result.is_success:
        return result.value
    if result.code in errors.NOT_FOUND_CODES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    if result.code == errors.MIGRATION_FAILED:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)


def _h5p_data(body) -> Optional[dict]:
    return body.data.model_dump() if body.data else None


# ------------------------------------------------------------------
# Health check
# ------------------------------------------------------------------
@router.get("/health")
def health():
    return {"status": "ok"}


# ------------------------------------------------------------------
# Activity endpoints
# ------------------------------------------------------------------
@router.post("/activities/populate-order-number")
def populate_order_number(
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(require_admin),
):
    return {"updated": svc.populate_order_number()}


@router.get("/activities/")
def list_activities(
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    return {"activities": [_serialize_activity(a) for a in svc.list_activities()]}


@router.post("/activities/", status_code=status.HTTP_201_CREATED)
def create_activity(
    body: ActivityBody,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    data = body.model_dump(exclude={"data"})
    data["data"] = _h5p_data(body)
    activity = _unwrap(svc.create_activity(data))
    return {"activity": _serialize_activity(activity)}


@router.get("/activities/{activity_id}")
def get_activity(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    activity = svc.get_activity(activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail=f"Activity '{activity_id}' not found")
    return {"activity": _serialize_activity(activity)}


@router.put("/activities/{activity_id}")
def update_activity(
    activity_id: int,
    body: ActivityUpdateBody,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    data = body.model_dump(exclude={"data"})
    data["data"] = _h5p_data(body)
    activity = _unwrap(svc.update_activity(activity_id, data))
    return {"activity": _serialize_activity(activity)}


@router.delete("/activities/{activity_id}")
def delete_activity(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    _unwrap(svc.delete_activity(activity_id))
    return {"message": "Activity has been deleted successfully."}


@router.get("/activities/{activity_id}/detail")
def get_activity_detail(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    detail = _unwrap(svc.get_detail(activity_id))
    return {
        "activity": {
            **_serialize_activity(detail["activity"]),
            "h5p_parameters": detail["h5p_parameters"],
            "user_id": detail["user_id"],
            "project_id": detail["project_id"],
        }
    }


@router.post("/activities/{activity_id}/share")
def share_activity(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    return {"activity": _serialize_activity(_unwrap(svc.set_shared(activity_id, True)))}


@router.post("/activities/{activity_id}/remove-share")
def remove_share_activity(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    return {"activity": _serialize_activity(_unwrap(svc.set_shared(activity_id, False)))}


# ------------------------------------------------------------------
# Clone / duplicate
# ------------------------------------------------------------------
@router.post("/playlists/{playlist_id}/activities/{activity_id}/clone")
def clone_activity(
    playlist_id: int,
    activity_id: int,
    orchestrator: CloneOrchestrator = Depends(get_clone_orchestrator),
    current_user: Viewer = Depends(get_current_user),
    token: Optional[str] = Depends(get_bearer_token),
):
    ack = _unwrap(orchestrator.request_clone(activity_id, playlist_id, token))
    return ack


@router.get("/clone-jobs/{token}")
def get_clone_job(
    token: str,
    orchestrator: CloneOrchestrator = Depends(get_clone_orchestrator),
    current_user: Viewer = Depends(get_current_user),
):
    job = orchestrator.get_job(token)
    if not job:
        raise HTTPException(status_code=404, detail=f"Clone job '{token}' not found")
    return _serialize_job(job)


# ------------------------------------------------------------------
# H5P embed + resource settings
# ------------------------------------------------------------------
@router.get("/activities/{activity_id}/h5p")
def get_activity_h5p(
    activity_id: int,
    embeds: EmbedBuilder = Depends(get_embed_builder),
    current_user: Viewer = Depends(get_current_user),
):
    embed = _unwrap(embeds.build_for_activity(activity_id, current_user, ACCESS_PRIVATE))
    return {"activity_id": activity_id, "h5p": embed}


@router.get("/activities/{activity_id}/h5p/shared")
def get_activity_h5p_shared(
    activity_id: int,
    embeds: EmbedBuilder = Depends(get_embed_builder),
):
    embed = _unwrap(embeds.build_for_activity(activity_id, None, ACCESS_SHARED))
    return {"activity_id": activity_id, "h5p": embed}


def _resource_settings(svc: ActivityAppService, activity_id: int, viewer: Optional[Viewer], access: str) -> dict:
    settings = _unwrap(svc.get_resource_settings(activity_id, viewer, access))
    return {
        "h5p": _serialize_content(settings["h5p"]) if settings["h5p"] else None,
        "activity": _serialize_activity(settings["activity"]),
    }


@router.get("/activities/{activity_id}/h5p-resource-settings")
def get_h5p_resource_settings(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Viewer = Depends(get_current_user),
):
    return _resource_settings(svc, activity_id, current_user, ACCESS_PRIVATE)


@router.get("/activities/{activity_id}/h5p-resource-settings-open")
def get_h5p_resource_settings_open(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
    current_user: Optional[Viewer] = Depends(optional_current_user),
):
    return _resource_settings(svc, activity_id, current_user, ACCESS_OPEN)


@router.get("/activities/{activity_id}/h5p-resource-settings-shared")
def get_h5p_resource_settings_shared(
    activity_id: int,
    svc: ActivityAppService = Depends(get_activity_app_service),
):
    settings = _unwrap(svc.get_shared_resource_settings(activity_id))
    return {"h5p": settings["h5p"], "activity": _serialize_activity(settings["activity"])}
