"""Business rules for activities: ordering within a playlist and clone eligibility."""
from __future__ import annotations
from typing import Dict, List, Optional, Sequence

from activity_studio.domain.activity.models import Activity, Project
from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result

ACTIVITY_FIELDS = (
    "playlist_id",
    "title",
    "type",
    "shared",
    "order",
    "thumb_url",
    "subject_id",
    "education_level_id",
)


def validate_activity_content(data: dict) -> Result[dict]:
    """Validates that an activity has the minimum required fields."""
    title = (data.get("title") or "").strip()
    if not title:
        return Result.fail("Activity 'title' is required and cannot be empty.", errors.INVALID_ACTIVITY)
    if not (data.get("type") or "").strip():
        return Result.fail("Activity 'type' is required and cannot be empty.", errors.INVALID_ACTIVITY)
    return Result.ok(data)


def next_order(current_max: Optional[int]) -> int:
    """Order for an activity appended to a playlist."""
    return (current_max or 0) + 1


def dense_orders(activities: Sequence[Activity]) -> Dict[int, int]:
    """
    Map activity id → 1..N keeping the existing relative order.
    Activities without an order go last, ties broken by id.
    """
    ranked: List[Activity] = sorted(
        activities,
        key=lambda a: (a.order is None, a.order if a.order is not None else 0, a.id),
    )
    return {a.id: position for position, a in enumerate(ranked, start=1)}


def is_duplicate(source: Activity, target_playlist_id: int) -> bool:
    return source.playlist_id == target_playlist_id


def validate_clone(source: Activity, target_playlist_id: int) -> Result[bool]:
    """Cross-playlist clones require a shared source. Returns Result.ok(is_duplicate)."""
    duplicate = is_duplicate(source, target_playlist_id)
    if not duplicate and not source.shared:
        return Result.fail("Not a Public Activity.", errors.NOT_PUBLIC)
    return Result.ok(duplicate)


def is_publicly_viewable(activity: Activity, project: Optional[Project], approved_indexing: int) -> bool:
    """Shared access path: shared activity, or its project's indexing is approved."""
    if activity.shared:
        return True
    return project is not None and project.indexing == approved_indexing
