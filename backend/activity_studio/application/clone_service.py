"""
Deferred clone/duplicate of an activity and its H5P content.

A request only records a job and schedules it. The job re-reads the source
when it runs, and claims its token before doing anything, so a redelivered
task finds the job already claimed and copies nothing.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from activity_studio.core import config
from activity_studio.core.security import viewer_from_token
from activity_studio.domain.activity.models import (
    CLONE_COMPLETED,
    CLONE_FAILED,
    CLONE_REQUESTED,
    CLONE_RUNNING,
    CLONE_SCHEDULED,
    Activity,
    CloneJob,
    Viewer,
)
from activity_studio.domain.activity.rules import is_duplicate, validate_clone
from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.application.content_versioning_service import ContentVersioningEngine
from activity_studio.integrations.notifier import EventQueue
from activity_studio.integrations.scheduler import Scheduler
from activity_studio.persistence.interfaces.activity_repository import ActivityRepository
from activity_studio.persistence.interfaces.clone_job_repository import CloneJobRepository
from activity_studio.persistence.interfaces.playlist_repository import PlaylistRepository

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _past_tense(process: str) -> str:
    return f"{process}d"


class CloneOrchestrator:
    def __init__(
        self,
        jobs: CloneJobRepository,
        activities: ActivityRepository,
        playlists: PlaylistRepository,
        engine: ContentVersioningEngine,
        scheduler: Scheduler,
        events: EventQueue,
        identify: Callable[[Optional[str]], Optional[Viewer]] = viewer_from_token,
        delay_seconds: Optional[float] = None,
    ):
        self._jobs = jobs
        self._activities = activities
        self._playlists = playlists
        self._engine = engine
        self._scheduler = scheduler
        self._events = events
        self._identify = identify
        self._delay_seconds = delay_seconds

    # ------------------------------------------------------------------
    # REQUEST
    # ------------------------------------------------------------------
    def request_clone(
        self,
        source_activity_id: int,
        target_playlist_id: int,
        requester_credential: Optional[str],
    ) -> Result[dict]:
        """Acknowledge immediately; the copy runs later on the scheduler."""
        source = self._activities.get_by_id(source_activity_id)
        if not source:
            return Result.fail(f"Activity '{source_activity_id}' not found.", errors.ACTIVITY_NOT_FOUND)
        if not self._playlists.get_playlist(target_playlist_id):
            return Result.fail(f"Playlist '{target_playlist_id}' not found.", errors.PLAYLIST_NOT_FOUND)

        requested_at = _now_iso()
        job = CloneJob(
            token=f"{source_activity_id}:{requested_at}:{uuid.uuid4().hex[:8]}",
            source_activity_id=source_activity_id,
            target_playlist_id=target_playlist_id,
            requester_credential=requester_credential,
            state=CLONE_REQUESTED,
            is_duplicate=is_duplicate(source, target_playlist_id),
            requested_at=requested_at,
        )
        self._jobs.create(job)
        self._jobs.set_state(job.token, CLONE_SCHEDULED)

        token = job.token
        self._schedule(token)
        logger.info("Scheduled %s of activity %s into playlist %s (%s)",
                    job.process, source_activity_id, target_playlist_id, token)

        return Result.ok({
            "message": (
                f"Your request to {job.process} activity [{source.title}] has been received and is "
                "being processed. You will receive an email notice as soon as it is available."
            ),
            "token": token,
        })

    def get_job(self, token: str) -> Optional[CloneJob]:
        return self._jobs.get(token)

    def _schedule(self, token: str) -> None:
        delay = self._delay_seconds if self._delay_seconds is not None else config.CLONE_DELAY_SECONDS
        self._scheduler.after(delay, lambda: self.run(token))

    # ------------------------------------------------------------------
    # RECOVERY
    # ------------------------------------------------------------------
    def resume_pending(self) -> int:
        """
        Re-schedule jobs left behind by a previous process. Jobs that were
        mid-run are only reported, since their copy may already exist.
        Returns how many jobs were scheduled again.
        """
        for job in self._jobs.list_by_state([CLONE_REQUESTED]):
            self._jobs.set_state(job.token, CLONE_SCHEDULED)

        pending = self._jobs.list_by_state([CLONE_SCHEDULED])
        for job in pending:
            self._schedule(job.token)
        for job in self._jobs.list_by_state([CLONE_RUNNING]):
            logger.warning("Clone job %s was interrupted while running, leaving it for review", job.token)

        if pending:
            logger.info("Resumed %d pending clone jobs", len(pending))
        return len(pending)

    # ------------------------------------------------------------------
    # RUN
    # ------------------------------------------------------------------
    def run(self, token: str) -> Optional[CloneJob]:
        """Execute a scheduled job once. Later deliveries of the same token do nothing."""
        if not self._jobs.claim(token):
            logger.info("Clone job %s already claimed or unknown, skipping", token)
            return self._jobs.get(token)

        job = self._jobs.get(token)
        try:
            outcome = self._execute(job)
        except Exception as e:
            logger.exception("Clone job %s crashed", token)
            outcome = Result.fail(f"Failed to {job.process} activity: {e}")

        if outcome.is_success:
            new_activity = outcome.value
            self._jobs.finish(token, CLONE_COMPLETED, job.is_duplicate, new_activity_id=new_activity.id)
        else:
            self._jobs.finish(token, CLONE_FAILED, job.is_duplicate, error_code=outcome.code, error=outcome.error)

        finished = self._jobs.get(token)
        self._notify(finished, outcome)
        return finished

    def _execute(self, job: CloneJob) -> Result[Activity]:
        source = self._activities.get_by_id(job.source_activity_id)
        if not source:
            return Result.fail("The activity no longer exists.", errors.SOURCE_GONE)
        if not self._playlists.get_playlist(job.target_playlist_id):
            return Result.fail("The target playlist no longer exists.", errors.PLAYLIST_NOT_FOUND)

        # Sharing may have changed since the request
        guard = validate_clone(source, job.target_playlist_id)
        job.is_duplicate = is_duplicate(source, job.target_playlist_id)
        if not guard.is_success:
            return Result.from_failure(guard)

        new_content_id = None
        if source.h5p_content_id is not None:
            content = self._engine.copy_content(source.h5p_content_id)
            if not content.is_success:
                return Result.from_failure(content)
            new_content_id = content.value.id

        clone = Activity(
            id=None,
            playlist_id=job.target_playlist_id,
            title=source.title,
            type=source.type,
            h5p_content_id=new_content_id,
            shared=source.shared,
            thumb_url=source.thumb_url,
            subject_id=source.subject_id,
            education_level_id=source.education_level_id,
        )
        try:
            created = self._activities.create(clone)
        except Exception:
            if new_content_id is not None:
                self._engine.delete_content(new_content_id)
            raise
        logger.info("Activity %s %s as %s", source.id, _past_tense(job.process), created.id)
        return Result.ok(created)

    # ------------------------------------------------------------------
    # NOTIFY
    # ------------------------------------------------------------------
    def _notify(self, job: CloneJob, outcome: Result[Activity]) -> None:
        requester = self._identify(job.requester_credential)
        recipient = (requester.email or requester.id) if requester else None
        event = {
            "kind": "clone-completed" if outcome.is_success else "clone-failed",
            "process": job.process,
            "token": job.token,
            "activityId": job.source_activity_id,
            "playlistId": job.target_playlist_id,
        }
        if outcome.is_success:
            event["newActivityId"] = outcome.value.id
            event["message"] = f"Activity [{outcome.value.title}] has been {_past_tense(job.process)} successfully."
        else:
            event["error"] = outcome.code
            event["message"] = outcome.error
        self._events.publish(recipient, event)
