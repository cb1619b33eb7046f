"""Shared fixtures: a temporary SQLite database and fully wired services."""
from types import SimpleNamespace

import pytest

from activity_studio.application.activity_app_service import ActivityAppService
from activity_studio.application.clone_service import CloneOrchestrator
from activity_studio.application.content_versioning_service import ContentVersioningEngine
from activity_studio.application.embed_service import EmbedBuilder
from activity_studio.application.library_registry import LibraryRegistry
from activity_studio.core import config
from activity_studio.domain.activity.models import Playlist, Project
from activity_studio.integrations.h5p_editor import AssetParameterProcessor, JsonParamsValidator
from activity_studio.integrations.notifier import EventQueue, Notifier
from activity_studio.integrations.scheduler import Scheduler
from activity_studio.persistence.db import get_connection, init_db
from activity_studio.persistence.repositories.sqlite.sqlite_activity_repository import SqliteActivityRepository
from activity_studio.persistence.repositories.sqlite.sqlite_clone_job_repository import SqliteCloneJobRepository
from activity_studio.persistence.repositories.sqlite.sqlite_content_repository import SqliteContentRepository
from activity_studio.persistence.repositories.sqlite.sqlite_library_repository import SqliteLibraryRepository
from activity_studio.persistence.repositories.sqlite.sqlite_playlist_repository import SqlitePlaylistRepository


class ManualScheduler(Scheduler):
    """Keeps tasks until the test runs them, possibly more than once."""

    def __init__(self):
        self.pending = []
        self.delays = []

    def after(self, delay_seconds, task):
        self.delays.append(delay_seconds)
        self.pending.append(task)

    def run_all(self, deliveries=1):
        tasks = list(self.pending)
        self.pending.clear()
        for _ in range(deliveries):
            for task in tasks:
                task()


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def send(self, recipient, event):
        self.sent.append((recipient, event))

    def events(self, kind):
        return [e for _, e in self.sent if e["kind"] == kind]


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "studio.db")
    monkeypatch.setattr(config, "DATABASE_PATH", path)
    init_db(path)
    return path


def count_rows(db_path, table):
    conn = get_connection(db_path)
    count = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    conn.close()
    return count


@pytest.fixture
def studio(db_path):
    """Every service wired against the temporary database, plus seed data."""
    content_repo = SqliteContentRepository(db_path)
    activity_repo = SqliteActivityRepository(db_path)
    playlist_repo = SqlitePlaylistRepository(db_path)
    registry = LibraryRegistry(SqliteLibraryRepository(db_path))
    notifier = RecordingNotifier()
    events = EventQueue(notifier)
    scheduler = ManualScheduler()

    engine = ContentVersioningEngine(
        repo=content_repo,
        registry=registry,
        processor=AssetParameterProcessor(registry, content_repo),
        validator=JsonParamsValidator(),
    )
    embeds = EmbedBuilder(content_repo, registry, activity_repo, playlist_repo, events)
    activities = ActivityAppService(activity_repo, playlist_repo, engine, embeds)
    orchestrator = CloneOrchestrator(
        jobs=SqliteCloneJobRepository(db_path),
        activities=activity_repo,
        playlists=playlist_repo,
        engine=engine,
        scheduler=scheduler,
        events=events,
    )

    registry.install("H5P.Question 1.4", title="Question")
    registry.install("H5P.JoubelUI 1.3", title="Joubel UI")
    registry.install(
        "H5P.MultiChoice 1.16",
        title="Multiple Choice",
        dependencies=["H5P.Question 1.4", "H5P.JoubelUI 1.3"],
    )
    registry.install("H5P.TrueFalse 1.8", title="True/False", dependencies=["H5P.Question 1.4"])
    registry.install("H5P.Text 1.1", title="Text", embed_types="div")

    project = playlist_repo.create_project(Project(id=0, name="Science of Golf", owner_id="owner-1"))
    playlist_repo.add_project_user(project.id, "member-1")
    playlist = playlist_repo.create_playlist(Playlist(id=0, project_id=project.id, title="Week 1"))
    other_project = playlist_repo.create_project(Project(id=0, name="Other", owner_id="owner-2"))
    other_playlist = playlist_repo.create_playlist(Playlist(id=0, project_id=other_project.id, title="Elsewhere"))

    return SimpleNamespace(
        db_path=db_path,
        content_repo=content_repo,
        activity_repo=activity_repo,
        playlist_repo=playlist_repo,
        registry=registry,
        notifier=notifier,
        events=events,
        scheduler=scheduler,
        engine=engine,
        embeds=embeds,
        activities=activities,
        orchestrator=orchestrator,
        project=project,
        playlist=playlist,
        other_project=other_project,
        other_playlist=other_playlist,
        count=lambda table: count_rows(db_path, table),
        payload=editor_payload,
    )


def editor_payload(title="Golf quiz", params=None):
    return {
        "params": params if params is not None else {"question": "Why do balls have dimples?"},
        "metadata": {"title": title, "license": "U"},
    }


@pytest.fixture
def make_h5p_activity(studio):
    def _make(title="Golf quiz", playlist=None, shared=False, library="H5P.MultiChoice 1.16", params=None):
        result = studio.activities.create_activity({
            "title": title,
            "type": "h5p",
            "playlist_id": (playlist or studio.playlist).id,
            "shared": shared,
            "data": {
                "library": library,
                "parameters": editor_payload(title, params),
                "frame": True,
                "download": True,
                "embed": True,
                "copyright": True,
            },
        })
        assert result.is_success, result.error
        return result.value
    return _make


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()
