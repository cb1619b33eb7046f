"""Dependency injection container: wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from activity_studio.application.activity_app_service import ActivityAppService
from activity_studio.application.clone_service import CloneOrchestrator
from activity_studio.application.content_versioning_service import ContentVersioningEngine
from activity_studio.application.embed_service import EmbedBuilder
from activity_studio.application.library_registry import LibraryRegistry
from activity_studio.integrations.h5p_editor import AssetParameterProcessor, JsonParamsValidator
from activity_studio.integrations.notifier import EventQueue, default_notifier
from activity_studio.integrations.scheduler import ThreadScheduler
from activity_studio.persistence.repositories.sqlite.sqlite_activity_repository import SqliteActivityRepository
from activity_studio.persistence.repositories.sqlite.sqlite_clone_job_repository import SqliteCloneJobRepository
from activity_studio.persistence.repositories.sqlite.sqlite_content_repository import SqliteContentRepository
from activity_studio.persistence.repositories.sqlite.sqlite_library_repository import SqliteLibraryRepository
from activity_studio.persistence.repositories.sqlite.sqlite_playlist_repository import SqlitePlaylistRepository


@lru_cache(maxsize=1)
def get_content_repo() -> SqliteContentRepository:
    return SqliteContentRepository()


@lru_cache(maxsize=1)
def get_activity_repo() -> SqliteActivityRepository:
    return SqliteActivityRepository()


@lru_cache(maxsize=1)
def get_playlist_repo() -> SqlitePlaylistRepository:
    return SqlitePlaylistRepository()


@lru_cache(maxsize=1)
def get_clone_job_repo() -> SqliteCloneJobRepository:
    return SqliteCloneJobRepository()


@lru_cache(maxsize=1)
def get_library_registry() -> LibraryRegistry:
    return LibraryRegistry(repo=SqliteLibraryRepository())


@lru_cache(maxsize=1)
def get_event_queue() -> EventQueue:
    events = EventQueue(default_notifier())
    events.start()
    return events


@lru_cache(maxsize=1)
def get_content_engine() -> ContentVersioningEngine:
    registry = get_library_registry()
    return ContentVersioningEngine(
        repo=get_content_repo(),
        registry=registry,
        processor=AssetParameterProcessor(registry, get_content_repo()),
        validator=JsonParamsValidator(),
    )


@lru_cache(maxsize=1)
def get_embed_builder() -> EmbedBuilder:
    return EmbedBuilder(
        content_repo=get_content_repo(),
        registry=get_library_registry(),
        activity_repo=get_activity_repo(),
        playlist_repo=get_playlist_repo(),
        events=get_event_queue(),
    )


@lru_cache(maxsize=1)
def get_activity_app_service() -> ActivityAppService:
    return ActivityAppService(
        repo=get_activity_repo(),
        playlists=get_playlist_repo(),
        engine=get_content_engine(),
        embeds=get_embed_builder(),
    )


@lru_cache(maxsize=1)
def get_clone_orchestrator() -> CloneOrchestrator:
    return CloneOrchestrator(
        jobs=get_clone_job_repo(),
        activities=get_activity_repo(),
        playlists=get_playlist_repo(),
        engine=get_content_engine(),
        scheduler=ThreadScheduler(),
        events=get_event_queue(),
    )


def reset() -> None:
    """Drop every cached singleton (tests point DATABASE_PATH elsewhere first)."""
    if get_event_queue.cache_info().currsize:
        get_event_queue().stop()
    for factory in (
        get_content_repo,
        get_activity_repo,
        get_playlist_repo,
        get_clone_job_repo,
        get_library_registry,
        get_event_queue,
        get_content_engine,
        get_embed_builder,
        get_activity_app_service,
        get_clone_orchestrator,
    ):
        factory.cache_clear()
