"""
Content versioning engine: validate → build → migrate → persist for H5P content.

A rejected update never touches the store: library resolution and every
validation run before migration, and the store write is a single full
replace. Updates to one content id are serialised; different ids run in
parallel.
"""
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional

from activity_studio.core import config
from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.domain.h5p.models import ContentRecord, LibraryReference
from activity_studio.domain.h5p.service import ContentDomainService
from activity_studio.application.library_registry import LibraryRegistry
from activity_studio.integrations.h5p_editor import ParameterProcessor, ParamsValidator
from activity_studio.persistence.interfaces.content_repository import ContentRepository

logger = logging.getLogger(__name__)


class _KeyedLocks:
    """One lock per content id, held only while someone uses it."""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: Dict[int, list] = {}

    @contextmanager
    def hold(self, key: int) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ContentVersioningEngine:
    def __init__(
        self,
        repo: ContentRepository,
        registry: LibraryRegistry,
        processor: ParameterProcessor,
        validator: ParamsValidator,
    ):
        self._repo = repo
        self._registry = registry
        self._processor = processor
        self._validator = validator
        self._domain = ContentDomainService()
        self._locks = _KeyedLocks()

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def get_content(self, content_id: int) -> Result[ContentRecord]:
        record = self._repo.get(content_id)
        if not record:
            return Result.fail(f"Content '{content_id}' not found.", errors.CONTENT_NOT_FOUND)
        return Result.ok(record)

    # ------------------------------------------------------------------
    # UPDATE
    # ------------------------------------------------------------------
    def apply_update(
        self,
        content_id: int,
        raw_library: Any,
        raw_params: Any,
        requested_flags: Optional[Mapping[str, Any]] = None,
    ) -> Result[ContentRecord]:
        with self._locks.hold(content_id):
            result = self._apply_update_locked(content_id, raw_library, raw_params, requested_flags)
        if result.is_success:
            logger.info("Content %s updated to %s", content_id, result.value.library)
        else:
            logger.warning("Update of content %s rejected: %s (%s)", content_id, result.error, result.code)
        return result

    def _apply_update_locked(
        self,
        content_id: int,
        raw_library: Any,
        raw_params: Any,
        requested_flags: Optional[Mapping[str, Any]],
    ) -> Result[ContentRecord]:
        current = self._repo.get(content_id)
        if not current:
            return Result.fail(f"Content '{content_id}' not found.", errors.CONTENT_NOT_FOUND)

        library = self._registry.resolve_string(raw_library)
        if not library.is_success:
            return Result.from_failure(library)

        built = self._domain.build_update(current, library.value, raw_params, requested_flags)
        if not built.is_success:
            return built
        candidate = built.value

        if not self._validator.validate(candidate.library, candidate.params):
            return Result.fail(f"Parameters are not valid for {candidate.library}.", errors.INVALID_PARAMETERS)

        if self._domain.needs_migration(current, candidate):
            migrated = self._migrate(content_id, candidate.library, candidate.params, current.library, current.params)
            if not migrated.is_success:
                return Result.from_failure(migrated)
            candidate.params = migrated.value

        if not self._repo.put(content_id, candidate):
            return Result.fail(f"Content '{content_id}' not found.", errors.CONTENT_NOT_FOUND)
        return Result.ok(candidate)

    def _migrate(
        self,
        content_id: int,
        library: LibraryReference,
        params: Any,
        old_library: Optional[LibraryReference],
        old_params: Any,
    ) -> Result[Any]:
        try:
            return Result.ok(
                self._processor.process_parameters(content_id, library, params, old_library, old_params)
            )
        except Exception as e:
            logger.exception("Asset migration failed for content %s", content_id)
            return Result.fail(f"Migration failed: {e}", errors.MIGRATION_FAILED)

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------
    def create_content(
        self,
        raw_library: Any,
        raw_params: Any,
        requested_flags: Optional[Mapping[str, Any]] = None,
    ) -> Result[ContentRecord]:
        library = self._registry.resolve_string(raw_library)
        if not library.is_success:
            return Result.from_failure(library)

        built = self._domain.build_new(library.value, raw_params, requested_flags, config.H5P_DEFAULT_DISABLE_FLAG)
        if not built.is_success:
            return built
        record = built.value
        if not self._validator.validate(record.library, record.params):
            return Result.fail(f"Parameters are not valid for {record.library}.", errors.INVALID_PARAMETERS)
        return self._insert(record, old_library=None, old_params=None)

    def copy_content(self, source_id: int) -> Result[ContentRecord]:
        """Verbatim copy under a new id. The library must still be installed."""
        source = self._repo.get(source_id)
        if not source:
            return Result.fail(f"Content '{source_id}' no longer exists.", errors.SOURCE_GONE)

        copied = self._domain.copy_for_clone(source)
        if not copied.is_success:
            return copied
        library = self._registry.resolve(
            source.library.machine_name, source.library.major_version, source.library.minor_version
        )
        if not library.is_success:
            return Result.from_failure(library)
        copied.value.library = library.value
        return self._insert(copied.value, old_library=None, old_params=None)

    def _insert(
        self,
        record: ContentRecord,
        old_library: Optional[LibraryReference],
        old_params: Any,
    ) -> Result[ContentRecord]:
        content_id = self._repo.create(record)
        record.id = content_id
        with self._locks.hold(content_id):
            migrated = self._migrate(content_id, record.library, record.params, old_library, old_params)
            if not migrated.is_success:
                self._repo.delete(content_id)
                return Result.from_failure(migrated)
            record.params = migrated.value
            self._repo.put(content_id, record)
        logger.info("Content %s created with %s", content_id, record.library)
        return Result.ok(record)

    # ------------------------------------------------------------------
    # DELETE
    # ------------------------------------------------------------------
    def delete_content(self, content_id: int) -> Result[bool]:
        with self._locks.hold(content_id):
            deleted = self._repo.delete(content_id)
        if not deleted:
            return Result.fail(f"Content '{content_id}' not found.", errors.CONTENT_NOT_FOUND)
        return Result.ok(True)
