"""Domain service: pure logic for building new and updated content records."""
from __future__ import annotations
import copy
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.domain.h5p.display_options import combine_display_options
from activity_studio.domain.h5p.models import ContentRecord, LibraryReference
from activity_studio.domain.h5p.rules import parse_parameters, params_differ, validate_title


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ContentDomainService:
    """
    Pure domain operations, no I/O. All methods return Result[T].
    Library resolution happens before these are called; the application
    layer migrates assets and persists the returned record.
    """

    def build_update(
        self,
        current: ContentRecord,
        library: LibraryReference,
        raw_params: Any,
        requested_flags: Optional[Mapping[str, Any]],
    ) -> Result[ContentRecord]:
        """Candidate record replacing `current` as a whole. `current` is left untouched."""
        if not library.is_resolved:
            return Result.fail("No such library", errors.LIBRARY_NOT_FOUND)

        parsed = parse_parameters(raw_params)
        if not parsed.is_success:
            return Result.from_failure(parsed)
        params, metadata = parsed.value

        title = validate_title(metadata)
        if not title.is_success:
            return Result.from_failure(title)
        metadata["title"] = title.value

        candidate = ContentRecord(
            id=current.id,
            library=library,
            params=params,
            metadata=metadata,
            display_options=combine_display_options(requested_flags, current.disable_flag),
            disable_flag=current.disable_flag,
            created_at=current.created_at,
            updated_at=_now_iso(),
        )
        return Result.ok(candidate)

    def build_new(
        self,
        library: LibraryReference,
        raw_params: Any,
        requested_flags: Optional[Mapping[str, Any]],
        disable_flag: str,
    ) -> Result[ContentRecord]:
        """Content for a freshly created h5p activity; id is assigned on insert."""
        now = _now_iso()
        blank = ContentRecord(
            id=None,
            library=library,
            params={},
            disable_flag=disable_flag,
            created_at=now,
            updated_at=now,
        )
        return self.build_update(blank, library, raw_params, requested_flags)

    def needs_migration(self, current: ContentRecord, candidate: ContentRecord) -> bool:
        return (not candidate.library.same_library(current.library)) or params_differ(
            current.params, candidate.params
        )

    def copy_for_clone(self, source: ContentRecord) -> Result[ContentRecord]:
        """Verbatim copy without an id; the title must still satisfy the title rules."""
        title = validate_title(source.metadata)
        if not title.is_success:
            return Result.from_failure(title)
        now = _now_iso()
        return Result.ok(
            ContentRecord(
                id=None,
                library=source.library,
                params=copy.deepcopy(source.params),
                metadata=copy.deepcopy(source.metadata),
                display_options=source.display_options,
                disable_flag=source.disable_flag,
                created_at=now,
                updated_at=now,
            )
        )
