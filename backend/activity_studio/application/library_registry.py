"""Library registry: resolves library strings to installed content types."""
from __future__ import annotations
import logging
from typing import Iterable, Optional, Set

from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.domain.h5p.models import Library, LibraryReference
from activity_studio.domain.h5p.rules import parse_library_string
from activity_studio.persistence.interfaces.library_repository import LibraryRepository

logger = logging.getLogger(__name__)


class LibraryRegistry:
    def __init__(self, repo: LibraryRepository):
        self._repo = repo

    # ------------------------------------------------------------------
    # RESOLVE
    # ------------------------------------------------------------------
    def resolve(self, machine_name: str, major_version: int, minor_version: int) -> Result[LibraryReference]:
        """Exact match on name, major and minor. No latest-compatible fallback."""
        library = self._repo.find(machine_name, major_version, minor_version)
        if not library:
            return Result.fail(
                f"No such library '{machine_name} {major_version}.{minor_version}'.",
                errors.LIBRARY_NOT_FOUND,
            )
        return Result.ok(library.reference)

    def resolve_string(self, value: str) -> Result[LibraryReference]:
        parsed = parse_library_string(value)
        if not parsed.is_success:
            return Result.from_failure(parsed)
        ref = parsed.value
        return self.resolve(ref.machine_name, ref.major_version, ref.minor_version)

    def get_library(self, ref: LibraryReference) -> Optional[Library]:
        if ref.library_id is not None:
            return self._repo.get_by_id(ref.library_id)
        return self._repo.find(ref.machine_name, ref.major_version, ref.minor_version)

    # ------------------------------------------------------------------
    # DEPENDENCIES
    # ------------------------------------------------------------------
    def dependencies(self, ref: LibraryReference) -> Set[LibraryReference]:
        """Transitive dependency closure, the library itself excluded."""
        root = self.get_library(ref)
        if not root:
            return set()
        seen = {root.id}
        closure: Set[LibraryReference] = set()
        pending = [root.id]
        while pending:
            for dep, _dep_type in self._repo.get_dependencies(pending.pop()):
                if dep.id in seen:
                    continue
                seen.add(dep.id)
                closure.add(dep.reference)
                pending.append(dep.id)
        return closure

    # ------------------------------------------------------------------
    # INSTALL
    # ------------------------------------------------------------------
    def install(
        self,
        library_string: str,
        title: str = "",
        patch_version: int = 0,
        embed_types: str = "iframe",
        runnable: bool = True,
        dependencies: Iterable[str] = (),
    ) -> Result[Library]:
        """Register a library. Every dependency must already be installed."""
        parsed = parse_library_string(library_string)
        if not parsed.is_success:
            return Result.from_failure(parsed)

        required = []
        for dep_string in dependencies:
            dep = self.resolve_string(dep_string)
            if not dep.is_success:
                return Result.from_failure(dep)
            required.append((dep.value.library_id, "preloaded"))

        ref = parsed.value
        library = self._repo.save_library(
            Library(
                id=0,
                machine_name=ref.machine_name,
                major_version=ref.major_version,
                minor_version=ref.minor_version,
                patch_version=patch_version,
                title=title or ref.machine_name,
                embed_types=embed_types,
                runnable=runnable,
            )
        )
        self._repo.replace_dependencies(library.id, required)
        logger.info("Installed library %s (id=%s)", ref, library.id)
        return Result.ok(library)
