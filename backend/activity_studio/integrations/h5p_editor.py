"""
Editor-side collaborators of the versioning engine: parameter validation
against a library, and asset/dependency migration after a change.
"""
from __future__ import annotations
import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from activity_studio.domain.h5p.models import LibraryReference
from activity_studio.persistence.interfaces.content_repository import ContentRepository

if TYPE_CHECKING:
    from activity_studio.application.library_registry import LibraryRegistry

logger = logging.getLogger(__name__)

_TMP_SUFFIX = "#tmp"
# "../editor/images/a.png" or "../42/images/a.png": files owned by the editor or another content
_FOREIGN_PATH = re.compile(r"^\.\./(editor|[0-9]+)/(.+)$")


class ParamsValidator(ABC):

    @abstractmethod
    def validate(self, library: LibraryReference, params: Any) -> bool:
        ...


class JsonParamsValidator(ParamsValidator):
    """Accepts any JSON object or array; library semantics belong to the library itself."""

    def validate(self, library: LibraryReference, params: Any) -> bool:
        return isinstance(params, (dict, list))


class ParameterProcessor(ABC):

    @abstractmethod
    def process_parameters(
        self,
        content_id: int,
        library: LibraryReference,
        params: Any,
        old_library: Optional[LibraryReference],
        old_params: Any,
    ) -> Any:
        """
        Rewrite asset references into the content's own namespace and record its
        library dependencies. Returns the (possibly rewritten) params.
        Raises MigrationError when the migration cannot be completed.
        """
        ...


class AssetParameterProcessor(ParameterProcessor):

    def __init__(self, registry: "LibraryRegistry", content_repo: ContentRepository):
        self._registry = registry
        self._content_repo = content_repo

    def process_parameters(
        self,
        content_id: int,
        library: LibraryReference,
        params: Any,
        old_library: Optional[LibraryReference],
        old_params: Any,
    ) -> Any:
        moved: List[Tuple[str, str]] = []
        rewritten = self._rewrite(params, moved)
        for old_path, new_path in moved:
            logger.debug("content %s: asset %s -> %s", content_id, old_path, new_path)

        if old_library is None or not library.same_library(old_library):
            self._record_dependencies(content_id, library)
        elif not self._content_repo.get_dependencies(content_id):
            self._record_dependencies(content_id, library)
        return rewritten

    def _record_dependencies(self, content_id: int, library: LibraryReference) -> None:
        closure = self._registry.dependencies(library)
        rows = [(library.library_id, "preloaded")]
        for dep in sorted(closure, key=lambda ref: ref.library_id):
            rows.append((dep.library_id, "preloaded"))
        self._content_repo.replace_dependencies(content_id, rows)

    def _rewrite(self, value: Any, moved: List[Tuple[str, str]]) -> Any:
        if isinstance(value, list):
            return [self._rewrite(v, moved) for v in value]
        if not isinstance(value, dict):
            return value
        result = {k: self._rewrite(v, moved) for k, v in value.items()}
        path = result.get("path")
        if isinstance(path, str):
            new_path = self._localise(path)
            if new_path != path:
                moved.append((path, new_path))
                result["path"] = new_path
        return result

    @staticmethod
    def _localise(path: str) -> str:
        if path.startswith(("http://", "https://", "//")):
            return path
        if path.endswith(_TMP_SUFFIX):
            path = path[: -len(_TMP_SUFFIX)]
        match = _FOREIGN_PATH.match(path)
        if match:
            path = match.group(2)
        return path
