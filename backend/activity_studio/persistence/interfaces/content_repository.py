"""Abstract repository interface for H5P content records (the content store)."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from activity_studio.domain.h5p.models import ContentRecord


class ContentRepository(ABC):

    @abstractmethod
    def get(self, content_id: int) -> Optional[ContentRecord]:
        """Return the record with its library resolved, or None."""
        ...

    @abstractmethod
    def create(self, record: ContentRecord) -> int:
        """Insert a new record and return its id. `record.id` is ignored."""
        ...

    @abstractmethod
    def put(self, content_id: int, record: ContentRecord) -> bool:
        """Atomically replace every field of the record. Returns False if it does not exist."""
        ...

    @abstractmethod
    def delete(self, content_id: int) -> bool:
        """Delete the record and its dependency rows. Returns True if deleted."""
        ...

    @abstractmethod
    def replace_dependencies(self, content_id: int, dependencies: Iterable[Tuple[int, str]]) -> None:
        """Replace the (library_id, dependency_type) rows used by a content."""
        ...

    @abstractmethod
    def get_dependencies(self, content_id: int) -> List[Tuple[int, str]]:
        ...
