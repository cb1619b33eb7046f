"""Abstract repository interface for installed H5P libraries."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from activity_studio.domain.h5p.models import Library


class LibraryRepository(ABC):

    @abstractmethod
    def find(self, machine_name: str, major_version: int, minor_version: int) -> Optional[Library]:
        """Exact match on all three fields, or None."""
        ...

    @abstractmethod
    def get_by_id(self, library_id: int) -> Optional[Library]:
        ...

    @abstractmethod
    def save_library(self, library: Library) -> Library:
        """Insert or update by (machine_name, major, minor). Returns the library with its id."""
        ...

    @abstractmethod
    def replace_dependencies(self, library_id: int, dependencies: Iterable[Tuple[int, str]]) -> None:
        """Replace the (required_library_id, dependency_type) rows of a library."""
        ...

    @abstractmethod
    def get_dependencies(self, library_id: int) -> List[Tuple[Library, str]]:
        """Direct dependencies with their dependency type."""
        ...
