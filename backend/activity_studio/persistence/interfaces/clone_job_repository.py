"""Abstract repository interface for deferred clone jobs."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from activity_studio.domain.activity.models import CloneJob


class CloneJobRepository(ABC):

    @abstractmethod
    def create(self, job: CloneJob) -> None:
        ...

    @abstractmethod
    def get(self, token: str) -> Optional[CloneJob]:
        ...

    @abstractmethod
    def set_state(self, token: str, state: str) -> None:
        ...

    @abstractmethod
    def claim(self, token: str) -> bool:
        """
        Move a scheduled job to running. Returns False if the job is unknown or
        already claimed. At most one caller ever gets True for a token.
        """
        ...

    @abstractmethod
    def finish(
        self,
        token: str,
        state: str,
        is_duplicate: bool,
        new_activity_id: Optional[int] = None,
        error_code: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    def list_by_state(self, states: Iterable[str]) -> List[CloneJob]:
        """Jobs currently in any of `states`, oldest request first."""
        ...
