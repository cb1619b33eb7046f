"""Abstract repository interface for activities."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from activity_studio.domain.activity.models import Activity


class ActivityRepository(ABC):

    @abstractmethod
    def list_all(self) -> List[Activity]:
        ...

    @abstractmethod
    def get_by_id(self, activity_id: int) -> Optional[Activity]:
        ...

    @abstractmethod
    def list_by_playlist(self, playlist_id: int) -> List[Activity]:
        """Activities of a playlist ordered by order, then id."""
        ...

    @abstractmethod
    def list_playlist_ids(self) -> List[int]:
        """Every playlist id that has at least one activity."""
        ...

    @abstractmethod
    def create(self, activity: Activity) -> Activity:
        """
        Insert and return the activity with its id populated. An activity without
        an order is appended at max(order in its playlist) + 1, atomically.
        """
        ...

    @abstractmethod
    def update(self, activity_id: int, fields: dict) -> bool:
        """Update the given columns. Returns False if the activity does not exist."""
        ...

    @abstractmethod
    def set_orders(self, orders: Dict[int, int]) -> None:
        """Write activity id → order in a single transaction."""
        ...

    @abstractmethod
    def delete(self, activity_id: int) -> bool:
        ...
