from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from trackhabit.domain.errors import DataStoreError

# Tables the service reads and writes
TASKS = "tasks"
NOTES = "notes"
NOTIFICATIONS = "notifications"
TEAMS = "teams"
MEMBERSHIPS = "memberships"
TEAM_INVITES = "team_invites"
CHAT_HISTORY = "chat_history"


class DuplicateRowError(DataStoreError):
    """An insert violated a unique constraint"""


class DataStore(ABC):
    """Narrow capability over the hosted data platform.

    ``filters`` and ``match`` map column names to values. A list or tuple
    value matches any of its members.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Select rows matching every filter"""
        pass

    @abstractmethod
    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert rows and return them as stored"""
        pass

    @abstractmethod
    async def update(self, table: str, values: Dict[str, Any], match: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update matching rows and return them"""
        pass

    @abstractmethod
    async def delete(self, table: str, match: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Delete matching rows and return them"""
        pass

    @abstractmethod
    async def get_session_user(self, token: str) -> Optional[Dict[str, Any]]:
        """Resolve a session token to ``{"id", "email"}``, or None"""
        pass

    async def close(self) -> None:
        pass
