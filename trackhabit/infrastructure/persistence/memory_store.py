from typing import Any, Dict, List, Optional, Set, Tuple
from datetime import datetime, timezone
import asyncio
import itertools
import uuid
from collections import defaultdict

from trackhabit.domain.errors import DataStoreError
from .base import DataStore, DuplicateRowError, MEMBERSHIPS, TEAM_INVITES

# Columns that must be unique together, per table
UNIQUE_CONSTRAINTS: Dict[str, Tuple[str, ...]] = {
    MEMBERSHIPS: ("team_id", "user_id"),
    TEAM_INVITES: ("code",),
}


def _matches(row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for column, expected in filters.items():
        if isinstance(expected, (list, tuple, set)):
            if row.get(column) not in expected:
                return False
        elif row.get(column) != expected:
            return False
    return True


class InMemoryStore(DataStore):
    """Process-local data store for development and tests"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self._failures: Set[Tuple[str, str]] = set()
        self._sequence = itertools.count()
        self._lock = asyncio.Lock()

    def add_session(self, token: str, user_id: str, email: Optional[str] = None):
        """Register a session token for a user"""
        self.sessions[token] = {"id": user_id, "email": email}

    def inject_failure(self, operation: str, table: str):
        """Make every ``operation`` on ``table`` raise DataStoreError"""
        self._failures.add((operation, table))

    def clear_failures(self):
        self._failures.clear()

    def rows(self, table: str) -> List[Dict[str, Any]]:
        """Snapshot of a table, for inspection"""
        return [self._public(row) for row in self.tables.get(table, [])]

    def _check_failure(self, operation: str, table: str):
        if (operation, table) in self._failures:
            raise DataStoreError(f"{operation} on {table} failed")

    @staticmethod
    def _public(row: Dict[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in row.items() if not key.startswith("_")}

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        async with self._lock:
            self._check_failure("select", table)
            rows = [row for row in self.tables.get(table, []) if _matches(row, filters or {})]

            if order_by:
                rows.sort(key=lambda row: (row.get(order_by) or "", row["_seq"]), reverse=descending)

            if limit is not None:
                rows = rows[:limit]

            return [self._public(row) for row in rows]

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        async with self._lock:
            self._check_failure("insert", table)
            stored = []

            for row in rows:
                record = {
                    "id": str(uuid.uuid4()),
                    "created_at": datetime.now(timezone.utc).isoformat(),
                    **row,
                    "_seq": next(self._sequence),
                }
                self._check_unique(table, record, stored)
                stored.append(record)

            self.tables[table].extend(stored)
            return [self._public(row) for row in stored]

    def _check_unique(self, table: str, record: Dict[str, Any], pending: List[Dict[str, Any]]):
        columns = UNIQUE_CONSTRAINTS.get(table)
        if not columns:
            return

        key = tuple(record.get(column) for column in columns)
        for existing in itertools.chain(self.tables.get(table, []), pending):
            if tuple(existing.get(column) for column in columns) == key:
                raise DuplicateRowError(f"duplicate key on {table} {columns}")

    async def update(self, table: str, values: Dict[str, Any], match: Dict[str, Any]) -> List[Dict[str, Any]]:
        async with self._lock:
            self._check_failure("update", table)
            updated = []

            for row in self.tables.get(table, []):
                if _matches(row, match):
                    row.update(values)
                    updated.append(self._public(row))

            return updated

    async def delete(self, table: str, match: Dict[str, Any]) -> List[Dict[str, Any]]:
        async with self._lock:
            self._check_failure("delete", table)
            kept, removed = [], []

            for row in self.tables.get(table, []):
                (removed if _matches(row, match) else kept).append(row)

            self.tables[table] = kept
            return [self._public(row) for row in removed]

    async def get_session_user(self, token: str) -> Optional[Dict[str, Any]]:
        return self.sessions.get(token)
