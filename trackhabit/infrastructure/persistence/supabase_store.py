from typing import Any, Dict, List, Optional
import asyncio

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from trackhabit.domain.errors import ConfigurationError, DataStoreError
from .base import DataStore, DuplicateRowError

logger = structlog.get_logger(__name__)

UNIQUE_VIOLATION = "23505"


class SupabaseStore(DataStore):
    """Data store backed by a Supabase project.

    Uses a service key, so row scoping relies on the explicit ``user_id``
    filters every caller passes rather than on row-level security.
    """

    def __init__(self, url: Optional[str], key: Optional[str]):
        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_KEY must be set")

        self.url = url
        self.key = key
        self._client: Optional[AsyncClient] = None
        self._lock = asyncio.Lock()

    async def client(self) -> AsyncClient:
        """Create the async client on first use"""

        async with self._lock:
            if self._client is None:
                self._client = await acreate_client(self.url, self.key)
                logger.info("Supabase client created", url=self.url)
            return self._client

    @staticmethod
    def _apply_filters(query, filters: Dict[str, Any]):
        for column, value in filters.items():
            if isinstance(value, (list, tuple, set)):
                query = query.in_(column, list(value))
            else:
                query = query.eq(column, value)
        return query

    async def _execute(self, operation: str, table: str, query) -> List[Dict[str, Any]]:
        try:
            response = await query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateRowError(e.message or "duplicate key") from e
            logger.error("Supabase query failed", operation=operation, table=table, error=e.message)
            raise DataStoreError(f"{operation} on {table} failed: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error("Supabase request failed", operation=operation, table=table, error=str(e))
            raise DataStoreError(f"{operation} on {table} failed: {e}") from e

        return response.data or []

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        client = await self.client()
        query = self._apply_filters(client.table(table).select("*"), filters or {})

        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)

        return await self._execute("select", table, query)

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        client = await self.client()
        return await self._execute("insert", table, client.table(table).insert(rows))

    async def update(self, table: str, values: Dict[str, Any], match: Dict[str, Any]) -> List[Dict[str, Any]]:
        client = await self.client()
        query = self._apply_filters(client.table(table).update(values), match)
        return await self._execute("update", table, query)

    async def delete(self, table: str, match: Dict[str, Any]) -> List[Dict[str, Any]]:
        client = await self.client()
        query = self._apply_filters(client.table(table).delete(), match)
        return await self._execute("delete", table, query)

    async def get_session_user(self, token: str) -> Optional[Dict[str, Any]]:
        client = await self.client()

        try:
            response = await client.auth.get_user(token)
        except Exception as e:
            logger.warning("Session lookup rejected", error=str(e))
            return None

        if not response or not response.user:
            return None

        return {"id": response.user.id, "email": response.user.email}
