from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx
from postgrest.exceptions import APIError
from starlette.concurrency import run_in_threadpool
from supabase import Client

from recipebox.app.deps import get_supabase
from recipebox.app.domain.errors import NOT_FOUND_CODE, NotFoundError, RemoteStoreError
from recipebox.app.infra.db.base import Filters, RemoteStore, Row

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (httpx.HTTPError, ConnectionError, TimeoutError)


def _apply_filters(query: Any, filters: Optional[Filters]) -> Any:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            query = query.in_(column, list(value))
        elif value is None:
            query = query.is_(column, "null")
        else:
            query = query.eq(column, value)
    return query


def _convert_api_error(table: str, operation: str, error: APIError) -> RemoteStoreError:
    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error)
    if code == NOT_FOUND_CODE:
        return NotFoundError(f"No row found in {table}")
    return RemoteStoreError(f"{operation} on {table} failed: {message}", code=code)


class SupabaseRemoteStore(RemoteStore):
    def __init__(self, client: Client | None = None):
        self._client = client or get_supabase()
        logger.info("SupabaseRemoteStore initialized")

    async def _run(self, table: str, operation: str, call: Callable[[], Any]) -> Any:
        try:
            return await run_in_threadpool(call)
        except APIError as error:
            converted = _convert_api_error(table, operation, error)
            if not isinstance(converted, NotFoundError):
                logger.error("Backend rejected %s on %s: %s", operation, table, converted.message)
            raise converted from error
        except NETWORK_ERRORS as error:
            logger.error("Network error during %s on %s: %s", operation, table, error)
            raise RemoteStoreError(
                f"Network error during {operation} on {table}: {error}", retryable=True
            ) from error

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        single: bool = False,
    ) -> list[Row]:
        def call() -> Any:
            query = _apply_filters(self._client.table(table).select(columns), filters)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            if single:
                query = query.single()
            return query.execute()

        result = await self._run(table, "select", call)
        data = result.data
        if single:
            if not data:
                raise NotFoundError(f"No row found in {table}")
            return [data]
        return list(data or [])

    async def insert(self, table: str, row: Row) -> Row:
        result = await self._run(
            table, "insert", lambda: self._client.table(table).insert(row).execute()
        )
        if not result.data:
            raise RemoteStoreError(f"insert on {table} returned no row")
        return result.data[0]

    async def update(self, table: str, changes: Row, filters: Filters) -> list[Row]:
        result = await self._run(
            table,
            "update",
            lambda: _apply_filters(self._client.table(table).update(changes), filters).execute(),
        )
        return list(result.data or [])

    async def delete(self, table: str, filters: Filters) -> None:
        await self._run(
            table,
            "delete",
            lambda: _apply_filters(self._client.table(table).delete(), filters).execute(),
        )

    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        def call() -> Any:
            query = self._client.table(table).select("*", count="exact", head=True)
            return _apply_filters(query, filters).execute()

        result = await self._run(table, "count", call)
        return getattr(result, "count", 0) or 0
