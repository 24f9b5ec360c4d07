# recipebox/app/infra/db/base.py
"""
Abstract base class for the remote row store.
This interface allows swapping the Supabase backend for an in-memory one.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

Row = dict[str, Any]
Filters = Mapping[str, Any]


class RemoteStore(ABC):
    """
    Row-level CRUD over named tables.

    Filters map a column to a value. A list, tuple or set value matches
    any of its members; every other value is an equality match.

    Implementations:
    - SupabaseRemoteStore: PostgREST through supabase-py
    - InMemoryRemoteStore: dict of tables for development and tests

    All failures are raised as RemoteStoreError; a missing row requested
    with ``single=True`` raises NotFoundError.
    """

    @abstractmethod
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
        """
        Fetch rows matching ``filters``.

        Args:
            table: Table name
            filters: Column filters
            columns: PostgREST column selector (may embed related tables)
            order_by: Column to order by
            descending: Order direction
            limit: Max rows to return
            single: Expect exactly one row

        Returns:
            Matching rows (a one-element list when ``single``)
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """
        Insert one row.

        Returns:
            The stored row as returned by the backend
        """
        pass

    @abstractmethod
    async def update(self, table: str, changes: Row, filters: Filters) -> list[Row]:
        """
        Update the rows matching ``filters``.

        Returns:
            The updated rows
        """
        pass

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> None:
        """
        Delete the rows matching ``filters``. Matching nothing is not an error.
        """
        pass

    @abstractmethod
    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        """
        Count the rows matching ``filters``.
        """
        pass
