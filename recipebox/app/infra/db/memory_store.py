from __future__ import annotations

import copy
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from recipebox.app.domain.errors import NotFoundError, RemoteStoreError
from recipebox.app.infra.db.base import Filters, RemoteStore, Row


def _matches(row: Row, filters: Optional[Filters]) -> bool:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            if row.get(column) not in value:
                return False
        elif row.get(column) != value:
            return False
    return True


def _project(row: Row, columns: str) -> Row:
    if columns.strip() == "*":
        return copy.deepcopy(row)
    wanted = [c.strip() for c in columns.split(",") if c.strip()]
    return {c: copy.deepcopy(row.get(c)) for c in wanted}


class InMemoryRemoteStore(RemoteStore):
    """Simple in-memory row store for development and tests."""

    def __init__(self) -> None:
        self.tables: dict[str, list[Row]] = defaultdict(list)
        self.calls: list[tuple[str, str]] = []
        self._failures: list[tuple[str, Optional[str], Exception]] = []
        self._last_timestamp: Optional[datetime] = None

    def seed(self, table: str, *rows: Row) -> list[Row]:
        stored = [self._with_defaults(dict(row)) for row in rows]
        self.tables[table].extend(stored)
        return stored

    def fail_next(
        self,
        operation: str,
        table: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        """Make the next matching call raise ``error`` (a retryable network error by default)."""
        self._failures.append(
            (operation, table, error or RemoteStoreError("Network request failed", retryable=True))
        )

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.tables.clear()
        self.calls.clear()
        self._failures.clear()

    def _record(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        for index, (op, tbl, error) in enumerate(self._failures):
            if op == operation and tbl in (None, table):
                del self._failures[index]
                raise error

    def _now(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _with_defaults(self, row: Row) -> Row:
        row.setdefault("id", uuid.uuid4().hex)
        row.setdefault("created_at", self._now().isoformat(timespec="microseconds"))
        return row

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
        self._record("select", table)
        rows = [row for row in self.tables.get(table, []) if _matches(row, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by) or ""), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        if single:
            if not rows:
                raise NotFoundError(f"No row found in {table}")
            if len(rows) > 1:
                raise RemoteStoreError(f"Multiple rows found in {table}")
        return [_project(row, columns) for row in rows]

    async def insert(self, table: str, row: Row) -> Row:
        self._record("insert", table)
        stored = self._with_defaults(copy.deepcopy(row))
        self.tables[table].append(stored)
        return copy.deepcopy(stored)

    async def update(self, table: str, changes: Row, filters: Filters) -> list[Row]:
        self._record("update", table)
        updated = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(copy.deepcopy(changes))
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, filters: Filters) -> None:
        self._record("delete", table)
        self.tables[table] = [row for row in self.tables.get(table, []) if not _matches(row, filters)]

    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        self._record("count", table)
        return sum(1 for row in self.tables.get(table, []) if _matches(row, filters))

    def rows(self, table: str) -> list[Row]:
        return [copy.deepcopy(row) for row in self.tables.get(table, [])]
