# recipebox/app/services/bookmark_service.py
"""
Bookmark persistence.
Keeps at most one ``bookmarks`` row per (user_id, recipe_id) by checking
for an existing row before inserting.
"""
from __future__ import annotations

import logging
from typing import Iterable

from recipebox.app.domain.errors import NotFoundError
from recipebox.app.domain.models import DEFAULT_RECIPE_SOURCE, BookmarkRecord, RecipeSummary
from recipebox.app.infra.db.base import RemoteStore, Row
from recipebox.app.infra.db.rows import parse_datetime, safe_int, safe_str

logger = logging.getLogger(__name__)


def _row_to_bookmark(row: Row) -> BookmarkRecord:
    return BookmarkRecord(
        user_id=str(row["user_id"]),
        recipe_id=safe_int(row["recipe_id"]),
        recipe_title=str(row.get("recipe_title") or ""),
        recipe_image=str(row.get("recipe_image") or ""),
        recipe_source=str(row.get("recipe_source") or DEFAULT_RECIPE_SOURCE),
        created_at=parse_datetime(row.get("created_at")),
        id=safe_str(row.get("id")),
    )


class BookmarkService:
    TABLE_NAME = "bookmarks"

    def __init__(self, store: RemoteStore):
        self._store = store

    async def add_bookmark(self, user_id: str, recipe: RecipeSummary) -> BookmarkRecord:
        """
        Bookmark ``recipe`` for the user.

        An existing bookmark is returned unchanged, so adding twice is a no-op.
        """
        existing = await self._store.select(
            self.TABLE_NAME,
            {"user_id": user_id, "recipe_id": recipe.id},
            limit=1,
        )
        if existing:
            logger.info("bookmark.already_exists user=%s recipe=%s", user_id, recipe.id)
            return _row_to_bookmark(existing[0])

        row = await self._store.insert(
            self.TABLE_NAME,
            {
                "user_id": user_id,
                "recipe_id": recipe.id,
                "recipe_title": recipe.title,
                "recipe_image": recipe.image,
                "recipe_source": recipe.source_name or DEFAULT_RECIPE_SOURCE,
            },
        )
        logger.info("bookmark.added user=%s recipe=%s", user_id, recipe.id)
        return _row_to_bookmark(row)

    async def remove_bookmark(self, user_id: str, recipe_id: int) -> None:
        """Delete the bookmark. A bookmark that is already gone counts as removed."""
        try:
            await self._store.delete(self.TABLE_NAME, {"user_id": user_id, "recipe_id": recipe_id})
        except NotFoundError:
            logger.info("bookmark.already_removed user=%s recipe=%s", user_id, recipe_id)
            return
        logger.info("bookmark.removed user=%s recipe=%s", user_id, recipe_id)

    async def is_bookmarked(self, user_id: str, recipe_id: int) -> bool:
        rows = await self._store.select(
            self.TABLE_NAME,
            {"user_id": user_id, "recipe_id": recipe_id},
            columns="id",
            limit=1,
        )
        return bool(rows)

    async def bookmarked_ids(self, user_id: str, recipe_ids: Iterable[int]) -> set[int]:
        ids = sorted({int(rid) for rid in recipe_ids})
        if not ids:
            return set()
        rows = await self._store.select(
            self.TABLE_NAME,
            {"user_id": user_id, "recipe_id": ids},
            columns="recipe_id",
        )
        return {safe_int(row.get("recipe_id")) for row in rows}

    async def list_bookmarks(self, user_id: str) -> list[BookmarkRecord]:
        rows = await self._store.select(
            self.TABLE_NAME,
            {"user_id": user_id},
            order_by="created_at",
            descending=True,
        )
        return [_row_to_bookmark(row) for row in rows]
