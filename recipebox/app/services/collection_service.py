from __future__ import annotations

import logging
from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from recipebox.app.domain.errors import AlreadyExistsError, ValidationError
from recipebox.app.domain.models import Collection, CollectionEntry, MyRecipe
from recipebox.app.infra.db.base import RemoteStore, Row
from recipebox.app.infra.db.rows import parse_datetime, safe_str
from recipebox.app.schemas.recipes import CollectionCreate
from recipebox.app.services.my_recipe_service import MyRecipeService

logger = logging.getLogger(__name__)

ALREADY_IN_COLLECTION = "This recipe is already in the selected collection"


def _row_to_collection(row: Row, recipe_count: int = 0) -> Collection:
    return Collection(
        id=str(row["id"]),
        user_id=str(row.get("user_id") or ""),
        name=str(row.get("name") or ""),
        description=safe_str(row.get("description")),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
        recipe_count=recipe_count,
    )


def _row_to_entry(row: Row, recipe: Optional[MyRecipe] = None) -> CollectionEntry:
    return CollectionEntry(
        id=str(row.get("id") or ""),
        collection_id=str(row["collection_id"]),
        recipe_id=str(row["recipe_id"]),
        recipe=recipe,
        created_at=parse_datetime(row.get("created_at")),
    )


class CollectionService:
    TABLE_NAME = "mycollection"
    MEMBERSHIP_TABLE = "collection_recipes"

    def __init__(self, store: RemoteStore, recipes: MyRecipeService):
        self._store = store
        self._recipes = recipes

    async def list_collections(self, user_id: str) -> list[Collection]:
        rows = await self._store.select(
            self.TABLE_NAME,
            {"user_id": user_id},
            order_by="created_at",
            descending=True,
        )
        counts = await self._fetch_recipe_counts(str(row["id"]) for row in rows)
        return [_row_to_collection(row, counts.get(str(row["id"]), 0)) for row in rows]

    async def create_collection(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
    ) -> Collection:
        try:
            payload = CollectionCreate(name=name, description=description)
        except PydanticValidationError as error:
            raise ValidationError("Collection name is required", ["name"]) from error

        row = await self._store.insert(
            self.TABLE_NAME,
            {"user_id": user_id, "name": payload.name, "description": payload.description},
        )
        logger.info("collection.created id=%s user=%s", row.get("id"), user_id)
        return _row_to_collection(row)

    async def delete_collection(self, user_id: str, collection_id: str) -> None:
        await self._store.delete(self.MEMBERSHIP_TABLE, {"collection_id": collection_id})
        await self._store.delete(self.TABLE_NAME, {"id": collection_id, "user_id": user_id})
        logger.info("collection.deleted id=%s user=%s", collection_id, user_id)

    async def add_recipe(self, collection_id: str, recipe_id: str) -> CollectionEntry:
        existing = await self._store.count(
            self.MEMBERSHIP_TABLE,
            {"collection_id": collection_id, "recipe_id": recipe_id},
        )
        if existing:
            raise AlreadyExistsError(ALREADY_IN_COLLECTION)

        row = await self._store.insert(
            self.MEMBERSHIP_TABLE,
            {"collection_id": collection_id, "recipe_id": recipe_id},
        )
        logger.info("collection.recipe_added collection=%s recipe=%s", collection_id, recipe_id)
        return _row_to_entry(row)

    async def remove_recipe(self, collection_id: str, recipe_id: str) -> None:
        await self._store.delete(
            self.MEMBERSHIP_TABLE,
            {"collection_id": collection_id, "recipe_id": recipe_id},
        )
        logger.info("collection.recipe_removed collection=%s recipe=%s", collection_id, recipe_id)

    async def list_recipes(self, collection_id: str) -> list[CollectionEntry]:
        rows = await self._store.select(
            self.MEMBERSHIP_TABLE,
            {"collection_id": collection_id},
            order_by="created_at",
        )
        recipes = await self._recipes.get_recipes_by_ids([str(row["recipe_id"]) for row in rows])
        return [
            _row_to_entry(row, recipes.get(str(row["recipe_id"])))
            for row in rows
        ]

    async def _fetch_recipe_counts(self, collection_ids: Iterable[str]) -> dict[str, int]:
        ids = [cid for cid in collection_ids if cid]
        if not ids:
            return {}
        rows = await self._store.select(
            self.MEMBERSHIP_TABLE,
            {"collection_id": ids},
            columns="collection_id",
        )
        counts: dict[str, int] = {}
        for row in rows:
            cid = str(row.get("collection_id") or "")
            if cid:
                counts[cid] = counts.get(cid, 0) + 1
        return counts
