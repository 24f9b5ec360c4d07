from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from recipebox.app.domain.errors import NotFoundError, ValidationError
from recipebox.app.domain.models import CookingStep, Ingredient, MyRecipe
from recipebox.app.infra.db.base import RemoteStore, Row
from recipebox.app.infra.db.rows import optional_int, parse_datetime, safe_str
from recipebox.app.infra.storage.base import ImageStorage
from recipebox.app.schemas.recipes import RecipeDraft

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = "id,title,description,prep_time,cook_time,servings,category,image_url,created_at,user_id"
REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content: bytes
    content_type: str = "image/jpeg"


def row_to_recipe(row: Row) -> MyRecipe:
    ingredients = tuple(
        Ingredient(
            amount=str(item.get("amount") or ""),
            unit=str(item.get("unit") or ""),
            name=str(item.get("name") or ""),
        )
        for item in (row.get("ingredients") or [])
        if isinstance(item, dict)
    )
    steps = tuple(
        CookingStep(description=str(item.get("description") or ""))
        for item in (row.get("cooking_steps") or [])
        if isinstance(item, dict)
    )
    return MyRecipe(
        id=str(row["id"]),
        user_id=str(row.get("user_id") or ""),
        title=str(row.get("title") or ""),
        description=safe_str(row.get("description")),
        prep_time=optional_int(row.get("prep_time")),
        cook_time=optional_int(row.get("cook_time")),
        servings=safe_str(row.get("servings")),
        category=safe_str(row.get("category")),
        image_url=safe_str(row.get("image_url")),
        ingredients=ingredients,
        cooking_steps=steps,
        created_at=parse_datetime(row.get("created_at")),
    )


def validate_draft(data: Union[RecipeDraft, Mapping[str, Any]]) -> RecipeDraft:
    if isinstance(data, RecipeDraft):
        return data
    try:
        return RecipeDraft.model_validate(data)
    except PydanticValidationError as error:
        fields = sorted({str(item["loc"][0]) for item in error.errors() if item.get("loc")})
        raise ValidationError(REQUIRED_FIELDS_MESSAGE, fields) from error


class MyRecipeService:
    TABLE_NAME = "myrecipes"
    MEMBERSHIP_TABLE = "collection_recipes"

    def __init__(self, store: RemoteStore, storage: Optional[ImageStorage] = None):
        self._store = store
        self._storage = storage

    async def _upload(self, user_id: str, image: Optional[ImageUpload]) -> Optional[str]:
        if image is None:
            return None
        if self._storage is None:
            raise ValidationError("Image uploads are not configured", ["image"])
        object_key = self._storage.generate_object_key(user_id, image.filename)
        return await self._storage.upload(object_key, image.content, image.content_type)

    async def create_recipe(
        self,
        user_id: str,
        draft: Union[RecipeDraft, Mapping[str, Any]],
        image: Optional[ImageUpload] = None,
    ) -> MyRecipe:
        recipe_draft = validate_draft(draft)
        image_url = await self._upload(user_id, image)
        row = await self._store.insert(self.TABLE_NAME, recipe_draft.to_row(user_id, image_url))
        recipe = row_to_recipe(row)
        logger.info("my_recipe.created id=%s user=%s", recipe.id, user_id)
        return recipe

    async def update_recipe(
        self,
        user_id: str,
        recipe_id: str,
        draft: Union[RecipeDraft, Mapping[str, Any]],
        image: Optional[ImageUpload] = None,
    ) -> MyRecipe:
        recipe_draft = validate_draft(draft)
        current = await self.get_recipe(recipe_id, user_id=user_id)
        image_url = await self._upload(user_id, image) or current.image_url

        changes = recipe_draft.to_row(user_id, image_url)
        rows = await self._store.update(self.TABLE_NAME, changes, {"id": recipe_id, "user_id": user_id})
        if not rows:
            raise NotFoundError(f"Recipe not found: {recipe_id}")
        logger.info("my_recipe.updated id=%s user=%s", recipe_id, user_id)
        return row_to_recipe(rows[0])

    async def get_recipe(self, recipe_id: str, user_id: Optional[str] = None) -> MyRecipe:
        filters: dict[str, Any] = {"id": recipe_id}
        if user_id:
            filters["user_id"] = user_id
        rows = await self._store.select(self.TABLE_NAME, filters, single=True)
        return row_to_recipe(rows[0])

    async def list_recipes(self, user_id: str) -> list[MyRecipe]:
        rows = await self._store.select(
            self.TABLE_NAME,
            {"user_id": user_id},
            columns=SUMMARY_COLUMNS,
            order_by="created_at",
            descending=True,
        )
        return [row_to_recipe(row) for row in rows]

    async def get_recipes_by_ids(self, recipe_ids: list[str]) -> dict[str, MyRecipe]:
        ids = [str(rid) for rid in recipe_ids if rid]
        if not ids:
            return {}
        rows = await self._store.select(self.TABLE_NAME, {"id": ids}, columns=SUMMARY_COLUMNS)
        return {str(row["id"]): row_to_recipe(row) for row in rows}

    async def delete_recipe(self, user_id: str, recipe_id: str) -> None:
        await self._store.delete(self.MEMBERSHIP_TABLE, {"recipe_id": recipe_id})
        await self._store.delete(self.TABLE_NAME, {"id": recipe_id, "user_id": user_id})
        logger.info("my_recipe.deleted id=%s user=%s", recipe_id, user_id)
