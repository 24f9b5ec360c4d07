from __future__ import annotations

import logging
from typing import Optional

from recipebox.app.controllers.user_lists import UserListController
from recipebox.app.domain.errors import AlreadyExistsError, RecipeBoxError, ValidationError
from recipebox.app.domain.models import Collection, CollectionEntry, MutationResult
from recipebox.app.infra.auth import AuthSession
from recipebox.app.services.collection_service import CollectionService
from recipebox.app.services.event_bus import EventBus

logger = logging.getLogger(__name__)


class CollectionsController(UserListController[Collection]):
    """The signed-in user's collections with their recipe counts."""

    load_error_message = "Failed to load collections"

    def __init__(
        self,
        *,
        bus: EventBus,
        collections: CollectionService,
        auth: AuthSession,
        name: Optional[str] = None,
    ):
        super().__init__(bus=bus, auth=auth, key=lambda collection: collection.id, name=name)
        self._collections = collections
        self.set_fetcher(self.for_user(self._collections.list_collections))

    def search_fields(self, item: Collection) -> tuple[str, ...]:
        return (item.name, item.description or "")

    async def create_collection(self, name: str, description: Optional[str] = None) -> Optional[Collection]:
        user, _ = self.signed_in_user()
        if user is None:
            return None
        try:
            collection = await self._collections.create_collection(user.id, name, description)
        except ValidationError as error:
            self.surface_error(str(error), error)
            return None
        except RecipeBoxError as error:
            self.surface_error("Failed to create collection", error, retryable=True)
            logger.warning("collections.create_failed user=%s error=%s", user.id, error)
            return None

        self.notify("Collection created")
        await self.refresh()
        return collection

    async def delete_collection(self, collection_id: str) -> MutationResult:
        user, refused = self.signed_in_user(collection_id)
        if user is None:
            return refused

        result = await self.mutate_optimistic(
            collection_id,
            lambda collection: None,
            lambda: self._collections.delete_collection(user.id, collection_id),
            error_message="Failed to delete collection",
        )
        if result.succeeded:
            self.notify("Collection deleted")
        return result


class CollectionDetailController(UserListController[CollectionEntry]):
    """Recipes filed in one collection, oldest membership first."""

    load_error_message = "Failed to load collection recipes"

    def __init__(
        self,
        *,
        bus: EventBus,
        collections: CollectionService,
        auth: AuthSession,
        collection_id: str,
        name: Optional[str] = None,
    ):
        super().__init__(bus=bus, auth=auth, key=lambda entry: entry.recipe_id, name=name)
        self._collections = collections
        self.collection_id = collection_id
        self.set_fetcher(self.for_user(lambda user_id: self._collections.list_recipes(self.collection_id)))

    def search_fields(self, item: CollectionEntry) -> tuple[str, ...]:
        if item.recipe is None:
            return ()
        return (item.recipe.title, item.recipe.category or "")

    async def add_recipe(self, recipe_id: str) -> bool:
        user, _ = self.signed_in_user(recipe_id)
        if user is None:
            return False
        try:
            await self._collections.add_recipe(self.collection_id, recipe_id)
        except AlreadyExistsError as error:
            self.surface_error(str(error), error)
            return False
        except RecipeBoxError as error:
            self.surface_error("Failed to add recipe to collection", error, retryable=True)
            return False

        self.notify("Recipe added to collection")
        await self.refresh()
        return True

    async def remove_recipe(self, recipe_id: str) -> MutationResult:
        user, refused = self.signed_in_user(recipe_id)
        if user is None:
            return refused

        result = await self.mutate_optimistic(
            recipe_id,
            lambda entry: None,
            lambda: self._collections.remove_recipe(self.collection_id, recipe_id),
            error_message="Failed to remove recipe from collection",
        )
        if result.succeeded:
            self.notify("Recipe removed from collection")
        return result
