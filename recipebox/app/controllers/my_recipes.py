from __future__ import annotations

from typing import Optional

from recipebox.app.controllers.user_lists import UserListController
from recipebox.app.domain.models import MutationResult, MyRecipe
from recipebox.app.infra.auth import AuthSession
from recipebox.app.services.event_bus import EventBus
from recipebox.app.services.my_recipe_service import MyRecipeService


class MyRecipesController(UserListController[MyRecipe]):
    """Recipes the signed-in user authored, newest first."""

    load_error_message = "Failed to load your recipes"

    def __init__(
        self,
        *,
        bus: EventBus,
        recipes: MyRecipeService,
        auth: AuthSession,
        name: Optional[str] = None,
    ):
        super().__init__(bus=bus, auth=auth, key=lambda recipe: recipe.id, name=name)
        self._recipes = recipes
        self.set_fetcher(self.for_user(self._recipes.list_recipes))

    def search_fields(self, item: MyRecipe) -> tuple[str, ...]:
        return (item.title, item.category or "")

    async def delete_recipe(self, recipe_id: str) -> MutationResult:
        user, refused = self.signed_in_user(recipe_id)
        if user is None:
            return refused

        result = await self.mutate_optimistic(
            recipe_id,
            lambda recipe: None,
            lambda: self._recipes.delete_recipe(user.id, recipe_id),
            error_message="Failed to delete recipe",
        )
        if result.succeeded:
            self.notify("Recipe deleted")
        return result
