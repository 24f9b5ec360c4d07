# recipebox/app/main.py
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from recipebox.app.config import Settings, settings
from recipebox.app.controllers.bookmarks import BookmarksController, RecipeFeedController
from recipebox.app.controllers.collections import CollectionDetailController, CollectionsController
from recipebox.app.controllers.my_recipes import MyRecipesController
from recipebox.app.infra.auth import AuthSession
from recipebox.app.infra.db.base import RemoteStore
from recipebox.app.infra.db.supabase_store import SupabaseRemoteStore
from recipebox.app.infra.storage.base import ImageStorage
from recipebox.app.infra.storage.supabase_storage import SupabaseImageStorage
from recipebox.app.services.bookmark_service import BookmarkService
from recipebox.app.services.collection_service import CollectionService
from recipebox.app.services.event_bus import EventBus
from recipebox.app.services.my_recipe_service import MyRecipeService
from recipebox.services.catalog import RecipeCatalog
from recipebox.services.pdf_export import document_from_catalog, document_from_my_recipe, export_recipe_pdf

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    # stdout logging, good for dev and containers
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


class RecipeBoxApp:
    """
    Composition root: one bus, one backend and one session per process.

    Every controller created here shares the same bus, so bookmark changes
    made on one screen reach all other mounted screens.
    """

    def __init__(
        self,
        *,
        config: Settings = settings,
        store: Optional[RemoteStore] = None,
        storage: Optional[ImageStorage] = None,
        auth: Optional[AuthSession] = None,
        catalog: Optional[RecipeCatalog] = None,
        bus: Optional[EventBus] = None,
    ):
        self.config = config
        self.bus = bus or EventBus()
        self.store = store or SupabaseRemoteStore()
        self.storage = storage if storage is not None else SupabaseImageStorage(bucket_name=config.RECIPE_IMAGES_BUCKET)
        self.auth = auth or AuthSession()
        self.catalog = catalog or RecipeCatalog(
            api_key=config.SPOONACULAR_API_KEY,
            base_url=config.SPOONACULAR_BASE_URL,
            timeout=config.HTTP_TIMEOUT_SECONDS,
        )

        self.bookmarks = BookmarkService(self.store)
        self.my_recipes = MyRecipeService(self.store, self.storage)
        self.collections = CollectionService(self.store, self.my_recipes)
        self.started = False

    async def start(self) -> None:
        configure_logging(self.config.LOG_LEVEL)
        self.bus.init()
        await self.auth.restore()
        self.started = True
        logger.info("app.started env=%s user=%s", self.config.APP_ENV, getattr(self.auth.current_user, "id", None))

    async def shutdown(self) -> None:
        self.bus.teardown()
        await self.catalog.close()
        self.started = False
        logger.info("app.stopped")

    # -- screens -----------------------------------------------------------

    def recipe_feed(self, name: Optional[str] = None) -> RecipeFeedController:
        return RecipeFeedController(
            bus=self.bus, catalog=self.catalog, bookmarks=self.bookmarks, auth=self.auth, name=name
        )

    def bookmarks_screen(self) -> BookmarksController:
        return BookmarksController(bus=self.bus, bookmarks=self.bookmarks, auth=self.auth)

    def collections_screen(self) -> CollectionsController:
        return CollectionsController(bus=self.bus, collections=self.collections, auth=self.auth)

    def collection_detail(self, collection_id: str) -> CollectionDetailController:
        return CollectionDetailController(
            bus=self.bus, collections=self.collections, auth=self.auth, collection_id=collection_id
        )

    def my_recipes_screen(self) -> MyRecipesController:
        return MyRecipesController(bus=self.bus, recipes=self.my_recipes, auth=self.auth)

    # -- export ------------------------------------------------------------

    async def export_my_recipe(self, recipe_id: str, path: Path | str) -> Path:
        user = self.auth.require_user()
        recipe = await self.my_recipes.get_recipe(recipe_id, user_id=user.id)
        return export_recipe_pdf(document_from_my_recipe(recipe), path)

    async def export_catalog_recipe(self, recipe_id: int, path: Path | str) -> Path:
        information = await self.catalog.get_recipe_information(recipe_id)
        return export_recipe_pdf(document_from_catalog(information), path)
