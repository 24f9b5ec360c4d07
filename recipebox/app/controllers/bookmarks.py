# recipebox/app/controllers/bookmarks.py
"""
Screens that show bookmark state.

``RecipeFeedController`` backs the home, search and random-recipe screens,
``BookmarksController`` the dedicated bookmarks screen. Each mounted
controller reconciles the bookmark events the others publish, so a toggle
on one screen shows up on the others without another remote call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, Sequence

from recipebox.app.controllers.user_lists import UserListController
from recipebox.app.domain.errors import RecipeBoxError
from recipebox.app.domain.models import (
    BookmarkRecord,
    CurrentUser,
    DomainEvent,
    EventKind,
    MutationResult,
    RecipeSummary,
)
from recipebox.app.infra.auth import AuthSession
from recipebox.app.services.bookmark_service import BookmarkService
from recipebox.app.services.event_bus import EventBus
from recipebox.services.catalog import RecipeCatalog

logger = logging.getLogger(__name__)

BOOKMARK_EVENTS = (EventKind.BOOKMARK_ADDED, EventKind.BOOKMARK_REMOVED)
LOGIN_TO_BOOKMARK = "Please login to bookmark recipes"
BOOKMARK_FAILED = "Failed to update bookmark"
BOOKMARK_ADDED_MESSAGE = "Recipe added to bookmarks"
BOOKMARK_REMOVED_MESSAGE = "Recipe removed from bookmarks"


@dataclass(frozen=True)
class RecipeCard:
    recipe: RecipeSummary
    bookmarked: bool = False

    @property
    def id(self) -> int:
        return self.recipe.id


def apply_bookmark_event(card: RecipeCard, event: DomainEvent) -> RecipeCard:
    bookmarked = event.kind == EventKind.BOOKMARK_ADDED
    if card.bookmarked == bookmarked:
        return card
    return replace(card, bookmarked=bookmarked)


def apply_bookmark_removal(record: BookmarkRecord, event: DomainEvent) -> Optional[BookmarkRecord]:
    if event.kind == EventKind.BOOKMARK_REMOVED:
        return None
    return record


class RecipeFeedController(UserListController[RecipeCard]):
    """Catalog recipes decorated with the signed-in user's bookmark state."""

    load_error_message = "Failed to load recipes"
    sign_in_message = LOGIN_TO_BOOKMARK

    def __init__(
        self,
        *,
        bus: EventBus,
        catalog: RecipeCatalog,
        bookmarks: BookmarkService,
        auth: AuthSession,
        random_count: int = 4,
        name: Optional[str] = None,
    ):
        super().__init__(
            bus=bus,
            auth=auth,
            key=lambda card: card.recipe.id,
            reconciler=apply_bookmark_event,
            subscriptions=BOOKMARK_EVENTS,
            name=name,
        )
        self._catalog = catalog
        self._bookmarks = bookmarks
        self.search_query = ""
        self.set_fetcher(self.cards_from(lambda: self._catalog.get_random_recipes(random_count)))

    def cards_from(
        self,
        load_recipes: Callable[[], Awaitable[Sequence[RecipeSummary]]],
    ) -> Callable[[], Awaitable[list[RecipeCard]]]:
        async def fetcher() -> list[RecipeCard]:
            recipes = list(await load_recipes())
            user = self._auth.current_user
            bookmarked: set[int] = set()
            if user is not None and recipes:
                bookmarked = await self._bookmarks.bookmarked_ids(user.id, [r.id for r in recipes])
            return [RecipeCard(recipe, recipe.id in bookmarked) for recipe in recipes]

        return fetcher

    def items_for_user(self, user: Optional[CurrentUser]) -> list[RecipeCard]:
        # catalog recipes stay, the previous user's bookmark flags do not
        return [replace(card, bookmarked=False) if card.bookmarked else card for card in self.items]

    async def refresh_bookmark(self, recipe_id: int) -> Optional[RecipeCard]:
        """Re-read one card's bookmark flag, e.g. when its detail view opens."""
        user = self._auth.current_user
        card = self.get(recipe_id)
        if user is None or card is None or self.is_pending(recipe_id):
            return card
        try:
            bookmarked = await self._bookmarks.is_bookmarked(user.id, recipe_id)
        except RecipeBoxError as error:
            logger.warning("bookmark.status_failed recipe=%s error=%s", recipe_id, error)
            return card
        # the list may have changed while the call ran
        card = self.get(recipe_id)
        if card is not None and card.bookmarked != bookmarked and not self.is_pending(recipe_id):
            card = replace(card, bookmarked=bookmarked)
            self._items[self._index_of(recipe_id)] = card
        return card

    async def search(self, query: str, number: int = 10) -> bool:
        text = query.strip()
        if not text:
            return False
        self.search_query = text
        self.set_fetcher(self.cards_from(lambda: self._catalog.search_recipes(text, number)))
        return await self.load()

    async def toggle_bookmark(self, recipe_id: int) -> MutationResult:
        user, refused = self.signed_in_user(recipe_id)
        if user is None:
            return refused

        card = self.get(recipe_id)
        adding = card is not None and not card.bookmarked

        async def remote() -> None:
            if adding:
                await self._bookmarks.add_bookmark(user.id, card.recipe)
            else:
                await self._bookmarks.remove_bookmark(user.id, recipe_id)

        event = DomainEvent.bookmark_added(recipe_id) if adding else DomainEvent.bookmark_removed(recipe_id)
        result = await self.mutate_optimistic(
            recipe_id,
            lambda current: replace(current, bookmarked=adding),
            remote,
            event,
            error_message=BOOKMARK_FAILED,
        )
        if result.succeeded:
            self.notify(BOOKMARK_ADDED_MESSAGE if adding else BOOKMARK_REMOVED_MESSAGE)
            logger.info("bookmark.toggle_committed recipe=%s bookmarked=%s", recipe_id, adding)
        return result

    def search_fields(self, item: RecipeCard) -> tuple[str, ...]:
        return (item.recipe.title,)


class BookmarksController(UserListController[BookmarkRecord]):
    """The signed-in user's bookmarks, newest first."""

    load_error_message = "Failed to load bookmarks"
    sign_in_message = LOGIN_TO_BOOKMARK

    def __init__(
        self,
        *,
        bus: EventBus,
        bookmarks: BookmarkService,
        auth: AuthSession,
        name: Optional[str] = None,
    ):
        super().__init__(
            bus=bus,
            auth=auth,
            key=lambda record: record.recipe_id,
            reconciler=apply_bookmark_removal,
            subscriptions=BOOKMARK_EVENTS,
            name=name,
        )
        self._bookmarks = bookmarks
        self.set_fetcher(self.for_user(self._bookmarks.list_bookmarks))

    def reconcile_missing(self, event: DomainEvent) -> None:
        # the row data lives only in the backend, refetch on next focus
        if event.kind == EventKind.BOOKMARK_ADDED:
            self.stale = True
            logger.debug("bookmarks.marked_stale recipe=%s", event.recipe_id)

    async def remove_bookmark(self, recipe_id: int) -> MutationResult:
        user, refused = self.signed_in_user(recipe_id)
        if user is None:
            return refused

        result = await self.mutate_optimistic(
            recipe_id,
            lambda record: None,
            lambda: self._bookmarks.remove_bookmark(user.id, recipe_id),
            DomainEvent.bookmark_removed(recipe_id),
            error_message=BOOKMARK_FAILED,
        )
        if result.succeeded:
            self.notify(BOOKMARK_REMOVED_MESSAGE)
        return result

    def search_fields(self, item: BookmarkRecord) -> tuple[str, ...]:
        return (item.recipe_title, item.recipe_source)
