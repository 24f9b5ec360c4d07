from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Hashable, Optional, Sequence, TypeVar

from recipebox.app.controllers.list_data import ListDataController
from recipebox.app.domain.models import CurrentUser, MutationResult, MutationState
from recipebox.app.infra.auth import AuthSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

SIGN_IN_MESSAGE = "Please sign in to continue"


class UserListController(ListDataController[T]):
    """
    List controller whose data belongs to the signed-in user.

    Loading while signed out shows an empty list; mutations are refused
    before any remote call. While mounted it follows the auth session: a
    sign-out or account switch drops the previous user's data at once and
    marks the screen stale so the next focus refetches.
    """

    sign_in_message = SIGN_IN_MESSAGE

    def __init__(self, *, auth: AuthSession, **kwargs: Any):
        super().__init__(**kwargs)
        self._auth = auth
        self._remove_auth_listener: Optional[Callable[[], None]] = None
        self.query = ""

    def mount(self) -> "UserListController[T]":
        if not self.mounted:
            self._remove_auth_listener = self._auth.on_change(self._user_changed)
        super().mount()
        return self

    def unmount(self) -> None:
        if self._remove_auth_listener is not None:
            self._remove_auth_listener()
            self._remove_auth_listener = None
        super().unmount()

    def _user_changed(self, user: Optional[CurrentUser]) -> None:
        logger.info("list_controller.user_changed name=%s user=%s", self.name, user.id if user else None)
        self.replace_items(self.items_for_user(user))
        self.stale = True

    def items_for_user(self, user: Optional[CurrentUser]) -> list[T]:
        """Items to keep showing after the signed-in user changed."""
        return []

    def signed_in_user(self, item_id: Hashable = None) -> tuple[Optional[CurrentUser], Optional[MutationResult]]:
        if self._auth.is_authenticated:
            return self._auth.current_user, None
        self.notify(self.sign_in_message)
        logger.info("list_controller.auth_required name=%s item=%s", self.name, item_id)
        return None, MutationResult(item_id, MutationState.SKIPPED, self.sign_in_message)

    def for_user(self, fetch: Callable[[str], Awaitable[Sequence[T]]]) -> Callable[[], Awaitable[Sequence[T]]]:
        async def fetcher() -> Sequence[T]:
            user = self._auth.current_user
            if user is None:
                return []
            return await fetch(user.id)

        return fetcher

    def filter(self, text: str) -> list[T]:
        self.query = text.strip()
        return self.visible_items

    @property
    def visible_items(self) -> list[T]:
        needle = self.query.lower()
        if not needle:
            return self.items
        return [item for item in self.items if any(needle in field.lower() for field in self.search_fields(item))]

    def search_fields(self, item: T) -> tuple[str, ...]:
        return ()
