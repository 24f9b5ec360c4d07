# recipebox/app/controllers/list_data.py
"""
Generic state holder for list screens.

Every list screen follows the same cycle: fetch on focus, render, mutate
one item optimistically, confirm or revert, and reconcile with changes
made on other screens. ``ListDataController`` implements that cycle once;
screens parameterize it with a fetcher, a key function and a reconciler.

All work happens on one asyncio loop. Remote calls are the only
suspension points, so the in-memory state never needs locking.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Hashable, Iterable, Optional, Sequence, TypeVar

from recipebox.app.domain.errors import RemoteStoreError
from recipebox.app.domain.models import (
    ControllerStatus,
    DomainEvent,
    EventKind,
    MutationResult,
    MutationState,
    Notice,
    NoticeLevel,
)
from recipebox.app.services.event_bus import EventBus, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[Sequence[T]]]
Reconciler = Callable[[T, DomainEvent], Optional[T]]

DEFAULT_LOAD_ERROR = "Failed to load data"
DEFAULT_MUTATION_ERROR = "Failed to save your change"
BUSY_MESSAGE = "A change for this item is already in progress"
UNAVAILABLE_MESSAGE = "This item is no longer available"


def describe_error(error: BaseException) -> str:
    if isinstance(error, RemoteStoreError):
        return error.message
    return str(error) or type(error).__name__


@dataclass
class PendingMutation(Generic[T]):
    previous: T
    index: int
    removed: bool


class ListDataController(Generic[T]):
    """
    Fetch / optimistic-mutate / reconcile cycle for one screen.

    Items are never cleared while a reload is in flight, and a failed load
    keeps the last good items. An optimistic change is either committed
    (and published on the bus) or reverted to its exact previous value.
    """

    load_error_message = DEFAULT_LOAD_ERROR
    mutation_error_message = DEFAULT_MUTATION_ERROR

    def __init__(
        self,
        *,
        bus: EventBus,
        key: Callable[[T], Hashable],
        fetcher: Optional[Fetcher] = None,
        reconciler: Optional[Reconciler] = None,
        event_key: Optional[Callable[[DomainEvent], Hashable]] = None,
        equals: Optional[Callable[[T, T], bool]] = None,
        subscriptions: Iterable[EventKind] = (),
        name: Optional[str] = None,
    ):
        self._bus = bus
        self._key = key
        self._fetcher = fetcher
        self._reconciler = reconciler
        self._event_key = event_key or (lambda event: event.recipe_id)
        self._equals = equals or (lambda a, b: a == b)
        self._subscription_kinds = tuple(subscriptions)
        self.name = name or type(self).__name__

        self.status = ControllerStatus.IDLE
        self.error: Optional[Notice] = None
        self.notices: list[Notice] = []
        self.stale = False

        self._items: list[T] = []
        self._pending: dict[Hashable, PendingMutation[T]] = {}
        self._outcomes: dict[Hashable, MutationState] = {}
        self._deferred: dict[Hashable, list[DomainEvent]] = {}
        self._events_during_load: list[DomainEvent] = []
        self._subscriptions: list[Subscription] = []
        self._mounted = False
        self._load_generation = 0

    # -- read side -------------------------------------------------------

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def pending_ids(self) -> frozenset:
        return frozenset(self._pending)

    @property
    def is_loading(self) -> bool:
        return self.status in (ControllerStatus.LOADING, ControllerStatus.REFRESHING)

    def is_pending(self, item_id: Hashable) -> bool:
        return item_id in self._pending

    def mutation_state(self, item_id: Hashable) -> Optional[MutationState]:
        """PENDING while a mutation is in flight, else the last outcome (None if never mutated)."""
        if item_id in self._pending:
            return MutationState.PENDING
        return self._outcomes.get(item_id)

    def get(self, item_id: Hashable) -> Optional[T]:
        index = self._index_of(item_id)
        return None if index is None else self._items[index]

    def _index_of(self, item_id: Hashable) -> Optional[int]:
        for index, item in enumerate(self._items):
            if self._key(item) == item_id:
                return index
        return None

    # -- lifecycle -------------------------------------------------------

    def mount(self) -> "ListDataController[T]":
        if self._mounted:
            return self
        self._mounted = True
        for kind in self._subscription_kinds:
            self._subscriptions.append(self._bus.subscribe(kind, self.reconcile))
        logger.debug("list_controller.mounted name=%s", self.name)
        return self

    def unmount(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self._deferred.clear()
        self._events_during_load.clear()
        self._mounted = False
        logger.debug("list_controller.unmounted name=%s", self.name)

    def set_fetcher(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher

    def replace_items(self, items: Iterable[T]) -> None:
        """
        Swap the displayed items wholesale, e.g. after the signed-in user changed.

        In-flight loads are discarded and pending mutations are detached:
        they still finish remotely but neither restore nor publish here.
        """
        self._load_generation += 1
        self._items = list(items)
        self._pending.clear()
        self._outcomes.clear()
        self._deferred.clear()
        self._events_during_load.clear()
        if self.is_loading:
            self.status = ControllerStatus.IDLE
        self.error = None
        logger.debug("list_controller.items_replaced name=%s count=%d", self.name, len(self._items))

    async def on_focus(self) -> bool:
        return await self.load()

    async def refresh(self) -> bool:
        return await self.load()

    # -- load ------------------------------------------------------------

    async def load(self, fetcher: Optional[Fetcher] = None) -> bool:
        """
        Fetch the collection and replace the displayed items.

        Returns:
            True if the fetched items were applied
        """
        fetch = fetcher or self._fetcher
        if fetch is None:
            raise ValueError(f"{self.name} has no fetcher configured")
        if not self._mounted:
            logger.debug("list_controller.load_ignored_unmounted name=%s", self.name)
            return False

        self._load_generation += 1
        generation = self._load_generation
        self.status = ControllerStatus.REFRESHING if self._items else ControllerStatus.LOADING
        self._events_during_load.clear()

        try:
            fetched = list(await fetch())
        except Exception as error:
            if not self._is_current(generation):
                return False
            self.status = ControllerStatus.ERROR
            self.surface_error(self.load_error_message, error, retryable=True)
            logger.warning("list_controller.load_failed name=%s error=%s", self.name, error)
            return False

        if not self._is_current(generation):
            logger.debug("list_controller.load_discarded name=%s", self.name)
            return False

        self._items = self._merge_pending(fetched)
        self.stale = False
        replay, self._events_during_load = self._events_during_load, []
        for event in replay:
            if self._event_key(event) not in self._pending:
                self._apply_event(event)

        self.status = ControllerStatus.READY
        self.error = None
        logger.debug("list_controller.loaded name=%s count=%d", self.name, len(self._items))
        return True

    def _is_current(self, generation: int) -> bool:
        return self._mounted and generation == self._load_generation

    def _merge_pending(self, fetched: list[T]) -> list[T]:
        if not self._pending:
            return fetched
        merged = []
        for item in fetched:
            item_id = self._key(item)
            pending = self._pending.get(item_id)
            if pending is None:
                merged.append(item)
                continue
            # a revert must restore the fetched value, not the pre-load one
            pending.previous = item
            pending.index = len(merged)
            if not pending.removed:
                local = self.get(item_id)
                merged.append(local if local is not None else item)
        return merged

    # -- optimistic mutation ---------------------------------------------

    async def mutate_optimistic(
        self,
        item_id: Hashable,
        local_update: Callable[[T], Optional[T]],
        remote_mutation: Callable[[], Awaitable[object]],
        event: Optional[DomainEvent] = None,
        *,
        error_message: Optional[str] = None,
    ) -> MutationResult:
        """
        Apply ``local_update`` now and confirm it with ``remote_mutation``.

        ``local_update`` returning None removes the item. On success the new
        value stays and ``event`` is published once; on failure the previous
        value is restored at its original position and an error notice is
        surfaced. Remote failures never propagate to the caller.

        An item that is not displayed (filtered out by a newer search, or
        removed by another screen) is skipped with an error notice.
        """
        if item_id in self._pending:
            logger.info("list_controller.mutation_skipped name=%s item=%s", self.name, item_id)
            return MutationResult(item_id, MutationState.SKIPPED, BUSY_MESSAGE)

        index = self._index_of(item_id)
        if index is None:
            self.surface_error(UNAVAILABLE_MESSAGE)
            logger.info("list_controller.mutation_unknown_item name=%s item=%s", self.name, item_id)
            return MutationResult(item_id, MutationState.SKIPPED, UNAVAILABLE_MESSAGE)

        previous = self._items[index]
        updated = local_update(previous)
        if updated is None:
            del self._items[index]
        else:
            self._items[index] = updated
        pending = PendingMutation(previous=previous, index=index, removed=updated is None)
        self._pending[item_id] = pending

        try:
            await remote_mutation()
        except Exception as error:
            detached = self._pending.get(item_id) is not pending
            if detached:
                logger.debug("list_controller.revert_detached name=%s item=%s", self.name, item_id)
                return MutationResult(item_id, MutationState.REVERTED, describe_error(error))
            self._pending.pop(item_id, None)
            self._outcomes[item_id] = MutationState.REVERTED
            if not self._mounted:
                logger.debug("list_controller.revert_discarded name=%s item=%s", self.name, item_id)
                return MutationResult(item_id, MutationState.REVERTED, describe_error(error))
            self._restore(item_id, pending)
            self.surface_error(error_message or self.mutation_error_message, error)
            logger.warning(
                "list_controller.mutation_reverted name=%s item=%s error=%s", self.name, item_id, error
            )
            for deferred in self._deferred.pop(item_id, []):
                self._apply_event(deferred)
            return MutationResult(item_id, MutationState.REVERTED, describe_error(error))

        if self._pending.get(item_id) is not pending:
            # the list was replaced (e.g. sign-out) while the call ran
            logger.info("list_controller.commit_detached name=%s item=%s", self.name, item_id)
            return MutationResult(item_id, MutationState.COMMITTED)
        self._pending.pop(item_id, None)
        self._outcomes[item_id] = MutationState.COMMITTED
        dropped = self._deferred.pop(item_id, [])
        if dropped:
            logger.info(
                "list_controller.deferred_events_dropped name=%s item=%s count=%d",
                self.name, item_id, len(dropped),
            )
        logger.info("list_controller.mutation_committed name=%s item=%s", self.name, item_id)
        if event is not None:
            self._bus.publish(event.kind, event)
        return MutationResult(item_id, MutationState.COMMITTED)

    def _restore(self, item_id: Hashable, pending: PendingMutation[T]) -> None:
        index = self._index_of(item_id)
        if pending.removed:
            if index is None:
                self._items.insert(min(pending.index, len(self._items)), pending.previous)
        elif index is not None:
            self._items[index] = pending.previous

    # -- reconciliation --------------------------------------------------

    def reconcile(self, event: DomainEvent) -> None:
        """
        Apply a change that another screen already made remotely.

        Idempotent. While a local mutation of the same item is in flight
        the event is held back; it is dropped if the local mutation commits
        and replayed if it reverts.
        """
        if not self._mounted:
            return
        if self.is_loading:
            self._events_during_load.append(event)
        item_id = self._event_key(event)
        if item_id in self._pending:
            self._deferred.setdefault(item_id, []).append(event)
            logger.debug("list_controller.event_deferred name=%s item=%s", self.name, item_id)
            return
        self._apply_event(event)

    def _apply_event(self, event: DomainEvent) -> None:
        item_id = self._event_key(event)
        index = self._index_of(item_id)
        if index is None:
            self.reconcile_missing(event)
            return
        if self._reconciler is None:
            return
        current = self._items[index]
        updated = self._reconciler(current, event)
        if updated is None:
            del self._items[index]
        elif not self._equals(current, updated):
            self._items[index] = updated

    def reconcile_missing(self, event: DomainEvent) -> None:
        """Hook for events about items this screen does not display."""

    # -- notices ---------------------------------------------------------

    def notify(self, message: str) -> None:
        self.notices.append(Notice(message))

    def surface_error(
        self,
        message: str,
        error: Optional[BaseException] = None,
        retryable: bool = False,
    ) -> None:
        context = {"detail": describe_error(error)} if error is not None else {}
        notice = Notice(message, level=NoticeLevel.ERROR, retryable=retryable, context=context)
        self.error = notice
        self.notices.append(notice)

    def dismiss_error(self) -> None:
        self.error = None

    def pop_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices
