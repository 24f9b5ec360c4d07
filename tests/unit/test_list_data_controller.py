from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Optional

import pytest

from recipebox.app.controllers.list_data import BUSY_MESSAGE, UNAVAILABLE_MESSAGE, ListDataController
from recipebox.app.domain.errors import RemoteStoreError
from recipebox.app.domain.models import (
    ControllerStatus,
    DomainEvent,
    EventKind,
    MutationState,
)
from recipebox.app.services.event_bus import EventBus

BOTH_KINDS = (EventKind.BOOKMARK_ADDED, EventKind.BOOKMARK_REMOVED)


@dataclass(frozen=True)
class Card:
    id: int
    bookmarked: bool = False


def set_from_event(card: Card, event: DomainEvent) -> Optional[Card]:
    flag = event.kind == EventKind.BOOKMARK_ADDED
    return card if card.bookmarked == flag else replace(card, bookmarked=flag)


def bookmark(card: Card) -> Card:
    return replace(card, bookmarked=True)


class FetcherStub:
    def __init__(self, *batches: object) -> None:
        self.batches = list(batches)
        self.calls = 0

    async def __call__(self) -> list:
        self.calls += 1
        result = self.batches.pop(0) if len(self.batches) > 1 else self.batches[0]
        if isinstance(result, Exception):
            raise result
        return list(result)


class RemoteStub:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


class GatedRemote:
    """Remote call that blocks until ``release`` is called."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self) -> None:
        self.gate = asyncio.Event()
        await self.gate.wait()
        if self.error is not None:
            raise self.error

    def release(self) -> None:
        assert self.gate is not None
        self.gate.set()


class MissingRecorder(ListDataController[Card]):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.missing: list[DomainEvent] = []

    def reconcile_missing(self, event: DomainEvent) -> None:
        self.missing.append(event)


def make_controller(bus: EventBus, fetcher: FetcherStub, cls=ListDataController) -> ListDataController[Card]:
    controller = cls(
        bus=bus,
        key=lambda card: card.id,
        fetcher=fetcher,
        reconciler=set_from_event,
        subscriptions=BOTH_KINDS,
    )
    return controller.mount()


def loaded(cards: list[Card], bus: Optional[EventBus] = None, cls=ListDataController) -> ListDataController[Card]:
    controller = make_controller(bus or EventBus(), FetcherStub(cards), cls)
    asyncio.run(controller.load())
    return controller


def network_error() -> RemoteStoreError:
    return RemoteStoreError("Network request failed", retryable=True)


class TestLoad:
    def test_first_load_becomes_ready(self) -> None:
        controller = make_controller(EventBus(), FetcherStub([Card(1), Card(2)]))
        assert controller.status == ControllerStatus.IDLE

        assert asyncio.run(controller.load()) is True

        assert controller.status == ControllerStatus.READY
        assert controller.items == [Card(1), Card(2)]
        assert controller.error is None

    def test_status_while_fetching(self) -> None:
        seen: list = []
        controller: ListDataController[Card]

        async def fetch() -> list[Card]:
            seen.append((controller.status, controller.items))
            return [Card(1)]

        controller = make_controller(EventBus(), FetcherStub([]))
        controller.set_fetcher(fetch)
        asyncio.run(controller.load())
        asyncio.run(controller.refresh())

        assert seen[0] == (ControllerStatus.LOADING, [])
        assert seen[1] == (ControllerStatus.REFRESHING, [Card(1)])

    def test_failed_load_keeps_previous_items(self) -> None:
        controller = make_controller(EventBus(), FetcherStub([Card(1)], network_error()))
        asyncio.run(controller.load())

        assert asyncio.run(controller.refresh()) is False

        assert controller.items == [Card(1)]
        assert controller.status == ControllerStatus.ERROR
        assert controller.error is not None
        assert controller.error.message == "Failed to load data"
        assert controller.error.retryable is True
        assert controller.error.context["detail"] == "Network request failed"

    def test_successful_retry_clears_error(self) -> None:
        controller = make_controller(EventBus(), FetcherStub(network_error(), [Card(1)]))
        asyncio.run(controller.load())
        assert controller.status == ControllerStatus.ERROR

        asyncio.run(controller.on_focus())

        assert controller.status == ControllerStatus.READY
        assert controller.error is None

    def test_load_without_fetcher_raises(self) -> None:
        controller = ListDataController(bus=EventBus(), key=lambda card: card.id).mount()
        with pytest.raises(ValueError):
            asyncio.run(controller.load())

    def test_load_while_unmounted_is_ignored(self) -> None:
        fetcher = FetcherStub([Card(1)])
        controller = ListDataController(bus=EventBus(), key=lambda card: card.id, fetcher=fetcher)

        assert asyncio.run(controller.load()) is False
        assert fetcher.calls == 0

    def test_superseded_load_is_discarded(self) -> None:
        controller = make_controller(EventBus(), FetcherStub([]))

        async def scenario() -> tuple[bool, bool]:
            gate = asyncio.Event()

            async def slow() -> list[Card]:
                await gate.wait()
                return [Card(1)]

            async def fast() -> list[Card]:
                return [Card(2)]

            first = asyncio.create_task(controller.load(slow))
            await asyncio.sleep(0)
            second = await controller.load(fast)
            gate.set()
            return await first, second

        first, second = asyncio.run(scenario())

        assert (first, second) == (False, True)
        assert controller.items == [Card(2)]

    def test_unmount_discards_in_flight_load(self) -> None:
        controller = make_controller(EventBus(), FetcherStub([]))

        async def scenario() -> bool:
            gate = asyncio.Event()

            async def slow() -> list[Card]:
                await gate.wait()
                return [Card(1)]

            task = asyncio.create_task(controller.load(slow))
            await asyncio.sleep(0)
            controller.unmount()
            gate.set()
            return await task

        assert asyncio.run(scenario()) is False
        assert controller.items == []

    def test_events_during_load_are_reapplied(self) -> None:
        controller = loaded([Card(1)])

        async def scenario() -> None:
            gate = asyncio.Event()

            async def stale_snapshot() -> list[Card]:
                await gate.wait()
                return [Card(1, bookmarked=False)]

            task = asyncio.create_task(controller.load(stale_snapshot))
            await asyncio.sleep(0)
            controller.reconcile(DomainEvent.bookmark_added(1))
            gate.set()
            await task

        asyncio.run(scenario())

        assert controller.items == [Card(1, bookmarked=True)]

    def test_load_keeps_optimistic_value_of_pending_item(self) -> None:
        controller = loaded([Card(1), Card(2)])
        remote = GatedRemote()

        async def scenario() -> list[Card]:
            task = asyncio.create_task(controller.mutate_optimistic(1, bookmark, remote))
            await asyncio.sleep(0)
            await controller.load(FetcherStub([Card(1), Card(2), Card(3)]))
            during = controller.items
            remote.release()
            await task
            return during

        during = asyncio.run(scenario())

        assert during == [Card(1, True), Card(2), Card(3)]
        assert controller.items == [Card(1, True), Card(2), Card(3)]


class TestMutateOptimistic:
    def test_commit_keeps_value_and_publishes_once(self) -> None:
        bus = EventBus()
        published: list = []
        controller = loaded([Card(1), Card(42)], bus)
        bus.subscribe(EventKind.BOOKMARK_ADDED, published.append)
        remote = RemoteStub()

        result = asyncio.run(
            controller.mutate_optimistic(42, bookmark, remote, DomainEvent.bookmark_added(42))
        )

        assert result.state == MutationState.COMMITTED
        assert result.succeeded is True
        assert controller.get(42) == Card(42, True)
        assert controller.pending_ids == frozenset()
        assert published == [DomainEvent.bookmark_added(42)]
        assert remote.calls == 1

    def test_revert_restores_exact_previous_value(self) -> None:
        bus = EventBus()
        published: list = []
        controller = loaded([Card(1), Card(42)], bus)
        bus.subscribe(EventKind.BOOKMARK_ADDED, published.append)

        result = asyncio.run(
            controller.mutate_optimistic(
                42,
                bookmark,
                RemoteStub(network_error()),
                DomainEvent.bookmark_added(42),
                error_message="Failed to update bookmark",
            )
        )

        assert result.state == MutationState.REVERTED
        assert result.error == "Network request failed"
        assert controller.items == [Card(1), Card(42)]
        assert controller.is_pending(42) is False
        assert controller.error is not None
        assert controller.error.message == "Failed to update bookmark"
        assert published == []

    def test_optimistic_value_visible_while_pending(self) -> None:
        controller = loaded([Card(42)])
        remote = GatedRemote()

        async def scenario() -> tuple:
            task = asyncio.create_task(controller.mutate_optimistic(42, bookmark, remote))
            await asyncio.sleep(0)
            during = (controller.get(42), controller.is_pending(42))
            remote.release()
            await task
            return during

        assert asyncio.run(scenario()) == (Card(42, True), True)

    def test_removal_revert_restores_original_position(self) -> None:
        controller = loaded([Card(1), Card(2), Card(3)])

        result = asyncio.run(
            controller.mutate_optimistic(2, lambda card: None, RemoteStub(network_error()))
        )

        assert result.state == MutationState.REVERTED
        assert controller.items == [Card(1), Card(2), Card(3)]

    def test_removal_commit_drops_item(self) -> None:
        controller = loaded([Card(1), Card(2), Card(3)])

        asyncio.run(controller.mutate_optimistic(2, lambda card: None, RemoteStub()))

        assert controller.items == [Card(1), Card(3)]

    def test_second_mutation_on_pending_item_is_skipped(self) -> None:
        controller = loaded([Card(42)])
        first_remote = GatedRemote()
        second_remote = RemoteStub()

        async def scenario():
            task = asyncio.create_task(controller.mutate_optimistic(42, bookmark, first_remote))
            await asyncio.sleep(0)
            second = await controller.mutate_optimistic(42, lambda card: None, second_remote)
            first_remote.release()
            return await task, second

        first, second = asyncio.run(scenario())

        assert first.state == MutationState.COMMITTED
        assert second.state == MutationState.SKIPPED
        assert second.error == BUSY_MESSAGE
        assert second_remote.calls == 0
        assert controller.get(42) == Card(42, True)

    def test_unknown_item_is_skipped_with_error(self) -> None:
        controller = loaded([Card(1)])
        remote = RemoteStub()

        result = asyncio.run(controller.mutate_optimistic(99, bookmark, remote))

        assert result.state == MutationState.SKIPPED
        assert result.error == UNAVAILABLE_MESSAGE
        assert remote.calls == 0
        assert controller.items == [Card(1)]
        assert controller.error is not None
        assert controller.error.message == UNAVAILABLE_MESSAGE

    def test_revert_after_reload_restores_fetched_value(self) -> None:
        controller = loaded([Card(1), Card(2), Card(3)])
        remote = GatedRemote(network_error())

        async def scenario() -> list:
            task = asyncio.create_task(controller.mutate_optimistic(2, lambda card: None, remote))
            await asyncio.sleep(0)
            # another device bookmarked card 2 in the meantime
            await controller.load(FetcherStub([Card(1), Card(2, True), Card(3)]))
            during = controller.items
            remote.release()
            await task
            return during

        during = asyncio.run(scenario())

        assert during == [Card(1), Card(3)]
        assert controller.items == [Card(1), Card(2, True), Card(3)]

    def test_revert_of_update_after_reload_restores_fetched_value(self) -> None:
        controller = loaded([Card(42)])
        remote = GatedRemote(network_error())

        async def scenario() -> None:
            task = asyncio.create_task(
                controller.mutate_optimistic(42, lambda card: replace(card, bookmarked=False), remote)
            )
            await asyncio.sleep(0)
            await controller.load(FetcherStub([Card(42, True)]))
            remote.release()
            await task

        asyncio.run(scenario())

        assert controller.items == [Card(42, True)]

    def test_failure_after_unmount_surfaces_nothing(self) -> None:
        controller = loaded([Card(42)])
        remote = GatedRemote(network_error())

        async def scenario():
            task = asyncio.create_task(controller.mutate_optimistic(42, bookmark, remote))
            await asyncio.sleep(0)
            controller.unmount()
            remote.release()
            return await task

        result = asyncio.run(scenario())

        assert result.state == MutationState.REVERTED
        assert controller.error is None
        assert controller.notices == []


class TestReconcile:
    def test_reconcile_is_idempotent(self) -> None:
        controller = loaded([Card(1), Card(42)])
        event = DomainEvent.bookmark_added(42)

        controller.reconcile(event)
        once = controller.items
        controller.reconcile(event)

        assert controller.items == once == [Card(1), Card(42, True)]

    def test_subscribed_controller_reconciles_published_events(self) -> None:
        bus = EventBus()
        controller = loaded([Card(42)], bus)

        bus.publish(EventKind.BOOKMARK_ADDED, DomainEvent.bookmark_added(42))

        assert controller.get(42) == Card(42, True)

    def test_unknown_item_goes_to_missing_hook(self) -> None:
        controller = loaded([Card(1)], cls=MissingRecorder)

        controller.reconcile(DomainEvent.bookmark_added(99))

        assert controller.missing == [DomainEvent.bookmark_added(99)]
        assert controller.items == [Card(1)]

    def test_unmounted_controller_ignores_events(self) -> None:
        bus = EventBus()
        controller = loaded([Card(42)], bus)
        controller.unmount()

        bus.publish(EventKind.BOOKMARK_ADDED, DomainEvent.bookmark_added(42))
        controller.reconcile(DomainEvent.bookmark_added(42))

        assert controller.get(42) == Card(42)
        assert bus.listener_count(EventKind.BOOKMARK_ADDED) == 0

    def test_local_commit_wins_over_deferred_event(self) -> None:
        controller = loaded([Card(42)])
        remote = GatedRemote()

        async def scenario() -> Card:
            task = asyncio.create_task(controller.mutate_optimistic(42, bookmark, remote))
            await asyncio.sleep(0)
            controller.reconcile(DomainEvent.bookmark_removed(42))
            during = controller.get(42)
            remote.release()
            await task
            return during

        during = asyncio.run(scenario())

        assert during == Card(42, True)
        assert controller.get(42) == Card(42, True)

    def test_deferred_event_replayed_after_revert(self) -> None:
        controller = loaded([Card(42)])
        remote = GatedRemote(network_error())

        async def scenario() -> None:
            task = asyncio.create_task(controller.mutate_optimistic(42, bookmark, remote))
            await asyncio.sleep(0)
            controller.reconcile(DomainEvent.bookmark_added(42))
            remote.release()
            await task

        asyncio.run(scenario())

        assert controller.get(42) == Card(42, True)
        assert controller.is_pending(42) is False

    def test_agreeing_deferred_event_leaves_reverted_value(self) -> None:
        controller = loaded([Card(42)])
        remote = GatedRemote(network_error())

        async def scenario() -> None:
            task = asyncio.create_task(controller.mutate_optimistic(42, bookmark, remote))
            await asyncio.sleep(0)
            controller.reconcile(DomainEvent.bookmark_removed(42))
            remote.release()
            await task

        asyncio.run(scenario())

        assert controller.get(42) == Card(42, False)


class TestNotices:
    def test_pop_notices_drains_queue(self) -> None:
        controller = loaded([Card(1)])
        controller.notify("Recipe added to bookmarks")
        controller.surface_error("Failed to update bookmark", network_error())

        notices = controller.pop_notices()

        assert [n.message for n in notices] == ["Recipe added to bookmarks", "Failed to update bookmark"]
        assert [n.is_error for n in notices] == [False, True]
        assert controller.pop_notices() == []

    def test_dismiss_error(self) -> None:
        controller = loaded([Card(1)])
        controller.surface_error("Failed to update bookmark")

        controller.dismiss_error()

        assert controller.error is None


class TestMutationState:
    def test_none_before_any_mutation(self) -> None:
        controller = loaded([Card(42)])

        assert controller.mutation_state(42) is None

    def test_pending_then_committed(self) -> None:
        controller = loaded([Card(42)])
        remote = GatedRemote()

        async def scenario():
            task = asyncio.create_task(controller.mutate_optimistic(42, bookmark, remote))
            await asyncio.sleep(0)
            during = controller.mutation_state(42)
            remote.release()
            await task
            return during

        assert asyncio.run(scenario()) == MutationState.PENDING
        assert controller.mutation_state(42) == MutationState.COMMITTED

    def test_reverted(self) -> None:
        controller = loaded([Card(42)])

        asyncio.run(controller.mutate_optimistic(42, bookmark, RemoteStub(network_error())))

        assert controller.mutation_state(42) == MutationState.REVERTED


class TestReplaceItems:
    def test_replaces_and_discards_inflight_load(self) -> None:
        controller = make_controller(EventBus(), FetcherStub([Card(1), Card(2)]))
        gate = GatedRemote()

        async def slow_fetch() -> list:
            await gate()
            return [Card(1), Card(2)]

        async def scenario() -> bool:
            task = asyncio.create_task(controller.load(slow_fetch))
            await asyncio.sleep(0)
            controller.replace_items([])
            gate.release()
            return await task

        applied = asyncio.run(scenario())

        assert applied is False
        assert controller.items == []
        assert controller.status == ControllerStatus.IDLE

    def test_detached_mutation_neither_restores_nor_publishes(self) -> None:
        bus = EventBus()
        published: list = []
        controller = loaded([Card(42)], bus)
        bus.subscribe(EventKind.BOOKMARK_ADDED, published.append)
        remote = GatedRemote(network_error())

        async def scenario():
            task = asyncio.create_task(
                controller.mutate_optimistic(42, bookmark, remote, DomainEvent.bookmark_added(42))
            )
            await asyncio.sleep(0)
            controller.replace_items([])
            remote.release()
            return await task

        result = asyncio.run(scenario())

        assert result.state == MutationState.REVERTED
        assert controller.items == []
        assert controller.error is None
        assert controller.mutation_state(42) is None
        assert published == []

    def test_detached_commit_is_not_published(self) -> None:
        bus = EventBus()
        published: list = []
        controller = loaded([Card(42)], bus)
        bus.subscribe(EventKind.BOOKMARK_ADDED, published.append)
        remote = GatedRemote()

        async def scenario():
            task = asyncio.create_task(
                controller.mutate_optimistic(42, bookmark, remote, DomainEvent.bookmark_added(42))
            )
            await asyncio.sleep(0)
            controller.replace_items([Card(7)])
            remote.release()
            return await task

        result = asyncio.run(scenario())

        assert result.state == MutationState.COMMITTED
        assert controller.items == [Card(7)]
        assert published == []
