"""
Unit tests for the Due-Item Scanner.

Covers:
- A tick claims due items and dispatches them
- The end-to-end scheduled -> publishing -> terminal flow
- Concurrent scanners never publish an item twice
- Store outages leave items scheduled for the next tick
- Stale claim recovery at startup and on every tick
- Claims limited to the dispatcher's free capacity
"""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

from adapters.social.base import PostResult
from core.domain.content_item import ContentItem, ContentStatus, Platform
from core.domain.errors import StoreUnavailableError
from services.due_scanner import DueItemScanner, claim_item
from services.publication_worker import PUBLICATION_INTERRUPTED, PublicationWorker
from services.publish_queue import PublicationDispatcher
from conftest import make_adapter

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def _scheduled(owner_id: str, at: datetime, targets=(Platform.TWITTER,)) -> ContentItem:
    return ContentItem(
        owner_id=owner_id,
        body="Scheduled hello",
        targets=list(targets),
        scheduled_at=at,
        status=ContentStatus.SCHEDULED,
    )


def _scanner(content_store, account_store, adapter_factory, dispatcher=None, clock=lambda: NOW):
    worker = PublicationWorker(content_store, account_store, adapter_factory=adapter_factory)
    return DueItemScanner(
        store=content_store,
        worker=worker,
        dispatcher=dispatcher or PublicationDispatcher(max_concurrent=5),
        interval_seconds=0.01,
        batch_size=50,
        stale_claim_minutes=15,
        clock=clock,
    )


async def test_claim_item_is_won_once(content_store, owner_id):
    item = await content_store.add(_scheduled(owner_id, NOW - timedelta(minutes=1)))

    assert await claim_item(content_store, item.id, NOW)
    assert not await claim_item(content_store, item.id, NOW)

    stored = await content_store.get(item.id)
    assert stored.status == ContentStatus.PUBLISHING
    assert stored.claimed_at == NOW


async def test_scan_once_claims_only_due_items(
    content_store, account_store, adapter_factory, owner_id, linked_accounts
):
    due = await content_store.add(_scheduled(owner_id, NOW - timedelta(seconds=1)))
    future = await content_store.add(_scheduled(owner_id, NOW + timedelta(minutes=5)))
    dispatcher = PublicationDispatcher()
    scanner = _scanner(content_store, account_store, adapter_factory, dispatcher)

    claimed = await scanner.scan_once()
    await dispatcher.drain(timeout=5)

    assert claimed == 1
    assert (await content_store.get(due.id)).status == ContentStatus.PUBLISHED
    assert (await content_store.get(future.id)).status == ContentStatus.SCHEDULED
    assert scanner.stats()["ticks"] == 1
    assert scanner.stats()["last_claimed"] == 1


async def test_scheduled_item_is_published_with_mixed_results(
    content_store, account_store, adapters, adapter_factory, owner_id, linked_accounts
):
    adapters[Platform.TWITTER] = make_adapter(Platform.TWITTER, post_id="t1")
    adapters[Platform.LINKEDIN] = make_adapter(Platform.LINKEDIN, error="rate_limited")
    item = await content_store.add(
        _scheduled(owner_id, NOW + timedelta(seconds=60), [Platform.TWITTER, Platform.LINKEDIN])
    )
    clock = {"now": NOW}
    dispatcher = PublicationDispatcher()
    scanner = _scanner(
        content_store, account_store, adapter_factory, dispatcher, clock=lambda: clock["now"]
    )

    # Not yet due
    assert await scanner.scan_once() == 0

    clock["now"] = NOW + timedelta(seconds=61)
    assert await scanner.scan_once() == 1
    await dispatcher.drain(timeout=5)

    stored = await content_store.get(item.id)
    assert stored.status == ContentStatus.PARTIALLY_PUBLISHED
    assert stored.per_target_result[Platform.TWITTER].success
    assert stored.per_target_result[Platform.TWITTER].external_id == "t1"
    assert not stored.per_target_result[Platform.LINKEDIN].success
    assert stored.per_target_result[Platform.LINKEDIN].error == "rate_limited"


async def test_concurrent_scanners_publish_each_item_once(
    content_store, account_store, adapters, adapter_factory, owner_id, linked_accounts
):
    items = [
        await content_store.add(_scheduled(owner_id, NOW - timedelta(minutes=i + 1)))
        for i in range(3)
    ]
    dispatcher_a = PublicationDispatcher()
    dispatcher_b = PublicationDispatcher()
    scanner_a = _scanner(content_store, account_store, adapter_factory, dispatcher_a)
    scanner_b = _scanner(content_store, account_store, adapter_factory, dispatcher_b)

    claimed_a, claimed_b = await asyncio.gather(scanner_a.scan_once(), scanner_b.scan_once())
    await dispatcher_a.drain(timeout=5)
    await dispatcher_b.drain(timeout=5)

    assert claimed_a + claimed_b == 3
    assert adapters[Platform.TWITTER].publish.await_count == 3
    for item in items:
        assert (await content_store.get(item.id)).status == ContentStatus.PUBLISHED


async def test_store_outage_on_query_skips_tick(content_store, account_store, adapter_factory):
    scanner = _scanner(content_store, account_store, adapter_factory)
    scanner.store = AsyncMock()
    scanner.store.find_due.side_effect = StoreUnavailableError("Content store is unavailable")

    assert await scanner.scan_once() == 0
    assert scanner.stats()["ticks"] == 1


async def test_store_outage_on_claim_leaves_item_scheduled(
    content_store, account_store, adapter_factory, owner_id
):
    item = await content_store.add(_scheduled(owner_id, NOW - timedelta(minutes=1)))
    dispatcher = PublicationDispatcher()
    scanner = _scanner(content_store, account_store, adapter_factory, dispatcher)
    scanner.store = AsyncMock()
    scanner.store.find_due.return_value = [item.id]
    scanner.store.transition.side_effect = StoreUnavailableError("Content store is unavailable")

    assert await scanner.scan_once() == 0
    assert dispatcher.get_status(item.id) is None
    assert (await content_store.get(item.id)).status == ContentStatus.SCHEDULED


async def test_start_and_stop_loop(content_store, account_store, adapter_factory):
    scanner = _scanner(content_store, account_store, adapter_factory)

    task = asyncio.create_task(scanner.start())
    await asyncio.sleep(0.05)
    assert scanner.is_running
    assert scanner.ticks >= 1

    await scanner.stop()
    await asyncio.wait_for(task, timeout=1)
    assert not scanner.is_running


async def test_recover_stale_claims(content_store, account_store, adapters, adapter_factory, owner_id):
    stale = await content_store.add(
        ContentItem(
            owner_id=owner_id,
            body="Interrupted",
            targets=[Platform.TWITTER, Platform.LINKEDIN],
            scheduled_at=NOW - timedelta(hours=1),
            status=ContentStatus.PUBLISHING,
            claimed_at=NOW - timedelta(hours=1),
        )
    )
    fresh = await content_store.add(
        ContentItem(
            owner_id=owner_id,
            body="In flight",
            targets=[Platform.TWITTER],
            scheduled_at=NOW - timedelta(minutes=1),
            status=ContentStatus.PUBLISHING,
            claimed_at=NOW - timedelta(minutes=1),
        )
    )
    scanner = _scanner(content_store, account_store, adapter_factory)

    assert await scanner.recover_stale_claims() == 1

    recovered = await content_store.get(stale.id)
    assert recovered.status == ContentStatus.FAILED
    assert {r.error for r in recovered.per_target_result.values()} == {PUBLICATION_INTERRUPTED}
    assert (await content_store.get(fresh.id)).status == ContentStatus.PUBLISHING
    adapters[Platform.TWITTER].publish.assert_not_awaited()


def _orphan(owner_id: str, claimed_at: datetime) -> ContentItem:
    return ContentItem(
        owner_id=owner_id,
        body="Cut off mid-publication",
        targets=[Platform.TWITTER],
        scheduled_at=claimed_at,
        status=ContentStatus.PUBLISHING,
        claimed_at=claimed_at,
    )


async def test_tick_recovers_claim_orphaned_by_quick_restart(
    content_store, account_store, adapters, adapter_factory, owner_id
):
    # Cancelled by a shutdown one minute before the new process started
    orphan = await content_store.add(_orphan(owner_id, NOW - timedelta(minutes=1)))
    clock = {"now": NOW}
    scanner = _scanner(content_store, account_store, adapter_factory, clock=lambda: clock["now"])

    assert await scanner.recover_stale_claims() == 0
    assert (await content_store.get(orphan.id)).status == ContentStatus.PUBLISHING

    clock["now"] = NOW + timedelta(minutes=20)
    await scanner.scan_once()

    stored = await content_store.get(orphan.id)
    assert stored.status == ContentStatus.FAILED
    assert stored.per_target_result[Platform.TWITTER].error == PUBLICATION_INTERRUPTED
    assert scanner.stats()["recovered_total"] == 1
    adapters[Platform.TWITTER].publish.assert_not_awaited()


async def test_recovery_skips_publications_running_in_this_process(
    content_store, account_store, adapter_factory, owner_id
):
    item = await content_store.add(_orphan(owner_id, NOW - timedelta(hours=1)))
    dispatcher = PublicationDispatcher()
    release = asyncio.Event()
    await dispatcher.enqueue(item.id, release.wait())
    scanner = _scanner(content_store, account_store, adapter_factory, dispatcher)

    assert await scanner.recover_stale_claims() == 0
    assert (await content_store.get(item.id)).status == ContentStatus.PUBLISHING

    release.set()
    await dispatcher.drain(timeout=1)
    assert await scanner.recover_stale_claims() == 1


async def test_recovery_outage_does_not_block_due_items(
    content_store, account_store, adapter_factory, owner_id, linked_accounts
):
    due = await content_store.add(_scheduled(owner_id, NOW - timedelta(minutes=1)))
    dispatcher = PublicationDispatcher()
    scanner = _scanner(content_store, account_store, adapter_factory, dispatcher)
    scanner.recover_stale_claims = AsyncMock(
        side_effect=StoreUnavailableError("Content store is unavailable")
    )

    assert await scanner.scan_once() == 1
    await dispatcher.drain(timeout=5)
    assert (await content_store.get(due.id)).status == ContentStatus.PUBLISHED


async def test_scan_claims_only_what_the_dispatcher_can_start(
    content_store, account_store, adapters, adapter_factory, owner_id, linked_accounts
):
    release = asyncio.Event()

    async def slow_publish(*args, **kwargs):
        await release.wait()
        return PostResult(success=True, post_id="slow")

    adapters[Platform.TWITTER] = make_adapter(Platform.TWITTER, side_effect=slow_publish)
    items = [
        await content_store.add(_scheduled(owner_id, NOW - timedelta(minutes=i + 1)))
        for i in range(5)
    ]
    dispatcher = PublicationDispatcher(max_concurrent=1)
    scanner = _scanner(content_store, account_store, adapter_factory, dispatcher)

    assert await scanner.scan_once() == 1
    # Nothing more is claimed while the only slot is busy
    assert await scanner.scan_once() == 0

    statuses = [(await content_store.get(i.id)).status for i in items]
    assert statuses.count(ContentStatus.PUBLISHING) == 1
    assert statuses.count(ContentStatus.SCHEDULED) == 4
    assert dispatcher.available() == 0

    release.set()
    await dispatcher.drain(timeout=5)
    assert dispatcher.available() == 1
    assert await scanner.scan_once() == 1
    await dispatcher.drain(timeout=5)


async def test_explicit_zero_settings_are_kept(content_store, account_store, adapter_factory):
    worker = PublicationWorker(content_store, account_store, adapter_factory=adapter_factory)
    scanner = DueItemScanner(
        store=content_store,
        worker=worker,
        dispatcher=PublicationDispatcher(),
        interval_seconds=0,
        stale_claim_minutes=0,
    )

    assert scanner.check_interval == 0
    assert scanner.stale_claim_minutes == 0
