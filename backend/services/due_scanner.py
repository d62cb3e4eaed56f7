"""
Due-Item Scanner.

Periodically finds scheduled items whose time has come, claims each one
with a compare-and-swap from ``scheduled`` to ``publishing`` and hands the
winners to the publication dispatcher. Several scanners (one per replica)
may run against the same database; the claim guarantees a single winner.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Optional

from core.domain.content_item import ContentStatus, utcnow
from core.domain.errors import StoreUnavailableError
from core.interfaces.repositories import ContentItemRepository
from infrastructure.config import settings
from services.publication_worker import PublicationWorker
from services.publish_queue import PublicationDispatcher

logger = logging.getLogger(__name__)


async def claim_item(
    store: ContentItemRepository, item_id: str, now: Optional[datetime] = None
) -> bool:
    """
    Atomically move an item from ``scheduled`` to ``publishing``.

    Returns True only for the caller whose conditional write landed.
    """
    won = await store.transition(
        item_id,
        ContentStatus.SCHEDULED,
        ContentStatus.PUBLISHING,
        claimed_at=now or utcnow(),
    )
    if won:
        logger.info("Claimed item %s for publishing", item_id, extra={"item_id": item_id})
    else:
        logger.info("Item %s already claimed elsewhere; skipping", item_id, extra={"item_id": item_id})
    return won


class DueItemScanner:
    """Fixed-interval sweep over due scheduled items."""

    def __init__(
        self,
        store: ContentItemRepository,
        worker: PublicationWorker,
        dispatcher: PublicationDispatcher,
        interval_seconds: Optional[float] = None,
        batch_size: Optional[int] = None,
        stale_claim_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.worker = worker
        self.dispatcher = dispatcher
        self.check_interval = (
            interval_seconds if interval_seconds is not None else settings.scheduler_interval_seconds
        )
        self.batch_size = batch_size if batch_size is not None else settings.scheduler_batch_size
        self.stale_claim_minutes = (
            stale_claim_minutes if stale_claim_minutes is not None else settings.stale_claim_minutes
        )
        self.clock = clock

        self.is_running = False
        self.ticks = 0
        self.last_tick_at: Optional[datetime] = None
        self.last_claimed = 0
        self.recovered_total = 0

    async def start(self):
        """Start the scanner loop; returns once stop() is called."""
        if self.is_running:
            logger.warning("Due-item scanner is already running")
            return

        self.is_running = True
        logger.info(
            "Due-item scanner started - checking for due items every %d seconds",
            self.check_interval,
        )

        while self.is_running:
            try:
                await self.scan_once()
            except Exception as e:
                logger.error(f"Scanner error: {e}", exc_info=True)

            # Sleep until next check
            await asyncio.sleep(self.check_interval)

    async def stop(self):
        """Stop the scanner after the current tick."""
        if not self.is_running:
            return

        self.is_running = False
        logger.info("Due-item scanner stopped")

    async def scan_once(self) -> int:
        """
        Run a single tick.

        Orphaned claims are finalised first, then at most as many due items
        are claimed as the dispatcher can start immediately; the rest stay
        ``scheduled`` for a later tick.

        Returns:
            Number of items this tick claimed and dispatched
        """
        now = self.clock()
        self.ticks += 1
        self.last_tick_at = now
        self.last_claimed = 0

        try:
            await self.recover_stale_claims()
        except StoreUnavailableError as e:
            logger.error("Stale claim recovery failed, will retry next tick: %s", e)

        capacity = min(self.batch_size, self.dispatcher.available())
        if capacity <= 0:
            logger.debug("Dispatcher is full; leaving due items for the next tick")
            return 0

        try:
            due_ids = await self.store.find_due(now, limit=capacity)
        except StoreUnavailableError as e:
            logger.error("Due-item query failed, will retry next tick: %s", e)
            return 0

        if not due_ids:
            logger.debug("No items due for publishing")
            return 0

        logger.info("Found %d items due for publishing", len(due_ids))

        for item_id in due_ids:
            if self.dispatcher.available() <= 0:
                break
            try:
                won = await claim_item(self.store, item_id, now)
            except StoreUnavailableError as e:
                # Unclaimed items stay scheduled and are picked up next tick
                logger.error("Claim of item %s failed, will retry next tick: %s", item_id, e)
                break
            if won:
                await self.dispatcher.enqueue(item_id, self.worker.publish(item_id))
                self.last_claimed += 1

        return self.last_claimed

    async def recover_stale_claims(self) -> int:
        """
        Finalise items left in ``publishing`` longer than the stale threshold.

        Returns:
            Number of items moved to a terminal status
        """
        cutoff = self.clock() - timedelta(minutes=self.stale_claim_minutes)
        stale_ids = await self.store.find_stale_publishing(cutoff, limit=self.batch_size)

        recovered = 0
        for item_id in stale_ids:
            # Still running in this process; the adapter timeout bounds it
            if self.dispatcher.is_active(item_id):
                continue
            if await self.worker.finalize_stale(item_id) is not None:
                recovered += 1

        self.recovered_total += recovered
        if recovered:
            logger.warning("Recovered %d items stuck in publishing status", recovered)
        return recovered

    def stats(self) -> dict[str, Any]:
        return {
            "running": self.is_running,
            "interval_seconds": self.check_interval,
            "ticks": self.ticks,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_claimed": self.last_claimed,
            "recovered_total": self.recovered_total,
        }
