"""
In-process asyncio dispatcher for claimed publications.

Design goals:
- No external dependencies (no Redis, no Celery).
- Each claimed item runs as an asyncio.Task on the same event loop, so a
  slow platform call never holds up the scanner's next tick.
- At most ``max_concurrent`` publications run at once; the rest wait.
  ``available()`` lets the scanner claim no more than can start.
- Finished records are cleaned up to prevent unbounded memory growth.

Usage::

    from services.publish_queue import publication_dispatcher

    await publication_dispatcher.enqueue(item.id, worker.publish(item.id))
    info = publication_dispatcher.get_status(item.id)
    # info == {"status": "running", "result": None, "error": None, ...}
"""

import asyncio
import logging
from collections.abc import Coroutine
from datetime import UTC, datetime
from typing import Any

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


# ── Internal record stored per publication ───────────────────────────────────


class _DispatchRecord:
    __slots__ = (
        "item_id",
        "status",
        "result",
        "error",
        "created_at",
        "completed_at",
        "_asyncio_task",
    )

    def __init__(self, item_id: str) -> None:
        self.item_id: str = item_id
        self.status: str = "pending"  # pending | running | completed | failed
        self.result: Any = None
        self.error: str | None = None
        self.created_at: datetime = datetime.now(UTC)
        self.completed_at: datetime | None = None
        self._asyncio_task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self.status in ("pending", "running")

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "status": self.status,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


# ── PublicationDispatcher class ──────────────────────────────────────────────


class PublicationDispatcher:
    """Bounded in-memory asyncio dispatcher keyed by content item ID."""

    def __init__(self, max_concurrent: int = 10) -> None:
        self._records: dict[str, _DispatchRecord] = {}
        self._max_concurrent = max(1, max_concurrent)
        self._semaphore: asyncio.Semaphore | None = None

    # ── Public API ────────────────────────────────────────────────────────────

    async def enqueue(self, item_id: str, coro: Coroutine) -> bool:
        """
        Wrap *coro* in an asyncio.Task and track its lifecycle.

        Returns False without scheduling anything when a publication for the
        same item is already pending or running (duplicate protection).
        """
        existing = self._records.get(item_id)
        if existing and existing.active:
            logger.warning(
                "dispatcher.enqueue: item %s is already %s, ignoring duplicate",
                item_id,
                existing.status,
            )
            coro.close()  # clean up the coroutine to avoid RuntimeWarning
            return False

        record = _DispatchRecord(item_id)
        self._records[item_id] = record

        asyncio_task = asyncio.create_task(self._run(record, coro), name=f"publish-{item_id}")
        record._asyncio_task = asyncio_task

        logger.debug("dispatcher: enqueued item %s", item_id)
        return True

    def get_status(self, item_id: str) -> dict[str, Any] | None:
        """Return the status dict for *item_id*, or None if it is unknown."""
        record = self._records.get(item_id)
        if record is None:
            return None
        return record.to_dict()

    def is_active(self, item_id: str) -> bool:
        """True while a publication for *item_id* is pending or running here."""
        record = self._records.get(item_id)
        return record is not None and record.active

    def available(self) -> int:
        """Number of publications that can start right now without waiting."""
        active = sum(1 for rec in self._records.values() if rec.active)
        return max(0, self._max_concurrent - active)

    def cleanup_old(self, max_age_seconds: int = 3600) -> int:
        """
        Remove completed/failed records older than *max_age_seconds*.

        Returns the number of records removed.
        """
        now = datetime.now(UTC)
        to_delete = [
            item_id
            for item_id, rec in self._records.items()
            if not rec.active
            and rec.completed_at is not None
            and (now - rec.completed_at).total_seconds() > max_age_seconds
        ]
        for item_id in to_delete:
            del self._records[item_id]
        if to_delete:
            logger.debug("dispatcher: cleaned up %d old records", len(to_delete))
        return len(to_delete)

    def stats(self) -> dict[str, int]:
        """Return counts by status (useful for health/monitoring endpoints)."""
        counts: dict[str, int] = {"pending": 0, "running": 0, "completed": 0, "failed": 0}
        for rec in self._records.values():
            counts[rec.status] = counts.get(rec.status, 0) + 1
        return counts

    async def drain(self, timeout: float) -> int:
        """
        Wait up to *timeout* seconds for in-flight publications, then cancel
        whatever is still running.

        Returns the number of publications that had to be cancelled.
        """
        tasks = [
            rec._asyncio_task
            for rec in self._records.values()
            if rec.active and rec._asyncio_task is not None
        ]
        if not tasks:
            return 0

        logger.info("dispatcher: draining %d in-flight publications", len(tasks))
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "dispatcher: cancelled %d publications still running after %.0fs",
                len(pending),
                timeout,
            )
        return len(pending)

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _get_semaphore(self) -> asyncio.Semaphore:
        # Created lazily so it binds to the running event loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
        return self._semaphore

    async def _run(self, record: _DispatchRecord, coro: Coroutine) -> None:
        """Execute *coro* under the concurrency cap, update *record* with outcome."""
        try:
            async with self._get_semaphore():
                record.status = "running"
                record.result = await coro
            record.status = "completed"
        except asyncio.CancelledError:
            record.status = "failed"
            record.error = "cancelled"
            raise
        except Exception as exc:
            record.error = str(exc)
            record.status = "failed"
            logger.error("dispatcher: item %s failed: %s", record.item_id, exc, exc_info=True)
        finally:
            record.completed_at = datetime.now(UTC)
            logger.debug(
                "dispatcher: item %s finished with status=%s", record.item_id, record.status
            )


# ── Module-level singleton ────────────────────────────────────────────────────

publication_dispatcher = PublicationDispatcher(
    max_concurrent=settings.max_concurrent_publications
)
