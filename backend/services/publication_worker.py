"""
Publication Worker.

Publishes one claimed content item to every target platform, records a
result per platform and moves the item to its terminal status.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

from adapters.social import BaseSocialAdapter, get_social_adapter
from adapters.social.base import SocialAdapterError, SocialCredentials
from core.domain.content_item import (
    ContentItem,
    ContentStatus,
    Platform,
    TargetResult,
    resolve_final_status,
    utcnow,
)
from core.domain.errors import AdapterError, StoreUnavailableError
from core.interfaces.repositories import ContentItemRepository, SocialAccountRepository
from infrastructure.config import settings

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[Platform], BaseSocialAdapter]

ACCOUNT_NOT_CONNECTED = "account_not_connected"
PUBLICATION_INTERRUPTED = "publication interrupted"


def default_adapter_factory(platform: Platform) -> BaseSocialAdapter:
    return get_social_adapter(
        platform,
        mock_mode=settings.social_mock_mode,
        timeout=settings.publish_timeout_seconds,
    )


class PublicationWorker:
    """Runs a single publish attempt for items already in ``publishing``."""

    def __init__(
        self,
        store: ContentItemRepository,
        accounts: SocialAccountRepository,
        adapter_factory: Optional[AdapterFactory] = None,
        timeout: Optional[float] = None,
        finalize_attempts: Optional[int] = None,
        finalize_retry_delay: Optional[float] = None,
    ):
        self.store = store
        self.accounts = accounts
        self.adapter_factory = adapter_factory or default_adapter_factory
        self.timeout = timeout if timeout is not None else settings.publish_timeout_seconds
        self.finalize_attempts = max(
            1,
            finalize_attempts if finalize_attempts is not None else settings.finalize_retry_attempts,
        )
        self.finalize_retry_delay = (
            finalize_retry_delay
            if finalize_retry_delay is not None
            else settings.finalize_retry_delay_seconds
        )

    async def publish(self, item_id: str) -> Optional[ContentStatus]:
        """
        Publish a claimed item and write its terminal status.

        Args:
            item_id: ID of an item in ``publishing`` status

        Returns:
            The terminal status written, or None if the item was not
            publishable or another writer finalised it first
        """
        item = await self.store.get(item_id)
        if item is None:
            logger.warning("Item %s vanished before publication", item_id)
            return None
        if item.status != ContentStatus.PUBLISHING:
            logger.warning(
                "Item %s is %s, not publishing; skipping", item_id, item.status.value
            )
            return None

        logger.info(
            "Publishing item %s to %s",
            item.id,
            ", ".join(p.value for p in item.targets),
            extra={"item_id": item.id, "owner_id": item.owner_id},
        )
        results = await self.publish_targets(item)
        # Platforms have been called; keep retrying the write so their ids are not lost
        return await self._finalize(item, results, attempts=self.finalize_attempts)

    async def publish_targets(self, item: ContentItem) -> dict[Platform, TargetResult]:
        """Attempt every target concurrently; every target ends up attempted."""
        outcomes = await asyncio.gather(
            *(self._publish_target(item, platform) for platform in item.targets)
        )
        return dict(zip(item.targets, outcomes))

    async def finalize_stale(self, item_id: str) -> Optional[ContentStatus]:
        """
        Close out an item orphaned in ``publishing`` by a crashed process.

        Targets without a recorded attempt are marked failed; nothing is
        sent to the platforms again. A store error propagates so the next
        recovery pass can try again.
        """
        item = await self.store.get(item_id)
        if item is None or item.status != ContentStatus.PUBLISHING:
            return None

        results = {
            platform: (
                item.per_target_result[platform]
                if platform in item.per_target_result
                and item.per_target_result[platform].attempted
                else TargetResult.failed(PUBLICATION_INTERRUPTED)
            )
            for platform in item.targets
        }
        return await self._finalize(item, results)

    async def _finalize(
        self,
        item: ContentItem,
        results: dict[Platform, TargetResult],
        attempts: int = 1,
    ) -> Optional[ContentStatus]:
        final_status = resolve_final_status(results)

        for attempt in range(1, attempts + 1):
            try:
                won = await self.store.transition(
                    item.id,
                    ContentStatus.PUBLISHING,
                    final_status,
                    per_target_result=results,
                    completed_at=utcnow(),
                )
                break
            except StoreUnavailableError as e:
                if attempt == attempts:
                    logger.error(
                        "Could not record results of item %s after %d attempts: %s (%s)",
                        item.id,
                        attempt,
                        e,
                        ", ".join(
                            f"{p.value}={r.external_id if r.success else r.error}"
                            for p, r in results.items()
                        ),
                        extra={"item_id": item.id, "owner_id": item.owner_id},
                    )
                    raise
                delay = self.finalize_retry_delay * attempt
                logger.warning(
                    "Recording results of item %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    item.id,
                    attempt,
                    attempts,
                    delay,
                    e,
                )
                await asyncio.sleep(delay)

        if not won:
            logger.warning("Item %s was finalised by another writer", item.id)
            return None

        succeeded = sum(1 for r in results.values() if r.success)
        log = logger.info if final_status == ContentStatus.PUBLISHED else logger.warning
        log(
            "Item %s %s: %d/%d targets succeeded",
            item.id,
            final_status.value,
            succeeded,
            len(results),
            extra={"item_id": item.id, "owner_id": item.owner_id},
        )
        return final_status

    async def _publish_target(self, item: ContentItem, platform: Platform) -> TargetResult:
        try:
            account = await self.accounts.get_active(item.owner_id, platform)
            if account is None:
                raise AdapterError(platform.value, ACCOUNT_NOT_CONNECTED)

            adapter = self.adapter_factory(platform)
            result = await asyncio.wait_for(
                adapter.publish(SocialCredentials.from_account(account), item.body, item.media),
                timeout=self.timeout,
            )
            if not result.success:
                raise AdapterError(platform.value, result.error_message or "publish failed")

        except AdapterError as e:
            error = e
        except asyncio.TimeoutError:
            error = AdapterError(platform.value, f"timed out after {self.timeout:g}s")
        except SocialAdapterError as e:
            error = AdapterError(platform.value, str(e) or e.__class__.__name__)
        except Exception as e:
            # An unexpected failure on one target must not abort the others
            logger.error(
                "Unexpected error publishing item %s to %s: %s",
                item.id,
                platform.value,
                e,
                exc_info=True,
            )
            error = AdapterError(platform.value, str(e) or e.__class__.__name__)
        else:
            logger.info(
                "Published item %s to %s: %s",
                item.id,
                platform.value,
                result.post_url or result.post_id,
                extra={"item_id": item.id, "platform": platform.value},
            )
            return TargetResult.succeeded(result.post_id, result.post_url)

        logger.warning(
            "Failed to publish item %s to %s: %s",
            item.id,
            platform.value,
            error.detail,
            extra={"item_id": item.id, "platform": platform.value},
        )
        return TargetResult.failed(error.detail)
