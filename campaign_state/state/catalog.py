"""
Campaign listings: newest active campaigns and related campaigns.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional, Union

import structlog

from ..identifiers import CampaignKey, Identifier, normalize_identifier
from ..infrastructure.aggregate import DonationAggregateReader
from ..infrastructure.chain import ChainCampaignReader
from ..infrastructure.fallback_store import FallbackStore
from ..models.campaign import Campaign
from ..models.records import ChainRecord
from .reconciler import reconcile

logger = structlog.get_logger()

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _sort_key(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CampaignCatalog:
    """
    Lists campaigns for overview pages.

    The active-campaign listing is cached in memory for cache_ttl
    seconds. A failing registry read serves the cache while it is
    fresh, otherwise an empty list.
    """

    def __init__(
        self,
        chain: ChainCampaignReader,
        aggregate: Optional[DonationAggregateReader] = None,
        fallback: Optional[FallbackStore] = None,
        cache_ttl: float = 300.0,
        limit: int = 5,
        related_limit: int = 5,
    ):
        self.chain = chain
        self.aggregate = aggregate
        self.fallback = fallback
        self.cache_ttl = cache_ttl
        self.limit = limit
        self.related_limit = related_limit
        self._cache: Optional[tuple[float, list[Campaign]]] = None

    def _cached(self) -> Optional[list[Campaign]]:
        if self._cache is None:
            return None
        stored_at, campaigns = self._cache
        if time.monotonic() - stored_at > self.cache_ttl:
            return None
        return list(campaigns)

    def invalidate(self) -> None:
        self._cache = None

    async def _view(self, record: ChainRecord) -> Optional[Campaign]:
        aggregate = None
        if self.aggregate is not None:
            aggregate = await self.aggregate.totals_for(record.campaign_id)
        return reconcile(record.campaign_id, chain=record, aggregate=aggregate)

    async def popular(self, refresh: bool = False) -> list[Campaign]:
        """Newest active campaigns, up to the configured limit."""
        if not refresh:
            cached = self._cached()
            if cached is not None:
                return cached

        records = await self.chain.list_active()
        if not records:
            cached = self._cached()
            if cached is not None:
                logger.info("catalog.serving_cache", count=len(cached))
                return cached
            return []

        newest = sorted(records, key=lambda r: _sort_key(r.created_at), reverse=True)
        newest = newest[: self.limit]
        views = await asyncio.gather(*(self._view(r) for r in newest))
        campaigns = [c for c in views if c is not None]

        self._cache = (time.monotonic(), campaigns)
        logger.debug("catalog.popular_refreshed", count=len(campaigns))
        return list(campaigns)

    async def related(self, identifier: Union[Identifier, CampaignKey]) -> list[Campaign]:
        """Fallback campaigns other than the given one, up to related_limit."""
        if self.fallback is None:
            return []
        key = normalize_identifier(identifier)
        related = []
        for record in await self.fallback.load_all():
            if key.matches(record.id):
                continue
            campaign = reconcile(record.id, fallback=record)
            if campaign is not None:
                related.append(campaign)
            if len(related) >= self.related_limit:
                break
        return related
