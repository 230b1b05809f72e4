"""
Campaign Loader.

Issues every read for one identifier concurrently, waits for all of
them to settle, then merges through the reconciler. Partial results are
never merged mid-flight.
"""

import asyncio
import time
from typing import Optional, Union

import structlog

from ..errors import CampaignNotFound
from ..identifiers import CampaignKey, Identifier, normalize_identifier
from ..infrastructure.aggregate import DonationAggregateReader
from ..infrastructure.chain import ChainCampaignReader
from ..infrastructure.fallback_store import FallbackStore
from ..infrastructure.metadata import MetadataFetcher
from ..models.campaign import Campaign
from ..models.records import AggregateRecord, ChainRecord, FallbackRecord, MetadataRecord
from .reconciler import reconcile
from .view import CampaignView

logger = structlog.get_logger()


class CampaignLoader:
    """Fetches all sources for a campaign and reconciles them."""

    def __init__(
        self,
        chain: ChainCampaignReader,
        metadata: MetadataFetcher,
        aggregate: DonationAggregateReader,
        fallback: Optional[FallbackStore] = None,
    ):
        self.chain = chain
        self.metadata = metadata
        self.aggregate = aggregate
        self.fallback = fallback

    async def _fallback(self, key: CampaignKey) -> Optional[FallbackRecord]:
        if self.fallback is None:
            return None
        return await self.fallback.load(key)

    async def _chain(self, key: CampaignKey) -> Optional[ChainRecord]:
        if not key.is_numeric:
            return None
        return await self.chain.get(key.number)

    async def _metadata(self, key: CampaignKey) -> Optional[MetadataRecord]:
        if not key.is_numeric:
            return None
        address = await self.chain.get_metadata_address(key.number)
        if address is None:
            return None
        return await self.metadata.fetch(address)

    async def _aggregate(self, key: CampaignKey) -> Optional[AggregateRecord]:
        if not key.is_numeric:
            return None
        return await self.aggregate.totals_for(key.number)

    async def load(
        self,
        identifier: Union[Identifier, CampaignKey],
        previous: Optional[Campaign] = None,
        view: Optional[CampaignView] = None,
    ) -> Optional[Campaign]:
        """
        Load and reconcile one campaign.

        Args:
            identifier: Campaign id in any supported shape
            previous: Last view shown, kept for totals if the aggregate read fails
            view: Shared view to publish the result to

        Returns:
            Campaign, or None if no source knows the identifier
        """
        key = normalize_identifier(identifier)
        if view is not None:
            view.mark_loading()
            if previous is None:
                previous = view.campaign

        started = time.monotonic()
        fallback, chain, metadata, aggregate = await asyncio.gather(
            self._fallback(key),
            self._chain(key),
            self._metadata(key),
            self._aggregate(key),
        )

        campaign = reconcile(
            key,
            fallback=fallback,
            chain=chain,
            metadata=metadata,
            aggregate=aggregate,
            previous=previous,
        )

        logger.info(
            "campaign_loader.loaded",
            campaign_id=key.text,
            found=campaign is not None,
            sources=[
                name for name, record in (
                    ("fallback", fallback),
                    ("chain", chain),
                    ("metadata", metadata),
                    ("aggregate", aggregate),
                ) if record is not None
            ],
            duration_ms=int((time.monotonic() - started) * 1000),
        )

        if view is not None:
            view.publish(campaign)
        return campaign

    async def require(self, identifier: Union[Identifier, CampaignKey]) -> Campaign:
        """
        Like load(), but raise when the campaign does not exist.

        Raises:
            CampaignNotFound: no source has a record for the identifier
        """
        campaign = await self.load(identifier)
        if campaign is None:
            raise CampaignNotFound(normalize_identifier(identifier).text)
        return campaign
