"""
Wiring of adapters, reconciler, coordinator and listings from settings.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from .config import EngineSettings, get_settings
from .donation.coordinator import DonationCoordinator
from .infrastructure.aggregate import DonationAggregateReader
from .infrastructure.chain import ChainCampaignReader
from .infrastructure.clients import (
    CampaignRegistryClient,
    DonationLedgerClient,
    OwnershipMutator,
    TransferClient,
)
from .infrastructure.fallback_store import FallbackStore, LocalCampaignCache, RedisDocumentStore
from .infrastructure.metadata import MetadataFetcher
from .infrastructure.transfer import ValueTransferSubmitter
from .ownership import OwnerActions
from .state.catalog import CampaignCatalog
from .state.loader import CampaignLoader
from .state.view import CampaignView

logger = structlog.get_logger()


@dataclass
class CampaignEngine:
    """Everything the presentation layer talks to."""
    view: CampaignView
    loader: CampaignLoader
    coordinator: DonationCoordinator
    catalog: CampaignCatalog
    fallback: FallbackStore
    owner_actions: Optional[OwnerActions] = None
    metadata: Optional[MetadataFetcher] = None
    documents: Optional[RedisDocumentStore] = None

    async def close(self) -> None:
        self.coordinator.close()
        if self.metadata is not None:
            await self.metadata.close()
        if self.documents is not None:
            await self.documents.disconnect()

    async def __aenter__(self) -> "CampaignEngine":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def create_engine(
    registry: CampaignRegistryClient,
    ledger: DonationLedgerClient,
    transfers: TransferClient,
    mutator: Optional[OwnershipMutator] = None,
    settings: Optional[EngineSettings] = None,
    use_document_store: bool = True,
    actor_address: Optional[str] = None,
) -> CampaignEngine:
    """
    Build a connected engine.

    Args:
        registry: On-chain registry client
        ledger: Donation ledger client
        transfers: Wallet transfer client
        mutator: Owner-only registry writer (owner actions disabled if None)
        settings: Engine settings (default: from environment)
        use_document_store: Connect to Redis for off-chain fallback documents.
            An unreachable Redis leaves the engine on the local cache only.
        actor_address: Connected wallet, if any

    Returns:
        CampaignEngine ready for use
    """
    settings = settings or get_settings()
    decimals = settings.native_unit_decimals

    documents = None
    if use_document_store:
        store = RedisDocumentStore(url=settings.redis_url, collection=settings.document_collection)
        try:
            documents = await store.connect()
        except Exception as exc:
            logger.warning("engine.document_store_unavailable", error=str(exc))

    fallback = FallbackStore(documents=documents, local=LocalCampaignCache(settings.local_cache_path))
    chain = ChainCampaignReader(registry, native_unit_decimals=decimals)
    metadata = MetadataFetcher(
        gateway_url=settings.metadata_gateway_url,
        timeout=settings.metadata_timeout_seconds,
    )
    aggregate = DonationAggregateReader(ledger)
    view = CampaignView(actor_address=actor_address)

    engine = CampaignEngine(
        view=view,
        loader=CampaignLoader(chain, metadata, aggregate, fallback),
        coordinator=DonationCoordinator(
            ValueTransferSubmitter(transfers, native_unit_decimals=decimals),
            aggregate,
            display_timeout=settings.donation_display_timeout_seconds,
            native_unit_decimals=decimals,
            view=view,
        ),
        catalog=CampaignCatalog(
            chain,
            aggregate=aggregate,
            fallback=fallback,
            cache_ttl=settings.listing_cache_ttl_seconds,
            limit=settings.listing_limit,
            related_limit=settings.related_limit,
        ),
        fallback=fallback,
        owner_actions=OwnerActions(mutator) if mutator is not None else None,
        metadata=metadata,
        documents=documents,
    )
    logger.info(
        "engine.created",
        document_store=documents is not None,
        local_cache=str(settings.local_cache_path),
    )
    return engine
