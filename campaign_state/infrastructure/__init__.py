# Source adapters and external collaborator interfaces
from .clients import (
    CampaignRegistryClient,
    DonationLedgerClient,
    OwnershipMutator,
    TransferClient,
)
from .chain import ChainCampaignReader
from .metadata import MetadataFetcher, normalize_content_address
from .aggregate import DonationAggregateReader
from .transfer import PendingTransfer, TransferReceipt, ValueTransferSubmitter
from .fallback_store import FallbackStore, LocalCampaignCache, RedisDocumentStore
from .units import from_base_units, to_base_units

__all__ = [
    "CampaignRegistryClient",
    "DonationLedgerClient",
    "OwnershipMutator",
    "TransferClient",
    "ChainCampaignReader",
    "MetadataFetcher",
    "normalize_content_address",
    "DonationAggregateReader",
    "PendingTransfer",
    "TransferReceipt",
    "ValueTransferSubmitter",
    "FallbackStore",
    "LocalCampaignCache",
    "RedisDocumentStore",
    "from_base_units",
    "to_base_units",
]
