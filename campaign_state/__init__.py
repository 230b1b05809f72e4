"""
Campaign State Reconciliation Engine.

Merges the on-chain registry, content-addressed metadata, donation
aggregates and fallback records into one campaign view, and drives the
donation submission lifecycle.
"""

from .config import EngineSettings, get_settings
from .errors import (
    CampaignNotFound,
    CampaignStateError,
    FinalityTimeout,
    InputValidationError,
    NotCampaignOwner,
    OwnerActionFailed,
    SourceUnavailable,
    TransferRejected,
)
from .identifiers import CampaignKey, normalize_identifier
from .models import (
    AggregateRecord,
    Campaign,
    ChainRecord,
    FallbackRecord,
    MetadataRecord,
    SourceRecords,
)
from .ownership import OwnerActions, is_owner
from .state import CampaignCatalog, CampaignLoader, CampaignView, reconcile, refresh_totals
from .donation import DonationCoordinator, DonationStatus, DonationUpdate
from .engine import CampaignEngine, create_engine

__version__ = "0.1.0"

__all__ = [
    "EngineSettings",
    "get_settings",
    "CampaignNotFound",
    "CampaignStateError",
    "FinalityTimeout",
    "InputValidationError",
    "NotCampaignOwner",
    "OwnerActionFailed",
    "SourceUnavailable",
    "TransferRejected",
    "CampaignKey",
    "normalize_identifier",
    "AggregateRecord",
    "Campaign",
    "ChainRecord",
    "FallbackRecord",
    "MetadataRecord",
    "SourceRecords",
    "OwnerActions",
    "is_owner",
    "CampaignCatalog",
    "CampaignLoader",
    "CampaignView",
    "reconcile",
    "refresh_totals",
    "DonationCoordinator",
    "DonationStatus",
    "DonationUpdate",
    "CampaignEngine",
    "create_engine",
]
