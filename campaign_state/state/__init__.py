"""
Campaign state reconciliation.

Merges the registry record, the metadata document, the donation
aggregate and fallback records into one Campaign view:
- reconciler: pure, deterministic precedence merge
- loader: concurrent fetch of all sources, then merge
- view: the shared "current campaign" the presentation layer reads
- catalog: overview listings (newest active, related)
"""

from .reconciler import (
    derive_percentage,
    find_fallback,
    reconcile,
    refresh_totals,
)
from .loader import CampaignLoader
from .view import CampaignView, ViewStatus
from .catalog import CampaignCatalog

__all__ = [
    "derive_percentage",
    "find_fallback",
    "reconcile",
    "refresh_totals",
    "CampaignLoader",
    "CampaignView",
    "ViewStatus",
    "CampaignCatalog",
]
