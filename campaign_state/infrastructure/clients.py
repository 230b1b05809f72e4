"""
Interfaces of the external collaborators the engine consumes.

The registry, donation ledger and wallet live outside this package.
Any object satisfying these protocols can be handed to the adapters.
"""

from typing import Any, Optional, Protocol


class CampaignRegistryClient(Protocol):
    """On-chain campaign registry (read side)."""

    async def get_campaign(self, campaign_id: int) -> Optional[dict[str, Any]]:
        """Registry entry, or None for an unknown id.

        Expected keys: owner, active, title, description, image,
        goal (base units), createdAt.
        """
        ...

    async def list_campaigns(self) -> list[dict[str, Any]]:
        """All registry entries, each carrying its id under "id"."""
        ...

    async def get_metadata_cid(self, campaign_id: int) -> Optional[str]:
        """Content address of the campaign's metadata document."""
        ...

    async def is_active(self, campaign_id: int) -> bool:
        ...


class DonationLedgerClient(Protocol):
    """Donation event log."""

    async def get_donations(self, campaign_id: int) -> dict[str, Any]:
        """Aggregate over donation events; "totalRaised" in native units."""
        ...


class TransferClient(Protocol):
    """Wallet-backed value transfer to the donation contract."""

    async def donate(self, campaign_id: int, value_base_units: int) -> Any:
        """Send the transfer; returns a pending handle. Raises on rejection."""
        ...

    async def wait_for_receipt(self, handle: Any) -> dict[str, Any]:
        """Block until finality; receipt carries "transactionHash"."""
        ...


class OwnershipMutator(Protocol):
    """Owner-only registry writes."""

    async def update_campaign(
        self, campaign_id: int, title: str, description: str, image_ref: str
    ) -> Any:
        ...

    async def deactivate_campaign(self, campaign_id: int) -> Any:
        ...
