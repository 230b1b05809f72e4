"""
Ownership Resolver and owner-gated campaign actions.
"""

from typing import Optional

import structlog

from .errors import InputValidationError, NotCampaignOwner, OwnerActionFailed
from .identifiers import parse_numeric_identifier
from .infrastructure.clients import OwnershipMutator
from .models.campaign import Campaign
from .models.records import ChainRecord
from .state.reconciler import reconcile

logger = structlog.get_logger()


def _same_address(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a.strip().lower() == b.strip().lower()


def is_owner(campaign: Optional[Campaign], actor_address: Optional[str]) -> bool:
    """
    Whether the actor controls the campaign.

    True iff the actor address case-insensitively equals the chain owner
    or the legacy creator wallet from the fallback record. A missing
    actor or campaign is never an owner.
    """
    if campaign is None or not actor_address or not actor_address.strip():
        return False
    return _same_address(actor_address, campaign.owner_address) or _same_address(
        actor_address, campaign.legacy_owner_address
    )


class OwnerActions:
    """
    Registry writes reserved to the campaign owner.

    Ownership is checked against the view passed in on every call;
    nothing is remembered between calls.
    """

    def __init__(self, mutator: OwnershipMutator):
        self.mutator = mutator

    def _require_owner(self, campaign: Campaign, actor_address: Optional[str]) -> int:
        if not is_owner(campaign, actor_address):
            logger.warning(
                "owner_actions.denied",
                campaign_id=campaign.id,
                actor=actor_address,
            )
            raise NotCampaignOwner(
                f"{actor_address or 'anonymous'} does not control campaign {campaign.id}"
            )
        campaign_id = campaign.onchain_id
        if campaign_id is None:
            campaign_id = parse_numeric_identifier(campaign.id)
        if campaign_id is None:
            raise InputValidationError(f"Campaign {campaign.id} has no on-chain identifier")
        return campaign_id

    @staticmethod
    def _rebuild(campaign: Campaign, campaign_id: int, **changes) -> Campaign:
        """
        Apply a registry write to the view's chain record and reconcile again.

        The returned view carries the updated record in its sources, so
        later rebuilds (e.g. after a donation) keep the change.
        """
        sources = campaign.sources
        if sources.chain is not None:
            chain = sources.chain.model_copy(update=changes)
        else:
            chain = ChainRecord(
                campaign_id=campaign_id,
                owner_address=campaign.owner_address,
                active=campaign.active,
                goal=campaign.goal,
            ).model_copy(update=changes)

        rebuilt = reconcile(
            chain.campaign_id,
            fallback=sources.fallback,
            chain=chain,
            metadata=sources.metadata,
            previous=campaign,
        )
        if "title" in changes and rebuilt.title != changes["title"]:
            logger.debug(
                "owner_actions.title_shadowed",
                campaign_id=campaign_id,
                source=rebuilt.provenance.get("title"),
            )
        return rebuilt

    async def update(
        self,
        campaign: Campaign,
        actor_address: Optional[str],
        title: Optional[str] = None,
        description: Optional[str] = None,
        image_ref: Optional[str] = None,
    ) -> Campaign:
        """
        Update the registry record. Blank inputs keep the current values.

        Returns:
            The view with the new text fields applied
        """
        campaign_id = self._require_owner(campaign, actor_address)
        new_title = (title or "").strip() or campaign.title
        new_description = (description or "").strip() or campaign.description
        new_image = (image_ref or "").strip() or campaign.image or ""

        try:
            await self.mutator.update_campaign(campaign_id, new_title, new_description, new_image)
        except Exception as exc:
            logger.warning("owner_actions.update_failed", campaign_id=campaign_id, error=str(exc))
            raise OwnerActionFailed(str(exc) or "Failed to update campaign") from exc

        logger.info("owner_actions.updated", campaign_id=campaign_id)
        return self._rebuild(
            campaign,
            campaign_id,
            title=new_title,
            description=new_description,
            image=new_image or None,
        )

    async def deactivate(self, campaign: Campaign, actor_address: Optional[str]) -> Campaign:
        """Deactivate the campaign; returns the view with active=False."""
        campaign_id = self._require_owner(campaign, actor_address)
        try:
            await self.mutator.deactivate_campaign(campaign_id)
        except Exception as exc:
            logger.warning("owner_actions.deactivate_failed", campaign_id=campaign_id, error=str(exc))
            raise OwnerActionFailed(str(exc) or "Failed to deactivate campaign") from exc

        logger.info("owner_actions.deactivated", campaign_id=campaign_id)
        return self._rebuild(campaign, campaign_id, active=False)
