"""
Shared "current campaign" view for the presentation layer.
"""

from enum import Enum
from typing import Callable, Optional

import structlog

from ..models.campaign import Campaign
from .. import ownership

logger = structlog.get_logger()


class ViewStatus(str, Enum):
    """Load status of the current campaign."""
    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "not_found"


class CampaignView:
    """
    Holds the campaign currently on display and the acting wallet.

    Only complete Campaign objects (or None for "not found") are ever
    published. Ownership is derived on access, so it cannot outlive a
    campaign or actor change.
    """

    def __init__(self, actor_address: Optional[str] = None):
        self._campaign: Optional[Campaign] = None
        self._status = ViewStatus.LOADING
        self._actor_address = actor_address
        self._listeners: list[Callable[["CampaignView"], None]] = []

    @property
    def campaign(self) -> Optional[Campaign]:
        return self._campaign

    @property
    def status(self) -> ViewStatus:
        return self._status

    @property
    def actor_address(self) -> Optional[str]:
        return self._actor_address

    @actor_address.setter
    def actor_address(self, value: Optional[str]) -> None:
        self._actor_address = value
        self._notify()

    @property
    def is_owner(self) -> bool:
        return ownership.is_owner(self._campaign, self._actor_address)

    def mark_loading(self) -> None:
        self._status = ViewStatus.LOADING
        self._notify()

    def publish(self, campaign: Optional[Campaign]) -> None:
        """Replace the displayed campaign; None means not found."""
        if campaign is not None and not isinstance(campaign, Campaign):
            raise TypeError(f"expected Campaign or None, got {type(campaign).__name__}")
        self._campaign = campaign
        self._status = ViewStatus.READY if campaign is not None else ViewStatus.NOT_FOUND
        logger.debug(
            "campaign_view.published",
            campaign_id=campaign.id if campaign else None,
            status=self._status.value,
        )
        self._notify()

    def subscribe(self, listener: Callable[["CampaignView"], None]) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
