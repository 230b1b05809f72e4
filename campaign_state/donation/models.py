"""Donation attempt state and the updates observers receive."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..models.campaign import Campaign


class DonationStatus(str, Enum):
    """States of one donation attempt."""
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    AWAITING_FINALITY = "awaiting_finality"
    REAGGREGATING = "reaggregating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DonationStatus.SUCCEEDED, DonationStatus.FAILED)


@dataclass
class DonationAttempt:
    """
    One donation submission, from confirmation to display reset.

    Created when the user confirms an amount, dropped once the display
    window after its terminal status has passed.
    """
    campaign_id: str
    amount_requested: str
    status: DonationStatus = DonationStatus.IDLE
    amount: Optional[Decimal] = None
    tx_reference: Optional[str] = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "campaign_id": self.campaign_id,
            "amount_requested": self.amount_requested,
            "status": self.status.value,
            "amount": str(self.amount) if self.amount is not None else None,
            "tx_reference": self.tx_reference,
            "error_message": self.error_message,
            "error_type": self.error_type,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass(frozen=True)
class DonationUpdate:
    """Snapshot emitted on every state change of an attempt."""
    campaign_id: str
    status: DonationStatus
    amount_requested: str = ""
    tx_reference: Optional[str] = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    campaign: Optional[Campaign] = None  # refreshed view, on success only
    clear_input: bool = False
    at: datetime = field(default_factory=datetime.now)

    @classmethod
    def of(
        cls,
        attempt: DonationAttempt,
        campaign: Optional[Campaign] = None,
    ) -> "DonationUpdate":
        return cls(
            campaign_id=attempt.campaign_id,
            status=attempt.status,
            amount_requested=attempt.amount_requested,
            tx_reference=attempt.tx_reference,
            error_message=attempt.error_message,
            error_type=attempt.error_type,
            campaign=campaign,
            clear_input=attempt.status == DonationStatus.SUCCEEDED,
        )
