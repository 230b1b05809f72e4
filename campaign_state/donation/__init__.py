"""Donation submission lifecycle."""

from .models import DonationAttempt, DonationStatus, DonationUpdate
from .coordinator import (
    INVALID_AMOUNT_MESSAGE,
    DonationCoordinator,
    DonationStream,
    parse_amount,
)

__all__ = [
    "DonationAttempt",
    "DonationStatus",
    "DonationUpdate",
    "INVALID_AMOUNT_MESSAGE",
    "DonationCoordinator",
    "DonationStream",
    "parse_amount",
]
