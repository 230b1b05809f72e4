"""Donation aggregate reader."""

from typing import Optional

import structlog

from ..errors import SourceUnavailable
from ..models.records import AggregateRecord, parse_decimal
from .clients import DonationLedgerClient

logger = structlog.get_logger()


class DonationAggregateReader:
    """
    Reads the sum of donation events for one campaign.

    A failed read returns None; callers keep the previously displayed
    total instead of resetting it to zero.
    """

    SOURCE = "aggregate"

    def __init__(self, client: DonationLedgerClient):
        self.client = client

    async def totals_for(self, campaign_id: int) -> Optional[AggregateRecord]:
        try:
            raw = await self.client.get_donations(campaign_id)
            total = parse_decimal((raw or {}).get("totalRaised"))
            if total is None or total < 0:
                raise ValueError(f"unusable totalRaised: {raw!r}")
            record = AggregateRecord(total_raised=total)
        except Exception as exc:
            error = SourceUnavailable(self.SOURCE, str(exc) or type(exc).__name__)
            logger.warning(
                "aggregate_reader.unavailable",
                campaign_id=campaign_id,
                error=str(error),
            )
            return None

        logger.debug(
            "aggregate_reader.read",
            campaign_id=campaign_id,
            total_raised=str(record.total_raised),
        )
        return record
