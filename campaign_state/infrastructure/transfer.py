"""
Value transfer submitter.

Unlike the read adapters, this one raises: the donation coordinator
needs to know which step failed and with what message.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import structlog

from ..errors import FinalityTimeout, TransferRejected
from .clients import TransferClient
from .units import to_base_units

logger = structlog.get_logger()


@dataclass
class PendingTransfer:
    """A transfer that was sent but is not yet final."""

    campaign_id: int
    amount: Decimal
    value_base_units: int
    handle: Any
    submitted_at: datetime = field(default_factory=datetime.now)

    @property
    def reference(self) -> Optional[str]:
        """Best-known reference for the transfer before finality."""
        for attr in ("hash", "transaction_hash", "tx_hash"):
            if isinstance(self.handle, dict):
                value = self.handle.get(attr)
            else:
                value = getattr(self.handle, attr, None)
            if value:
                return str(value)
        if isinstance(self.handle, str):
            return self.handle
        return None


@dataclass
class TransferReceipt:
    """A transfer confirmed final by the ledger."""

    campaign_id: int
    amount: Decimal
    transaction_reference: str
    confirmed_at: datetime = field(default_factory=datetime.now)


def _message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _receipt_reference(receipt: Any) -> Optional[str]:
    if receipt is None:
        return None
    if isinstance(receipt, dict):
        return receipt.get("transactionHash") or receipt.get("transaction_hash")
    for attr in ("transactionHash", "transaction_hash", "hash"):
        value = getattr(receipt, attr, None)
        if value:
            return str(value)
    return None


class ValueTransferSubmitter:
    """Sends donations through the wallet and waits for finality."""

    def __init__(self, client: TransferClient, native_unit_decimals: int = 18):
        self.client = client
        self.native_unit_decimals = native_unit_decimals

    async def submit(self, campaign_id: int, amount: Decimal) -> PendingTransfer:
        """
        Send a value transfer to the campaign.

        Raises:
            TransferRejected: wallet denial, insufficient funds, network error.
                The collaborator's message is kept verbatim.
        """
        try:
            value = to_base_units(amount, self.native_unit_decimals)
            handle = await self.client.donate(campaign_id, value)
        except Exception as exc:
            logger.warning(
                "transfer.rejected",
                campaign_id=campaign_id,
                amount=str(amount),
                error=_message(exc),
            )
            raise TransferRejected(_message(exc)) from exc

        pending = PendingTransfer(
            campaign_id=campaign_id,
            amount=amount,
            value_base_units=value,
            handle=handle,
        )
        logger.info(
            "transfer.submitted",
            campaign_id=campaign_id,
            amount=str(amount),
            reference=pending.reference,
        )
        return pending

    async def await_finality(self, pending: PendingTransfer) -> TransferReceipt:
        """
        Block until the ledger confirms the transfer.

        Raises:
            FinalityTimeout: the confirmation did not arrive
            TransferRejected: the ledger reverted the transfer
        """
        try:
            receipt = await self.client.wait_for_receipt(pending.handle)
        except (asyncio.TimeoutError, TimeoutError) as exc:
            logger.warning(
                "transfer.finality_timeout",
                campaign_id=pending.campaign_id,
                reference=pending.reference,
            )
            raise FinalityTimeout(
                "Confirmation did not arrive; re-check the campaign totals "
                "before donating again",
                tx_reference=pending.reference,
            ) from exc
        except Exception as exc:
            logger.warning(
                "transfer.reverted",
                campaign_id=pending.campaign_id,
                reference=pending.reference,
                error=_message(exc),
            )
            raise TransferRejected(_message(exc)) from exc

        reference = _receipt_reference(receipt) or pending.reference
        if not reference:
            raise TransferRejected("Receipt carried no transaction reference")

        logger.info(
            "transfer.final",
            campaign_id=pending.campaign_id,
            reference=str(reference),
        )
        return TransferReceipt(
            campaign_id=pending.campaign_id,
            amount=pending.amount,
            transaction_reference=str(reference),
        )

    async def send(self, campaign_id: int, amount: Decimal) -> TransferReceipt:
        """Submit and wait for finality in one call."""
        pending = await self.submit(campaign_id, amount)
        return await self.await_finality(pending)
