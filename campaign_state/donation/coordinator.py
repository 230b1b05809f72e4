"""
Donation Coordinator.

Drives one donation attempt per campaign through

    IDLE -> VALIDATING -> SUBMITTING -> AWAITING_FINALITY
         -> REAGGREGATING -> SUCCEEDED | FAILED

Terminal states revert to IDLE after the display timeout. Steps are
strictly sequential, and no update is emitted before the external step
it reports has resolved. A second donate() for a campaign that is not
IDLE is ignored.
"""

import asyncio
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

import structlog

from ..errors import (
    FinalityTimeout,
    InputValidationError,
    TransferRejected,
)
from ..identifiers import normalize_identifier, parse_numeric_identifier
from ..infrastructure.aggregate import DonationAggregateReader
from ..infrastructure.transfer import ValueTransferSubmitter
from ..infrastructure.units import to_base_units
from ..models.campaign import Campaign
from ..state.reconciler import refresh_totals
from ..state.view import CampaignView
from .models import DonationAttempt, DonationStatus, DonationUpdate

logger = structlog.get_logger()

INVALID_AMOUNT_MESSAGE = "Please enter a valid amount"

_CLOSED = object()


def parse_amount(text: Optional[str], decimals: int = 18) -> Decimal:
    """
    Parse user input into a positive donation amount.

    Raises:
        InputValidationError: empty, non-numeric, non-positive, or more
            precise than the ledger's base unit
    """
    raw = "" if text is None else str(text).strip()
    if not raw:
        raise InputValidationError(INVALID_AMOUNT_MESSAGE)
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise InputValidationError(INVALID_AMOUNT_MESSAGE) from None
    if not amount.is_finite() or amount <= 0:
        raise InputValidationError(INVALID_AMOUNT_MESSAGE)
    try:
        to_base_units(amount, decimals)
    except ValueError:
        raise InputValidationError(
            f"Amount supports at most {decimals} decimal places"
        ) from None
    return amount


class DonationStream:
    """
    Async stream of the updates of one attempt.

    Starts with the IDLE snapshot and ends after the terminal one.
    """

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        self.history: list[DonationUpdate] = []
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def _put(self, update: DonationUpdate) -> None:
        self.history.append(update)
        self._queue.put_nowait(update)

    def _close(self) -> None:
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "DonationStream":
        return self

    async def __anext__(self) -> DonationUpdate:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    async def result(self) -> DonationAttempt:
        """Wait for the attempt to reach its terminal state."""
        return await self._task


class DonationCoordinator:
    """
    Per-campaign donation state machine.

    Example:
        coordinator = DonationCoordinator(submitter, aggregate_reader)
        stream = coordinator.donate(campaign, "2.5")
        if stream is not None:
            async for update in stream:
                render(update)
    """

    def __init__(
        self,
        submitter: ValueTransferSubmitter,
        aggregate: DonationAggregateReader,
        display_timeout: float = 5.0,
        native_unit_decimals: int = 18,
        view: Optional[CampaignView] = None,
    ):
        """
        Initialize donation coordinator.

        Args:
            submitter: Value transfer adapter
            aggregate: Donation totals reader for the post-transfer read-back
            display_timeout: Seconds a terminal state stays visible before IDLE
            native_unit_decimals: Decimals of the ledger's base unit
            view: Shared campaign view to publish refreshed campaigns to
        """
        self.submitter = submitter
        self.aggregate = aggregate
        self.display_timeout = display_timeout
        self.native_unit_decimals = native_unit_decimals
        self.view = view

        self._attempts: dict[str, DonationAttempt] = {}
        self._reset_handles: dict[str, asyncio.TimerHandle] = {}
        self._listeners: list[Callable[[DonationUpdate], None]] = []

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    def status(self, campaign_id) -> DonationStatus:
        attempt = self._attempts.get(normalize_identifier(campaign_id).text)
        return attempt.status if attempt else DonationStatus.IDLE

    def attempt(self, campaign_id) -> Optional[DonationAttempt]:
        return self._attempts.get(normalize_identifier(campaign_id).text)

    def subscribe(self, listener: Callable[[DonationUpdate], None]) -> Callable[[], None]:
        """
        Receive every update of every campaign, including the revert to IDLE.

        Returns:
            Function removing the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, stream: Optional[DonationStream], update: DonationUpdate) -> None:
        if stream is not None:
            stream._put(update)
        for listener in list(self._listeners):
            listener(update)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @staticmethod
    def campaign_key(campaign: Campaign) -> str:
        identifier = campaign.onchain_id if campaign.onchain_id is not None else campaign.id
        return normalize_identifier(identifier).text

    def donate(self, campaign: Campaign, amount_text: Optional[str]) -> Optional[DonationStream]:
        """
        Start a donation attempt. Must be called from a running event loop.

        Args:
            campaign: The campaign view being donated to
            amount_text: Raw amount as typed by the user

        Returns:
            Stream of updates, or None if an attempt for this campaign is
            already in progress or still on display
        """
        key = self.campaign_key(campaign)
        if key in self._attempts:
            logger.info(
                "donation.ignored_busy",
                campaign_id=key,
                status=self._attempts[key].status.value,
            )
            return None

        attempt = DonationAttempt(campaign_id=key, amount_requested=amount_text or "")
        self._attempts[key] = attempt

        stream = DonationStream(key)
        self._emit(stream, DonationUpdate.of(attempt))
        stream._task = asyncio.get_running_loop().create_task(
            self._run(campaign, attempt, stream)
        )
        return stream

    def _transition(
        self,
        attempt: DonationAttempt,
        status: DonationStatus,
        stream: Optional[DonationStream],
        campaign: Optional[Campaign] = None,
    ) -> None:
        previous = attempt.status
        attempt.status = status
        if status.is_terminal:
            attempt.finished_at = datetime.now()
        logger.info(
            "donation.state_changed",
            campaign_id=attempt.campaign_id,
            from_status=previous.value,
            to_status=status.value,
            tx_reference=attempt.tx_reference,
        )
        self._emit(stream, DonationUpdate.of(attempt, campaign))

    def _fail(
        self,
        attempt: DonationAttempt,
        error: Exception,
        stream: DonationStream,
    ) -> DonationAttempt:
        attempt.error_message = str(error) or type(error).__name__
        attempt.error_type = type(error).__name__
        if isinstance(error, FinalityTimeout) and error.tx_reference:
            attempt.tx_reference = error.tx_reference
        self._transition(attempt, DonationStatus.FAILED, stream)
        return attempt

    def _validate(self, campaign: Campaign, amount_text: str) -> tuple[Decimal, int]:
        amount = parse_amount(amount_text, self.native_unit_decimals)
        if not campaign.active:
            raise InputValidationError("Campaign is inactive; donations are not being accepted")
        onchain_id = campaign.onchain_id
        if onchain_id is None:
            onchain_id = parse_numeric_identifier(campaign.id)
        if onchain_id is None:
            raise InputValidationError(f"Campaign {campaign.id} is not registered on-chain yet")
        return amount, onchain_id

    async def _run(
        self,
        campaign: Campaign,
        attempt: DonationAttempt,
        stream: DonationStream,
    ) -> DonationAttempt:
        try:
            return await self._execute(campaign, attempt, stream)
        except Exception as exc:
            logger.exception("donation.unexpected_error", campaign_id=attempt.campaign_id)
            if not attempt.status.is_terminal:
                self._fail(attempt, exc, stream)
            return attempt
        finally:
            stream._close()
            self._schedule_reset(attempt)

    async def _execute(
        self,
        campaign: Campaign,
        attempt: DonationAttempt,
        stream: DonationStream,
    ) -> DonationAttempt:
        self._transition(attempt, DonationStatus.VALIDATING, stream)
        try:
            amount, onchain_id = self._validate(campaign, attempt.amount_requested)
        except InputValidationError as exc:
            return self._fail(attempt, exc, stream)
        attempt.amount = amount

        self._transition(attempt, DonationStatus.SUBMITTING, stream)
        try:
            pending = await self.submitter.submit(onchain_id, amount)
        except TransferRejected as exc:
            return self._fail(attempt, exc, stream)
        attempt.tx_reference = pending.reference

        self._transition(attempt, DonationStatus.AWAITING_FINALITY, stream)
        try:
            receipt = await self.submitter.await_finality(pending)
        except (FinalityTimeout, TransferRejected) as exc:
            return self._fail(attempt, exc, stream)
        attempt.tx_reference = receipt.transaction_reference

        self._transition(attempt, DonationStatus.REAGGREGATING, stream)
        aggregate = await self.aggregate.totals_for(onchain_id)
        if aggregate is None:
            logger.warning(
                "donation.reaggregate_failed",
                campaign_id=attempt.campaign_id,
                tx_reference=attempt.tx_reference,
            )
        refreshed = refresh_totals(campaign, aggregate)

        if self.view is not None and self._view_shows(campaign):
            self.view.publish(refreshed)
        self._transition(attempt, DonationStatus.SUCCEEDED, stream, campaign=refreshed)
        return attempt

    def _view_shows(self, campaign: Campaign) -> bool:
        current = self.view.campaign if self.view is not None else None
        return current is None or self.campaign_key(current) == self.campaign_key(campaign)

    def _schedule_reset(self, attempt: DonationAttempt) -> None:
        key = attempt.campaign_id
        handle = self._reset_handles.pop(key, None)
        if handle is not None:
            handle.cancel()
        loop = asyncio.get_running_loop()
        self._reset_handles[key] = loop.call_later(self.display_timeout, self._reset, attempt)

    def _reset(self, attempt: DonationAttempt) -> None:
        key = attempt.campaign_id
        self._reset_handles.pop(key, None)
        if self._attempts.get(key) is not attempt:
            return
        del self._attempts[key]
        logger.debug("donation.reset", campaign_id=key, last_status=attempt.status.value)
        self._emit(None, DonationUpdate(campaign_id=key, status=DonationStatus.IDLE))

    def close(self) -> None:
        """Cancel pending display resets and return every campaign to IDLE."""
        for handle in self._reset_handles.values():
            handle.cancel()
        self._reset_handles.clear()
        for key, attempt in list(self._attempts.items()):
            if attempt.status.is_terminal:
                del self._attempts[key]
