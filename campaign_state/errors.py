"""
Error taxonomy for the campaign state engine.

Read paths never raise these into the reconciler: adapters log a
SourceUnavailable event and return None. Only the donation coordinator
surfaces errors to the user, and only for the step that failed.
"""

from typing import Optional


class CampaignStateError(Exception):
    """Base class for all engine errors."""


class CampaignNotFound(CampaignStateError):
    """No source has a record for the identifier."""

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Campaign {identifier} not found")


class SourceUnavailable(CampaignStateError):
    """One source adapter failed. Degrades that source's fields only."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")


class InputValidationError(CampaignStateError):
    """Malformed user input, caught before any external call."""


class TransferRejected(CampaignStateError):
    """The wallet or ledger declined the transfer.

    The message is the collaborator's own, unchanged.
    """


class FinalityTimeout(CampaignStateError):
    """Confirmation of a submitted transfer did not arrive.

    The transfer may still settle; callers should re-read totals
    rather than resubmit.
    """

    def __init__(self, message: str, tx_reference: Optional[str] = None):
        self.tx_reference = tx_reference
        super().__init__(message)


class NotCampaignOwner(CampaignStateError):
    """The actor does not control the campaign."""


class OwnerActionFailed(CampaignStateError):
    """The registry refused an owner-gated update or deactivation."""
