"""Unified campaign view produced by the reconciler."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Union

from .records import ChainRecord, FallbackRecord, MetadataRecord


@dataclass(frozen=True)
class SourceRecords:
    """The records a Campaign view was merged from."""

    fallback: Optional[FallbackRecord] = None
    chain: Optional[ChainRecord] = None
    metadata: Optional[MetadataRecord] = None


@dataclass(frozen=True)
class Campaign:
    """
    One consistent view of a campaign across all sources.

    Never persisted; recomputed on each load. amount_raised and
    percentage always come from the same aggregate read.
    """

    id: Union[int, str]
    title: str = ""
    description: str = ""
    image: Optional[str] = None
    goal: Decimal = Decimal("0")
    amount_raised: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")
    owner_address: Optional[str] = None
    active: bool = True
    onchain_id: Optional[int] = None

    # Fallback-only enrichment
    legacy_owner_address: Optional[str] = None
    organization_name: Optional[str] = None
    about: Optional[str] = None
    how_it_works: Optional[str] = None
    use_of_funds: Optional[str] = None

    # Which source supplied each resolved field
    provenance: dict[str, str] = field(default_factory=dict, hash=False)
    sources: SourceRecords = field(default_factory=SourceRecords, compare=False, repr=False)

    @property
    def is_funded(self) -> bool:
        return self.goal > 0 and self.amount_raised >= self.goal

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "onchain_id": self.onchain_id,
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "goal": str(self.goal),
            "amount_raised": str(self.amount_raised),
            "percentage": str(self.percentage),
            "owner_address": self.owner_address,
            "active": self.active,
            "organization_name": self.organization_name,
            "about": self.about,
            "how_it_works": self.how_it_works,
            "use_of_funds": self.use_of_funds,
            "provenance": dict(self.provenance),
        }
