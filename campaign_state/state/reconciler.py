"""
Campaign Reconciler.

Pure merge of the four sources for one identifier into a Campaign view.

Field precedence, highest first:

    title, description, image   metadata -> chain -> fallback -> ""/None
    goal                        metadata -> chain -> fallback* -> 0
    owner_address, active       chain only (absent chain: None / True)
    amount_raised               aggregate -> previous view -> fallback -> 0
    percentage                  always derived from goal and amount_raised

    * fallback goal is only consulted while the chain has no record,
      so a stale cached goal never overrides an indexed campaign.

Malformed inputs are treated as absent, and the function always returns
either a Campaign or None ("not found").
"""

from dataclasses import replace
from decimal import Decimal
from typing import Any, Iterable, Optional, Type, TypeVar, Union

import structlog
from pydantic import BaseModel, ValidationError

from ..identifiers import (
    CampaignKey,
    Identifier,
    normalize_identifier,
    parse_numeric_identifier,
)
from ..models.campaign import Campaign, SourceRecords
from ..models.records import (
    AggregateRecord,
    ChainRecord,
    FallbackRecord,
    MetadataRecord,
)

logger = structlog.get_logger()

ZERO = Decimal("0")
HUNDRED = Decimal("100")

TEXT_PRECEDENCE = ("metadata", "chain", "fallback")

M = TypeVar("M", bound=BaseModel)


def _coerce(model: Type[M], value: Any) -> Optional[M]:
    """Accept a model instance or a raw mapping; anything unusable is absent."""
    if value is None or isinstance(value, model):
        return value
    if isinstance(value, dict):
        try:
            return model.model_validate(value)
        except ValidationError as exc:
            logger.debug(
                "reconciler.record_discarded",
                record_type=model.__name__,
                error_count=exc.error_count(),
            )
    return None


def find_fallback(
    key: CampaignKey,
    candidates: Union[FallbackRecord, dict, Iterable[Any], None],
) -> Optional[FallbackRecord]:
    """
    Pick the fallback record that belongs to key.

    Local ids are checked before on-chain ids. Records stored under
    either the string or the numeric shape of the identifier match.
    """
    if candidates is None:
        return None
    if isinstance(candidates, (FallbackRecord, dict)):
        candidates = [candidates]

    records = [r for r in (_coerce(FallbackRecord, c) for c in candidates) if r is not None]
    for record in records:
        if key.matches(record.id):
            return record
    for record in records:
        if key.matches(record.onchain_id):
            return record
    return None


def _first_present(candidates: Iterable[tuple[str, Any]]) -> tuple[Any, Optional[str]]:
    for source, value in candidates:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value, source
    return None, None


def derive_percentage(goal: Decimal, amount_raised: Decimal) -> Decimal:
    """amount_raised as a percentage of goal; 0 for a zero goal. Not clamped."""
    if goal <= ZERO:
        return ZERO
    return amount_raised / goal * HUNDRED


def _matches_campaign(key: CampaignKey, campaign: Optional[Campaign]) -> bool:
    if campaign is None:
        return False
    return key.matches(campaign.id) or key.matches(campaign.onchain_id)


def reconcile(
    identifier: Union[Identifier, CampaignKey],
    fallback: Union[FallbackRecord, dict, Iterable[Any], None] = None,
    chain: Union[ChainRecord, dict, None] = None,
    metadata: Union[MetadataRecord, dict, None] = None,
    aggregate: Union[AggregateRecord, dict, None] = None,
    previous: Optional[Campaign] = None,
) -> Optional[Campaign]:
    """
    Merge source records into one Campaign view.

    Args:
        identifier: Campaign id in any supported shape
        fallback: Fallback record, or a collection to search by identifier
        chain: Registry record (None when unknown or unreachable)
        metadata: Metadata document (None when unpublished or unreachable)
        aggregate: Donation totals (None when the read failed)
        previous: Last view shown for this campaign; supplies amount_raised
            when the aggregate read failed

    Returns:
        Campaign, or None when neither chain, metadata nor fallback
        knows the identifier
    """
    key = normalize_identifier(identifier)
    fallback_record = find_fallback(key, fallback)
    chain_record = _coerce(ChainRecord, chain)
    metadata_record = _coerce(MetadataRecord, metadata)
    aggregate_record = _coerce(AggregateRecord, aggregate)

    if chain_record is not None and not key.matches(chain_record.campaign_id):
        logger.warning(
            "reconciler.chain_record_mismatch",
            campaign_id=key.text,
            record_campaign_id=chain_record.campaign_id,
        )
        chain_record = None

    if chain_record is None and metadata_record is None and fallback_record is None:
        logger.debug("reconciler.campaign_absent", campaign_id=key.text)
        return None

    records = {
        "metadata": metadata_record,
        "chain": chain_record,
        "fallback": fallback_record,
    }
    provenance: dict[str, str] = {}

    def text_field(name: str) -> Any:
        value, source = _first_present(
            (source, getattr(records[source], name, None)) for source in TEXT_PRECEDENCE
        )
        provenance[name] = source or "default"
        return value

    title = text_field("title") or ""
    description = text_field("description") or ""
    image = text_field("image")

    goal_candidates = [
        ("metadata", metadata_record.goal if metadata_record else None),
        ("chain", chain_record.goal if chain_record else None),
    ]
    if chain_record is None:
        goal_candidates.append(("fallback", fallback_record.goal if fallback_record else None))
    goal, goal_source = _first_present(goal_candidates)
    provenance["goal"] = goal_source or "default"
    goal = goal if goal is not None else ZERO

    if aggregate_record is not None:
        amount_raised, amount_source = aggregate_record.total_raised, "aggregate"
    elif _matches_campaign(key, previous):
        amount_raised, amount_source = previous.amount_raised, "previous"
    elif fallback_record is not None and fallback_record.amount_raised is not None:
        amount_raised, amount_source = fallback_record.amount_raised, "fallback"
    else:
        amount_raised, amount_source = ZERO, "default"
    provenance["amount_raised"] = amount_source
    provenance["percentage"] = amount_source

    if chain_record is not None:
        owner_address, active = chain_record.owner_address, chain_record.active
        provenance["owner_address"] = provenance["active"] = "chain"
    else:
        owner_address, active = None, True
        provenance["owner_address"] = provenance["active"] = "default"

    if chain_record is not None:
        onchain_id: Optional[int] = chain_record.campaign_id
    elif metadata_record is not None and key.is_numeric:
        onchain_id = key.number
    elif fallback_record is not None:
        onchain_id = parse_numeric_identifier(fallback_record.onchain_id)
    else:
        onchain_id = None

    if (chain_record is not None or metadata_record is not None) and key.is_numeric:
        campaign_id: Union[int, str] = key.number
    elif fallback_record is not None:
        campaign_id = fallback_record.id
    else:
        campaign_id = key.text

    campaign = Campaign(
        id=campaign_id,
        onchain_id=onchain_id,
        title=title,
        description=description,
        image=image,
        goal=goal,
        amount_raised=amount_raised,
        percentage=derive_percentage(goal, amount_raised),
        owner_address=owner_address,
        active=active,
        legacy_owner_address=fallback_record.wallet_address if fallback_record else None,
        organization_name=fallback_record.organization_name if fallback_record else None,
        about=fallback_record.about if fallback_record else None,
        how_it_works=fallback_record.how_it_works if fallback_record else None,
        use_of_funds=fallback_record.use_of_funds if fallback_record else None,
        provenance=provenance,
        sources=SourceRecords(
            fallback=fallback_record,
            chain=chain_record,
            metadata=metadata_record,
        ),
    )

    logger.debug(
        "reconciler.merged",
        campaign_id=key.text,
        has_chain=chain_record is not None,
        has_metadata=metadata_record is not None,
        has_fallback=fallback_record is not None,
        amount_source=amount_source,
    )
    return campaign


def refresh_totals(campaign: Campaign, aggregate: Optional[AggregateRecord]) -> Campaign:
    """
    Rebuild a view with a new aggregate read.

    Goes through reconcile() with the campaign's own source records so
    the same precedence applies; a failed read (None) keeps the current
    totals.
    """
    sources = campaign.sources
    if sources.chain or sources.metadata or sources.fallback:
        identifier = sources.chain.campaign_id if sources.chain is not None else campaign.id
        refreshed = reconcile(
            identifier,
            fallback=sources.fallback,
            chain=sources.chain,
            metadata=sources.metadata,
            aggregate=aggregate,
            previous=campaign,
        )
        if refreshed is not None:
            return refreshed

    if aggregate is None:
        return campaign
    provenance = dict(campaign.provenance)
    provenance["amount_raised"] = provenance["percentage"] = "aggregate"
    return replace(
        campaign,
        amount_raised=aggregate.total_raised,
        percentage=derive_percentage(campaign.goal, aggregate.total_raised),
        provenance=provenance,
    )
