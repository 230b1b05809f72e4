"""
Source record schemas.

Each external source is parsed into an explicit optional-field model.
Missing or malformed values become None here so that precedence is
decided in one place (the reconciler) instead of by truthiness checks
scattered through call sites.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Best-effort conversion to a finite Decimal; None when impossible."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def _non_negative(value: Any) -> Optional[Decimal]:
    result = parse_decimal(value)
    if result is None or result < 0:
        return None
    return result


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ChainRecord(BaseModel):
    """Read-only projection of one registry entry."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    campaign_id: int
    owner_address: Optional[str] = None
    active: bool = True
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    goal: Optional[Decimal] = None  # native units
    created_at: Optional[datetime] = None

    @field_validator("owner_address", "title", "description", "image", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Optional[str]:
        return _clean_text(value)

    @field_validator("goal", mode="before")
    @classmethod
    def tolerant_goal(cls, value: Any) -> Optional[Decimal]:
        return _non_negative(value)


class MetadataRecord(BaseModel):
    """Content-addressed metadata document. Every field is optional."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    goal: Optional[Decimal] = None

    @field_validator("title", "description", "image", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Optional[str]:
        if value is not None and not isinstance(value, (str, int, float)):
            return None
        return _clean_text(value)

    @field_validator("goal", mode="before")
    @classmethod
    def tolerant_goal(cls, value: Any) -> Optional[Decimal]:
        return _non_negative(value)


class AggregateRecord(BaseModel):
    """Sum of all donation events for one campaign, in native units."""

    model_config = ConfigDict(frozen=True)

    total_raised: Decimal = Field(ge=0)


class FallbackRecord(BaseModel):
    """
    Campaign shape cached locally or in the off-chain document store.

    Accepts both snake_case names and the camelCase keys the web app
    writes. Serialized with snake_case names.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: Union[int, str]
    onchain_id: Optional[Union[int, str]] = Field(
        default=None, validation_alias=AliasChoices("onchain_id", "onchainId")
    )
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("image", "coverImage")
    )
    goal: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("goal", "target")
    )
    amount_raised: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("amount_raised", "amountRaised")
    )
    organization_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("organization_name", "ngoName")
    )
    wallet_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("wallet_address", "walletAddress")
    )
    about: Optional[str] = None
    how_it_works: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("how_it_works", "howItWorks")
    )
    use_of_funds: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("use_of_funds", "useOfFunds")
    )
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )

    @field_validator(
        "title", "description", "image", "organization_name",
        "wallet_address", "about", "how_it_works", "use_of_funds",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value: Any) -> Optional[str]:
        return _clean_text(value)

    @field_validator("goal", "amount_raised", mode="before")
    @classmethod
    def tolerant_amount(cls, value: Any) -> Optional[Decimal]:
        return _non_negative(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def tolerant_timestamp(cls, value: Any) -> Any:
        if value in ("", None):
            return None
        return value
