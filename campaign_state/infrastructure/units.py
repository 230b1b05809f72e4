"""Conversion between ledger base units and native units."""

from decimal import Decimal
from typing import Any, Optional

from ..models.records import parse_decimal


def from_base_units(value: Any, decimals: int) -> Optional[Decimal]:
    """Base-unit integer (or numeric string) to native units."""
    amount = parse_decimal(value)
    if amount is None:
        return None
    return amount.scaleb(-decimals)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """
    Native units to an exact base-unit integer.

    Raises:
        ValueError: if the amount carries more precision than the ledger supports
    """
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} exceeds {decimals} decimal places")
    return int(scaled)
