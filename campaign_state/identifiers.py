"""
Campaign identifier normalization.

Identifiers reach the engine as small integers (route params, local ids)
or as large-integer strings produced by chain clients (decimal or 0x-hex).
Everything is normalized to a CampaignKey before any lookup.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

Identifier = Union[int, str]


@dataclass(frozen=True)
class CampaignKey:
    """Canonical, comparable form of a campaign identifier."""

    text: str
    number: Optional[int] = None

    @property
    def is_numeric(self) -> bool:
        return self.number is not None

    def matches(self, other: Any) -> bool:
        """
        Compare against an identifier stored in some other shape.

        Both string equality and numeric equality are tried, since
        fallback records may have been stored under either.
        """
        if other is None or isinstance(other, bool):
            return False
        if str(other).strip() == self.text:
            return True
        if self.number is None:
            return False
        return parse_numeric_identifier(other) == self.number

    def __str__(self) -> str:
        return self.text


def parse_numeric_identifier(value: Any) -> Optional[int]:
    """Integer value of an identifier, or None if it is not integer-shaped."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        if text.isdigit():
            return int(text)
    except ValueError:
        return None
    return None


def normalize_identifier(identifier: Union[Identifier, CampaignKey]) -> CampaignKey:
    """Normalize an int, decimal string or hex string into a CampaignKey."""
    if isinstance(identifier, CampaignKey):
        return identifier
    number = parse_numeric_identifier(identifier)
    if number is not None and number >= 0:
        return CampaignKey(text=str(number), number=number)
    return CampaignKey(text=str(identifier).strip())
