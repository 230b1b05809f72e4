"""
Chain campaign reader.

Wraps the registry client with a "value or absent" contract: every
failure is logged as a SourceUnavailable event and returned as None.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from ..errors import SourceUnavailable
from ..models.records import ChainRecord
from .clients import CampaignRegistryClient
from .units import from_base_units

logger = structlog.get_logger()


def _parse_created_at(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Registry timestamps are unix seconds
        return datetime.fromtimestamp(value, tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


class ChainCampaignReader:
    """Read-only access to the on-chain campaign registry."""

    SOURCE = "chain"

    def __init__(self, client: CampaignRegistryClient, native_unit_decimals: int = 18):
        """
        Initialize chain reader.

        Args:
            client: Registry client
            native_unit_decimals: Decimals between base units and native units
        """
        self.client = client
        self.native_unit_decimals = native_unit_decimals

    def _unavailable(self, operation: str, campaign_id: Any, exc: Exception) -> None:
        error = SourceUnavailable(self.SOURCE, str(exc) or type(exc).__name__)
        logger.warning(
            "chain_reader.unavailable",
            operation=operation,
            campaign_id=campaign_id,
            error=str(error),
        )

    def to_record(self, campaign_id: int, raw: dict[str, Any]) -> ChainRecord:
        """Project a raw registry entry onto a ChainRecord."""
        goal = raw.get("goal", raw.get("goalBaseUnits"))
        return ChainRecord(
            campaign_id=campaign_id,
            owner_address=raw.get("owner") or raw.get("ngo"),
            active=bool(raw.get("active", True)),
            title=raw.get("title"),
            description=raw.get("description"),
            image=raw.get("image"),
            goal=from_base_units(goal, self.native_unit_decimals),
            created_at=_parse_created_at(raw.get("createdAt")),
        )

    async def get(self, campaign_id: int) -> Optional[ChainRecord]:
        """Registry entry for one id, or None if unknown or unreachable."""
        try:
            raw = await self.client.get_campaign(campaign_id)
            if not raw:
                logger.debug("chain_reader.not_indexed", campaign_id=campaign_id)
                return None
            return self.to_record(campaign_id, raw)
        except Exception as exc:
            self._unavailable("get", campaign_id, exc)
            return None

    async def list_active(self) -> list[ChainRecord]:
        """All active registry entries; empty on failure."""
        try:
            entries = await self.client.list_campaigns()
        except Exception as exc:
            self._unavailable("list_active", None, exc)
            return []

        records = []
        for raw in entries or []:
            try:
                record = self.to_record(int(raw["id"]), raw)
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("chain_reader.entry_skipped", error=str(exc))
                continue
            if record.active:
                records.append(record)
        return records

    async def get_metadata_address(self, campaign_id: int) -> Optional[str]:
        """Content address of the metadata document, if one was published."""
        try:
            address = await self.client.get_metadata_cid(campaign_id)
        except Exception as exc:
            self._unavailable("get_metadata_address", campaign_id, exc)
            return None
        if not address or not str(address).strip():
            return None
        return str(address).strip()

    async def active(self, campaign_id: int) -> Optional[bool]:
        """Registry activation flag; None when the registry is unreachable."""
        try:
            return bool(await self.client.is_active(campaign_id))
        except Exception as exc:
            self._unavailable("active", campaign_id, exc)
            return None
