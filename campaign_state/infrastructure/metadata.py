"""
Metadata fetcher for content-addressed campaign documents.

Documents are JSON fetched through an HTTP gateway. Parsing is
best-effort: unknown keys are ignored, malformed fields become None,
and any transport or decode failure yields None.
"""

from typing import Optional

import httpx
import structlog

from ..errors import SourceUnavailable
from ..models.records import MetadataRecord

logger = structlog.get_logger()

_SCHEME_PREFIXES = ("ipfs://ipfs/", "ipfs://", "/ipfs/")


def normalize_content_address(address: str) -> str:
    """Strip URI scheme prefixes so only the bare content address remains."""
    address = address.strip()
    for prefix in _SCHEME_PREFIXES:
        if address.startswith(prefix):
            return address[len(prefix):]
    return address


class MetadataFetcher:
    """Fetches metadata documents from a content-address gateway."""

    SOURCE = "metadata"

    def __init__(
        self,
        gateway_url: str = "https://ipfs.io/ipfs/",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize metadata fetcher.

        Args:
            gateway_url: Base URL the content address is appended to
            timeout: Per-request timeout in seconds
            client: Shared httpx client (default: one owned by this fetcher)
        """
        self.gateway_url = gateway_url if gateway_url.endswith("/") else gateway_url + "/"
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the owned HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "MetadataFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def url_for(self, address: str) -> str:
        return f"{self.gateway_url}{normalize_content_address(address)}"

    async def fetch(self, address: Optional[str]) -> Optional[MetadataRecord]:
        """
        Dereference a content address.

        Args:
            address: Content address (bare CID or ipfs:// URI)

        Returns:
            MetadataRecord, or None if absent, unreachable or not a JSON object
        """
        if not address or not address.strip():
            return None

        url = self.url_for(address)
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            document = response.json()
        except Exception as exc:
            error = SourceUnavailable(self.SOURCE, str(exc) or type(exc).__name__)
            logger.warning("metadata_fetcher.unavailable", url=url, error=str(error))
            return None

        if not isinstance(document, dict):
            logger.warning(
                "metadata_fetcher.unexpected_shape",
                url=url,
                document_type=type(document).__name__,
            )
            return None

        try:
            record = MetadataRecord.model_validate(document)
        except ValueError as exc:
            logger.warning("metadata_fetcher.invalid_document", url=url, error=str(exc))
            return None

        logger.debug(
            "metadata_fetcher.fetched",
            url=url,
            has_goal=record.goal is not None,
        )
        return record
