"""Shared pytest fixtures and in-memory collaborators."""

import asyncio
import json
from decimal import Decimal
from typing import Any, Optional

import httpx
import pytest

from campaign_state.infrastructure.aggregate import DonationAggregateReader
from campaign_state.infrastructure.chain import ChainCampaignReader
from campaign_state.infrastructure.metadata import MetadataFetcher
from campaign_state.infrastructure.transfer import ValueTransferSubmitter

OWNER = "0xAbCdEf0000000000000000000000000000000001"
ONE_NATIVE = 10**18


class FakeRegistry:
    """In-memory campaign registry."""

    def __init__(self, campaigns: Optional[dict] = None, cids: Optional[dict] = None):
        self.campaigns: dict[int, dict] = campaigns or {}
        self.cids: dict[int, str] = cids or {}
        self.fail = False
        self.calls: list[tuple] = []

    def _check(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if self.fail:
            raise ConnectionError("registry rpc unreachable")

    async def get_campaign(self, campaign_id: int) -> Optional[dict]:
        self._check("get_campaign", campaign_id)
        return self.campaigns.get(campaign_id)

    async def list_campaigns(self) -> list[dict]:
        self._check("list_campaigns")
        return [{"id": cid, **data} for cid, data in self.campaigns.items()]

    async def get_metadata_cid(self, campaign_id: int) -> Optional[str]:
        self._check("get_metadata_cid", campaign_id)
        return self.cids.get(campaign_id)

    async def is_active(self, campaign_id: int) -> bool:
        self._check("is_active", campaign_id)
        return bool(self.campaigns.get(campaign_id, {}).get("active", False))


class FakeLedger:
    """In-memory donation ledger."""

    def __init__(self, totals: Optional[dict] = None):
        self.totals: dict[int, Decimal] = totals or {}
        self.fail = False
        self.calls = 0

    async def get_donations(self, campaign_id: int) -> dict:
        self.calls += 1
        if self.fail:
            raise ConnectionError("ledger rpc unreachable")
        return {"totalRaised": str(self.totals.get(campaign_id, Decimal("0")))}


class FakeTransferClient:
    """Wallet double. Confirmed transfers are credited to the ledger."""

    def __init__(self, ledger: Optional[FakeLedger] = None, decimals: int = 18):
        self.ledger = ledger
        self.decimals = decimals
        self.reject_with: Optional[str] = None
        self.revert_with: Optional[str] = None
        self.finality_timeout = False
        self.gate: Optional[asyncio.Event] = None
        self.sent: list[tuple[int, int]] = []
        self._counter = 0

    async def donate(self, campaign_id: int, value_base_units: int) -> Any:
        if self.reject_with is not None:
            raise RuntimeError(self.reject_with)
        self._counter += 1
        self.sent.append((campaign_id, value_base_units))
        return {"hash": f"0xtx{self._counter:04d}", "campaign_id": campaign_id, "value": value_base_units}

    async def wait_for_receipt(self, handle: Any) -> dict:
        if self.gate is not None:
            await self.gate.wait()
        if self.finality_timeout:
            raise asyncio.TimeoutError()
        if self.revert_with is not None:
            raise RuntimeError(self.revert_with)
        if self.ledger is not None:
            campaign_id = handle["campaign_id"]
            credited = Decimal(handle["value"]).scaleb(-self.decimals)
            self.ledger.totals[campaign_id] = self.ledger.totals.get(campaign_id, Decimal("0")) + credited
        return {"transactionHash": handle["hash"], "status": 1}


class FakeMutator:
    """Owner-only registry writes, recorded."""

    def __init__(self):
        self.updates: list[tuple] = []
        self.deactivated: list[int] = []
        self.fail_with: Optional[str] = None

    async def update_campaign(self, campaign_id, title, description, image_ref):
        if self.fail_with:
            raise RuntimeError(self.fail_with)
        self.updates.append((campaign_id, title, description, image_ref))

    async def deactivate_campaign(self, campaign_id):
        if self.fail_with:
            raise RuntimeError(self.fail_with)
        self.deactivated.append(campaign_id)


def gateway_transport(documents: dict[str, Any], fail: bool = False) -> httpx.MockTransport:
    """Mock content-address gateway serving documents by CID."""

    def handler(request: httpx.Request) -> httpx.Response:
        if fail:
            raise httpx.ConnectError("gateway unreachable", request=request)
        cid = request.url.path.rsplit("/", 1)[-1]
        if cid not in documents:
            return httpx.Response(404, text="not found")
        body = documents[cid]
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, text=json.dumps(body))

    return httpx.MockTransport(handler)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as requiring external services (Redis, etc.)"
    )


def _redis_available():
    """Check if Redis is available."""
    import socket
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(('localhost', 6379))
        sock.close()
        return result == 0
    except OSError:
        return False


def pytest_collection_modifyitems(config, items):
    """Skip integration tests if Redis is not available."""
    if _redis_available():
        return
    skip_integration = pytest.mark.skip(reason="Redis not available")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def registry():
    """Registry with one active campaign (id 7) and one inactive (id 8)."""
    return FakeRegistry(
        campaigns={
            7: {
                "owner": OWNER,
                "active": True,
                "title": "Chain title",
                "description": "Chain description",
                "image": "ipfs://chain-image",
                "goal": str(200 * ONE_NATIVE),
                "createdAt": 1_700_000_000,
            },
            8: {
                "owner": OWNER,
                "active": False,
                "title": "Closed campaign",
                "goal": str(10 * ONE_NATIVE),
                "createdAt": 1_600_000_000,
            },
        },
        cids={7: "bafymeta7"},
    )


@pytest.fixture
def ledger():
    return FakeLedger(totals={7: Decimal("50"), 8: Decimal("10")})


@pytest.fixture
def transfers(ledger):
    return FakeTransferClient(ledger=ledger)


@pytest.fixture
def mutator():
    return FakeMutator()


@pytest.fixture
def metadata_documents():
    return {
        "bafymeta7": {
            "title": "Clean Water for Kisumu",
            "description": "Boreholes for three villages",
            "image": "ipfs://bafyimage7",
        }
    }


@pytest.fixture
async def gateway_client():
    """Factory for httpx clients backed by a mock gateway."""
    clients = []

    def make(documents, fail=False):
        client = httpx.AsyncClient(transport=gateway_transport(documents, fail=fail))
        clients.append(client)
        return client

    yield make
    for client in clients:
        await client.aclose()


@pytest.fixture
def chain_reader(registry):
    return ChainCampaignReader(registry)


@pytest.fixture
def aggregate_reader(ledger):
    return DonationAggregateReader(ledger)


@pytest.fixture
def submitter(transfers):
    return ValueTransferSubmitter(transfers)


@pytest.fixture
async def metadata_fetcher(metadata_documents):
    client = httpx.AsyncClient(transport=gateway_transport(metadata_documents))
    fetcher = MetadataFetcher(gateway_url="https://gateway.test/ipfs", client=client)
    yield fetcher
    await client.aclose()


@pytest.fixture
def fallback_document():
    """A campaign as the web app writes it (camelCase keys)."""
    return {
        "id": 3,
        "onchainId": "7",
        "title": "Cached title",
        "description": "Cached description",
        "goal": 10,
        "amountRaised": 4,
        "ngoName": "Water Trust",
        "walletAddress": "0x00000000000000000000000000000000000000AA",
        "howItWorks": "We drill.",
        "createdAt": "2025-01-15T10:00:00",
    }
