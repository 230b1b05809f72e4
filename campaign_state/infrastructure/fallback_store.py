"""
Fallback store: off-chain document store merged with a device-local cache.

Supplies best-effort campaign records for identifiers the chain does not
know yet, and enrichment fields the chain and metadata never carry.
Records are stored wholesale; field-level merging is the reconciler's job.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Optional, Union

import redis.asyncio as redis
import structlog
from pydantic import ValidationError

from ..errors import SourceUnavailable
from ..models.records import FallbackRecord
from ..identifiers import CampaignKey, Identifier, normalize_identifier

logger = structlog.get_logger()


def _parse_records(raw_documents: list[Any], source: str) -> list[FallbackRecord]:
    records = []
    for document in raw_documents:
        if not isinstance(document, dict):
            continue
        try:
            records.append(FallbackRecord.model_validate(document))
        except ValidationError as exc:
            logger.debug(
                "fallback_store.record_skipped",
                source=source,
                error_count=exc.error_count(),
            )
    return records


def _record_key(record: FallbackRecord) -> str:
    return normalize_identifier(record.id).text


class RedisDocumentStore:
    """
    Off-chain document collection kept in a Redis hash.

    Each field of the hash is a campaign id, each value the JSON document.
    """

    def __init__(self, url: Optional[str] = None, collection: str = "campaigns"):
        """
        Initialize document store.

        Args:
            url: Redis connection URL (default: from REDIS_URL env var)
            collection: Name of the Redis hash holding the documents
        """
        self.url = url or os.getenv("REDIS_URL", "redis://localhost:6379")
        self.collection = collection
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client, raising if not connected."""
        if self._client is None:
            raise RuntimeError("RedisDocumentStore not connected. Call connect() first.")
        return self._client

    async def connect(self) -> "RedisDocumentStore":
        self._client = redis.from_url(self.url, decode_responses=True)
        await self._client.ping()
        logger.info("document_store.connected", url=self.url, collection=self.collection)
        return self

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("document_store.disconnected")

    async def __aenter__(self) -> "RedisDocumentStore":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def all(self) -> list[dict]:
        """All documents in the collection."""
        raw = await self.client.hgetall(self.collection)
        documents = []
        for key, value in raw.items():
            try:
                documents.append(json.loads(value))
            except json.JSONDecodeError:
                logger.debug("document_store.bad_json", key=key)
        return documents

    async def put(self, key: str, document: dict) -> None:
        await self.client.hset(self.collection, key, json.dumps(document))


class LocalCampaignCache:
    """
    Device-local list of campaigns persisted as a JSON file.

    The file holds a JSON array of campaign documents.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    def _read(self) -> list[Any]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("local_cache.unreadable", path=str(self.path), error=str(exc))
            return []
        return data if isinstance(data, list) else []

    def _write(self, documents: list[Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(documents, f, indent=2, default=str)
        tmp_path.replace(self.path)

    async def all(self) -> list[Any]:
        async with self._lock:
            return self._read()

    async def put(self, key: str, document: dict) -> None:
        """Insert or replace the document stored under key."""
        async with self._lock:
            documents = self._read()
            target = normalize_identifier(key)
            kept = [
                d for d in documents
                if not (isinstance(d, dict) and target.matches(d.get("id")))
            ]
            kept.append(document)
            self._write(kept)


class FallbackStore:
    """
    Best-effort campaign records keyed by local identifier.

    Reads merge the document store with the local cache, de-duplicated
    by identifier; document-store entries win on collision. Either
    backend may be missing or failing without affecting the other.
    """

    def __init__(
        self,
        documents: Optional[RedisDocumentStore] = None,
        local: Optional[LocalCampaignCache] = None,
    ):
        self.documents = documents
        self.local = local

    async def _load_documents(self) -> list[FallbackRecord]:
        if self.documents is None:
            return []
        try:
            return _parse_records(await self.documents.all(), "documents")
        except Exception as exc:
            error = SourceUnavailable("documents", str(exc) or type(exc).__name__)
            logger.warning("fallback_store.documents_unavailable", error=str(error))
            return []

    async def _load_local(self) -> list[FallbackRecord]:
        if self.local is None:
            return []
        try:
            return _parse_records(await self.local.all(), "local")
        except Exception as exc:
            error = SourceUnavailable("local", str(exc) or type(exc).__name__)
            logger.warning("fallback_store.local_unavailable", error=str(error))
            return []

    async def load_all(self) -> list[FallbackRecord]:
        """All fallback records, document-store entries first."""
        documents, local = await asyncio.gather(self._load_documents(), self._load_local())
        merged: dict[str, FallbackRecord] = {}
        for record in documents + local:
            merged.setdefault(_record_key(record), record)
        return list(merged.values())

    async def load(self, identifier: Union[Identifier, CampaignKey]) -> Optional[FallbackRecord]:
        """
        Fallback record for an identifier.

        Matches either the record's local id or its on-chain id, by
        string or numeric equality.
        """
        key = normalize_identifier(identifier)
        records = await self.load_all()
        for record in records:
            if key.matches(record.id):
                return record
        for record in records:
            if key.matches(record.onchain_id):
                return record
        return None

    async def save(self, record: FallbackRecord) -> None:
        """Store a record wholesale in every configured backend."""
        key = _record_key(record)
        document = record.model_dump(mode="json")

        if self.documents is not None:
            try:
                await self.documents.put(key, document)
            except Exception as exc:
                logger.warning(
                    "fallback_store.documents_write_failed",
                    campaign_id=key,
                    error=str(exc),
                )
        if self.local is not None:
            await self.local.put(key, document)

        logger.info("fallback_store.saved", campaign_id=key)
