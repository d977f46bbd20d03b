"""Registry client and session cache for package snapshots.

A published version never changes, so each snapshot is fetched once per
session and served from the injected key-value store afterwards. The full
version index is deliberately not cached: it is fetched once at startup to
seed the default selection and must reflect newly published versions.

Design notes:
- The cache is a Protocol so tests (or another host) can swap the backing
  store; ``InMemoryStore`` is the default and lives as long as the process
- The store is append-only: a key is written once and never updated
- Overlapping fetches for the same version are not deduplicated; they
  produce identical values and the last write wins
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from release_compare.config import CompareConfig
from release_compare.exceptions import MalformedPayload, NetworkFailure
from release_compare.logging_config import get_logger
from release_compare.schemas import PackageSnapshot, VersionIndex

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Key-value store
# ---------------------------------------------------------------------------


class KeyValueStore(Protocol):
    """String-keyed store holding serialized registry documents."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryStore:
    """Process-lifetime store. Created once, never cleared."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


# ---------------------------------------------------------------------------
# Metadata store
# ---------------------------------------------------------------------------


class MetadataStore:
    """Fetches package snapshots from the registry, caching per version.

    Usage:
        store = MetadataStore(config=CompareConfig(), cache=InMemoryStore())
        snapshot = await store.get("2.30.8")
    """

    def __init__(
        self,
        config: CompareConfig | None = None,
        cache: KeyValueStore | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            config: Registry location and package name. Uses defaults if None.
            cache: Session cache. A fresh InMemoryStore if None.
            client: Shared httpx client. One is opened per request if None.
        """
        self.config = config or CompareConfig()
        self.cache: KeyValueStore = cache if cache is not None else InMemoryStore()
        self._client = client

    def cache_key(self, version: str) -> str:
        return f"{self.config.cache_prefix}{version}"

    async def get(self, version: str) -> PackageSnapshot:
        """Return the snapshot for ``version``, fetching it on a cache miss.

        Raises:
            NetworkFailure: If the registry is unreachable or answers non-2xx
            MalformedPayload: If the document is not a valid package version
        """
        key = self.cache_key(version)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("snapshot_cache_hit", version=version)
            return self._parse_snapshot(json.loads(cached), url=key)

        url = f"{self.config.package_url}/{version}"
        raw = await self._fetch_json(url)
        snapshot = self._parse_snapshot(raw, url=url)
        self.cache.set(key, json.dumps(raw))
        logger.info("snapshot_cached", version=version, key=key)
        return snapshot

    async def get_latest_index(self) -> VersionIndex:
        """Fetch the full version index and dist-tags. Never cached."""
        url = self.config.package_url
        raw = await self._fetch_json(url)
        try:
            return VersionIndex.from_registry(raw)
        except (KeyError, TypeError, ValidationError) as exc:
            raise MalformedPayload(f"Unexpected version index shape: {exc}", url=url) from exc

    @staticmethod
    def _parse_snapshot(raw: Any, url: str) -> PackageSnapshot:
        try:
            return PackageSnapshot.from_registry(raw)
        except (KeyError, TypeError, AttributeError, ValidationError) as exc:
            raise MalformedPayload(f"Unexpected package document: {exc}", url=url) from exc

    async def _fetch_json(self, url: str) -> Any:
        logger.info("registry_fetch", url=url)
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.config.http_timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "registry_fetch_failed", url=url, status_code=exc.response.status_code
            )
            raise NetworkFailure(
                f"Registry answered {exc.response.status_code} for {url}",
                url=url,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.TransportError as exc:
            logger.error("registry_fetch_failed", url=url, error=str(exc))
            raise NetworkFailure(f"Registry request failed: {exc}", url=url) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedPayload(f"Registry body is not JSON: {exc}", url=url) from exc
