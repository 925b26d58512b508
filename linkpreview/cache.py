"""Link metadata cache backed by a key-value store.

Entries are keyed by the URL exactly as it appeared in the message and
expire passively after a fixed TTL. Store failures never reach the caller:
a failed read is a miss and a failed write is dropped.
"""

import logging
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from .extractor import LinkMetadata

logger = logging.getLogger(__name__)

DEFAULT_TTL_SEC = 3600
DEFAULT_KEY_PREFIX = "link_meta:"


class StoreError(Exception):
    """Raised by a key-value store when it cannot serve a request."""


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def put(self, key: str, value: str, expiration_ttl: int) -> None:
        ...


class MemoryStore:
    """In-process key-value store with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize memory store.

        Args:
            clock: Time source in seconds, monotonic by default
        """
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: str, expiration_ttl: int) -> None:
        if expiration_ttl <= 0:
            raise StoreError(f"expiration_ttl must be > 0, got {expiration_ttl}")
        now = self._clock()
        self._purge_expired(now)
        self._entries[key] = (now + expiration_ttl, value)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def get_cache_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with valid/expired entry counts
        """
        now = self._clock()
        valid = sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": len(self._entries) - valid,
        }


class MetadataCache:
    """Cache link metadata in a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        ttl_sec: int = DEFAULT_TTL_SEC,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        """Initialize metadata cache.

        Args:
            store: Backing key-value store
            ttl_sec: Lifetime of every entry in seconds (default 1 hour)
            key_prefix: Namespace prepended to each URL
        """
        self.store = store
        self.ttl_sec = ttl_sec
        self.key_prefix = key_prefix

        self.hits = 0
        self.misses = 0
        self.errors = 0

    def cache_key(self, url: str) -> str:
        return f"{self.key_prefix}{url}"

    async def get(self, url: str) -> Optional[LinkMetadata]:
        """Look up cached metadata for a URL.

        Args:
            url: URL as originally requested

        Returns:
            Cached metadata, or None on a miss, a store failure or an
            unreadable entry
        """
        key = self.cache_key(url)
        try:
            payload = await self.store.get(key)
        except Exception as e:
            self.errors += 1
            logger.error(f"Cache read error for {url}: {e}")
            return None

        if not payload:
            self.misses += 1
            return None

        try:
            metadata = LinkMetadata.from_json(payload)
        except ValueError as e:
            self.errors += 1
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

        self.hits += 1
        return metadata

    async def put(self, url: str, metadata: LinkMetadata) -> bool:
        """Store metadata for a URL; returns False if the store refused it."""
        key = self.cache_key(url)
        try:
            await self.store.put(key, metadata.to_json(), expiration_ttl=self.ttl_sec)
        except Exception as e:
            self.errors += 1
            logger.error(f"Cache write error for {url}: {e}")
            return False
        return True

    def get_stats(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "ttl_sec": self.ttl_sec,
        }
