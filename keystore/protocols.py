"""Interfaces the Keystore facade needs from its two tiers.

DurableStore and CacheManager implement these; any object with the same
async methods can be injected instead.
"""

from typing import Optional, Protocol, Sequence, Union, runtime_checkable


@runtime_checkable
class DurableStoreProtocol(Protocol):
    """Authoritative key-value table. Failures raise StoreError."""

    async def connect(self) -> None:
        """Open the connection and create the table if needed."""

    async def close(self) -> None:
        """Release the connection."""

    async def ping(self) -> bool:
        """Return True when the database answers."""

    async def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None when the key does not exist."""

    async def upsert(self, key: str, value: str) -> None:
        """Insert or update the value for key."""

    async def delete(self, key: str) -> int:
        """Delete key if present; return the number of rows removed."""

    async def list_keys(self) -> list[str]:
        """List every key in the table."""


@runtime_checkable
class VolatileCacheProtocol(Protocol):
    """Best-effort cache. Failures raise CacheError."""

    async def connect(self) -> None:
        """Open the connection pool."""

    async def close(self) -> None:
        """Release the connection pool."""

    async def ping(self) -> bool:
        """Return True when the cache server answers."""

    async def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None on a miss."""

    async def set(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        """Cache value; ttl None means no expiry."""

    async def delete(self, keys: Union[str, Sequence[str]]) -> int:
        """Delete one or many keys; return how many were removed."""

    async def keys_by_prefix(self, prefix: str) -> list[str]:
        """List cached keys starting with prefix."""

    async def flush_all(self) -> bool:
        """Remove every cached key."""
