"""Shared fixtures: a real SQLite durable store and an in-memory cache."""

import logging
import sys
from typing import Optional, Sequence, Union

import pytest
import pytest_asyncio
import structlog
from structlog.testing import LogCapture

from keystore.exceptions import CacheError, StoreError
from keystore.keystore import Keystore
from keystore.store.database import DurableStore


def configure_test_logging() -> None:
    """Warnings and errors only, on stderr, so stdout stays clean for CLI output."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


configure_test_logging()


class InMemoryCache:
    """
    Cache double with the same interface as CacheManager.

    Time is a manual clock so tests can expire entries without waiting.
    Operations named in ``failing`` raise CacheError.
    """

    def __init__(self) -> None:
        self.entries: dict[str, str] = {}
        self.expires_at: dict[str, float] = {}
        self.ttls: dict[str, Optional[int]] = {}
        self.now = 0.0
        self.failing: set[str] = set()
        self.connected = False
        self.calls: list[str] = []

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _check(self, operation: str, key: Optional[str] = None) -> None:
        self.calls.append(operation)
        if operation in self.failing:
            raise CacheError("simulated failure", operation=operation, key=key)

    def _evict_expired(self) -> None:
        for key, deadline in list(self.expires_at.items()):
            if deadline <= self.now:
                self.entries.pop(key, None)
                self.expires_at.pop(key, None)

    async def connect(self) -> None:
        self._check("connect")
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def ping(self) -> bool:
        return self.connected and "ping" not in self.failing

    async def get(self, key: str) -> Optional[str]:
        self._check("get", key)
        self._evict_expired()
        return self.entries.get(key)

    async def set(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        self._check("set", key)
        self.entries[key] = value
        self.ttls[key] = ttl
        if ttl:
            self.expires_at[key] = self.now + ttl
        else:
            self.expires_at.pop(key, None)
        return True

    async def delete(self, keys: Union[str, Sequence[str]]) -> int:
        batch = [keys] if isinstance(keys, str) else list(keys)
        self._check("delete", batch[0] if len(batch) == 1 else None)
        self._evict_expired()
        removed = 0
        for key in batch:
            if self.entries.pop(key, None) is not None:
                removed += 1
            self.expires_at.pop(key, None)
        return removed

    async def keys_by_prefix(self, prefix: str) -> list[str]:
        self._check("scan", prefix)
        self._evict_expired()
        return sorted(key for key in self.entries if key.startswith(prefix))

    async def flush_all(self) -> bool:
        self._check("flush")
        self.entries.clear()
        self.expires_at.clear()
        return True


class FlakyStore(DurableStore):
    """DurableStore whose operations can be made to fail on demand."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.failing: set[str] = set()

    def _maybe_fail(self, operation: str, key: Optional[str] = None) -> None:
        if operation in self.failing:
            raise StoreError("simulated failure", operation=operation, key=key)

    async def get(self, key: str) -> Optional[str]:
        self._maybe_fail("get", key)
        return await super().get(key)

    async def upsert(self, key: str, value: str) -> None:
        self._maybe_fail("set", key)
        await super().upsert(key, value)

    async def delete(self, key: str) -> int:
        self._maybe_fail("delete", key)
        return await super().delete(key)

    async def list_keys(self) -> list[str]:
        self._maybe_fail("list_keys")
        return await super().list_keys()


@pytest.fixture
def sqlite_url(tmp_path):
    """URL of a fresh SQLite database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'keystore.db'}"


@pytest.fixture
def memory_cache():
    return InMemoryCache()


@pytest_asyncio.fixture
async def durable_store(sqlite_url):
    """Connected durable store on SQLite."""
    store = FlakyStore(sqlite_url, table="storekey")
    await store.connect()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def keystore(sqlite_url, memory_cache):
    """Connected keystore with a 5 second default TTL."""
    ks = Keystore(
        sql_url=sqlite_url,
        redis_url="redis://localhost:6379/15",
        default_ttl=5,
        store=FlakyStore(sqlite_url, table="storekey"),
        cache=memory_cache,
    )
    await ks.connect()
    yield ks
    await ks.close()


@pytest.fixture
def captured_logs():
    """Every structlog event at DEBUG and above, as a list of dicts."""
    capture = LogCapture()
    structlog.configure(
        processors=[capture],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )
    yield capture.entries
    configure_test_logging()


@pytest_asyncio.fixture
async def debug_keystore(sqlite_url, memory_cache):
    """Connected keystore with step-by-step tracing on."""
    ks = Keystore(
        sql_url=sqlite_url,
        redis_url="redis://localhost:6379/15",
        default_ttl=5,
        debug=True,
        store=FlakyStore(sqlite_url, table="storekey"),
        cache=memory_cache,
    )
    await ks.connect()
    yield ks
    await ks.close()
