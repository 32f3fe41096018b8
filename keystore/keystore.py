"""
Keystore facade: one key-value API over a Redis cache and a SQL store.

Reads check the cache first and fall back to the durable store, putting
what they find back into the cache. Writes go to the durable store first
and then to the cache. Operational failures are logged, reported through
an ``error`` event and turned into neutral results (None / False / 0);
only configuration errors raise.

Example:
    >>> async with Keystore(sql_url="sqlite+aiosqlite:///keys.db",
    ...                     redis_url="redis://localhost:6379/0") as ks:
    ...     await ks.set("user:1", "Ada")
    ...     await ks.get("user:1")
    'Ada'
"""
import asyncio
import time
from typing import Any, Optional, Union

from keystore.cache.keys import KeyNamespace
from keystore.cache.manager import CacheManager
from keystore.config import KeystoreSettings, load_settings
from keystore.events import EventEmitter, Listener
from keystore.exceptions import CacheError, KeystoreConnectionError, KeystoreError, StoreError
from keystore.maintenance import MaintenanceScheduler, Sleep
from keystore.models.events import (
    ErrorEvent,
    EventType,
    FlushEvent,
    FlushScope,
    HealthReport,
    OperationEvent,
    Tier,
)
from keystore.protocols import DurableStoreProtocol, VolatileCacheProtocol
from keystore.store.database import DurableStore
from keystore.utils.logger import get_logger, log_operation

logger = get_logger(__name__)


class Keystore:
    """
    Cache-aside key-value store.

    Attributes:
        settings: Validated KeystoreSettings
        store: Durable tier adapter
        cache: Volatile tier adapter
        events: EventEmitter for get/set/delete/flush/ready/error/close
        maintenance: Periodic flush jobs, started by connect()
    """

    def __init__(
        self,
        settings: Optional[KeystoreSettings] = None,
        *,
        store: Optional[DurableStoreProtocol] = None,
        cache: Optional[VolatileCacheProtocol] = None,
        emitter: Optional[EventEmitter] = None,
        sleep: Sleep = asyncio.sleep,
        **options: Any,
    ) -> None:
        """
        Initialize the keystore. Nothing is connected until connect().

        Args:
            settings: Ready-made settings; otherwise built from ``options``
                and KEYSTORE_* environment variables
            store: Durable store adapter (default: DurableStore from settings)
            cache: Cache adapter (default: CacheManager from settings)
            emitter: Event emitter to publish on (default: a new one)
            sleep: Sleep used by the maintenance jobs
            **options: KeystoreSettings fields (sql_url, redis_url, ...)

        Raises:
            ConfigurationError: If an address is missing or an option is invalid
        """
        if settings is not None and options:
            raise TypeError("Pass either settings or keyword options, not both")

        self.settings = settings if settings is not None else load_settings(**options)

        self.store = store if store is not None else DurableStore(
            self.settings.sql_url, table=self.settings.sql_table
        )
        self.cache = cache if cache is not None else CacheManager.from_url(
            self.settings.redis_url
        )
        self.events = emitter if emitter is not None else EventEmitter()
        self.temp_namespace = KeyNamespace(self.settings.temp_prefix)

        self.maintenance = MaintenanceScheduler(
            flush_all=self.flush_all,
            flush_temporary=self.flush_temporary,
            full_flush_interval=self.settings.auto_flush_interval,
            temp_flush_interval=self.settings.auto_temp_flush_interval,
            sleep=sleep,
        )

        self._ready = False
        self._closed = False

        logger.info(
            "keystore_initialized",
            table=self.settings.sql_table,
            default_ttl=self.settings.default_ttl,
            maintenance_jobs=sorted(self.maintenance.jobs),
            debug=self.settings.debug,
        )

    # --- Lifecycle ---

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def closed(self) -> bool:
        return self._closed

    async def connect(self) -> bool:
        """
        Connect both tiers, create the table and start maintenance jobs.

        Emits ``ready`` once on success. On a connection failure the
        keystore stays not-ready and the error is reported, not raised.

        Returns:
            True if the keystore is ready
        """
        if self._ready:
            return True

        if self._closed:
            logger.warning("keystore_connect_after_close")
            return False

        try:
            self._trace("connecting", tier=Tier.VOLATILE.value)
            await self.cache.connect()
            self._trace("connected", tier=Tier.VOLATILE.value)

            self._trace("connecting", tier=Tier.DURABLE.value)
            await self.store.connect()
            self._trace("connected", tier=Tier.DURABLE.value)

        except KeystoreConnectionError as e:
            await self._report_error("connect", None, e)
            return False

        self._ready = True
        logger.info("keystore_ready", table=self.settings.sql_table)

        await self.events.emit(EventType.READY)
        self.maintenance.start()

        return True

    async def close(self) -> None:
        """Stop maintenance jobs and disconnect both tiers. Idempotent."""
        if self._closed:
            return

        self._closed = True
        self._ready = False

        try:
            await self.maintenance.stop()
            await self.cache.close()
        finally:
            await self.store.close()

        logger.info("keystore_closed")
        await self.events.emit(EventType.CLOSE)

    async def __aenter__(self) -> "Keystore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- Events ---

    def on(self, event: Union[EventType, str], listener: Listener) -> Listener:
        """Subscribe to a keystore event."""
        return self.events.on(event, listener)

    def off(self, event: Union[EventType, str], listener: Listener) -> bool:
        return self.events.off(event, listener)

    # --- Key-value API ---

    async def get(self, key: str) -> Optional[str]:
        """
        Read key, cache first.

        On a cache miss the durable store is consulted and a hit there is
        written back to the cache with the default TTL.

        Returns:
            The stored value, or None if the key exists in neither tier
            (or the durable store could not be read)
        """
        _check_key(key)
        started = time.perf_counter()

        self._trace("get", key=key, tier=Tier.VOLATILE.value)
        try:
            value = await self.cache.get(key)
        except CacheError as e:
            # An unreadable cache is a miss
            await self._report_error("get", key, e, recoverable=True)
            value = None
        else:
            await self._emit_operation(EventType.GET, key, value, Tier.VOLATILE)

        if value is not None:
            log_operation("get", key, Tier.VOLATILE.value, _elapsed_ms(started), hit=True)
            return value

        self._trace("get", key=key, tier=Tier.DURABLE.value)
        try:
            value = await self.store.get(key)
        except StoreError as e:
            await self._report_error("get", key, e)
            log_operation("get", key, Tier.DURABLE.value, _elapsed_ms(started), error=str(e))
            return None

        await self._emit_operation(EventType.GET, key, value, Tier.DURABLE)

        if value is None:
            log_operation("get", key, "none", _elapsed_ms(started), hit=False)
            return None

        self._trace("repopulate", key=key, ttl=self.settings.default_ttl)
        await self._cache_set("get", key, value)

        log_operation("get", key, Tier.DURABLE.value, _elapsed_ms(started), hit=True)
        return value

    async def set(self, key: str, value: str) -> bool:
        """
        Write key to the durable store, then to the cache.

        Returns:
            False if the durable write failed (the cache is then left
            untouched); True otherwise, even if the cache write failed
        """
        _check_key(key)
        _check_value(value)
        started = time.perf_counter()

        self._trace("set", key=key, tier=Tier.DURABLE.value)
        try:
            await self.store.upsert(key, value)
        except StoreError as e:
            await self._report_error("set", key, e)
            log_operation("set", key, Tier.DURABLE.value, _elapsed_ms(started), error=str(e))
            return False

        await self._emit_operation(EventType.SET, key, value, Tier.DURABLE)

        self._trace("set", key=key, tier=Tier.VOLATILE.value)
        cached = await self._cache_set("set", key, value)

        log_operation("set", key, Tier.DURABLE.value, _elapsed_ms(started), cached=cached)
        return True

    async def delete(self, key: str) -> bool:
        """
        Delete key from the durable store, then from the cache.

        Deleting a key that does not exist succeeds.

        Returns:
            False if the durable delete failed (the cache is then left
            untouched); True otherwise
        """
        _check_key(key)
        started = time.perf_counter()

        self._trace("delete", key=key, tier=Tier.DURABLE.value)
        try:
            await self.store.delete(key)
        except StoreError as e:
            await self._report_error("delete", key, e)
            log_operation("delete", key, Tier.DURABLE.value, _elapsed_ms(started), error=str(e))
            return False

        await self._emit_operation(EventType.DELETE, key, None, Tier.DURABLE)

        self._trace("delete", key=key, tier=Tier.VOLATILE.value)
        try:
            await self.cache.delete(key)
        except CacheError as e:
            await self._report_error("delete", key, e, recoverable=True)
        else:
            await self._emit_operation(EventType.DELETE, key, None, Tier.VOLATILE)

        log_operation("delete", key, Tier.DURABLE.value, _elapsed_ms(started))
        return True

    async def list_keys(self) -> list[str]:
        """All keys held by the durable store ([] if it cannot be read)."""
        try:
            return await self.store.list_keys()
        except StoreError as e:
            await self._report_error("list_keys", None, e)
            return []

    # --- Cache maintenance ---

    async def flush(self, scope: Union[FlushScope, str] = FlushScope.ALL) -> Union[bool, int]:
        """Flush the whole cache (ALL) or only the temporary namespace (TEMP)."""
        scope = FlushScope(scope)
        if scope is FlushScope.TEMP:
            return await self.flush_temporary()
        return await self.flush_all()

    async def flush_all(self) -> bool:
        """
        Empty the cache. The durable store is untouched.

        Returns:
            True if the cache acknowledged the flush
        """
        self._trace("flush", scope=FlushScope.ALL.value)
        try:
            await self.cache.flush_all()
        except CacheError as e:
            await self._report_error("flush", None, e, recoverable=True)
            return False

        await self.events.emit(EventType.FLUSH, FlushEvent(scope=FlushScope.ALL))
        return True

    async def flush_temporary(self) -> int:
        """
        Delete every cached key under the temporary prefix.

        Returns:
            Number of keys removed (0 on failure)
        """
        prefix = self.temp_namespace.prefix
        self._trace("flush", scope=FlushScope.TEMP.value, prefix=prefix)

        try:
            keys = await self.cache.keys_by_prefix(prefix)
            removed = await self.cache.delete(keys) if keys else 0
        except CacheError as e:
            await self._report_error("flush", None, e, recoverable=True)
            return 0

        if removed:
            logger.info("temp_keys_flushed", prefix=prefix, removed=removed)

        await self.events.emit(
            EventType.FLUSH, FlushEvent(scope=FlushScope.TEMP, removed=removed)
        )
        return removed

    async def health(self) -> HealthReport:
        """
        Ping both tiers.

        The cache is advisory, so a keystore with only the durable tier up
        is "degraded" rather than "unhealthy".
        """
        durable = await self.store.ping()
        volatile = await self.cache.ping()

        components = {
            Tier.DURABLE.value: "healthy" if durable else "unhealthy",
            Tier.VOLATILE.value: "healthy" if volatile else "unhealthy",
        }

        if durable and volatile:
            status = "healthy"
        elif durable:
            status = "degraded"
        else:
            status = "unhealthy"

        logger.debug("health_check_performed", status=status)

        return HealthReport(status=status, ready=self._ready, components=components)

    # --- Internals ---

    async def _cache_set(self, operation: str, key: str, value: str) -> bool:
        try:
            await self.cache.set(key, value, ttl=self.settings.default_ttl)
        except CacheError as e:
            await self._report_error(operation, key, e, recoverable=True)
            return False

        await self._emit_operation(EventType.SET, key, value, Tier.VOLATILE)
        return True

    async def _emit_operation(
        self, operation: EventType, key: str, value: Optional[str], tier: Tier
    ) -> None:
        await self.events.emit(
            operation, OperationEvent(operation=operation, key=key, value=value, tier=tier)
        )

    async def _report_error(
        self,
        operation: str,
        key: Optional[str],
        error: KeystoreError,
        recoverable: bool = False,
    ) -> None:
        tier = getattr(error, "tier", None)

        log = logger.warning if recoverable else logger.error
        log(
            "keystore_operation_error",
            operation=operation,
            key=key,
            tier=tier,
            error=str(error),
            error_type=type(error).__name__,
            recoverable=recoverable,
        )

        await self.events.emit(
            EventType.ERROR,
            ErrorEvent(
                operation=operation,
                key=key,
                tier=Tier(tier) if tier in (Tier.DURABLE.value, Tier.VOLATILE.value) else None,
                error=str(error),
                error_type=type(error).__name__,
                recoverable=recoverable,
            ),
        )

    def _trace(self, step: str, **context: Any) -> None:
        if self.settings.debug:
            logger.info("keystore_trace", step=step, **context)


def _check_key(key: Any) -> None:
    if not isinstance(key, str):
        raise TypeError(f"key must be str, not {type(key).__name__}")
    if not key:
        raise ValueError("key must not be empty")


def _check_value(value: Any) -> None:
    if not isinstance(value, str):
        raise TypeError(f"value must be str, not {type(value).__name__}")


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
