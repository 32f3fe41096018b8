"""Async durable store with SQLAlchemy 2.0."""

from typing import Optional

import structlog
from sqlalchemy import MetaData, delete, select, text
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from keystore.exceptions import KeystoreConnectionError, StoreError
from keystore.store.schema import KEY_LENGTH, build_entry_table
from keystore.utils.logger import redact_url

logger = structlog.get_logger(__name__)


class DurableStore:
    """Key-value table behind an async SQLAlchemy engine."""

    def __init__(self, url: str, table: str = "storekey", echo: bool = False):
        self.url = url
        self.table_name = table
        self.echo = echo
        self.metadata = MetaData()
        self.table = build_entry_table(table, self.metadata)
        self.engine: Optional[AsyncEngine] = None

    async def connect(self) -> None:
        """Create the engine and the table if it does not exist yet."""
        if self.engine is not None:
            return

        safe_url = redact_url(self.url)

        try:
            self.engine = self._create_engine()

            async with self.engine.begin() as conn:
                await conn.run_sync(self.metadata.create_all)

        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "store_connection_failed",
                sql_url=safe_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self.close()
            raise KeystoreConnectionError(
                f"Could not connect to SQL store at {safe_url}: {e}", tier="durable"
            ) from e

        logger.info(
            "store_initialized",
            sql_url=safe_url,
            table=self.table_name,
            dialect=self.engine.dialect.name,
        )

    def _create_engine(self) -> AsyncEngine:
        if self.url.startswith("sqlite") and ":memory:" in self.url:
            # One shared connection, otherwise every checkout sees an empty database
            return create_async_engine(
                self.url,
                echo=self.echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )

        return create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)

    async def close(self) -> None:
        """Dispose of the engine's connections. Safe to call more than once."""
        engine, self.engine = self.engine, None
        if engine is not None:
            await engine.dispose()
            logger.info("store_connections_closed", table=self.table_name)

    async def ping(self) -> bool:
        """Check the database answers a trivial query."""
        if self.engine is None:
            logger.warning("store_ping_failed", reason="engine_not_initialized")
            return False

        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("store_ping_failed", error=str(e), error_type=type(e).__name__)
            return False

        return True

    def _require_engine(self, operation: str, key: Optional[str] = None) -> AsyncEngine:
        if self.engine is None:
            raise StoreError("SQL store not connected", operation=operation, key=key)
        return self.engine

    def _upsert_statement(self, key: str, value: str):
        dialect = self.engine.dialect.name
        table = self.table

        if dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(table).values(entry_key=key, entry_value=value)
            return stmt.on_duplicate_key_update(entry_value=stmt.inserted.entry_value)

        if dialect == "postgresql":
            stmt = pg_insert(table).values(entry_key=key, entry_value=value)
        elif dialect == "sqlite":
            stmt = sqlite_insert(table).values(entry_key=key, entry_value=value)
        else:
            raise StoreError(
                f"Upsert not supported for dialect {dialect!r}",
                operation="set",
                key=key,
            )

        return stmt.on_conflict_do_update(
            index_elements=[table.c.entry_key],
            set_={"entry_value": stmt.excluded.entry_value},
        )

    async def get(self, key: str) -> Optional[str]:
        """Get the value stored for key, or None."""
        engine = self._require_engine("get", key)
        stmt = select(self.table.c.entry_value).where(self.table.c.entry_key == key)

        try:
            async with engine.connect() as conn:
                result = await conn.execute(stmt)
                row = result.first()
        except SQLAlchemyError as e:
            logger.error("store_get_error", key=key, error=str(e), error_type=type(e).__name__)
            raise StoreError(str(e), operation="get", key=key) from e

        value = row[0] if row is not None else None
        logger.debug("store_get", key=key, found=row is not None)
        return value

    async def upsert(self, key: str, value: str) -> None:
        """Insert the entry, or update its value if the key already exists."""
        engine = self._require_engine("set", key)

        if len(key) > KEY_LENGTH:
            raise StoreError(
                f"Key longer than {KEY_LENGTH} characters", operation="set", key=key
            )

        try:
            async with engine.begin() as conn:
                await conn.execute(self._upsert_statement(key, value))
        except SQLAlchemyError as e:
            logger.error("store_upsert_error", key=key, error=str(e), error_type=type(e).__name__)
            raise StoreError(str(e), operation="set", key=key) from e

        logger.debug("store_upsert", key=key)

    async def delete(self, key: str) -> int:
        """Delete the entry for key. Returns the number of rows removed."""
        engine = self._require_engine("delete", key)
        stmt = delete(self.table).where(self.table.c.entry_key == key)

        try:
            async with engine.begin() as conn:
                result = await conn.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("store_delete_error", key=key, error=str(e), error_type=type(e).__name__)
            raise StoreError(str(e), operation="delete", key=key) from e

        logger.debug("store_delete", key=key, deleted=result.rowcount)
        return result.rowcount

    async def list_keys(self) -> list[str]:
        """Get all keys, in insertion order."""
        engine = self._require_engine("list_keys")
        stmt = select(self.table.c.entry_key).order_by(self.table.c.id)

        try:
            async with engine.connect() as conn:
                result = await conn.execute(stmt)
                keys = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("store_list_keys_error", error=str(e), error_type=type(e).__name__)
            raise StoreError(str(e), operation="list_keys") from e

        logger.debug("store_list_keys", count=len(keys))
        return keys
