"""Environment-driven configuration with Pydantic v2."""

import logging
import re
from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from keystore.cache.keys import TEMP_PREFIX
from keystore.cache.ttl import CacheTTL
from keystore.exceptions import ConfigurationError
from keystore.maintenance import DISABLED_INTERVAL

DEFAULT_TABLE = "storekey"

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,63}$")


class KeystoreSettings(BaseSettings):
    """Keystore settings, from keyword arguments or KEYSTORE_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="KEYSTORE_", extra="forbid")

    # Durable store
    sql_url: str = Field(description="SQLAlchemy async URL of the durable store")
    sql_table: str = Field(default=DEFAULT_TABLE)

    # Volatile cache
    redis_url: str = Field(description="Redis URL of the cache")
    default_ttl: int = Field(default=CacheTTL.DEFAULT.value, ge=1)
    temp_prefix: str = Field(default=TEMP_PREFIX, min_length=1)

    # Maintenance jobs (seconds; None, 0 or -1 disables)
    auto_flush_interval: Optional[float] = Field(default=None)
    auto_temp_flush_interval: Optional[float] = Field(default=None)

    # Logging
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @field_validator("sql_url", "redis_url")
    @classmethod
    def _address_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("address must not be empty")
        return value.strip()

    @field_validator("sql_table")
    @classmethod
    def _table_is_identifier(cls, value: str) -> str:
        # The table name is interpolated into DDL, so only plain identifiers
        if not _TABLE_NAME.match(value):
            raise ValueError(f"invalid table name: {value!r}")
        return value

    @field_validator("auto_flush_interval", "auto_temp_flush_interval")
    @classmethod
    def _interval_or_disabled(cls, value: Optional[float]) -> Optional[float]:
        if value is None or value == DISABLED_INTERVAL or value == 0:
            return None
        if value < 0:
            raise ValueError(
                f"interval must be positive or {DISABLED_INTERVAL} to disable"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @property
    def effective_log_level(self) -> str:
        """log_level, lowered to INFO when debug is on so trace lines are emitted."""
        if self.debug and logging.getLevelName(self.log_level) > logging.INFO:
            return "INFO"
        return self.log_level

    @property
    def full_flush_enabled(self) -> bool:
        return self.auto_flush_interval is not None

    @property
    def temp_flush_enabled(self) -> bool:
        return self.auto_temp_flush_interval is not None


def load_settings(**overrides: Any) -> KeystoreSettings:
    """
    Build settings from keyword overrides and the environment.

    Overrides set to None are ignored so that the environment can supply them.

    Raises:
        ConfigurationError: If a required address is missing or an option is invalid
    """
    values = {name: value for name, value in overrides.items() if value is not None}

    try:
        return KeystoreSettings(**values)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        missing = [
            ".".join(str(part) for part in err["loc"])
            for err in e.errors()
            if err["type"] == "missing"
        ]
        if missing:
            message = f"Keystore Error: missing required option(s): {', '.join(missing)}"
        else:
            message = f"Keystore Error: invalid option(s): {', '.join(fields)}"
        raise ConfigurationError(message, fields=fields) from e
