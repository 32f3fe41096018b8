"""
Custom exceptions for the keystore.

Only ConfigurationError is meant to reach callers of the Keystore facade.
The adapter errors (StoreError, CacheError) are raised by the durable store
and cache adapters and absorbed by the facade, which logs them and turns
them into neutral results.
"""

from typing import Optional


class KeystoreError(Exception):
    """
    Base exception for all keystore errors.

    Use this for catching any keystore-related error.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ConfigurationError(KeystoreError):
    """
    Raised at construction time when the configuration is unusable.

    This occurs when:
    - The durable store address (sql_url) is missing
    - The cache address (redis_url) is missing
    - An option fails validation (negative TTL, bad table name, ...)

    Example:
        >>> raise ConfigurationError("sql_url is required", fields=["sql_url"])
    """

    def __init__(self, message: str, fields: Optional[list[str]] = None) -> None:
        """
        Initialize ConfigurationError.

        Args:
            message: Error description
            fields: Names of the offending configuration options
        """
        self.fields = fields or []
        super().__init__(message)


class KeystoreConnectionError(KeystoreError):
    """
    Raised when the initial connection to a tier cannot be established.

    Attributes:
        tier: "durable" or "volatile"
    """

    def __init__(self, message: str, tier: str) -> None:
        self.tier = tier
        super().__init__(f"{message} [{tier}]")


class AdapterError(KeystoreError):
    """
    A single operation failed against one tier.

    Attributes:
        operation: Adapter operation that failed (get, set, delete, ...)
        key: Key involved, if any
        tier: "durable" or "volatile"
    """

    tier = "unknown"

    def __init__(
        self,
        message: str,
        operation: str,
        key: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.key = key
        super().__init__(message)

    def __str__(self) -> str:
        if self.key is None:
            return f"{self.operation} failed: {self.message}"
        return f"{self.operation} {self.key!r} failed: {self.message}"


class StoreError(AdapterError):
    """Raised by the durable store adapter when a SQL statement fails."""

    tier = "durable"


class CacheError(AdapterError):
    """
    Raised by the cache adapter when a Redis command fails.

    Cache errors are always recoverable from the facade's point of view:
    the durable store remains the source of truth.
    """

    tier = "volatile"
