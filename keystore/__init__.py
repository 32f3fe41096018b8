"""
Cache-aside keystore: a Redis cache in front of a SQL key-value table.

Example:
    >>> from keystore import Keystore
    >>> ks = Keystore(sql_url="mysql+aiomysql://user:pw@db/app",
    ...               redis_url="redis://cache:6379/0")
    >>> await ks.connect()
    >>> await ks.set("user:1", "Ada")
"""

from keystore.config import KeystoreSettings, load_settings
from keystore.events import EventEmitter
from keystore.exceptions import (
    AdapterError,
    CacheError,
    ConfigurationError,
    KeystoreConnectionError,
    KeystoreError,
    StoreError,
)
from keystore.keystore import Keystore
from keystore.lifecycle import ShutdownHook, closing
from keystore.maintenance import DISABLED_INTERVAL
from keystore.models.events import (
    ErrorEvent,
    EventType,
    FlushEvent,
    FlushScope,
    HealthReport,
    OperationEvent,
    Tier,
)

__version__ = "1.0.0"

__all__ = [
    # Facade
    "Keystore",
    # Configuration
    "KeystoreSettings",
    "load_settings",
    "DISABLED_INTERVAL",
    # Lifecycle
    "ShutdownHook",
    "closing",
    # Events
    "EventEmitter",
    "EventType",
    "OperationEvent",
    "ErrorEvent",
    "FlushEvent",
    "FlushScope",
    "HealthReport",
    "Tier",
    # Exceptions
    "KeystoreError",
    "ConfigurationError",
    "KeystoreConnectionError",
    "AdapterError",
    "StoreError",
    "CacheError",
]
