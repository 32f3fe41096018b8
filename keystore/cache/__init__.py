"""Redis caching layer (the volatile tier).

This package provides:
- Connection pooling (RedisCache)
- Cache operations (CacheManager)
- Temporary key namespace helpers (KeyNamespace, temp_key)
- TTL policies (CacheTTL)
"""

from keystore.cache.connection import RedisCache
from keystore.cache.keys import TEMP_PREFIX, KeyNamespace, escape_pattern, temp_key
from keystore.cache.manager import CacheManager
from keystore.cache.ttl import CacheTTL

__all__ = [
    # Connection
    "RedisCache",
    # Cache manager
    "CacheManager",
    # Key namespaces
    "TEMP_PREFIX",
    "KeyNamespace",
    "escape_pattern",
    "temp_key",
    # TTL policies
    "CacheTTL",
]
