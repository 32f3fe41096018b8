"""TTL (Time To Live) policies for cache entries.

This module defines the expiration applied when the keystore writes to the
cache and the normalization rules for caller-supplied TTLs.
"""

import math
from enum import Enum
from typing import Optional, Union

import structlog

logger = structlog.get_logger(__name__)


class CacheTTL(Enum):
    """
    Cache TTL policies.

    Values are in seconds.
    """

    # Applied on write-through and on read-through repopulation
    DEFAULT = 3600  # 1 hour

    # Upper bound accepted by Redis for SET ... EX
    MAXIMUM = 2**31 - 1

    @staticmethod
    def normalize(ttl: Optional[Union[int, float]]) -> Optional[int]:
        """
        Turn a caller-supplied TTL into something Redis accepts.

        Args:
            ttl: Seconds until expiry; None or 0 means "no expiry"

        Returns:
            Whole seconds (fractions round up) or None for no expiry

        Raises:
            ValueError: If ttl is negative

        Example:
            >>> CacheTTL.normalize(2.5)
            3
            >>> CacheTTL.normalize(None) is None
            True
        """
        if ttl is None or ttl == 0:
            return None

        if ttl < 0:
            raise ValueError(f"TTL must not be negative, got {ttl}")

        seconds = math.ceil(ttl)

        if seconds > CacheTTL.MAXIMUM.value:
            logger.warning(
                "ttl_clamped",
                requested=seconds,
                maximum=CacheTTL.MAXIMUM.value,
            )
            seconds = CacheTTL.MAXIMUM.value

        return seconds
