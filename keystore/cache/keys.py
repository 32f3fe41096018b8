"""Cache key helpers for the temporary key namespace.

Keys that start with the temporary prefix are cache-only by convention and
are purged by the temporary flush job.
"""

import structlog

logger = structlog.get_logger(__name__)

TEMP_PREFIX = "temp:"

# Characters with a special meaning in Redis glob-style MATCH patterns
_GLOB_SPECIAL = "\\*?[]^"


class KeyNamespace:
    """
    Build and recognize keys under a prefix.

    Example:
        >>> temp = KeyNamespace("temp:")
        >>> temp.key("session:42")
        'temp:session:42'
        >>> temp.contains("temp:session:42")
        True
    """

    def __init__(self, prefix: str = TEMP_PREFIX) -> None:
        if not prefix:
            raise ValueError("Namespace prefix must not be empty")
        self.prefix = prefix

    def key(self, name: str) -> str:
        """Return ``name`` inside this namespace."""
        if name.startswith(self.prefix):
            return name
        return f"{self.prefix}{name}"

    def contains(self, key: str) -> bool:
        return key.startswith(self.prefix)

    def match_pattern(self) -> str:
        """
        Build a Redis MATCH pattern for every key in this namespace.

        Example:
            >>> KeyNamespace("a*b:").match_pattern()
            'a\\\\*b:*'
        """
        pattern = escape_pattern(self.prefix) + "*"
        logger.debug("namespace_pattern_built", prefix=self.prefix, pattern=pattern)
        return pattern


def escape_pattern(text: str) -> str:
    """Escape Redis glob metacharacters so ``text`` matches literally."""
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in text)


def temp_key(name: str, prefix: str = TEMP_PREFIX) -> str:
    """Shortcut for ``KeyNamespace(prefix).key(name)``."""
    return KeyNamespace(prefix).key(name)
