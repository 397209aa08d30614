"""Compiled regular expression cache shared by the masking strategies."""

import logging
import re
import threading

from logguard.core.errors import InvalidPatternError
from logguard.core.models import DesensitizeConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_CACHE_SIZE = 100


class PatternCache:
    """Memoizes ``re.compile`` results keyed by the raw pattern text.

    Entries are never evicted. Once ``max_size`` entries are stored, new
    patterns are still compiled and returned but not remembered. Reads are
    plain dict lookups; inserts happen under a lock so the size bound holds
    under concurrent misses.
    """

    def __init__(self, enabled: bool = True, max_size: int = DEFAULT_MAX_CACHE_SIZE):
        self.enabled = enabled
        self.max_size = max_size
        self._patterns: dict[str, re.Pattern[str]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: DesensitizeConfig) -> "PatternCache":
        return cls(
            enabled=config.performance.cache_patterns,
            max_size=config.performance.max_cache_size,
        )

    def compile(self, pattern_text: str) -> re.Pattern[str]:
        """Return the compiled form of ``pattern_text``.

        Raises InvalidPatternError if the text is empty or does not compile.
        """
        if not isinstance(pattern_text, str) or not pattern_text:
            raise InvalidPatternError(pattern_text, "pattern cannot be empty")

        if self.enabled:
            cached = self._patterns.get(pattern_text)
            if cached is not None:
                return cached

        try:
            compiled = re.compile(pattern_text)
        except re.error as e:
            raise InvalidPatternError(pattern_text, str(e)) from e

        if self.enabled:
            with self._lock:
                # First writer wins when two threads miss on the same text
                existing = self._patterns.get(pattern_text)
                if existing is not None:
                    return existing
                if len(self._patterns) < self.max_size:
                    self._patterns[pattern_text] = compiled
        return compiled

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()

    def size(self) -> int:
        return len(self._patterns)

    def __contains__(self, pattern_text: object) -> bool:
        return pattern_text in self._patterns


_shared_cache = PatternCache()


def shared_cache() -> PatternCache:
    """The process-wide cache used when no cache is injected."""
    return _shared_cache


def configure_shared_cache(config: DesensitizeConfig) -> None:
    """Apply ``config.performance`` to the process-wide cache."""
    _shared_cache.enabled = config.performance.cache_patterns
    _shared_cache.max_size = config.performance.max_cache_size
    logger.info(
        "Pattern cache configured: enabled=%s, max_size=%d",
        _shared_cache.enabled,
        _shared_cache.max_size,
    )


def clear_cache() -> None:
    _shared_cache.clear()


def cache_size() -> int:
    return _shared_cache.size()
