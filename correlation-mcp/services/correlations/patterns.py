"""
Compiled pattern cache.

One cache is owned by each extraction context and shared by the virtual users
running under it. Lookups are plain dict reads; only a miss takes the lock.
"""

import re
import threading
from typing import Dict, Pattern, Tuple

from .constants import DEFAULT_PATTERN_CACHE_SIZE


class PatternCache:
    def __init__(self, max_size: int = DEFAULT_PATTERN_CACHE_SIZE):
        self.max_size = max(1, int(max_size))
        self._patterns: Dict[Tuple[str, int], Pattern] = {}
        self._lock = threading.Lock()

    def get(self, pattern: str, flags: int = 0) -> Pattern:
        """
        Return the compiled pattern, compiling it on a miss.

        Raises:
            re.error: If the pattern is malformed. Failures are not cached.
        """
        key = (pattern, flags)
        compiled = self._patterns.get(key)
        if compiled is not None:
            return compiled

        compiled = re.compile(pattern, flags)
        with self._lock:
            if len(self._patterns) >= self.max_size:
                # Oldest insert goes first
                self._patterns.pop(next(iter(self._patterns)), None)
            self._patterns[key] = compiled
        return compiled

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, pattern: str) -> bool:
        return any(key[0] == pattern for key in list(self._patterns))
