"""
In-memory cache of extracted contour points.

Entries hold a flat point list (polylines separated by NaN markers) keyed by
the implicit plot's cache key. Entries older than ``max_age`` seconds are
treated as missing and dropped on access.
"""

import time
from dataclasses import dataclass


@dataclass
class _Entry:
    points: list
    stored_at: float


class ContourCache:
    """
    Contour cache with optional expiry.

    Args:
        max_age: Entry lifetime in seconds, or None to never expire.
        clock: Monotonic time source; replaced in tests.
    """

    def __init__(self, max_age=3600.0, clock=time.monotonic):
        self.max_age = max_age
        self.clock = clock
        self._entries = {}
        self.hits = 0
        self.misses = 0

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return self.get(key, count=False) is not None

    def _expired(self, entry, now):
        return self.max_age is not None and now - entry.stored_at > self.max_age

    def get(self, key, count=True):
        """Copy of the cached points, or None if missing or expired."""
        if not key:
            return None
        entry = self._entries.get(key)
        if entry is not None and self._expired(entry, self.clock()):
            del self._entries[key]
            entry = None

        if count:
            if entry is None:
                self.misses += 1
            else:
                self.hits += 1
        return list(entry.points) if entry is not None else None

    def set(self, key, points):
        """Store a copy of points under key; empty keys are ignored."""
        if not key:
            return
        self._entries[key] = _Entry(points=[tuple(p) for p in points], stored_at=self.clock())

    def clear(self):
        self._entries.clear()

    def purge_expired(self):
        """Drop expired entries; returns how many were removed."""
        now = self.clock()
        expired = [k for k, e in self._entries.items() if self._expired(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self):
        return {
            "entries": len(self._entries),
            "points": sum(len(e.points) for e in self._entries.values()),
            "hits": self.hits,
            "misses": self.misses,
        }
