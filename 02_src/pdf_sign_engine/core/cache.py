"""Geometry cache keyed by document identity."""

import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from ..schemas.geometry import DocumentGeometry

logger = logging.getLogger(__name__)


def content_key(pdf_bytes: bytes) -> str:
    """Cache key for raw PDF content."""
    return "sha256:" + hashlib.sha256(pdf_bytes).hexdigest()


@dataclass
class CacheStats:
    """Cache counters.

    Attributes:
        hits: Reads served from the cache
        misses: Reads that found nothing
        evictions: Entries dropped by the LRU bound
        size: Current number of entries
        max_entries: Capacity
    """
    hits: int
    misses: int
    evictions: int
    size: int
    max_entries: int


class GeometryCache:
    """Thread-safe LRU cache of DocumentGeometry.

    Entries are inserted whole, so readers never see a partially built
    geometry. Geometry objects are immutable and shared freely.
    """

    def __init__(self, max_entries: int = 64) -> None:
        """Initialize cache.

        Args:
            max_entries: Capacity; least recently used entries are evicted beyond it
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._data: "OrderedDict[str, DocumentGeometry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        logger.info(f"Initialized GeometryCache (max_entries={max_entries})")

    def get(self, key: str) -> Optional[DocumentGeometry]:
        """Return cached geometry and mark it recently used, or None."""
        with self._lock:
            geometry = self._data.get(key)
            if geometry is None:
                self._misses += 1
            else:
                self._data.move_to_end(key)
                self._hits += 1
        logger.debug(f"GeometryCache: get '{key}' (found: {geometry is not None})")
        return geometry

    def put(self, key: str, geometry: DocumentGeometry) -> None:
        """Insert or replace an entry, evicting the least recently used beyond capacity."""
        with self._lock:
            self._data[key] = geometry
            self._data.move_to_end(key)
            while len(self._data) > self.max_entries:
                evicted, _ = self._data.popitem(last=False)
                self._evictions += 1
                logger.debug(f"GeometryCache: evicted '{evicted}'")

    def get_or_compute(self, key: str, factory: Callable[[], DocumentGeometry]) -> DocumentGeometry:
        """Read-through access: compute and store on miss.

        The factory runs outside the lock; concurrent misses for the same
        key may both compute, the last insert wins.
        """
        geometry = self.get(key)
        if geometry is None:
            geometry = factory()
            self.put(key, geometry)
        return geometry

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it existed."""
        with self._lock:
            removed = self._data.pop(key, None) is not None
        if removed:
            logger.debug(f"GeometryCache: invalidated '{key}'")
        return removed

    def clear(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._data.clear()
        logger.info("GeometryCache cleared")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._data),
                max_entries=self.max_entries,
            )

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
