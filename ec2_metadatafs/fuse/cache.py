# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Response caching for the metadata and tag filesystems.

This module provides a TTL cache that sits in front of MetadataFs or TagsFs
and answers repeated attribute, listing and read calls from memory. Only
definitive answers are kept: successful results and confirmed absences.
Backend failures always reach the caller and are never cached.
"""

import time
from threading import RLock
from typing import Any, Callable, Dict, Tuple

from ..client.exceptions import NotFoundError
from ..log import logger

class CachingFs:
    """
    TTL cache decorator exposing the same operations as the wrapped filesystem.

    Attributes:
        fs: Wrapped MetadataFs or TagsFs
        ttl (float): Seconds an entry stays valid
        entries (dict): Maps (operation, path) to (expires_at, outcome)
        lock (threading.RLock): Lock for thread-safe operations
    """

    def __init__(self, fs, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.fs = fs
        self.ttl = ttl
        self.entries: Dict[Tuple[str, str], Tuple[float, Any]] = {}
        self.lock = RLock()
        self._clock = clock
        self._next_sweep = clock() + ttl

    def _cached(self, operation: str, path: str, cache_not_found: bool = False):
        key = (operation, path)
        now = self._clock()
        with self.lock:
            hit = self.entries.get(key)
            if hit is not None:
                expires_at, outcome = hit
                if now < expires_at:
                    logger.debug(f"Cache HIT: {operation} {path}")
                    if isinstance(outcome, NotFoundError):
                        raise NotFoundError(outcome.message)
                    return outcome
                del self.entries[key]

        logger.debug(f"Cache MISS: {operation} {path}")
        try:
            outcome = getattr(self.fs, operation)(path)
        except NotFoundError as e:
            if cache_not_found:
                self._store(key, e)
            raise
        self._store(key, outcome)
        return outcome

    def _store(self, key, outcome):
        now = self._clock()
        with self.lock:
            if now >= self._next_sweep:
                self._sweep(now)
            self.entries[key] = (now + self.ttl, outcome)

    def _sweep(self, now):
        # at most once per TTL
        expired = [key for key, (expires_at, _) in self.entries.items() if expires_at <= now]
        for key in expired:
            del self.entries[key]
        self._next_sweep = now + self.ttl
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")

    def attributes(self, path: str):
        return self._cached("attributes", path, cache_not_found=True)

    def listing(self, path: str):
        return self._cached("listing", path)

    def read_file(self, path: str) -> bytes:
        return self._cached("read_file", path)

    def statfs(self):
        return self.fs.statfs()

    def remove(self, path: str) -> None:
        """Drop every cached outcome for a path."""
        with self.lock:
            for operation in ("attributes", "listing", "read_file"):
                self.entries.pop((operation, path), None)

    def clear(self) -> None:
        """Clear all entries from the cache."""
        with self.lock:
            logger.debug(f"Clearing cache ({len(self.entries)} entries)...")
            self.entries.clear()
