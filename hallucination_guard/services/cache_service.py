"""
Services - Embedding Cache

Bounded LRU cache with TTL for embedding vectors.
"""

from typing import Callable, List, Optional
from cachetools import TTLCache
import hashlib
import threading
import time

from hallucination_guard.config import get_settings


class EmbeddingCache:
    """
    Maps text to its embedding vector for a short window.

    Expired entries are dropped lazily on access, hits are promoted to
    most-recently-used, and inserting at capacity evicts the least
    recently used entry.
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        settings=None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_settings()
        self._lock = threading.Lock()

        self.max_size = max_size or self.settings.cache.max_size
        self.ttl_seconds = ttl_seconds or self.settings.cache.ttl_seconds
        self._cache = TTLCache(
            maxsize=self.max_size,
            ttl=self.ttl_seconds,
            timer=timer,
        )

    @staticmethod
    def generate_key(text: str) -> str:
        """Deterministic cache key for a text."""
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return f"emb_{digest[:32]}"

    def get(self, key: str) -> Optional[List[float]]:
        """
        Get a cached embedding.

        Args:
            key: Cache key from generate_key()

        Returns:
            Embedding vector or None if missing or expired
        """
        if not self.settings.cache.enabled:
            return None

        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, embedding: List[float]) -> None:
        """Store an embedding, evicting the least recently used at capacity."""
        if not self.settings.cache.enabled:
            return

        with self._lock:
            self._cache[key] = embedding

    def clear(self) -> None:
        """Clear all cached embeddings."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def get_stats(self) -> dict:
        """Get cache statistics."""
        size = len(self)
        return {
            "size": size,
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "utilization_percent": round(size / self.max_size * 100),
            "enabled": self.settings.cache.enabled,
        }
