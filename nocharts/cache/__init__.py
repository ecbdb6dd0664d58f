"""Caching layer for provider responses.

This module contains:
- CacheManager, an in-process TTL cache with optional LRU bound
- CacheKeyBuilder for consistent key generation
- TTL configurations for different data kinds
- Cache metrics tracking
"""

from nocharts.cache.manager import (
    DEFAULT_CACHE_CONFIG,
    CacheConfig,
    CacheEntry,
    CacheKeyBuilder,
    CacheManager,
    CacheMetrics,
    CacheType,
)

__all__ = [
    # Core classes
    "CacheConfig",
    "CacheEntry",
    "CacheKeyBuilder",
    "CacheManager",
    "CacheMetrics",
    "CacheType",
    # Configuration
    "DEFAULT_CACHE_CONFIG",
]
