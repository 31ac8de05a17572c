"""Cache layer for PanPal.

Provides Redis caching with the cache-aside pattern:
- Read-through get_or_set in front of expensive recipe queries
- Explicit pattern invalidation (SCAN + DEL) after every write
- TTL-based expiration as a staleness backstop
- Degrade-to-database when the store is unavailable
"""

from panpal.cache.backends import KeyValueStore
from panpal.cache.invalidation import CacheInvalidator, InvalidationEvent, targets_for
from panpal.cache.keys import (
    CacheKeys,
    InvalidKeyComponentError,
    encode_search,
    validate_pattern,
)
from panpal.cache.memory import MemoryStore
from panpal.cache.redis import RedisStore, create_redis_client
from panpal.cache.runtime import close_cache, init_cache
from panpal.cache.service import CacheAsideService, InvalidationReport, InvalidationTarget
from panpal.cache.ttl import BUCKET_DEFAULT_TTL, CacheBucket, CacheTTL, TTLPolicy

__all__ = [
    # Core cache
    "CacheAsideService",
    "CacheKeys",
    "InvalidKeyComponentError",
    "encode_search",
    "validate_pattern",
    # TTL policy
    "CacheTTL",
    "CacheBucket",
    "BUCKET_DEFAULT_TTL",
    "TTLPolicy",
    # Backends
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
    "create_redis_client",
    # Lifecycle
    "init_cache",
    "close_cache",
    # Invalidation
    "CacheInvalidator",
    "InvalidationEvent",
    "InvalidationReport",
    "InvalidationTarget",
    "targets_for",
]
