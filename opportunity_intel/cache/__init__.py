from .store import CacheLookup, CacheStore, SWR_GRACE_FACTOR
from .ttl import CacheKeys, CachePolicy, CacheTTL

__all__ = ["CacheLookup", "CacheStore", "SWR_GRACE_FACTOR", "CacheKeys", "CachePolicy", "CacheTTL"]
