"""Cache TTL classes, per-use cache policies and key builders.

TTL classes:
- realtime   5 min
- search     30 min
- stable     1 hour
- long_term  24 hours
- static     7 days
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class CacheTTL(IntEnum):
    REALTIME = 300
    SEARCH = 1800
    STABLE = 3600
    LONG_TERM = 86400
    STATIC = 604800


@dataclass(frozen=True)
class CachePolicy:
    """TTL plus the tag set entries of one kind are written with."""

    ttl_seconds: int
    tags: frozenset[str]


# --- Per-use policies ---

SEARCH_RESULTS = CachePolicy(ttl_seconds=CacheTTL.SEARCH, tags=frozenset({"search", "opportunities"}))
OPPORTUNITY_DETAIL = CachePolicy(ttl_seconds=CacheTTL.STABLE, tags=frozenset({"opportunity", "details"}))
FEATURED = CachePolicy(ttl_seconds=CacheTTL.SEARCH, tags=frozenset({"featured", "opportunities"}))
INTELLIGENCE = CachePolicy(ttl_seconds=CacheTTL.LONG_TERM, tags=frozenset({"intelligence"}))
ANALYTICS = CachePolicy(ttl_seconds=CacheTTL.LONG_TERM, tags=frozenset({"analytics", "historical"}))
STATS = CachePolicy(ttl_seconds=CacheTTL.LONG_TERM, tags=frozenset({"stats"}))


def canonical_json(value: Any) -> str:
    """Sorted-key compact JSON so equal parameters always build the same key."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


class CacheKeys:
    """Key builders. Every cached thing in the service goes through one of these."""

    @staticmethod
    def opportunity(opportunity_id: str) -> str:
        return f"opportunity:{opportunity_id}"

    @staticmethod
    def search(params: dict) -> str:
        return f"search:{canonical_json(params)}"

    @staticmethod
    def featured(limit: int) -> str:
        return f"featured:{limit}"

    @staticmethod
    def intelligence(source_api: str, opportunity_number: str) -> str:
        return f"intelligence:{source_api}:{opportunity_number}"

    @staticmethod
    def analytics(method: str, *args: Any) -> str:
        return f"analytics:{method}:{canonical_json(list(args))}"

    @staticmethod
    def stats(name: str) -> str:
        return f"stats:{name}"
