"""Aggregation service - one search surface over every provider.

Providers are queried concurrently; a provider that fails or times out
contributes nothing and is logged, never raised. Each provider is asked for
the whole fetch window once per search; the normalized, merged and sorted
list is cached with stale-while-revalidate and every page is cut from it.
"""

import asyncio
import logging
import time
from collections import Counter
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, NamedTuple, Optional

from ..adapters import BaseAdapter
from ..cache import CacheKeys, CacheStore
from ..cache.ttl import FEATURED, OPPORTUNITY_DETAIL, SEARCH_RESULTS, STATS
from ..instrumentation import Instrumentation, NullInstrumentation
from ..models import Opportunity, ProviderPage, SearchFacets, SearchParams, SearchResponse
from ..normalization import NormalizationEngine
from .facets import build_facets
from .sorting import paginate, sort_opportunities

logger = logging.getLogger(__name__)

FEATURED_MIN_AMOUNT = 1_000_000
FEATURED_PER_PROVIDER = 5
STATS_WINDOW_DAYS = 90


class MergedWindow(NamedTuple):
    """Every record one search can page through, already sorted."""

    opportunities: list[Opportunity]
    total_available: int
    facets: SearchFacets


class _Uncacheable(Exception):
    """Carries a result the memoizer must return to the caller but not store."""

    def __init__(self, result: Any):
        super().__init__("result not cacheable")
        self.result = result


class AggregationService:
    """Fans out to provider adapters and merges their results.

    Adapter order is the priority order for unprefixed id lookups.
    """

    def __init__(
        self,
        adapters: list[BaseAdapter],
        normalizer: NormalizationEngine,
        cache: CacheStore,
        instrumentation: Optional[Instrumentation] = None,
        timeout_seconds: float = 8.0,
        max_fetch_window: int = 500,
        today: Callable[[], date] = date.today,
    ):
        self.adapters = list(adapters)
        self.normalizer = normalizer
        self.cache = cache
        self.instrumentation = instrumentation or NullInstrumentation()
        self.timeout_seconds = timeout_seconds
        self.max_fetch_window = max_fetch_window
        self._today = today

        self._window = cache.memoize(
            key_fn=lambda params: CacheKeys.search(params.window_payload()),
            ttl_seconds=SEARCH_RESULTS.ttl_seconds,
            tags=SEARCH_RESULTS.tags,
            name="search_all",
        )(self._merge_window_uncached)
        self._details = cache.memoize(
            key_fn=CacheKeys.opportunity,
            ttl_seconds=OPPORTUNITY_DETAIL.ttl_seconds,
            tags=OPPORTUNITY_DETAIL.tags,
            name="get_by_id",
        )(self._get_by_id_uncached)
        self._featured = cache.memoize(
            key_fn=CacheKeys.featured,
            ttl_seconds=FEATURED.ttl_seconds,
            tags=FEATURED.tags,
            name="featured",
        )(self._featured_uncached)
        self._stats = cache.memoize(
            key_fn=lambda: CacheKeys.stats("opportunities"),
            ttl_seconds=STATS.ttl_seconds,
            tags=STATS.tags,
            name="stats",
        )(self._stats_uncached)

    # --- Public API ---

    async def search_all(self, params: Optional[SearchParams] = None) -> SearchResponse:
        params = params or SearchParams()
        window = await self._merged(params)
        return paginate(window.opportunities, params, window.total_available, window.facets)

    async def get_by_id(self, opportunity_id: str) -> Optional[Opportunity]:
        if not opportunity_id:
            return None
        try:
            return await self._details(opportunity_id)
        except _Uncacheable as exc:
            return exc.result

    async def get_featured(self, limit: int = 10) -> list[Opportunity]:
        try:
            return await self._featured(limit)
        except _Uncacheable as exc:
            return exc.result

    async def get_closing_soon(self, days_ahead: int = 30, limit: int = 20) -> list[Opportunity]:
        """Open opportunities whose deadline falls in (today, today + days_ahead]."""
        today = self._today()
        horizon = today + timedelta(days=days_ahead)
        params = SearchParams(
            status=["open"],
            deadline_after=today.isoformat(),
            deadline_before=horizon.isoformat(),
            sort_by="deadline",
            sort_order="asc",
        )
        window = await self._merged(params)
        soon = [
            opp for opp in window.opportunities
            if opp.opportunity_status == "open"
            and opp.deadline
            and today < date.fromisoformat(opp.deadline) <= horizon
        ]
        return soon[:limit]

    async def get_by_agency(self, agency: str, limit: int = 20) -> list[Opportunity]:
        response = await self.search_all(
            SearchParams(agencies=[agency], limit=limit, sort_by="posted_date", sort_order="desc")
        )
        return response.opportunities

    async def get_by_industry(self, naics_code: str, limit: int = 20) -> list[Opportunity]:
        response = await self.search_all(
            SearchParams(industry_categories=[naics_code], limit=limit, sort_by="amount", sort_order="desc")
        )
        return response.opportunities

    async def get_stats(self) -> dict:
        try:
            return await self._stats()
        except _Uncacheable as exc:
            return exc.result

    async def health_check(self) -> dict[str, dict]:
        results = await asyncio.gather(
            *(adapter.health_check() for adapter in self.adapters), return_exceptions=True
        )
        report = {}
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                result = {"source": adapter.source_name, "status": "error", "message": str(result)}
            report[adapter.source_name] = result
        return report

    async def _merged(self, params: SearchParams) -> MergedWindow:
        try:
            return await self._window(params)
        except _Uncacheable as exc:
            return exc.result

    # --- Provider fan-out ---

    async def _call(self, adapter: BaseAdapter, operation: str, call: Callable[[], Awaitable[Any]]) -> Any:
        """Run one bounded provider call with structured logging; errors propagate."""
        start = time.monotonic()
        try:
            with self.instrumentation.span(f"provider.{operation}", source=adapter.source_name):
                result = await asyncio.wait_for(call(), timeout=self.timeout_seconds)
        except Exception as exc:
            logger.error(
                "fetch_complete source=%s op=%s result=failure error=%s duration_ms=%.0f",
                adapter.source_name, operation, str(exc) or type(exc).__name__,
                (time.monotonic() - start) * 1000,
            )
            raise
        count = len(result.records) if isinstance(result, ProviderPage) else int(result is not None)
        logger.info(
            "fetch_complete source=%s op=%s result=success count=%d duration_ms=%.0f",
            adapter.source_name, operation, count, (time.monotonic() - start) * 1000,
        )
        return result

    async def _fan_out_search(self, params: SearchParams, rows: int) -> list[tuple[BaseAdapter, ProviderPage]]:
        results = await asyncio.gather(
            *(
                self._call(adapter, "search", lambda a=adapter: a.search(params, rows=rows))
                for adapter in self.adapters
            ),
            return_exceptions=True,
        )
        return [
            (adapter, result)
            for adapter, result in zip(self.adapters, results)
            if not isinstance(result, BaseException)
        ]

    def _normalize(self, adapter: BaseAdapter, page: ProviderPage) -> list[Opportunity]:
        return self.normalizer.standardize_many(page.records, adapter.source_kind)

    # --- Producers ---

    async def _merge_window_uncached(self, params: SearchParams) -> MergedWindow:
        # Page-independent: every page of a search is cut from this one list.
        succeeded = await self._fan_out_search(params, self.max_fetch_window)

        merged: list[Opportunity] = []
        available = 0
        for adapter, page in succeeded:
            merged.extend(self._normalize(adapter, page))
            available += max(page.total_count, len(page.records))

        ordered = sort_opportunities(merged, params.sort_by, params.sort_order)
        window = MergedWindow(ordered, available, build_facets(ordered, self._today()))
        self.instrumentation.metric(
            "search.total_count", len(ordered), total_available=available,
            providers_ok=len(succeeded), providers=len(self.adapters),
        )
        if available > len(ordered):
            logger.info(
                "search_window truncated fetched=%d available=%d max_fetch_window=%d",
                len(ordered), available, self.max_fetch_window,
            )
        if self.adapters and not succeeded:
            logger.warning("search_all result=empty reason=all_providers_failed")
            raise _Uncacheable(window)
        return window

    async def _get_by_id_uncached(self, opportunity_id: str) -> Opportunity:
        owner = next((a for a in self.adapters if a.owns(opportunity_id)), None)
        candidates = [owner] if owner else self.adapters
        native_id = opportunity_id[len(owner.id_prefix):] if owner else opportunity_id

        results = await asyncio.gather(
            *(
                self._call(adapter, "details", lambda a=adapter: a.get_details(native_id))
                for adapter in candidates
            ),
            return_exceptions=True,
        )
        # Fixed priority: the first adapter with a record wins.
        for adapter, raw in zip(candidates, results):
            if raw and not isinstance(raw, BaseException):
                return self.normalizer.standardize(raw, adapter.source_kind)
        raise _Uncacheable(None)

    async def _featured_uncached(self, limit: int) -> list[Opportunity]:
        params = SearchParams(
            amount_min=FEATURED_MIN_AMOUNT,
            sort_by="amount",
            sort_order="desc",
            limit=FEATURED_PER_PROVIDER,
        )
        succeeded = await self._fan_out_search(params, FEATURED_PER_PROVIDER)

        featured: list[Opportunity] = []
        for adapter, page in succeeded:
            high_value = [opp for opp in self._normalize(adapter, page) if opp.amount >= FEATURED_MIN_AMOUNT]
            featured.extend(
                opp.model_copy(update={"is_featured": True})
                for opp in sort_opportunities(high_value, "amount", "desc")[:FEATURED_PER_PROVIDER]
            )
        featured = sort_opportunities(featured, "amount", "desc")[:limit]
        if self.adapters and not succeeded:
            raise _Uncacheable(featured)
        return featured

    async def _stats_uncached(self) -> dict:
        since = (self._today() - timedelta(days=STATS_WINDOW_DAYS)).isoformat()
        try:
            window = await self._window(SearchParams(posted_after=since))
        except _Uncacheable as exc:
            raise _Uncacheable(self._summarize(exc.result.opportunities)) from None
        return self._summarize(window.opportunities)

    @staticmethod
    def _summarize(opportunities: list[Opportunity]) -> dict:
        return {
            "total_active": sum(1 for opp in opportunities if opp.opportunity_status == "open"),
            "total_value": sum(opp.amount for opp in opportunities),
            "by_type": dict(Counter(opp.type for opp in opportunities)),
            "by_agency": dict(Counter(opp.agency or "unknown" for opp in opportunities)),
            "by_status": dict(Counter(opp.opportunity_status for opp in opportunities)),
        }
