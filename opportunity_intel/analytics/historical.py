"""Historical analytics - agency and industry statistics from past awards.

Every public method reads through the CacheStore (24h) and never raises for
provider trouble: failures are logged, return an empty/neutral value and
are not cached.
"""

import asyncio
import logging
from collections import Counter
from datetime import date, timedelta
from typing import Callable, Optional

from ..adapters.usaspending import USAspendingAdapter
from ..cache import CacheKeys, CacheStore
from ..cache.ttl import ANALYTICS
from ..instrumentation import Instrumentation, NullInstrumentation
from ..models import (
    AgencyAnalytics,
    AgencyCompetition,
    CompetitionMetrics,
    HistoricalDataPoint,
    IndustryAnalytics,
    Opportunity,
    SearchParams,
    SeasonalTrend,
)
from ..normalization import NormalizationEngine
from ..normalization.tables import naics_sector_name
from .baselines import PREFERRED_CONTRACT_TYPES, baseline_for
from .competition import score_opportunity

logger = logging.getLogger(__name__)

HISTORY_SAMPLE_ROWS = 100
INDUSTRY_SAMPLE_ROWS = 300
RECENT_WINDOW_DAYS = 180
INDUSTRY_WINDOW_DAYS = 365
SIMILAR_AMOUNT_BAND = 0.3
TOP_AGENCY_COUNT = 5
GROWTH_UP = 1.2
GROWTH_DOWN = 0.8

AWARD_TYPES = ("grant", "contract", "cooperative_agreement")


class HistoricalAnalyticsService:
    """Derives funding trends and competition baselines from historical awards."""

    def __init__(
        self,
        cache: CacheStore,
        awards: USAspendingAdapter,
        normalizer: NormalizationEngine,
        instrumentation: Optional[Instrumentation] = None,
        timeout_seconds: float = 8.0,
        today: Callable[[], date] = date.today,
    ):
        self.cache = cache
        self.awards = awards
        self.normalizer = normalizer
        self.instrumentation = instrumentation or NullInstrumentation()
        self.timeout_seconds = timeout_seconds
        self._today = today

        def memo(method: str, producer):
            return cache.memoize(
                key_fn=lambda *args: CacheKeys.analytics(method, *args),
                ttl_seconds=ANALYTICS.ttl_seconds,
                tags=ANALYTICS.tags,
                name=method,
            )(producer)

        self._agency_history = memo("agency_history", self._fetch_agency_history)
        self._industry = memo("industry", self._fetch_industry_analytics)
        self._agency_analytics = memo("agency", self._build_agency_analytics)
        self._similar = memo("similar", self._fetch_similar)
        self._recent_count = memo("recent_awards", self._fetch_recent_award_count)

    # --- Public API ---

    async def get_agency_historical_data(
        self, agency_name: str, years_back: int = 5
    ) -> list[HistoricalDataPoint]:
        try:
            return await self._agency_history(agency_name, years_back)
        except Exception as exc:
            logger.warning(
                "agency_history agency=%s result=failure error=%s", agency_name, exc
            )
            return []

    async def get_industry_analytics(self, naics_code: str) -> Optional[IndustryAnalytics]:
        try:
            return await self._industry(naics_code)
        except Exception as exc:
            logger.warning("industry_analytics naics=%s result=failure error=%s", naics_code, exc)
            return None

    async def get_agency_analytics(self, agency_name: str) -> AgencyAnalytics:
        return await self._agency_analytics(agency_name)

    async def find_similar_successful_opportunities(
        self, opportunity: Opportunity, limit: int = 5
    ) -> list[Opportunity]:
        if limit <= 0:
            return []
        try:
            return await self._similar(
                opportunity.id, opportunity.agency, opportunity.type, opportunity.amount, limit
            )
        except Exception as exc:
            logger.warning(
                "similar_awards id=%s result=failure error=%s", opportunity.id, exc
            )
            return []

    async def calculate_competition_metrics(self, opportunity: Opportunity) -> CompetitionMetrics:
        result = score_opportunity(opportunity)
        return CompetitionMetrics(
            estimated_competitors=result.estimated_competitors,
            competition_level=result.level,
            similar_recent_opportunities=await self.recent_award_count(
                opportunity.agency, opportunity.type
            ),
        )

    async def recent_award_count(self, agency_name: str, award_type: str = "") -> int:
        """Same-agency awards in the trailing 180 days; 0 when unknown."""
        if not agency_name:
            return 0
        try:
            return await self._recent_count(agency_name, award_type)
        except Exception as exc:
            logger.warning("recent_awards agency=%s result=failure error=%s", agency_name, exc)
            return 0

    # --- Producers (raise on provider failure so nothing is cached) ---

    async def _search(self, params: SearchParams, rows: int) -> list[Opportunity]:
        page = await asyncio.wait_for(
            self.awards.search(params, rows=rows), timeout=self.timeout_seconds
        )
        return self.normalizer.standardize_many(page.records, self.awards.source_kind)

    async def _fetch_agency_history(self, agency_name: str, years_back: int) -> list[HistoricalDataPoint]:
        current_year = self._today().year
        years = list(range(current_year - years_back, current_year + 1))
        with self.instrumentation.span("analytics.agency_history", agency=agency_name, years=len(years)):
            per_year = await asyncio.gather(*[
                self._search(
                    SearchParams(
                        agencies=[agency_name],
                        posted_after=f"{year}-01-01",
                        posted_before=f"{year}-12-31",
                        sort_by="amount",
                        limit=HISTORY_SAMPLE_ROWS,
                    ),
                    rows=HISTORY_SAMPLE_ROWS,
                )
                for year in years
            ])
        return [
            HistoricalDataPoint(
                year=year,
                total_funding=sum(opp.amount for opp in awards),
                award_count=len(awards),
            )
            for year, awards in zip(years, per_year)
        ]

    async def _fetch_industry_analytics(self, naics_code: str) -> Optional[IndustryAnalytics]:
        today = self._today()
        with self.instrumentation.span("analytics.industry", naics=naics_code):
            awards = await self._search(
                SearchParams(
                    industry_categories=[naics_code],
                    posted_after=(today - timedelta(days=INDUSTRY_WINDOW_DAYS)).isoformat(),
                    posted_before=today.isoformat(),
                    sort_by="posted_date",
                    limit=INDUSTRY_SAMPLE_ROWS,
                ),
                rows=INDUSTRY_SAMPLE_ROWS,
            )
        if not awards:
            return None

        counts = Counter(opp.agency for opp in awards if opp.agency)
        return IndustryAnalytics(
            naics_code=naics_code,
            industry_name=naics_sector_name(naics_code) or f"NAICS {naics_code}",
            total_opportunities=len(awards),
            average_award_value=sum(opp.amount for opp in awards) / len(awards),
            growth_trend=self._growth_trend(awards, today),
            top_agencies=[agency for agency, _ in counts.most_common(TOP_AGENCY_COUNT)],
        )

    async def _build_agency_analytics(self, agency_name: str) -> AgencyAnalytics:
        baseline = baseline_for(agency_name)
        return AgencyAnalytics(
            agency_name=agency_name,
            total_historical_funding=baseline.total_historical_funding,
            average_award_amount=baseline.average_award_amount,
            preferred_contract_types=list(PREFERRED_CONTRACT_TYPES),
            seasonal_trends=[
                SeasonalTrend(quarter=quarter, funding_percent=percent)
                for quarter, percent in enumerate(baseline.seasonal_funding_percent, start=1)
            ],
            competition_metrics=AgencyCompetition(
                success_rate=baseline.success_rate,
                average_competitors=baseline.average_competitors,
            ),
        )

    async def _fetch_similar(
        self, opportunity_id: str, agency_name: str, opp_type: str, amount: float, limit: int
    ) -> list[Opportunity]:
        params = {
            "agencies": [agency_name] if agency_name else [],
            "type": [opp_type] if opp_type in AWARD_TYPES else [],
            "sort_by": "posted_date",
            "sort_order": "desc",
        }
        if amount > 0:
            params["amount_min"] = round(amount * (1 - SIMILAR_AMOUNT_BAND), 2)
            params["amount_max"] = round(amount * (1 + SIMILAR_AMOUNT_BAND), 2)
        rows = min(limit * 4, 100)
        with self.instrumentation.span("analytics.similar", agency=agency_name):
            awards = await self._search(SearchParams(limit=rows, **params), rows=rows)

        awards = [opp for opp in awards if opp.id != opportunity_id]
        # Most recent first, then stable sort by closeness to the target amount.
        awards.sort(key=lambda opp: opp.posted_date, reverse=True)
        if amount > 0:
            awards.sort(key=lambda opp: abs(opp.amount - amount))
        return awards[:limit]

    async def _fetch_recent_award_count(self, agency_name: str, award_type: str) -> int:
        today = self._today()
        params = SearchParams(
            agencies=[agency_name],
            type=[award_type] if award_type in AWARD_TYPES else [],
            posted_after=(today - timedelta(days=RECENT_WINDOW_DAYS)).isoformat(),
            posted_before=today.isoformat(),
        )
        return await asyncio.wait_for(
            self.awards.count_awards(params), timeout=self.timeout_seconds
        )

    @staticmethod
    def _growth_trend(awards: list[Opportunity], today: date) -> str:
        recent_cutoff = (today - timedelta(days=RECENT_WINDOW_DAYS)).isoformat()
        window_start = (today - timedelta(days=INDUSTRY_WINDOW_DAYS)).isoformat()
        recent = sum(1 for opp in awards if opp.posted_date and opp.posted_date > recent_cutoff)
        older = sum(
            1 for opp in awards
            if opp.posted_date and window_start < opp.posted_date <= recent_cutoff
        )
        if recent > older * GROWTH_UP:
            return "increasing"
        if recent < older * GROWTH_DOWN:
            return "decreasing"
        return "stable"
