"""Intelligence engine - heuristic success, competition and readiness estimates."""

import asyncio
import logging
from datetime import date
from typing import Callable, Optional

from ..analytics import HistoricalAnalyticsService, score_opportunity
from ..cache import CacheKeys, CacheStore
from ..cache.ttl import INTELLIGENCE
from ..instrumentation import Instrumentation, NullInstrumentation
from ..models import (
    ApplicantProfile,
    ApplicationReadiness,
    EnhancedOpportunity,
    GrantIntelligence,
    Opportunity,
)
from ..normalization.tables import matches_agency
from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .matching import score_match

logger = logging.getLogger(__name__)

SIMILAR_PROJECT_LIMIT = 3
DIFFICULTY_MIN = 1
DIFFICULTY_MAX = 10

BASE_ACTIONS = (
    "Review full opportunity announcement",
    "Contact program officer for clarification",
    "Identify potential project team members",
    "Develop preliminary budget",
)
URGENT_ACTION = "URGENT: Begin application preparation immediately"
DEFAULT_PREP_TIME = "2-4 weeks"
EXTENDED_PREP_TIME = "4-8 weeks"


def _agency_text(opportunity: Opportunity) -> str:
    return f"{opportunity.agency} {opportunity.agency_code}".strip()


class IntelligenceEngine:
    """Attaches GrantIntelligence and ApplicationReadiness to opportunities.

    Intelligence is cached 24h per (source_api, opportunity_number); readiness
    depends on the applicant and is computed per call.
    """

    def __init__(
        self,
        analytics: HistoricalAnalyticsService,
        cache: CacheStore,
        heuristics: Heuristics = DEFAULT_HEURISTICS,
        instrumentation: Optional[Instrumentation] = None,
        today: Callable[[], date] = date.today,
    ):
        self.analytics = analytics
        self.heuristics = heuristics
        self.instrumentation = instrumentation or NullInstrumentation()
        self._today = today
        self._intelligence = cache.memoize(
            key_fn=lambda opp: CacheKeys.intelligence(opp.source_api, opp.opportunity_number or opp.id),
            ttl_seconds=INTELLIGENCE.ttl_seconds,
            tags=INTELLIGENCE.tags,
            name="intelligence",
        )(self._build_intelligence)

    async def enhance(
        self, opportunity: Opportunity, applicant: Optional[ApplicantProfile] = None
    ) -> EnhancedOpportunity:
        with self.instrumentation.span("intelligence.enhance", id=opportunity.id):
            intelligence = await self._intelligence(opportunity)
            readiness = self.application_readiness(opportunity, applicant)

        data = opportunity.model_dump()
        data.update(
            intelligence=intelligence,
            application_readiness=readiness,
            search_score=self.enhanced_search_score(opportunity.search_score, intelligence),
        )
        return EnhancedOpportunity(**data)

    async def enhance_many(
        self, opportunities: list[Opportunity], applicant: Optional[ApplicantProfile] = None
    ) -> list[EnhancedOpportunity]:
        """Enhance concurrently; an item that fails comes back without intelligence."""
        results = await asyncio.gather(
            *(self.enhance(opp, applicant) for opp in opportunities), return_exceptions=True
        )
        enhanced = []
        for opp, result in zip(opportunities, results):
            if isinstance(result, Exception):
                logger.warning("intelligence id=%s result=failure error=%s", opp.id, result)
                enhanced.append(EnhancedOpportunity(**opp.model_dump()))
            else:
                enhanced.append(result)
        return enhanced

    # --- Intelligence ---

    async def _build_intelligence(self, opportunity: Opportunity) -> GrantIntelligence:
        h = self.heuristics
        competition = score_opportunity(opportunity)
        agency, similar = await asyncio.gather(
            self.analytics.get_agency_analytics(opportunity.agency),
            self.analytics.find_similar_successful_opportunities(opportunity, limit=SIMILAR_PROJECT_LIMIT),
        )
        return GrantIntelligence(
            success_probability=self.success_probability(opportunity),
            competition_level=competition.level,
            average_award_amount=opportunity.amount or agency.average_award_amount,
            historical_success_rate=round(agency.competition_metrics.success_rate * 100, 1),
            typical_application_count=h.application_counts.get(competition.level, 0),
            review_timeline_estimate=self.review_timeline(opportunity),
            difficulty_score=self.difficulty_score(opportunity),
            similar_successful_projects=[self._describe_award(award) for award in similar],
            recommended_applicant_profile=h.applicant_profiles.get(
                opportunity.type, h.default_applicant_profile
            ),
        )

    def success_probability(self, opportunity: Opportunity) -> int:
        """Integer percent; later rules override earlier ones, then clamp."""
        h = self.heuristics
        probability = h.success_baseline

        # An unknown amount (0) falls in the lowest bracket.
        for bound, value in h.success_amount_brackets:
            if opportunity.amount < bound:
                probability = value
                break
        else:
            probability = h.success_amount_top

        agency = _agency_text(opportunity)
        for code, value in h.success_agency_overrides.items():
            if matches_agency(agency, code):
                probability = value

        if opportunity.type == "contract":
            probability = h.success_contract

        return max(h.success_min, min(h.success_max, probability))

    def competition_level(self, opportunity: Opportunity) -> str:
        return score_opportunity(opportunity).level

    def difficulty_score(self, opportunity: Opportunity) -> int:
        difficulty = self.heuristics.difficulty_base
        if opportunity.amount > 5_000_000:
            difficulty += 2
        elif opportunity.amount < 50_000:
            difficulty -= 1
        for category, bonus in self.heuristics.difficulty_category_bonus.items():
            if category in opportunity.categories:
                difficulty += bonus
        if len(opportunity.description) > 2000:
            difficulty += 1
        if len(opportunity.description) < 500:
            difficulty -= 1
        return max(DIFFICULTY_MIN, min(DIFFICULTY_MAX, difficulty))

    def review_timeline(self, opportunity: Opportunity) -> str:
        agency = _agency_text(opportunity)
        for code, timeline in self.heuristics.review_timelines.items():
            if matches_agency(agency, code):
                return timeline
        return self.heuristics.default_review_timeline

    def enhanced_search_score(self, base_score: float, intelligence: GrantIntelligence) -> float:
        h = self.heuristics
        score = base_score or 100
        score += intelligence.success_probability * h.success_weight
        score += h.competition_bonus.get(intelligence.competition_level, 0)
        if intelligence.difficulty_score <= 3:
            score += 10
        elif intelligence.difficulty_score <= 5:
            score += 5
        return min(score, h.enhanced_score_cap)

    @staticmethod
    def _describe_award(award: Opportunity) -> str:
        year = f" ({award.posted_date[:4]})" if award.posted_date else ""
        title = award.title if len(award.title) <= 80 else award.title[:77] + "..."
        return f"{award.agency}: {title}{year}" if award.agency else f"{title}{year}"

    # --- Applicant matching ---

    def match_score(self, opportunity: Opportunity, applicant: ApplicantProfile) -> tuple[int, list[str]]:
        return score_match(
            opportunity,
            applicant,
            self.heuristics,
            difficulty=self.difficulty_score(opportunity),
            competition_level=score_opportunity(opportunity).level,
            days_left=self._days_until(opportunity.deadline),
        )

    async def match(
        self, opportunities: list[Opportunity], applicant: ApplicantProfile, limit: int = 20
    ) -> list[EnhancedOpportunity]:
        """Rank opportunities for one applicant, best match first, with intelligence attached.

        Ties keep input order. An item whose intelligence fails is still ranked.
        """
        enhanced = await self.enhance_many(opportunities, applicant)
        ranked = []
        for opp in enhanced:
            score, reasons = self.match_score(opp, applicant)
            ranked.append(opp.model_copy(update={"match_score": score, "match_reasons": reasons}))
        ranked.sort(key=lambda opp: opp.match_score, reverse=True)
        return ranked[:limit]

    # --- Readiness ---


    def application_readiness(
        self, opportunity: Opportunity, applicant: Optional[ApplicantProfile] = None
    ) -> ApplicationReadiness:
        h = self.heuristics
        applicant = applicant or ApplicantProfile()

        missing = []
        if not applicant.tax_id_number:
            missing.append("Federal Tax ID Number")
        if not applicant.sam_registration:
            missing.append("SAM.gov Registration")
        if opportunity.amount > h.audited_financials_threshold and not applicant.audited_financials:
            missing.append("Audited Financial Statements")
        if "Research & Development" in opportunity.categories and not applicant.research_experience:
            missing.append("Demonstrated Research Experience")

        actions = list(BASE_ACTIONS)
        days_left = self._days_until(opportunity.deadline)
        if days_left is not None and days_left < h.urgent_deadline_days:
            actions.insert(0, URGENT_ACTION)

        return ApplicationReadiness(
            score=max(h.readiness_base - h.readiness_penalty * len(missing), h.readiness_floor),
            missing_requirements=missing,
            recommended_actions=actions,
            estimated_prep_time=EXTENDED_PREP_TIME if self.difficulty_score(opportunity) >= 8 else DEFAULT_PREP_TIME,
            similar_opportunities=self._similar_hints(opportunity),
        )

    def _days_until(self, deadline: str) -> Optional[int]:
        if not deadline:
            return None
        return (date.fromisoformat(deadline) - self._today()).days

    @staticmethod
    def _similar_hints(opportunity: Opportunity) -> list[str]:
        hints = []
        if opportunity.agency:
            hints.append(f"{opportunity.agency} - Similar {opportunity.type} opportunities")
        if opportunity.categories:
            hints.append(f"Category: {opportunity.categories[0]} - Related programs")
        hints.append("Cross-agency opportunities in same field")
        return hints
