"""Tests for the intelligence engine and its heuristic tables."""

import json
from datetime import timedelta

import pytest

from opportunity_intel.analytics import HistoricalAnalyticsService
from opportunity_intel.intelligence import (
    DEFAULT_HEURISTICS,
    Heuristics,
    IntelligenceEngine,
    MatchPoints,
    load_heuristics,
)
from opportunity_intel.intelligence.engine import URGENT_ACTION
from opportunity_intel.models import ApplicantProfile, EnhancedOpportunity, Opportunity
from opportunity_intel.tests.conftest import TODAY, FakeAwards, award


def make_opp(**overrides) -> Opportunity:
    fields = {
        "id": "grants-gov-358121",
        "source_api": "Grants.gov",
        "opportunity_number": "NSF-25-001",
        "title": "Cyberinfrastructure for Sustained Scientific Innovation",
        "agency": "National Science Foundation",
        "agency_code": "NSF",
        "amount": 150_000,
        "type": "grant",
        "search_score": 135,
    }
    fields.update(overrides)
    return Opportunity(**fields)


@pytest.fixture
def awards():
    return FakeAwards(records=[
        award("AWD_1", 140_000, "2025-03-01", description="Scientific software sustainability"),
        award("AWD_2", 160_000, "2024-08-01", description="Data infrastructure for astronomy"),
    ])


@pytest.fixture
def engine(cache, normalizer, awards):
    analytics = HistoricalAnalyticsService(cache=cache, awards=awards, normalizer=normalizer, today=lambda: TODAY)
    return IntelligenceEngine(analytics=analytics, cache=cache, today=lambda: TODAY)


# ---------------------------------------------------------------------------
# Success probability
# ---------------------------------------------------------------------------

def test_nsf_mid_size_grant_success_probability(engine):
    """Amount bracket gives 18, then the NSF override sets 11."""
    assert engine.success_probability(make_opp()) == 11


def test_amount_brackets_without_agency_override(engine):
    unknown = {"agency": "Office of Naval Research", "agency_code": "ONR"}
    assert engine.success_probability(make_opp(amount=10_000, **unknown)) == 12
    assert engine.success_probability(make_opp(amount=50_000, **unknown)) == 15
    assert engine.success_probability(make_opp(amount=500_000, **unknown)) == 18
    assert engine.success_probability(make_opp(amount=5_000_000, **unknown)) == 22


def test_unknown_amount_falls_in_lowest_bracket(engine):
    """Amount brackets and agency rules are exclusive overrides, not a blend.

    Whether that is intended is an open product question; the current rules
    are pinned here: amount 0 is below 25K, so 12 replaces the baseline 15.
    """
    opp = make_opp(amount=0, agency="Office of Naval Research", agency_code="")
    assert engine.success_probability(opp) == 12


def test_later_agency_rule_wins_when_several_match(engine):
    """NSF and DOE both match; the DOE rule comes later and wins."""
    opp = make_opp(agency="NSF and Department of Energy Joint Program", agency_code="")
    assert engine.success_probability(opp) == 16


def test_contract_type_overrides_agency(engine):
    assert engine.success_probability(make_opp(type="contract")) == 25


def test_success_probability_is_clamped(cache):
    heuristics = Heuristics(success_contract=35, success_max=30)
    engine = IntelligenceEngine(analytics=None, cache=cache, heuristics=heuristics)
    assert engine.success_probability(make_opp(type="contract")) == 30


def test_success_probability_always_within_bounds(engine):
    for amount in (0, 1, 24_999, 25_000, 99_999, 999_999, 1_000_000, 50_000_000):
        for agency in ("", "NSF", "NIH", "DOE", "USDA", "SBA"):
            for opp_type in ("grant", "contract", "other"):
                opp = make_opp(amount=amount, agency=agency, agency_code="", type=opp_type)
                assert 8 <= engine.success_probability(opp) <= 35


# ---------------------------------------------------------------------------
# Difficulty, competition, timeline, enhanced score
# ---------------------------------------------------------------------------

def test_competition_level_matches_shared_scoring(engine):
    assert engine.competition_level(make_opp()) == "High"
    assert engine.competition_level(make_opp(description="Basic research program")) == "Very High"


def test_difficulty_score(engine):
    # short description -1
    assert engine.difficulty_score(make_opp()) == 4
    hard = make_opp(
        amount=6_000_000,
        categories=["Research & Development", "Information Technology"],
        description="x" * 2500,
    )
    assert engine.difficulty_score(hard) == 10
    easy = make_opp(amount=10_000)
    assert engine.difficulty_score(easy) == 3


def test_review_timeline(engine):
    assert engine.review_timeline(make_opp()) == "6-9 months"
    assert engine.review_timeline(make_opp(agency="Department of Defense", agency_code="DOD")) == "4-8 months"
    assert engine.review_timeline(make_opp(agency="Office of Naval Research", agency_code="")) == "4-6 months"


# ---------------------------------------------------------------------------
# Enhance
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_enhance_attaches_intelligence(engine, awards):
    enhanced = await engine.enhance(make_opp())

    assert isinstance(enhanced, EnhancedOpportunity)
    intel = enhanced.intelligence
    assert intel.success_probability == 11
    assert intel.competition_level in ("High", "Very High")
    assert intel.average_award_amount == 150_000
    assert intel.historical_success_rate == 11.0
    assert intel.typical_application_count == 200
    assert intel.review_timeline_estimate == "6-9 months"
    assert intel.difficulty_score == 4
    assert intel.recommended_applicant_profile.startswith("Non-profit organizations")
    assert intel.similar_successful_projects == [
        "National Science Foundation: Scientific software sustainability (2025)",
        "National Science Foundation: Data infrastructure for astronomy (2024)",
    ]
    # 135 + 11 * 0.5 + High 5 + difficulty <= 5 adds 5
    assert enhanced.search_score == 150.5
    assert enhanced.id == "grants-gov-358121"


@pytest.mark.asyncio
async def test_unknown_amount_uses_agency_average(engine):
    enhanced = await engine.enhance(make_opp(amount=0))
    assert enhanced.intelligence.average_award_amount == 150_000


@pytest.mark.asyncio
async def test_intelligence_is_cached_per_source_and_number(engine, awards):
    await engine.enhance(make_opp())
    calls = len(awards.search_calls)
    await engine.enhance(make_opp(id="grants-gov-other-copy"))
    assert len(awards.search_calls) == calls


@pytest.mark.asyncio
async def test_enhanced_score_never_exceeds_cap(engine):
    enhanced = await engine.enhance(make_opp(search_score=249, amount=0, agency="", agency_code=""))
    assert enhanced.search_score == 250


class BrokenAnalytics:
    async def get_agency_analytics(self, agency_name):
        raise RuntimeError("analytics down")

    async def find_similar_successful_opportunities(self, opportunity, limit=5):
        return []


@pytest.mark.asyncio
async def test_enhance_many_keeps_items_that_fail(cache):
    engine = IntelligenceEngine(analytics=BrokenAnalytics(), cache=cache)
    opps = [make_opp(), make_opp(id="grants-gov-2", opportunity_number="NSF-25-002")]

    enhanced = await engine.enhance_many(opps)

    assert [e.id for e in enhanced] == ["grants-gov-358121", "grants-gov-2"]
    assert all(e.intelligence is None for e in enhanced)


# ---------------------------------------------------------------------------
# Application readiness
# ---------------------------------------------------------------------------

def test_readiness_for_new_applicant(engine):
    opp = make_opp(categories=["Research & Development"])
    readiness = engine.application_readiness(opp)

    assert readiness.missing_requirements == [
        "Federal Tax ID Number",
        "SAM.gov Registration",
        "Audited Financial Statements",
        "Demonstrated Research Experience",
    ]
    assert readiness.score == 40
    assert readiness.estimated_prep_time == "2-4 weeks"
    assert readiness.similar_opportunities[0] == "National Science Foundation - Similar grant opportunities"


def test_readiness_for_prepared_applicant(engine):
    applicant = ApplicantProfile(
        tax_id_number="12-3456789",
        sam_registration=True,
        audited_financials=True,
        research_experience=True,
    )
    readiness = engine.application_readiness(make_opp(categories=["Research & Development"]), applicant)

    assert readiness.missing_requirements == []
    assert readiness.score == 80


def test_readiness_score_floor(cache):
    heuristics = Heuristics(readiness_penalty=30)
    engine = IntelligenceEngine(analytics=None, cache=cache, heuristics=heuristics)
    readiness = engine.application_readiness(make_opp(categories=["Research & Development"]))
    assert readiness.score == 10


def test_urgent_action_first_when_deadline_is_close(engine):
    soon = make_opp(deadline=(TODAY + timedelta(days=10)).isoformat())
    later = make_opp(deadline=(TODAY + timedelta(days=90)).isoformat())

    assert engine.application_readiness(soon).recommended_actions[0] == URGENT_ACTION
    assert URGENT_ACTION not in engine.application_readiness(later).recommended_actions
    assert URGENT_ACTION not in engine.application_readiness(make_opp(deadline="")).recommended_actions


def test_hard_opportunity_needs_longer_prep(engine):
    hard = make_opp(amount=6_000_000, categories=["Research & Development"], description="x" * 2500)
    assert engine.application_readiness(hard).estimated_prep_time == "4-8 weeks"


# ---------------------------------------------------------------------------
# Applicant matching
# ---------------------------------------------------------------------------

def test_strong_match_scores_every_criterion(engine):
    applicant = ApplicantProfile(
        organization_type="university",
        industry_focus=["research"],
        experience_level="advanced",
        preferred_amounts=(100_000, 200_000),
        risk_tolerance="high",
    )
    opp = make_opp(categories=["Research & Development"], deadline=(TODAY + timedelta(days=90)).isoformat())

    score, reasons = engine.match_score(opp, applicant)

    # 25 org + 20 industry + 20 amount + 15 experience + 10 risk + 10 deadline
    assert score == 100
    assert reasons == [
        "Strong fit for university organizations",
        "Matches your industry focus areas",
        "Amount is within your preferred range",
        "Difficulty level matches your experience",
        "Competitive opportunity matches your risk appetite",
        "Ample time for application preparation",
    ]


def test_default_profile_match(engine):
    # 10 org default + 5 known amount + 15 experience + 5 risk + 5 no deadline
    assert engine.match_score(make_opp(), ApplicantProfile()) == (40, ["Difficulty level matches your experience"])


def test_budget_range_is_second_best_amount_fit(engine):
    score, reasons = engine.match_score(make_opp(), ApplicantProfile(budget_range=(100_000, 200_000)))
    assert score == 50
    assert "Amount is manageable for your organization" in reasons


def test_hard_urgent_contract_for_cautious_beginner(engine):
    applicant = ApplicantProfile(
        organization_type="large-business",
        experience_level="beginner",
        budget_range=(0, 200_000),
        risk_tolerance="low",
    )
    opp = make_opp(
        type="contract",
        amount=6_000_000,
        agency="General Services Administration",
        agency_code="GSA",
        categories=["Research & Development"],
        description="x" * 2500,
        deadline=(TODAY + timedelta(days=10)).isoformat(),
    )

    score, reasons = engine.match_score(opp, applicant)

    # 25 org + 5 amount outside range + 2 difficulty gap + 10 low risk + 3 urgent
    assert score == 45
    assert reasons == [
        "Strong fit for large-business organizations",
        "May require additional expertise or partnerships",
        "Lower-risk opportunity suits a conservative approach",
        "Urgent deadline - quick action required",
    ]


def test_past_deadline_earns_no_timing_points(engine):
    opp = make_opp(deadline=(TODAY - timedelta(days=5)).isoformat())
    assert engine.match_score(opp, ApplicantProfile())[0] == 35


def test_match_score_is_capped(cache):
    engine = IntelligenceEngine(
        analytics=None, cache=cache, heuristics=Heuristics(match_points=MatchPoints(industry=90)), today=lambda: TODAY
    )
    opp = make_opp(categories=["Research & Development"])
    assert engine.match_score(opp, ApplicantProfile(industry_focus=["research"]))[0] == 100


@pytest.mark.asyncio
async def test_match_ranks_best_first_with_intelligence(engine):
    grant = make_opp()
    contract = make_opp(id="grants-gov-2", opportunity_number="NSF-25-002", type="contract")
    applicant = ApplicantProfile(organization_type="large-business")

    ranked = await engine.match([grant, contract], applicant)

    assert [(o.id, o.match_score) for o in ranked] == [("grants-gov-2", 55), ("grants-gov-358121", 40)]
    assert ranked[0].match_reasons[0] == "Strong fit for large-business organizations"
    assert all(o.intelligence is not None for o in ranked)
    assert all(o.application_readiness is not None for o in ranked)

    assert [o.id for o in await engine.match([grant, contract], applicant, limit=1)] == ["grants-gov-2"]


@pytest.mark.asyncio
async def test_match_still_ranks_when_intelligence_fails(cache):
    engine = IntelligenceEngine(analytics=BrokenAnalytics(), cache=cache, today=lambda: TODAY)

    ranked = await engine.match([make_opp()], ApplicantProfile())

    assert ranked[0].match_score == 40
    assert ranked[0].intelligence is None


# ---------------------------------------------------------------------------
# Heuristic tables
# ---------------------------------------------------------------------------

def test_default_heuristics_version():
    assert DEFAULT_HEURISTICS.version == "1.1"
    assert load_heuristics(None) is DEFAULT_HEURISTICS


def test_load_heuristics_from_json(tmp_path):
    path = tmp_path / "heuristics.json"
    path.write_text(json.dumps({"version": "1.2", "success_contract": 20}))

    heuristics = load_heuristics(str(path))
    assert heuristics.version == "1.2"
    assert heuristics.success_contract == 20
    assert heuristics.success_baseline == 15


def test_load_heuristics_from_yaml(tmp_path):
    path = tmp_path / "heuristics.yaml"
    path.write_text("review_timelines:\n  NSF: 3-5 months\ndefault_review_timeline: 2-3 months\n")

    heuristics = load_heuristics(str(path))
    assert heuristics.review_timelines == {"NSF": "3-5 months"}
    assert heuristics.default_review_timeline == "2-3 months"


def test_load_heuristics_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_heuristics(str(tmp_path / "nope.json"))


def test_load_heuristics_unsupported_format(tmp_path):
    path = tmp_path / "heuristics.toml"
    path.write_text("version = '1.0'")
    with pytest.raises(ValueError):
        load_heuristics(str(path))


def test_heuristics_reject_out_of_range_probability():
    with pytest.raises(ValueError):
        Heuristics(success_contract=50)


def test_heuristics_reject_descending_brackets():
    with pytest.raises(ValueError):
        Heuristics(success_amount_brackets=[(100_000, 15), (25_000, 12)])


def test_partial_match_points_keep_other_defaults(tmp_path):
    path = tmp_path / "heuristics.yaml"
    path.write_text("match_points:\n  industry: 30\n")

    heuristics = load_heuristics(str(path))
    assert heuristics.match_points.industry == 30
    assert heuristics.match_points.preferred_amount == 20
