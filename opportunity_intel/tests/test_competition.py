"""Tests for competition scoring (shared by analytics and intelligence)."""

import pytest

from opportunity_intel.analytics import score_competition, score_opportunity
from opportunity_intel.analytics.competition import level_for
from opportunity_intel.models import Opportunity


@pytest.mark.parametrize("score,level", [
    (0, "Low"),
    (14, "Low"),
    (15, "Medium"),
    (29, "Medium"),
    (30, "High"),
    (49, "High"),
    (50, "Very High"),
    (95, "Very High"),
])
def test_level_thresholds(score, level):
    assert level_for(score) == level


def test_nsf_mid_size_award():
    result = score_competition(150_000, "National Science Foundation")
    # amount over 100K: +10 score, +10 competitors; NSF: +30, +30
    assert result.score == 40
    assert result.level == "High"
    assert result.estimated_competitors == 55


def test_research_wording_adds_bonus():
    result = score_competition(150_000, "National Science Foundation", title="Basic Research in Optics")
    assert result.score == 55
    assert result.level == "Very High"
    assert result.estimated_competitors == 70


def test_only_first_amount_bracket_applies():
    result = score_competition(6_000_000, "Office of Naval Research")
    assert result.score == 25
    assert result.level == "Medium"
    assert result.estimated_competitors == 35


def test_sba_lowers_competitors_with_floor():
    result = score_competition(50_000, "Small Business Administration")
    assert result.score == 5
    assert result.level == "Low"
    assert result.estimated_competitors == 10


def test_unknown_agency_and_no_amount():
    result = score_competition(0, "")
    assert result.score == 0
    assert result.level == "Low"
    assert result.estimated_competitors == 15


def test_agency_abbreviation_inside_word_does_not_match():
    assert score_competition(0, "Technology Transfer Office").score == 0


def test_estimated_competitors_never_below_minimum():
    for amount in (0, 10, 150_000, 2_000_000, 9_000_000):
        for agency in ("", "SBA", "NSF", "NIH", "DOE", "Department of Energy"):
            assert score_competition(amount, agency).estimated_competitors >= 5


def test_score_opportunity_uses_agency_code():
    opp = Opportunity(
        id="grants-gov-1",
        source_api="Grants.gov",
        agency="Directorate for Engineering",
        agency_code="NSF",
        amount=150_000,
    )
    assert score_opportunity(opp).score == 40
