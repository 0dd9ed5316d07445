"""Competition scoring shared by analytics and intelligence.

A single pure function so competition metrics and the intelligence
competition level can never drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..normalization.tables import matches_agency

BASE_COMPETITORS = 15
MIN_COMPETITORS = 5
SBA_COMPETITOR_FLOOR = 10

# (amount greater than, score bonus, competitor bonus); first match wins
AMOUNT_BRACKETS = (
    (5_000_000, 25, 20),
    (1_000_000, 15, 15),
    (100_000, 10, 10),
)

# (agency code, score bonus, competitor delta); first match wins
AGENCY_RULES = (
    ("NSF", 30, 30),
    ("NIH", 25, 25),
    ("DOE", 20, 15),
    ("SBA", 5, -10),
)

RESEARCH_BONUS = (15, 15)

# (score below, level)
LEVEL_THRESHOLDS = (
    (15, "Low"),
    (30, "Medium"),
    (50, "High"),
)
TOP_LEVEL = "Very High"


@dataclass(frozen=True)
class CompetitionScore:
    score: int
    level: str
    estimated_competitors: int


def level_for(score: int) -> str:
    for threshold, level in LEVEL_THRESHOLDS:
        if score < threshold:
            return level
    return TOP_LEVEL


def score_competition(
    amount: float,
    agency_name: str,
    title: str = "",
    description: str = "",
) -> CompetitionScore:
    score = 0
    competitors = BASE_COMPETITORS

    for threshold, score_bonus, competitor_bonus in AMOUNT_BRACKETS:
        if amount > threshold:
            score += score_bonus
            competitors += competitor_bonus
            break

    for code, score_bonus, competitor_delta in AGENCY_RULES:
        if matches_agency(agency_name or "", code):
            score += score_bonus
            competitors += competitor_delta
            if code == "SBA":
                competitors = max(SBA_COMPETITOR_FLOOR, competitors)
            break

    if "research" in (title or "").lower() or "research" in (description or "").lower():
        score += RESEARCH_BONUS[0]
        competitors += RESEARCH_BONUS[1]

    return CompetitionScore(
        score=score,
        level=level_for(score),
        estimated_competitors=max(MIN_COMPETITORS, competitors),
    )


def score_opportunity(opportunity) -> CompetitionScore:
    """score_competition over an Opportunity; agency name and code both count."""
    agency = f"{opportunity.agency} {opportunity.agency_code}".strip()
    return score_competition(opportunity.amount, agency, opportunity.title, opportunity.description)
