"""Applicant matching - how well one opportunity suits one applicant (0-100).

Six criteria add points from the Heuristics match tables, each with an
optional human-readable reason:
- organization type against opportunity type
- industry focus against categories
- amount against preferred and manageable ranges
- applicant experience against opportunity difficulty
- risk tolerance against competition level
- time left before the deadline
"""

from typing import Optional

from ..models import ApplicantProfile, Opportunity
from .heuristics import Heuristics

HIGH_COMPETITION_LEVELS = ("High", "Very High")
AMPLE_DAYS = 60
REASONABLE_DAYS = 30


def _in_range(amount: float, bounds: Optional[tuple[float, float]]) -> bool:
    return bounds is not None and bounds[0] <= amount <= bounds[1]


def _industry_overlap(opportunity: Opportunity, focus: list[str]) -> bool:
    labels = [label.lower() for label in opportunity.categories + opportunity.industry_categories]
    wanted = [item.lower() for item in focus if item]
    return any(w in label or label in w for label in labels for w in wanted)


def score_match(
    opportunity: Opportunity,
    applicant: ApplicantProfile,
    heuristics: Heuristics,
    difficulty: int,
    competition_level: str,
    days_left: Optional[int],
) -> tuple[int, list[str]]:
    """Return (score, reasons); score is capped at ``heuristics.match_max_score``."""
    points = heuristics.match_points
    score = 0
    reasons: list[str] = []

    org_points = heuristics.match_default_org_points
    if applicant.organization_type:
        org_points = heuristics.match_org_type_points.get(applicant.organization_type, {}).get(
            opportunity.type, heuristics.match_default_org_points
        )
    score += org_points
    if applicant.organization_type and org_points >= points.org_type_reason_min:
        reasons.append(f"Strong fit for {applicant.organization_type} organizations")

    if _industry_overlap(opportunity, applicant.industry_focus):
        score += points.industry
        reasons.append("Matches your industry focus areas")

    if _in_range(opportunity.amount, applicant.preferred_amounts):
        score += points.preferred_amount
        reasons.append("Amount is within your preferred range")
    elif _in_range(opportunity.amount, applicant.budget_range):
        score += points.budget_amount
        reasons.append("Amount is manageable for your organization")
    elif opportunity.amount > 0:
        score += points.any_amount

    level = heuristics.match_experience_levels.get(applicant.experience_level, 5)
    if difficulty <= level + 2:
        score += points.experience_fit
        if difficulty <= level:
            reasons.append("Difficulty level matches your experience")
    elif difficulty <= level + 4:
        score += points.experience_stretch
        reasons.append("Challenging but achievable with your experience")
    else:
        score += points.experience_gap
        reasons.append("May require additional expertise or partnerships")

    high_competition = competition_level in HIGH_COMPETITION_LEVELS
    if applicant.risk_tolerance == "high" and high_competition:
        score += points.risk_fit
        reasons.append("Competitive opportunity matches your risk appetite")
    elif applicant.risk_tolerance == "low" and not high_competition:
        score += points.risk_fit
        reasons.append("Lower-risk opportunity suits a conservative approach")
    else:
        score += points.risk_neutral

    if days_left is None:
        score += points.no_deadline
    elif days_left > AMPLE_DAYS:
        score += points.deadline_ample
        reasons.append("Ample time for application preparation")
    elif days_left > REASONABLE_DAYS:
        score += points.deadline_reasonable
        reasons.append("Reasonable time for application preparation")
    elif days_left > 0:
        score += points.deadline_urgent
        reasons.append("Urgent deadline - quick action required")

    return min(score, heuristics.match_max_score), reasons
