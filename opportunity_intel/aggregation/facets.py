"""Facet counts over a merged result set, for narrowing a search."""

from collections import Counter
from datetime import date
from typing import Iterable

from ..models import Opportunity, SearchFacets

# (upper bound, label); amounts at or above the last bound fall in TOP_AMOUNT_BAND
AMOUNT_BANDS = (
    (100_000, "Under $100K"),
    (500_000, "$100K - $500K"),
    (1_000_000, "$500K - $1M"),
    (10_000_000, "$1M - $10M"),
)
TOP_AMOUNT_BAND = "Over $10M"
UNKNOWN_AMOUNT = "Not specified"

# (days left, label), inclusive
DEADLINE_BANDS = (
    (7, "Next 7 days"),
    (30, "Next 30 days"),
    (90, "Next 90 days"),
)
LATER_DEADLINE = "Later"
PAST_DEADLINE = "Passed"
NO_DEADLINE = "No deadline"


def amount_band(amount: float) -> str:
    if amount <= 0:
        return UNKNOWN_AMOUNT
    for bound, label in AMOUNT_BANDS:
        if amount < bound:
            return label
    return TOP_AMOUNT_BAND


def deadline_band(deadline: str, today: date) -> str:
    if not deadline:
        return NO_DEADLINE
    days_left = (date.fromisoformat(deadline) - today).days
    if days_left < 0:
        return PAST_DEADLINE
    for bound, label in DEADLINE_BANDS:
        if days_left <= bound:
            return label
    return LATER_DEADLINE


def _counts(values: Iterable[str]) -> dict[str, int]:
    # Ties keep first-seen order.
    return dict(Counter(value for value in values if value).most_common())


def build_facets(opportunities: list[Opportunity], today: date) -> SearchFacets:
    """Count agencies, types, categories, amount and deadline bands across every result."""
    return SearchFacets(
        agencies=_counts(opp.agency for opp in opportunities),
        types=_counts(opp.type for opp in opportunities),
        categories=_counts(category for opp in opportunities for category in opp.categories),
        industries=_counts(industry for opp in opportunities for industry in opp.industry_categories),
        amounts=_counts(amount_band(opp.amount) for opp in opportunities),
        set_asides=_counts(opp.set_aside_type for opp in opportunities),
        deadlines=_counts(deadline_band(opp.deadline, today) for opp in opportunities),
        locations=_counts(opp.place_of_performance_state for opp in opportunities),
    )
