"""Stable sorting and pagination of merged opportunities."""

import math
from typing import Callable, Optional

from ..models import Opportunity, SearchFacets, SearchParams, SearchResponse

# Missing dates sort as if far in the future (deadline) or far in the past (posted).
MISSING_DEADLINE = "9999-12-31"
MISSING_POSTED_DATE = "1900-01-01"

SORT_KEYS: dict[str, Callable[[Opportunity], object]] = {
    "amount": lambda opp: opp.amount,
    "deadline": lambda opp: opp.deadline or MISSING_DEADLINE,
    "posted_date": lambda opp: opp.posted_date or MISSING_POSTED_DATE,
    "relevance": lambda opp: opp.search_score,
}


def sort_opportunities(
    opportunities: list[Opportunity], sort_by: str = "relevance", sort_order: str = "desc"
) -> list[Opportunity]:
    """Stable sort; ties keep provider order."""
    key = SORT_KEYS.get(sort_by, SORT_KEYS["relevance"])
    return sorted(opportunities, key=key, reverse=sort_order == "desc")


def paginate(
    sorted_opportunities: list[Opportunity],
    params: SearchParams,
    total_available: Optional[int] = None,
    facets: Optional[SearchFacets] = None,
) -> SearchResponse:
    """Cut one page from the full merged list.

    ``total_count`` is the length of that list, so the last page reported by
    ``total_pages`` is never empty.
    """
    total_count = len(sorted_opportunities)
    start = (params.page - 1) * params.limit
    end = start + params.limit
    return SearchResponse(
        opportunities=sorted_opportunities[start:end],
        total_count=total_count,
        total_available=total_count if total_available is None else total_available,
        page=params.page,
        limit=params.limit,
        total_pages=math.ceil(total_count / params.limit),
        has_next=end < total_count,
        has_previous=params.page > 1,
        facets=facets or SearchFacets(),
        search_params=params,
    )
