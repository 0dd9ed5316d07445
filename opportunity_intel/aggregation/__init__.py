from .facets import amount_band, build_facets, deadline_band
from .service import AggregationService
from .sorting import paginate, sort_opportunities

__all__ = [
    "AggregationService",
    "amount_band",
    "build_facets",
    "deadline_band",
    "paginate",
    "sort_opportunities",
]
