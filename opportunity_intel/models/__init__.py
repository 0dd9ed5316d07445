"""Shared Pydantic models - contract between adapters, normalization, analytics and aggregation."""

from .opportunity import Opportunity, OpportunityType, Jurisdiction
from .search import SearchParams, SearchFacets, SearchResponse, ProviderPage
from .intelligence import (
    ApplicantProfile,
    ApplicationReadiness,
    CompetitionLevel,
    EnhancedOpportunity,
    GrantIntelligence,
)
from .analytics import (
    AgencyAnalytics,
    AgencyCompetition,
    CompetitionMetrics,
    HistoricalDataPoint,
    IndustryAnalytics,
    SeasonalTrend,
)

__all__ = [
    "Opportunity",
    "OpportunityType",
    "Jurisdiction",
    "SearchParams",
    "SearchFacets",
    "SearchResponse",
    "ProviderPage",
    "ApplicantProfile",
    "ApplicationReadiness",
    "CompetitionLevel",
    "EnhancedOpportunity",
    "GrantIntelligence",
    "AgencyAnalytics",
    "AgencyCompetition",
    "CompetitionMetrics",
    "HistoricalDataPoint",
    "IndustryAnalytics",
    "SeasonalTrend",
]
