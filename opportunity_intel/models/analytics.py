"""Historical analytics models (agency / industry aggregates, competition metrics)."""

from typing import Literal

from pydantic import BaseModel, Field

from .intelligence import CompetitionLevel

GrowthTrend = Literal["increasing", "stable", "decreasing"]


class HistoricalDataPoint(BaseModel):
    """Funding folded for one calendar year."""

    year: int
    total_funding: float = 0.0
    award_count: int = 0


class SeasonalTrend(BaseModel):
    quarter: int = Field(..., ge=1, le=4)
    funding_percent: float


class AgencyCompetition(BaseModel):
    success_rate: float = Field(..., description="Fraction of applications funded, 0-1")
    average_competitors: int


class AgencyAnalytics(BaseModel):
    """Curated baseline statistics for one agency."""

    agency_name: str
    total_historical_funding: float
    average_award_amount: float
    preferred_contract_types: list[str] = Field(default_factory=list)
    seasonal_trends: list[SeasonalTrend] = Field(default_factory=list)
    competition_metrics: AgencyCompetition


class IndustryAnalytics(BaseModel):
    """Award statistics for one NAICS code over the trailing year."""

    naics_code: str
    industry_name: str
    total_opportunities: int
    average_award_value: float
    growth_trend: GrowthTrend
    top_agencies: list[str] = Field(default_factory=list)


class CompetitionMetrics(BaseModel):
    estimated_competitors: int = Field(..., ge=5)
    competition_level: CompetitionLevel
    similar_recent_opportunities: int = 0
