"""Intelligence output models - derived heuristic metrics attached to an opportunity."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .opportunity import Opportunity

CompetitionLevel = Literal["Low", "Medium", "High", "Very High"]


class GrantIntelligence(BaseModel):
    """Per-opportunity heuristic estimates. Not a trained model."""

    success_probability: int = Field(..., ge=8, le=35, description="Integer percent")
    competition_level: CompetitionLevel
    average_award_amount: float = Field(..., ge=0)
    historical_success_rate: float = Field(..., description="Agency baseline success rate, percent")
    typical_application_count: int
    review_timeline_estimate: str = Field(..., description='e.g. "4-6 months"')
    difficulty_score: int = Field(..., ge=1, le=10)
    similar_successful_projects: list[str] = Field(default_factory=list)
    recommended_applicant_profile: str = ""


OrganizationType = Literal["nonprofit", "small-business", "university", "large-business", "government"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced", "expert"]
RiskTolerance = Literal["low", "medium", "high"]


class ApplicantProfile(BaseModel):
    """Who is applying and what they already have in place.

    Readiness fields default to missing. Matching preferences are optional;
    an unset one simply earns no match points.
    """

    tax_id_number: Optional[str] = None
    sam_registration: bool = False
    audited_financials: bool = False
    research_experience: bool = False

    organization_type: Optional[OrganizationType] = None
    industry_focus: list[str] = Field(default_factory=list)
    experience_level: ExperienceLevel = "intermediate"
    budget_range: Optional[tuple[float, float]] = Field(None, description="(min, max) the applicant can manage")
    preferred_amounts: Optional[tuple[float, float]] = Field(None, description="(min, max) the applicant wants")
    risk_tolerance: RiskTolerance = "medium"


class ApplicationReadiness(BaseModel):
    """Lightweight readiness estimate for applying to one opportunity."""

    score: int = Field(..., ge=10, le=80)
    missing_requirements: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    estimated_prep_time: str = "2-4 weeks"
    similar_opportunities: list[str] = Field(default_factory=list)


class EnhancedOpportunity(Opportunity):
    """Opportunity with intelligence attached and an enhanced search score.

    ``match_score`` and ``match_reasons`` are only set when ranking against an
    applicant profile.
    """

    intelligence: Optional[GrantIntelligence] = None
    application_readiness: Optional[ApplicationReadiness] = None
    match_score: Optional[int] = Field(None, ge=0, le=100)
    match_reasons: list[str] = Field(default_factory=list)
