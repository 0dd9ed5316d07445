"""Opportunity - canonical record produced by the normalization engine for every provider."""

import re
from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

OpportunityType = Literal["grant", "contract", "cooperative_agreement", "other"]
Jurisdiction = Literal["federal", "state", "local"]

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Opportunity(BaseModel):
    """Normalized funding opportunity from any provider.

    Immutable once built. Dates are ``YYYY-MM-DD`` strings or ``""`` (never None),
    and ``amount`` is never negative (0 means unknown / varies).
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "grants-gov-358121",
                "title": "Cyberinfrastructure for Sustained Scientific Innovation",
                "agency": "National Science Foundation",
                "agency_code": "NSF",
                "deadline": "2025-09-02",
                "posted_date": "2025-05-14",
                "amount": 600000.0,
                "type": "grant",
                "opportunity_status": "open",
                "jurisdiction": "federal",
                "categories": ["Research & Development"],
                "industry_categories": ["Research"],
                "business_size": ["any-size"],
                "search_score": 145,
                "source_api": "Grants.gov",
            }
        },
    )

    # Identity
    id: str = Field(..., min_length=1, description="Source-prefixed id, e.g. grants-gov-358121")
    source_api: str = Field(..., description="Provenance: Grants.gov, USAspending.gov, state, ...")
    opportunity_number: str = Field(default="", description="Official opportunity / award number")

    # Details
    title: str = Field(default="", description="Cleaned title")
    agency: str = Field(default="", description="Standardized agency name")
    agency_code: str = Field(default="", description="Agency code, e.g. NSF")
    description: str = Field(default="", description="Cleaned description")
    eligibility_criteria: str = Field(default="", description="Eligibility text")
    link_to_apply: str = Field(default="", description="Listing URL")

    # Dates
    deadline: str = Field(default="", description="YYYY-MM-DD or empty for no deadline")
    posted_date: str = Field(default="", description="YYYY-MM-DD or empty")
    performance_start: str = Field(default="", description="Period of performance start")
    performance_end: str = Field(default="", description="Period of performance end")

    # Financial / classification
    amount: float = Field(default=0.0, description="Award amount, 0 when unknown")
    type: OpportunityType = Field(default="other")
    opportunity_status: str = Field(default="open", description="open, forecasted or closed")
    jurisdiction: Jurisdiction = Field(default="federal")
    set_aside_type: str = Field(default="", description="Standardized set-aside, e.g. 8(a)")
    cfda_numbers: list[str] = Field(default_factory=list, description="Assistance listing numbers")
    naics_codes: list[str] = Field(default_factory=list)
    place_of_performance_state: str = Field(default="")
    place_of_performance_city: str = Field(default="")

    # Derived
    categories: list[str] = Field(default_factory=list)
    industry_categories: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    business_size: list[str] = Field(default_factory=list)
    search_score: float = Field(default=0.0, description="Ranking score, practically 0-250")
    is_featured: bool = Field(default=False)

    @field_validator("amount")
    @classmethod
    def non_negative_amount(cls, v: float) -> float:
        return v if v > 0 else 0.0

    @field_validator("deadline", "posted_date", "performance_start", "performance_end")
    @classmethod
    def iso_date_or_empty(cls, v: str) -> str:
        if v and not (ISO_DATE.match(v) and _is_calendar_date(v)):
            raise ValueError(f"Dates must be YYYY-MM-DD or empty, got {v!r}")
        return v


def _is_calendar_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True
