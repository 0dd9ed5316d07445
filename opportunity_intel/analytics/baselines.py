"""Curated per-agency baseline statistics.

Figures are approximations of published agency budgets and funding rates:
- nsf
- nih (also any health agency)
- sba (also any small business program)
- federal (generic fallback)
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class AgencyBaseline:
    """Baseline funding and competition figures for one agency family."""

    key: str
    pattern: re.Pattern | None
    total_historical_funding: float
    average_award_amount: float
    success_rate: float
    average_competitors: int
    seasonal_funding_percent: tuple[float, float, float, float]

    def matches(self, agency_name: str) -> bool:
        return self.pattern is not None and self.pattern.search(agency_name.lower()) is not None


PREFERRED_CONTRACT_TYPES = ("grant", "cooperative agreement", "contract")


# --- Per-agency baselines ---

NSF = AgencyBaseline(
    key="nsf",
    pattern=re.compile(r"\bnsf\b|national science foundation"),
    total_historical_funding=8_500_000_000,
    average_award_amount=150_000,
    success_rate=0.11,
    average_competitors=45,
    seasonal_funding_percent=(20, 25, 25, 30),
)

NIH = AgencyBaseline(
    key="nih",
    pattern=re.compile(r"\bnih\b|national institutes of health|health"),
    total_historical_funding=42_000_000_000,
    average_award_amount=275_000,
    success_rate=0.14,
    average_competitors=38,
    seasonal_funding_percent=(24, 26, 22, 28),
)

SBA = AgencyBaseline(
    key="sba",
    pattern=re.compile(r"\bsba\b|small business"),
    total_historical_funding=700_000_000,
    average_award_amount=50_000,
    success_rate=0.22,
    average_competitors=15,
    seasonal_funding_percent=(22, 26, 24, 28),
)

FEDERAL = AgencyBaseline(
    key="federal",
    pattern=None,
    total_historical_funding=1_000_000_000,
    average_award_amount=125_000,
    success_rate=0.15,
    average_competitors=25,
    seasonal_funding_percent=(18, 22, 25, 35),
)

# Checked in order; first match wins.
BASELINES = (NSF, NIH, SBA)


def baseline_for(agency_name: str) -> AgencyBaseline:
    """Return the first matching baseline, or the generic federal one."""
    for baseline in BASELINES:
        if agency_name and baseline.matches(agency_name):
            return baseline
    return FEDERAL
