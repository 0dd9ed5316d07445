"""Heuristic tables for opportunity intelligence.

Transparent rules, not a trained model. Kept as versioned data so the
numbers can be tuned from a JSON/YAML file without touching the engine.
"""

import json
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

PROBABILITY_FLOOR = 8
PROBABILITY_CEILING = 35


class MatchPoints(BaseModel):
    """Points per applicant-match criterion. A file may override any subset."""

    org_type_reason_min: int = 20
    industry: int = 20
    preferred_amount: int = 20
    budget_amount: int = 15
    any_amount: int = 5
    experience_fit: int = 15
    experience_stretch: int = 10
    experience_gap: int = 2
    risk_fit: int = 10
    risk_neutral: int = 5
    deadline_ample: int = 10
    deadline_reasonable: int = 7
    deadline_urgent: int = 3
    no_deadline: int = 5


class Heuristics(BaseModel):
    """Intelligence scoring tables.

    Agency keys are agency codes; names are matched through the agency alias
    table so "National Science Foundation" and "NSF" hit the same rule.
    """

    version: str = "1.1"

    # Success probability (integer percent)
    success_baseline: int = 15
    # (amount below, probability); amounts at or above the last bound get success_amount_top
    success_amount_brackets: list[tuple[float, int]] = Field(
        default_factory=lambda: [(25_000, 12), (100_000, 15), (1_000_000, 18)]
    )
    success_amount_top: int = 22
    success_agency_overrides: dict[str, int] = Field(
        default_factory=lambda: {"NSF": 11, "NIH": 14, "DOE": 16, "USDA": 18}
    )
    success_contract: int = 25
    success_min: int = PROBABILITY_FLOOR
    success_max: int = PROBABILITY_CEILING

    # Difficulty (1-10)
    difficulty_base: int = 5
    difficulty_category_bonus: dict[str, int] = Field(
        default_factory=lambda: {"Research & Development": 2, "Information Technology": 1}
    )

    # Review timelines
    review_timelines: dict[str, str] = Field(
        default_factory=lambda: {
            "NSF": "6-9 months",
            "DOD": "4-8 months",
            "SBA": "2-4 months",
            "DOE": "5-7 months",
        }
    )
    default_review_timeline: str = "4-6 months"

    # Enhanced search score
    success_weight: float = 0.5
    competition_bonus: dict[str, int] = Field(
        default_factory=lambda: {"Low": 20, "Medium": 10, "High": 5, "Very High": 0}
    )
    enhanced_score_cap: float = 250

    application_counts: dict[str, int] = Field(
        default_factory=lambda: {"Low": 25, "Medium": 75, "High": 200, "Very High": 500}
    )

    # Application readiness
    readiness_base: int = 80
    readiness_penalty: int = 10
    readiness_floor: int = 10
    audited_financials_threshold: float = 100_000
    urgent_deadline_days: int = 30

    applicant_profiles: dict[str, str] = Field(
        default_factory=lambda: {
            "grant": (
                "Non-profit organizations, educational institutions, or research organizations "
                "with 3+ years experience and demonstrated track record in the field"
            ),
            "contract": (
                "Established businesses with relevant industry experience, appropriate "
                "certifications, and proven delivery capabilities"
            ),
            "cooperative_agreement": (
                "Organizations with strong collaborative capabilities and community partnerships"
            ),
        }
    )
    default_applicant_profile: str = (
        "Organizations with relevant experience and capacity to execute proposed project"
    )

    # Applicant matching (0-100)
    match_org_type_points: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {
            "nonprofit": {"grant": 25, "contract": 10, "cooperative_agreement": 20, "other": 15},
            "small-business": {"grant": 20, "contract": 25, "cooperative_agreement": 15, "other": 15},
            "university": {"grant": 25, "contract": 15, "cooperative_agreement": 20, "other": 20},
            "large-business": {"grant": 10, "contract": 25, "cooperative_agreement": 10, "other": 15},
            "government": {"grant": 15, "contract": 20, "cooperative_agreement": 25, "other": 20},
        }
    )
    match_default_org_points: int = 10
    match_experience_levels: dict[str, int] = Field(
        default_factory=lambda: {"beginner": 1, "intermediate": 5, "advanced": 7, "expert": 10}
    )
    match_points: MatchPoints = Field(default_factory=MatchPoints)
    match_max_score: int = 100

    @field_validator("success_baseline", "success_amount_top", "success_contract", "success_min", "success_max")
    @classmethod
    def probability_range(cls, v: int) -> int:
        if not PROBABILITY_FLOOR <= v <= PROBABILITY_CEILING:
            raise ValueError(
                f"Probability must be between {PROBABILITY_FLOOR} and {PROBABILITY_CEILING}, got {v}"
            )
        return v

    def model_post_init(self, __context) -> None:
        """Validate that the probability clamp and the amount brackets are consistent."""
        if self.success_min > self.success_max:
            raise ValueError(
                f"success_min ({self.success_min}) must not exceed success_max ({self.success_max})"
            )
        bounds = [bound for bound, _ in self.success_amount_brackets]
        if bounds != sorted(bounds):
            raise ValueError(f"success_amount_brackets must be ascending, got {bounds}")


DEFAULT_HEURISTICS = Heuristics()


def load_heuristics(filepath: Optional[str] = None) -> Heuristics:
    """Load heuristic tables from file or return defaults.

    Supports JSON and YAML formats. Keys missing from the file keep their defaults.

    Raises:
        FileNotFoundError: If filepath provided but doesn't exist
        ValueError: If the file format is unsupported or values are invalid
    """
    if not filepath:
        return DEFAULT_HEURISTICS

    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Heuristics file not found: {filepath}")

    if path.suffix == ".json":
        with open(path, "r") as f:
            data = json.load(f)
    elif path.suffix in [".yaml", ".yml"]:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}. Use .json, .yaml, or .yml")

    return Heuristics(**(data or {}))
