"""Fixed lookup tables used by the normalization engine.

- AGENCY_STANDARDIZATION: full agency name -> code / short name / category
- AGENCY_ALIASES: agency code -> patterns that identify it in free-form names
- NAICS_SECTORS: two-digit NAICS sector -> sector name
- STATUS_MAPPING, SET_ASIDE_TYPES, AWARD_TYPE_CODES
- CATEGORY_PATTERNS, INDUSTRY_KEYWORDS, STOP_WORDS
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class AgencyInfo:
    code: str
    short_name: str
    category: str


AGENCY_STANDARDIZATION: dict[str, AgencyInfo] = {
    "Department of Defense": AgencyInfo("DOD", "DoD", "Defense"),
    "Department of Health and Human Services": AgencyInfo("HHS", "HHS", "Health"),
    "National Science Foundation": AgencyInfo("NSF", "NSF", "Science"),
    "Department of Energy": AgencyInfo("DOE", "DOE", "Energy"),
    "Department of Education": AgencyInfo("ED", "DoEd", "Education"),
    "Environmental Protection Agency": AgencyInfo("EPA", "EPA", "Environment"),
    "National Institutes of Health": AgencyInfo("NIH", "NIH", "Health"),
    "Small Business Administration": AgencyInfo("SBA", "SBA", "Business"),
    "Department of Agriculture": AgencyInfo("USDA", "USDA", "Agriculture"),
    "Department of Transportation": AgencyInfo("DOT", "DOT", "Transportation"),
    "Department of Commerce": AgencyInfo("DOC", "DoC", "Commerce"),
    "Department of Justice": AgencyInfo("DOJ", "DOJ", "Justice"),
    "Department of Homeland Security": AgencyInfo("DHS", "DHS", "Security"),
    "General Services Administration": AgencyInfo("GSA", "GSA", "Administration"),
}

# Case-insensitive lookup; providers disagree on capitalization.
_AGENCY_BY_LOWER = {name.lower(): name for name in AGENCY_STANDARDIZATION}

# Abbreviations match as whole words ("nsf" must not match "transfer"),
# full names match as substrings.
AGENCY_ALIASES: dict[str, tuple[str, ...]] = {
    "NSF": ("nsf", "national science foundation"),
    "NIH": ("nih", "national institutes of health"),
    "DOE": ("doe", "department of energy"),
    "SBA": ("sba", "small business administration"),
    "USDA": ("usda", "department of agriculture"),
    "DOD": ("dod", "department of defense"),
    "HHS": ("hhs", "department of health and human services"),
}

_ALIAS_PATTERNS: dict[str, re.Pattern] = {
    code: re.compile("|".join(rf"\b{re.escape(alias)}\b" for alias in aliases))
    for code, aliases in AGENCY_ALIASES.items()
}


def lookup_agency(name: str) -> tuple[str, AgencyInfo | None]:
    """Return (canonical name, info) or (name unchanged, None) when unknown."""
    canonical = _AGENCY_BY_LOWER.get(name.strip().lower())
    if canonical is None:
        return name, None
    return canonical, AGENCY_STANDARDIZATION[canonical]


def matches_agency(agency_name: str, code: str) -> bool:
    """True when ``agency_name`` refers to the agency with ``code``."""
    pattern = _ALIAS_PATTERNS.get(code)
    if pattern is None or not agency_name:
        return False
    return pattern.search(agency_name.lower()) is not None


NAICS_SECTORS: dict[str, str] = {
    "11": "Agriculture, Forestry, Fishing and Hunting",
    "21": "Mining, Quarrying, and Oil and Gas Extraction",
    "22": "Utilities",
    "23": "Construction",
    "31": "Manufacturing",
    "32": "Manufacturing",
    "33": "Manufacturing",
    "42": "Wholesale Trade",
    "44": "Retail Trade",
    "45": "Retail Trade",
    "48": "Transportation and Warehousing",
    "49": "Transportation and Warehousing",
    "51": "Information",
    "52": "Finance and Insurance",
    "53": "Real Estate and Rental and Leasing",
    "54": "Professional, Scientific, and Technical Services",
    "55": "Management of Companies and Enterprises",
    "56": "Administrative and Support and Waste Management and Remediation Services",
    "61": "Educational Services",
    "62": "Health Care and Social Assistance",
    "71": "Arts, Entertainment, and Recreation",
    "72": "Accommodation and Food Services",
    "81": "Other Services (except Public Administration)",
    "92": "Public Administration",
}


def naics_sector_name(code: str) -> str | None:
    return NAICS_SECTORS.get(str(code).strip()[:2])


STATUS_MAPPING: dict[str, str] = {
    "posted": "open",
    "active": "open",
    "open": "open",
    "forecasted": "forecasted",
    "closed": "closed",
    "cancelled": "closed",
    "archived": "closed",
    "awarded": "closed",
    "inactive": "closed",
}

SET_ASIDE_TYPES: dict[str, str] = {
    "SBA": "8(a)",
    "8A": "8(a)",
    "8(A)": "8(a)",
    "HZ": "HubZone",
    "HUBZONE": "HubZone",
    "SDVOSB": "SDVOSB",
    "VOSB": "VOSB",
    "WOSB": "WOSB",
    "SDB": "Small Disadvantaged Business",
}

# USAspending award type codes
AWARD_TYPE_CODES: dict[str, tuple[str, ...]] = {
    "contract": ("A", "B", "C", "D"),
    "grant": ("02", "03", "04", "05"),
}

_AWARD_CODE_TO_TYPE = {code: kind for kind, codes in AWARD_TYPE_CODES.items() for code in codes}


def award_code_type(code: str) -> str | None:
    return _AWARD_CODE_TO_TYPE.get(str(code).strip().upper())


CATEGORY_PATTERNS: tuple[tuple[str, re.Pattern], ...] = tuple(
    (name, re.compile(pattern, re.IGNORECASE))
    for name, pattern in (
        ("Artificial Intelligence & Machine Learning",
         r"artificial intelligence|machine learning|\bai\b|\bml\b|data science"),
        ("Cybersecurity", r"cybersecurity|cyber security|information security|data protection"),
        ("Information Technology", r"software|technology|digital|\bit\b|information technology"),
        ("Research & Development", r"research|study|investigation|scientific|academic"),
        ("Healthcare & Medical", r"health|medical|healthcare|clinical|biomedical"),
        ("Education & Training", r"education|training|learning|academic|school"),
        ("Infrastructure & Construction", r"infrastructure|construction|building|facility|renovation"),
        ("Environmental & Sustainability", r"environment|environmental|climate|sustainability|green energy"),
        ("Transportation", r"transportation|transit|highway|aviation|maritime"),
    )
)

INDUSTRY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Technology": ("software", "machine learning", "cybersecurity", "cloud", "data"),
    "Healthcare": ("medical", "health", "clinical", "biomedical", "pharmaceutical"),
    "Research": ("research", "study", "scientific", "innovation", "development"),
    "Education": ("education", "training", "learning", "academic", "curriculum"),
    "Infrastructure": ("construction", "infrastructure", "facility", "building"),
    "Environmental": ("environment", "climate", "sustainability", "green", "renewable"),
}

SMALL_BUSINESS_PATTERN = re.compile(r"small business|\bsba\b|8\(a\)|hubzone|sdvosb|wosb", re.IGNORECASE)

# Words of four or more letters that carry no search meaning.
STOP_WORDS = frozenset({
    "that", "this", "with", "from", "will", "have", "been", "were", "their",
    "which", "these", "those", "into", "such", "also", "other", "more",
    "than", "they", "them", "each", "must", "should", "would", "could",
})

MAX_KEYWORDS = 10
