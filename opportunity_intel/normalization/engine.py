"""Normalization engine - provider-native records to the canonical Opportunity.

Three paths, chosen by ``source_kind``:
- ``grants.gov``: Grants.gov search hits and fetchOpportunity detail payloads
- ``usaspending.gov``: spending_by_award rows and award detail payloads
- anything else: generic state/local feeds (``state`` -> state jurisdiction)

Every path is followed by the same enrichment pass (industry categories,
keywords, business size, search score). ``standardize`` never raises: a
record that breaks a path degrades to a minimal sentinel Opportunity.
"""

import hashlib
import logging
import math
import re
from datetime import date, datetime
from typing import Any, Callable, Optional

from ..cache.ttl import canonical_json
from ..models import Opportunity
from .tables import (
    CATEGORY_PATTERNS,
    INDUSTRY_KEYWORDS,
    MAX_KEYWORDS,
    SET_ASIDE_TYPES,
    SMALL_BUSINESS_PATTERN,
    STATUS_MAPPING,
    STOP_WORDS,
    award_code_type,
    lookup_agency,
    naics_sector_name,
)

logger = logging.getLogger(__name__)

GRANTS_GOV = "grants.gov"
USASPENDING = "usaspending.gov"

SOURCE_LABELS = {GRANTS_GOV: "Grants.gov", USASPENDING: "USAspending.gov"}
ID_PREFIXES = {GRANTS_GOV: "grants-gov-", USASPENDING: "usaspending-"}

GRANTS_GOV_LINK = "https://grants.gov/web/grants/view-opportunity.html?oppId={}"
USASPENDING_LINK = "https://usaspending.gov/award/{}"

LARGE_BUSINESS_AMOUNT = 10_000_000
SEARCH_SCORE_BASE = 100
SEARCH_SCORE_CAP = 200

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^A-Za-z0-9\s\-.,!?()]")
_NON_AMOUNT = re.compile(r"[^0-9.]")
_NON_LETTER = re.compile(r"[^a-z]")
_TRAILING_TZ = re.compile(r"\s+[A-Z]{2,5}$")

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d, %Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M:%S %p",
)


# --- Field-level helpers (pure, never raise) ---

def clean_text(value: Any) -> str:
    """Collapse whitespace, drop characters outside the allowed set, trim."""
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    text = _WHITESPACE.sub(" ", text)
    text = _DISALLOWED.sub("", text)
    return text.strip()


def standardize_date(value: Any) -> str:
    """Return ``YYYY-MM-DD`` or ``""`` when empty or unparsable."""
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return ""
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass
    text = _TRAILING_TZ.sub("", text)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return ""


def standardize_status(value: Any) -> str:
    if not value:
        return "open"
    status = str(value).strip().lower()
    return STATUS_MAPPING.get(status, status)


def extract_amount(value: Any) -> float:
    """Numbers are used directly; strings keep only digits and dots. Failures -> 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        try:
            amount = float(_NON_AMOUNT.sub("", str(value)))
        except ValueError:
            return 0.0
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        return 0.0
    return amount


def extract_categories(title: str, description: str) -> list[str]:
    content = f"{title} {description}"
    return [name for name, pattern in CATEGORY_PATTERNS if pattern.search(content)]


def standardize_set_aside(value: Any) -> str:
    if not value:
        return ""
    text = str(value).strip()
    return SET_ASIDE_TYPES.get(text.upper(), text)


def infer_type(*values: Any) -> str:
    text = " ".join(str(v) for v in values if v).lower()
    if "grant" in text or "funding" in text:
        return "grant"
    if "contract" in text or "procurement" in text:
        return "contract"
    if "cooperative" in text:
        return "cooperative_agreement"
    return "other"


def award_type(value: Any) -> str:
    """Map a USAspending award type (code or description) to an opportunity type."""
    if not value:
        return "contract"
    by_code = award_code_type(str(value))
    if by_code:
        return by_code
    text = str(value).lower()
    if "cooperative" in text:
        return "cooperative_agreement"
    if "grant" in text or "assistance" in text:
        return "grant"
    if "contract" in text or "procurement" in text or "order" in text:
        return "contract"
    return "other"


def content_hash(raw: Any) -> str:
    """Deterministic 12-hex id for records that carry no native id."""
    try:
        payload = canonical_json(raw)
    except (TypeError, ValueError):
        payload = repr(raw)
    return hashlib.sha256(payload.encode()).hexdigest()[:12]


def _unique(items) -> list:
    seen = []
    for item in items:
        if item and item not in seen:
            seen.append(item)
    return seen


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, "", []):
            return value
    return None


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v not in (None, "")]
    return [part.strip() for part in str(value).split(",") if part.strip()]


class NormalizationEngine:
    """Converts provider-native records into Opportunity instances.

    ``today`` is injectable so the recency bonus of the search score is
    reproducible in tests.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    def standardize(self, raw: Any, source_kind: str) -> Opportunity:
        kind = (source_kind or "").strip().lower() or "generic"
        try:
            if not isinstance(raw, dict):
                raise TypeError(f"expected a mapping, got {type(raw).__name__}")
            if kind == GRANTS_GOV:
                fields = self._grants_gov_fields(raw)
            elif kind == USASPENDING:
                fields = self._usaspending_fields(raw)
            else:
                fields = self._generic_fields(raw, kind)
            return self._enrich(fields)
        except Exception as exc:
            logger.warning("normalize_failed source=%s error=%s", kind, exc)
            return self._sentinel(raw, kind)

    def standardize_many(self, records: list, source_kind: str) -> list[Opportunity]:
        return [self.standardize(raw, source_kind) for raw in records]

    # --- Provider paths ---

    def _grants_gov_fields(self, raw: dict) -> dict:
        # Detail payloads nest most fields under "synopsis" (or "forecast").
        synopsis = raw.get("synopsis") or raw.get("forecast") or {}
        if not isinstance(synopsis, dict):
            synopsis = {"synopsisDesc": synopsis}

        native_id = _first(raw, "id", "opportunityId") or content_hash(raw)
        title = clean_text(_first(raw, "title", "opportunityTitle"))
        description = clean_text(
            _first(synopsis, "synopsisDesc", "description", "forecastDesc")
            or _first(raw, "description")
        )
        agency_name, info = lookup_agency(
            clean_text(
                _first(raw, "agencyName", "agency", "owningAgencyName")
                or _first(synopsis, "agencyName")
            )
        )
        cfdas = raw.get("alnist") or raw.get("cfdaList") or [
            c.get("cfdaNumber") for c in raw.get("cfdas") or [] if isinstance(c, dict)
        ]

        return {
            "id": f"grants-gov-{native_id}",
            "source_api": SOURCE_LABELS[GRANTS_GOV],
            "opportunity_number": str(_first(raw, "number", "opportunityNumber") or ""),
            "title": title,
            "agency": agency_name,
            "agency_code": info.code if info else str(_first(raw, "agencyCode", "owningAgencyCode") or ""),
            "description": description,
            "eligibility_criteria": clean_text(
                _first(synopsis, "applicantEligibilityDesc", "eligibleApplicants")
            ),
            "link_to_apply": GRANTS_GOV_LINK.format(native_id),
            "deadline": standardize_date(
                _first(raw, "closeDate") or _first(synopsis, "responseDate", "closeDate")
            ),
            "posted_date": standardize_date(
                _first(raw, "openDate") or _first(synopsis, "postingDate", "postDate")
            ),
            "amount": extract_amount(
                _first(synopsis, "awardCeiling", "estimatedFunding") or _first(raw, "awardCeiling")
            ),
            "type": "grant",
            "opportunity_status": standardize_status(_first(raw, "oppStatus", "opportunityStatus")),
            "jurisdiction": "federal",
            "cfda_numbers": _unique(_as_list(cfdas)),
            "categories": extract_categories(title, description),
            "industry_categories": [],
        }

    def _usaspending_fields(self, raw: dict) -> dict:
        award = raw.get("Award") if isinstance(raw.get("Award"), dict) else raw

        native_id = _first(
            award, "generated_unique_award_id", "generated_internal_id",
            "award_id", "Award ID", "id", "piid",
        ) or content_hash(raw)
        description = clean_text(
            _first(award, "description", "Description", "award_description") or "Federal Award"
        )

        agency_raw = _first(award, "awarding_agency_name", "Awarding Agency", "agency_name")
        if agency_raw is None and isinstance(award.get("awarding_agency"), dict):
            toptier = award["awarding_agency"].get("toptier_agency") or {}
            agency_raw = toptier.get("name")
        agency_name, info = lookup_agency(clean_text(agency_raw or "Federal Agency"))

        naics = _first(award, "naics_code", "NAICS Code", "naics")
        if isinstance(naics, dict):
            naics = naics.get("code")
        if naics is None and isinstance(award.get("latest_transaction_contract_data"), dict):
            naics = award["latest_transaction_contract_data"].get("naics")
        naics_codes = _as_list(naics)

        period = award.get("period_of_performance") if isinstance(award.get("period_of_performance"), dict) else {}
        place = award.get("place_of_performance") if isinstance(award.get("place_of_performance"), dict) else {}

        return {
            "id": f"usaspending-{native_id}",
            "source_api": SOURCE_LABELS[USASPENDING],
            "opportunity_number": str(
                _first(award, "award_id_piid", "piid", "Award ID", "fain") or native_id
            ),
            "title": description,
            "agency": agency_name,
            "agency_code": info.code if info else "",
            "description": description,
            "eligibility_criteria": "See award documentation for specific eligibility requirements",
            "link_to_apply": USASPENDING_LINK.format(native_id),
            "deadline": "",
            "posted_date": standardize_date(
                _first(award, "award_latest_action_date", "action_date", "Last Modified Date",
                       "date_signed", "Start Date")
            ),
            "performance_start": standardize_date(
                _first(award, "period_of_performance_start_date", "Start Date")
                or _first(period, "start_date")
            ),
            "performance_end": standardize_date(
                _first(award, "period_of_performance_current_end_date", "End Date")
                or _first(period, "end_date")
            ),
            "amount": extract_amount(
                _first(award, "award_amount", "Award Amount", "total_obligation", "obligation_amount")
            ),
            "type": award_type(_first(award, "award_type", "Award Type", "type_description", "type", "category",
                                     "award_group")),
            "opportunity_status": "closed",
            "jurisdiction": "federal",
            "naics_codes": naics_codes,
            "place_of_performance_state": clean_text(
                _first(award, "place_of_performance_state", "Place of Performance State Code")
                or _first(place, "state_code", "state_name")
            ),
            "place_of_performance_city": clean_text(
                _first(award, "place_of_performance_city") or _first(place, "city_name")
            ),
            "categories": extract_categories("", description),
            "industry_categories": _unique(naics_sector_name(code) or code for code in naics_codes),
        }

    def _generic_fields(self, raw: dict, kind: str) -> dict:
        native_id = _first(raw, "id") or content_hash(raw)
        title = clean_text(_first(raw, "title", "name"))
        description = clean_text(_first(raw, "description"))
        agency_name, info = lookup_agency(clean_text(_first(raw, "agency", "department") or ""))
        naics_codes = _as_list(_first(raw, "naics_codes", "naics"))

        return {
            "id": f"{kind}-{native_id}",
            "source_api": kind,
            "opportunity_number": str(_first(raw, "number", "id") or ""),
            "title": title,
            "agency": agency_name,
            "agency_code": info.code if info else "",
            "description": description,
            "eligibility_criteria": clean_text(_first(raw, "eligibility")),
            "link_to_apply": str(_first(raw, "link", "url") or ""),
            "deadline": standardize_date(_first(raw, "deadline", "dueDate", "closeDate")),
            "posted_date": standardize_date(_first(raw, "posted", "publishDate")),
            "amount": extract_amount(_first(raw, "amount", "value", "estimatedValue")),
            "type": infer_type(_first(raw, "type"), _first(raw, "category")),
            "opportunity_status": standardize_status(_first(raw, "status") or "active"),
            "jurisdiction": "state" if kind == "state" else "local",
            "set_aside_type": standardize_set_aside(_first(raw, "setAside", "set_aside")),
            "naics_codes": naics_codes,
            "place_of_performance_state": clean_text(_first(raw, "state")),
            "place_of_performance_city": clean_text(_first(raw, "city")),
            "categories": extract_categories(title, description),
            "industry_categories": _unique(naics_sector_name(code) or code for code in naics_codes),
        }

    def _sentinel(self, raw: Any, kind: str) -> Opportunity:
        prefix = ID_PREFIXES.get(kind, f"{kind}-")
        return Opportunity(
            id=f"{prefix}{content_hash(raw)}",
            source_api=SOURCE_LABELS.get(kind, kind),
            business_size=["any-size"],
            search_score=SEARCH_SCORE_BASE,
        )

    # --- Enrichment ---

    def _enrich(self, fields: dict) -> Opportunity:
        fields["categories"] = _unique(fields.get("categories", []))
        fields["industry_categories"] = self._industry_categories(fields)
        fields["keywords"] = self._keywords(fields)
        fields["business_size"] = self._business_size(fields)
        fields["search_score"] = self._search_score(fields)
        return Opportunity(**fields)

    def _industry_categories(self, fields: dict) -> list[str]:
        content = f"{fields.get('title', '')} {fields.get('description', '')}".lower()
        inferred = [
            industry for industry, words in INDUSTRY_KEYWORDS.items()
            if any(word in content for word in words)
        ]
        return _unique(list(fields.get("industry_categories", [])) + inferred)

    def _keywords(self, fields: dict) -> list[str]:
        text = f"{fields.get('title', '')} {fields.get('description', '')}".lower()
        words = _unique(
            word for word in text.split()
            if len(word) > 3 and word.isascii() and word.isalpha() and word not in STOP_WORDS
        )[:MAX_KEYWORDS]
        agency = _NON_LETTER.sub("", fields.get("agency", "").lower())
        return _unique(words + [agency])

    def _business_size(self, fields: dict) -> list[str]:
        sizes = ["any-size"]
        if fields.get("set_aside_type") or SMALL_BUSINESS_PATTERN.search(fields.get("description", "")):
            sizes.append("small-business")
        if fields.get("amount", 0) > LARGE_BUSINESS_AMOUNT:
            sizes.append("large-business")
        return sizes

    def _search_score(self, fields: dict) -> float:
        amount = fields.get("amount", 0)
        score = SEARCH_SCORE_BASE
        if len(fields.get("description", "")) > 100:
            score += 10
        if amount > 0:
            score += 5
        if fields.get("deadline"):
            score += 5
        if fields.get("categories"):
            score += 10
        if fields.get("industry_categories"):
            score += 5

        age = self._days_since(fields.get("posted_date", ""))
        if age is not None:
            if age < 30:
                score += 15
            elif age < 90:
                score += 10

        if amount > 1_000_000:
            score += 20
        elif amount > 100_000:
            score += 10
        return min(score, SEARCH_SCORE_CAP)

    def _days_since(self, iso_date: str) -> Optional[int]:
        if not iso_date:
            return None
        return (self._today() - date.fromisoformat(iso_date)).days
