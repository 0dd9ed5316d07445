"""USAspending.gov API adapter - historical award data.

Search: POST /api/v2/search/spending_by_award/
Detail: GET  /api/v2/awards/{id}/
"""

import logging
import re
from datetime import date
from typing import Optional

from ..errors import ProviderLogicError
from ..models import ProviderPage, SearchParams
from ..normalization.tables import AWARD_TYPE_CODES
from .base import BaseAdapter

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
EARLIEST_START_DATE = "2007-10-01"

_NAICS_CODE = re.compile(r"^\d{2,6}$")

# Opportunity type -> award group; the API rejects mixing groups in one request.
TYPE_TO_GROUP = {
    "contract": "contract",
    "procurement": "contract",
    "grant": "grant",
    "cooperative_agreement": "grant",
}
DEFAULT_GROUP = "contract"

SORT_FIELDS = {
    "amount": "Award Amount",
    "deadline": "Start Date",
    "posted_date": "Start Date",
    "relevance": "Award Amount",
}

SEARCH_FIELDS = [
    "Award ID",
    "generated_internal_id",
    "Recipient Name",
    "Description",
    "Award Amount",
    "Awarding Agency",
    "Awarding Sub Agency",
    "Award Type",
    "Start Date",
    "End Date",
    "NAICS",
    "Place of Performance State Code",
]


class USAspendingAdapter(BaseAdapter):
    """Adapter for the USAspending.gov v2 API (awards are historical, always closed)."""

    source_kind = "usaspending.gov"
    id_prefix = "usaspending-"

    API_URL = "https://api.usaspending.gov/api/v2"

    def __init__(self, base_url: str = API_URL, today=date.today, **kwargs):
        super().__init__(base_url, **kwargs)
        self._today = today

    @property
    def source_name(self) -> str:
        return "usaspending"

    @staticmethod
    def award_group(params: SearchParams) -> str:
        for kind in params.type:
            group = TYPE_TO_GROUP.get(kind.lower())
            if group:
                return group
        return DEFAULT_GROUP

    def build_filters(self, params: SearchParams) -> dict:
        filters: dict = {"award_type_codes": list(AWARD_TYPE_CODES[self.award_group(params)])}

        if params.posted_after or params.posted_before:
            filters["time_period"] = [{
                "start_date": params.posted_after or EARLIEST_START_DATE,
                "end_date": params.posted_before or self._today().isoformat(),
            }]
        if params.agencies:
            filters["agencies"] = [
                {"type": "awarding", "tier": "toptier", "name": agency} for agency in params.agencies
            ]
        if params.amount_min is not None or params.amount_max is not None:
            bounds = {}
            if params.amount_min is not None:
                bounds["lower_bound"] = params.amount_min
            if params.amount_max is not None:
                bounds["upper_bound"] = params.amount_max
            filters["award_amounts"] = [bounds]
        naics = [code for code in params.industry_categories if _NAICS_CODE.match(code)]
        if naics:
            filters["naics_codes"] = naics
        if params.state:
            filters["place_of_performance_locations"] = [
                {"country": "USA", "state": state} for state in params.state
            ]
        if params.query:
            filters["keywords"] = [params.query]
        return filters

    def build_search_payload(self, params: SearchParams, page: int, limit: int) -> dict:
        return {
            "filters": self.build_filters(params),
            "fields": SEARCH_FIELDS,
            "page": page,
            "limit": limit,
            "sort": SORT_FIELDS.get(params.sort_by, "Award Amount"),
            "order": params.sort_order,
        }

    async def search(self, params: SearchParams, rows: int, offset: int = 0) -> ProviderPage:
        """Page through spending_by_award until ``rows`` records or no next page."""
        url = f"{self.base_url}/search/spending_by_award/"
        group = self.award_group(params)
        page_size = max(1, min(rows, MAX_PAGE_SIZE))
        page = offset // page_size + 1
        skip = offset % page_size

        records: list[dict] = []
        total = None
        has_more = False
        while len(records) < rows:
            body = await self._request(
                "POST", url, json=self.build_search_payload(params, page, page_size)
            )
            if not isinstance(body, dict) or not isinstance(body.get("results"), list):
                raise ProviderLogicError(self.source_name, "response carries no results")

            meta = body.get("page_metadata") or {}
            if total is None and isinstance(meta.get("count"), int):
                total = meta["count"]
            results = body["results"][skip:]
            skip = 0
            for row in results:
                if isinstance(row, dict):
                    row.setdefault("award_group", group)
                    records.append(row)
            has_more = bool(meta.get("hasNext", meta.get("next")))
            if not has_more or not results:
                break
            page += 1

        if len(records) > rows:
            records = records[:rows]
            has_more = True
        logger.info("USAspending returned %d awards (page_size=%d)", len(records), page_size)
        return ProviderPage(
            records=records,
            total_count=total if total is not None else offset + len(records),
            has_more=has_more,
        )

    async def get_details(self, native_id: str) -> Optional[dict]:
        body = await self._request("GET", f"{self.base_url}/awards/{native_id}/", not_found_ok=True)
        if body is None:
            return None
        if not isinstance(body, dict):
            raise ProviderLogicError(self.source_name, "award detail is not a JSON object")
        return body

    async def count_awards(self, params: SearchParams, limit: int = MAX_PAGE_SIZE) -> int:
        """Number of awards matching ``params`` (one page, capped at ``limit``)."""
        page = await self.search(params, rows=limit)
        return max(page.total_count, len(page.records))
