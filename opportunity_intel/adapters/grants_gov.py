"""Grants.gov API adapter - POST /v1/api/search2 and /v1/api/fetchOpportunity."""

import logging
from typing import Optional

from ..errors import ProviderLogicError
from ..models import ProviderPage, SearchParams
from .base import BaseAdapter

logger = logging.getLogger(__name__)

DEFAULT_STATUSES = "forecasted|posted"

# Canonical status -> Grants.gov oppStatuses value
STATUS_FILTERS = {
    "open": "posted",
    "posted": "posted",
    "forecasted": "forecasted",
    "closed": "closed",
    "archived": "archived",
}


class GrantsGovAdapter(BaseAdapter):
    """Adapter for the Grants.gov Search API v1.

    Requests carry an attribution User-Agent per the Grants.gov terms of use.
    Every response is an envelope ``{errorcode, msg, data}``; a non-zero
    errorcode or a missing ``data`` is a logic error, not a transport error.
    """

    source_kind = "grants.gov"
    id_prefix = "grants-gov-"

    API_URL = "https://api.grants.gov/v1/api"

    def __init__(self, base_url: str = API_URL, attribution: str = "Opportunity Intel", **kwargs):
        super().__init__(base_url, **kwargs)
        self.attribution = attribution

    @property
    def source_name(self) -> str:
        return "grants_gov"

    def headers(self) -> dict:
        headers = super().headers()
        headers["User-Agent"] = self.attribution
        return headers

    def build_search_payload(self, params: SearchParams, rows: int, offset: int = 0) -> dict:
        statuses = [STATUS_FILTERS[s.lower()] for s in params.status if s.lower() in STATUS_FILTERS]
        payload = {
            "keyword": params.query,
            "rows": rows,
            "startRecordNum": offset,
            "oppStatuses": "|".join(dict.fromkeys(statuses)) or DEFAULT_STATUSES,
        }
        if params.agencies:
            payload["agencies"] = "|".join(params.agencies)
        return payload

    async def search(self, params: SearchParams, rows: int, offset: int = 0) -> ProviderPage:
        payload = self.build_search_payload(params, rows, offset)
        body = await self._request("POST", f"{self.base_url}/search2", json=payload)
        inner = self._unwrap(body)

        hits = inner.get("oppHits") or []
        hit_count = inner.get("hitCount")
        if not isinstance(hit_count, int):
            hit_count = offset + len(hits)
        logger.info("Grants.gov returned %d of %d opportunities", len(hits), hit_count)
        return ProviderPage(
            records=hits,
            total_count=hit_count,
            has_more=offset + len(hits) < hit_count,
        )

    async def get_details(self, native_id: str) -> Optional[dict]:
        opportunity_id = int(native_id) if str(native_id).isdigit() else native_id
        body = await self._request(
            "POST", f"{self.base_url}/fetchOpportunity", json={"opportunityId": opportunity_id}
        )
        if isinstance(body, dict) and body.get("errorcode", 0) == 0 and not body.get("data"):
            return None
        return self._unwrap(body)

    def _unwrap(self, body) -> dict:
        if not isinstance(body, dict):
            raise ProviderLogicError(self.source_name, "response is not a JSON object")
        errorcode = body.get("errorcode", 0)
        if errorcode not in (0, "0", None):
            raise ProviderLogicError(
                self.source_name,
                f"errorcode={errorcode} msg={body.get('msg', '')}",
                error_code=int(errorcode) if str(errorcode).lstrip("-").isdigit() else None,
            )
        data = body.get("data")
        if not isinstance(data, dict):
            raise ProviderLogicError(self.source_name, "response carries no data")
        return data
