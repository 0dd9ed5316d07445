"""Pytest configuration and fixtures."""

import asyncio
from datetime import date
from typing import Optional

import pytest

from opportunity_intel.adapters import BaseAdapter
from opportunity_intel.cache import CacheStore
from opportunity_intel.errors import ProviderTransportError
from opportunity_intel.models import ProviderPage, SearchParams
from opportunity_intel.normalization import NormalizationEngine

TODAY = date(2025, 6, 1)


class FakeClock:
    """Manually advanced clock for cache freshness tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAdapter(BaseAdapter):
    """In-memory provider: generic records, optional failure or delay."""

    def __init__(
        self,
        name: str,
        records: Optional[list] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        total_count: Optional[int] = None,
        source_kind: str = "state",
        id_prefix: Optional[str] = None,
    ):
        super().__init__(base_url=f"https://{name}.example")
        self._name = name
        self.records = records or []
        self.error = error
        self.delay = delay
        self.total_count = total_count
        self.source_kind = source_kind
        self.id_prefix = id_prefix if id_prefix is not None else f"{source_kind}-"
        self.search_calls: list[tuple[SearchParams, int, int]] = []
        self.detail_calls: list[str] = []

    @property
    def source_name(self) -> str:
        return self._name

    async def search(self, params: SearchParams, rows: int, offset: int = 0) -> ProviderPage:
        self.search_calls.append((params, rows, offset))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        records = self.records
        # Providers honour amount ordering server-side; other orders come back as stored.
        if params.sort_by == "amount":
            records = sorted(records, key=lambda r: r.get("amount", 0), reverse=params.sort_order == "desc")
        page = [dict(r) for r in records[offset:offset + rows]]
        total = self.total_count if self.total_count is not None else len(self.records)
        return ProviderPage(records=page, total_count=total, has_more=offset + len(page) < total)

    async def get_details(self, native_id: str) -> Optional[dict]:
        self.detail_calls.append(native_id)
        if self.error:
            raise self.error
        for record in self.records:
            if str(record.get("id")) == native_id:
                return dict(record)
        return None


class FakeAwards(FakeAdapter):
    """USAspending stand-in: filters by amount band like the real API, counts awards."""

    def __init__(self, records: Optional[list] = None, error: Optional[Exception] = None):
        super().__init__(
            "usaspending",
            records=records,
            error=error,
            source_kind="usaspending.gov",
            id_prefix="usaspending-",
        )
        self.count_calls = 0

    async def search(self, params: SearchParams, rows: int, offset: int = 0) -> ProviderPage:
        page = await super().search(params, rows, offset)
        low = params.amount_min if params.amount_min is not None else 0
        high = params.amount_max if params.amount_max is not None else float("inf")
        records = [r for r in page.records if low <= r.get("Award Amount", 0) <= high]
        return ProviderPage(records=records, total_count=len(records))

    async def count_awards(self, params: SearchParams, limit: int = 100) -> int:
        self.count_calls += 1
        if self.error:
            raise self.error
        return min(len(self.records), limit)


def award(award_id, amount, posted, agency="National Science Foundation", description="Research award"):
    """One spending_by_award row."""
    return {
        "generated_internal_id": award_id,
        "Description": description,
        "Award Amount": amount,
        "Awarding Agency": agency,
        "Start Date": posted,
    }


def make_records(prefix: str, count: int, **overrides) -> list[dict]:
    """Generic-provider records with distinct ids, amounts and deadlines."""
    records = []
    for i in range(count):
        record = {
            "id": f"{prefix}{i}",
            "title": f"Community Research Program {prefix}{i}",
            "agency": "Department of Energy",
            "description": "Funding for applied research in renewable energy systems.",
            "amount": 10_000 * (i + 1),
            "deadline": f"2025-07-{(i % 28) + 1:02d}",
            "posted": "2025-05-01",
            "status": "posted",
            "type": "grant",
        }
        record.update(overrides)
        records.append(record)
    return records


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(clock=clock)


@pytest.fixture
def normalizer():
    return NormalizationEngine(today=lambda: TODAY)


@pytest.fixture
def transport_error():
    return ProviderTransportError("broken", "HTTP 503", status_code=503)


@pytest.fixture
def sample_grants_gov_response():
    """Sample Grants.gov search2 response."""
    return {
        "errorcode": 0,
        "msg": "Webservice Succeeds",
        "token": "",
        "data": {
            "hitCount": 2,
            "startRecord": 0,
            "oppHits": [
                {
                    "id": "358121",
                    "number": "NSF-25-001",
                    "title": "CSSI: Cyberinfrastructure for Sustained Scientific Innovation",
                    "agencyCode": "NSF",
                    "agencyName": "National Science Foundation",
                    "openDate": "05/14/2025",
                    "closeDate": "09/02/2025",
                    "oppStatus": "posted",
                    "docType": "synopsis",
                    "alnist": ["47.070"],
                },
                {
                    "id": "335512",
                    "number": "HHS-2025-ACF-OCS-0001",
                    "title": "Community Services Block Grant",
                    "agencyCode": "HHS-ACF",
                    "agencyName": "Administration for Children and Families",
                    "openDate": "04/01/2025",
                    "closeDate": "",
                    "oppStatus": "forecasted",
                    "docType": "forecast",
                    "alnist": ["93.569"],
                },
            ],
        },
    }


@pytest.fixture
def sample_grants_gov_detail():
    """Sample Grants.gov fetchOpportunity response."""
    return {
        "errorcode": 0,
        "msg": "Webservice Succeeds",
        "data": {
            "id": 358121,
            "opportunityNumber": "NSF-25-001",
            "opportunityTitle": "CSSI: Cyberinfrastructure for Sustained Scientific Innovation",
            "owningAgencyCode": "NSF",
            "synopsis": {
                "agencyName": "National Science Foundation",
                "synopsisDesc": "Supports research and development of robust, reliable cyberinfrastructure "
                                "for scientific discovery across all disciplines funded by the foundation.",
                "applicantEligibilityDesc": "Institutions of higher education and non-profit research organizations.",
                "awardCeiling": "600000",
                "responseDate": "Sep 02, 2025 12:00:00 AM EDT",
                "postingDate": "May 14, 2025 12:00:00 AM EDT",
            },
            "cfdas": [{"cfdaNumber": "47.070"}],
        },
    }


@pytest.fixture
def sample_usaspending_response():
    """Sample USAspending spending_by_award response."""
    return {
        "limit": 100,
        "results": [
            {
                "internal_id": 1001,
                "Award ID": "N0001925C0001",
                "generated_internal_id": "CONT_AWD_N0001925C0001_9700",
                "Recipient Name": "ACME RESEARCH CORP",
                "Description": "Research and development of autonomous maritime systems",
                "Award Amount": 2_400_000.0,
                "Awarding Agency": "Department of Defense",
                "Start Date": "2025-02-10",
                "End Date": "2027-02-09",
                "NAICS": {"code": "541715", "description": "R&D in physical sciences"},
            },
            {
                "internal_id": 1002,
                "Award ID": "47QTCA25D0001",
                "generated_internal_id": "CONT_AWD_47QTCA25D0001_4732",
                "Recipient Name": "CLOUDWORKS LLC",
                "Description": "Cloud software migration services",
                "Award Amount": 350_000.0,
                "Awarding Agency": "General Services Administration",
                "Start Date": "2025-03-15",
                "End Date": "2026-03-14",
            },
        ],
        "page_metadata": {"page": 1, "hasNext": False},
        "messages": [],
    }
