"""Search request / response models shared by adapters and the aggregation service."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .opportunity import Opportunity

SortKey = Literal["relevance", "deadline", "amount", "posted_date"]
SortOrder = Literal["asc", "desc"]


class SearchParams(BaseModel):
    """Unified search parameters.

    ``page`` and ``limit`` are validated here; an out-of-range value raises
    ``pydantic.ValidationError`` to the caller.
    """

    model_config = ConfigDict(frozen=True)

    query: str = ""
    type: list[str] = Field(default_factory=list)
    agencies: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    industry_categories: list[str] = Field(default_factory=list, description="NAICS codes")
    business_size: list[str] = Field(default_factory=list)
    state: list[str] = Field(default_factory=list)
    status: list[str] = Field(default_factory=list)
    amount_min: Optional[float] = Field(None, ge=0)
    amount_max: Optional[float] = Field(None, ge=0)
    posted_after: Optional[str] = Field(None, description="YYYY-MM-DD")
    posted_before: Optional[str] = Field(None, description="YYYY-MM-DD")
    deadline_after: Optional[str] = Field(None, description="YYYY-MM-DD")
    deadline_before: Optional[str] = Field(None, description="YYYY-MM-DD")
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=500)
    sort_by: SortKey = "relevance"
    sort_order: SortOrder = "desc"

    def window_payload(self) -> dict[str, Any]:
        """Canonical dict for the merged-results cache key.

        Defaults included, None dropped. Paging is left out so every page of
        one search reads the same merged list.
        """
        return self.model_dump(mode="json", exclude_none=True, exclude={"page", "limit"})


class SearchFacets(BaseModel):
    """Value counts over a merged result set, most common first."""

    agencies: dict[str, int] = Field(default_factory=dict)
    types: dict[str, int] = Field(default_factory=dict)
    categories: dict[str, int] = Field(default_factory=dict)
    industries: dict[str, int] = Field(default_factory=dict)
    amounts: dict[str, int] = Field(default_factory=dict, description="Counts per amount band")
    set_asides: dict[str, int] = Field(default_factory=dict)
    deadlines: dict[str, int] = Field(default_factory=dict, description="Counts per days-left band")
    locations: dict[str, int] = Field(default_factory=dict, description="Place-of-performance states")


class SearchResponse(BaseModel):
    """One page of merged, sorted opportunities.

    ``total_count`` counts the records the merge window actually holds, so
    every page up to ``total_pages`` is reachable. ``total_available`` is the
    sum of what providers reported and may be larger.
    """

    opportunities: list[Opportunity] = Field(default_factory=list)
    total_count: int = 0
    total_available: int = 0
    page: int = 1
    limit: int = 20
    total_pages: int = 0
    has_next: bool = False
    has_previous: bool = False
    facets: SearchFacets = Field(default_factory=SearchFacets)
    search_params: SearchParams = Field(default_factory=SearchParams)


class ProviderPage(BaseModel):
    """Provider-native records returned by one adapter search call."""

    records: list[dict[str, Any]] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False
