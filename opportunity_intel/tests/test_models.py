"""Tests for the canonical Opportunity record."""

import pytest
from pydantic import ValidationError

from opportunity_intel.models import Opportunity

DATE_FIELDS = ["deadline", "posted_date", "performance_start", "performance_end"]


def make(**fields) -> Opportunity:
    return Opportunity(id="grants-gov-1", source_api="Grants.gov", **fields)


# ---------------------------------------------------------------------------
# Date fields
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("field", DATE_FIELDS)
@pytest.mark.parametrize("value", ["", "2025-07-01", "2024-02-29"])
def test_accepts_iso_date_or_empty(field, value):
    assert getattr(make(**{field: value}), field) == value


@pytest.mark.parametrize("field", DATE_FIELDS)
@pytest.mark.parametrize("value", [
    "07/01/2025",
    "20250701",
    "2025-7-1",
    "2025-07-01T00:00:00",
    "2025-13-01",
    "2025-02-30",
    "soon",
])
def test_rejects_other_date_shapes(field, value):
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        make(**{field: value})


def test_defaults_are_empty_dates():
    opp = make()
    assert [getattr(opp, field) for field in DATE_FIELDS] == ["", "", "", ""]


# ---------------------------------------------------------------------------
# Amount
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw,expected", [(-5, 0.0), (0, 0.0), (1250.5, 1250.5)])
def test_amount_is_never_negative(raw, expected):
    assert make(amount=raw).amount == expected
