"""Provider adapters (grant listings and historical awards)."""

from .base import BaseAdapter
from .grants_gov import GrantsGovAdapter
from .usaspending import USAspendingAdapter

__all__ = ["BaseAdapter", "GrantsGovAdapter", "USAspendingAdapter"]
