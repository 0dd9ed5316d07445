"""Funding opportunity aggregation, normalization, caching and intelligence."""

__version__ = "0.1.0"
