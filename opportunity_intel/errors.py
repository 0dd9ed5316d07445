"""Exception hierarchy for provider calls and configuration."""

from typing import Optional


class OpportunityIntelError(Exception):
    """Base class for all package errors."""


class ProviderError(OpportunityIntelError):
    """A data provider call failed."""

    def __init__(self, source: str, message: str):
        super().__init__(f"[{source}] {message}")
        self.source = source


class ProviderTransportError(ProviderError):
    """Network failure, timeout, non-2xx status or undecodable body. Retried."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        super().__init__(source, message)
        self.status_code = status_code


class ProviderLogicError(ProviderError):
    """2xx response carrying a provider error code or no data. Not retried."""

    def __init__(self, source: str, message: str, error_code: Optional[int] = None):
        super().__init__(source, message)
        self.error_code = error_code


class ConfigError(OpportunityIntelError, ValueError):
    """Invalid or missing configuration at startup."""
