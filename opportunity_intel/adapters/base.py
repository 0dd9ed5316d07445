"""Base adapter interface for opportunity data providers."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import ProviderTransportError
from ..models import ProviderPage, SearchParams

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 8.0
DEFAULT_MAX_ATTEMPTS = 3


class BaseAdapter(ABC):
    """Abstract base class for provider adapters.

    Adapters return provider-native records; the aggregation service runs
    them through the normalization engine. Failures raise
    ProviderTransportError (retried here) or ProviderLogicError (not retried).
    """

    # Normalization path for this provider's records
    source_kind: str = ""
    # Prefix of the Opportunity ids built from this provider's records
    id_prefix: str = ""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        wait=None,
    ):
        """Initialize adapter.

        Args:
            base_url: Provider API root, without trailing slash
            timeout_seconds: Per-request httpx timeout
            max_attempts: Attempts per request before a transport error surfaces
            wait: tenacity wait strategy (exponential backoff by default)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout_seconds)
        self.max_attempts = max_attempts
        self.wait = wait if wait is not None else wait_exponential(multiplier=1, min=1, max=10)

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Source identifier (grants_gov, usaspending)."""
        pass

    @abstractmethod
    async def search(self, params: SearchParams, rows: int, offset: int = 0) -> ProviderPage:
        """Fetch up to ``rows`` provider-native records starting at ``offset``."""
        pass

    @abstractmethod
    async def get_details(self, native_id: str) -> Optional[dict]:
        """Fetch one provider-native record, or None when the provider has no such id."""
        pass

    def owns(self, opportunity_id: str) -> bool:
        return bool(self.id_prefix) and opportunity_id.startswith(self.id_prefix)

    def headers(self) -> dict:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    async def health_check(self) -> dict:
        """Probe the provider with a one-row search."""
        start = time.monotonic()
        try:
            await self.search(SearchParams(limit=1), rows=1)
        except Exception as exc:
            return {
                "source": self.source_name,
                "status": "error",
                "message": str(exc),
                "duration_ms": round((time.monotonic() - start) * 1000),
            }
        return {
            "source": self.source_name,
            "status": "ok",
            "message": f"{self.source_name} API is accessible",
            "duration_ms": round((time.monotonic() - start) * 1000),
        }

    async def _request(self, method: str, url: str, not_found_ok: bool = False, **kwargs: Any) -> Any:
        """Send one request with retry on transport errors; returns decoded JSON.

        With ``not_found_ok`` a 404 returns None instead of raising.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            retry=retry_if_exception_type(ProviderTransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send(method, url, not_found_ok, **kwargs)

    async def _send(self, method: str, url: str, not_found_ok: bool, **kwargs: Any) -> Any:
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=self.headers(), **kwargs)
        except httpx.HTTPError as exc:
            duration = time.monotonic() - start
            logger.error(
                "[%s] url=%s status=transport duration=%.2fs result=failure error='%s'",
                self.source_name, url, duration, exc,
            )
            raise ProviderTransportError(self.source_name, f"{type(exc).__name__}: {exc}") from exc

        duration = time.monotonic() - start
        status_code = response.status_code
        if status_code == 404 and not_found_ok:
            logger.info(
                "[%s] url=%s status=404 duration=%.2fs result=not_found",
                self.source_name, url, duration,
            )
            return None
        if response.is_error:
            logger.error(
                "[%s] url=%s status=%d duration=%.2fs result=failure",
                self.source_name, url, status_code, duration,
            )
            raise ProviderTransportError(
                self.source_name, f"HTTP {status_code}", status_code=status_code
            )
        try:
            data = response.json()
        except ValueError as exc:
            logger.error(
                "[%s] url=%s status=%d duration=%.2fs result=failure error='undecodable body'",
                self.source_name, url, status_code, duration,
            )
            raise ProviderTransportError(
                self.source_name, "undecodable response body", status_code=status_code
            ) from exc

        logger.info(
            "[%s] url=%s status=%d duration=%.2fs result=success",
            self.source_name, url, status_code, duration,
        )
        return data
