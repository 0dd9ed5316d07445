"""Timing spans and metrics, injected into services instead of wrapping them."""

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

logger = logging.getLogger(__name__)

SLOW_SPAN_MS = 1000.0


class Instrumentation(Protocol):
    def span(self, name: str, **attrs: Any): ...

    def metric(self, name: str, value: float, **attrs: Any) -> None: ...


def _fmt(attrs: dict) -> str:
    return " ".join(f"{k}={v}" for k, v in attrs.items())


class LoggingInstrumentation:
    """Emits spans and metrics as structured log lines."""

    def __init__(self, slow_span_ms: float = SLOW_SPAN_MS):
        self.slow_span_ms = slow_span_ms

    @contextmanager
    def span(self, name: str, **attrs: Any) -> Iterator[None]:
        start = time.monotonic()
        result = "success"
        try:
            yield
        except Exception:
            result = "failure"
            raise
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            if duration_ms > self.slow_span_ms:
                logger.warning(
                    "span_slow name=%s result=%s duration_ms=%.0f %s",
                    name, result, duration_ms, _fmt(attrs),
                )
            else:
                logger.debug(
                    "span name=%s result=%s duration_ms=%.0f %s",
                    name, result, duration_ms, _fmt(attrs),
                )

    def metric(self, name: str, value: float, **attrs: Any) -> None:
        logger.info("metric name=%s value=%s %s", name, value, _fmt(attrs))


class NullInstrumentation:
    """Discards everything."""

    @contextmanager
    def span(self, name: str, **attrs: Any) -> Iterator[None]:
        yield

    def metric(self, name: str, value: float, **attrs: Any) -> None:
        return None
