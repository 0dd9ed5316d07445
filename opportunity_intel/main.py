"""Service wiring, one-shot search and the housekeeping scheduler.

Usage:
    python -m opportunity_intel.main --once [keyword]   run one aggregate search
    python -m opportunity_intel.main                    run cache cleanup and featured warming
"""

import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .adapters import GrantsGovAdapter, USAspendingAdapter
from .aggregation import AggregationService
from .analytics import HistoricalAnalyticsService
from .cache import CacheStore
from .cache.ttl import CacheTTL
from .config import Config, load_config
from .instrumentation import Instrumentation, LoggingInstrumentation
from .intelligence import IntelligenceEngine, load_heuristics
from .models import SearchParams
from .normalization import NormalizationEngine

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@dataclass
class Services:
    """One process-wide set of service instances."""

    config: Config
    cache: CacheStore
    normalizer: NormalizationEngine
    grants_gov: GrantsGovAdapter
    usaspending: USAspendingAdapter
    aggregation: AggregationService
    analytics: HistoricalAnalyticsService
    intelligence: IntelligenceEngine


def build_services(config: Config, instrumentation: Optional[Instrumentation] = None) -> Services:
    instrumentation = instrumentation or LoggingInstrumentation()
    cache = CacheStore()
    normalizer = NormalizationEngine()

    adapter_options = {
        "timeout_seconds": config.provider_timeout_seconds,
        "max_attempts": config.provider_max_attempts,
    }
    grants_gov = GrantsGovAdapter(
        base_url=config.grants_gov_api_url,
        attribution=config.grants_gov_attribution,
        **adapter_options,
    )
    usaspending = USAspendingAdapter(base_url=config.usaspending_api_url, **adapter_options)

    aggregation = AggregationService(
        adapters=[grants_gov, usaspending],
        normalizer=normalizer,
        cache=cache,
        instrumentation=instrumentation,
        timeout_seconds=config.provider_timeout_seconds,
        max_fetch_window=config.max_fetch_window,
    )
    analytics = HistoricalAnalyticsService(
        cache=cache,
        awards=usaspending,
        normalizer=normalizer,
        instrumentation=instrumentation,
        timeout_seconds=config.provider_timeout_seconds,
    )
    intelligence = IntelligenceEngine(
        analytics=analytics,
        cache=cache,
        heuristics=load_heuristics(config.heuristics_path),
        instrumentation=instrumentation,
    )
    return Services(
        config=config,
        cache=cache,
        normalizer=normalizer,
        grants_gov=grants_gov,
        usaspending=usaspending,
        aggregation=aggregation,
        analytics=analytics,
        intelligence=intelligence,
    )


async def run_once(services: Services, keyword: str = "") -> None:
    """Run one aggregate search and log a summary (manual runs and smoke tests)."""
    start_time = datetime.now()
    params = SearchParams(query=keyword, limit=services.config.default_page_size)
    response = await services.aggregation.search_all(params)

    logger.info(
        "search_complete query=%r total_count=%d page_count=%d total_pages=%d",
        keyword, response.total_count, len(response.opportunities), response.total_pages,
    )
    for opp in response.opportunities:
        logger.info(
            "  %s | %s | %s | deadline=%s amount=%.0f score=%.0f",
            opp.id, opp.agency or "-", opp.title[:60], opp.deadline or "-", opp.amount, opp.search_score,
        )
    duration = (datetime.now() - start_time).total_seconds()
    logger.info("One-shot search completed in %.2f seconds", duration)


def cleanup_cache(cache: CacheStore) -> int:
    removed = cache.clear_expired()
    logger.info("cache_cleanup removed=%d %s", removed, cache.stats())
    return removed


async def warm_featured(services: Services) -> None:
    featured = await services.aggregation.get_featured()
    logger.info("featured_warm count=%d", len(featured))


def create_scheduler(services: Services) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        cleanup_cache,
        trigger=IntervalTrigger(minutes=services.config.cache_cleanup_interval_minutes),
        args=[services.cache],
        id="cache_cleanup",
        name="Remove cache entries past the stale window",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.add_job(
        warm_featured,
        trigger=IntervalTrigger(seconds=int(CacheTTL.SEARCH)),
        args=[services],
        id="featured_warm",
        name="Refresh featured opportunities",
        replace_existing=True,
        max_instances=1,
    )
    return scheduler


async def start_scheduler(services: Services) -> None:
    """Run housekeeping jobs until interrupted."""
    logger.info(
        "Starting scheduler cache_cleanup_interval=%d minutes",
        services.config.cache_cleanup_interval_minutes,
    )
    scheduler = create_scheduler(services)
    scheduler.start()
    initial_warm = asyncio.create_task(warm_featured(services))
    try:
        await asyncio.Event().wait()
    finally:
        logger.info("Shutting down scheduler...")
        initial_warm.cancel()
        scheduler.shutdown(wait=False)
        await services.cache.drain()


def main(argv: Optional[list] = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    config = load_config()
    configure_logging(config.log_level)
    services = build_services(config)

    if argv and argv[0] == "--once":
        asyncio.run(run_once(services, " ".join(argv[1:])))
        return
    try:
        asyncio.run(start_scheduler(services))
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    main()
