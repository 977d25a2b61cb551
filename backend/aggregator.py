"""Crime Stats Backend — Monthly scatter-gather (category catalog + incident aggregation)

The police API only answers one month at a time, so every yearly figure is
built by firing twelve monthly requests at once and folding the results
after all of them have settled. A month that fails, times out, or cannot
even be dispatched contributes nothing; the fold itself never fails.
"""

import asyncio
import logging
from collections import Counter
from typing import Any, Awaitable, Callable, Optional

import data_fetchers
from config import MONTHS_PER_PERIOD, SUBFETCH_TIMEOUT_SECONDS
from models import AggregateResult, Coordinate

logger = logging.getLogger("crimestats.aggregator")

CategoryCatalog = dict[str, str]
MonthlyFetch = Callable[..., Awaitable[Any]]


async def gather_months(
    fetch: MonthlyFetch,
    year: int,
    *args,
    months: int = MONTHS_PER_PERIOD,
    timeout: Optional[float] = SUBFETCH_TIMEOUT_SECONDS,
) -> list[Any]:
    """Run fetch(year, month, *args) for every month concurrently and wait for all to settle.

    Returns one entry per month, in month order. Failed months are None.
    """
    name = getattr(fetch, "__name__", "fetch")

    async def _settle(month: int):
        try:
            # Creating the coroutine happens inside the try so a dispatch-time
            # failure settles this month instead of escaping the barrier.
            return await asyncio.wait_for(fetch(year, month, *args), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{name} {year}-{month:02d} timed out after {timeout}s")
        except Exception as e:
            logger.warning(f"{name} {year}-{month:02d} failed: {e}")
        return None

    return list(await asyncio.gather(*(_settle(m) for m in range(1, months + 1))))


# ─────────────────────────── Category catalog ───────────────────

def merge_categories(monthly: list[Optional[list[dict]]]) -> CategoryCatalog:
    """Union of monthly category lists; on a repeated id the later month's name wins."""
    catalog: CategoryCatalog = {}
    for entries in monthly:
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            category_id = entry.get("url")
            if not category_id:
                continue
            catalog[category_id] = entry.get("name") or category_id
    return catalog


async def load_catalog(year: int, fetch_categories: Optional[MonthlyFetch] = None) -> CategoryCatalog:
    """Category id -> display name for a whole year. Missing months yield a partial catalog."""
    fetch_categories = fetch_categories or data_fetchers.fetch_crime_categories
    monthly = await gather_months(fetch_categories, year)
    catalog = merge_categories(monthly)
    failed = sum(1 for m in monthly if m is None)
    if failed:
        logger.warning(f"Category catalog for {year} is missing {failed} month(s)")
    logger.info(f"Loaded {len(catalog)} crime categories for {year}")
    return catalog


# ─────────────────────────── Incident aggregation ───────────────

def count_occurrences(batches: list[Optional[list[dict]]]) -> Counter:
    """Count records per category id across monthly batches.

    Batches are folded in the order given, so the counter's insertion order
    is the order in which each category was first seen.
    """
    counts: Counter = Counter()
    for batch in batches:
        for record in batch or []:
            category_id = record.get("category") if isinstance(record, dict) else None
            if isinstance(category_id, str) and category_id:
                counts[category_id] += 1
    return counts


def dominant_category(counts: Counter, months: int = MONTHS_PER_PERIOD) -> tuple[str, float]:
    """Category with the highest monthly rate, and that rate.

    Ties go to the category inserted first. No incidents gives ("", 0.0).
    """
    best_id, best_rate = "", 0.0
    for category_id, count in counts.items():
        rate = count / months
        if rate > best_rate:
            best_id, best_rate = category_id, rate
    return best_id, best_rate


async def aggregate(
    year: int,
    coordinate: Coordinate,
    catalog: CategoryCatalog,
    location_id: str = "",
    fetch_incidents: Optional[MonthlyFetch] = None,
) -> AggregateResult:
    fetch_incidents = fetch_incidents or data_fetchers.fetch_crimes_at_location
    batches = await gather_months(fetch_incidents, year, coordinate)

    counts = count_occurrences(batches)
    category_id, rate = dominant_category(counts)
    failed = sum(1 for b in batches if b is None)

    name = catalog.get(category_id, "") if category_id else ""
    if category_id and not name:
        logger.info(f"Category {category_id!r} is not in the {year} catalog")

    logger.info(
        f"Aggregated {sum(counts.values())} incidents for {location_id or coordinate} in {year}: "
        f"{category_id or 'none'} at {rate:.2f}/month ({failed} month(s) failed)"
    )
    return AggregateResult(
        postcode=location_id,
        period=year,
        latitude=coordinate.latitude,
        longitude=coordinate.longitude,
        common_incident=name,
        common_incident_id=category_id,
        incident_average=rate,
        months_failed=failed,
    )
