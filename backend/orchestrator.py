"""Crime Stats Backend — Query session (resolve → cache → aggregate)"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import data_fetchers
from aggregator import CategoryCatalog, MonthlyFetch, aggregate, load_catalog
from cache import CacheKey, QueryCache
from config import DEFAULT_PERIOD
from models import AggregateResult, ResolvedLocation

logger = logging.getLogger("crimestats.session")

Resolver = Callable[[str], Awaitable[ResolvedLocation]]


def normalize_location(text: str) -> str:
    return (text or "").strip()


class QuerySession:
    """Owns the per-period category catalogs and the aggregate result cache.

    Catalogs are loaded once per period and shared by every location queried
    for that period. Concurrent misses on the same (postcode, period) share a
    single in-flight aggregation, and concurrent first loads of a period's
    catalog share a single load.
    """

    def __init__(
        self,
        resolver: Optional[Resolver] = None,
        fetch_categories: Optional[MonthlyFetch] = None,
        fetch_incidents: Optional[MonthlyFetch] = None,
        cache: Optional[QueryCache] = None,
    ):
        self.resolver = resolver or data_fetchers.resolve_postcode
        self.fetch_categories = fetch_categories or data_fetchers.fetch_crime_categories
        self.fetch_incidents = fetch_incidents or data_fetchers.fetch_crimes_at_location
        self.cache = cache if cache is not None else QueryCache()

        self._catalogs: dict[int, CategoryCatalog] = {}
        self._resolved: dict[str, ResolvedLocation] = {}
        self._catalog_tasks: dict[int, asyncio.Task] = {}
        self._inflight: dict[CacheKey, asyncio.Task] = {}

    # ── Catalogs ──

    async def ensure_catalog(self, period: int) -> CategoryCatalog:
        period = int(period)
        catalog = self._catalogs.get(period)
        if catalog is not None:
            return catalog

        task = self._catalog_tasks.get(period)
        if task is None:
            task = asyncio.create_task(self._load_catalog(period))
            self._catalog_tasks[period] = task
        return await asyncio.shield(task)

    async def _load_catalog(self, period: int) -> CategoryCatalog:
        try:
            catalog = await load_catalog(period, self.fetch_categories)
            # An empty catalog means every month failed; load again next time
            if catalog:
                self._catalogs[period] = catalog
            return catalog
        finally:
            self._catalog_tasks.pop(period, None)

    # ── Resolution ──

    async def resolve(self, location: str) -> ResolvedLocation:
        """Resolve a location string, remembering successful lookups.

        ResolutionError from the resolver propagates unchanged.
        """
        text = normalize_location(location)
        memo_key = " ".join(text.split()).upper()
        resolved = self._resolved.get(memo_key)
        if resolved is None:
            resolved = await self.resolver(text)
            self._resolved[memo_key] = resolved
        return resolved

    # ── Queries ──

    def cached_result(self, location_id: str, period: int) -> Optional[AggregateResult]:
        return self.cache.get(QueryCache.make_key(location_id, period))

    async def query(self, location: str, period: Optional[int] = None) -> AggregateResult:
        """Dominant crime category for a location over a period (calendar year).

        Raises ResolutionError if the location cannot be resolved; otherwise
        always returns a result, possibly with no dominant category.
        """
        period = DEFAULT_PERIOD if period is None else int(period)
        resolved = await self.resolve(location)
        key = QueryCache.make_key(resolved.postcode, period)

        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Cache hit for {resolved.postcode} / {period}")
            return cached

        task = self._inflight.get(key)
        if task is None:
            logger.info(f"Cache miss for {resolved.postcode} / {period}")
            task = asyncio.create_task(self._compute(key, resolved))
            self._inflight[key] = task
        else:
            logger.info(f"Joining in-flight aggregation for {resolved.postcode} / {period}")
        return await asyncio.shield(task)

    async def _compute(self, key: CacheKey, resolved: ResolvedLocation) -> AggregateResult:
        period = key[1]
        try:
            catalog = await self.ensure_catalog(period)
            result = await aggregate(
                period,
                resolved.coordinate,
                catalog,
                location_id=resolved.postcode,
                fetch_incidents=self.fetch_incidents,
            )
            if catalog or not result.common_incident_id:
                self.cache.put(key, result)
            else:
                # No category names could be loaded; recompute once they can
                logger.warning(f"Not caching {resolved.postcode} / {period}: category list unavailable")
            return result
        finally:
            self._inflight.pop(key, None)
