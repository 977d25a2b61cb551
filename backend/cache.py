"""Crime Stats Backend — In-memory query cache"""

import logging
from typing import Optional

from models import AggregateResult

logger = logging.getLogger("crimestats.cache")

# (canonical postcode, period)
CacheKey = tuple[str, int]


class QueryCache:
    """Unbounded in-memory cache of aggregate results.

    Entries live for the lifetime of the process: no TTL, no size cap.
    A second put for the same key overwrites the first.
    """

    def __init__(self):
        self._store: dict[CacheKey, AggregateResult] = {}

    @staticmethod
    def make_key(location_id: str, period: int) -> CacheKey:
        return (location_id, int(period))

    def get(self, key: CacheKey) -> Optional[AggregateResult]:
        return self._store.get(key)

    def put(self, key: CacheKey, value: AggregateResult):
        if key in self._store:
            logger.debug(f"Overwriting cached result for {key}")
        self._store[key] = value

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def clear(self):
        self._store.clear()
