"""Crime Stats Backend — FastAPI Routes"""

import asyncio
import logging
from typing import Optional

from cachetools import LRUCache
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from config import (
    ALLOWED_ORIGINS, AUTOCOMPLETE_CACHE_SIZE, AUTOCOMPLETE_MIN_LENGTH,
    DEFAULT_PERIOD, PERIOD_CHOICES,
)
from data_fetchers import client, fetch_postcode_autocomplete
from errors import ResolutionError, ResolverUnavailableError, TransportError
from models import AggregateResult, AutocompleteResponse, CrimeSummaryResponse, PeriodsResponse
from orchestrator import QuerySession

logger = logging.getLogger("crimestats")


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="Crime Stats API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

session = QuerySession()

_AUTOCOMPLETE_CACHE = LRUCache(maxsize=AUTOCOMPLETE_CACHE_SIZE)
_background_tasks: set[asyncio.Task] = set()


# ─────────────────────────── Lifecycle ──────────────────────────

@app.on_event("startup")
async def startup_event():
    """Warm the default period's category catalog without delaying startup."""
    task = asyncio.create_task(session.ensure_catalog(DEFAULT_PERIOD))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    logger.info(f"Warming crime categories for {DEFAULT_PERIOD}")


@app.on_event("shutdown")
async def shutdown_event():
    await client.aclose()


# ─────────────────────────── Helpers ────────────────────────────

def describe(result: AggregateResult) -> str:
    """One-sentence summary shown above the map."""
    if result.common_incident_id:
        # Fall back to the raw id when the category list had no name for it
        name = result.common_incident or result.common_incident_id
        return (
            f"The most common crime at postcode {result.postcode} in {result.period} "
            f"was {name}, averaging {result.incident_average:.2f} "
            f"occurrences per month."
        )
    return f"There were no recorded criminal instances at postcode {result.postcode} in {result.period}."


# ─────────────────────────── Endpoints ──────────────────────────

@app.get("/api/periods", response_model=PeriodsResponse)
async def get_periods():
    return PeriodsResponse(default=DEFAULT_PERIOD, periods=PERIOD_CHOICES)


@app.get("/api/crime-summary", response_model=CrimeSummaryResponse)
async def get_crime_summary(
    postcode: str = Query(..., min_length=1),
    year: Optional[int] = None,
):
    period = DEFAULT_PERIOD if year is None else year
    if period not in PERIOD_CHOICES:
        raise HTTPException(
            status_code=422,
            detail=f"year must be one of {', '.join(str(p) for p in PERIOD_CHOICES)}",
        )

    try:
        result = await session.query(postcode, period)
    except ResolverUnavailableError as e:
        logger.warning(f"Postcode lookup unavailable for {e.location!r}")
        raise HTTPException(status_code=503, detail=e.message)
    except ResolutionError as e:
        logger.info(f"Could not resolve {e.location!r}: {e.message}")
        raise HTTPException(status_code=404, detail=e.message)

    return CrimeSummaryResponse(**result.model_dump(), summary=describe(result))


@app.get("/api/postcodes/autocomplete", response_model=AutocompleteResponse)
async def autocomplete_postcode(q: str = ""):
    prefix = q.strip()
    if len(prefix) < AUTOCOMPLETE_MIN_LENGTH:
        return AutocompleteResponse(query=prefix)

    cache_key = prefix.upper()
    cached = _AUTOCOMPLETE_CACHE.get(cache_key)
    if cached is not None:
        return AutocompleteResponse(query=prefix, suggestions=cached)

    try:
        suggestions = await fetch_postcode_autocomplete(prefix)
    except TransportError as e:
        logger.warning(f"Autocomplete failed for {prefix!r}: {e}")
        return AutocompleteResponse(query=prefix)

    _AUTOCOMPLETE_CACHE[cache_key] = suggestions
    return AutocompleteResponse(query=prefix, suggestions=suggestions)
