"""Crime Stats Backend — External Data Fetchers (postcodes.io, data.police.uk)"""

import logging
from urllib.parse import quote

import httpx

from config import POSTCODES_API_BASE, POLICE_API_BASE, HTTP_TIMEOUT_SECONDS
from errors import ResolutionError, ResolverUnavailableError, TransportError
from models import Coordinate, ResolvedLocation

logger = logging.getLogger("crimestats.fetchers")

# Shared async HTTP client
client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)


async def _get(url: str, params: dict | None = None) -> httpx.Response:
    try:
        return await client.get(url, params=params, headers={"Accept": "application/json"})
    except httpx.HTTPError as e:
        raise TransportError(url, f"Request failed: {e}") from e


def _decode(url: str, resp: httpx.Response):
    try:
        return resp.json()
    except ValueError as e:
        raise TransportError(url, "Response was not valid JSON", resp.status_code) from e


async def fetch_json(url: str, params: dict | None = None):
    """GET a URL and return the decoded JSON body, raising TransportError on any failure."""
    resp = await _get(url, params)
    if resp.status_code != 200:
        raise TransportError(url, f"HTTP {resp.status_code}", resp.status_code)
    return _decode(url, resp)


def pad_month(month: int) -> str:
    """Zero-pad a month number for the police API, i.e. 8 -> "08"."""
    return f"{int(month):02d}"


def _police_date(year: int, month: int) -> str:
    return f"{int(year)}-{pad_month(month)}"


# ─────────────────────────── data.police.uk ─────────────────────

async def fetch_crime_categories(year: int, month: int) -> list[dict]:
    """Crime categories valid for one month, as [{"url": id, "name": display name}, ...]."""
    data = await fetch_json(
        f"{POLICE_API_BASE}/crime-categories",
        params={"date": _police_date(year, month)},
    )
    if not isinstance(data, list):
        raise TransportError(f"{POLICE_API_BASE}/crime-categories", "Expected a list of categories")
    return data


async def fetch_crimes_at_location(year: int, month: int, coordinate: Coordinate) -> list[dict]:
    """Crimes recorded at the location nearest to a coordinate for one month.

    Each record carries at least a "category" id; the remaining fields
    (location, outcome_status, persistent_id, ...) are passed through untouched.
    """
    url = f"{POLICE_API_BASE}/crimes-at-location"
    data = await fetch_json(
        url,
        params={
            "date": _police_date(year, month),
            "lat": coordinate.latitude,
            "lng": coordinate.longitude,
        },
    )
    if not isinstance(data, list):
        raise TransportError(url, "Expected a list of crimes")
    logger.debug(f"{len(data)} crimes for {_police_date(year, month)} at "
                 f"({coordinate.latitude:.5f}, {coordinate.longitude:.5f})")
    return data


# ─────────────────────────── postcodes.io ───────────────────────

async def resolve_postcode(text: str) -> ResolvedLocation:
    """Resolve a postcode to its canonical form and coordinate.

    Raises ResolutionError when the postcode is blank, unknown or has no
    coordinate, and ResolverUnavailableError when postcodes.io cannot be
    reached or answers with a server error.
    """
    postcode = (text or "").strip()
    if not postcode:
        raise ResolutionError(text, "Invalid postcode")

    url = f"{POSTCODES_API_BASE}/postcodes/{quote(postcode, safe='')}"
    try:
        resp = await _get(url)
        if resp.status_code >= 500:
            raise TransportError(url, f"HTTP {resp.status_code}", resp.status_code)
        data = _decode(url, resp)
    except TransportError as e:
        logger.warning(f"Postcode lookup failed for {postcode!r}: {e}")
        raise ResolverUnavailableError(postcode) from e

    if not isinstance(data, dict):
        raise ResolutionError(postcode, "Invalid postcode")
    if resp.status_code != 200 or data.get("status") != 200:
        raise ResolutionError(postcode, data.get("error") or "Invalid postcode")

    result = data.get("result") or {}
    lat, lng = result.get("latitude"), result.get("longitude")
    if lat is None or lng is None:
        raise ResolutionError(postcode, "Postcode has no known location")

    return ResolvedLocation(
        postcode=result.get("postcode") or postcode.upper(),
        coordinate=Coordinate(latitude=float(lat), longitude=float(lng)),
    )


async def fetch_postcode_autocomplete(prefix: str) -> list[str]:
    """Postcodes starting with the given prefix (postcodes.io returns null for none)."""
    data = await fetch_json(f"{POSTCODES_API_BASE}/postcodes/{quote(prefix.strip(), safe='')}/autocomplete")
    if not isinstance(data, dict):
        return []
    return [p for p in (data.get("result") or []) if isinstance(p, str)]
