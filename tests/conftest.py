"""
Shared fixtures for the crime stats backend tests.

No test touches the network: the police API and the postcode resolver are
replaced by in-memory fakes that record every call, so tests can assert on
exactly how many monthly requests a query issued.
"""

import asyncio

import pytest

from errors import ResolutionError, TransportError
from models import Coordinate, ResolvedLocation


WESTMINSTER = ResolvedLocation(
    postcode="SW1A 1AA", coordinate=Coordinate(latitude=51.501009, longitude=-0.141588),
)
LEEDS = ResolvedLocation(
    postcode="LS1 4AP", coordinate=Coordinate(latitude=53.796858, longitude=-1.543794),
)

DEFAULT_CATEGORIES = [
    {"url": "anti-social-behaviour", "name": "Anti-social behaviour"},
    {"url": "burglary", "name": "Burglary"},
    {"url": "other-theft", "name": "Other theft"},
    {"url": "violent-crime", "name": "Violence and sexual offences"},
]


class FakePoliceApi:
    """Stands in for data.police.uk.

    categories / crimes map month number -> list of records. Months listed
    in fail_months (crimes) or category_fail_months raise TransportError;
    delays (month -> seconds) let tests force a particular settlement order.
    """

    def __init__(self, categories=None, crimes=None, fail_months=(), delays=None,
                 category_fail_months=()):
        self.categories = categories if categories is not None else {
            m: list(DEFAULT_CATEGORIES) for m in range(1, 13)
        }
        self.crimes = crimes or {}
        self.fail_months = set(fail_months)
        self.category_fail_months = set(category_fail_months)
        self.delays = delays or {}
        self.category_calls: list[tuple[int, int]] = []
        self.crime_calls: list[tuple[int, int, Coordinate]] = []

    async def fetch_categories(self, year, month):
        self.category_calls.append((year, month))
        await asyncio.sleep(self.delays.get(month, 0))
        if month in self.category_fail_months:
            raise TransportError("https://data.police.uk/api/crime-categories", "HTTP 500", 500)
        return self.categories.get(month, [])

    async def fetch_incidents(self, year, month, coordinate):
        self.crime_calls.append((year, month, coordinate))
        await asyncio.sleep(self.delays.get(month, 0))
        if month in self.fail_months:
            raise TransportError("https://data.police.uk/api/crimes-at-location", "HTTP 503", 503)
        return self.crimes.get(month, [])


class FakeResolver:
    def __init__(self, *locations: ResolvedLocation):
        self.known = {loc.postcode.replace(" ", ""): loc for loc in locations}
        self.calls: list[str] = []

    async def __call__(self, text):
        self.calls.append(text)
        loc = self.known.get(text.replace(" ", "").upper())
        if loc is None:
            raise ResolutionError(text, "Invalid postcode")
        return loc


def crimes(*categories):
    """A monthly batch with one record per category id given."""
    return [{"category": c, "location_type": "Force", "month": "2023-01"} for c in categories]


@pytest.fixture()
def police():
    return FakePoliceApi


@pytest.fixture()
def resolver():
    return FakeResolver(WESTMINSTER, LEEDS)


@pytest.fixture()
def batch():
    return crimes


@pytest.fixture()
def westminster():
    return WESTMINSTER


@pytest.fixture()
def leeds():
    return LEEDS
