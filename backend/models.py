"""Crime Stats Backend — Pydantic Models"""

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class ResolvedLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    postcode: str  # canonical form from the resolver, e.g. "SW1A 1AA"
    coordinate: Coordinate


class AggregateResult(BaseModel):
    """Dominant crime category for one (postcode, period). Never mutated."""

    model_config = ConfigDict(frozen=True)

    postcode: str
    period: int
    latitude: float
    longitude: float
    common_incident: str = ""      # display name, "" when there were no incidents
    common_incident_id: str = ""   # category id from the police API
    incident_average: float = 0.0  # occurrences per month
    months_failed: int = 0         # monthly fetches absorbed as empty


class CrimeSummaryResponse(AggregateResult):
    summary: str


class AutocompleteResponse(BaseModel):
    query: str
    suggestions: list[str] = []


class PeriodsResponse(BaseModel):
    default: int
    periods: list[int]
