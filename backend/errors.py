"""Crime Stats Backend — Exceptions"""


class CrimeStatsError(Exception):
    """Base exception for the crime stats backend."""


class ResolutionError(CrimeStatsError):
    """A location string could not be resolved to a coordinate."""

    def __init__(self, location: str, message: str = "Invalid postcode"):
        super().__init__(message)
        self.location = location
        self.message = message


class ResolverUnavailableError(ResolutionError):
    """The resolver could not be reached, so the location was never checked."""

    def __init__(self, location: str, message: str = "Postcode lookup is unavailable"):
        super().__init__(location, message)


class TransportError(CrimeStatsError):
    """A single upstream HTTP call failed (network, status or decoding)."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code
