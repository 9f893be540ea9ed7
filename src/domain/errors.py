from __future__ import annotations

from typing import Any


class PriceLookupError(Exception):
    """Base class for every failure surfaced to the command line."""


class ConfigError(PriceLookupError):
    """Bad user input or an operation the selected provider cannot perform."""


class UnsupportedCapabilityError(ConfigError):
    def __init__(self, message: str, *, provider_id: str, capability: str) -> None:
        super().__init__(message)
        self.provider_id = provider_id
        self.capability = capability


class ApiError(PriceLookupError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ParseError(PriceLookupError):
    """A response body could not be decoded into the expected shape."""


class NoResultsError(PriceLookupError):
    def __init__(self, message: str = "no results found") -> None:
        super().__init__(message)


__all__ = [
    "ApiError",
    "ConfigError",
    "NoResultsError",
    "ParseError",
    "PriceLookupError",
    "UnsupportedCapabilityError",
]
