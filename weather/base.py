"""
Provider Interface
==================
Every adapter speaks one provider's wire format and returns the canonical
record. Raw payload handling lives in each adapter's pure `normalize_*`
function; `fetch()` only performs I/O and hands the payload over.
"""

from collections.abc import Mapping

from weather.exceptions import MalformedPayloadError
from weather.fetcher import Transport
from weather.models import CanonicalWeather


class WeatherProvider:
    name: str = ''

    def __init__(self, transport: Transport = None):
        self._owns_transport = transport is None
        self.transport = transport or Transport()

    def fetch(self, lat: float, lon: float) -> CanonicalWeather:
        raise NotImplementedError

    def close(self):
        """Close the transport if this provider created it."""
        if self._owns_transport:
            self.transport.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def require_mapping(value, provider: str, section: str = 'payload') -> Mapping:
    """Reject a payload section that is not a JSON object."""
    if not isinstance(value, Mapping):
        raise MalformedPayloadError(
            f"{provider}: expected object for {section}, got {type(value).__name__}"
        )
    return value


def optional_mapping(value, provider: str, section: str) -> Mapping:
    """A section that may be absent (empty) but must be an object if present."""
    if value is None:
        return {}
    return require_mapping(value, provider, section)


def optional_list(value, provider: str, section: str) -> list:
    """A list section that may be absent but must be a list if present."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedPayloadError(
            f"{provider}: expected list for {section}, got {type(value).__name__}"
        )
    return value


def fahrenheit(celsius):
    """Convert °C to °F, passing None through."""
    return None if celsius is None else celsius * 9.0 / 5.0 + 32.0
