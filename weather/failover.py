"""
Failover Weather Loader
=======================
Tries providers in fixed priority order and returns the first success.

Default order: Open-Meteo → NWS → Pirate Weather → WeatherAPI
(overridable through settings.PROVIDER_PRIORITY)

For each attempt:
- Failure: record {provider, error}, mark the provider Down, try the next one
- Success: fill failover level and source, run the advisory schema check on
  current conditions (invalid → Degraded, still returned), attach the
  failures so far, mark the provider OK and stop

Attempts are strictly sequential; a later provider is never started until
the earlier one has fully failed.

Usage:
    from weather.failover import acquire_weather

    weather = acquire_weather(40.0192, -82.8794)
"""

import logging
from typing import List

from config import settings
from weather import schema
from weather.base import WeatherProvider
from weather.exceptions import AllProvidersFailedError, ConfigurationError
from weather.fetch_nws import NWSProvider
from weather.fetch_openmeteo import OpenMeteoProvider
from weather.fetch_pirateweather import PirateWeatherProvider
from weather.fetch_weatherapi import WeatherApiProvider
from weather.fetcher import Transport
from weather.health import STATUS_DEGRADED, STATUS_DOWN, STATUS_OK, ProviderHealthRegistry
from weather.models import CanonicalWeather, ProviderFailure

logger = logging.getLogger(__name__)


def build_default_providers(api_keys: dict = None, transport: Transport = None,
                            priority: List[str] = None) -> List[WeatherProvider]:
    """
    Build the standard provider chain in priority order.

    Args:
        api_keys: Dictionary with optional 'pirate_weather' and 'weatherapi' keys.
                  Falls back to the environment-configured keys.
        transport: Shared transport for every provider. Each provider opens
                   and owns its own when None.
        priority: Provider display names in attempt order
                  (settings.PROVIDER_PRIORITY if None)

    Returns:
        List of providers in failover order

    Raises:
        ConfigurationError: A name in the priority list is not a known provider
    """
    api_keys = api_keys or {}
    factories = {
        settings.PROVIDER_OPEN_METEO: lambda: OpenMeteoProvider(transport=transport),
        settings.PROVIDER_NWS: lambda: NWSProvider(transport=transport),
        settings.PROVIDER_PIRATE_WEATHER: lambda: PirateWeatherProvider(
            api_key=api_keys.get('pirate_weather') or settings.PIRATE_WEATHER_API_KEY,
            transport=transport,
        ),
        settings.PROVIDER_WEATHERAPI: lambda: WeatherApiProvider(
            api_key=api_keys.get('weatherapi') or settings.WEATHERAPI_API_KEY,
            transport=transport,
        ),
    }

    providers = []
    for name in priority or settings.PROVIDER_PRIORITY:
        if name not in factories:
            raise ConfigurationError(f"Unknown weather provider {name!r}")
        providers.append(factories[name]())
    return providers


class FailoverWeatherLoader:
    """
    Owns the provider chain and the health registry for its lifetime.
    """

    def __init__(self, providers: List[WeatherProvider] = None,
                 health: ProviderHealthRegistry = None):
        """
        Initialize the loader.

        Args:
            providers: Providers in priority order. Default chain if None.
            health: Health registry to update. A private one is created if None.
        """
        self.providers = providers if providers is not None else build_default_providers()
        self.health = health if health is not None else ProviderHealthRegistry()

    def fetch_weather(self, lat: float, lon: float) -> CanonicalWeather:
        """
        Acquire weather from the first provider that succeeds.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            CanonicalWeather from exactly one provider, with failover_level
            and the failures of every provider tried before it

        Raises:
            AllProvidersFailedError: Every provider failed
        """
        failures = []

        for index, provider in enumerate(self.providers):
            name = provider.name
            try:
                result = provider.fetch(lat, lon)
            except Exception as e:
                message = str(e) or type(e).__name__
                logger.warning("Provider %s failed: %s", name, message)
                failures.append(ProviderFailure(provider=name, error=message))
                self.health.update(name, STATUS_DOWN, message)
                continue

            if result.failover_level is None:
                result.failover_level = index
            result.source = result.source or name
            result.failures = list(failures)

            self.health.update(name, STATUS_OK, '', result.response_time)
            check = schema.validate(result.current, 'current')
            if not check.valid:
                reason = '; '.join(check.errors)
                logger.warning("Provider %s returned degraded data: %s", name, reason)
                self.health.update(name, STATUS_DEGRADED, reason, result.response_time)

            logger.info("Weather acquired from %s (failover level %d, %.0f ms)",
                        name, result.failover_level, result.response_time)
            return result

        raise AllProvidersFailedError(failures)

    def get_provider_health(self) -> dict:
        return self.health.snapshot()

    def close(self):
        """Close every provider in the chain."""
        for provider in self.providers:
            provider.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def acquire_weather(lat: float, lon: float, api_keys: dict = None,
                    health: ProviderHealthRegistry = None,
                    transport: Transport = None) -> CanonicalWeather:
    """
    Acquire the canonical weather record for a coordinate.

    Args:
        lat: Latitude
        lon: Longitude
        api_keys: Optional provider API keys
        health: Optional health registry to update
        transport: Optional transport shared by all providers

    Returns:
        CanonicalWeather

    Raises:
        AllProvidersFailedError: Every provider failed
    """
    with FailoverWeatherLoader(build_default_providers(api_keys, transport), health) as loader:
        return loader.fetch_weather(lat, lon)
