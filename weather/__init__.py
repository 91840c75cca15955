"""
Weather Package
===============
Provider acquisition and normalization.

Modules:
- fetcher: bounded-timeout HTTP transport with one retry on timeout
- schema: advisory validator for canonical record shapes
- fetch_openmeteo / fetch_nws / fetch_pirateweather / fetch_weatherapi: provider adapters
- failover: ordered failover across providers with health tracking
- alerts: NWS alert normalization and impact classification
- quality: data quality score
"""

from .alerts import Alert, AlertsResult, acquire_alerts, fetch_alerts, fetch_alerts_result
from .exceptions import AllProvidersFailedError
from .failover import FailoverWeatherLoader, acquire_weather, build_default_providers
from .health import ProviderHealthRegistry
from .models import CanonicalWeather
from .quality import compute_data_quality

__all__ = [
    'Alert',
    'AlertsResult',
    'acquire_alerts',
    'fetch_alerts',
    'fetch_alerts_result',
    'AllProvidersFailedError',
    'FailoverWeatherLoader',
    'acquire_weather',
    'build_default_providers',
    'ProviderHealthRegistry',
    'CanonicalWeather',
    'compute_data_quality',
]
