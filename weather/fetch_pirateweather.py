"""
Pirate Weather Fetcher
======================
Optional keyed provider with a Dark Sky compatible payload.

Requested with `units=us` (°F, mph, in/hr, mb). Humidity and precipitation
probability arrive as 0-1 fractions and are converted to percentages.
Epoch timestamps are localized with the payload's IANA timezone so the
commute window lines up with local school hours.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings
from weather.base import WeatherProvider, optional_list, optional_mapping, require_mapping
from weather.exceptions import MalformedPayloadError, MissingApiKeyError
from weather.models import (
    PRECIP_FREEZING,
    PRECIP_NONE,
    PRECIP_RAIN,
    PRECIP_SNOW,
    CanonicalWeather,
    CurrentConditions,
    DailySample,
    HourlySample,
    to_float,
)

# Provider precipType → canonical precip type
PRECIP_TYPE_MAP = {
    'rain': PRECIP_RAIN,
    'snow': PRECIP_SNOW,
    'sleet': PRECIP_FREEZING,
    'freezing rain': PRECIP_FREEZING,
    'mixed': PRECIP_FREEZING,
    'none': PRECIP_NONE,
}


def _percent(fraction) -> float:
    return to_float(fraction) * 100.0


def _zone(name):
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def _timestamp(value, tz) -> datetime:
    seconds = to_float(value, None)
    if seconds is None:
        raise MalformedPayloadError(f"Pirate Weather: bad timestamp {value!r}")
    return datetime.fromtimestamp(seconds, tz=tz)


def map_precip_type(raw, precipitation: float) -> str:
    """Map a provider precipType, falling back to rain when precip is present."""
    if raw:
        return PRECIP_TYPE_MAP.get(str(raw).lower(), PRECIP_RAIN if precipitation > 0 else PRECIP_NONE)
    return PRECIP_RAIN if precipitation > 0 else PRECIP_NONE


def normalize_pirateweather(payload) -> CanonicalWeather:
    """
    Convert a Pirate Weather forecast payload into the canonical record.

    Args:
        payload: Decoded JSON body

    Returns:
        CanonicalWeather without source/failover metadata
    """
    provider = settings.PROVIDER_PIRATE_WEATHER
    payload = require_mapping(payload, provider)
    if not any(key in payload for key in ('currently', 'hourly', 'daily')):
        raise MalformedPayloadError(f"{provider}: unrecognized payload shape")
    tz = _zone(payload.get('timezone'))

    src = optional_mapping(payload.get('currently'), provider, 'currently')
    temperature = to_float(src.get('temperature'))
    current = CurrentConditions(
        temperature=temperature,
        feels_like=to_float(src.get('apparentTemperature'), temperature),
        humidity=_percent(src.get('humidity')),
        pressure=to_float(src.get('pressure'), None),
        wind_speed=to_float(src.get('windSpeed')),
        wind_gust=to_float(src.get('windGust')),
        condition=str(src.get('summary') or 'Forecast'),
    )

    hourly_block = optional_mapping(payload.get('hourly'), provider, 'hourly')
    hourly = []
    for h in optional_list(hourly_block.get('data'), provider, 'hourly.data'):
        h = require_mapping(h, provider, 'hourly entry')
        precipitation = to_float(h.get('precipIntensity'))
        hourly.append(HourlySample(
            time=_timestamp(h.get('time'), tz),
            temperature=to_float(h.get('temperature')),
            precipitation=precipitation,
            snowfall=to_float(h.get('snowAccumulation'), None),
            wind_speed=to_float(h.get('windSpeed')),
            wind_gust=to_float(h.get('windGust')),
            humidity=_percent(h.get('humidity')),
            condition=str(h.get('summary') or ''),
            precip_type=map_precip_type(h.get('precipType'), precipitation),
        ))
    hourly.sort(key=lambda sample: sample.time)

    daily_block = optional_mapping(payload.get('daily'), provider, 'daily')
    daily = []
    for d in optional_list(daily_block.get('data'), provider, 'daily.data'):
        d = require_mapping(d, provider, 'daily entry')
        daily.append(DailySample(
            date=_timestamp(d.get('time'), tz).date(),
            temp_high=to_float(d.get('temperatureHigh')),
            temp_low=to_float(d.get('temperatureLow')),
            precip_chance=_percent(d.get('precipProbability')),
            condition=str(d.get('summary') or 'Forecast'),
        ))

    return CanonicalWeather(current=current, hourly=hourly, daily=daily)


class PirateWeatherProvider(WeatherProvider):
    name = settings.PROVIDER_PIRATE_WEATHER

    def __init__(self, api_key: str = None, transport=None):
        super().__init__(transport)
        self.api_key = api_key

    def fetch(self, lat: float, lon: float) -> CanonicalWeather:
        """
        Fetch the forecast. Fails before any network I/O without a key.

        Raises:
            MissingApiKeyError: No API key configured
        """
        if not self.api_key:
            raise MissingApiKeyError(self.name)
        url = f"{settings.PIRATE_WEATHER_URL}/{self.api_key}/{lat},{lon}"
        payload, elapsed_ms = self.transport.get_json(
            url, params={'units': 'us', 'exclude': 'minutely'}
        )
        weather = normalize_pirateweather(payload)
        weather.source = self.name
        weather.response_time = elapsed_ms
        return weather
