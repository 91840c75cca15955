"""
National Weather Service Fetcher
================================
Secondary provider: free, no API key, two-stage lookup.

1. /points/{lat},{lon} resolves the gridpoint forecast endpoints
2. forecastHourly and forecast (12-hour periods) are fetched separately

NWS reports no snowfall amounts in these products, so hourly snowfall is
left empty (None). Every call carries the application User-Agent, which
api.weather.gov requires.
"""

import logging

from config import settings
from weather.base import WeatherProvider, fahrenheit, optional_list, require_mapping
from weather.exceptions import MalformedPayloadError
from weather.models import (
    PRECIP_FREEZING,
    PRECIP_NONE,
    PRECIP_RAIN,
    PRECIP_SNOW,
    CanonicalWeather,
    CurrentConditions,
    DailySample,
    HourlySample,
    parse_datetime,
    to_float,
)

logger = logging.getLogger(__name__)

NWS_HEADERS = {
    'User-Agent': settings.USER_AGENT,
    'Accept': 'application/geo+json',
}


# =============================================================================
# FIELD PARSING
# =============================================================================

def parse_wind_speed(value) -> float:
    """
    Parse an NWS wind speed such as "10 mph" or "5 to 10 mph".

    Args:
        value: Wind speed string or number

    Returns:
        Leading number in mph, 0 when not parseable
    """
    if isinstance(value, str):
        parts = value.strip().split(' ')
        return to_float(parts[0] if parts else None, 0.0)
    if isinstance(value, dict):
        return to_float(value.get('value'), 0.0)
    return to_float(value, 0.0)


def parse_temperature(period: dict) -> float:
    """Period temperature in °F, converting Celsius periods."""
    raw = period.get('temperature')
    unit = str(period.get('temperatureUnit') or 'F').upper()
    if isinstance(raw, dict):
        unit = 'C' if 'degC' in str(raw.get('unitCode', '')) else 'F'
        raw = raw.get('value')
    value = to_float(raw)
    return fahrenheit(value) if unit == 'C' else value


def precip_type_from_text(text: str) -> str:
    """Infer the precipitation type from a short forecast phrase."""
    t = (text or '').lower()
    if 'freezing' in t or 'sleet' in t or 'ice' in t:
        return PRECIP_FREEZING
    if 'snow' in t or 'flurries' in t or 'blizzard' in t:
        return PRECIP_SNOW
    if 'rain' in t or 'shower' in t or 'drizzle' in t or 'thunder' in t:
        return PRECIP_RAIN
    return PRECIP_NONE


def _value(quantity):
    if isinstance(quantity, dict):
        return quantity.get('value')
    return None


def _periods(payload, section: str) -> list:
    provider = settings.PROVIDER_NWS
    payload = require_mapping(payload, provider, section)
    props = payload.get('properties') or {}
    props = require_mapping(props, provider, f'{section}.properties')
    periods = optional_list(props.get('periods'), provider, f'{section}.periods')
    return [require_mapping(p, provider, f'{section} period') for p in periods]


# =============================================================================
# NORMALIZATION
# =============================================================================

def minimal_record() -> CanonicalWeather:
    """Zero-filled record used when the points lookup has no forecast URLs."""
    return CanonicalWeather(
        current=CurrentConditions(
            temperature=0.0,
            feels_like=0.0,
            humidity=0.0,
            wind_speed=0.0,
            condition='Unknown',
        ),
        hourly=[],
        daily=[],
    )


def normalize_nws(hourly_payload, daily_payload) -> CanonicalWeather:
    """
    Convert NWS hourly and 12-hour forecast payloads into the canonical record.

    Args:
        hourly_payload: Decoded forecastHourly body
        daily_payload: Decoded forecast body

    Returns:
        CanonicalWeather without source/failover metadata
    """
    hourly = []
    for p in _periods(hourly_payload, 'forecastHourly'):
        time = parse_datetime(p.get('startTime'))
        if time is None:
            raise MalformedPayloadError(f"NWS: bad period startTime {p.get('startTime')!r}")
        condition = p.get('shortForecast') or p.get('detailedForecast') or 'Forecast'
        hourly.append(HourlySample(
            time=time,
            temperature=parse_temperature(p),
            precipitation=0.0,
            snowfall=None,
            wind_speed=parse_wind_speed(p.get('windSpeed')),
            humidity=to_float(_value(p.get('relativeHumidity')), None),
            condition=condition,
            precip_type=precip_type_from_text(condition),
        ))
    hourly.sort(key=lambda sample: sample.time)

    periods = _periods(daily_payload, 'forecast')
    daily = []
    for i, p in enumerate(periods):
        if not p.get('isDaytime'):
            continue
        start = parse_datetime(p.get('startTime'))
        if start is None:
            raise MalformedPayloadError(f"NWS: bad period startTime {p.get('startTime')!r}")
        high = parse_temperature(p)
        low = high
        following = periods[i + 1] if i + 1 < len(periods) else None
        if following is not None and not following.get('isDaytime'):
            low = parse_temperature(following)
        daily.append(DailySample(
            date=start.date(),
            temp_high=high,
            temp_low=low,
            precip_chance=to_float(_value(p.get('probabilityOfPrecipitation'))),
            condition=p.get('shortForecast') or 'Forecast',
        ))

    first = hourly[0] if hourly else None
    current = CurrentConditions(
        temperature=first.temperature if first else 0.0,
        feels_like=first.temperature if first else 0.0,
        humidity=(first.humidity or 0.0) if first else 0.0,
        wind_speed=first.wind_speed if first else 0.0,
        condition=first.condition if first else 'Forecast',
    )

    return CanonicalWeather(current=current, hourly=hourly, daily=daily)


# =============================================================================
# PROVIDER
# =============================================================================

class NWSProvider(WeatherProvider):
    name = settings.PROVIDER_NWS

    def points_url(self, lat: float, lon: float) -> str:
        return f"{settings.NWS_BASE_URL}/points/{round(lat, 4)},{round(lon, 4)}"

    def fetch(self, lat: float, lon: float) -> CanonicalWeather:
        """
        Resolve the gridpoint, then fetch hourly and daily forecasts.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            CanonicalWeather; a zero-filled record when the gridpoint lookup
            yields no forecast endpoints
        """
        points, points_ms = self.transport.get_json(self.points_url(lat, lon),
                                                    headers=NWS_HEADERS)
        points = require_mapping(points, self.name, 'points')
        props = points.get('properties')
        props = props if isinstance(props, dict) else {}
        hourly_url = props.get('forecastHourly')
        daily_url = props.get('forecast')

        if not hourly_url or not daily_url:
            logger.warning("NWS points lookup for %s,%s returned no forecast URLs", lat, lon)
            weather = minimal_record()
            weather.source = self.name
            weather.response_time = points_ms
            return weather

        hourly_json, hourly_ms = self.transport.get_json(hourly_url, headers=NWS_HEADERS)
        daily_json, daily_ms = self.transport.get_json(daily_url, headers=NWS_HEADERS)

        weather = normalize_nws(hourly_json, daily_json)
        weather.source = self.name
        weather.response_time = points_ms + hourly_ms + daily_ms
        return weather
