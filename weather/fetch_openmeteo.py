"""
Open-Meteo Weather Fetcher
==========================
Primary provider: free, no API key, one request returning current, hourly
and daily sections.

Units are requested as °F / mph / inches so no conversion is needed after
the fact. Numeric WMO weather codes are mapped to condition labels.
"""

from config import settings
from weather.base import WeatherProvider, optional_list, optional_mapping, require_mapping
from weather.exceptions import MalformedPayloadError
from weather.models import (
    DEFAULT_PRESSURE_MB,
    PRECIP_NONE,
    PRECIP_RAIN,
    PRECIP_SNOW,
    CanonicalWeather,
    CurrentConditions,
    DailySample,
    HourlySample,
    parse_date,
    parse_datetime,
    to_float,
)

# =============================================================================
# CONFIGURATION
# =============================================================================
CURRENT_FIELDS = ('temperature_2m,relative_humidity_2m,apparent_temperature,'
                  'wind_speed_10m,wind_gusts_10m,pressure_msl,weather_code')
HOURLY_FIELDS = ('temperature_2m,precipitation,snowfall,wind_speed_10m,'
                 'wind_gusts_10m,relative_humidity_2m,weather_code')
DAILY_FIELDS = 'temperature_2m_max,temperature_2m_min,precipitation_probability_max,weather_code'

# WMO weather interpretation codes
WEATHER_CODE_MAP = {
    0: 'Clear',
    1: 'Mostly clear',
    2: 'Partly cloudy',
    3: 'Overcast',
    45: 'Fog',
    48: 'Depositing rime fog',
    51: 'Light drizzle',
    53: 'Drizzle',
    55: 'Heavy drizzle',
    56: 'Freezing drizzle',
    57: 'Freezing drizzle',
    61: 'Light rain',
    63: 'Rain',
    65: 'Heavy rain',
    66: 'Freezing rain',
    67: 'Freezing rain',
    71: 'Light snow',
    73: 'Snow',
    75: 'Heavy snow',
    77: 'Snow grains',
    80: 'Rain showers',
    81: 'Rain showers',
    82: 'Heavy showers',
    85: 'Snow showers',
    86: 'Snow showers',
    95: 'Thunderstorm',
    96: 'Thunderstorm w/ hail',
    99: 'Thunderstorm w/ hail',
}

RECOGNIZED_SECTIONS = ('current', 'current_weather', 'hourly', 'daily')


def condition_from_code(code) -> str:
    """
    Map a WMO weather code to a condition label.

    Args:
        code: Numeric weather code (may be None or a float)

    Returns:
        Condition label, 'Unknown' for missing or unmapped codes
    """
    number = to_float(code, None)
    if number is None:
        return 'Unknown'
    return WEATHER_CODE_MAP.get(int(number), 'Unknown')


def infer_precip_type(snowfall, precipitation) -> str:
    """Snow if any snowfall, else rain if any precipitation, else none."""
    if (snowfall or 0) > 0:
        return PRECIP_SNOW
    if (precipitation or 0) > 0:
        return PRECIP_RAIN
    return PRECIP_NONE


def _first(source: dict, *keys):
    for key in keys:
        if source.get(key) is not None:
            return source[key]
    return None


def _at(values: list, index: int):
    return values[index] if index < len(values) else None


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_openmeteo(payload) -> CanonicalWeather:
    """
    Convert an Open-Meteo forecast payload into the canonical record.

    Supports both the current schema (`current`) and the legacy one
    (`current_weather`, `relativehumidity_2m`, `windspeed`).

    Args:
        payload: Decoded JSON body

    Returns:
        CanonicalWeather without source/failover metadata

    Raises:
        MalformedPayloadError: The payload is not a recognizable forecast
    """
    provider = settings.PROVIDER_OPEN_METEO
    payload = require_mapping(payload, provider)
    if not any(key in payload for key in RECOGNIZED_SECTIONS):
        raise MalformedPayloadError(f"{provider}: unrecognized payload shape")

    # Current conditions
    src = optional_mapping(payload.get('current') or payload.get('current_weather'),
                           provider, 'current')
    temperature = to_float(_first(src, 'temperature_2m', 'temperature'))
    current = CurrentConditions(
        temperature=temperature,
        feels_like=to_float(_first(src, 'apparent_temperature', 'apparent_temperature_2m'),
                            temperature),
        humidity=to_float(_first(src, 'relative_humidity_2m', 'relativehumidity_2m')),
        pressure=to_float(src.get('pressure_msl'), DEFAULT_PRESSURE_MB),
        wind_speed=to_float(_first(src, 'wind_speed_10m', 'windspeed')),
        wind_gust=to_float(_first(src, 'wind_gusts_10m', 'windgusts_10m')),
        condition=condition_from_code(_first(src, 'weather_code', 'weathercode')),
    )

    # Hourly arrays
    h = optional_mapping(payload.get('hourly'), provider, 'hourly')
    times = optional_list(h.get('time'), provider, 'hourly.time')
    temps = optional_list(h.get('temperature_2m'), provider, 'hourly.temperature_2m')
    precip = optional_list(h.get('precipitation'), provider, 'hourly.precipitation')
    snow = optional_list(h.get('snowfall'), provider, 'hourly.snowfall')
    wind = optional_list(h.get('wind_speed_10m'), provider, 'hourly.wind_speed_10m')
    gust = optional_list(h.get('wind_gusts_10m'), provider, 'hourly.wind_gusts_10m')
    humidity = optional_list(h.get('relative_humidity_2m'), provider, 'hourly.relative_humidity_2m')
    codes = optional_list(h.get('weather_code'), provider, 'hourly.weather_code')

    hourly = []
    for i, stamp in enumerate(times):
        time = parse_datetime(stamp)
        if time is None:
            raise MalformedPayloadError(f"{provider}: bad hourly time {stamp!r}")
        snowfall = to_float(_at(snow, i), None)
        precipitation = to_float(_at(precip, i))
        code = _at(codes, i)
        hourly.append(HourlySample(
            time=time,
            temperature=to_float(_at(temps, i)),
            precipitation=precipitation,
            snowfall=snowfall,
            wind_speed=to_float(_at(wind, i)),
            wind_gust=to_float(_at(gust, i)),
            humidity=to_float(_at(humidity, i), None),
            condition=condition_from_code(code) if code is not None else None,
            precip_type=infer_precip_type(snowfall, precipitation),
        ))
    hourly.sort(key=lambda sample: sample.time)

    # Daily arrays
    d = optional_mapping(payload.get('daily'), provider, 'daily')
    days = optional_list(d.get('time'), provider, 'daily.time')
    t_max = optional_list(d.get('temperature_2m_max'), provider, 'daily.temperature_2m_max')
    t_min = optional_list(d.get('temperature_2m_min'), provider, 'daily.temperature_2m_min')
    p_prob = optional_list(d.get('precipitation_probability_max')
                           or d.get('precipitation_probability_mean'),
                           provider, 'daily.precipitation_probability')
    d_codes = optional_list(d.get('weather_code'), provider, 'daily.weather_code')

    daily = []
    for i, stamp in enumerate(days):
        day = parse_date(stamp)
        if day is None:
            raise MalformedPayloadError(f"{provider}: bad daily date {stamp!r}")
        code = _at(d_codes, i)
        daily.append(DailySample(
            date=day,
            temp_high=to_float(_at(t_max, i)),
            temp_low=to_float(_at(t_min, i)),
            precip_chance=to_float(_at(p_prob, i)),
            condition=condition_from_code(code) if code is not None else 'Forecast',
        ))

    return CanonicalWeather(current=current, hourly=hourly, daily=daily)


# =============================================================================
# PROVIDER
# =============================================================================

class OpenMeteoProvider(WeatherProvider):
    name = settings.PROVIDER_OPEN_METEO

    def build_params(self, lat: float, lon: float) -> dict:
        return {
            'latitude': lat,
            'longitude': lon,
            'timezone': 'auto',
            'current': CURRENT_FIELDS,
            'hourly': HOURLY_FIELDS,
            'daily': DAILY_FIELDS,
            'temperature_unit': 'fahrenheit',
            'wind_speed_unit': 'mph',
            'precipitation_unit': 'inch',
        }

    def fetch(self, lat: float, lon: float) -> CanonicalWeather:
        """
        Fetch combined current/hourly/daily forecast in one request.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            CanonicalWeather with source and response time set
        """
        payload, elapsed_ms = self.transport.get_json(
            settings.OPEN_METEO_URL, params=self.build_params(lat, lon)
        )
        weather = normalize_openmeteo(payload)
        weather.source = self.name
        weather.response_time = elapsed_ms
        return weather
