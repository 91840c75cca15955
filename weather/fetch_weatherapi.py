"""
WeatherAPI.com Fetcher
======================
Optional keyed provider, last in the failover chain.

Imperial fields (temp_f, wind_mph, precip_in) are used directly; Celsius or
centimetre-only values are converted. Hourly samples are flattened out of
the per-day forecast blocks.
"""

from config import settings
from weather.base import (
    WeatherProvider,
    fahrenheit,
    optional_list,
    optional_mapping,
    require_mapping,
)
from weather.exceptions import MalformedPayloadError, MissingApiKeyError
from weather.models import (
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

CM_PER_INCH = 2.54
FORECAST_DAYS = 7


def _imperial(source: dict, f_key: str, c_key: str, default=0.0):
    value = to_float(source.get(f_key), None)
    if value is None:
        value = fahrenheit(to_float(source.get(c_key), None))
    return default if value is None else value


def _condition_text(source: dict, default: str) -> str:
    condition = source.get('condition')
    if isinstance(condition, dict) and condition.get('text'):
        return str(condition['text'])
    return default


def infer_precip_type(snow_cm: float, precip_in: float) -> str:
    if snow_cm > 0:
        return PRECIP_SNOW
    if precip_in > 0:
        return PRECIP_RAIN
    return PRECIP_NONE


def normalize_weatherapi(payload) -> CanonicalWeather:
    """
    Convert a WeatherAPI forecast.json payload into the canonical record.

    Args:
        payload: Decoded JSON body

    Returns:
        CanonicalWeather without source/failover metadata
    """
    provider = settings.PROVIDER_WEATHERAPI
    payload = require_mapping(payload, provider)
    if 'current' not in payload and 'forecast' not in payload:
        raise MalformedPayloadError(f"{provider}: unrecognized payload shape")

    src = optional_mapping(payload.get('current'), provider, 'current')
    current = CurrentConditions(
        temperature=_imperial(src, 'temp_f', 'temp_c'),
        feels_like=_imperial(src, 'feelslike_f', 'feelslike_c'),
        humidity=to_float(src.get('humidity')),
        pressure=to_float(src.get('pressure_mb'), None),
        wind_speed=to_float(src.get('wind_mph')),
        wind_gust=to_float(src.get('gust_mph')),
        condition=_condition_text(src, 'Forecast'),
    )

    forecast = optional_mapping(payload.get('forecast'), provider, 'forecast')
    forecast_days = optional_list(forecast.get('forecastday'), provider, 'forecast.forecastday')

    daily = []
    hourly = []
    for block in forecast_days:
        block = require_mapping(block, provider, 'forecastday')
        day = optional_mapping(block.get('day'), provider, 'forecastday.day')
        day_date = parse_date(block.get('date'))
        if day_date is None:
            raise MalformedPayloadError(f"{provider}: bad forecast date {block.get('date')!r}")
        daily.append(DailySample(
            date=day_date,
            temp_high=_imperial(day, 'maxtemp_f', 'maxtemp_c'),
            temp_low=_imperial(day, 'mintemp_f', 'mintemp_c'),
            precip_chance=max(to_float(day.get('daily_chance_of_rain')),
                              to_float(day.get('daily_chance_of_snow'))),
            condition=_condition_text(day, 'Forecast'),
        ))

        for h in optional_list(block.get('hour'), provider, 'forecastday.hour'):
            h = require_mapping(h, provider, 'hour')
            time = parse_datetime(h.get('time'))
            if time is None:
                raise MalformedPayloadError(f"{provider}: bad hour time {h.get('time')!r}")
            precip_in = to_float(h.get('precip_in'))
            if h.get('precip_in') is None and h.get('precip_mm') is not None:
                precip_in = to_float(h.get('precip_mm')) / 25.4
            snow_cm = to_float(h.get('snow_cm'), None)
            hourly.append(HourlySample(
                time=time,
                temperature=_imperial(h, 'temp_f', 'temp_c'),
                precipitation=precip_in,
                snowfall=snow_cm / CM_PER_INCH if snow_cm is not None else None,
                wind_speed=to_float(h.get('wind_mph')),
                wind_gust=to_float(h.get('gust_mph')),
                humidity=to_float(h.get('humidity'), None),
                condition=_condition_text(h, ''),
                precip_type=infer_precip_type(snow_cm or 0.0, precip_in),
            ))
    hourly.sort(key=lambda sample: sample.time)

    return CanonicalWeather(current=current, hourly=hourly, daily=daily)


class WeatherApiProvider(WeatherProvider):
    name = settings.PROVIDER_WEATHERAPI

    def __init__(self, api_key: str = None, transport=None):
        super().__init__(transport)
        self.api_key = api_key

    def fetch(self, lat: float, lon: float) -> CanonicalWeather:
        """
        Fetch a 7-day forecast. Fails before any network I/O without a key.

        Raises:
            MissingApiKeyError: No API key configured
        """
        if not self.api_key:
            raise MissingApiKeyError(self.name)
        params = {
            'key': self.api_key,
            'q': f"{lat},{lon}",
            'days': FORECAST_DAYS,
            'aqi': 'no',
            'alerts': 'no',
        }
        payload, elapsed_ms = self.transport.get_json(settings.WEATHERAPI_URL, params=params)
        weather = normalize_weatherapi(payload)
        weather.source = self.name
        weather.response_time = elapsed_ms
        return weather
