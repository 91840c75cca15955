"""
Shared fixtures for the school weather impact tests.

No test touches the network: providers and alerts receive a FakeTransport
that serves canned payloads keyed by URL fragment.
"""

from datetime import datetime, timedelta, timezone

import pytest

from data.store import LocalStore
from weather.models import CanonicalWeather, CurrentConditions, DailySample, HourlySample

BASE_DAY = datetime(2025, 1, 15)


# =============================================================================
# Fake transport
# =============================================================================

class FakeTransport:
    """
    Stand-in for weather.fetcher.Transport.

    `routes` maps a URL fragment to a payload, or to an exception instance
    that is raised when the URL is requested. The first matching fragment wins.
    """

    def __init__(self, routes=None, elapsed_ms=100.0):
        self.routes = dict(routes or {})
        self.elapsed_ms = elapsed_ms
        self.calls = []
        self.closed = False

    def get_json(self, url, params=None, headers=None):
        self.calls.append({'url': url, 'params': params, 'headers': headers})
        for fragment, response in self.routes.items():
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                return response, self.elapsed_ms
        raise AssertionError(f"Unexpected request: {url}")

    def urls(self):
        return [call['url'] for call in self.calls]

    def close(self):
        self.closed = True


class StaticProvider:
    """Provider double returning a fixed record or raising a fixed error."""

    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0
        self.closed = False

    def fetch(self, lat, lon):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result

    def close(self):
        self.closed = True


# =============================================================================
# Canonical records
# =============================================================================

def make_weather(hours=24, snowfall=0.5, temperature=30.0, wind_speed=10.0,
                 precipitation=0.1, precip_type='snow', failover_level=0,
                 start=BASE_DAY, source='Open-Meteo'):
    """Uniform hourly forecast starting at `start`."""
    hourly = [
        HourlySample(
            time=start + timedelta(hours=i),
            temperature=temperature,
            precipitation=precipitation,
            snowfall=snowfall,
            wind_speed=wind_speed,
            precip_type=precip_type,
        )
        for i in range(hours)
    ]
    daily = [
        DailySample(date=start.date(), temp_high=temperature + 4,
                    temp_low=temperature - 4, precip_chance=80, condition='Snow'),
    ]
    current = CurrentConditions(temperature=temperature, feels_like=temperature - 5,
                                humidity=85, wind_speed=wind_speed, condition='Snow',
                                pressure=1010)
    return CanonicalWeather(current=current, hourly=hourly, daily=daily,
                            source=source, failover_level=failover_level)


@pytest.fixture
def snowy_weather():
    return make_weather()


@pytest.fixture
def mild_weather():
    return make_weather(snowfall=0.0, temperature=40.0, precip_type='rain')


# =============================================================================
# Provider payloads
# =============================================================================

@pytest.fixture
def openmeteo_payload():
    times = [(BASE_DAY + timedelta(hours=i)).strftime('%Y-%m-%dT%H:%M') for i in range(24)]
    return {
        'latitude': 40.02,
        'longitude': -82.88,
        'current': {
            'temperature_2m': 29.5,
            'relative_humidity_2m': 88,
            'apparent_temperature': 21.0,
            'wind_speed_10m': 12.3,
            'wind_gusts_10m': 25.0,
            'weather_code': 73,
        },
        'hourly': {
            'time': times,
            'temperature_2m': [30.0] * 24,
            'precipitation': [0.1] * 12 + [0.0] * 12,
            'snowfall': [0.4] * 12 + [0.0] * 12,
            'wind_speed_10m': [10.0] * 24,
            'wind_gusts_10m': [18.0] * 24,
            'relative_humidity_2m': [90] * 24,
            'weather_code': [73] * 12 + [3] * 12,
        },
        'daily': {
            'time': ['2025-01-15', '2025-01-16'],
            'temperature_2m_max': [33.0, 35.0],
            'temperature_2m_min': [24.0, 27.0],
            'precipitation_probability_max': [90, 20],
            'weather_code': [75, 2],
        },
    }


@pytest.fixture
def nws_points_payload():
    return {
        'properties': {
            'forecast': 'https://api.weather.gov/gridpoints/ILN/84,80/forecast',
            'forecastHourly': 'https://api.weather.gov/gridpoints/ILN/84,80/forecast/hourly',
        }
    }


@pytest.fixture
def nws_hourly_payload():
    periods = []
    for i in range(24):
        start = datetime(2025, 1, 15, tzinfo=timezone(timedelta(hours=-5))) + timedelta(hours=i)
        periods.append({
            'number': i + 1,
            'startTime': start.isoformat(),
            'isDaytime': 6 <= start.hour < 18,
            'temperature': 28,
            'temperatureUnit': 'F',
            'windSpeed': '15 mph',
            'relativeHumidity': {'unitCode': 'wmoUnit:percent', 'value': 80},
            'shortForecast': 'Snow Likely',
        })
    return {'properties': {'periods': periods}}


@pytest.fixture
def nws_daily_payload():
    return {
        'properties': {
            'periods': [
                {
                    'number': 1,
                    'name': 'Wednesday',
                    'startTime': '2025-01-15T06:00:00-05:00',
                    'isDaytime': True,
                    'temperature': 31,
                    'temperatureUnit': 'F',
                    'probabilityOfPrecipitation': {'value': 70},
                    'shortForecast': 'Snow',
                },
                {
                    'number': 2,
                    'name': 'Wednesday Night',
                    'startTime': '2025-01-15T18:00:00-05:00',
                    'isDaytime': False,
                    'temperature': 19,
                    'temperatureUnit': 'F',
                    'probabilityOfPrecipitation': {'value': 40},
                    'shortForecast': 'Chance Snow',
                },
                {
                    'number': 3,
                    'name': 'Thursday',
                    'startTime': '2025-01-16T06:00:00-05:00',
                    'isDaytime': True,
                    'temperature': 27,
                    'temperatureUnit': 'F',
                    'probabilityOfPrecipitation': {'value': None},
                    'shortForecast': 'Mostly Cloudy',
                },
            ]
        }
    }


@pytest.fixture
def pirate_payload():
    start = int(datetime(2025, 1, 15, 5, tzinfo=timezone.utc).timestamp())    # local midnight EST
    return {
        'latitude': 40.02,
        'longitude': -82.88,
        'timezone': 'America/New_York',
        'currently': {
            'time': start,
            'summary': 'Light Snow',
            'temperature': 27.4,
            'apparentTemperature': 18.9,
            'humidity': 0.86,
            'pressure': 1008.2,
            'windSpeed': 14.1,
            'windGust': 26.0,
        },
        'hourly': {
            'data': [
                {
                    'time': start + i * 3600,
                    'summary': 'Light Snow',
                    'precipIntensity': 0.05,
                    'precipProbability': 0.8,
                    'precipType': 'snow' if i < 6 else 'sleet',
                    'snowAccumulation': 0.3,
                    'temperature': 27.0,
                    'humidity': 0.9,
                    'windSpeed': 12.0,
                    'windGust': 20.0,
                }
                for i in range(12)
            ]
        },
        'daily': {
            'data': [
                {
                    'time': start,
                    'summary': 'Snow in the morning.',
                    'temperatureHigh': 32.0,
                    'temperatureLow': 22.0,
                    'precipProbability': 0.85,
                }
            ]
        },
    }


@pytest.fixture
def weatherapi_payload():
    hours = []
    for i in range(24):
        hours.append({
            'time': f'2025-01-15 {i:02d}:00',
            'temp_f': 31.0,
            'wind_mph': 9.0,
            'gust_mph': 15.0,
            'precip_in': 0.08 if i < 8 else 0.0,
            'snow_cm': 1.27 if i < 8 else 0.0,
            'humidity': 85,
            'condition': {'text': 'Moderate snow' if i < 8 else 'Cloudy'},
        })
    return {
        'location': {'name': 'Gahanna', 'tz_id': 'America/New_York'},
        'current': {
            'temp_f': 30.2,
            'feelslike_f': 22.1,
            'humidity': 87,
            'pressure_mb': 1011.0,
            'wind_mph': 10.5,
            'gust_mph': 19.0,
            'condition': {'text': 'Moderate snow'},
        },
        'forecast': {
            'forecastday': [
                {
                    'date': '2025-01-15',
                    'day': {
                        'maxtemp_f': 33.0,
                        'mintemp_f': 25.0,
                        'daily_chance_of_rain': 10,
                        'daily_chance_of_snow': 88,
                        'condition': {'text': 'Heavy snow'},
                    },
                    'hour': hours,
                }
            ]
        },
    }


@pytest.fixture
def alerts_payload():
    return {
        'type': 'FeatureCollection',
        'features': [
            {
                'id': 'https://api.weather.gov/alerts/urn:oid:advisory',
                'properties': {
                    'id': 'urn:oid:advisory',
                    'areaDesc': 'Franklin; Delaware ; Licking',
                    'sent': '2025-01-15T03:00:00-05:00',
                    'effective': '2025-01-15T03:00:00-05:00',
                    'expires': '2025-01-15T18:00:00-05:00',
                    'severity': 'Moderate',
                    'certainty': 'Likely',
                    'urgency': 'Expected',
                    'event': 'Winter Weather Advisory',
                    'senderName': 'NWS Wilmington OH',
                    'headline': 'Winter Weather Advisory until 6 PM',
                    'description': 'Snow expected. Total accumulations of 2 to 4 inches.',
                    'instruction': 'Slow down and use caution while traveling.',
                },
            },
            {
                'id': 'https://api.weather.gov/alerts/urn:oid:warning',
                'properties': {
                    'id': 'urn:oid:warning',
                    'areaDesc': 'Franklin',
                    'effective': '2025-01-15T01:00:00-05:00',
                    'expires': '2025-01-16T07:00:00-05:00',
                    'severity': 'Severe',
                    'certainty': 'Likely',
                    'urgency': 'Expected',
                    'event': 'Winter Storm Warning',
                    'senderName': 'NWS Wilmington OH',
                    'headline': 'Winter Storm Warning until 7 AM Thursday',
                    'description': 'Heavy snow. Winds gusting as high as 40 mph.',
                    'instruction': 'Travel could be very difficult.',
                },
            },
            {
                'id': 'https://api.weather.gov/alerts/urn:oid:flood',
                'properties': {
                    'id': 'urn:oid:flood',
                    'areaDesc': 'Fairfield',
                    'effective': '2025-01-15T05:00:00-05:00',
                    'expires': '2025-01-15T20:00:00-05:00',
                    'severity': 'Moderate',
                    'event': 'Flood Watch',
                    'headline': 'Flood Watch',
                    'description': 'Flooding caused by excessive rainfall is possible.',
                },
            },
        ],
    }


# =============================================================================
# Store
# =============================================================================

class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2025, 1, 15, 5, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    s = LocalStore(':memory:', clock=clock)
    yield s
    s.close()
