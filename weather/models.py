"""
Canonical Weather Records
=========================
The single normalized shape every provider is converted into.

Units are fixed regardless of source:
- Temperature: °F
- Wind: mph
- Precipitation / snowfall: inches
- Pressure: mb
- Humidity / chances: 0-100 percent

`to_dict()` emits the camelCase shape used for caching and JSON export;
`CanonicalWeather.from_dict()` restores a cached record.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional


# =============================================================================
# CONSTANTS
# =============================================================================
PRECIP_NONE = 'none'
PRECIP_RAIN = 'rain'
PRECIP_SNOW = 'snow'
PRECIP_FREEZING = 'freezing'    # Sleet, freezing rain and wintry mix

PRECIP_TYPES = (PRECIP_NONE, PRECIP_RAIN, PRECIP_SNOW, PRECIP_FREEZING)

DEFAULT_PRESSURE_MB = 1013.0


# =============================================================================
# COERCION HELPERS
# =============================================================================

def to_float(value, default: Optional[float] = 0.0) -> Optional[float]:
    """
    Coerce a raw provider value to float.

    Args:
        value: Raw value (number, numeric string, None)
        default: Returned when the value is missing or not numeric

    Returns:
        Float value or default
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse an instant from a provider value.

    Accepts datetimes, dates, ISO-8601 strings (including a trailing 'Z')
    and epoch seconds. Epoch values are returned in UTC.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def parse_date(value) -> Optional[date]:
    """Parse a calendar date from a date, datetime or ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class CurrentConditions:
    temperature: float
    feels_like: float
    humidity: float
    wind_speed: float
    condition: str
    pressure: Optional[float] = None
    wind_gust: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'temperature': self.temperature,
            'feelsLike': self.feels_like,
            'humidity': self.humidity,
            'pressure': self.pressure,
            'windSpeed': self.wind_speed,
            'windGust': self.wind_gust,
            'condition': self.condition,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CurrentConditions":
        return cls(
            temperature=to_float(data.get('temperature')),
            feels_like=to_float(data.get('feelsLike')),
            humidity=to_float(data.get('humidity')),
            wind_speed=to_float(data.get('windSpeed')),
            condition=str(data.get('condition') or 'Unknown'),
            pressure=to_float(data.get('pressure'), None),
            wind_gust=to_float(data.get('windGust'), None),
        )


@dataclass
class HourlySample:
    """
    One forecast hour.

    `snowfall` is None when the provider gave no snowfall value at all,
    which the scoring engine treats as lower-confidence data.
    """
    time: datetime
    temperature: float
    precipitation: float
    wind_speed: float
    snowfall: Optional[float] = None
    wind_gust: Optional[float] = None
    humidity: Optional[float] = None
    condition: Optional[str] = None
    precip_type: str = PRECIP_NONE

    def to_dict(self) -> dict:
        return {
            'time': _iso(self.time),
            'temperature': self.temperature,
            'precipitation': self.precipitation,
            'snowfall': self.snowfall,
            'windSpeed': self.wind_speed,
            'windGust': self.wind_gust,
            'humidity': self.humidity,
            'condition': self.condition,
            'precipType': self.precip_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HourlySample":
        return cls(
            time=parse_datetime(data.get('time')),
            temperature=to_float(data.get('temperature')),
            precipitation=to_float(data.get('precipitation')),
            wind_speed=to_float(data.get('windSpeed')),
            snowfall=to_float(data.get('snowfall'), None),
            wind_gust=to_float(data.get('windGust'), None),
            humidity=to_float(data.get('humidity'), None),
            condition=data.get('condition'),
            precip_type=data.get('precipType') or PRECIP_NONE,
        )


@dataclass
class DailySample:
    date: date
    temp_high: float
    temp_low: float
    precip_chance: float
    condition: str

    def to_dict(self) -> dict:
        return {
            'date': _iso(self.date),
            'tempHigh': self.temp_high,
            'tempLow': self.temp_low,
            'precipChance': self.precip_chance,
            'condition': self.condition,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailySample":
        return cls(
            date=parse_date(data.get('date')),
            temp_high=to_float(data.get('tempHigh')),
            temp_low=to_float(data.get('tempLow')),
            precip_chance=to_float(data.get('precipChance')),
            condition=str(data.get('condition') or 'Forecast'),
        )


@dataclass
class ProviderFailure:
    provider: str
    error: str

    def to_dict(self) -> dict:
        return {'provider': self.provider, 'error': self.error}


@dataclass
class CanonicalWeather:
    """
    Root aggregate returned by the failover orchestrator.

    Exactly one provider's data populates a record. `failover_level` is the
    number of higher-priority providers that failed before this one.
    """
    current: CurrentConditions
    hourly: List[HourlySample] = field(default_factory=list)
    daily: List[DailySample] = field(default_factory=list)
    source: str = ''
    failover_level: Optional[int] = None
    response_time: float = 0.0
    failures: List[ProviderFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'current': self.current.to_dict(),
            'hourly': [h.to_dict() for h in self.hourly],
            'daily': [d.to_dict() for d in self.daily],
            'source': self.source,
            'failoverLevel': self.failover_level,
            'responseTime': self.response_time,
            'failures': [f.to_dict() for f in self.failures],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CanonicalWeather":
        failover_level = data.get('failoverLevel')
        return cls(
            current=CurrentConditions.from_dict(data.get('current') or {}),
            hourly=[HourlySample.from_dict(h) for h in data.get('hourly') or []],
            daily=[DailySample.from_dict(d) for d in data.get('daily') or []],
            source=str(data.get('source') or ''),
            failover_level=int(failover_level) if failover_level is not None else None,
            response_time=to_float(data.get('responseTime')),
            failures=[
                ProviderFailure(provider=f.get('provider', ''), error=f.get('error', ''))
                for f in data.get('failures') or []
            ],
        )
