"""
Scoring Engine
==============
Explainable, weighted heuristic for the school impact of winter weather.

This module handles:
- Commute and overnight window calculation
- Six independently scored factors (0-100 each)
- Weighted base probability
- Confidence from data completeness and failover depth
- Final prediction with its full factor breakdown

The engine never raises on sparse data; it lowers confidence instead.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import List, Optional, Tuple

from config import settings
from config.sensitivity import normalize_sensitivity
from forecasting.adjustments import (
    calculate_human_adjustment,
    clamp,
    recommendation_from_probability,
    sensitivity_nudge,
)
from weather.models import CanonicalWeather, HourlySample, to_float


# =============================================================================
# FACTOR WEIGHTS
# =============================================================================
WEIGHTS = {
    'overnightSnow': 0.28,
    'commuteSnow': 0.24,
    'iceRisk': 0.22,
    'wind': 0.12,
    'temperatureProfile': 0.10,
    'timingAlignment': 0.04,
}

BASE_CONFIDENCE = 85
CONFIDENCE_PER_FAILOVER = 6
CONFIDENCE_PER_MISSING_SAMPLE = 1.5
CONFIDENCE_MISSING_SNOWFALL = 6
MIN_HOURLY_SAMPLES = 24

# Points per qualifying hour; 16 points maps to a full ice score
ICE_POINTS_FULL_SCALE = 16


@dataclass(frozen=True)
class Factor:
    name: str
    score: int
    weight: float
    contribution: float
    explanation: str
    details: Mapping = field(default_factory=dict)

    def __post_init__(self):
        # Read-only view over a private copy
        object.__setattr__(self, 'details', MappingProxyType(dict(self.details)))

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'score': self.score,
            'weight': self.weight,
            'contribution': self.contribution,
            'explanation': self.explanation,
            'details': dict(self.details),
        }


@dataclass(frozen=True)
class Prediction:
    probability: int
    confidence: int
    recommendation: str
    factors: Tuple[Factor, ...]
    timestamp: datetime
    human_adjustment: int
    sensitivity: str
    base_probability: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'probability': self.probability,
            'confidence': self.confidence,
            'recommendation': self.recommendation,
            'factors': [f.to_dict() for f in self.factors],
            'timestamp': self.timestamp.isoformat(),
            'humanAdjustment': self.human_adjustment,
            'sensitivity': self.sensitivity,
            'baseProbability': self.base_probability,
        }


# =============================================================================
# TIME WINDOWS
# =============================================================================

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_hm(hm) -> Tuple[int, int]:
    """
    Parse an "HH:MM" string into (hour, minute).

    Non-numeric parts fall back to 0.
    """
    parts = str(hm or '00:00').split(':')
    values = []
    for part in (parts + ['0'])[:2]:
        try:
            values.append(int(part))
        except ValueError:
            values.append(0)
    return values[0], values[1]


def wall_time(moment: datetime) -> datetime:
    """Local wall-clock reading of a sample time, without its UTC offset."""
    return moment.replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return wall_time(moment).replace(hour=0, minute=0, second=0, microsecond=0)


def compute_commute_window(base_day: datetime, school_times: dict = None) -> Tuple[datetime, datetime]:
    """
    Build the commute window for a day.

    Args:
        base_day: Midnight (wall clock) of the day being scored
        school_times: Dictionary with bus_time and first_bell ("HH:MM")

    Returns:
        Tuple of (window_start, window_end) as naive wall-clock times
    """
    school_times = school_times or {}
    bus_h, bus_m = parse_hm(school_times.get('bus_time') or '07:00')
    bell_h, bell_m = parse_hm(school_times.get('first_bell') or '08:00')
    window_start = base_day.replace(hour=bus_h % 24, minute=bus_m % 60)
    window_end = base_day.replace(hour=bell_h % 24, minute=bell_m % 60)
    return window_start, window_end


def slice_between(hourly: List[HourlySample], start: datetime, end: datetime) -> List[HourlySample]:
    """
    Samples whose local wall-clock time falls in [start, end).

    Windows are wall-clock so a bus time stays 07:00 across a daylight
    saving change, whatever UTC offset each sample carries.
    """
    start, end = wall_time(start), wall_time(end)
    return [h for h in hourly if h.time is not None and start <= wall_time(h.time) < end]


def sum_snow(hourly: List[HourlySample]) -> float:
    return sum(to_float(h.snowfall) for h in hourly)


# =============================================================================
# FACTOR SCORES
# =============================================================================

def score_snow_inches(inches: float) -> float:
    """
    Piecewise snowfall score: 0" -> 0, 1" -> 25, 2" -> 45, 4" -> 75, 6"+ -> 100.
    """
    x = max(0.0, to_float(inches))
    if x == 0:
        return 0.0
    if x < 1:
        return 10 + x * 15
    if x < 2:
        return 25 + (x - 1) * 20
    if x < 4:
        return 45 + (x - 2) * 15
    if x < 6:
        return 75 + (x - 4) * 12.5
    return 100.0


def ice_points(sample: HourlySample) -> float:
    """
    Ice points for one hour. Only hours with precipitation count.

    Temperature bands (°F): <=20 -> 0.5, <28 -> 1.0, <=33 -> 2.0, warmer -> 0.25.
    Freezing or sleet precipitation adds one point.
    """
    temp = to_float(sample.temperature, None)
    if temp is None or to_float(sample.precipitation) <= 0:
        return 0.0

    if temp <= 20:
        points = 0.5
    elif temp < 28:
        points = 1.0
    elif temp <= 33:
        points = 2.0
    else:
        points = 0.25

    precip_type = str(sample.precip_type or '').lower()
    if 'freezing' in precip_type or 'sleet' in precip_type:
        points += 1.0
    return points


def score_ice_risk(hourly: List[HourlySample]) -> Tuple[float, float]:
    """
    Returns:
        Tuple of (score, total_points)
    """
    points = sum(ice_points(h) for h in hourly)
    return clamp(points / ICE_POINTS_FULL_SCALE * 100, 0, 100), points


def score_wind(max_wind: float) -> float:
    if max_wind < 10:
        return 5.0
    if max_wind < 20:
        return 25.0
    if max_wind < 30:
        return 60.0
    if max_wind < 40:
        return 85.0
    return 100.0


def score_temperature_profile(mean_temp: Optional[float]) -> float:
    # Unknown temperatures score as mild
    if mean_temp is None:
        return 25.0
    if mean_temp >= 38:
        return 5.0
    if mean_temp >= 33:
        return 25.0
    if mean_temp >= 28:
        return 50.0
    if mean_temp >= 20:
        return 75.0
    return 90.0


def score_timing_alignment(commute_snow: float, day_snow: float) -> float:
    """Share of the day's snowfall that lands inside the commute window, 0-100."""
    if day_snow <= 0:
        return 0.0
    return float(round_half_up(clamp(commute_snow / day_snow, 0, 1) * 100))


def max_wind_speed(hourly: List[HourlySample]) -> float:
    return max((to_float(h.wind_speed) for h in hourly), default=0.0)


def mean_temperature(hourly: List[HourlySample]) -> Optional[float]:
    temps = [t for t in (to_float(h.temperature, None) for h in hourly) if t is not None]
    if not temps:
        return None
    return sum(temps) / len(temps)


# =============================================================================
# CONFIDENCE
# =============================================================================

def compute_confidence(weather: CanonicalWeather) -> int:
    """
    Confidence in the prediction, 0-100.

    Starts at 85 and drops for each skipped provider, for each hourly sample
    short of a full day, and once if any hour has no snowfall value.
    """
    confidence = float(BASE_CONFIDENCE)
    confidence -= (weather.failover_level or 0) * CONFIDENCE_PER_FAILOVER

    n_samples = len(weather.hourly)
    if n_samples < MIN_HOURLY_SAMPLES:
        confidence -= (MIN_HOURLY_SAMPLES - n_samples) * CONFIDENCE_PER_MISSING_SAMPLE

    if any(h.snowfall is None for h in weather.hourly):
        confidence -= CONFIDENCE_MISSING_SNOWFALL

    return round_half_up(clamp(confidence, 0, 100))


# =============================================================================
# PREDICTION
# =============================================================================

def build_factor(name: str, score: float, weight: float, explanation: str,
                 details: dict = None) -> Factor:
    return Factor(
        name=name,
        score=round_half_up(score),
        weight=weight,
        contribution=round(score * weight, 1),
        explanation=explanation,
        details=details or {},
    )


def _coerce_weather(weather) -> CanonicalWeather:
    if isinstance(weather, CanonicalWeather):
        return weather
    if isinstance(weather, Mapping):
        return CanonicalWeather.from_dict(weather)
    raise TypeError(f"Cannot score weather of type {type(weather).__name__}")


def calculate(weather, config: dict = None, observations: dict = None,
              now: datetime = None) -> Prediction:
    """
    Score the school impact of a canonical weather record.

    Args:
        weather: CanonicalWeather (or its camelCase dictionary form)
        config: Settings dictionary (school_times, district_sensitivity)
        observations: Human field observations (key -> bool)
        now: Reference instant for the timestamp and the empty-forecast day

    Returns:
        Prediction with its factor breakdown
    """
    weather = _coerce_weather(weather)
    config = config or settings.get_default_settings()
    sensitivity = normalize_sensitivity(config.get('district_sensitivity'))
    now = now or datetime.now()

    hourly = sorted(
        (h for h in weather.hourly if h.time is not None),
        key=lambda h: h.time,
    )
    base_day = start_of_day(hourly[0].time if hourly else now)
    window_start, window_end = compute_commute_window(base_day, config.get('school_times'))

    overnight_slice = slice_between(hourly, base_day, window_start)
    commute_slice = slice_between(hourly, window_start, window_end)
    morning_slice = slice_between(hourly, base_day, window_end)
    day_slice = slice_between(hourly, base_day, base_day + timedelta(days=1))

    overnight_snow = sum_snow(overnight_slice)
    commute_snow = sum_snow(commute_slice)
    day_snow = sum_snow(day_slice)
    ice_score, ice_total = score_ice_risk(morning_slice)
    max_wind = max_wind_speed(morning_slice)
    mean_temp = mean_temperature(morning_slice)

    factors = (
        build_factor(
            'Overnight Snow',
            score_snow_inches(overnight_snow),
            WEIGHTS['overnightSnow'],
            f'Estimated overnight snowfall: {overnight_snow:.1f}" (midnight to bus time).',
            {'overnightSnow': round(overnight_snow, 2), 'hours': len(overnight_slice)},
        ),
        build_factor(
            'Morning Commute Snow',
            score_snow_inches(commute_snow),
            WEIGHTS['commuteSnow'],
            f'Estimated snowfall during the commute window: {commute_snow:.1f}".',
            {'commuteSnow': round(commute_snow, 2), 'hours': len(commute_slice)},
        ),
        build_factor(
            'Ice Risk',
            ice_score,
            WEIGHTS['iceRisk'],
            'Risk increases when temps hover near freezing and precipitation is present.',
            {'icePoints': ice_total},
        ),
        build_factor(
            'Wind / Blowing Snow',
            score_wind(max_wind),
            WEIGHTS['wind'],
            'High wind can reduce visibility and create drifting/blowing snow.',
            {'maxWind': max_wind},
        ),
        build_factor(
            'Temperature Profile',
            score_temperature_profile(mean_temp),
            WEIGHTS['temperatureProfile'],
            'Colder temps help snow/ice stick around; warmer temps reduce impacts.',
            {'meanTemperature': round(mean_temp, 1) if mean_temp is not None else None},
        ),
        build_factor(
            'Timing Alignment',
            score_timing_alignment(commute_snow, day_snow),
            WEIGHTS['timingAlignment'],
            'Snow falling during the commute window tends to matter more than snow outside it.',
            {'commuteSnow': round(commute_snow, 2), 'daySnow': round(day_snow, 2)},
        ),
    )

    base_probability = sum(f.score * f.weight for f in factors)
    human_adjustment = calculate_human_adjustment(observations)
    probability = round_half_up(
        clamp(base_probability + human_adjustment + sensitivity_nudge(sensitivity), 0, 100)
    )

    return Prediction(
        probability=probability,
        confidence=compute_confidence(weather),
        recommendation=recommendation_from_probability(probability, sensitivity),
        factors=factors,
        timestamp=now,
        human_adjustment=human_adjustment,
        sensitivity=sensitivity,
        base_probability=round(base_probability, 2),
    )


def score_prediction(weather, config: dict = None, observations: dict = None) -> Prediction:
    """Public entry point used by the pipeline."""
    return calculate(weather, config, observations)
