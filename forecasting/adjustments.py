"""
Prediction Adjustments Module
=============================
Adjustments applied on top of the weighted weather factors:

- Human field observations (roads, ice, plows) reported by people on the ground
- District sensitivity nudge (conservative districts act earlier)
- Recommendation thresholds, which also move with sensitivity
"""

from enum import Enum

from config.sensitivity import get_sensitivity_profile

RECOMMEND_NORMAL = 'Normal'
RECOMMEND_DELAY = 'Delay possible'
RECOMMEND_CLOSE = 'Closing likely'

MAX_HUMAN_ADJUSTMENT = 10


# =============================================================================
# FIELD OBSERVATION ENUM
# =============================================================================

class FieldObservation(Enum):
    """
    Boolean observations that can be reported before a decision.
    The value is the key used in the stored observations dictionary.
    """
    ROADS_UNTREATED = "roads_untreated"    # Roads not salted/plowed yet
    ICE_REPORTED = "ice_reported"          # Ice reported on roads or walks
    TEMPS_FALLING = "temps_falling"        # Temperatures dropping overnight
    PLOWS_SEEN = "plows_seen"              # Plows out working routes
    ROADS_CLEAR = "roads_clear"            # Main roads reported clear


# Probability points added when an observation is reported
OBSERVATION_POINTS = {
    FieldObservation.ROADS_UNTREATED: 4,
    FieldObservation.ICE_REPORTED: 5,
    FieldObservation.TEMPS_FALLING: 3,
    FieldObservation.PLOWS_SEEN: -3,
    FieldObservation.ROADS_CLEAR: -4,
}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_human_adjustment(observations: dict = None) -> int:
    """
    Sum the points for every reported observation.

    Args:
        observations: Dictionary of observation key -> bool

    Returns:
        Adjustment in probability points, clamped to [-10, 10]
    """
    observations = observations or {}
    adjustment = sum(
        points
        for observation, points in OBSERVATION_POINTS.items()
        if observations.get(observation.value)
    )
    return int(clamp(adjustment, -MAX_HUMAN_ADJUSTMENT, MAX_HUMAN_ADJUSTMENT))


def sensitivity_nudge(sensitivity: str = None) -> int:
    """Probability points for a district sensitivity (+5 / 0 / -5)."""
    return get_sensitivity_profile(sensitivity)['PROBABILITY_NUDGE']


def recommendation_thresholds(sensitivity: str = None) -> tuple:
    """
    Get the (delay, close) thresholds for a sensitivity.

    Returns:
        Tuple of (delay_threshold, close_threshold)
    """
    profile = get_sensitivity_profile(sensitivity)
    return profile['DELAY_THRESHOLD'], profile['CLOSE_THRESHOLD']


def recommendation_from_probability(probability: float, sensitivity: str = None) -> str:
    """
    Map a probability to a recommendation. Thresholds are inclusive.

    Args:
        probability: Final probability (0-100)
        sensitivity: District sensitivity

    Returns:
        'Closing likely', 'Delay possible' or 'Normal'
    """
    delay_threshold, close_threshold = recommendation_thresholds(sensitivity)
    if probability >= close_threshold:
        return RECOMMEND_CLOSE
    if probability >= delay_threshold:
        return RECOMMEND_DELAY
    return RECOMMEND_NORMAL
