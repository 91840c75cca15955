"""
Data Quality
============
A simple 0-100 quality score for an acquired weather record, based on how
far down the failover chain the data came from and which sections are
missing.
"""

from weather.models import CanonicalWeather

FAILOVER_PENALTY = 10
MISSING_SECTION_PENALTY = 15


def compute_data_quality(weather: CanonicalWeather) -> dict:
    """
    Score the quality of an acquired weather record.

    Args:
        weather: Canonical weather record (None scores as fully missing)

    Returns:
        Dictionary with 'score' (0-100), 'level' (High/Medium/Low) and
        'missing' (list of empty sections)
    """
    missing = []
    if weather is None or not weather.hourly:
        missing.append('hourly')
    if weather is None or not weather.daily:
        missing.append('daily')
    failover = (weather.failover_level or 0) if weather is not None else 0

    score = 100 - failover * FAILOVER_PENALTY - len(missing) * MISSING_SECTION_PENALTY
    score = max(0, min(100, score))

    if score >= 85:
        level = 'High'
    elif score >= 65:
        level = 'Medium'
    else:
        level = 'Low'

    return {'score': score, 'level': level, 'missing': missing}
