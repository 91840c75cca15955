"""
District Sensitivity Profiles
=============================
Define how eagerly a district closes or delays for winter weather.
Each profile carries the recommendation thresholds and the probability
nudge applied by the scoring engine.
"""

# =============================================================================
# DEFAULT PROFILE
# =============================================================================
NORMAL_PROFILE = {
    'profile_name': 'normal',
    'description': 'Average district',
    'DELAY_THRESHOLD': 35,
    'CLOSE_THRESHOLD': 65,
    'PROBABILITY_NUDGE': 0,
}

# =============================================================================
# PRE-DEFINED PROFILES
# =============================================================================
# Conservative districts delay/close early
CONSERVATIVE_PROFILE = {
    'profile_name': 'conservative',
    'description': 'Closes early (urban, cautious)',
    'DELAY_THRESHOLD': 30,
    'CLOSE_THRESHOLD': 60,
    'PROBABILITY_NUDGE': 5,
}

# Aggressive districts tolerate more weather before acting
AGGRESSIVE_PROFILE = {
    'profile_name': 'aggressive',
    'description': 'Tolerates more snow (rural, tough)',
    'DELAY_THRESHOLD': 40,
    'CLOSE_THRESHOLD': 70,
    'PROBABILITY_NUDGE': -5,
}


SENSITIVITY_PROFILES = {
    profile['profile_name']: profile
    for profile in (CONSERVATIVE_PROFILE, NORMAL_PROFILE, AGGRESSIVE_PROFILE)
}


def normalize_sensitivity(sensitivity: str = None) -> str:
    """
    Map a configured sensitivity onto a known profile name.

    Args:
        sensitivity: Configured sensitivity ('conservative', 'normal', 'aggressive')

    Returns:
        The profile name, 'normal' when unknown or missing
    """
    name = str(sensitivity or '').strip().lower()
    return name if name in SENSITIVITY_PROFILES else NORMAL_PROFILE['profile_name']


def get_sensitivity_profile(sensitivity: str = None) -> dict:
    """
    Get the profile for a configured sensitivity.

    Args:
        sensitivity: Configured sensitivity name

    Returns:
        Profile dictionary; unknown names fall back to the normal profile
    """
    return SENSITIVITY_PROFILES[normalize_sensitivity(sensitivity)]
