"""
Global Settings and Configuration
=================================
Central configuration for the school weather impact system.
All configurable parameters are defined here for easy modification.
"""

import logging
import os
from copy import deepcopy

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# PATH CONFIGURATION
# =============================================================================
# Base directory of this project
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Output directories
OUTPUT_DIR = os.path.join(BASE_DIR, "output")
JSON_OUTPUT_DIR = os.path.join(OUTPUT_DIR, "json")
HISTORY_JSON_PATH = os.path.join(JSON_OUTPUT_DIR, "history.json")

# Data store directory (DuckDB database)
DATA_STORE_DIR = os.environ.get('SNOWDAY_DATA_DIR') or os.path.join(BASE_DIR, "data_store")
STORE_DB_PATH = os.path.join(DATA_STORE_DIR, "snowday.db")

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'

# =============================================================================
# NETWORK CONFIGURATION
# =============================================================================
REQUEST_TIMEOUT_MS = 6000   # Per-request timeout
REQUEST_RETRIES = 1         # Extra attempts, only after a timeout

# Identifies this client to providers that ask for it (api.weather.gov)
USER_AGENT = 'SchoolWeatherImpact/1.0 (github.com/school-weather-impact)'

# =============================================================================
# PROVIDER ENDPOINTS
# =============================================================================
OPEN_METEO_URL = 'https://api.open-meteo.com/v1/forecast'
NWS_BASE_URL = 'https://api.weather.gov'
PIRATE_WEATHER_URL = 'https://api.pirateweather.net/forecast'
WEATHERAPI_URL = 'https://api.weatherapi.com/v1/forecast.json'

# Provider display names, in failover priority order
PROVIDER_OPEN_METEO = 'Open-Meteo'
PROVIDER_NWS = 'NWS'
PROVIDER_PIRATE_WEATHER = 'Pirate Weather'
PROVIDER_WEATHERAPI = 'WeatherAPI'

DEFAULT_PROVIDER_PRIORITY = [
    PROVIDER_OPEN_METEO,
    PROVIDER_NWS,
    PROVIDER_PIRATE_WEATHER,
    PROVIDER_WEATHERAPI,
]

# Comma-separated display names, e.g. "NWS,Open-Meteo"
PROVIDER_PRIORITY = [
    name.strip()
    for name in os.environ.get('PROVIDER_PRIORITY', ','.join(DEFAULT_PROVIDER_PRIORITY)).split(',')
    if name.strip()
]

# =============================================================================
# WEATHER API KEYS
# =============================================================================
# These are loaded from environment variables (set in .env file)
PIRATE_WEATHER_API_KEY = os.environ.get('PIRATE_WEATHER_API_KEY', '')
WEATHERAPI_API_KEY = os.environ.get('WEATHERAPI_API_KEY', '')

# =============================================================================
# CACHE AND HISTORY
# =============================================================================
CACHE_STALE_MINUTES = 30        # Cached weather older than this is stale
HISTORY_RETENTION_DAYS = 9      # Prediction history kept for ~9 days
HISTORY_MAX_ITEMS = 200         # Hard cap on history entries

# =============================================================================
# OUTPUT OPTIONS
# =============================================================================
EXPORT_JSON = os.environ.get('EXPORT_JSON', 'true').lower() in ('1', 'true', 'yes')

# =============================================================================
# DEFAULT LOCATION
# =============================================================================
DEFAULT_LOCATION = {
    'name': os.environ.get('DEFAULT_LOCATION_NAME', 'Gahanna, OH'),
    'lat': float(os.environ.get('DEFAULT_LAT', '40.0192')),
    'lon': float(os.environ.get('DEFAULT_LON', '-82.8794')),
}

# =============================================================================
# SCHOOL SCHEDULE
# =============================================================================
# Times are local wall-clock "HH:MM" strings
DEFAULT_SCHOOL_TIMES = {
    'bus_time': '07:00',        # First bus pickup (commute window start)
    'first_bell': '08:00',      # First bell (commute window end)
    'commute_window': 120,      # Minutes, informational
}

DEFAULT_SENSITIVITY = 'normal'

# =============================================================================
# DEFAULT USER SETTINGS
# =============================================================================
DEFAULT_SETTINGS = {
    'location': DEFAULT_LOCATION,
    'units': 'F',
    'time_format': '12h',
    'school_times': DEFAULT_SCHOOL_TIMES,
    'district_sensitivity': DEFAULT_SENSITIVITY,
    'district_factors': {
        'rural_bus_routes': False,
        'hilly_roads': False,
    },
    'api_keys': {
        'pirate_weather': PIRATE_WEATHER_API_KEY,
        'weatherapi': WEATHERAPI_API_KEY,
    },
}

# Nested sections merged key-by-key over the defaults
MERGED_SETTINGS_SECTIONS = ('location', 'school_times', 'district_factors', 'api_keys')


def get_default_settings() -> dict:
    """
    Get a fresh copy of the default user settings.

    Returns:
        Dictionary of default settings, safe to mutate
    """
    return deepcopy(DEFAULT_SETTINGS)


def get_output_paths(date_str: str) -> dict:
    """
    Generate output file paths for a given prediction date.

    Args:
        date_str: Prediction date string (YYYY-MM-DD)

    Returns:
        Dictionary with the 'prediction' JSON output path
    """
    return {
        'prediction': os.path.join(JSON_OUTPUT_DIR, f'prediction_{date_str}.json'),
    }


def ensure_directories():
    """Create output directories if they don't exist."""
    for dir_path in [OUTPUT_DIR, JSON_OUTPUT_DIR, DATA_STORE_DIR]:
        os.makedirs(dir_path, exist_ok=True)


def configure_logging(level: str = None):
    """Configure root logging from LOG_LEVEL."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
