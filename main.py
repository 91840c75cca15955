"""
School Weather Impact - Main Orchestrator
=========================================
This is the main entry point for the prediction pipeline.

The pipeline executes the following steps:
1. Load user settings from the local store
2. Use fresh cached weather, or acquire it through provider failover
   (stale cache is the fallback when every provider fails)
3. Fetch NWS alerts (best-effort)
4. Score the school impact prediction
5. Log the prediction to history
6. Print the report and export JSON

Usage:
    python main.py

Configuration:
    Edit config/settings.py or set environment variables in .env.
"""

import logging

from config import settings
from data.store import LocalStore
from export.history_report import print_history_report
from export.json_export import export_history_to_json, export_prediction_to_json
from forecasting.engine import round_half_up, score_prediction
from weather.alerts import fetch_alerts_result
from weather.exceptions import AllProvidersFailedError
from weather.failover import FailoverWeatherLoader, build_default_providers
from weather.fetcher import Transport
from weather.models import CanonicalWeather
from weather.quality import compute_data_quality

logger = logging.getLogger(__name__)

WEATHER_CACHE = 'weather'

DISTRICT_FACTOR_LABELS = {
    'rural_bus_routes': 'rural bus routes',
    'hilly_roads': 'hilly roads',
}


def load_weather(store: LocalStore, loader: FailoverWeatherLoader, lat: float, lon: float):
    """
    Get weather from a fresh cache entry or from the providers.

    Args:
        store: Local store holding the weather cache
        loader: Failover loader used when the cache is missing or stale
        lat: Latitude
        lon: Longitude

    Returns:
        Tuple of (CanonicalWeather, from_cache)

    Raises:
        AllProvidersFailedError: Every provider failed and nothing is cached
    """
    cached = store.get_cache(WEATHER_CACHE)
    if cached is not None and not cached.is_stale:
        logger.info("Using cached weather (%d min old)", cached.age_minutes)
        return CanonicalWeather.from_dict(cached.data), True

    try:
        weather = loader.fetch_weather(lat, lon)
    except AllProvidersFailedError as e:
        if cached is None:
            raise
        logger.warning("%s; falling back to cached weather (%d min old)", e, cached.age_minutes)
        return CanonicalWeather.from_dict(cached.data), True

    store.set_cache(WEATHER_CACHE, weather.to_dict())
    return weather, False


def format_temperature(fahrenheit, units: str = 'F') -> str:
    """Render a °F reading in the user's preferred units."""
    if fahrenheit is None:
        return 'n/a'
    units = 'C' if str(units).upper() == 'C' else 'F'
    value = (fahrenheit - 32) * 5 / 9 if units == 'C' else fahrenheit
    return f"{round_half_up(value)}°{units}"


def format_clock(moment, time_format: str = '12h') -> str:
    if time_format == '24h':
        return moment.strftime('%H:%M')
    return moment.strftime('%I:%M %p').lstrip('0')


def describe_district_factors(factors: dict = None) -> str:
    enabled = [label for key, label in DISTRICT_FACTOR_LABELS.items() if (factors or {}).get(key)]
    return ', '.join(enabled) or 'none'


def print_prediction_report(result: dict, user_settings: dict = None):
    """
    Print a formatted prediction report.

    Args:
        result: Dictionary returned by run_pipeline
        user_settings: Display preferences (units, time_format) and district
                       factors. Defaults if None.
    """
    user_settings = user_settings or settings.get_default_settings()
    prediction = result['prediction']
    weather = result['weather']
    quality = result['quality']
    units = user_settings.get('units', 'F')

    print("\n" + "=" * 60)
    print("SCHOOL IMPACT PREDICTION")
    print("=" * 60)
    print(f"  Location: {result['location'].get('name', '')}")
    print(f"  Generated: {format_clock(prediction.timestamp, user_settings.get('time_format'))}")
    print(f"  Probability: {prediction.probability}%")
    print(f"  Confidence: {prediction.confidence}%")
    print(f"  Recommendation: {prediction.recommendation}")
    print(f"  Sensitivity: {prediction.sensitivity}")
    print(f"  District factors: {describe_district_factors(user_settings.get('district_factors'))}")
    if prediction.human_adjustment:
        print(f"  Field observations: {prediction.human_adjustment:+d}")

    print("\nFactors:")
    for factor in prediction.factors:
        print(f"  {factor.name:<22} score {factor.score:>3}  "
              f"x {factor.weight:.2f} = {factor.contribution:>5.1f}")
        print(f"    {factor.explanation}")

    print("\nData:")
    current = weather.current
    if current is not None:
        print(f"  Now: {format_temperature(current.temperature, units)} "
              f"(feels like {format_temperature(current.feels_like, units)}), {current.condition}")
    cache_note = " (cached)" if result['from_cache'] else ""
    print(f"  Source: {weather.source}{cache_note}")
    print(f"  Failover level: {weather.failover_level}")
    print(f"  Quality: {quality['level']} ({quality['score']})")
    for failure in weather.failures:
        print(f"  Skipped {failure.provider}: {failure.error}")

    alerts = result['alerts']
    print("\nAlerts:")
    if not alerts.ok:
        print(f"  Unavailable: {alerts.error}")
    elif not alerts.alerts:
        print("  None active")
    for alert in alerts.alerts:
        marker = "NEW " if alert.is_new else ""
        print(f"  {marker}[{alert.severity}] {alert.event} "
              f"(school {alert.school_impact}, power {alert.power_risk})")


def run_pipeline(store: LocalStore = None, loader: FailoverWeatherLoader = None,
                 verbose: bool = True, transport=None, export: bool = None) -> dict:
    """
    Run one prediction end to end.

    Args:
        store: Local store (file-backed default store if None)
        loader: Failover loader (default provider chain if None)
        verbose: Print the prediction and history reports
        transport: Transport for the default providers and the alerts fetch.
                   Opened and closed here when None.
        export: Write JSON outputs (settings.EXPORT_JSON if None)

    Returns:
        Dictionary with location, weather, from_cache, alerts, prediction,
        quality and health

    Raises:
        AllProvidersFailedError: Every provider failed and nothing is cached
    """
    store = store or LocalStore()
    user_settings = store.get_settings()
    location = user_settings['location']
    lat, lon = float(location['lat']), float(location['lon'])

    owns_transport = transport is None
    transport = transport or Transport()
    try:
        if loader is None:
            loader = FailoverWeatherLoader(build_default_providers(user_settings['api_keys'], transport))

        weather, from_cache = load_weather(store, loader, lat, lon)
        alerts = fetch_alerts_result(lat, lon, store=store, transport=transport)
    finally:
        if owns_transport:
            transport.close()

    prediction = score_prediction(weather, user_settings, store.get_observations())

    store.add_history({
        'date': prediction.timestamp.date().isoformat(),
        'probability': prediction.probability,
        'confidence': prediction.confidence,
        'recommendation': prediction.recommendation,
        'sensitivity': prediction.sensitivity,
        'source': weather.source,
    })

    result = {
        'location': location,
        'weather': weather,
        'from_cache': from_cache,
        'alerts': alerts,
        'prediction': prediction,
        'quality': compute_data_quality(weather),
        'health': loader.get_provider_health(),
    }

    if verbose:
        print_prediction_report(result, user_settings)
        print_history_report(store.get_history())

    if export is None:
        export = settings.EXPORT_JSON
    if export:
        export_prediction_to_json(prediction, weather, alerts=alerts.alerts)
        export_history_to_json(store.get_history())

    return result


def main():
    """Main entry point for the prediction pipeline."""
    settings.configure_logging()
    settings.ensure_directories()

    print("=" * 60)
    print("SCHOOL WEATHER IMPACT")
    print("=" * 60)

    with LocalStore() as store:
        try:
            run_pipeline(store=store)
        except AllProvidersFailedError as e:
            print(f"\n{e}")
            for failure in e.failures:
                print(f"  {failure.provider}: {failure.error}")
            raise SystemExit(1)


if __name__ == "__main__":
    main()
