"""
Tests for the failover orchestrator and provider health.
"""

from datetime import datetime, timezone

import pytest

from conftest import FakeTransport, StaticProvider, make_weather
from weather.exceptions import (
    AllProvidersFailedError,
    HTTPStatusError,
    ConfigurationError,
    MissingApiKeyError,
    RequestTimeoutError,
)
from weather.failover import FailoverWeatherLoader, acquire_weather, build_default_providers
from weather.fetch_openmeteo import OpenMeteoProvider
from weather.health import ProviderHealthRegistry
from weather.models import CurrentConditions


def fresh_record(**kwargs):
    weather = make_weather(**kwargs)
    weather.source = ''
    weather.failover_level = None
    return weather


class TestFailoverOrder:

    def test_primary_success_skips_the_rest(self):
        a = StaticProvider('A', result=fresh_record())
        b = StaticProvider('B', result=fresh_record())
        loader = FailoverWeatherLoader([a, b])
        weather = loader.fetch_weather(40.0, -82.9)
        assert weather.failover_level == 0
        assert weather.failures == []
        assert weather.source == 'A'
        assert b.calls == 0

    def test_timeout_then_success(self):
        a = StaticProvider('Open-Meteo', error=RequestTimeoutError())
        b = StaticProvider('NWS', result=fresh_record())
        loader = FailoverWeatherLoader([a, b])
        weather = loader.fetch_weather(40.0, -82.9)

        assert weather.failover_level == 1
        assert [f.to_dict() for f in weather.failures] == [
            {'provider': 'Open-Meteo', 'error': 'Request timeout'}
        ]
        assert loader.health.get('Open-Meteo').status == 'Down'
        assert loader.health.get('Open-Meteo').last_error == 'Request timeout'
        assert loader.health.get('NWS').status == 'OK'

    def test_failures_accumulate_in_attempt_order(self):
        providers = [
            StaticProvider('A', error=RequestTimeoutError()),
            StaticProvider('B', error=HTTPStatusError(500, 'Internal Server Error')),
            StaticProvider('C', error=MissingApiKeyError('C')),
            StaticProvider('D', result=fresh_record()),
        ]
        weather = FailoverWeatherLoader(providers).fetch_weather(40.0, -82.9)
        assert weather.failover_level == 3
        assert [f.provider for f in weather.failures] == ['A', 'B', 'C']
        assert weather.failures[1].error == 'HTTP 500: Internal Server Error'
        assert weather.failures[2].error == 'C API key missing'

    def test_explicit_failover_level_is_kept(self):
        record = fresh_record()
        record.failover_level = 2
        loader = FailoverWeatherLoader([StaticProvider('A', result=record)])
        assert loader.fetch_weather(40.0, -82.9).failover_level == 2

    def test_all_fail_raises_with_failures(self):
        providers = [
            StaticProvider('A', error=RequestTimeoutError()),
            StaticProvider('B', error=ValueError('boom')),
        ]
        loader = FailoverWeatherLoader(providers)
        with pytest.raises(AllProvidersFailedError) as exc:
            loader.fetch_weather(40.0, -82.9)
        assert str(exc.value) == 'All providers failed'
        assert [f.provider for f in exc.value.failures] == ['A', 'B']
        assert loader.health.get('B').status == 'Down'


class TestHealth:

    def test_invalid_current_marks_degraded_but_returns(self):
        record = fresh_record()
        record.current = CurrentConditions(temperature=30.0, feels_like=25.0, humidity=150,
                                           wind_speed=5.0, condition='Snow')
        loader = FailoverWeatherLoader([StaticProvider('A', result=record)])
        weather = loader.fetch_weather(40.0, -82.9)
        assert weather is record
        health = loader.health.get('A')
        assert health.status == 'Degraded'
        assert 'humidity must be <= 100' in health.last_error

    def test_loaders_do_not_share_health(self):
        first = FailoverWeatherLoader([StaticProvider('A', error=RequestTimeoutError()),
                                       StaticProvider('B', result=fresh_record())])
        second = FailoverWeatherLoader([StaticProvider('B', result=fresh_record())])
        first.fetch_weather(40.0, -82.9)
        second.fetch_weather(40.0, -82.9)
        assert 'A' in first.health
        assert 'A' not in second.health

    def test_registry_timestamps(self):
        now = datetime(2025, 1, 15, 6, 0, tzinfo=timezone.utc)
        registry = ProviderHealthRegistry(clock=lambda: now)
        registry.update('A', 'Down', 'Request timeout')
        registry.update('A', 'OK', response_time=210.0)
        record = registry.get('A')
        assert record.status == 'OK'
        assert record.last_success == now
        assert record.last_failure == now
        assert record.last_error == ''
        assert record.response_time == 210.0

    def test_snapshot_is_plain_dicts(self):
        loader = FailoverWeatherLoader([StaticProvider('A', result=fresh_record())])
        loader.fetch_weather(40.0, -82.9)
        snapshot = loader.get_provider_health()
        assert snapshot['A']['status'] == 'OK'
        assert len(loader.health) == 1


class TestDefaultChain:

    def test_priority_order(self):
        names = [p.name for p in build_default_providers({}, FakeTransport())]
        assert names == ['Open-Meteo', 'NWS', 'Pirate Weather', 'WeatherAPI']

    def test_open_meteo_timeout_falls_back_to_nws(self, nws_points_payload,
                                                   nws_hourly_payload, nws_daily_payload):
        transport = FakeTransport({
            'open-meteo': RequestTimeoutError(),
            '/points/': nws_points_payload,
            '/forecast/hourly': nws_hourly_payload,
            '/forecast': nws_daily_payload,
        })
        health = ProviderHealthRegistry()
        weather = acquire_weather(40.0, -82.9, api_keys={}, health=health, transport=transport)
        assert weather.source == 'NWS'
        assert weather.failover_level == 1
        assert weather.failures[0].error == 'Request timeout'
        assert health.get('Open-Meteo').status == 'Down'
        assert health.get('NWS').status == 'OK'

    def test_keyless_chain_fails_without_keyed_io(self, monkeypatch):
        monkeypatch.setattr('config.settings.PIRATE_WEATHER_API_KEY', '')
        monkeypatch.setattr('config.settings.WEATHERAPI_API_KEY', '')
        transport = FakeTransport({
            'open-meteo': HTTPStatusError(503, 'Service Unavailable'),
            '/points/': HTTPStatusError(500, 'Internal Server Error'),
        })
        with pytest.raises(AllProvidersFailedError) as exc:
            acquire_weather(40.0, -82.9, api_keys={}, transport=transport)
        assert [f.provider for f in exc.value.failures] == [
            'Open-Meteo', 'NWS', 'Pirate Weather', 'WeatherAPI'
        ]
        assert len(transport.calls) == 2

    def test_priority_from_settings(self, monkeypatch):
        monkeypatch.setattr('config.settings.PROVIDER_PRIORITY', ['NWS', 'Open-Meteo'])
        names = [p.name for p in build_default_providers({}, FakeTransport())]
        assert names == ['NWS', 'Open-Meteo']

    def test_explicit_priority_wins(self):
        providers = build_default_providers({}, FakeTransport(), priority=['WeatherAPI'])
        assert [p.name for p in providers] == ['WeatherAPI']

    def test_unknown_provider_name_is_rejected(self):
        with pytest.raises(ConfigurationError):
            build_default_providers({}, FakeTransport(), priority=['Open-Meteo', 'Dark Sky'])


class TestTransportLifecycle:

    def test_loader_closes_every_provider(self):
        providers = [StaticProvider('A', result=fresh_record()), StaticProvider('B')]
        with FailoverWeatherLoader(providers) as loader:
            loader.fetch_weather(40.0, -82.9)
        assert all(p.closed for p in providers)

    def test_shared_transport_is_left_open(self):
        transport = FakeTransport()
        for provider in build_default_providers({}, transport):
            provider.close()
        assert not transport.closed

    def test_provider_closes_transport_it_opened(self, monkeypatch):
        transport = FakeTransport()
        monkeypatch.setattr('weather.base.Transport', lambda: transport)
        provider = OpenMeteoProvider()
        assert provider.transport is transport
        provider.close()
        assert transport.closed

    def test_acquire_weather_leaves_caller_transport_open(self, nws_points_payload,
                                                          nws_hourly_payload, nws_daily_payload):
        transport = FakeTransport({
            'open-meteo': RequestTimeoutError(),
            '/points/': nws_points_payload,
            '/forecast/hourly': nws_hourly_payload,
            '/forecast': nws_daily_payload,
        })
        acquire_weather(40.0, -82.9, api_keys={}, transport=transport)
        assert not transport.closed
