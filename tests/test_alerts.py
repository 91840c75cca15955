"""
Tests for alert normalization, impact classification and new-alert detection.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from conftest import FakeTransport
from weather.alerts import (
    calculate_impact,
    fetch_alerts,
    fetch_alerts_result,
    normalize_alert,
    sort_alerts,
    split_areas,
)
from weather.exceptions import NetworkError, RequestTimeoutError


class TestImpactClassifier:

    def test_ice_storm(self):
        impact = calculate_impact('Ice Storm Warning', 'Significant icing expected.')
        assert impact['school_impact'] == 'High'
        assert impact['power_risk'] == 'High'

    def test_winter_storm_warning_with_wind(self):
        impact = calculate_impact('Winter Storm Warning', 'Heavy snow and gusty wind.')
        assert impact['school_impact'] == 'High'
        assert impact['power_risk'] == 'Med'

    def test_winter_storm_warning_without_wind(self):
        impact = calculate_impact('Winter Storm Warning', 'Heavy snow.')
        assert impact['power_risk'] == 'Low'

    def test_blizzard_needs_warning(self):
        assert calculate_impact('Blizzard Warning', '')['school_impact'] == 'High'
        # "Blizzard Watch" falls through to the winter keyword rule via "snow"
        impact = calculate_impact('Blizzard Watch', 'Blowing snow possible.')
        assert impact['school_impact'] == 'Med'

    def test_winter_weather_advisory(self):
        impact = calculate_impact('Winter Weather Advisory', 'Light snow, windy at times.')
        assert impact['school_impact'] == 'Med'
        assert impact['power_risk'] == 'Low'

    def test_winter_keyword_fallback(self):
        impact = calculate_impact('Special Weather Statement', 'Freezing drizzle and wind.')
        assert impact['school_impact'] == 'Med'
        assert impact['power_risk'] == 'Med'

    def test_non_winter(self):
        impact = calculate_impact('Flood Watch', 'Heavy rainfall possible.')
        assert impact == {
            'school_impact': 'Low',
            'power_risk': 'Low',
            'impact_reason': 'Non-winter event.',
        }

    def test_first_match_wins(self):
        # Ice storm outranks the advisory text that follows it
        impact = calculate_impact('Winter Weather Advisory', 'Possible ice storm later.')
        assert impact['school_impact'] == 'High'
        assert impact['power_risk'] == 'High'

    def test_case_insensitive(self):
        assert calculate_impact('WINTER STORM WARNING', '')['school_impact'] == 'High'


class TestNormalize:

    def test_split_areas(self):
        assert split_areas('Franklin; Delaware ; Licking;') == ['Franklin', 'Delaware', 'Licking']
        assert split_areas(None) == []

    def test_normalize_feature(self, alerts_payload):
        alert = normalize_alert(alerts_payload['features'][0])
        assert alert.id == 'urn:oid:advisory'
        assert alert.event == 'Winter Weather Advisory'
        assert alert.areas == ['Franklin', 'Delaware', 'Licking']
        assert alert.sender == 'NWS Wilmington OH'
        assert alert.school_impact == 'Med'
        assert alert.effective.tzinfo is not None
        assert alert.is_new is False

    def test_missing_fields_get_defaults(self):
        now = datetime(2025, 1, 15, 12, tzinfo=timezone.utc)
        alert = normalize_alert({'properties': {}}, now=now)
        assert alert.event == 'Unknown'
        assert alert.severity == 'Unknown'
        assert alert.headline == 'Unknown'
        assert alert.effective == now
        assert alert.urgency is None

    def test_sort_by_severity_then_newest(self):
        base = {'properties': {'event': 'Test'}}
        minor = normalize_alert({'properties': dict(base['properties'], id='m', severity='Minor',
                                                    effective='2025-01-15T10:00:00Z')})
        old_severe = normalize_alert({'properties': dict(base['properties'], id='s1', severity='Severe',
                                                         effective='2025-01-15T01:00:00Z')})
        new_severe = normalize_alert({'properties': dict(base['properties'], id='s2', severity='Severe',
                                                         effective='2025-01-15T05:00:00Z')})
        ordered = sort_alerts([minor, old_severe, new_severe])
        assert [a.id for a in ordered] == ['s2', 's1', 'm']


class TestFetchAlerts:

    def test_sorted_and_flagged(self, alerts_payload):
        transport = FakeTransport({'/alerts/active': alerts_payload})
        result = fetch_alerts_result(40.0192, -82.8794, transport=transport)
        assert result.ok
        assert [a.id for a in result.alerts] == [
            'urn:oid:warning', 'urn:oid:flood', 'urn:oid:advisory'
        ]
        assert all(a.is_new for a in result.alerts)
        assert 'point=40.0192,-82.8794' in transport.calls[0]['url']

    def test_new_detection_replaces_baseline(self, alerts_payload):
        store = MagicMock()
        store.get_last_alert_ids.return_value = ['urn:oid:warning', 'urn:oid:old']
        transport = FakeTransport({'/alerts/active': alerts_payload})

        alerts = fetch_alerts(40.0, -82.9, store=store, transport=transport)

        flags = {a.id: a.is_new for a in alerts}
        assert flags == {
            'urn:oid:warning': False,
            'urn:oid:flood': True,
            'urn:oid:advisory': True,
        }
        store.set_last_alert_ids.assert_called_once_with(
            ['urn:oid:advisory', 'urn:oid:warning', 'urn:oid:flood']
        )

    def test_network_failure_returns_empty(self):
        transport = FakeTransport({'/alerts/active': NetworkError('connection refused')})
        assert fetch_alerts(40.0, -82.9, transport=transport) == []

    def test_failure_reason_is_reported(self):
        transport = FakeTransport({'/alerts/active': RequestTimeoutError()})
        result = fetch_alerts_result(40.0, -82.9, transport=transport)
        assert not result.ok
        assert result.alerts == []
        assert result.error == 'Request timeout'

    def test_malformed_payload_returns_empty(self):
        transport = FakeTransport({'/alerts/active': {'features': 'nope'}})
        result = fetch_alerts_result(40.0, -82.9, transport=transport)
        assert not result.ok
        assert result.alerts == []

    def test_store_failure_never_raises(self, alerts_payload):
        store = MagicMock()
        store.get_last_alert_ids.side_effect = RuntimeError('disk gone')
        transport = FakeTransport({'/alerts/active': alerts_payload})
        assert fetch_alerts(40.0, -82.9, store=store, transport=transport) == []

    def test_empty_features(self):
        transport = FakeTransport({'/alerts/active': {'features': []}})
        result = fetch_alerts_result(40.0, -82.9, transport=transport)
        assert result.ok
        assert result.alerts == []

    def test_malformed_feature_is_skipped(self, alerts_payload):
        payload = {'features': list(alerts_payload['features']) + ['not a feature',
                                                                   {'properties': 'nope'}]}
        store = MagicMock()
        store.get_last_alert_ids.return_value = []
        transport = FakeTransport({'/alerts/active': payload})

        result = fetch_alerts_result(40.0, -82.9, store=store, transport=transport)

        assert result.ok
        assert len(result.alerts) == 3
        store.set_last_alert_ids.assert_called_once_with(
            ['urn:oid:advisory', 'urn:oid:warning', 'urn:oid:flood']
        )


class TestAlertsTransportLifecycle:

    def test_caller_transport_is_left_open(self, alerts_payload):
        transport = FakeTransport({'/alerts/active': alerts_payload})
        fetch_alerts_result(40.0, -82.9, transport=transport)
        assert not transport.closed

    def test_default_transport_is_closed(self, alerts_payload):
        transport = FakeTransport({'/alerts/active': alerts_payload})
        with patch('weather.alerts.Transport', return_value=transport):
            result = fetch_alerts_result(40.0, -82.9)
        assert result.ok
        assert transport.closed

    def test_default_transport_is_closed_on_failure(self):
        transport = FakeTransport({'/alerts/active': NetworkError('connection refused')})
        with patch('weather.alerts.Transport', return_value=transport):
            assert not fetch_alerts_result(40.0, -82.9).ok
        assert transport.closed
