"""
NWS Alerts
==========
Fetches active alerts for a coordinate, normalizes them and classifies
their school and power impact.

Alerts are best-effort: `fetch_alerts()` never raises. Callers that want to
know why a fetch came back empty use `fetch_alerts_result()`, which returns
an AlertsResult carrying the failure reason.

Impact classification (case-insensitive over event + description, first
match wins):
1. "ice storm"                                   → school High, power High
2. "winter storm warning" / blizzard + "warning" → school High, power Med if wind else Low
3. "winter weather advisory"                     → school Med,  power Low
4. snow / ice / sleet / freezing                 → school Med,  power Med if wind else Low
5. anything else                                 → school Low,  power Low
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from config import settings
from weather import schema
from weather.base import optional_list, require_mapping
from weather.exceptions import MalformedPayloadError
from weather.fetcher import Transport
from weather.models import parse_datetime

logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================
ALERTS_HEADERS = {
    'User-Agent': settings.USER_AGENT,
    'Accept': 'application/geo+json',
}

SEVERITY_RANK = {
    'Extreme': 4,
    'Severe': 3,
    'Moderate': 2,
    'Minor': 1,
    'Unknown': 0,
}

IMPACT_LOW = 'Low'
IMPACT_MED = 'Med'
IMPACT_HIGH = 'High'

WINTER_KEYWORDS = ('snow', 'ice', 'sleet', 'freezing')


@dataclass
class Alert:
    id: str
    event: str
    severity: str
    headline: str
    effective: datetime
    expires: datetime
    description: str = ''
    instruction: str = ''
    urgency: Optional[str] = None
    certainty: Optional[str] = None
    areas: List[str] = field(default_factory=list)
    sender: str = ''
    school_impact: str = IMPACT_LOW
    power_risk: str = IMPACT_LOW
    impact_reason: str = ''
    is_new: bool = False

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'event': self.event,
            'severity': self.severity,
            'urgency': self.urgency,
            'certainty': self.certainty,
            'headline': self.headline,
            'description': self.description,
            'instruction': self.instruction,
            'effective': self.effective.isoformat(),
            'expires': self.expires.isoformat(),
            'areas': list(self.areas),
            'sender': self.sender,
            'schoolImpact': self.school_impact,
            'powerRisk': self.power_risk,
            'impactReason': self.impact_reason,
            'isNew': self.is_new,
        }


@dataclass
class AlertsResult:
    ok: bool
    alerts: List[Alert] = field(default_factory=list)
    error: str = ''


# =============================================================================
# NORMALIZATION
# =============================================================================

def split_areas(area_desc) -> List[str]:
    """Split a semicolon-delimited area description into trimmed names."""
    if not area_desc:
        return []
    return [part.strip() for part in str(area_desc).split(';') if part.strip()]


def text_contains_winter_risk(text: str) -> bool:
    t = (text or '').lower()
    return any(keyword in t for keyword in WINTER_KEYWORDS)


def calculate_impact(event: str, description: str = '') -> dict:
    """
    Classify the school and power impact of an alert from its free text.

    Args:
        event: Alert event name (e.g. "Winter Storm Warning")
        description: Alert description text

    Returns:
        Dictionary with school_impact, power_risk and impact_reason
    """
    combined = f"{event or ''} {description or ''}".lower()
    windy = 'wind' in combined

    if 'ice storm' in combined:
        return {
            'school_impact': IMPACT_HIGH,
            'power_risk': IMPACT_HIGH,
            'impact_reason': 'Ice accumulation can make roads hazardous and can damage power lines.',
        }
    if 'winter storm warning' in combined or ('blizzard' in combined and 'warning' in combined):
        return {
            'school_impact': IMPACT_HIGH,
            'power_risk': IMPACT_MED if windy else IMPACT_LOW,
            'impact_reason': 'Heavy snow and/or strong winds can severely impact travel and buses.',
        }
    if 'winter weather advisory' in combined:
        return {
            'school_impact': IMPACT_MED,
            'power_risk': IMPACT_LOW,
            'impact_reason': 'Winter weather may impact travel, but typically less severe than a warning.',
        }
    if text_contains_winter_risk(combined):
        return {
            'school_impact': IMPACT_MED,
            'power_risk': IMPACT_MED if windy else IMPACT_LOW,
            'impact_reason': 'Winter conditions mentioned; monitor for road impacts.',
        }
    return {
        'school_impact': IMPACT_LOW,
        'power_risk': IMPACT_LOW,
        'impact_reason': 'Non-winter event.',
    }


def normalize_alert(feature, now: datetime = None) -> Alert:
    """
    Normalize one GeoJSON alert feature.

    Args:
        feature: Feature object from the alerts payload
        now: Fallback instant for missing effective/expires times

    Returns:
        Alert with impact classification (is_new left False)
    """
    feature = require_mapping(feature, 'NWS alerts', 'feature')
    props = feature.get('properties') or {}
    props = require_mapping(props, 'NWS alerts', 'feature.properties')
    now = now or datetime.now(timezone.utc)

    event = str(props.get('event') or 'Unknown')
    description = str(props.get('description') or '')
    impact = calculate_impact(event, description)

    effective = parse_datetime(props.get('effective') or props.get('sent')) or now
    expires = parse_datetime(props.get('expires')) or now

    alert = Alert(
        id=str(props.get('id') or props.get('@id') or feature.get('id') or ''),
        event=event,
        severity=str(props.get('severity') or 'Unknown'),
        urgency=str(props['urgency']) if props.get('urgency') else None,
        certainty=str(props['certainty']) if props.get('certainty') else None,
        headline=str(props.get('headline') or event or 'Alert'),
        description=description,
        instruction=str(props.get('instruction') or ''),
        effective=_aware(effective),
        expires=_aware(expires),
        areas=split_areas(props.get('areaDesc')),
        sender=str(props.get('senderName') or ''),
        **impact,
    )

    check = schema.validate(alert, 'alert')
    if not check.valid:
        logger.debug("Alert %s failed schema check: %s", alert.id, '; '.join(check.errors))
    return alert


def normalize_features(features: list, now: datetime = None) -> List[Alert]:
    """
    Normalize every usable feature, skipping malformed ones.

    Args:
        features: Feature list from the alerts payload
        now: Fallback instant for missing effective/expires times

    Returns:
        Alerts in payload order
    """
    alerts = []
    for index, feature in enumerate(features):
        try:
            alerts.append(normalize_alert(feature, now))
        except (MalformedPayloadError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed alert feature %d: %s", index, e)
    return alerts


def _aware(value: datetime) -> datetime:
    # Naive instants are treated as UTC so alerts stay mutually comparable
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def sort_alerts(alerts: List[Alert]) -> List[Alert]:
    """Most severe first, newest effective time first within a severity."""
    return sorted(
        alerts,
        key=lambda a: (SEVERITY_RANK.get(a.severity, 0), a.effective),
        reverse=True,
    )


# =============================================================================
# FETCHING
# =============================================================================

def alerts_url(lat: float, lon: float) -> str:
    return f"{settings.NWS_BASE_URL}/alerts/active?point={round(lat, 4)},{round(lon, 4)}"


def fetch_alerts_result(lat: float, lon: float, store=None,
                        transport: Transport = None) -> AlertsResult:
    """
    Fetch, normalize, flag and sort active alerts, reporting failures.

    "New" detection compares against the store's last seen alert IDs, then
    replaces that baseline with the current IDs.

    Args:
        lat: Latitude
        lon: Longitude
        store: Object with get_last_alert_ids()/set_last_alert_ids(ids); optional
        transport: Transport to use

    Returns:
        AlertsResult; on any failure ok=False, alerts=[] and error set
    """
    owns_transport = transport is None
    transport = transport or Transport()
    try:
        payload, _ = transport.get_json(alerts_url(lat, lon), headers=ALERTS_HEADERS)
        payload = require_mapping(payload, 'NWS alerts')
        features = optional_list(payload.get('features'), 'NWS alerts', 'features')

        seen = set(store.get_last_alert_ids() or []) if store is not None else set()
        alerts = normalize_features(features)
        for alert in alerts:
            alert.is_new = alert.id not in seen

        if store is not None:
            store.set_last_alert_ids([a.id for a in alerts])

        return AlertsResult(ok=True, alerts=sort_alerts(alerts))
    except Exception as e:
        logger.error("Alerts fetch failed: %s", e)
        return AlertsResult(ok=False, alerts=[], error=str(e) or type(e).__name__)
    finally:
        if owns_transport:
            transport.close()


def fetch_alerts(lat: float, lon: float, store=None, transport: Transport = None) -> List[Alert]:
    """Best-effort alert fetch; returns [] on any failure, never raises."""
    return fetch_alerts_result(lat, lon, store=store, transport=transport).alerts


acquire_alerts = fetch_alerts
