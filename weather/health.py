"""
Provider Health
===============
Per-provider status records (OK / Degraded / Down) updated on every
acquisition attempt. Health is a confidence signal only; routing always
follows the fixed provider priority.

The registry is an explicitly owned object. Each failover loader holds its
own registry unless one is injected, so separate loaders never share state.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

STATUS_OK = 'OK'
STATUS_DEGRADED = 'Degraded'
STATUS_DOWN = 'Down'


@dataclass
class ProviderHealth:
    status: str = STATUS_DEGRADED
    last_check: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None
    last_error: str = ''
    response_time: float = 0.0


class ProviderHealthRegistry:
    """Keyed-by-provider-name health records, created lazily."""

    def __init__(self, clock=None):
        """
        Args:
            clock: Callable returning the current datetime (UTC now if None)
        """
        self._records: Dict[str, ProviderHealth] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def update(self, name: str, status: str, error: str = '',
               response_time: float = 0.0) -> ProviderHealth:
        """
        Record the outcome of one attempt against a provider.

        Args:
            name: Provider display name
            status: STATUS_OK, STATUS_DEGRADED or STATUS_DOWN
            error: Error message for non-OK outcomes
            response_time: Milliseconds spent on the attempt

        Returns:
            The updated health record
        """
        record = self._records.setdefault(name, ProviderHealth())
        now = self._clock()
        record.status = status
        record.last_check = now
        record.response_time = response_time or 0.0
        if status == STATUS_OK:
            record.last_success = now
            record.last_error = ''
        else:
            record.last_failure = now
            record.last_error = error or ''
        return record

    def get(self, name: str) -> Optional[ProviderHealth]:
        return self._records.get(name)

    def snapshot(self) -> Dict[str, dict]:
        """Copy of every record as plain dictionaries."""
        return {name: asdict(record) for name, record in self._records.items()}

    def __contains__(self, name: str) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)
