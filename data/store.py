"""
Local Store Module
==================
Key-value persistence for settings, cached weather, prediction history,
field observations and the last seen alert IDs.

Values are JSON text in a single DuckDB table. Store failures are logged
and degrade to the default value (reads) or False (writes).
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import duckdb

from config import settings
from weather.models import parse_datetime

logger = logging.getLogger(__name__)

# Every key this store writes starts with this prefix
KEY_PREFIX = 'swi_'

SETTINGS_KEY = f'{KEY_PREFIX}settings'
HISTORY_KEY = f'{KEY_PREFIX}history'
OBSERVATIONS_KEY = f'{KEY_PREFIX}observations'
LAST_ALERTS_KEY = f'{KEY_PREFIX}last_alerts'
NOTES_KEY = f'{KEY_PREFIX}notes'


def cache_key(name: str) -> str:
    return f'{KEY_PREFIX}cache_{name}'


@dataclass
class CacheEntry:
    data: Any
    timestamp: datetime
    is_stale: bool
    age_minutes: int


class LocalStore:
    """
    Handles all persisted state for the pipeline.
    """

    def __init__(self, db_path: str = None, clock=None):
        """
        Initialize the LocalStore.

        Args:
            db_path: Path to DuckDB database. Uses settings default if None,
                ':memory:' for a throwaway store.
            clock: Callable returning the current UTC datetime
        """
        self.db_path = db_path or settings.STORE_DB_PATH
        self.conn = None
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def connect(self):
        """Establish connection to DuckDB and create the table."""
        if self.conn is None:
            if self.db_path != ':memory:':
                os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            self.conn = duckdb.connect(self.db_path)
            self.conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key VARCHAR PRIMARY KEY, value VARCHAR)"
            )
            logger.debug("Connected to DuckDB at %s", self.db_path)
        return self.conn

    def close(self):
        """Close DuckDB connection."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def get_connection(self):
        """Get active connection, connecting if necessary."""
        if self.conn is None:
            self.connect()
        return self.conn

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # =========================================================================
    # RAW KEY-VALUE ACCESS
    # =========================================================================

    def get(self, key: str, default=None):
        try:
            row = self.get_connection().execute(
                "SELECT value FROM kv WHERE key = ?", [key]
            ).fetchone()
        except duckdb.Error as e:
            logger.error("Store get error for %s: %s", key, e)
            return default
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except ValueError:
            logger.warning("Discarding unreadable value for %s", key)
            return default

    def set(self, key: str, value) -> bool:
        try:
            payload = json.dumps(value, default=str)
            self.get_connection().execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", [key, payload]
            )
            return True
        except (duckdb.Error, TypeError, ValueError) as e:
            logger.error("Store set error for %s: %s", key, e)
            return False

    def remove(self, key: str) -> bool:
        try:
            self.get_connection().execute("DELETE FROM kv WHERE key = ?", [key])
            return True
        except duckdb.Error as e:
            logger.error("Store remove error for %s: %s", key, e)
            return False

    def keys(self) -> list:
        try:
            rows = self.get_connection().execute("SELECT key FROM kv ORDER BY key").fetchall()
        except duckdb.Error as e:
            logger.error("Store keys error: %s", e)
            return []
        return [row[0] for row in rows]

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def get_settings(self) -> dict:
        """
        User settings with stored overrides merged over the defaults.

        Nested sections (location, school_times, district_factors, api_keys)
        are merged key by key so a partial override keeps the other defaults.
        """
        defaults = settings.get_default_settings()
        stored = self.get(SETTINGS_KEY, {}) or {}
        if not isinstance(stored, dict):
            stored = {}

        merged = {**defaults, **stored}
        for section in settings.MERGED_SETTINGS_SECTIONS:
            override = merged.get(section)
            merged[section] = {**defaults[section], **(override if isinstance(override, dict) else {})}
        return merged

    def save_settings(self, user_settings: dict) -> bool:
        return self.set(SETTINGS_KEY, user_settings)

    # =========================================================================
    # WEATHER CACHE
    # =========================================================================

    def get_cache(self, name: str) -> Optional[CacheEntry]:
        """
        Get a cached record with its derived staleness.

        Args:
            name: Cache name (e.g. 'weather')

        Returns:
            CacheEntry, or None when nothing is cached
        """
        entry = self.get(cache_key(name))
        if not isinstance(entry, dict) or 'data' not in entry:
            return None

        timestamp = parse_datetime(entry.get('timestamp'))
        if timestamp is None:
            return None
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        age = self._clock() - timestamp
        return CacheEntry(
            data=entry['data'],
            timestamp=timestamp,
            is_stale=age > timedelta(minutes=settings.CACHE_STALE_MINUTES),
            age_minutes=int(age.total_seconds() // 60),
        )

    def set_cache(self, name: str, data) -> bool:
        return self.set(cache_key(name), {'data': data, 'timestamp': self._clock().isoformat()})

    # =========================================================================
    # PREDICTION HISTORY
    # =========================================================================

    def get_history(self) -> list:
        history = self.get(HISTORY_KEY, [])
        return history if isinstance(history, list) else []

    def add_history(self, entry: dict) -> bool:
        """
        Prepend a history entry and prune old ones.

        Entries older than HISTORY_RETENTION_DAYS are dropped and at most
        HISTORY_MAX_ITEMS are kept.
        """
        now = self._clock()
        record = dict(entry)
        record['date'] = record.get('date') or now.date().isoformat()
        record['timestamp'] = now.isoformat()

        cutoff = now - timedelta(days=settings.HISTORY_RETENTION_DAYS)
        history = [record] + self.get_history()
        pruned = [h for h in history if self._entry_time(h) > cutoff]
        return self.set(HISTORY_KEY, pruned[:settings.HISTORY_MAX_ITEMS])

    @staticmethod
    def _entry_time(entry) -> datetime:
        moment = parse_datetime(entry.get('timestamp')) if isinstance(entry, dict) else None
        if moment is None:
            return datetime.min.replace(tzinfo=timezone.utc)
        return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)

    def update_history_outcome(self, date: str, actual_outcome: str, notes: str = '') -> bool:
        """
        Record what actually happened for a predicted date.

        Args:
            date: Prediction date (YYYY-MM-DD)
            actual_outcome: 'Normal', 'Delayed', 'Closed' or 'Early dismissal'
            notes: Free-text notes

        Returns:
            False when no entry exists for the date
        """
        history = self.get_history()
        item = next((h for h in history if h.get('date') == date), None)
        if item is None:
            return False
        item['actual_outcome'] = actual_outcome
        item['outcome_notes'] = notes
        item['outcome_timestamp'] = self._clock().isoformat()
        return self.set(HISTORY_KEY, history)

    def get_last_prediction(self) -> Optional[dict]:
        history = self.get_history()
        return history[0] if history else None

    # =========================================================================
    # OBSERVATIONS, ALERTS AND NOTES
    # =========================================================================

    def get_observations(self) -> dict:
        return self.get(OBSERVATIONS_KEY, {}) or {}

    def set_observations(self, observations: dict) -> bool:
        return self.set(OBSERVATIONS_KEY, observations)

    def get_last_alert_ids(self) -> list:
        return self.get(LAST_ALERTS_KEY, []) or []

    def set_last_alert_ids(self, ids) -> bool:
        return self.set(LAST_ALERTS_KEY, list(ids))

    def get_notes(self) -> str:
        return self.get(NOTES_KEY, '') or ''

    def save_notes(self, notes: str) -> bool:
        return self.set(NOTES_KEY, notes)

    # =========================================================================
    # BACKUP
    # =========================================================================

    def export_all(self) -> dict:
        return {
            'settings': self.get_settings(),
            'history': self.get_history(),
            'notes': self.get_notes(),
            'export_date': self._clock().isoformat(),
        }

    def import_all(self, data: dict) -> bool:
        """Restore settings, history and notes from an export_all() dictionary."""
        if not isinstance(data, dict):
            return False
        ok = True
        if data.get('settings'):
            ok = self.save_settings(data['settings']) and ok
        if data.get('history') is not None:
            ok = self.set(HISTORY_KEY, data['history']) and ok
        if data.get('notes') is not None:
            ok = self.save_notes(data['notes']) and ok
        return ok

    def reset_all(self) -> bool:
        """Remove every key this store owns."""
        try:
            self.get_connection().execute(
                "DELETE FROM kv WHERE key LIKE ?", [f'{KEY_PREFIX}%']
            )
            return True
        except duckdb.Error as e:
            logger.error("Store reset error: %s", e)
            return False
