"""
Schema Validator
================
Structural, range and enum checks for the canonical record shapes.

Validation is advisory: it never raises and never blocks a pipeline. Callers
use the result to downgrade provider health or to log degraded data.

Schemas:
- current: current conditions
- hourly: one hourly sample
- daily: one daily sample
- alert: one normalized alert
- prediction: one scoring result
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date
from typing import List

from weather.models import parse_datetime


# =============================================================================
# FIELD TYPES
# =============================================================================
NUMBER = 'number'
STRING = 'string'
DATE = 'date'
ARRAY = 'array'
OBJECT = 'object'

RECOMMENDATIONS = ['Normal', 'Delay possible', 'Closing likely']


# =============================================================================
# SCHEMA DEFINITIONS
# =============================================================================
SCHEMAS = {
    'current': {
        'temperature': {'type': NUMBER, 'required': True},
        'feels_like': {'type': NUMBER, 'required': True},
        'humidity': {'type': NUMBER, 'required': True, 'min': 0, 'max': 100},
        'wind_speed': {'type': NUMBER, 'required': True, 'min': 0},
        'condition': {'type': STRING, 'required': True},
    },

    'hourly': {
        'time': {'type': DATE, 'required': True},
        'temperature': {'type': NUMBER, 'required': True},
        'precipitation': {'type': NUMBER, 'required': True, 'min': 0},
        'wind_speed': {'type': NUMBER, 'required': True, 'min': 0},
        'snowfall': {'type': NUMBER, 'required': False, 'min': 0},
    },

    'daily': {
        'date': {'type': DATE, 'required': True},
        'temp_high': {'type': NUMBER, 'required': True},
        'temp_low': {'type': NUMBER, 'required': True},
        'precip_chance': {'type': NUMBER, 'required': True, 'min': 0, 'max': 100},
        'condition': {'type': STRING, 'required': True},
    },

    'alert': {
        'id': {'type': STRING, 'required': True},
        'event': {'type': STRING, 'required': True},
        'severity': {'type': STRING, 'required': True},
        'headline': {'type': STRING, 'required': True},
        'effective': {'type': DATE, 'required': True},
        'expires': {'type': DATE, 'required': True},
    },

    'prediction': {
        'probability': {'type': NUMBER, 'required': True, 'min': 0, 'max': 100},
        'confidence': {'type': NUMBER, 'required': True, 'min': 0, 'max': 100},
        'recommendation': {'type': STRING, 'required': True, 'enum': RECOMMENDATIONS},
        'factors': {'type': ARRAY, 'required': True},
    },
}


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


# =============================================================================
# FIELD VALIDATION
# =============================================================================

def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _is_date_like(value) -> bool:
    if isinstance(value, date):
        return True
    return isinstance(value, str) and parse_datetime(value) is not None


def _check_type(value, expected: str) -> bool:
    if expected == NUMBER:
        return _is_number(value)
    if expected == STRING:
        return isinstance(value, str)
    if expected == DATE:
        return _is_date_like(value)
    if expected == ARRAY:
        return isinstance(value, (list, tuple))
    if expected == OBJECT:
        return isinstance(value, Mapping)
    return True


def validate_field(value, rule: dict, field_name: str) -> List[str]:
    """
    Validate a single field value against its rule.

    Args:
        value: Field value (None when absent)
        rule: Rule dictionary (type, required, min, max, enum)
        field_name: Field name used in error messages

    Returns:
        List of error messages, empty when the field is valid
    """
    if value is None:
        return [f"{field_name} is required"] if rule.get('required') else []

    errors = []
    expected = rule.get('type')
    if not _check_type(value, expected):
        article = 'an' if expected in (ARRAY, OBJECT) else 'a'
        errors.append(f"{field_name} must be {article} {expected}")

    if _is_number(value):
        if 'min' in rule and value < rule['min']:
            errors.append(f"{field_name} must be >= {rule['min']}")
        if 'max' in rule and value > rule['max']:
            errors.append(f"{field_name} must be <= {rule['max']}")

    if rule.get('enum') and isinstance(value, str) and value not in rule['enum']:
        errors.append(f"{field_name} must be one of: {', '.join(rule['enum'])}")

    return errors


def _as_mapping(data):
    if isinstance(data, Mapping):
        return data
    if is_dataclass(data) and not isinstance(data, type):
        return {f.name: getattr(data, f.name) for f in fields(data)}
    return None


# =============================================================================
# PUBLIC API
# =============================================================================

def validate(data, schema_name: str) -> ValidationResult:
    """
    Validate a record against a named schema.

    Args:
        data: Mapping or dataclass instance
        schema_name: One of 'current', 'hourly', 'daily', 'alert', 'prediction'

    Returns:
        ValidationResult with every error found
    """
    schema = SCHEMAS.get(schema_name)
    if schema is None:
        return ValidationResult(False, [f"Unknown schema: {schema_name}"])

    record = _as_mapping(data)
    if record is None:
        return ValidationResult(False, ['Data must be an object'])

    errors = []
    for field_name, rule in schema.items():
        errors.extend(validate_field(record.get(field_name), rule, field_name))

    return ValidationResult(not errors, errors)


def has_required_fields(data, schema_name: str) -> bool:
    """Check that every required field of a schema is present (not None)."""
    schema = SCHEMAS.get(schema_name)
    record = _as_mapping(data) if data is not None else None
    if schema is None or record is None:
        return False
    return all(
        record.get(field_name) is not None
        for field_name, rule in schema.items()
        if rule.get('required')
    )
