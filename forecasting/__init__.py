"""
Forecasting Package
===================
Contains the school impact scoring engine and its adjustments.

Modules:
- engine: Factor scores, confidence and the final prediction
- adjustments: Human observations, sensitivity nudge, recommendation thresholds
"""

from .engine import (
    WEIGHTS,
    Factor,
    Prediction,
    calculate,
    score_prediction,
)
from .adjustments import (
    calculate_human_adjustment,
    recommendation_from_probability,
    sensitivity_nudge,
)

__all__ = [
    'WEIGHTS',
    'Factor',
    'Prediction',
    'calculate',
    'score_prediction',
    'calculate_human_adjustment',
    'recommendation_from_probability',
    'sensitivity_nudge',
]
