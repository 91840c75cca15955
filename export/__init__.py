"""
Export Package
==============
Handles reporting and exporting prediction results.

Modules:
- history_report: Accuracy and calibration of past predictions
- json_export: JSON export of predictions and history
"""

from export.history_report import (
    calculate_history_stats,
    calibration_table,
    history_frame,
    print_history_report,
)

from export.json_export import (
    export_history_to_json,
    export_prediction_to_json,
)

__all__ = [
    'calculate_history_stats',
    'calibration_table',
    'history_frame',
    'print_history_report',
    'export_history_to_json',
    'export_prediction_to_json',
]
