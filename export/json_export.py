"""
JSON Export Module
==================
Exports predictions and prediction history to JSON format.
"""

import json
import os

from config import settings
from export.history_report import history_frame


def export_history_to_json(history: list, output_file: str = None) -> str:
    """
    Export prediction history to JSON.

    Args:
        history: List of history dictionaries
        output_file: Output file path (settings.HISTORY_JSON_PATH if None)

    Returns:
        Path of the written file, or None when there is no history
    """
    output_file = output_file or settings.HISTORY_JSON_PATH
    df = history_frame(history)

    if len(df) == 0:
        print("No prediction history, skipping JSON export...")
        return None

    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)

    # Export with split orientation for compact structure
    df.to_json(output_file, orient='split', index=False, indent=2)
    print(f"Exported: {output_file}")
    return output_file


def export_prediction_to_json(prediction, weather=None, output_file: str = None,
                              alerts: list = None) -> str:
    """
    Export one prediction with the weather record it was scored from.

    Args:
        prediction: Prediction from the scoring engine
        weather: CanonicalWeather used for the prediction
        output_file: Output file path (default dated file in JSON output dir)
        alerts: Alerts active at prediction time

    Returns:
        Path of the written file
    """
    if output_file is None:
        date_str = prediction.timestamp.strftime('%Y-%m-%d')
        output_file = settings.get_output_paths(date_str)['prediction']
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)

    document = {
        'prediction': prediction.to_dict(),
        'weather': weather.to_dict() if weather is not None else None,
        'alerts': [a.to_dict() for a in alerts or []],
    }
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(document, f, indent=2, default=str)

    print(f"Exported: {output_file}")
    return output_file
