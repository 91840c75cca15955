"""
History Report Module
=====================
Accuracy and calibration of past predictions against logged outcomes.

A prediction counts as "Closed/Delayed" when its probability is at least 50;
any logged outcome other than "Normal" counts as "Closed/Delayed".
"""

from typing import List

import pandas as pd

PREDICTED_IMPACT_THRESHOLD = 50
ACCURACY_WINDOW = 10
MIN_LOGGED_FOR_CALIBRATION = 5

IMPACT = 'Closed/Delayed'
NO_IMPACT = 'Normal'

CALIBRATION_BINS = [0, 20, 40, 60, 80, float('inf')]
CALIBRATION_LABELS = ['0-20', '20-40', '40-60', '60-80', '80-100']

HISTORY_COLUMNS = [
    'date', 'probability', 'confidence', 'recommendation',
    'source', 'sensitivity', 'actual_outcome',
]


def history_frame(history: List[dict]) -> pd.DataFrame:
    """
    Build a DataFrame from stored history entries (newest first).

    Args:
        history: List of history dictionaries

    Returns:
        DataFrame with at least HISTORY_COLUMNS
    """
    df = pd.DataFrame(list(history or []))
    for column in HISTORY_COLUMNS:
        if column not in df.columns:
            df[column] = None
    df['probability'] = pd.to_numeric(df['probability'], errors='coerce')
    df['confidence'] = pd.to_numeric(df['confidence'], errors='coerce')
    return df


def _logged(df: pd.DataFrame) -> pd.DataFrame:
    outcome = df['actual_outcome']
    return df[outcome.notna() & (outcome.astype(str) != '')]


def calculate_history_stats(history: List[dict]) -> dict:
    """
    Calculate prediction accuracy over recent history.

    Accuracy covers the logged entries among the ten most recent predictions.

    Args:
        history: List of history dictionaries (newest first)

    Returns:
        Dictionary with total, logged and accuracy (0-100 int)
    """
    df = history_frame(history)
    logged = _logged(df)
    recent = _logged(df.head(ACCURACY_WINDOW))

    accuracy = 0
    if len(recent) > 0:
        predicted = recent['probability'].ge(PREDICTED_IMPACT_THRESHOLD)
        actual = recent['actual_outcome'] != NO_IMPACT
        correct = int((predicted == actual).sum())
        accuracy = int(correct / len(recent) * 100 + 0.5)

    return {
        'total': len(df),
        'logged': len(logged),
        'accuracy': accuracy,
    }


def calibration_table(history: List[dict]) -> pd.DataFrame:
    """
    Predicted probability bucket vs. actual closure/delay rate.

    Args:
        history: List of history dictionaries

    Returns:
        DataFrame with bucket, predictions, closed and actual_rate columns;
        empty when fewer than five outcomes are logged
    """
    logged = _logged(history_frame(history)).dropna(subset=['probability'])
    if len(logged) < MIN_LOGGED_FOR_CALIBRATION:
        return pd.DataFrame(columns=['bucket', 'predictions', 'closed', 'actual_rate'])

    logged = logged.assign(
        bucket=pd.cut(logged['probability'], bins=CALIBRATION_BINS,
                      labels=CALIBRATION_LABELS, right=False),
        closed=(logged['actual_outcome'] != NO_IMPACT).astype(int),
    )
    table = (
        logged.groupby('bucket', observed=True)
        .agg(predictions=('closed', 'size'), closed=('closed', 'sum'))
        .reset_index()
    )
    table['bucket'] = table['bucket'].astype(str)
    table['actual_rate'] = (table['closed'] / table['predictions'] * 100).round().astype(int)
    return table


def print_history_report(history: List[dict]):
    """
    Print a formatted prediction history report.

    Args:
        history: List of history dictionaries
    """
    stats = calculate_history_stats(history)

    print("\n" + "=" * 60)
    print("PREDICTION HISTORY")
    print("=" * 60)
    print(f"  Predictions: {stats['total']}")
    print(f"  Outcomes logged: {stats['logged']}")
    print(f"  Recent accuracy: {stats['accuracy']}%")

    df = history_frame(history)
    if len(df) > 0:
        print("\nRecent predictions:")
        for _, row in df.head(ACCURACY_WINDOW).iterrows():
            outcome = row['actual_outcome'] if pd.notna(row['actual_outcome']) else '-'
            print(f"  {row['date']}: {row['probability']:.0f}% "
                  f"({row['recommendation']}) actual: {outcome}")

    table = calibration_table(history)
    if len(table) > 0:
        print("\nCalibration (predicted vs actual closure rate):")
        for _, row in table.iterrows():
            print(f"  {row['bucket']}% predicted: {row['actual_rate']}% actual "
                  f"({row['closed']}/{row['predictions']} closed)")
