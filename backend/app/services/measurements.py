"""
Measurement trends for the student detail view.

Measurements arrive newest first. Each entry is compared with the entry
right after it in that list (the chronologically previous one), metric
by metric. A change is only reported when both entries have the metric.
"""

from typing import List

from app.schemas import MeasurementRecord

METRICS = ("weight", "body_fat_pct", "waist", "hip")

# A progress chart needs at least two points to draw a line
MIN_CHART_POINTS = 2


def measurement_trends(measurements: List[MeasurementRecord]) -> List[dict]:
    trends = []
    for index, entry in enumerate(measurements):
        previous = measurements[index + 1] if index + 1 < len(measurements) else None
        metrics = {}
        for metric in METRICS:
            value = getattr(entry, metric)
            if value is None:
                continue
            prior = getattr(previous, metric) if previous is not None else None
            change = round(value - prior, 1) if prior is not None else None
            metrics[metric] = {"value": value, "change": change}
        trends.append({
            "id": entry.id,
            "date": entry.date.isoformat() if entry.date else None,
            "metrics": metrics,
        })
    return trends


def weight_series(measurements: List[MeasurementRecord]) -> dict:
    """Oldest-first weight points; entries without a weight are skipped."""
    points = [
        {"date": m.date.isoformat() if m.date else None, "weight": m.weight}
        for m in reversed(measurements)
        if m.weight is not None
    ]
    return {"points": points, "chart_ready": len(points) >= MIN_CHART_POINTS}
