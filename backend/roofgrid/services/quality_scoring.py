"""
Quality Scoring

Aggregates a capture session's plane confidences, boundary point density
and duration into QualityMetrics with a single 0-100 overall score.
"""

from typing import Sequence
import math

from .roof_models import QualityMetrics, Surface


# Overall score weights (sum to 100)
CONFIDENCE_WEIGHT = 70.0
DENSITY_WEIGHT = 20.0
DURATION_WEIGHT = 10.0

# Boundary points per square meter that earns the full density weight
TARGET_POINT_DENSITY = 0.5

# Sessions up to this long earn the full duration weight; the weight then
# decays linearly to zero at MAX_SESSION_SECONDS.
EXPECTED_SESSION_SECONDS = 300.0
MAX_SESSION_SECONDS = 900.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _duration_component(duration_s: float) -> float:
    if duration_s <= EXPECTED_SESSION_SECONDS:
        return 1.0
    if duration_s >= MAX_SESSION_SECONDS:
        return 0.0
    return 1.0 - (duration_s - EXPECTED_SESSION_SECONDS) / (
        MAX_SESSION_SECONDS - EXPECTED_SESSION_SECONDS
    )


def calculate_quality_metrics(
    surfaces: Sequence[Surface],
    processing_time_ms: float,
) -> QualityMetrics:
    """
    Calculate quality metrics for a measurement session.

    The overall score weights average plane confidence (70), boundary
    point density relative to TARGET_POINT_DENSITY (20) and session
    duration (10). It never decreases as confidence or density rise and
    is clamped to [0, 100].

    Args:
        surfaces: Processed roof surfaces
        processing_time_ms: Session or processing duration in milliseconds

    Returns:
        QualityMetrics with duration in seconds
    """
    duration_s = processing_time_ms / 1000.0

    if not surfaces:
        return QualityMetrics(duration=duration_s)

    avg_confidence = sum(s.confidence for s in surfaces) / len(surfaces)
    avg_confidence = _clamp(avg_confidence, 0.0, 1.0)
    total_points = sum(len(s.boundaries) for s in surfaces)
    total_area = sum(max(s.area, 0.0) for s in surfaces)

    point_density = total_points / max(1.0, total_area)

    density_ratio = min(1.0, point_density / TARGET_POINT_DENSITY)
    overall = (
        avg_confidence * CONFIDENCE_WEIGHT
        + density_ratio * DENSITY_WEIGHT
        + _duration_component(duration_s) * DURATION_WEIGHT
    )

    return QualityMetrics(
        overall_score=round(_clamp(overall)),
        tracking_stability=round(_clamp(avg_confidence * 120)),
        point_density=point_density,
        duration=duration_s,
        tracking_interruptions=0,
        lighting_quality=round(_clamp(avg_confidence * 110)),
        movement_smoothness=round(_clamp(80 + avg_confidence * 20)),
    )


def calculate_size_consistency(surfaces: Sequence[Surface]) -> float:
    """
    Score (0-100) how uniform plane areas are.

    Based on the coefficient of variation of the areas; a single plane is
    perfectly consistent.
    """
    if len(surfaces) < 2:
        return 100.0

    areas = [s.area for s in surfaces]
    mean = sum(areas) / len(areas)
    if mean <= 0:
        return 0.0

    variance = sum((a - mean) ** 2 for a in areas) / len(areas)
    coefficient_of_variation = math.sqrt(variance) / mean
    return max(0.0, 100.0 - coefficient_of_variation * 50.0)
