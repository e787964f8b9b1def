"""
Area and Pitch Calculations

Planar polygon area and perimeter from 3D boundary points, and pitch
correction between true (sloped) surface area and horizontally projected
area.

The area uses the 3D generalization of the Shoelace formula:
A = 0.5 * |Σ(p_i × p_{i+1})|
which measures the polygon in its own plane regardless of orientation.
"""

from enum import Enum
from typing import Any, Sequence, Union
import math

from .geometry_primitives import cross, distance, magnitude, as_tuple


SQUARE_FEET_PER_SQUARE_METER = 10.764
FEET_PER_METER = 3.28084


class PitchCorrectionMethod(str, Enum):
    """Methods for converting true area to projected area."""

    TRIGONOMETRIC = "trigonometric"  # Exact cosine projection
    PROJECTION = "projection"  # Cosine with a foreshortening term
    ADVANCED = "advanced"  # Empirical model for non-planar facets


def compute_area(boundaries: Sequence[Any]) -> float:
    """
    Calculate the area of a planar polygon from its 3D vertices.

    Sums the cross products of consecutive vertex vectors and takes half
    the magnitude of the result.

    Args:
        boundaries: Ordered vertices with x, y, z attributes.
                    Must have at least 3 points.
                    Polygon is automatically closed.

    Returns:
        Area in square meters. Always non-negative.

    Raises:
        ValueError: If the polygon has fewer than 3 points.
    """
    n = len(boundaries)
    if n < 3:
        raise ValueError(f"Polygon must have at least 3 boundary points, got {n}")

    sx = sy = sz = 0.0
    for i in range(n):
        j = (i + 1) % n  # Wrap around to close the polygon
        cx, cy, cz = cross(as_tuple(boundaries[i]), as_tuple(boundaries[j]))
        sx += cx
        sy += cy
        sz += cz

    return magnitude((sx, sy, sz)) / 2.0


def compute_perimeter(boundaries: Sequence[Any]) -> float:
    """
    Calculate the perimeter of a polygon in meters.

    Sums the 3D Euclidean distance between consecutive vertices,
    including the closing edge back to the first vertex.

    Raises:
        ValueError: If the polygon has fewer than 3 points.
    """
    n = len(boundaries)
    if n < 3:
        raise ValueError(f"Polygon must have at least 3 boundary points, got {n}")

    perimeter = 0.0
    for i in range(n):
        j = (i + 1) % n
        perimeter += distance(boundaries[i], boundaries[j])

    return perimeter


def _correction_factor(pitch_angle: float, method: PitchCorrectionMethod) -> float:
    if pitch_angle == 0:
        return 1.0

    pitch_radians = pitch_angle * math.pi / 180
    cos_pitch = math.cos(pitch_radians)
    sin_pitch = math.sin(pitch_radians)

    if method == PitchCorrectionMethod.TRIGONOMETRIC:
        return cos_pitch

    if method == PitchCorrectionMethod.PROJECTION:
        return cos_pitch * (1 + sin_pitch * 0.1)

    # Advanced: stays within ~3% of the cosine up to 60 degrees
    return cos_pitch * (1 + sin_pitch * 0.05) * (1 - sin_pitch ** 2 * 0.02)


def apply_pitch_correction(
    true_area: float,
    pitch_angle: float,
    method: Union[PitchCorrectionMethod, str] = PitchCorrectionMethod.TRIGONOMETRIC,
) -> float:
    """
    Convert a true (sloped) surface area into its horizontal projection.

    A pitch of 0 returns ``true_area`` unchanged for every method.

    Args:
        true_area: Surface area in square meters
        pitch_angle: Pitch in degrees from horizontal
        method: Correction method (name or enum)

    Returns:
        Projected area in square meters

    Raises:
        ValueError: If the method name is unknown.
    """
    method = PitchCorrectionMethod(method)
    if pitch_angle == 0:
        return true_area
    return true_area * _correction_factor(pitch_angle, method)


def remove_pitch_correction(
    projected_area: float,
    pitch_angle: float,
    method: Union[PitchCorrectionMethod, str] = PitchCorrectionMethod.TRIGONOMETRIC,
) -> float:
    """
    Recover the true surface area from a horizontally projected area.

    Inverse of ``apply_pitch_correction``.

    Raises:
        ValueError: If the method name is unknown or the pitch is vertical.
    """
    method = PitchCorrectionMethod(method)
    if pitch_angle == 0:
        return projected_area

    factor = _correction_factor(pitch_angle, method)
    if abs(factor) < 1e-12:
        raise ValueError(f"Cannot recover area for vertical pitch {pitch_angle}")
    return projected_area / factor


def pitch_from_normal(normal: Any) -> float:
    """Angle in degrees between a surface normal and vertical (Y up)."""
    length = magnitude(as_tuple(normal))
    if length == 0:
        return 0.0
    cos_angle = max(-1.0, min(1.0, abs(normal.y) / length))
    return math.degrees(math.acos(cos_angle))


def azimuth_from_normal(normal: Any) -> float:
    """
    Compass bearing of the direction a surface faces, in [0, 360).

    Measured from +Z (north) towards +X (east) on the horizontal part of
    the normal. A horizontal surface faces nowhere and returns 0.
    """
    if abs(normal.x) < 1e-12 and abs(normal.z) < 1e-12:
        return 0.0
    return math.degrees(math.atan2(normal.x, normal.z)) % 360.0


def meters_to_feet(length_m: float) -> float:
    """Convert meters to feet."""
    return length_m * FEET_PER_METER


def square_meters_to_square_feet(area_m2: float) -> float:
    """Convert square meters to square feet."""
    return area_m2 * SQUARE_FEET_PER_SQUARE_METER
