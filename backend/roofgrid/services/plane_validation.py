"""
Plane Validation

Accept/reject predicate for candidate roof surfaces. Callers decide what
to do with a rejected surface (raise, warn or discard).
"""

from typing import Optional

from ..core.config import Settings, get_settings
from .geometry_primitives import are_collinear, is_simple_polygon
from .roof_models import Surface


MIN_BOUNDARY_POINTS = 3


def has_degenerate_edge(surface: Surface) -> bool:
    """True if any three consecutive boundary points (wrapping) are collinear."""
    points = surface.boundaries
    n = len(points)
    for i in range(n):
        if are_collinear(points[i], points[(i + 1) % n], points[(i + 2) % n]):
            return True
    return False


def is_valid_plane_geometry(
    surface: Surface,
    settings: Optional[Settings] = None,
) -> bool:
    """
    Check that a surface's boundary forms a usable polygon.

    Rejects surfaces with fewer than 3 boundary points, with three
    consecutive collinear points, or with a self-intersecting ("bow-tie")
    boundary. Pure predicate, no side effects.

    When ``settings.geometry_validation`` is disabled only the point count
    is checked.

    Args:
        surface: Candidate surface
        settings: Optional Settings instance

    Returns:
        True if the geometry is valid
    """
    if len(surface.boundaries) < MIN_BOUNDARY_POINTS:
        return False

    if settings is None:
        settings = get_settings()

    if not settings.geometry_validation:
        return True

    if has_degenerate_edge(surface):
        return False

    return is_simple_polygon(surface.boundaries)
