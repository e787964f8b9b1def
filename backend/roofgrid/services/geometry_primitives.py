"""
Geometry Primitives

Point and vector math used by plane validation and area calculation:
collinearity, segment intersection and polygon self-intersection.

Any object with x, y, z attributes works as a point (Point3D, Vector3,
Vertex3D).
"""

from typing import Any, Sequence, Tuple
import math


# Absolute tolerance for treating a cross product or orientation as zero.
EPSILON = 1e-6

Vec = Tuple[float, float, float]

# Boundaries are captured with Y up, so the footprint lies in X-Z.
DEFAULT_PROJECTION: Tuple[str, str] = ("x", "z")


def as_tuple(p: Any) -> Vec:
    """Coordinates of a point-like object as an (x, y, z) tuple."""
    return (float(p.x), float(p.y), float(p.z))


def subtract(a: Any, b: Any) -> Vec:
    """Vector a - b."""
    return (a.x - b.x, a.y - b.y, a.z - b.z)


def cross(u: Vec, v: Vec) -> Vec:
    """Cross product of two vectors."""
    return (
        u[1] * v[2] - u[2] * v[1],
        u[2] * v[0] - u[0] * v[2],
        u[0] * v[1] - u[1] * v[0],
    )


def dot(u: Vec, v: Vec) -> float:
    return u[0] * v[0] + u[1] * v[1] + u[2] * v[2]


def magnitude(v: Vec) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def distance(a: Any, b: Any) -> float:
    """Euclidean distance between two points in 3D."""
    return magnitude(subtract(b, a))


def are_collinear(a: Any, b: Any, c: Any, epsilon: float = EPSILON) -> bool:
    """
    Check whether three points lie on one line.

    Forms (b - a) and (c - a) and tests the magnitude of their cross
    product against ``epsilon``.

    Args:
        a, b, c: Points with x, y, z attributes
        epsilon: Tolerance for the zero test

    Returns:
        True if the points are collinear (or coincident)
    """
    return magnitude(cross(subtract(b, a), subtract(c, a))) < epsilon


def _orientation(
    p: Tuple[float, float],
    q: Tuple[float, float],
    r: Tuple[float, float],
    epsilon: float = EPSILON,
) -> int:
    """0 if collinear, 1 if clockwise, 2 if counter-clockwise."""
    val = (q[1] - p[1]) * (r[0] - q[0]) - (q[0] - p[0]) * (r[1] - q[1])
    if abs(val) < epsilon:
        return 0
    return 1 if val > 0 else 2


def _project(p: Any, axes: Tuple[str, str]) -> Tuple[float, float]:
    return (float(getattr(p, axes[0])), float(getattr(p, axes[1])))


def segments_intersect(
    p1: Any,
    p2: Any,
    p3: Any,
    p4: Any,
    axes: Tuple[str, str] = DEFAULT_PROJECTION,
) -> bool:
    """
    Test whether segment p1-p2 properly crosses segment p3-p4.

    Uses orientation tests on the 2D projection given by ``axes``
    (X-Z by default). Only proper crossings count: touching at an
    endpoint or overlapping collinearly returns False.

    Args:
        p1, p2: Endpoints of the first segment
        p3, p4: Endpoints of the second segment
        axes: Coordinate names forming the projection plane

    Returns:
        True if the segments cross at a single interior point
    """
    a1, a2 = _project(p1, axes), _project(p2, axes)
    b1, b2 = _project(p3, axes), _project(p4, axes)

    o1 = _orientation(a1, a2, b1)
    o2 = _orientation(a1, a2, b2)
    o3 = _orientation(b1, b2, a1)
    o4 = _orientation(b1, b2, a2)

    if 0 in (o1, o2, o3, o4):
        return False

    return o1 != o2 and o3 != o4


def newell_normal(points: Sequence[Any]) -> Vec:
    """
    Unnormalized polygon normal (Newell's method).

    Its magnitude is twice the polygon area for planar polygons.
    """
    nx = ny = nz = 0.0
    n = len(points)
    for i in range(n):
        j = (i + 1) % n
        xi, yi, zi = as_tuple(points[i])
        xj, yj, zj = as_tuple(points[j])
        nx += (yi - yj) * (zi + zj)
        ny += (zi - zj) * (xi + xj)
        nz += (xi - xj) * (yi + yj)
    return (nx, ny, nz)


def triple_normal(points: Sequence[Any]) -> Vec:
    """Normal of the first non-collinear vertex triple, or zero if none."""
    n = len(points)
    for i in range(n):
        a, b, c = points[i], points[(i + 1) % n], points[(i + 2) % n]
        normal = cross(subtract(b, a), subtract(c, a))
        if magnitude(normal) >= EPSILON:
            return normal
    return (0.0, 0.0, 0.0)


def projection_axes(points: Sequence[Any]) -> Tuple[str, str]:
    """
    Pick the 2D projection that best preserves a polygon's shape.

    Drops the axis along which the polygon normal is largest. Roof
    boundaries with Y up project onto X-Z.

    Symmetric self-intersecting polygons (an even bow-tie) have a zero
    Newell normal; the normal of the first non-collinear vertex triple is
    used instead.
    """
    normal = newell_normal(points)
    if magnitude(normal) < EPSILON:
        normal = triple_normal(points)
    if magnitude(normal) < EPSILON:
        return DEFAULT_PROJECTION

    dominant = max(range(3), key=lambda i: abs(normal[i]))
    if dominant == 0:
        return ("y", "z")
    if dominant == 2:
        return ("x", "y")
    return DEFAULT_PROJECTION


def is_simple_polygon(boundaries: Sequence[Any]) -> bool:
    """
    Check that no two non-adjacent edges of the closed polygon cross.

    Args:
        boundaries: Ordered polygon vertices; the polygon is closed
                    automatically.

    Returns:
        True if the polygon does not self-intersect. Triangles are
        always simple.
    """
    n = len(boundaries)
    if n < 4:
        return True

    axes = projection_axes(boundaries)

    for i in range(n):
        edge1_start = boundaries[i]
        edge1_end = boundaries[(i + 1) % n]

        for j in range(i + 2, n):
            # First and last edge share vertex 0
            if i == 0 and j == n - 1:
                continue

            edge2_start = boundaries[j]
            edge2_end = boundaries[(j + 1) % n]

            if segments_intersect(edge1_start, edge1_end, edge2_start, edge2_end, axes):
                return False

    return True
