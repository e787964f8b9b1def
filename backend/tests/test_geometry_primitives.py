"""
Tests for geometry primitives.

These tests validate:
- Collinearity checks
- Segment intersection (proper crossings only)
- Polygon self-intersection detection and projection choice
"""

import sys
from pathlib import Path

import pytest

# Add backend to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from roofgrid.services.geometry_primitives import (
    are_collinear,
    distance,
    is_simple_polygon,
    newell_normal,
    projection_axes,
    segments_intersect,
)
from roofgrid.services.roof_models import Point3D


def points(coords):
    return [Point3D(x, y, z) for x, y, z in coords]


class TestAreCollinear:
    """Tests for three-point collinearity."""

    def test_points_on_x_axis(self):
        """Three points on the X axis are collinear."""
        a, b, c = points([(0, 0, 0), (1, 0, 0), (2, 0, 0)])
        assert are_collinear(a, b, c) is True

    def test_right_angle(self):
        """Points forming a right angle are not collinear."""
        a, b, c = points([(0, 0, 0), (1, 0, 0), (0, 1, 0)])
        assert are_collinear(a, b, c) is False

    def test_coincident_points(self):
        """Coincident points count as collinear."""
        a = Point3D(1, 1, 1)
        assert are_collinear(a, a, Point3D(3, 2, 1)) is True

    def test_diagonal_in_3d(self):
        """Points on a 3D diagonal are collinear."""
        a, b, c = points([(0, 0, 0), (1, 2, 3), (2, 4, 6)])
        assert are_collinear(a, b, c) is True

    def test_epsilon_tolerance(self):
        """Tiny deviations below epsilon are still collinear."""
        a, b, c = points([(0, 0, 0), (1, 0, 0), (2, 1e-9, 0)])
        assert are_collinear(a, b, c) is True


class TestSegmentsIntersect:
    """Tests for segment intersection in the X-Z projection."""

    def test_crossing_diagonals(self):
        """Diagonals of a square cross."""
        p1, p2, p3, p4 = points([(0, 0, 0), (2, 0, 2), (2, 0, 0), (0, 0, 2)])
        assert segments_intersect(p1, p2, p3, p4) is True

    def test_parallel_segments(self):
        """Parallel segments never cross."""
        p1, p2, p3, p4 = points([(0, 0, 0), (2, 0, 0), (0, 0, 1), (2, 0, 1)])
        assert segments_intersect(p1, p2, p3, p4) is False

    def test_shared_endpoint_is_not_crossing(self):
        """Touching at an endpoint is not a proper crossing."""
        p1, p2, p3, p4 = points([(0, 0, 0), (2, 0, 0), (2, 0, 0), (2, 0, 2)])
        assert segments_intersect(p1, p2, p3, p4) is False

    def test_height_is_ignored(self):
        """Segments at different heights cross in the footprint."""
        p1, p2, p3, p4 = points([(0, 0, 0), (2, 5, 2), (2, 1, 0), (0, 3, 2)])
        assert segments_intersect(p1, p2, p3, p4) is True

    def test_custom_projection(self):
        """Segments crossing only in X-Y are detected with x/y axes."""
        p1, p2, p3, p4 = points([(0, 0, 0), (2, 2, 0), (2, 0, 0), (0, 2, 0)])
        assert segments_intersect(p1, p2, p3, p4) is False
        assert segments_intersect(p1, p2, p3, p4, axes=("x", "y")) is True


class TestIsSimplePolygon:
    """Tests for polygon self-intersection."""

    def test_square_is_simple(self):
        """A square is simple."""
        square = points([(0, 0, 0), (2, 0, 0), (2, 0, 2), (0, 0, 2)])
        assert is_simple_polygon(square) is True

    def test_bow_tie_is_not_simple(self):
        """The classic bow-tie crosses itself."""
        bow_tie = points([(0, 0, 0), (2, 0, 2), (2, 0, 0), (0, 0, 2)])
        assert is_simple_polygon(bow_tie) is False

    def test_triangle_is_always_simple(self):
        """Triangles cannot self-intersect."""
        triangle = points([(0, 0, 0), (4, 0, 0), (2, 0, 3)])
        assert is_simple_polygon(triangle) is True

    def test_concave_polygon_is_simple(self):
        """An L-shaped footprint is concave but simple."""
        l_shape = points([
            (0, 0, 0), (4, 0, 0), (4, 0, 2), (2, 0, 2), (2, 0, 4), (0, 0, 4),
        ])
        assert is_simple_polygon(l_shape) is True

    def test_vertical_bow_tie(self):
        """A bow-tie on a vertical wall is found through its own projection."""
        wall = points([(0, 0, 5), (4, 4, 5), (4, 0, 5), (0, 2, 5)])
        assert projection_axes(wall) == ("x", "y")
        assert is_simple_polygon(wall) is False

    def test_symmetric_vertical_bow_tie(self):
        """An even bow-tie with a zero Newell normal still projects onto its wall."""
        wall = points([(0, 0, 5), (2, 2, 5), (2, 0, 5), (0, 2, 5)])
        assert newell_normal(wall) == pytest.approx((0.0, 0.0, 0.0))
        assert projection_axes(wall) == ("x", "y")
        assert is_simple_polygon(wall) is False


class TestNormalsAndDistance:
    """Tests for Newell normals and distances."""

    def test_horizontal_square_normal_is_vertical(self):
        """A flat square has a vertical normal and projects onto X-Z."""
        square = points([(0, 0, 0), (1, 0, 0), (1, 0, 1), (0, 0, 1)])
        nx, ny, nz = newell_normal(square)
        assert nx == pytest.approx(0.0)
        assert abs(ny) == pytest.approx(2.0)
        assert nz == pytest.approx(0.0)
        assert projection_axes(square) == ("x", "z")

    def test_distance(self):
        """Distance is Euclidean in 3D."""
        a, b = points([(0, 0, 0), (3, 4, 12)])
        assert distance(a, b) == pytest.approx(13.0)
