"""
Pytest configuration and fixtures for RoofGrid backend tests.
"""

import math
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

# Add backend to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from roofgrid.core.config import Settings
from roofgrid.services.geometry_3d import Measurement3DDataService
from roofgrid.services.measurement_engine import RoofMeasurementEngine
from roofgrid.services.roof_models import (
    Point3D,
    RoofMaterial,
    Surface,
    SurfaceType,
    Vector3,
)


def points(coords: Sequence[Tuple[float, float, float]]) -> List[Point3D]:
    """Build boundary points from (x, y, z) tuples."""
    return [Point3D(x, y, z) for x, y, z in coords]


def square_points(area: float, origin: Tuple[float, float] = (0.0, 0.0)) -> List[Point3D]:
    """Horizontal square of the given area in the X-Z plane."""
    side = math.sqrt(area)
    ox, oz = origin
    return points([
        (ox, 0.0, oz),
        (ox + side, 0.0, oz),
        (ox + side, 0.0, oz + side),
        (ox, 0.0, oz + side),
    ])


@pytest.fixture
def make_surface():
    """Factory for square roof surfaces with a declared area."""

    def _make(
        surface_id: str = "plane_1",
        area: float = 50.0,
        pitch_angle: float = 0.0,
        azimuth_angle: float = 0.0,
        surface_type: SurfaceType = SurfaceType.PRIMARY,
        material: RoofMaterial = RoofMaterial.SHINGLE,
        confidence: float = 0.95,
        boundaries: Optional[List[Point3D]] = None,
    ) -> Surface:
        return Surface(
            id=surface_id,
            boundaries=boundaries if boundaries is not None else square_points(area),
            normal=Vector3(0.0, 1.0, 0.0),
            pitch_angle=pitch_angle,
            azimuth_angle=azimuth_angle,
            area=area,
            perimeter=4 * math.sqrt(max(area, 0.0)),
            projected_area=area,
            type=surface_type,
            confidence=confidence,
            material=material,
        )

    return _make


@pytest.fixture
def square_surface(make_surface) -> Surface:
    """A single 50 m² horizontal shingle surface."""
    return make_surface("plane_1", 50.0)


@pytest.fixture
def two_plane_surfaces(make_surface) -> List[Surface]:
    """Two surfaces of 50 m² and 25 m²."""
    return [
        make_surface("plane_1", 50.0),
        make_surface("plane_2", 25.0),
    ]


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment cache."""
    return Settings()


@pytest.fixture
def engine(settings) -> RoofMeasurementEngine:
    return RoofMeasurementEngine(settings)


@pytest.fixture
def data_service() -> Measurement3DDataService:
    """3D data service with its own session registry."""
    return Measurement3DDataService(sessions={})
