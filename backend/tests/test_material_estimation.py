"""
Tests for material estimation.

These tests validate:
- Complexity factor and waste percentage policy
- Dominant material selection
- Material-specific unit counts and cost estimates
- Zero-area and imperial handling
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add backend to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from roofgrid.core.config import Settings
from roofgrid.services.material_estimation import (
    calculate_complexity_factor,
    calculate_material_specific,
    calculate_materials,
    calculate_waste_percent,
    get_dominant_material,
)
from roofgrid.services.roof_models import Measurement, RoofMaterial, SurfaceType


def measurement_for(planes) -> Measurement:
    return Measurement(
        id="meas_test",
        property_id="prop_1",
        user_id="user_1",
        timestamp=datetime(2024, 1, 1),
        planes=planes,
        total_area=sum(p.area for p in planes),
        total_projected_area=sum(p.projected_area for p in planes),
        accuracy=0.9,
    )


class TestComplexityAndWaste:
    """Tests for the waste surcharge policy."""

    def test_simple_roof_uses_base_waste(self, square_surface, settings):
        """One plain surface gets the base waste."""
        assert calculate_complexity_factor([square_surface], settings) == 1.0
        assert calculate_waste_percent([square_surface], settings) == pytest.approx(10.0)

    def test_diverse_small_surfaces_raise_waste(self, make_surface, settings):
        """Four small surfaces of different types exceed the base waste."""
        planes = [
            make_surface("a", 5.0, surface_type=SurfaceType.SECONDARY),
            make_surface("b", 5.0, surface_type=SurfaceType.DORMER),
            make_surface("c", 5.0, surface_type=SurfaceType.CHIMNEY),
            make_surface("d", 5.0, surface_type=SurfaceType.OTHER),
        ]
        assert calculate_waste_percent(planes, settings) > settings.waste_factor_percent

    def test_more_planes_increase_complexity(self, make_surface, settings):
        """Eight planes are more complex than four."""
        four = [make_surface(f"p{i}", 40.0) for i in range(4)]
        eight = [make_surface(f"p{i}", 40.0) for i in range(8)]
        assert calculate_complexity_factor(eight, settings) > calculate_complexity_factor(four, settings)

    def test_steep_pitch_increases_complexity(self, make_surface, settings):
        """50 degrees adds 0.002 per degree above 30."""
        steep = [make_surface("a", 40.0, pitch_angle=50.0)]
        assert calculate_complexity_factor(steep, settings) == pytest.approx(1.04)

    def test_many_orientations_increase_complexity(self, make_surface, settings):
        """Four orientations add 0.02 each beyond two."""
        planes = [
            make_surface(f"p{i}", 40.0, azimuth_angle=bearing)
            for i, bearing in enumerate([0, 90, 180, 270])
        ]
        assert calculate_complexity_factor(planes, settings) == pytest.approx(1.04)

    def test_factor_is_capped(self, make_surface):
        """The factor never exceeds the configured cap."""
        capped = Settings(max_complexity_surcharge_percent=20)
        planes = [
            make_surface(f"p{i}", 1.0, surface_type=SurfaceType.DORMER, pitch_angle=70.0)
            for i in range(20)
        ]
        assert calculate_complexity_factor(planes, capped) == pytest.approx(1.2)

    def test_no_planes(self, settings):
        """No planes means no surcharge."""
        assert calculate_complexity_factor([], settings) == 1.0


class TestDominantMaterial:
    """Tests for area-weighted material selection."""

    def test_largest_combined_area_wins(self, make_surface):
        """Two tile planes outweigh one larger metal plane."""
        planes = [
            make_surface("a", 30.0, material=RoofMaterial.METAL),
            make_surface("b", 25.0, material=RoofMaterial.TILE),
            make_surface("c", 25.0, material=RoofMaterial.TILE),
        ]
        assert get_dominant_material(planes) == RoofMaterial.TILE

    def test_no_planes_is_unknown(self):
        """No planes has no dominant material."""
        assert get_dominant_material([]) == RoofMaterial.UNKNOWN


class TestMaterialSpecific:
    """Tests for unit counts per material."""

    def test_shingle_bundles_round_up(self, settings):
        """Bundle counts round up."""
        # 110 m² = 1184.04 sq ft; / 33.3 = 35.56
        result = calculate_material_specific(110.0, RoofMaterial.SHINGLE, settings)
        assert result == {"shingle_bundles": 36}

    def test_metal_sheets(self, settings):
        """Sheets are counted from square feet."""
        # 100 m² = 1076.4 sq ft; / 36 = 29.9
        assert calculate_material_specific(100.0, RoofMaterial.METAL, settings) == {"metal_sheets": 30}

    def test_tiles(self, settings):
        """Tiles are counted per square foot."""
        assert calculate_material_specific(10.0, RoofMaterial.TILE, settings) == {"tiles": 108}

    def test_flat_has_no_units(self, settings):
        """Flat roofs have no unit count."""
        assert calculate_material_specific(50.0, RoofMaterial.FLAT, settings) == {}


class TestCalculateMaterials:
    """Tests for the full material calculation."""

    def test_single_shingle_roof(self, make_surface, settings):
        """100 m² of shingle gets 10% waste and 36 bundles."""
        measurement = measurement_for([make_surface("a", 100.0)])

        result = calculate_materials(measurement, settings)

        assert result.base_area == pytest.approx(100.0)
        assert result.waste_percent == pytest.approx(10.0)
        assert result.adjusted_area == pytest.approx(110.0)
        assert result.total_area == result.adjusted_area
        assert result.dominant_material == RoofMaterial.SHINGLE
        assert result.material_specific == {"shingle_bundles": 36}

    def test_cost_estimate(self, make_surface, settings):
        """Per-square-foot prices are applied to the metric area in square feet."""
        measurement = measurement_for([make_surface("a", 100.0)])

        cost = calculate_materials(measurement, settings).cost_estimate

        # 110 m² adjusted = 1184.04 sq ft at 3.50 and 2.50 per sq ft
        assert cost is not None
        assert cost.material_cost == pytest.approx(4144.14)
        assert cost.labor_cost == pytest.approx(2960.10)
        assert cost.total_cost == pytest.approx(7104.24)
        assert cost.currency == "USD"

    def test_cost_matches_across_unit_systems(self, make_surface, settings):
        """The same roof costs the same in metric and imperial mode."""
        measurement = measurement_for([make_surface("a", 100.0)])

        metric = calculate_materials(measurement, settings).cost_estimate
        imperial = calculate_materials(measurement, Settings(unit_system="imperial")).cost_estimate

        assert metric.total_cost == pytest.approx(imperial.total_cost, abs=0.02)

    def test_pricing_disabled(self, make_surface):
        """No cost estimate when pricing is off."""
        measurement = measurement_for([make_surface("a", 100.0)])
        result = calculate_materials(measurement, Settings(pricing_enabled=False))
        assert result.cost_estimate is None

    def test_zero_area_returns_zero_result(self, make_surface, settings):
        """A measurement with no projected area is not an error."""
        plane = make_surface("a", 20.0)
        plane.projected_area = 0.0
        measurement = measurement_for([plane])

        result = calculate_materials(measurement, settings)

        assert result.base_area == 0.0
        assert result.adjusted_area == 0.0
        assert result.material_units == 0.0
        assert result.material_specific == {}
        assert result.cost_estimate is None

    def test_imperial_units(self, make_surface):
        """Imperial mode reports areas in square feet."""
        imperial = Settings(unit_system="imperial")
        measurement = measurement_for([make_surface("a", 100.0)])

        result = calculate_materials(measurement, imperial)

        assert result.unit_system == "imperial"
        assert result.base_area == pytest.approx(1076.4)
        assert result.adjusted_area == pytest.approx(1184.04)
        assert result.material_specific == {"shingle_bundles": 36}

    def test_to_dict(self, make_surface, settings):
        """The result serializes material and cost."""
        data = calculate_materials(measurement_for([make_surface("a", 100.0)]), settings).to_dict()
        assert data["dominant_material"] == "shingle"
        assert data["cost_estimate"]["total_cost"] == pytest.approx(7104.24)
