"""
Material Estimation Service

Sizes roofing material orders from a measurement: waste factor with a
complexity surcharge, dominant material selection, per-material unit
counts (bundles, sheets, tiles) and an optional cost breakdown.

Material unit counts always use square-foot coverage values, the way
manufacturers publish them. material_units and costs use the configured
unit system.
"""

from typing import Dict, List, Optional, Sequence
import logging
import math

from ..core.config import Settings, get_settings
from .area_pitch import SQUARE_FEET_PER_SQUARE_METER, square_meters_to_square_feet
from .roof_models import (
    CostEstimate,
    MaterialCalculation,
    Measurement,
    RoofMaterial,
    Surface,
    SurfaceType,
)

logger = logging.getLogger(__name__)


# Complexity surcharge policy (factor increments)
PLANE_COUNT_THRESHOLD = 4
PER_EXTRA_PLANE = 0.05
STEEP_PITCH_THRESHOLD_DEG = 30.0
PER_STEEP_DEGREE = 0.002
SMALL_PLANE_AREA_M2 = 10.0
PER_SMALL_PLANE = 0.03
ORIENTATION_BUCKET_DEG = 45.0
ORIENTATION_THRESHOLD = 2
PER_EXTRA_ORIENTATION = 0.02
PER_SECONDARY_TYPE = 0.02


def _round(value: float, precision: int) -> float:
    return round(value, precision)


def calculate_complexity_factor(
    planes: Sequence[Surface],
    settings: Optional[Settings] = None,
) -> float:
    """
    Multiplier (>= 1.0) describing how intricate a roof is to cover.

    Grows with plane count beyond 4, average pitch above 30 degrees,
    planes under 10 m² (dormers, chimneys), distinct facing directions
    beyond 2, and each distinct non-primary surface type. Capped by
    ``settings.max_complexity_surcharge_percent``.
    """
    if settings is None:
        settings = get_settings()

    if not planes:
        return 1.0

    factor = 1.0

    if len(planes) > PLANE_COUNT_THRESHOLD:
        factor += (len(planes) - PLANE_COUNT_THRESHOLD) * PER_EXTRA_PLANE

    avg_pitch = sum(p.pitch_angle for p in planes) / len(planes)
    if avg_pitch > STEEP_PITCH_THRESHOLD_DEG:
        factor += (avg_pitch - STEEP_PITCH_THRESHOLD_DEG) * PER_STEEP_DEGREE

    small_planes = sum(1 for p in planes if p.area < SMALL_PLANE_AREA_M2)
    factor += small_planes * PER_SMALL_PLANE

    orientations = {
        (round(p.azimuth_angle / ORIENTATION_BUCKET_DEG) * ORIENTATION_BUCKET_DEG) % 360
        for p in planes
    }
    if len(orientations) > ORIENTATION_THRESHOLD:
        factor += (len(orientations) - ORIENTATION_THRESHOLD) * PER_EXTRA_ORIENTATION

    secondary_types = {p.type for p in planes if p.type != SurfaceType.PRIMARY}
    factor += len(secondary_types) * PER_SECONDARY_TYPE

    max_factor = 1.0 + settings.max_complexity_surcharge_percent / 100.0
    return min(factor, max_factor)


def calculate_waste_percent(
    planes: Sequence[Surface],
    settings: Optional[Settings] = None,
) -> float:
    """Base waste percentage plus the complexity surcharge."""
    if settings is None:
        settings = get_settings()

    factor = calculate_complexity_factor(planes, settings)
    return round(settings.waste_factor_percent + (factor - 1.0) * 100.0, 4)


def get_dominant_material(planes: Sequence[Surface]) -> RoofMaterial:
    """
    Material covering the largest combined area.

    Ties go to the material seen first. Returns UNKNOWN for no planes.
    """
    material_areas: Dict[RoofMaterial, float] = {}
    for plane in planes:
        material_areas[plane.material] = material_areas.get(plane.material, 0.0) + plane.area

    if not material_areas:
        return RoofMaterial.UNKNOWN

    return max(material_areas, key=lambda m: material_areas[m])


def calculate_material_specific(
    adjusted_area_m2: float,
    material: RoofMaterial,
    settings: Optional[Settings] = None,
) -> Dict[str, int]:
    """
    Unit counts for the dominant material, rounded up.

    Flat and unknown materials have no unit-based product.
    """
    if settings is None:
        settings = get_settings()

    sq_ft = square_meters_to_square_feet(adjusted_area_m2)

    if material == RoofMaterial.SHINGLE:
        return {"shingle_bundles": math.ceil(sq_ft / settings.shingle_bundle_coverage)}
    if material == RoofMaterial.METAL:
        return {"metal_sheets": math.ceil(sq_ft / settings.metal_sheet_coverage)}
    if material == RoofMaterial.TILE:
        return {"tiles": math.ceil(sq_ft / settings.tile_coverage)}

    return {}


def calculate_cost_estimate(
    material_units: float,
    adjusted_area: float,
    material: RoofMaterial,
    settings: Optional[Settings] = None,
) -> Optional[CostEstimate]:
    """
    Material and labor cost for an order.

    material_cost = material_units x unit price
    labor_cost = labor rate x adjusted_area

    Prices are configured per square foot and converted to the
    configured area unit first, so both unit systems cost the same.

    Returns None when pricing is disabled.
    """
    if settings is None:
        settings = get_settings()

    if not settings.pricing_enabled:
        return None

    precision = settings.area_precision
    to_area_unit = 1.0 if settings.unit_system == "imperial" else SQUARE_FEET_PER_SQUARE_METER
    material_cost = material_units * settings.material_price(material.value) * to_area_unit
    labor_cost = adjusted_area * settings.labor_price(material.value) * to_area_unit

    return CostEstimate(
        material_cost=_round(material_cost, precision),
        labor_cost=_round(labor_cost, precision),
        total_cost=_round(material_cost + labor_cost, precision),
        currency=settings.currency,
    )


def calculate_materials(
    measurement: Measurement,
    settings: Optional[Settings] = None,
) -> MaterialCalculation:
    """
    Calculate material requirements for a measurement.

    This function:
    1. Takes the total projected area as the base area
    2. Applies base waste plus the complexity surcharge
    3. Picks the dominant material by covered area
    4. Sizes material-specific units and prices the order

    A zero base area yields a zero-valued result rather than an error.

    Args:
        measurement: Validated roof measurement
        settings: Optional Settings instance

    Returns:
        MaterialCalculation in the configured unit system
    """
    if settings is None:
        settings = get_settings()

    planes: List[Surface] = list(measurement.planes)
    dominant_material = get_dominant_material(planes)
    base_area_m2 = measurement.total_projected_area

    if base_area_m2 <= 0:
        logger.debug(f"Measurement {measurement.id} has no projected area, returning empty materials")
        return MaterialCalculation(
            base_area=0.0,
            adjusted_area=0.0,
            dominant_material=dominant_material,
            material_units=0.0,
            waste_percent=0.0,
            material_specific={},
            cost_estimate=None,
            unit_system=settings.unit_system,
        )

    waste_percent = calculate_waste_percent(planes, settings)
    adjusted_area_m2 = base_area_m2 * (1 + waste_percent / 100.0)

    if settings.unit_system == "imperial":
        base_area = square_meters_to_square_feet(base_area_m2)
        adjusted_area = square_meters_to_square_feet(adjusted_area_m2)
    else:
        base_area = base_area_m2
        adjusted_area = adjusted_area_m2

    precision = settings.area_precision
    material_units = _round(adjusted_area, precision)
    material_specific = calculate_material_specific(adjusted_area_m2, dominant_material, settings)
    cost_estimate = calculate_cost_estimate(material_units, adjusted_area, dominant_material, settings)

    logger.info(
        f"Materials for {measurement.id}: {dominant_material.value}, "
        f"{adjusted_area:.2f} adjusted area, {waste_percent:.1f}% waste"
    )

    return MaterialCalculation(
        base_area=_round(base_area, precision),
        adjusted_area=_round(adjusted_area, precision),
        dominant_material=dominant_material,
        material_units=material_units,
        waste_percent=waste_percent,
        material_specific=material_specific,
        cost_estimate=cost_estimate,
        unit_system=settings.unit_system,
    )
