"""
Configuration for the RoofGrid measurement engine.

Settings are read from environment variables prefixed with ``ROOFGRID_``
(or a local ``.env`` file). Services take an optional ``Settings`` instance
and fall back to the cached global one from ``get_settings()``.

Example:
    ROOFGRID_PITCH_CORRECTION_METHOD=trigonometric
    ROOFGRID_WASTE_FACTOR_PERCENT=12
    ROOFGRID_UNIT_SYSTEM=imperial
"""

import logging
from functools import lru_cache
from typing import Dict, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_MATERIAL_PRICES: Dict[str, float] = {
    "shingle": 3.50,
    "metal": 8.00,
    "tile": 6.50,
    "flat": 4.00,
    "unknown": 4.00,
}

DEFAULT_LABOR_PRICES: Dict[str, float] = {
    "shingle": 2.50,
    "metal": 4.00,
    "tile": 4.50,
    "flat": 3.00,
    "unknown": 3.00,
}


class Settings(BaseSettings):
    """Engine configuration loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="ROOFGRID_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "RoofGrid"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    # Calculation
    unit_system: Literal["metric", "imperial"] = "metric"
    area_precision: int = Field(default=2, ge=0, le=6)
    pitch_correction_method: Literal["trigonometric", "projection", "advanced"] = "advanced"
    geometry_validation: bool = True

    # Waste policy
    waste_factor_percent: float = Field(default=10.0, ge=0.0)
    max_complexity_surcharge_percent: float = Field(default=50.0, ge=0.0)

    # Validation thresholds
    quality_threshold: int = Field(default=75, ge=0, le=100)
    min_plane_area_m2: float = 0.5
    small_plane_area_m2: float = 2.0
    max_plane_area_m2: float = 2000.0
    min_total_roof_area_m2: float = 5.0

    # Material coverage (square feet per unit)
    shingle_bundle_coverage: float = Field(default=33.3, gt=0)
    metal_sheet_coverage: float = Field(default=36.0, gt=0)
    tile_coverage: float = Field(default=1.0, gt=0)

    # Pricing (per square foot, converted to the configured unit when costing)
    pricing_enabled: bool = True
    currency: str = "USD"
    material_prices: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_MATERIAL_PRICES)
    )
    labor_prices: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_LABOR_PRICES)
    )

    def material_price(self, material: str) -> float:
        """Material price per square foot, falling back to the 'unknown' rate."""
        return self.material_prices.get(
            material, self.material_prices.get("unknown", DEFAULT_MATERIAL_PRICES["unknown"])
        )

    def labor_price(self, material: str) -> float:
        """Labor rate per square foot, falling back to the 'unknown' rate."""
        return self.labor_prices.get(
            material, self.labor_prices.get("unknown", DEFAULT_LABOR_PRICES["unknown"])
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging for applications embedding the engine."""
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
