"""
Roof Measurement Data Models

Points, surfaces (roof planes), measurements and derived results shared by
the geometry engine, the material estimator and the 3D data service.

Every model serializes with ``to_dict()``; the models that travel through
exports (points, surfaces, measurements) also rebuild with ``from_dict()``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import hashlib
import uuid


# =============================================================================
# Errors
# =============================================================================


class RoofGridError(Exception):
    """Base class for measurement engine errors."""
    pass


class InvalidInputError(RoofGridError, ValueError):
    """Raised for empty or degenerate surfaces and unknown sessions."""
    pass


class UnsupportedFormatError(RoofGridError, ValueError):
    """Raised when an export format is not supported."""
    pass


# =============================================================================
# Enums
# =============================================================================


class SensorAccuracy(str, Enum):
    """Device sensor accuracy at capture time."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_value(cls, value: Any) -> "SensorAccuracy":
        try:
            return cls(value)
        except ValueError:
            return cls.LOW


class SurfaceType(str, Enum):
    """Roof surface classification."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    DORMER = "dormer"
    HIP = "hip"
    CHIMNEY = "chimney"
    OTHER = "other"
    CUSTOM = "custom"

    @classmethod
    def from_value(cls, value: Any) -> "SurfaceType":
        """Parse a surface type, mapping unknown tags to OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class RoofMaterial(str, Enum):
    """Roofing material classification."""

    SHINGLE = "shingle"
    TILE = "tile"
    METAL = "metal"
    FLAT = "flat"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: Any) -> "RoofMaterial":
        """Parse a material, mapping missing or unknown tags to UNKNOWN."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class AuditAction(str, Enum):
    """Actions recorded in a measurement audit trail."""

    CREATE = "create"
    MODIFY = "modify"
    EXPORT = "export"
    SYNC = "sync"
    VIEW = "view"
    DELETE = "delete"


# =============================================================================
# Geometry Models
# =============================================================================


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Vector3:
    """3D direction vector."""

    x: float
    y: float
    z: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vector3":
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            z=float(data.get("z", 0.0)),
        )


@dataclass(frozen=True)
class Point3D:
    """
    A captured boundary point in meters.

    Points are immutable once captured. Y is the vertical axis; the roof
    footprint lies in the X-Z plane.

    Fields:
        x, y, z: Coordinates in meters
        confidence: Capture confidence (0.0 to 1.0)
        timestamp: When the point was captured
        sensor_accuracy: Device sensor accuracy at capture time
    """

    x: float
    y: float
    z: float
    confidence: float = 1.0
    timestamp: Optional[datetime] = None
    sensor_accuracy: SensorAccuracy = SensorAccuracy.HIGH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "confidence": self.confidence,
            "timestamp": _format_datetime(self.timestamp),
            "sensor_accuracy": self.sensor_accuracy.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point3D":
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            z=float(data.get("z", 0.0)),
            confidence=float(data.get("confidence", 1.0)),
            timestamp=parse_datetime(data.get("timestamp")),
            sensor_accuracy=SensorAccuracy.from_value(
                data.get("sensor_accuracy") or data.get("sensorAccuracy") or "high"
            ),
        )


@dataclass
class Surface:
    """
    A single roof facet ("plane") described by an ordered boundary polygon.

    Surfaces are produced by capture and read by the engine; the engine
    never changes boundaries, it returns copies with derived fields set.

    Fields:
        id: Unique plane identifier
        boundaries: Ordered boundary points (>= 3, non-collinear, simple)
        normal: Unit normal vector
        pitch_angle: Degrees from horizontal (0-90)
        azimuth_angle: Compass bearing in degrees [0, 360)
        area: True surface area in square meters
        perimeter: Boundary length in meters
        projected_area: Horizontal projection of the area
        type: Surface classification
        confidence: Detection confidence (0.0 to 1.0)
        material: Roofing material
    """

    id: str
    boundaries: List[Point3D]
    normal: Vector3 = field(default_factory=lambda: Vector3(0.0, 1.0, 0.0))
    pitch_angle: float = 0.0
    azimuth_angle: float = 0.0
    area: float = 0.0
    perimeter: float = 0.0
    projected_area: float = 0.0
    type: SurfaceType = SurfaceType.PRIMARY
    confidence: float = 1.0
    material: RoofMaterial = RoofMaterial.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "boundaries": [p.to_dict() for p in self.boundaries],
            "normal": self.normal.to_dict(),
            "pitch_angle": self.pitch_angle,
            "azimuth_angle": self.azimuth_angle,
            "area": self.area,
            "perimeter": self.perimeter,
            "projected_area": self.projected_area,
            "type": self.type.value,
            "confidence": self.confidence,
            "material": self.material.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Surface":
        return cls(
            id=str(data.get("id", "")),
            boundaries=[Point3D.from_dict(p) for p in data.get("boundaries", [])],
            normal=Vector3.from_dict(data.get("normal") or {"x": 0.0, "y": 1.0, "z": 0.0}),
            pitch_angle=float(data.get("pitch_angle", 0.0)),
            azimuth_angle=float(data.get("azimuth_angle", 0.0)),
            area=float(data.get("area", 0.0)),
            perimeter=float(data.get("perimeter", 0.0)),
            projected_area=float(data.get("projected_area", 0.0)),
            type=SurfaceType.from_value(data.get("type", "primary")),
            confidence=float(data.get("confidence", 1.0)),
            material=RoofMaterial.from_value(data.get("material")),
        )


# =============================================================================
# Measurement Models
# =============================================================================


@dataclass
class QualityMetrics:
    """Capture session quality summary. Scores are 0-100."""

    overall_score: float = 0.0
    tracking_stability: float = 0.0
    point_density: float = 0.0
    duration: float = 0.0
    tracking_interruptions: int = 0
    lighting_quality: float = 0.0
    movement_smoothness: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "tracking_stability": self.tracking_stability,
            "point_density": self.point_density,
            "duration": self.duration,
            "tracking_interruptions": self.tracking_interruptions,
            "lighting_quality": self.lighting_quality,
            "movement_smoothness": self.movement_smoothness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QualityMetrics":
        return cls(
            overall_score=data.get("overall_score", 0.0),
            tracking_stability=data.get("tracking_stability", 0.0),
            point_density=data.get("point_density", 0.0),
            duration=data.get("duration", 0.0),
            tracking_interruptions=data.get("tracking_interruptions", 0),
            lighting_quality=data.get("lighting_quality", 0.0),
            movement_smoothness=data.get("movement_smoothness", 0.0),
        )


@dataclass
class AuditEntry:
    """One append-only audit trail record."""

    id: str
    timestamp: datetime
    action: AuditAction
    user_id: str
    session_id: str
    description: str = ""
    data_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": _format_datetime(self.timestamp),
            "action": self.action.value,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "description": self.description,
            "data_hash": self.data_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        return cls(
            id=data.get("id", ""),
            timestamp=parse_datetime(data.get("timestamp")) or datetime.utcnow(),
            action=AuditAction(data.get("action", AuditAction.VIEW.value)),
            user_id=data.get("user_id", ""),
            session_id=data.get("session_id", ""),
            description=data.get("description", ""),
            data_hash=data.get("data_hash", ""),
        )


@dataclass
class ExportRecord:
    """Record of a measurement export handed to a file/share collaborator."""

    id: str
    timestamp: datetime
    format: str
    file_size: int
    destination: str = "local"
    user_id: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    status: str = "completed"
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": _format_datetime(self.timestamp),
            "format": self.format,
            "file_size": self.file_size,
            "destination": self.destination,
            "user_id": self.user_id,
            "parameters": self.parameters,
            "status": self.status,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportRecord":
        return cls(
            id=data.get("id", ""),
            timestamp=parse_datetime(data.get("timestamp")) or datetime.utcnow(),
            format=data.get("format", ""),
            file_size=data.get("file_size", 0),
            destination=data.get("destination", "local"),
            user_id=data.get("user_id", ""),
            parameters=data.get("parameters", {}),
            status=data.get("status", "completed"),
            error_message=data.get("error_message"),
        )


@dataclass
class ValidationResult:
    """Outcome of a validation pass. Never raised, always returned."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    quality_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "recommendations": self.recommendations,
            "quality_score": self.quality_score,
        }


@dataclass
class Measurement:
    """
    A complete roof measurement with full auditability.

    Created once per capture or manual session. After creation only the
    audit trail and the export history grow.

    Fields:
        id: Unique measurement identifier
        property_id: Property the roof belongs to
        user_id: User who performed the measurement
        timestamp: Measurement time
        planes: Roof surfaces (unique ids)
        total_area: Sum of surface areas
        total_projected_area: Sum of projected areas
        accuracy: Accuracy estimate (0.0 to 1.0)
        quality_metrics: Session quality metrics
        audit_trail: Append-only audit log, oldest first
        exports: Export history
        compliance_status: Standards and review status
        validation_result: Final validation notes
        metadata: Calculation method, unit system, version, timing
    """

    id: str
    property_id: str
    user_id: str
    timestamp: datetime
    planes: List[Surface] = field(default_factory=list)
    total_area: float = 0.0
    total_projected_area: float = 0.0
    accuracy: float = 0.0
    quality_metrics: QualityMetrics = field(default_factory=QualityMetrics)
    audit_trail: List[AuditEntry] = field(default_factory=list)
    exports: List[ExportRecord] = field(default_factory=list)
    compliance_status: Dict[str, Any] = field(default_factory=dict)
    validation_result: Optional[ValidationResult] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def data_hash(self) -> str:
        """SHA-256 over plane ids and totals, used to stamp audit entries."""
        payload = "|".join(
            [self.id]
            + [f"{p.id}:{p.area}:{p.projected_area}" for p in self.planes]
            + [str(self.total_area), str(self.total_projected_area)]
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "property_id": self.property_id,
            "user_id": self.user_id,
            "timestamp": _format_datetime(self.timestamp),
            "planes": [p.to_dict() for p in self.planes],
            "total_area": self.total_area,
            "total_projected_area": self.total_projected_area,
            "accuracy": self.accuracy,
            "quality_metrics": self.quality_metrics.to_dict(),
            "audit_trail": [a.to_dict() for a in self.audit_trail],
            "exports": [e.to_dict() for e in self.exports],
            "compliance_status": self.compliance_status,
            "validation_result": (
                self.validation_result.to_dict() if self.validation_result else None
            ),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Measurement":
        validation = data.get("validation_result")
        return cls(
            id=data.get("id", ""),
            property_id=data.get("property_id", ""),
            user_id=data.get("user_id", ""),
            timestamp=parse_datetime(data.get("timestamp")) or datetime.utcnow(),
            planes=[Surface.from_dict(p) for p in data.get("planes", [])],
            total_area=data.get("total_area", 0.0),
            total_projected_area=data.get("total_projected_area", 0.0),
            accuracy=data.get("accuracy", 0.0),
            quality_metrics=QualityMetrics.from_dict(data.get("quality_metrics") or {}),
            audit_trail=[AuditEntry.from_dict(a) for a in data.get("audit_trail", [])],
            exports=[ExportRecord.from_dict(e) for e in data.get("exports", [])],
            compliance_status=data.get("compliance_status", {}),
            validation_result=ValidationResult(**validation) if validation else None,
            metadata=data.get("metadata", {}),
        )


# =============================================================================
# Material Models
# =============================================================================


@dataclass
class CostEstimate:
    """Material and labor cost breakdown."""

    material_cost: float
    labor_cost: float
    total_cost: float
    currency: str = "USD"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_cost": self.material_cost,
            "labor_cost": self.labor_cost,
            "total_cost": self.total_cost,
            "currency": self.currency,
        }


@dataclass
class MaterialCalculation:
    """
    Material requirements derived from a measurement.

    Recomputed on demand; never stored as authoritative state.
    material_specific holds one of "shingle_bundles", "metal_sheets" or
    "tiles" depending on the dominant material.
    """

    base_area: float
    adjusted_area: float
    dominant_material: RoofMaterial
    material_units: float
    waste_percent: float
    material_specific: Dict[str, int] = field(default_factory=dict)
    cost_estimate: Optional[CostEstimate] = None
    unit_system: str = "metric"

    @property
    def total_area(self) -> float:
        """Area including waste."""
        return self.adjusted_area

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_area": self.base_area,
            "adjusted_area": self.adjusted_area,
            "total_area": self.total_area,
            "dominant_material": self.dominant_material.value,
            "material_units": self.material_units,
            "waste_percent": self.waste_percent,
            "material_specific": self.material_specific,
            "cost_estimate": self.cost_estimate.to_dict() if self.cost_estimate else None,
            "unit_system": self.unit_system,
        }


def generate_measurement_id() -> str:
    """Generate a unique measurement ID."""
    return f"meas_{uuid.uuid4().hex[:12]}"


def generate_audit_id() -> str:
    """Generate a unique audit entry ID."""
    return f"audit_{uuid.uuid4().hex[:12]}"


def generate_export_id() -> str:
    """Generate a unique export record ID."""
    return f"exp_{uuid.uuid4().hex[:12]}"
