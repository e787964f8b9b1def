"""
Roof Measurement Engine

Orchestrates plane validation, area/pitch calculation, quality scoring,
material estimation and export into complete, auditable roof
measurements.

Every measurement carries its own append-only audit trail; the first
entry is always the 'create' record of the calculation that produced it.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Union
import logging
import math
import time

from ..core.config import Settings, get_settings
from .area_pitch import apply_pitch_correction, compute_area, compute_perimeter
from .material_estimation import calculate_materials as estimate_materials
from .plane_validation import is_valid_plane_geometry
from .quality_scoring import calculate_quality_metrics, calculate_size_consistency
from .report_export import ExportFormat, export_to_csv, export_to_json, export_to_pdf_text
from .roof_models import (
    AuditAction,
    AuditEntry,
    ExportRecord,
    InvalidInputError,
    MaterialCalculation,
    Measurement,
    RoofMaterial,
    Surface,
    UnsupportedFormatError,
    ValidationResult,
    generate_audit_id,
    generate_export_id,
    generate_measurement_id,
)

logger = logging.getLogger(__name__)


ENGINE_VERSION = "1.0.0"
COMPLIANCE_STANDARDS = ["ISO-25178", "ASTM-E2738"]
COMPLIANCE_REVIEW_DAYS = 30

# Confidence thresholds
CRITICAL_CONFIDENCE = 0.3
LOW_CONFIDENCE = 0.6
RECOMMENDED_CONFIDENCE = 0.7

# Pitch thresholds (degrees)
STEEP_PITCH = 60.0
HIGH_PITCH = 45.0
NEARLY_FLAT_PITCH = 2.0
FLAT_MATERIAL_PITCH = 5.0

MIN_RECOMMENDED_BOUNDARY_POINTS = 4

RECOMMEND_REMEASURE = "Consider remeasuring with better lighting and more stable movement"
RECOMMEND_MOVE_CLOSER = "Move closer to the roof surface for better accuracy"
RECOMMEND_REMEASURE_SMALL = "Remeasure very small sections to confirm they are real roof surfaces"
RECOMMEND_CHECK_CALIBRATION = "Check calibration and confirm all roof sections were measured"
RECOMMEND_CORNER_ORDER = "Remeasure irregular surfaces, tapping corners in order around the edge"


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _numeric_errors(plane: Surface) -> List[str]:
    """Errors for a plane whose area or confidence is missing or not finite."""
    errors = []
    if not _is_finite_number(plane.area):
        errors.append(f"Invalid area for plane {plane.id}: {plane.area!r}")
    if not _is_finite_number(plane.confidence):
        errors.append(f"Invalid confidence for plane {plane.id}: {plane.confidence!r}")
    return errors


def _quality_score(
    planes: Sequence[Surface],
    valid_geometry_count: int,
    has_errors: bool,
) -> int:
    """
    Weighted validation score (0-100).

    40 for average confidence, 30 for the share of valid geometry,
    20 for size consistency and 10 when there are no errors.
    """
    if not planes:
        return 0

    avg_confidence = sum(p.confidence for p in planes) / len(planes)
    geometry_ratio = valid_geometry_count / len(planes)
    size_consistency = calculate_size_consistency(planes)

    score = (
        avg_confidence * 40
        + geometry_ratio * 30
        + size_consistency * 0.2
        + (0 if has_errors else 10)
    )
    return int(round(max(0.0, min(100.0, score))))


def _parse_export_format(format: Union[ExportFormat, str]) -> ExportFormat:
    try:
        return ExportFormat(format)
    except ValueError:
        raise UnsupportedFormatError(f"Unsupported export format: {format}")


class RoofMeasurementEngine:
    """
    Multi-plane roof measurement with pitch correction, material
    estimation, export and audit trails.

    Args:
        settings: Optional Settings instance (uses global if not provided)
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_planes(self, planes: Sequence[Surface]) -> ValidationResult:
        """
        Strict validation used before calculating a measurement.

        Errors (measurement is rejected) for no planes, duplicate ids,
        missing or non-finite area or confidence, invalid geometry,
        non-positive area and critically low confidence.
        Warnings and recommendations describe anything else worth a look.
        """
        errors: List[str] = []
        warnings: List[str] = []
        recommendations: List[str] = []

        if not planes:
            return ValidationResult(
                is_valid=False,
                errors=["No planes detected"],
                recommendations=["Ensure proper lighting and stable device movement"],
                quality_score=0,
            )

        seen_ids = set()
        valid_geometry_count = 0
        scored: List[Surface] = []

        for plane in planes:
            if plane.id in seen_ids:
                errors.append(f"Duplicate plane id {plane.id}")
            seen_ids.add(plane.id)

            numeric_errors = _numeric_errors(plane)
            if numeric_errors:
                errors.extend(numeric_errors)
                continue
            scored.append(plane)

            if is_valid_plane_geometry(plane, self.settings):
                valid_geometry_count += 1
            else:
                errors.append(
                    f"Invalid geometry for plane {plane.id}: "
                    "insufficient boundary points or invalid shape"
                )

            if plane.area <= 0:
                errors.append(f"Non-positive area for plane {plane.id}: {plane.area:.2f} sq m")
            elif plane.area < self.settings.min_plane_area_m2:
                warnings.append(
                    f"Very small plane {plane.id}: {plane.area:.2f} sq m - may be measurement noise"
                )
            elif plane.area > self.settings.max_plane_area_m2:
                warnings.append(
                    f"Unusually large plane {plane.id}: {plane.area:.2f} sq m - verify accuracy"
                )

            if plane.confidence < CRITICAL_CONFIDENCE:
                errors.append(
                    f"Critically low confidence for plane {plane.id}: {plane.confidence * 100:.1f}%"
                )
            elif plane.confidence < LOW_CONFIDENCE:
                warnings.append(
                    f"Low confidence for plane {plane.id}: {plane.confidence * 100:.1f}%"
                )

            if plane.pitch_angle > STEEP_PITCH:
                recommendations.append(
                    f"Steep roof detected ({plane.pitch_angle:.1f} deg) - consider safety measures"
                )
            elif plane.pitch_angle < NEARLY_FLAT_PITCH:
                recommendations.append(
                    f"Nearly flat roof detected ({plane.pitch_angle:.1f} deg) - verify drainage requirements"
                )

            if len(plane.boundaries) < MIN_RECOMMENDED_BOUNDARY_POINTS:
                warnings.append(
                    f"Low boundary point density for plane {plane.id} - may affect accuracy"
                )

        quality_score = _quality_score(scored, valid_geometry_count, bool(errors))
        if scored:
            avg_confidence = sum(p.confidence for p in scored) / len(scored)
        else:
            avg_confidence = 0.0

        if quality_score < self.settings.quality_threshold:
            recommendations.append(RECOMMEND_REMEASURE)
        if avg_confidence < RECOMMENDED_CONFIDENCE:
            recommendations.append(RECOMMEND_MOVE_CLOSER)

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            recommendations=recommendations,
            quality_score=quality_score,
        )

    def validate_manual_measurement(self, planes: Sequence[Surface]) -> ValidationResult:
        """
        Softer validation for manually traced surfaces.

        Small areas and irregular shapes are flagged as warnings so the
        user can keep working. A surface only becomes an error when its
        area is missing, not finite or non-positive, or below the absolute
        floor while its geometry is also invalid. Erroneous surfaces are
        left out of the total area and the score. Never raises.

        Args:
            planes: Manually measured surfaces (declared areas are used)

        Returns:
            ValidationResult with actionable recommendations
        """
        errors: List[str] = []
        warnings: List[str] = []
        recommendations: List[str] = []

        if not planes:
            return ValidationResult(
                is_valid=False,
                errors=["No planes measured"],
                recommendations=["Trace at least one roof surface"],
                quality_score=0,
            )

        settings = self.settings
        valid_geometry_count = 0
        small_area_found = False
        irregular_found = False
        scored: List[Surface] = []

        for plane in planes:
            try:
                numeric_errors = _numeric_errors(plane)
                if numeric_errors:
                    errors.extend(numeric_errors)
                    continue

                geometry_ok = is_valid_plane_geometry(plane, settings)

                if plane.area <= 0:
                    errors.append(f"Non-positive area for plane {plane.id}: {plane.area:.2f} sq m")
                elif plane.area < settings.small_plane_area_m2:
                    small_area_found = True
                    if plane.area < settings.min_plane_area_m2:
                        warnings.append(
                            f"Very small area for plane {plane.id}: {plane.area:.2f} sq m "
                            f"(below the {settings.min_plane_area_m2} sq m minimum)"
                        )
                        if not geometry_ok:
                            errors.append(
                                f"Plane {plane.id} is below the minimum area and has invalid geometry"
                            )
                    else:
                        warnings.append(
                            f"Very small area for plane {plane.id}: {plane.area:.2f} sq m"
                        )
                elif plane.area > settings.max_plane_area_m2:
                    warnings.append(
                        f"Unusually large area for plane {plane.id}: {plane.area:.2f} sq m - verify accuracy"
                    )

                if not geometry_ok:
                    irregular_found = True
                    warnings.append(
                        f"Irregular shape for plane {plane.id}: check boundary point order"
                    )

                if plane.confidence < LOW_CONFIDENCE:
                    warnings.append(
                        f"Low confidence for plane {plane.id}: {plane.confidence * 100:.1f}%"
                    )
            except Exception as e:
                errors.append(f"Could not validate plane {getattr(plane, 'id', '?')}: {e}")
                continue

            scored.append(plane)
            if geometry_ok:
                valid_geometry_count += 1

        total_area = sum(max(p.area, 0.0) for p in scored)
        small_total = total_area < settings.min_total_roof_area_m2
        if small_total:
            warnings.append(
                f"Small total roof area measured: {total_area:.2f} sq m - "
                "verify all roof sections were captured"
            )

        if small_area_found:
            recommendations.append(RECOMMEND_REMEASURE_SMALL)
        if small_total:
            recommendations.append(RECOMMEND_CHECK_CALIBRATION)
        if irregular_found:
            recommendations.append(RECOMMEND_CORNER_ORDER)

        quality_score = _quality_score(scored, valid_geometry_count, bool(errors))
        if quality_score < settings.quality_threshold:
            recommendations.append(RECOMMEND_REMEASURE)

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            recommendations=recommendations,
            quality_score=quality_score,
        )

    def _validate_measurement(self, measurement: Measurement) -> ValidationResult:
        """Final consistency checks on an assembled measurement."""
        errors: List[str] = []
        warnings: List[str] = []
        recommendations: List[str] = []

        if measurement.total_area <= 0:
            errors.append("Total area must be positive")
        if measurement.total_projected_area <= 0:
            errors.append("Total projected area must be positive")

        if measurement.accuracy < CRITICAL_CONFIDENCE:
            errors.append("Measurement accuracy too low for reliable results")
        elif measurement.accuracy < RECOMMENDED_CONFIDENCE:
            warnings.append("Low measurement accuracy - results may be imprecise")

        if measurement.total_area > 0:
            discrepancy = (
                abs(measurement.total_area - measurement.total_projected_area)
                / measurement.total_area
            )
            if discrepancy > 0.5:
                warnings.append(
                    "Large discrepancy between actual and projected areas - verify pitch calculations"
                )

        if measurement.quality_metrics.tracking_stability < 50:
            warnings.append("Poor tracking stability detected during measurement")

        planes = measurement.planes
        if planes:
            avg_pitch = sum(p.pitch_angle for p in planes) / len(planes)
            if avg_pitch > HIGH_PITCH:
                recommendations.append(
                    "High-pitch roof detected - consider additional safety measures during installation"
                )
            if len({p.material for p in planes}) > 1:
                recommendations.append(
                    "Multiple roof materials detected - plan material transitions carefully"
                )

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            recommendations=recommendations,
            quality_score=int(round(measurement.accuracy * 100)),
        )

    # =========================================================================
    # Calculation
    # =========================================================================

    def _round(self, value: float) -> float:
        return round(value, self.settings.area_precision)

    def _process_plane(self, plane: Surface) -> Surface:
        """
        Recompute a plane's derived fields from its boundaries.

        Returns a new Surface; boundaries are shared, never modified.
        A declared material is kept; an unknown one on a nearly flat
        plane becomes FLAT.
        """
        area = compute_area(plane.boundaries)
        perimeter = compute_perimeter(plane.boundaries)
        projected = apply_pitch_correction(
            area, plane.pitch_angle, self.settings.pitch_correction_method
        )

        material = plane.material
        if material == RoofMaterial.UNKNOWN and plane.pitch_angle < FLAT_MATERIAL_PITCH:
            material = RoofMaterial.FLAT

        logger.debug(f"Processed plane {plane.id}: area={area:.3f}, projected={projected:.3f}")

        return replace(
            plane,
            area=self._round(area),
            perimeter=self._round(perimeter),
            projected_area=self._round(projected),
            material=material,
        )

    def _audit_entry(
        self,
        action: AuditAction,
        user_id: str,
        session_id: str,
        description: str,
        data_hash: str = "",
    ) -> AuditEntry:
        return AuditEntry(
            id=generate_audit_id(),
            timestamp=datetime.utcnow(),
            action=action,
            user_id=user_id,
            session_id=session_id,
            description=description,
            data_hash=data_hash,
        )

    def calculate_roof_measurement(
        self,
        planes: Sequence[Surface],
        session_id: str,
        user_id: str,
        property_id: Optional[str] = None,
    ) -> Measurement:
        """
        Calculate a complete roof measurement from surfaces.

        This function:
        1. Validates all planes (geometry, area, confidence)
        2. Recomputes area, perimeter and projected area per plane
        3. Sums totals and scores quality
        4. Assembles the measurement with its audit trail

        Args:
            planes: Detected or traced roof surfaces
            session_id: Measurement session identifier
            user_id: User performing the measurement
            property_id: Property identifier (defaults to "property_<session_id>")

        Returns:
            Measurement whose first audit entry is the 'create' record

        Raises:
            InvalidInputError: If planes are empty, invalid, or the assembled
                               measurement fails final validation.
        """
        start = time.monotonic()
        settings = self.settings

        validation = self.validate_planes(planes)
        if not validation.is_valid:
            logger.warning(
                f"Rejected measurement for session {session_id}: {'; '.join(validation.errors)}"
            )
            raise InvalidInputError(f"Invalid planes: {', '.join(validation.errors)}")

        audit_trail = [
            self._audit_entry(
                AuditAction.CREATE, user_id, session_id, "Started roof measurement calculation"
            )
        ]

        processed = [self._process_plane(plane) for plane in planes]

        total_area = sum(p.area for p in processed)
        total_projected_area = sum(p.projected_area for p in processed)

        elapsed_ms = (time.monotonic() - start) * 1000.0
        quality_metrics = calculate_quality_metrics(processed, elapsed_ms)

        now = datetime.utcnow()
        measurement = Measurement(
            id=generate_measurement_id(),
            property_id=property_id or f"property_{session_id}",
            user_id=user_id,
            timestamp=now,
            planes=processed,
            total_area=self._round(total_area),
            total_projected_area=self._round(total_projected_area),
            accuracy=validation.quality_score / 100.0,
            quality_metrics=quality_metrics,
            audit_trail=audit_trail,
            exports=[],
            compliance_status={
                "status": "pending",
                "standards": list(COMPLIANCE_STANDARDS),
                "certifications": [],
                "last_check": now.isoformat(),
                "next_check": (now + timedelta(days=COMPLIANCE_REVIEW_DAYS)).isoformat(),
                "notes": [],
            },
            metadata={
                "session_id": session_id,
                "calculation_method": settings.pitch_correction_method,
                "unit_system": settings.unit_system,
                "version": ENGINE_VERSION,
                "processing_time_ms": elapsed_ms,
            },
        )

        final_validation = self._validate_measurement(measurement)
        if not final_validation.is_valid:
            logger.warning(
                f"Measurement {measurement.id} failed final validation: "
                f"{'; '.join(final_validation.errors)}"
            )
            raise InvalidInputError(f"Invalid measurement: {', '.join(final_validation.errors)}")

        measurement.validation_result = final_validation
        measurement.audit_trail.append(
            self._audit_entry(
                AuditAction.CREATE,
                user_id,
                session_id,
                "Completed roof measurement calculation",
                data_hash=measurement.data_hash(),
            )
        )

        logger.info(
            f"Calculated roof measurement {measurement.id}: "
            f"{len(processed)} planes, {measurement.total_area:.2f} m2"
        )
        return measurement

    def calculate_materials(self, measurement: Measurement) -> MaterialCalculation:
        """Material requirements for a measurement (see material_estimation)."""
        return estimate_materials(measurement, self.settings)

    # =========================================================================
    # Export
    # =========================================================================

    def export_measurement(
        self,
        measurement: Measurement,
        format: Union[ExportFormat, str],
        user_id: Optional[str] = None,
        materials: Optional[MaterialCalculation] = None,
    ) -> str:
        """
        Export a measurement as a string payload.

        Args:
            measurement: Measurement to export
            format: "json", "csv" or "pdf"
            user_id: When given, an export record and audit entry are
                     appended to the measurement
            materials: Optional material estimate for the text report

        Returns:
            Serialized JSON, CSV text or structured report text

        Raises:
            UnsupportedFormatError: For any other format.
        """
        export_format = _parse_export_format(format)

        if export_format == ExportFormat.JSON:
            payload = export_to_json(measurement)
        elif export_format == ExportFormat.CSV:
            payload = export_to_csv(measurement)
        else:
            payload = export_to_pdf_text(measurement, materials)

        if user_id is not None:
            self.record_export(measurement, export_format, payload, user_id)

        return payload

    def record_export(
        self,
        measurement: Measurement,
        format: Union[ExportFormat, str],
        payload: str,
        user_id: str,
        destination: str = "local",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> ExportRecord:
        """
        Append an export record and an 'export' audit entry.

        Existing records and entries are never touched.

        Raises:
            UnsupportedFormatError: For an unknown format.
        """
        export_format = _parse_export_format(format)
        record = ExportRecord(
            id=generate_export_id(),
            timestamp=datetime.utcnow(),
            format=export_format.value,
            file_size=len(payload.encode("utf-8")),
            destination=destination,
            user_id=user_id,
            parameters=parameters or {},
            status="completed",
        )
        measurement.exports.append(record)
        measurement.audit_trail.append(
            self._audit_entry(
                AuditAction.EXPORT,
                user_id,
                measurement.metadata.get("session_id", ""),
                f"Exported measurement as {export_format.value} to {destination}",
                data_hash=measurement.data_hash(),
            )
        )
        logger.info(f"Recorded {export_format.value} export {record.id} for {measurement.id}")
        return record
