"""
Report Export

Renders a measurement as a string payload for file/share collaborators:
JSON (full structure), CSV (one row per plane plus totals) and a
plain-text professional report that PDF renderers lay out.

Section headers of the text report are relied on verbatim by downstream
report consumers.
"""

from enum import Enum
from typing import Optional
import csv
import io
import json

from .roof_models import MaterialCalculation, Measurement


CSV_HEADERS = [
    "Plane ID",
    "Type",
    "Material",
    "Area (sq m)",
    "Projected Area (sq m)",
    "Pitch (deg)",
    "Azimuth (deg)",
    "Confidence",
]

REPORT_TITLE = "PROFESSIONAL ROOF MEASUREMENT REPORT"
SECTION_OVERVIEW = "MEASUREMENT OVERVIEW"
SECTION_SURFACES = "ROOF SURFACE DETAILS"
SECTION_QUALITY = "QUALITY METRICS"
SECTION_MATERIALS = "MATERIAL ESTIMATE"


class ExportFormat(str, Enum):
    """Supported export formats."""

    JSON = "json"
    CSV = "csv"
    PDF = "pdf"


def export_to_json(measurement: Measurement) -> str:
    """Full structural serialization of a measurement."""
    return json.dumps(measurement.to_dict(), indent=2)


def export_to_csv(measurement: Measurement) -> str:
    """
    CSV with a header row, one row per plane, a blank separator row
    and a TOTAL row.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for plane in measurement.planes:
        writer.writerow([
            plane.id,
            plane.type.value,
            plane.material.value,
            plane.area,
            plane.projected_area,
            f"{plane.pitch_angle:.1f}",
            f"{plane.azimuth_angle:.1f}",
            f"{plane.confidence * 100:.1f}%",
        ])

    writer.writerow([""] * len(CSV_HEADERS))
    writer.writerow([
        "TOTAL", "", "",
        measurement.total_area,
        measurement.total_projected_area,
        "", "", "",
    ])

    return buffer.getvalue().rstrip("\n")


def _section(title: str) -> list:
    return ["", title, "-" * len(title)]


def export_to_pdf_text(
    measurement: Measurement,
    materials: Optional[MaterialCalculation] = None,
) -> str:
    """
    Structured text report for PDF rendering.

    Args:
        measurement: Measurement to report
        materials: Optional material estimate to include

    Returns:
        Report text with overview, surface, quality and material sections
    """
    lines = [
        REPORT_TITLE,
        "=" * len(REPORT_TITLE),
    ]

    lines += _section(SECTION_OVERVIEW)
    lines += [
        f"Measurement ID: {measurement.id}",
        f"Property ID: {measurement.property_id}",
        f"Measured by: {measurement.user_id}",
        f"Date: {measurement.timestamp.isoformat()}",
        f"Surfaces: {len(measurement.planes)}",
        f"Total Area: {measurement.total_area:.2f} sq m",
        f"Projected Area: {measurement.total_projected_area:.2f} sq m",
        f"Accuracy: {measurement.accuracy * 100:.1f}%",
    ]
    method = measurement.metadata.get("calculation_method")
    if method:
        lines.append(f"Pitch Correction: {method}")

    lines += _section(SECTION_SURFACES)
    for index, plane in enumerate(measurement.planes, start=1):
        lines += [
            f"{index}. {plane.type.value.upper()} ({plane.id})",
            f"   Material: {plane.material.value}",
            f"   Area: {plane.area:.2f} sq m",
            f"   Projected Area: {plane.projected_area:.2f} sq m",
            f"   Perimeter: {plane.perimeter:.2f} m",
            f"   Pitch: {plane.pitch_angle:.1f} deg",
            f"   Azimuth: {plane.azimuth_angle:.1f} deg",
            f"   Confidence: {plane.confidence * 100:.1f}%",
            "",
        ]

    quality = measurement.quality_metrics
    lines += _section(SECTION_QUALITY)
    lines += [
        f"Overall Score: {quality.overall_score}/100",
        f"Tracking Stability: {quality.tracking_stability}",
        f"Point Density: {quality.point_density:.3f} points/sq m",
        f"Duration: {quality.duration:.1f} s",
    ]

    if materials is not None:
        lines += _section(SECTION_MATERIALS)
        lines += [
            f"Dominant Material: {materials.dominant_material.value}",
            f"Base Area: {materials.base_area:.2f}",
            f"Waste: {materials.waste_percent:.1f}%",
            f"Adjusted Area: {materials.adjusted_area:.2f}",
        ]
        for name, count in materials.material_specific.items():
            lines.append(f"{name.replace('_', ' ').title()}: {count}")
        if materials.cost_estimate is not None:
            cost = materials.cost_estimate
            lines += [
                f"Material Cost: {cost.material_cost:.2f} {cost.currency}",
                f"Labor Cost: {cost.labor_cost:.2f} {cost.currency}",
                f"Total Cost: {cost.total_cost:.2f} {cost.currency}",
            ]

    return "\n".join(lines)
