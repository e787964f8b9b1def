"""
3D Measurement Data Service

Keeps, per session, a connected vertex/edge/face graph built from roof
surfaces and converts it back into a flat Measurement.

Sessions live in a registry owned by the service instance (or injected by
the caller). A session is mutated only by the workflow that owns it.

Session lifecycle:
    create_session -> Empty (is_valid False)
    convert_roof_planes_to_3d / add_* -> Populated
    delete_session -> gone
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set
import logging
import math

from .area_pitch import apply_pitch_correction
from .geometry_primitives import distance
from .roof_models import (
    AuditEntry,
    ExportRecord,
    Measurement,
    Point3D,
    QualityMetrics,
    RoofMaterial,
    SensorAccuracy,
    Surface,
    SurfaceType,
    Vector3,
    parse_datetime,
)

logger = logging.getLogger(__name__)


# Complexity score weights per element
VERTEX_COMPLEXITY_WEIGHT = 0.1
EDGE_COMPLEXITY_WEIGHT = 0.05
FACE_COMPLEXITY_WEIGHT = 0.2
MAX_COMPLEXITY_SCORE = 100.0

# Relative height change below which an edge counts as horizontal
HORIZONTAL_EDGE_TOLERANCE = 1e-3

DEFAULT_FACE_CONFIDENCE = 0.85


class EdgeType(str, Enum):
    """Roof edge classification."""

    RIDGE = "ridge"
    EAVE = "eave"
    GABLE = "gable"
    VALLEY = "valley"
    HIP = "hip"
    INTERNAL = "internal"


# =============================================================================
# Graph Models
# =============================================================================


@dataclass
class Vertex3D:
    """Graph vertex carrying the captured point data."""

    id: str
    x: float
    y: float
    z: float
    confidence: float = 1.0
    timestamp: Optional[datetime] = None
    sensor_accuracy: SensorAccuracy = SensorAccuracy.HIGH
    normal: Optional[Vector3] = None
    faces: Set[str] = field(default_factory=set)

    @classmethod
    def from_point(cls, vertex_id: str, point: Point3D, **kwargs: Any) -> "Vertex3D":
        return cls(
            id=vertex_id,
            x=point.x,
            y=point.y,
            z=point.z,
            confidence=point.confidence,
            timestamp=point.timestamp,
            sensor_accuracy=point.sensor_accuracy,
            **kwargs,
        )

    def to_point(self) -> Point3D:
        return Point3D(
            x=self.x,
            y=self.y,
            z=self.z,
            confidence=self.confidence,
            timestamp=self.timestamp,
            sensor_accuracy=self.sensor_accuracy,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "sensor_accuracy": self.sensor_accuracy.value,
            "normal": self.normal.to_dict() if self.normal else None,
            "faces": sorted(self.faces),
        }


@dataclass
class Edge3D:
    """Graph edge between two vertices of the same session."""

    id: str
    start_vertex_id: str
    end_vertex_id: str
    length: float
    faces: Set[str] = field(default_factory=set)
    type: EdgeType = EdgeType.INTERNAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_vertex_id": self.start_vertex_id,
            "end_vertex_id": self.end_vertex_id,
            "length": self.length,
            "faces": sorted(self.faces),
            "type": self.type.value,
        }


@dataclass
class Face3D:
    """
    Graph face (polygon) over an ordered vertex ring.

    roof_plane_id is set when the face was derived from exactly one
    Surface; surface_type and confidence carry that surface's values so
    the conversion back is lossless.
    """

    id: str
    vertex_ids: List[str]
    normal: Vector3
    area: float
    perimeter: float
    material: RoofMaterial = RoofMaterial.UNKNOWN
    slope_angle: float = 0.0
    orientation: float = 0.0
    roof_plane_id: Optional[str] = None
    surface_type: Optional[SurfaceType] = None
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vertex_ids": list(self.vertex_ids),
            "normal": self.normal.to_dict(),
            "area": self.area,
            "perimeter": self.perimeter,
            "material": self.material.value,
            "slope_angle": self.slope_angle,
            "orientation": self.orientation,
            "roof_plane_id": self.roof_plane_id,
            "surface_type": self.surface_type.value if self.surface_type else None,
            "confidence": self.confidence,
        }


@dataclass
class BoundingBox:
    """Axis-aligned bounding box; empty until a point is added."""

    min: Optional[Vector3] = None
    max: Optional[Vector3] = None

    @property
    def is_empty(self) -> bool:
        return self.min is None

    def expand(self, x: float, y: float, z: float) -> None:
        if self.min is None or self.max is None:
            self.min = Vector3(x, y, z)
            self.max = Vector3(x, y, z)
            return
        self.min = Vector3(min(self.min.x, x), min(self.min.y, y), min(self.min.z, z))
        self.max = Vector3(max(self.max.x, x), max(self.max.y, y), max(self.max.z, z))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min": self.min.to_dict() if self.min else None,
            "max": self.max.to_dict() if self.max else None,
        }


@dataclass
class SessionMetadata:
    vertex_count: int = 0
    edge_count: int = 0
    face_count: int = 0
    complexity_score: float = 0.0
    is_valid: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vertex_count": self.vertex_count,
            "edge_count": self.edge_count,
            "face_count": self.face_count,
            "complexity_score": self.complexity_score,
            "is_valid": self.is_valid,
        }


@dataclass
class Session3D:
    """One measurement workflow's geometry graph."""

    id: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    vertices: Dict[str, Vertex3D] = field(default_factory=dict)
    edges: Dict[str, Edge3D] = field(default_factory=dict)
    faces: Dict[str, Face3D] = field(default_factory=dict)
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    total_area: float = 0.0
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "vertices": [v.to_dict() for v in self.vertices.values()],
            "edges": [e.to_dict() for e in self.edges.values()],
            "faces": [f.to_dict() for f in self.faces.values()],
            "bounding_box": self.bounding_box.to_dict(),
            "total_area": self.total_area,
            "metadata": self.metadata.to_dict(),
        }


# =============================================================================
# Edge Classification
# =============================================================================


def classify_edge(
    start: Vertex3D,
    end: Vertex3D,
    face_vertices: List[Vertex3D],
    slope_angle: float,
) -> EdgeType:
    """
    Classify a boundary edge from its face's geometry (Y up).

    Horizontal edges at the face's top are ridges, at its bottom eaves.
    Sloped edges are hips on triangular faces and gables otherwise.
    Edges of flat faces are internal.
    """
    if slope_angle == 0 or not face_vertices:
        return EdgeType.INTERNAL

    length = distance(start, end)
    heights = [v.y for v in face_vertices]
    top, bottom = max(heights), min(heights)
    span = top - bottom
    tolerance = HORIZONTAL_EDGE_TOLERANCE * max(length, span, 1.0)

    if abs(end.y - start.y) <= tolerance:
        if span <= tolerance:
            return EdgeType.INTERNAL
        mid_height = (start.y + end.y) / 2
        if abs(mid_height - top) <= tolerance:
            return EdgeType.RIDGE
        if abs(mid_height - bottom) <= tolerance:
            return EdgeType.EAVE
        return EdgeType.INTERNAL

    return EdgeType.HIP if len(face_vertices) <= 3 else EdgeType.GABLE


# =============================================================================
# Service
# =============================================================================


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


class Measurement3DDataService:
    """
    Manages per-session 3D geometry for roof measurements.

    Args:
        sessions: Optional registry to hold sessions. Pass a shared dict
                  to let several workflows address the same sessions.
    """

    def __init__(self, sessions: Optional[Dict[str, Session3D]] = None) -> None:
        self._sessions: Dict[str, Session3D] = sessions if sessions is not None else {}

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def create_session(self, session_id: str) -> Session3D:
        """Create an empty session, replacing any session with the same id."""
        if session_id in self._sessions:
            logger.debug(f"Replacing existing 3D session {session_id}")
        session = Session3D(id=session_id)
        self._sessions[session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional[Session3D]:
        return self._sessions.get(session_id)

    def delete_session(self, session_id: str) -> bool:
        """Remove a session. Returns whether it existed."""
        return self._sessions.pop(session_id, None) is not None

    def get_all_sessions(self) -> List[Session3D]:
        return list(self._sessions.values())

    def _require_session(self, session_id: str) -> Optional[Session3D]:
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning(f"3D session not found: {session_id}")
        return session

    # -------------------------------------------------------------------------
    # Graph editing
    # -------------------------------------------------------------------------

    def add_vertex(self, session_id: str, vertex: Vertex3D) -> bool:
        session = self._require_session(session_id)
        if session is None:
            return False

        session.vertices[vertex.id] = vertex
        self._touch(session)
        return True

    def add_edge(self, session_id: str, edge: Edge3D) -> bool:
        """Add an edge; both endpoint vertices must already exist."""
        session = self._require_session(session_id)
        if session is None:
            return False

        if edge.start_vertex_id not in session.vertices or edge.end_vertex_id not in session.vertices:
            logger.warning(f"Edge {edge.id} references unknown vertices in session {session_id}")
            return False

        session.edges[edge.id] = edge
        self._touch(session)
        return True

    def add_face(self, session_id: str, face: Face3D) -> bool:
        """Add a face; every referenced vertex must already exist."""
        session = self._require_session(session_id)
        if session is None:
            return False

        if len(face.vertex_ids) < 3:
            logger.warning(f"Face {face.id} has fewer than 3 vertices")
            return False

        missing = [vid for vid in face.vertex_ids if vid not in session.vertices]
        if missing:
            logger.warning(f"Face {face.id} references unknown vertices: {', '.join(missing)}")
            return False

        session.faces[face.id] = face
        for vid in face.vertex_ids:
            session.vertices[vid].faces.add(face.id)
        self._touch(session)
        return True

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def convert_roof_planes_to_3d(self, session_id: str, planes: List[Surface]) -> bool:
        """
        Add one face per surface to a session's graph.

        For each surface: one vertex per boundary point (ids scoped to the
        surface), one edge per consecutive vertex pair closing the loop,
        and one face over all of the surface's vertices in order.
        Surfaces with fewer than 3 boundary points are skipped.

        Args:
            session_id: Target session
            planes: Surfaces to convert (may be empty)

        Returns:
            False if the session does not exist, True otherwise
        """
        session = self._require_session(session_id)
        if session is None:
            return False

        for plane in planes:
            if len(plane.boundaries) < 3:
                logger.warning(
                    f"Skipping plane {plane.id} in 3D session {session_id}: "
                    f"{len(plane.boundaries)} boundary points"
                )
                continue
            self._convert_plane_to_face(session, plane)

        self._touch(session)
        logger.info(
            f"Converted {len(planes)} planes into 3D session {session_id} "
            f"({session.metadata.vertex_count} vertices, {session.metadata.face_count} faces)"
        )
        return True

    def _convert_plane_to_face(self, session: Session3D, plane: Surface) -> None:
        vertex_ids: List[str] = []
        for i, point in enumerate(plane.boundaries):
            vertex_id = f"{plane.id}_v{i}"
            session.vertices[vertex_id] = Vertex3D.from_point(
                vertex_id, point, normal=plane.normal, faces={plane.id}
            )
            vertex_ids.append(vertex_id)

        face_vertices = [session.vertices[vid] for vid in vertex_ids]
        count = len(vertex_ids)
        for i in range(count):
            start = face_vertices[i]
            end = face_vertices[(i + 1) % count]
            edge_id = f"{plane.id}_e{i}"
            session.edges[edge_id] = Edge3D(
                id=edge_id,
                start_vertex_id=start.id,
                end_vertex_id=end.id,
                length=distance(start, end),
                faces={plane.id},
                type=classify_edge(start, end, face_vertices, plane.pitch_angle),
            )

        session.faces[plane.id] = Face3D(
            id=plane.id,
            vertex_ids=vertex_ids,
            normal=plane.normal,
            area=plane.area,
            perimeter=plane.perimeter,
            material=plane.material,
            slope_angle=plane.pitch_angle,
            orientation=plane.azimuth_angle,
            roof_plane_id=plane.id,
            surface_type=plane.type,
            confidence=plane.confidence,
        )

    def convert_to_roof_measurement(
        self,
        session_id: str,
        base_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Measurement]:
        """
        Rebuild a flat Measurement from a session's faces.

        One Surface per face, boundaries rebuilt from the face's vertices
        in order, projected_area = area * cos(slope). Fields in
        ``base_data`` (id, property_id, user_id, timestamp, accuracy,
        quality_metrics, audit_trail, exports, compliance_status, metadata)
        are merged in. Serialized values, such as a JSON export of a
        measurement, are parsed back into their models.

        Returns:
            The measurement, or None if the session does not exist
        """
        session = self._require_session(session_id)
        if session is None:
            return None

        base_data = base_data or {}
        planes: List[Surface] = []

        for face in session.faces.values():
            boundaries = [session.vertices[vid].to_point() for vid in face.vertex_ids]
            if face.surface_type is not None:
                surface_type = face.surface_type
            elif face.roof_plane_id:
                surface_type = SurfaceType.PRIMARY
            else:
                surface_type = SurfaceType.CUSTOM

            planes.append(Surface(
                id=face.roof_plane_id or face.id,
                boundaries=boundaries,
                normal=face.normal,
                pitch_angle=face.slope_angle,
                azimuth_angle=face.orientation,
                area=face.area,
                perimeter=face.perimeter,
                projected_area=apply_pitch_correction(face.area, face.slope_angle),
                type=surface_type,
                confidence=(
                    face.confidence if face.confidence is not None else DEFAULT_FACE_CONFIDENCE
                ),
                material=face.material,
            ))

        quality_metrics = _first(base_data, "quality_metrics", "qualityMetrics")
        if isinstance(quality_metrics, dict):
            quality_metrics = QualityMetrics.from_dict(quality_metrics)

        audit_trail = [
            AuditEntry.from_dict(entry) if isinstance(entry, dict) else entry
            for entry in _first(base_data, "audit_trail", "auditTrail", default=[])
        ]
        exports = [
            ExportRecord.from_dict(record) if isinstance(record, dict) else record
            for record in _first(base_data, "exports", default=[])
        ]

        return Measurement(
            id=_first(base_data, "id", default=session_id),
            property_id=_first(base_data, "property_id", "propertyId", default=""),
            user_id=_first(base_data, "user_id", "userId", default=""),
            timestamp=parse_datetime(_first(base_data, "timestamp")) or datetime.utcnow(),
            planes=planes,
            total_area=session.total_area,
            total_projected_area=sum(p.projected_area for p in planes),
            accuracy=_first(base_data, "accuracy", default=DEFAULT_FACE_CONFIDENCE),
            quality_metrics=quality_metrics or QualityMetrics(),
            audit_trail=audit_trail,
            exports=exports,
            compliance_status=dict(
                _first(base_data, "compliance_status", "complianceStatus", default={})
            ),
            metadata=dict(_first(base_data, "metadata", default={})),
        )

    def export_session_to_obj(self, session_id: str) -> Optional[str]:
        """
        Wavefront OBJ text for a session's faces.

        Vertices are written in insertion order; each face becomes an
        object group with 1-indexed vertex references.
        """
        session = self._require_session(session_id)
        if session is None:
            return None

        lines = [f"# RoofGrid 3D session {session.id}"]
        index: Dict[str, int] = {}
        for position, vertex in enumerate(session.vertices.values(), start=1):
            index[vertex.id] = position
            lines.append(f"v {vertex.x:.6f} {vertex.y:.6f} {vertex.z:.6f}")

        for face in session.faces.values():
            lines.append(f"o {face.id}")
            lines.append("f " + " ".join(str(index[vid]) for vid in face.vertex_ids))

        return "\n".join(lines) + "\n"

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def _touch(self, session: Session3D) -> None:
        session.updated_at = datetime.utcnow()
        self._update_session_metadata(session)

    def _update_session_metadata(self, session: Session3D) -> None:
        metadata = session.metadata
        metadata.vertex_count = len(session.vertices)
        metadata.edge_count = len(session.edges)
        metadata.face_count = len(session.faces)

        session.total_area = sum(face.area for face in session.faces.values())
        metadata.complexity_score = self._calculate_complexity_score(session)

        session.bounding_box = BoundingBox()
        for vertex in session.vertices.values():
            session.bounding_box.expand(vertex.x, vertex.y, vertex.z)

        metadata.is_valid = self._validate_geometry(session)

    @staticmethod
    def _calculate_complexity_score(session: Session3D) -> float:
        metadata = session.metadata
        score = (
            metadata.vertex_count * VERTEX_COMPLEXITY_WEIGHT
            + metadata.edge_count * EDGE_COMPLEXITY_WEIGHT
            + metadata.face_count * FACE_COMPLEXITY_WEIGHT
        )
        return min(MAX_COMPLEXITY_SCORE, score)

    @staticmethod
    def _validate_geometry(session: Session3D) -> bool:
        if len(session.vertices) < 3 or not session.faces:
            return False

        for edge in session.edges.values():
            if edge.start_vertex_id not in session.vertices or edge.end_vertex_id not in session.vertices:
                return False

        for face in session.faces.values():
            if any(vid not in session.vertices for vid in face.vertex_ids):
                return False
            if not math.isfinite(face.area):
                return False

        return True
