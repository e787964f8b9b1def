"""
RoofGrid backend.

Roof measurement geometry engine: plane validation, pitch-corrected areas,
material estimation, report export and the 3D vertex/edge/face data service.
"""

__version__ = "1.0.0"
