"""
Data models for the counting system.

This package contains the core data structures shared by the pipeline,
the session controller and persistence.
"""

from .detection import BoundingBox, Detection, SpatialMarker, Template, new_id
from .detector import GenericDetector
from .frame import Frame
from .session import CountSession

__all__ = [
    "BoundingBox",
    "CountSession",
    "Detection",
    "Frame",
    # Protocols
    "GenericDetector",
    "SpatialMarker",
    "Template",
    "new_id",
]
