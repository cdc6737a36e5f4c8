"""
Detection data models - templates, boxes, detections, and spatial markers.
"""

import uuid
from dataclasses import dataclass, replace
from enum import Enum


class Template(str, Enum):
    """Object-shape family that biases detection."""

    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    GENERIC = "generic"


def new_id() -> str:
    """Generate a unique identifier."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box in frame pixel coordinates.

    Removal is a soft delete: is_removed flips, the box stays in its list
    so the removal can be undone.
    """

    id: str
    x: float
    y: float
    width: float
    height: float
    confidence: float
    label: str
    is_manually_added: bool = False
    is_removed: bool = False

    @property
    def center(self) -> tuple[float, float]:
        """(x, y) centre of the box."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "confidence": self.confidence,
            "label": self.label,
            "is_manually_added": self.is_manually_added,
            "is_removed": self.is_removed,
        }


@dataclass(frozen=True)
class Detection:
    """A box found in one frame (or added by hand)."""

    id: str
    bounding_box: BoundingBox
    timestamp: float
    frame_id: str

    @property
    def is_removed(self) -> bool:
        return self.bounding_box.is_removed

    def with_removed(self, removed: bool) -> "Detection":
        """Copy of this detection with the soft-delete flag set."""
        return replace(self, bounding_box=replace(self.bounding_box, is_removed=removed))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bounding_box": self.bounding_box.to_dict(),
            "timestamp": self.timestamp,
            "frame_id": self.frame_id,
        }


@dataclass(frozen=True)
class SpatialMarker:
    """Position anchor committed when a detection is confirmed."""

    id: str
    world_x: float
    world_y: float
    world_z: float
    detection_id: str
    timestamp: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "world_x": self.world_x,
            "world_y": self.world_y,
            "world_z": self.world_z,
            "detection_id": self.detection_id,
            "timestamp": self.timestamp,
        }
