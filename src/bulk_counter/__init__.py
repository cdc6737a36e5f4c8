"""
Bulk Counter

Counts repeated objects (pipes, boxes, generic items) from a live camera
feed. Frames run through a shape-detection pipeline, already-confirmed
items are suppressed by a spatial tracker, and an operator confirms
corrected counts into inventory rows.

Package structure:
  core/         - Shape pipeline, generic detector, camera, frame worker
  session/      - Session state machine, dedup tracker, sleep monitor
  models/       - Frames, detections, sessions
  config/       - Configuration loading, validation, hot reload
  persistence/  - Inventory rows and JSONL output
  utils/        - Constants
"""

__version__ = "1.0.0"

from .config import Settings, SettingsStore
from .core import FrameWorker, detect_objects
from .errors import (
    ConfigValidationError,
    CounterError,
    DetectorUnavailableError,
    FrameFormatError,
)
from .models import BoundingBox, CountSession, Detection, Frame, SpatialMarker, Template
from .session import ActivityMonitor, SessionController, SessionState, SpatialTracker

__all__ = [
    "ActivityMonitor",
    "BoundingBox",
    "ConfigValidationError",
    "CountSession",
    "CounterError",
    "Detection",
    "DetectorUnavailableError",
    "Frame",
    "FrameFormatError",
    "FrameWorker",
    "SessionController",
    "SessionState",
    "Settings",
    "SettingsStore",
    "SpatialMarker",
    "SpatialTracker",
    "Template",
    "detect_objects",
]
