"""
Core detection components.

The YOLO-backed generic detector lives in core.yolo_detector and is
imported on demand so the shape pipeline does not pull in torch.
"""

from .camera import initialize_camera, load_image, read_frame
from .pipeline import build_mask, detect_objects, find_components, find_shapes
from .shapes import ShapeCandidate, fit_circle, fit_rectangle, iou, non_max_suppression
from .worker import FrameWorker

__all__ = [
    "FrameWorker",
    "ShapeCandidate",
    "build_mask",
    "detect_objects",
    "find_components",
    "find_shapes",
    "fit_circle",
    "fit_rectangle",
    "initialize_camera",
    "iou",
    "load_image",
    "non_max_suppression",
    "read_frame",
]
