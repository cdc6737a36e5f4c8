"""
GenericDetector Protocol - interface for the general-purpose object detector.

The generic template hands frames to an external, class-aware detector
(YOLO, or anything else that returns labelled boxes). The detector is a
stateful handle holding its loaded model; it is constructed once and
passed by reference into the pipeline.
"""

from typing import Any, Protocol, runtime_checkable

from .frame import Frame


@runtime_checkable
class GenericDetector(Protocol):
    """
    Protocol for generic detector handles.

    Example:
        detector = YoloDetector("yolo11n.pt")
        detector.load()
        detections = detect_objects(frame, Template.GENERIC, 0.5, detector)
    """

    def is_ready(self) -> bool:
        """True when the model is loaded and usable."""
        ...

    def detect(
        self, frame: Frame, confidence_threshold: float
    ) -> list[dict[str, Any]]:
        """
        Detect objects in a frame.

        Args:
            frame: RGBA frame
            confidence_threshold: Minimum score the detector should report

        Returns:
            List of dicts with x, y, width, height, confidence, label,
            in the frame's pixel coordinates. Overlaps already resolved.
        """
        ...
