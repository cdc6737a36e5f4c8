"""
YOLO-backed generic detector.

Holds the loaded model as an explicitly owned handle. Loading can fail
(missing weights, broken install); that failure is recorded and surfaced as
DetectorUnavailableError until load() succeeds again.
"""

import logging
from typing import Any

import cv2
import torch
from ultralytics import YOLO

from ..errors import DetectorUnavailableError
from ..models import Frame

logger = logging.getLogger(__name__)

STATUS_UNLOADED = "unloaded"
STATUS_READY = "ready"
STATUS_FAILED = "failed"


class YoloDetector:
    """Generic detector handle wrapping an ultralytics model."""

    def __init__(self, model_file: str, classes: list[int] | None = None):
        self.model_file = model_file
        self.classes = classes
        self.status = STATUS_UNLOADED
        self.error: str | None = None
        self._model: YOLO | None = None
        self._device = "cpu"

    def load(self) -> None:
        """
        Load the model onto GPU if available.

        Raises:
            DetectorUnavailableError: If the model cannot be loaded
        """
        self._device = "cuda" if torch.cuda.is_available() else "cpu"
        try:
            model = YOLO(self.model_file)
            model.to(self._device)
        except Exception as e:
            self._model = None
            self.status = STATUS_FAILED
            self.error = str(e)
            logger.error(f"Failed to load model {self.model_file}: {e}")
            raise DetectorUnavailableError(
                f"Cannot load model {self.model_file}: {e}"
            ) from e

        self._model = model
        self.status = STATUS_READY
        self.error = None

        logger.info(f"Model initialized: {self.model_file}")
        logger.info(f"Device: {self._device}")
        if self._device == "cpu":
            logger.warning("Running on CPU - performance will be slow")

    def is_ready(self) -> bool:
        return self.status == STATUS_READY and self._model is not None

    def detect(
        self, frame: Frame, confidence_threshold: float
    ) -> list[dict[str, Any]]:
        """Run inference and return labelled xywh boxes."""
        if not self.is_ready():
            raise DetectorUnavailableError("YOLO model is not loaded")

        bgr = cv2.cvtColor(frame.pixels, cv2.COLOR_RGBA2BGR)
        results = self._model.predict(
            source=bgr,
            conf=confidence_threshold,
            classes=self.classes,
            device=self._device,
            verbose=False,
        )

        boxes = results[0].boxes
        if boxes is None or len(boxes) == 0:
            return []

        names = results[0].names
        xyxy = boxes.xyxy.cpu().numpy()
        scores = boxes.conf.cpu().tolist()
        classes = boxes.cls.int().cpu().tolist()

        detections = []
        for (x1, y1, x2, y2), score, cls in zip(xyxy, scores, classes):
            detections.append(
                {
                    "x": float(x1),
                    "y": float(y1),
                    "width": float(x2 - x1),
                    "height": float(y2 - y1),
                    "confidence": float(score),
                    "label": names.get(cls, str(cls)),
                }
            )
        return detections

    def dispose(self) -> None:
        """Release the model."""
        self._model = None
        self.status = STATUS_UNLOADED
