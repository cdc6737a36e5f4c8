"""
Tests for the YOLO detector handle and image loading
"""

import os
import tempfile
import unittest
from unittest import mock

import cv2
import numpy as np

from bulk_counter.core import load_image
from bulk_counter.core.yolo_detector import YoloDetector
from bulk_counter.errors import DetectorUnavailableError
from bulk_counter.models import Frame, GenericDetector


def fake_model(boxes_xyxy, scores, classes, names):
    boxes = mock.MagicMock()
    boxes.__len__.return_value = len(scores)
    boxes.xyxy.cpu.return_value.numpy.return_value = np.array(boxes_xyxy, dtype=np.float32)
    boxes.conf.cpu.return_value.tolist.return_value = scores
    boxes.cls.int.return_value.cpu.return_value.tolist.return_value = classes

    result = mock.MagicMock()
    result.boxes = boxes
    result.names = names

    model = mock.MagicMock()
    model.predict.return_value = [result]
    return model


class TestYoloDetector(unittest.TestCase):
    """Test model lifecycle and result conversion."""

    def setUp(self):
        self.frame = Frame.from_rgba(np.zeros((4, 4, 4), dtype=np.uint8))

    def test_satisfies_protocol(self):
        self.assertIsInstance(YoloDetector("model.pt"), GenericDetector)

    def test_unloaded_detector_unavailable(self):
        detector = YoloDetector("model.pt")

        self.assertFalse(detector.is_ready())
        with self.assertRaises(DetectorUnavailableError):
            detector.detect(self.frame, 0.5)

    def test_load_failure_recorded(self):
        with mock.patch(
            "bulk_counter.core.yolo_detector.YOLO", side_effect=FileNotFoundError("no weights")
        ):
            detector = YoloDetector("missing.pt")
            with self.assertLogs("bulk_counter.core.yolo_detector", level="ERROR"):
                with self.assertRaises(DetectorUnavailableError):
                    detector.load()

        self.assertEqual(detector.status, "failed")
        self.assertIn("no weights", detector.error)
        self.assertFalse(detector.is_ready())

    def test_detect_converts_boxes(self):
        model = fake_model([[1, 2, 11, 22]], [0.9], [3], {3: "crate"})
        with mock.patch("bulk_counter.core.yolo_detector.YOLO", return_value=model):
            detector = YoloDetector("model.pt")
            detector.load()

        results = detector.detect(self.frame, 0.4)

        self.assertEqual(
            results,
            [{"x": 1.0, "y": 2.0, "width": 10.0, "height": 20.0, "confidence": 0.9, "label": "crate"}],
        )
        self.assertEqual(model.predict.call_args.kwargs["conf"], 0.4)
        self.assertEqual(model.predict.call_args.kwargs["source"].shape, (4, 4, 3))

    def test_dispose(self):
        with mock.patch("bulk_counter.core.yolo_detector.YOLO", return_value=mock.MagicMock()):
            detector = YoloDetector("model.pt")
            detector.load()
        self.assertTrue(detector.is_ready())

        detector.dispose()

        self.assertFalse(detector.is_ready())


class TestLoadImage(unittest.TestCase):
    """Test image files as frames."""

    def test_round_trip_channels(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "shelf.png")
            bgr = np.zeros((6, 9, 3), dtype=np.uint8)
            bgr[:, :, 2] = 180  # red
            cv2.imwrite(path, bgr)

            frame = load_image(path)

        self.assertEqual((frame.width, frame.height), (9, 6))
        self.assertEqual(frame.pixels[0, 0, 0], 180)
        self.assertEqual(frame.pixels[0, 0, 2], 0)

    def test_missing_image(self):
        with self.assertRaises(FileNotFoundError):
            load_image("/nonexistent/shelf.png")


if __name__ == "__main__":
    unittest.main()
