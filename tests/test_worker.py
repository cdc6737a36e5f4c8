"""
Tests for the single-slot frame worker
"""

import unittest

import numpy as np

from bulk_counter.config import SettingsStore
from bulk_counter.core import FrameWorker
from bulk_counter.errors import DetectorUnavailableError
from bulk_counter.models import Frame, Template
from bulk_counter.session import SessionController, SessionState


class FakeDetector:
    """Generic detector with a controllable ready flag."""

    def __init__(self, ready=True, loadable=True):
        self.ready = ready
        self.loadable = loadable
        self.frames = 0

    def is_ready(self):
        return self.ready

    def load(self):
        if not self.loadable:
            raise DetectorUnavailableError("model missing")
        self.ready = True

    def detect(self, frame, confidence_threshold):
        self.frames += 1
        return [
            {"x": 10, "y": 10, "width": 20, "height": 20, "confidence": 0.8, "label": "item"},
            {"x": 200, "y": 10, "width": 20, "height": 20, "confidence": 0.2, "label": "item"},
        ]


def blank_frame():
    return Frame.from_rgba(np.zeros((8, 8, 4), dtype=np.uint8))


class TestFrameWorker(unittest.TestCase):
    """Test frame gating, dropping and error handling."""

    def setUp(self):
        self.store = SettingsStore()
        self.controller = SessionController(self.store)
        self.detector = FakeDetector()
        self.worker = FrameWorker(self.controller, self.store, self.detector)

    def tearDown(self):
        self.worker.shutdown()

    def test_inactive_session_refuses_frames(self):
        self.assertFalse(self.worker.accepts_frames())
        self.assertIsNone(self.worker.process(blank_frame()))
        self.assertEqual(self.detector.frames, 0)

    def test_process_updates_session(self):
        self.controller.start(Template.GENERIC)

        dets = self.worker.process(blank_frame())

        self.assertEqual(len(dets), 1)
        self.assertEqual(len(self.controller.detections), 1)
        self.assertEqual(self.worker.frames_processed, 1)

    def test_threshold_read_per_frame(self):
        self.controller.start(Template.GENERIC)
        self.store.update(confidence_threshold=0.1)

        dets = self.worker.process(blank_frame())

        self.assertEqual(len(dets), 2)

    def test_busy_slot_drops_frame(self):
        self.controller.start(Template.GENERIC)
        self.worker._slot.acquire()
        try:
            self.assertIsNone(self.worker.process(blank_frame()))
            self.assertFalse(self.worker.submit(blank_frame()))
        finally:
            self.worker._slot.release()

        self.assertEqual(self.worker.frames_dropped, 2)
        self.assertEqual(self.detector.frames, 0)

    def test_sleeping_refuses_frames(self):
        self.controller.start(Template.GENERIC)
        self.controller.set_sleeping(True)

        self.assertIsNone(self.worker.process(blank_frame()))
        self.assertEqual(self.worker.frames_dropped, 0)
        self.assertEqual(self.detector.frames, 0)

    def test_submit_runs_in_background(self):
        self.controller.start(Template.GENERIC)

        self.assertTrue(self.worker.submit(blank_frame()))
        self.worker.wait(timeout=5)

        self.assertEqual(len(self.controller.detections), 1)
        self.assertTrue(self.worker._slot.acquire(blocking=False))
        self.worker._slot.release()

    def test_stale_frame_result_discarded(self):
        self.controller.start(Template.GENERIC)
        generation = self.controller.generation
        self.controller.reset()

        self.worker.process(blank_frame(), generation)

        self.assertEqual(self.controller.detections, ())

    def test_unready_detector_halts_processing(self):
        self.detector.ready = False
        self.controller.start(Template.GENERIC)

        self.assertIsNone(self.worker.process(blank_frame()))

        self.assertIsNotNone(self.controller.processing_error)
        self.assertFalse(self.worker.accepts_frames())
        self.assertEqual(self.controller.state, SessionState.RUNNING)

        self.worker.reinitialize()

        self.assertIsNone(self.controller.processing_error)
        self.assertEqual(len(self.worker.process(blank_frame())), 1)

    def test_reinitialize_failure_keeps_error(self):
        self.detector.ready = False
        self.detector.loadable = False
        self.controller.start(Template.GENERIC)
        self.worker.process(blank_frame())

        with self.assertRaises(DetectorUnavailableError):
            self.worker.reinitialize()
        self.assertIsNotNone(self.controller.processing_error)

    def test_shape_template_needs_no_detector(self):
        worker = FrameWorker(self.controller, self.store)
        self.controller.start(Template.CIRCLE)

        self.assertEqual(worker.process(blank_frame()), [])
        worker.shutdown()


if __name__ == "__main__":
    unittest.main()
