"""
Tests for inventory rows and the session JSONL writer
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout

import numpy as np

from bulk_counter import cli
from bulk_counter.config import SettingsStore
from bulk_counter.core import FrameWorker
from bulk_counter.errors import DetectorUnavailableError
from bulk_counter.models import BoundingBox, CountSession, Detection, Frame, Template, new_id
from bulk_counter.persistence import SessionJsonWriter, build_inventory_row, read_sessions
from bulk_counter.session import ActivityMonitor, SessionController, SessionState


def confirmed_session(count=3, end_time=0.0):
    session = CountSession.open(Template.CIRCLE, start_time=0.0)
    return CountSession(
        id=session.id,
        start_time=0.0,
        template=Template.CIRCLE,
        end_time=end_time,
        total_count=count,
        synced_to_sheet=True,
        sheet_id="sheet-1",
        row_id="row-1",
    )


def make_detection(x, y):
    box = BoundingBox(id=new_id(), x=x, y=y, width=20, height=20, confidence=0.9, label="x")
    return Detection(id=new_id(), bounding_box=box, timestamp=0.0, frame_id="f")


class ReloadableDetector:
    """Generic detector that starts unloaded."""

    def __init__(self, loadable):
        self.loadable = loadable
        self.ready = False

    def is_ready(self):
        return self.ready

    def load(self):
        if not self.loadable:
            raise DetectorUnavailableError("weights missing")
        self.ready = True

    def detect(self, frame, confidence_threshold):
        return []


class TestInventoryRow(unittest.TestCase):
    """Test session to inventory row mapping."""

    def test_row_fields(self):
        session = confirmed_session(count=7)

        row = build_inventory_row(session)

        self.assertEqual(row["id"], "row-1")
        self.assertEqual(row["sheet_id"], "sheet-1")
        self.assertEqual(row["count_session_id"], session.id)
        self.assertEqual(row["created_at"], "1970-01-01T00:00:00+00:00")
        self.assertEqual(
            row["values"], {"quantity": 7, "item": "circle count", "date": "1970-01-01"}
        )

    def test_item_name_override(self):
        row = build_inventory_row(confirmed_session(), item_name="4in PVC")

        self.assertEqual(row["values"]["item"], "4in PVC")

    def test_unconfirmed_session_rejected(self):
        with self.assertRaises(ValueError):
            build_inventory_row(CountSession.open(Template.CIRCLE, 0.0))


class TestSessionJsonWriter(unittest.TestCase):
    """Test JSONL output."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.json_dir = os.path.join(self.temp_dir.name, "out")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_writes_one_line_per_session(self):
        with SessionJsonWriter(self.json_dir) as writer:
            writer.write(confirmed_session(count=2))
            writer.write(confirmed_session(count=5))

        records = read_sessions(writer.filename)

        self.assertEqual(len(records), 2)
        self.assertEqual(records[1]["row"]["values"]["quantity"], 5)
        self.assertEqual(records[0]["session"]["template"], "circle")
        self.assertEqual(writer.sessions_written, 2)
        self.assertEqual(writer.items_written, 7)

    def test_no_file_without_sessions(self):
        writer = SessionJsonWriter(self.json_dir)
        writer.close()

        self.assertFalse(os.path.exists(writer.filename))

    def test_confirmed_snapshot_round_trips(self):
        store = SettingsStore()
        controller = SessionController(store)
        controller.start(Template.RECTANGLE)
        controller.on_detections([make_detection(0, 0), make_detection(100, 0)])

        with SessionJsonWriter(self.json_dir, item_name="pallet") as writer:
            row = writer.write(controller.confirm("dock"))

        record = read_sessions(writer.filename)[0]
        self.assertEqual(record["row"], row)
        self.assertEqual(row["values"]["item"], "pallet")
        self.assertEqual(len(record["session"]["detections"]), 2)
        self.assertEqual(len(record["session"]["spatial_markers"]), 2)


class TestOperatorConsole(unittest.TestCase):
    """Test stdin operator commands."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.store = SettingsStore()
        self.controller = SessionController(self.store)
        self.monitor = ActivityMonitor(self.controller, self.store)
        self.controller.start(Template.CIRCLE)
        cli._shutdown_signal.clear()

    def tearDown(self):
        cli._shutdown_signal.clear()
        self.temp_dir.cleanup()

    def run_console(self, text, writer, worker=None):
        with redirect_stdout(io.StringIO()) as out:
            cli.operator_console(
                self.controller,
                self.monitor,
                writer,
                "sheet-1",
                worker=worker,
                stream=io.StringIO(text),
            )
        return out.getvalue()

    def test_confirm_writes_session(self):
        self.controller.on_detections([make_detection(0, 0)])

        with SessionJsonWriter(self.temp_dir.name) as writer:
            output = self.run_console("c\n", writer)

        self.assertIn("Confirmed 1", output)
        self.assertEqual(writer.sessions_written, 1)
        self.assertEqual(self.controller.confirmed_count, 1)

    def test_pause_resume_and_quit(self):
        writer = SessionJsonWriter(self.temp_dir.name)

        self.run_console("p\n", writer)
        self.assertEqual(self.controller.state, SessionState.PAUSED)

        self.run_console("r\nq\nx\n", writer)
        self.assertEqual(self.controller.state, SessionState.RUNNING)
        self.assertTrue(cli._shutdown_signal.is_set())

    def test_any_line_wakes(self):
        self.controller.set_sleeping(True)

        self.run_console("\n", SessionJsonWriter(self.temp_dir.name))

        self.assertEqual(self.controller.state, SessionState.RUNNING)

    def halted_worker(self, detector):
        worker = FrameWorker(self.controller, self.store, detector)
        self.addCleanup(worker.shutdown)
        self.controller.start(Template.GENERIC)
        worker.process(Frame.from_rgba(np.zeros((4, 4, 4), dtype=np.uint8)))
        self.assertIsNotNone(self.controller.processing_error)
        return worker

    def test_reload_resumes_processing(self):
        worker = self.halted_worker(ReloadableDetector(loadable=True))

        output = self.run_console("l\n", SessionJsonWriter(self.temp_dir.name), worker)

        self.assertIn("Detector ready", output)
        self.assertIsNone(self.controller.processing_error)
        self.assertTrue(worker.accepts_frames())

    def test_reload_failure_reported(self):
        worker = self.halted_worker(ReloadableDetector(loadable=False))

        output = self.run_console("reload\n", SessionJsonWriter(self.temp_dir.name), worker)

        self.assertIn("Reload failed: weights missing", output)
        self.assertIsNotNone(self.controller.processing_error)
        self.assertFalse(worker.accepts_frames())


class TestConfirmOnShutdown(unittest.TestCase):
    """Test the final confirmation when a run ends."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.controller = SessionController(SettingsStore())
        self.controller.start(Template.CIRCLE)
        self.writer = SessionJsonWriter(self.temp_dir.name)

    def tearDown(self):
        self.writer.close()
        self.temp_dir.cleanup()

    def test_empty_session_writes_nothing(self):
        self.assertIsNone(cli.confirm_on_shutdown(self.controller, self.writer, "sheet-1"))

        self.assertEqual(self.writer.sessions_written, 0)
        self.assertFalse(os.path.exists(self.writer.filename))

    def test_all_removed_writes_nothing(self):
        det = make_detection(0, 0)
        self.controller.on_detections([det])
        self.controller.remove(det.id)

        self.assertIsNone(cli.confirm_on_shutdown(self.controller, self.writer, "sheet-1"))
        self.assertEqual(self.writer.sessions_written, 0)

    def test_open_count_is_written(self):
        self.controller.on_detections([make_detection(0, 0), make_detection(100, 0)])

        session = cli.confirm_on_shutdown(self.controller, self.writer, "sheet-1")

        self.assertEqual(session.total_count, 2)
        self.assertEqual(self.writer.sessions_written, 1)
        self.assertEqual(self.controller.confirmed_count, 2)


if __name__ == "__main__":
    unittest.main()
