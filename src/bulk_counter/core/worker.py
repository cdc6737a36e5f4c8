"""
FrameWorker - single-slot frame processing.

At most one frame is in the pipeline at a time. A frame submitted while
the previous one is still being processed is dropped, never queued. Frames
are also refused unless the session is RUNNING (not paused, not sleeping)
and no processing error is pending.

The generic detector handle is owned here and only used from the worker
thread, so shape fitting and model inference are serialized.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor

from ..config import SettingsStore
from ..errors import DetectorUnavailableError
from ..models import Detection, Frame, GenericDetector
from ..session import SessionController, SessionState
from ..utils.constants import FPS_WINDOW_SIZE, STATUS_REPORT_INTERVAL
from .pipeline import detect_objects

logger = logging.getLogger(__name__)


class FrameWorker:
    """
    Feeds frames through the pipeline into a SessionController.

    Args:
        controller: Session receiving detection results
        settings: Shared settings store (confidence threshold read per frame)
        detector: Generic detector handle, required for the generic template
    """

    def __init__(
        self,
        controller: SessionController,
        settings: SettingsStore,
        detector: GenericDetector | None = None,
    ):
        self.controller = controller
        self.settings = settings
        self.detector = detector

        self._slot = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._future: Future | None = None

        self.frames_processed = 0
        self.frames_dropped = 0
        self._fps: list[float] = []
        self._start_time = time.time()

    def accepts_frames(self) -> bool:
        """True when a new frame would be run (ignoring the busy slot)."""
        return (
            self.controller.state is SessionState.RUNNING
            and self.controller.processing_error is None
        )

    def process(self, frame: Frame, generation: int | None = None) -> list[Detection] | None:
        """
        Run one frame synchronously and apply the result.

        Returns:
            The detections produced, or None if the frame was refused or
            the detector failed
        """
        if not self.accepts_frames():
            return None
        if not self._slot.acquire(blocking=False):
            self.frames_dropped += 1
            return None
        try:
            if generation is None:
                generation = self.controller.generation
            return self._run(frame, generation)
        finally:
            self._slot.release()

    def submit(self, frame: Frame) -> bool:
        """
        Hand a frame to the background worker thread.

        Returns:
            True if the frame was accepted, False if refused or dropped
        """
        if not self.accepts_frames():
            return False
        if not self._slot.acquire(blocking=False):
            self.frames_dropped += 1
            return False

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="FrameWorker"
            )
        generation = self.controller.generation
        try:
            self._future = self._executor.submit(self._run_and_release, frame, generation)
        except RuntimeError:
            self._slot.release()
            raise
        return True

    def _run_and_release(self, frame: Frame, generation: int) -> list[Detection] | None:
        try:
            return self._run(frame, generation)
        except Exception as e:
            logger.error(f"Fatal error in frame worker: {e}", exc_info=True)
            raise
        finally:
            self._slot.release()

    def _run(self, frame: Frame, generation: int) -> list[Detection] | None:
        started = time.perf_counter()
        try:
            detections = detect_objects(
                frame,
                self.controller.template,
                self.settings.current.confidence_threshold,
                self.detector,
            )
        except DetectorUnavailableError as e:
            self.controller.report_processing_error(str(e))
            return None

        elapsed = time.perf_counter() - started
        self._fps.append(1.0 / elapsed if elapsed > 0 else 0.0)
        self.controller.on_detections(detections, generation)

        self.frames_processed += 1
        if self.frames_processed % STATUS_REPORT_INTERVAL == 0:
            self._log_status()
        return detections

    def wait(self, timeout: float | None = None) -> None:
        """Block until the in-flight frame (if any) finishes; re-raises its error."""
        if self._future is not None:
            self._future.result(timeout=timeout)

    def reinitialize(self) -> None:
        """
        Reload the generic detector and resume processing.

        Raises:
            DetectorUnavailableError: If the detector still cannot load
        """
        if self.detector is not None and hasattr(self.detector, "load"):
            self.detector.load()
        self.controller.clear_processing_error()

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._log_final_stats()

    def _log_status(self) -> None:
        window = self._fps[-FPS_WINDOW_SIZE:]
        avg_fps = sum(window) / len(window) if window else 0
        elapsed = time.time() - self._start_time
        logger.info(
            f"[{elapsed / 60:.1f}min] Frames {self.frames_processed} | "
            f"Dropped: {self.frames_dropped} | FPS: {avg_fps:.1f} | "
            f"Confirmed: {self.controller.confirmed_count}"
        )

    def _log_final_stats(self) -> None:
        elapsed = time.time() - self._start_time
        avg_fps = sum(self._fps) / len(self._fps) if self._fps else 0
        logger.info("Frame worker stopped")
        logger.info(f"Runtime: {elapsed / 60:.1f} minutes")
        logger.info(f"Frames: {self.frames_processed} (dropped {self.frames_dropped})")
        logger.info(f"Avg FPS: {avg_fps:.1f}")
