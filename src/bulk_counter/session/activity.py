"""
ActivityMonitor - idle detection and sleep gating.

Touch/pointer input and device motion arrive as push messages. A periodic
check puts a RUNNING session to sleep once no activity has been seen for
sleep_timeout_ms. While sleeping the frame worker refuses frames, so the
camera-to-pipeline path stops. The monitor never touches session data.
"""

import logging
import threading
from typing import Any

from ..config import SettingsStore
from ..utils.constants import MOTION_ACTIVITY_THRESHOLD, SLEEP_CHECK_INTERVAL
from .controller import SessionController, SessionState

logger = logging.getLogger(__name__)


class ActivityMonitor:
    """
    Sleep control loop for one SessionController.

    Uses the controller's clock so activity timestamps and the idle check
    agree; tests drive both with a fake clock and call check() directly.
    """

    def __init__(
        self,
        controller: SessionController,
        settings: SettingsStore,
        check_interval: float = SLEEP_CHECK_INTERVAL,
        motion_threshold: float = MOTION_ACTIVITY_THRESHOLD,
    ):
        self.controller = controller
        self.settings = settings
        self.check_interval = check_interval
        self.motion_threshold = motion_threshold

        self._last_motion = (0.0, 0.0, 0.0)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def last_activity_time(self) -> float:
        return self.controller.last_activity_time

    @property
    def is_sleeping(self) -> bool:
        return self.controller.is_sleeping

    def record_activity(self) -> None:
        """Touch or pointer input."""
        self.controller.record_activity()

    def on_motion(self, x: float | None, y: float | None, z: float | None) -> bool:
        """
        Feed one accelerometer sample.

        Movement is the summed absolute change per axis since the previous
        sample; above the threshold it counts as activity. Missing axes
        read as 0.

        Returns:
            True if the sample counted as activity
        """
        sample = (x or 0.0, y or 0.0, z or 0.0)
        movement = sum(abs(a - b) for a, b in zip(sample, self._last_motion))
        self._last_motion = sample

        if movement > self.motion_threshold:
            self.controller.record_activity()
            return True
        return False

    def handle(self, message: dict[str, Any]) -> bool:
        """
        Dispatch a push message from the input layer.

        Messages:
            {"kind": "touch"} or {"kind": "pointer"}
            {"kind": "motion", "x": ..., "y": ..., "z": ...}

        Returns:
            True if the message counted as activity
        """
        kind = message.get("kind")
        if kind in ("touch", "pointer"):
            self.record_activity()
            return True
        if kind == "motion":
            return self.on_motion(message.get("x"), message.get("y"), message.get("z"))
        logger.debug(f"Ignoring unknown activity message: {kind}")
        return False

    def check(self) -> bool:
        """
        Put the session to sleep if it has been idle long enough.

        Returns:
            True if this call entered SLEEPING
        """
        if self.controller.state is not SessionState.RUNNING:
            return False
        return self.controller.sleep_if_idle(self.settings.current.sleep_timeout_ms)

    def wake(self) -> None:
        self.controller.wake()

    def start(self) -> None:
        """Run check() every check_interval seconds in a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="ActivityMonitor", daemon=True
        )
        self._thread.start()
        logger.info(
            f"Sleep monitor started (timeout {self.settings.current.sleep_timeout_ms}ms)"
        )

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.check_interval):
            self.check()
