"""
SessionController - the counting session state machine.

States:
    INACTIVE -> RUNNING <-> PAUSED
                RUNNING <-> SLEEPING   (driven by the ActivityMonitor)
    any active state -> INACTIVE on stop/cancel

Every command and every detection update runs under one lock, so a
confirm never sees a half-applied frame and a frame result never lands
on a session that was just confirmed or cancelled. Commands issued with
no active session are no-ops.

Observers subscribe with a callback and receive event dicts after the
lock is released:
    {"event_type": "SESSION_CONFIRMED", "session_id": ..., "timestamp": ..., ...}
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from enum import Enum
from typing import Any

from ..config import SettingsStore
from ..models import BoundingBox, CountSession, Detection, Template, new_id
from ..utils.constants import MANUAL_FRAME_ID, MANUAL_LABEL
from .tracker import SpatialTracker

logger = logging.getLogger(__name__)

SessionListener = Callable[[dict[str, Any]], None]


class SessionState(str, Enum):
    INACTIVE = "inactive"
    RUNNING = "running"
    PAUSED = "paused"
    SLEEPING = "sleeping"


class SessionController:
    """
    Owns the active CountSession, its transient detections and the
    running confirmed count.

    Args:
        settings: Shared settings store
        tracker: Spatial tracker (one is created if None)
        clock: Epoch-seconds clock, injectable for tests
    """

    def __init__(
        self,
        settings: SettingsStore,
        tracker: SpatialTracker | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.clock = clock
        self.tracker = tracker if tracker is not None else SpatialTracker(settings, clock)

        self._lock = threading.RLock()
        self._listeners: list[SessionListener] = []

        self._session: CountSession | None = None
        self._template = Template.CIRCLE
        self._detections: list[Detection] = []
        self._confirmed_count = 0
        self._paused = False
        self._sleeping = False
        self._last_activity = clock()
        self._generation = 0
        self._processing_error: str | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            if self._session is None:
                return SessionState.INACTIVE
            if self._paused:
                return SessionState.PAUSED
            if self._sleeping:
                return SessionState.SLEEPING
            return SessionState.RUNNING

    @property
    def session(self) -> CountSession | None:
        return self._session

    @property
    def template(self) -> Template:
        return self._template

    @property
    def detections(self) -> tuple[Detection, ...]:
        with self._lock:
            return tuple(self._detections)

    @property
    def confirmed_count(self) -> int:
        return self._confirmed_count

    @property
    def generation(self) -> int:
        """Bumped whenever in-flight frame results must be discarded."""
        return self._generation

    @property
    def last_activity_time(self) -> float:
        return self._last_activity

    @property
    def is_sleeping(self) -> bool:
        return self._sleeping

    @property
    def processing_error(self) -> str | None:
        return self._processing_error

    def capture_count(self) -> int:
        """Number of transient detections not soft-deleted."""
        with self._lock:
            return sum(1 for d in self._detections if not d.is_removed)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register an event listener.

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _event(self, event_type: str, **fields) -> dict[str, Any]:
        return {
            "event_type": event_type,
            "session_id": self._session.id if self._session else None,
            "timestamp": self.clock(),
            **fields,
        }

    def _notify(self, events: list[dict[str, Any]]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for event in events:
            for listener in listeners:
                try:
                    listener(event)
                except Exception as e:
                    logger.error(
                        f"Session listener failed on {event['event_type']}: {e}",
                        exc_info=True,
                    )

    # ------------------------------------------------------------------
    # Lifecycle commands
    # ------------------------------------------------------------------

    def start(self, template: Template | str) -> CountSession:
        """Open a new session and start running."""
        template = Template(template)
        with self._lock:
            now = self.clock()
            self._template = template
            self._session = CountSession.open(template, now)
            self._detections = []
            self._confirmed_count = 0
            self._paused = False
            self._sleeping = False
            self._last_activity = now
            self._generation += 1
            self.tracker.clear()
            session = self._session
            events = [self._event("SESSION_STARTED", template=template.value)]

        logger.info(f"Session {session.id} started ({template.value})")
        self._notify(events)
        return session

    def stop(self) -> None:
        """Discard transient state and go inactive. Nothing is persisted."""
        self._deactivate("SESSION_STOPPED")

    def cancel(self) -> None:
        """Same as stop, reported as a cancellation."""
        self._deactivate("SESSION_CANCELLED")

    def _deactivate(self, event_type: str) -> None:
        with self._lock:
            if self._session is None:
                return
            events = [self._event(event_type, discarded=len(self._detections))]
            session_id = self._session.id
            self._session = None
            self._detections = []
            self._confirmed_count = 0
            self._paused = False
            self._sleeping = False
            self._generation += 1

        logger.info(f"Session {session_id} {event_type.split('_')[-1].lower()}")
        self._notify(events)

    def pause(self) -> None:
        with self._lock:
            if self._session is None or self._paused:
                return
            self._paused = True
            events = [self._event("SESSION_PAUSED")]
        self._notify(events)

    def resume(self) -> None:
        with self._lock:
            if self._session is None or not self._paused:
                return
            self._paused = False
            self._last_activity = self.clock()
            events = [self._event("SESSION_RESUMED")]
        self._notify(events)

    def reset(self) -> None:
        """
        Start over with the same template: drop transient detections, the
        confirmed count and every spatial marker.
        """
        with self._lock:
            if self._session is None:
                return
            self._session = CountSession.open(self._template, self.clock())
            self._detections = []
            self._confirmed_count = 0
            self._generation += 1
            self.tracker.clear()
            events = [self._event("SESSION_RESET")]
        self._notify(events)

    def clear_markers(self) -> None:
        """Forget committed markers so previously confirmed items count again."""
        with self._lock:
            if self._session is None:
                return
            self.tracker.clear()
            events = [self._event("MARKERS_CLEARED")]
        self._notify(events)

    # ------------------------------------------------------------------
    # Detection updates and manual corrections
    # ------------------------------------------------------------------

    def on_detections(
        self, detections: list[Detection], generation: int | None = None
    ) -> bool:
        """
        Replace the transient detection list with a new frame's results.

        Applied only while RUNNING. Results are passed through the spatial
        tracker first. Results tagged with an outdated generation (the
        session was stopped, cancelled or reset since the frame was taken)
        are discarded.

        Returns:
            True if the list was replaced
        """
        with self._lock:
            if self._session is None or self._paused or self._sleeping:
                return False
            if generation is not None and generation != self._generation:
                logger.debug(
                    f"Dropping stale detections (generation {generation} != {self._generation})"
                )
                return False

            filtered = self.tracker.filter(detections)
            self._detections = filtered
            events = [
                self._event(
                    "DETECTIONS_UPDATED",
                    count=len(filtered),
                    suppressed=len(detections) - len(filtered),
                )
            ]
        self._notify(events)
        return True

    def add_manual(
        self, x: float, y: float, width: float, height: float
    ) -> Detection | None:
        """Append a hand-placed box (confidence 1.0)."""
        with self._lock:
            if self._session is None:
                return None
            now = self.clock()
            detection = Detection(
                id=new_id(),
                bounding_box=BoundingBox(
                    id=new_id(),
                    x=x,
                    y=y,
                    width=width,
                    height=height,
                    confidence=1.0,
                    label=MANUAL_LABEL,
                    is_manually_added=True,
                ),
                timestamp=now,
                frame_id=MANUAL_FRAME_ID,
            )
            self._detections.append(detection)
            self._session = replace(
                self._session, manual_additions=self._session.manual_additions + 1
            )
            events = [self._event("DETECTION_ADDED", detection_id=detection.id)]
        self._notify(events)
        return detection

    def remove(self, detection_id: str) -> bool:
        """Soft-delete a detection. Returns True if its flag changed."""
        return self._set_removed(detection_id, True)

    def undo(self, detection_id: str) -> bool:
        """Restore a soft-deleted detection. Returns True if its flag changed."""
        return self._set_removed(detection_id, False)

    def _set_removed(self, detection_id: str, removed: bool) -> bool:
        with self._lock:
            if self._session is None:
                return False
            for i, detection in enumerate(self._detections):
                if detection.id == detection_id:
                    break
            else:
                return False
            if detection.is_removed == removed:
                return False

            self._detections[i] = detection.with_removed(removed)
            delta = 1 if removed else -1
            self._session = replace(
                self._session,
                manual_removals=max(0, self._session.manual_removals + delta),
            )
            event_type = "DETECTION_REMOVED" if removed else "DETECTION_RESTORED"
            events = [self._event(event_type, detection_id=detection_id)]
        self._notify(events)
        return True

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def confirm(self, sheet_id: str) -> CountSession | None:
        """
        Finalize the active detections into a session snapshot.

        Commits one spatial marker per confirmed detection, adds the count
        to the running confirmed total and opens a fresh session with the
        same template (markers are kept).

        Returns:
            The finalized, immutable session, or None with no active session
        """
        with self._lock:
            if self._session is None:
                return None

            now = self.clock()
            active = tuple(d for d in self._detections if not d.is_removed)
            count = len(active)
            self.tracker.commit(active)

            snapshot = replace(
                self._session,
                end_time=now,
                total_count=count,
                detections=active,
                spatial_markers=self.tracker.markers,
                synced_to_sheet=True,
                sheet_id=sheet_id,
                row_id=new_id(),
            )

            self._confirmed_count += count
            self._detections = []
            self._session = CountSession.open(self._template, now)
            events = [
                {
                    "event_type": "SESSION_CONFIRMED",
                    "session_id": snapshot.id,
                    "timestamp": now,
                    "count": count,
                    "sheet_id": sheet_id,
                    "row_id": snapshot.row_id,
                    "confirmed_count": self._confirmed_count,
                }
            ]

        logger.info(
            f"Session {snapshot.id} confirmed: {count} item(s) -> sheet {sheet_id} "
            f"(running total {self._confirmed_count})"
        )
        self._notify(events)
        return snapshot

    # ------------------------------------------------------------------
    # Activity, sleep and processing errors
    # ------------------------------------------------------------------

    def record_activity(self) -> None:
        """Refresh the activity clock and leave SLEEPING."""
        with self._lock:
            self._last_activity = self.clock()
            if not self._sleeping:
                return
            self._sleeping = False
            events = [self._event("SLEEP_EXITED")]
        self._notify(events)

    def set_sleeping(self, sleeping: bool) -> bool:
        """
        Enter or leave SLEEPING. Entering is only possible from RUNNING.

        Returns:
            True if the state changed
        """
        with self._lock:
            if sleeping == self._sleeping:
                return False
            if sleeping and (self._session is None or self._paused):
                return False
            self._sleeping = sleeping
            events = [self._event("SLEEP_ENTERED" if sleeping else "SLEEP_EXITED")]
        logger.info("Sleeping - frame processing suspended" if sleeping else "Awake")
        self._notify(events)
        return True

    def sleep_if_idle(self, timeout_ms: float) -> bool:
        """
        Enter SLEEPING if RUNNING and idle for at least timeout_ms.

        The idle time is measured under the lock, so activity recorded
        before this call always suppresses the transition.

        Returns:
            True if this call entered SLEEPING
        """
        with self._lock:
            if self._session is None or self._paused or self._sleeping:
                return False
            idle_ms = (self.clock() - self._last_activity) * 1000
            if idle_ms < timeout_ms:
                return False
            self._sleeping = True
            events = [self._event("SLEEP_ENTERED", idle_ms=idle_ms)]
        logger.info(f"Idle {idle_ms / 1000:.0f}s - frame processing suspended")
        self._notify(events)
        return True

    def wake(self) -> None:
        """Leave SLEEPING and reset the activity clock."""
        self.set_sleeping(False)
        self.record_activity()

    def report_processing_error(self, message: str) -> None:
        """Halt frame processing until clear_processing_error() is called."""
        with self._lock:
            self._processing_error = message
            events = [self._event("PROCESSING_ERROR", error=message)]
        logger.error(f"Frame processing halted: {message}")
        self._notify(events)

    def clear_processing_error(self) -> None:
        with self._lock:
            if self._processing_error is None:
                return
            self._processing_error = None
            events = [self._event("PROCESSING_RESUMED")]
        logger.info("Frame processing resumed")
        self._notify(events)
