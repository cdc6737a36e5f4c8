"""
Counting session components: the state machine, the spatial dedup
tracker, and the idle/sleep control loop.
"""

from .activity import ActivityMonitor
from .controller import SessionController, SessionState
from .tracker import SpatialTracker

__all__ = [
    "ActivityMonitor",
    "SessionController",
    "SessionState",
    "SpatialTracker",
]
