"""
Constants used throughout the counting system
"""

# Shape pipeline
ADAPTIVE_BLOCK_RADIUS = 15  # Window is (2 * radius + 1) squared
ADAPTIVE_OFFSET = 5  # Foreground iff edge > local mean - offset
MAX_COMPONENT_PIXELS = 1000  # Flood fill stops tracing after this many pixels
MIN_COMPONENT_PIXELS = 20  # Smaller components are noise
MIN_CIRCLE_RADIUS = 10.0
MIN_RECT_SIDE = 20
NMS_IOU_THRESHOLD = 0.3

# Labels
CIRCLE_LABEL = "pipe/circle"
RECTANGLE_LABEL = "box/rectangle"
MANUAL_LABEL = "manual"
MANUAL_FRAME_ID = "manual"

# Activity / sleep
MOTION_ACTIVITY_THRESHOLD = 10.0  # Summed abs delta across accel axes
SLEEP_CHECK_INTERVAL = 1.0  # Seconds between sleep checks

# Settings defaults
DEFAULT_CONFIDENCE_THRESHOLD = 0.5
DEFAULT_ENABLE_DEDUPLICATION = True
DEFAULT_DEDUP_DISTANCE = 50.0
DEFAULT_SLEEP_TIMEOUT_MS = 30000

# Performance and monitoring
STATUS_REPORT_INTERVAL = 100  # Log status every N processed frames
FPS_WINDOW_SIZE = 100  # Number of frames to average for FPS calculation
DEFAULT_CAPTURE_INTERVAL_MS = 100

# Camera reconnection
MAX_CAMERA_RECONNECT_ATTEMPTS = 2
CAMERA_RECONNECT_DELAY = 2.0  # Seconds between reconnection attempts

# Config hot reload
DEFAULT_CONFIG_POLL_SECONDS = 5.0

# Environment variables
ENV_CAMERA_URL = "CAMERA_URL"
ENV_CONFIDENCE_THRESHOLD = "COUNTER_CONFIDENCE_THRESHOLD"
ENV_SHEET_ID = "COUNTER_SHEET_ID"
