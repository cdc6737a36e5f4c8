"""
Utility modules for constants.
"""

from .constants import (
    DEFAULT_CAPTURE_INTERVAL_MS,
    DEFAULT_CONFIG_POLL_SECONDS,
    ENV_CAMERA_URL,
    ENV_CONFIDENCE_THRESHOLD,
    ENV_SHEET_ID,
)

__all__ = [
    "DEFAULT_CAPTURE_INTERVAL_MS",
    "DEFAULT_CONFIG_POLL_SECONDS",
    "ENV_CAMERA_URL",
    "ENV_CONFIDENCE_THRESHOLD",
    "ENV_SHEET_ID",
]
