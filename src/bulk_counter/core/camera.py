"""
Camera initialization and frame conversion.
"""

import logging
import time

import cv2

from ..models import Frame
from ..utils.constants import CAMERA_RECONNECT_DELAY, MAX_CAMERA_RECONNECT_ATTEMPTS

logger = logging.getLogger(__name__)


def initialize_camera(camera_url: str) -> cv2.VideoCapture:
    """
    Initialize camera with retry logic.

    Args:
        camera_url: Camera URL, device index string, or video file path

    Returns:
        OpenCV VideoCapture object

    Raises:
        RuntimeError: If camera cannot be opened after retries
    """
    source = int(camera_url) if camera_url.isdigit() else camera_url

    for attempt in range(MAX_CAMERA_RECONNECT_ATTEMPTS + 1):
        logger.info(f"Connecting to camera: {camera_url} (attempt {attempt + 1})")
        cap = cv2.VideoCapture(source)

        if cap.isOpened():
            logger.info("Camera connected successfully")
            return cap

        if attempt < MAX_CAMERA_RECONNECT_ATTEMPTS:
            logger.warning(
                f"Failed to connect, retrying in {CAMERA_RECONNECT_DELAY}s..."
            )
            time.sleep(CAMERA_RECONNECT_DELAY)
        else:
            logger.error(
                f"Failed to connect to camera after {MAX_CAMERA_RECONNECT_ATTEMPTS + 1} attempts"
            )

    raise RuntimeError(f"Cannot connect to camera: {camera_url}")


def read_frame(cap: cv2.VideoCapture) -> Frame | None:
    """Read one frame as RGBA, or None when the stream has ended."""
    ret, bgr = cap.read()
    if not ret:
        return None
    return Frame.from_bgr(bgr)


def load_image(path: str) -> Frame:
    """
    Load an image file as an RGBA frame.

    Raises:
        FileNotFoundError: If the image cannot be read
    """
    bgr = cv2.imread(path, cv2.IMREAD_COLOR)
    if bgr is None:
        raise FileNotFoundError(f"Cannot read image: {path}")
    return Frame.from_bgr(bgr)
