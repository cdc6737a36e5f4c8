"""
Frame model - an RGBA pixel buffer with declared dimensions.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from ..errors import FrameFormatError


@dataclass(frozen=True)
class Frame:
    """
    A single camera frame.

    Both dimensions must be positive. An empty 0x0 frame is rejected with
    FrameFormatError even though its empty buffer matches the declared size.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        data: RGBA bytes, row-major, length width * height * 4
    """

    width: int
    height: int
    data: bytes

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise FrameFormatError(
                f"Frame dimensions must be positive, got {self.width}x{self.height}"
            )
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise FrameFormatError(
                f"Frame buffer length {len(self.data)} does not match "
                f"{self.width}x{self.height}x4 = {expected}"
            )

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (height, width, 4) uint8 view of the buffer."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            self.height, self.width, 4
        )

    @classmethod
    def from_rgba(cls, array: np.ndarray) -> "Frame":
        """Build a frame from an (H, W, 4) uint8 RGBA array."""
        if array.ndim != 3 or array.shape[2] != 4:
            raise FrameFormatError(f"Expected (H, W, 4) array, got {array.shape}")
        height, width = array.shape[:2]
        return cls(width, height, np.ascontiguousarray(array, dtype=np.uint8).tobytes())

    @classmethod
    def from_bgr(cls, array: np.ndarray) -> "Frame":
        """Build a frame from an OpenCV BGR image."""
        if array.ndim != 3 or array.shape[2] != 3:
            raise FrameFormatError(f"Expected (H, W, 3) BGR array, got {array.shape}")
        return cls.from_rgba(cv2.cvtColor(array, cv2.COLOR_BGR2RGBA))
