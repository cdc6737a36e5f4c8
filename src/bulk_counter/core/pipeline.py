"""
Shape Detection Pipeline

Pure function from a frame to candidate detections. No state is kept
between calls; identical input gives identical boxes.

Stages for the circle and rectangle templates:
  grayscale -> Sobel edges -> adaptive mask -> flood-fill components
  -> per-template shape fit -> NMS -> confidence filter

The generic template hands the frame to an injected detector handle and
only applies the confidence filter.
"""

import logging
import time

import cv2
import numpy as np

from ..errors import DetectorUnavailableError
from ..models import BoundingBox, Detection, Frame, GenericDetector, Template, new_id
from ..utils.constants import (
    ADAPTIVE_BLOCK_RADIUS,
    ADAPTIVE_OFFSET,
    CIRCLE_LABEL,
    MAX_COMPONENT_PIXELS,
    MIN_COMPONENT_PIXELS,
    NMS_IOU_THRESHOLD,
    RECTANGLE_LABEL,
)
from .shapes import ShapeCandidate, fit_circle, fit_rectangle, non_max_suppression

logger = logging.getLogger(__name__)

_SHAPE_LABELS = {
    Template.CIRCLE: CIRCLE_LABEL,
    Template.RECTANGLE: RECTANGLE_LABEL,
}


def detect_objects(
    frame: Frame,
    template: Template | str,
    confidence_threshold: float,
    detector: GenericDetector | None = None,
    frame_id: str | None = None,
    timestamp: float | None = None,
) -> list[Detection]:
    """
    Run the detection pipeline on one frame.

    Args:
        frame: RGBA frame (validated on construction)
        template: circle, rectangle or generic
        confidence_threshold: Minimum confidence to emit
        detector: Loaded generic detector handle (generic template only)
        frame_id: Identifier stamped on every detection (generated if None)
        timestamp: Epoch seconds stamped on every detection (now if None)

    Returns:
        Fresh detections for this frame

    Raises:
        DetectorUnavailableError: Generic template without a ready detector
    """
    template = Template(template)
    frame_id = frame_id or new_id()
    timestamp = time.time() if timestamp is None else timestamp

    if template is Template.GENERIC:
        return _detect_generic(frame, detector, confidence_threshold, frame_id, timestamp)

    label = _SHAPE_LABELS[template]
    shapes = find_shapes(frame, template)
    detections = [
        _make_detection(s.x, s.y, s.width, s.height, s.confidence, label, frame_id, timestamp)
        for s in shapes
        if s.confidence >= confidence_threshold
    ]
    logger.debug(
        f"Frame {frame_id}: {len(shapes)} shapes after NMS, {len(detections)} above threshold"
    )
    return detections


def find_shapes(frame: Frame, template: Template) -> list[ShapeCandidate]:
    """Fit the template to every component in the frame and run NMS."""
    fit = fit_circle if template is Template.CIRCLE else fit_rectangle

    shapes = []
    for component in find_components(build_mask(frame)):
        shape = fit(component)
        if shape is not None:
            shapes.append(shape)

    return non_max_suppression(shapes, NMS_IOU_THRESHOLD)


def build_mask(frame: Frame) -> np.ndarray:
    """Binary foreground mask (bool, H x W) for a frame."""
    return adaptive_threshold(sobel_edges(to_grayscale(frame.pixels)))


def to_grayscale(rgba: np.ndarray) -> np.ndarray:
    """Luma 0.299R + 0.587G + 0.114B, rounded half up, as uint8."""
    rgb = rgba[:, :, :3].astype(np.float64)
    luma = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
    return np.clip(np.floor(luma + 0.5), 0, 255).astype(np.uint8)


def sobel_edges(gray: np.ndarray) -> np.ndarray:
    """
    3x3 Sobel gradient magnitude, min(255, sqrt(gx^2 + gy^2)) truncated to
    uint8. The 1-pixel border is left at 0.
    """
    g = gray.astype(np.int32)
    edges = np.zeros(g.shape, dtype=np.uint8)
    if g.shape[0] < 3 or g.shape[1] < 3:
        return edges

    tl, tc, tr = g[:-2, :-2], g[:-2, 1:-1], g[:-2, 2:]
    ml, mr = g[1:-1, :-2], g[1:-1, 2:]
    bl, bc, br = g[2:, :-2], g[2:, 1:-1], g[2:, 2:]

    gx = (tr + 2 * mr + br) - (tl + 2 * ml + bl)
    gy = (bl + 2 * bc + br) - (tl + 2 * tc + tr)

    magnitude = np.sqrt((gx * gx + gy * gy).astype(np.float64))
    edges[1:-1, 1:-1] = np.minimum(255.0, magnitude).astype(np.uint8)
    return edges


def adaptive_threshold(
    edges: np.ndarray,
    block_radius: int = ADAPTIVE_BLOCK_RADIUS,
    offset: int = ADAPTIVE_OFFSET,
) -> np.ndarray:
    """
    Foreground iff edge > mean(window) - offset.

    The window is (2 * block_radius + 1) squared, clipped to the frame, so
    border pixels average over fewer neighbours. Window sums come from an
    integral image and the comparison is done as
    (edge + offset) * count > sum, which stays exact.
    """
    height, width = edges.shape
    integral = cv2.integral(edges, sdepth=cv2.CV_64F)

    ys = np.arange(height)
    xs = np.arange(width)
    y0 = np.clip(ys - block_radius, 0, height)
    y1 = np.clip(ys + block_radius + 1, 0, height)
    x0 = np.clip(xs - block_radius, 0, width)
    x1 = np.clip(xs + block_radius + 1, 0, width)

    sums = (
        integral[np.ix_(y1, x1)]
        - integral[np.ix_(y0, x1)]
        - integral[np.ix_(y1, x0)]
        + integral[np.ix_(y0, x0)]
    )
    counts = np.outer(y1 - y0, x1 - x0).astype(np.float64)

    return (edges.astype(np.float64) + offset) * counts > sums


def find_components(
    mask: np.ndarray,
    max_pixels: int = MAX_COMPONENT_PIXELS,
    min_pixels: int = MIN_COMPONENT_PIXELS,
) -> list[np.ndarray]:
    """
    Extract 4-connected foreground components.

    Seeds are scanned row-major. Each flood fill is a LIFO stack that stops
    after max_pixels traced pixels; pixels still on the stack stay
    unvisited and can seed later components.

    Returns:
        List of (N, 2) int arrays of (x, y), one per component with at
        least min_pixels pixels
    """
    height, width = mask.shape
    foreground = mask.ravel().tolist()
    visited = bytearray(height * width)
    components = []

    for seed in np.flatnonzero(mask).tolist():
        if visited[seed]:
            continue
        traced = _trace_component(seed, foreground, visited, width, height, max_pixels)
        if len(traced) >= min_pixels:
            idx = np.asarray(traced, dtype=np.int64)
            components.append(np.column_stack((idx % width, idx // width)))

    return components


def _trace_component(
    seed: int,
    foreground: list,
    visited: bytearray,
    width: int,
    height: int,
    max_pixels: int,
) -> list[int]:
    """Flood fill from seed, returning flat pixel indices."""
    traced = []
    stack = [seed]

    while stack and len(traced) < max_pixels:
        idx = stack.pop()
        if visited[idx]:
            continue
        visited[idx] = 1
        traced.append(idx)

        x = idx % width
        y = idx // width
        # Push order: +x, -x, +y, -y
        if x + 1 < width and not visited[idx + 1] and foreground[idx + 1]:
            stack.append(idx + 1)
        if x > 0 and not visited[idx - 1] and foreground[idx - 1]:
            stack.append(idx - 1)
        if y + 1 < height and not visited[idx + width] and foreground[idx + width]:
            stack.append(idx + width)
        if y > 0 and not visited[idx - width] and foreground[idx - width]:
            stack.append(idx - width)

    return traced


def _detect_generic(
    frame: Frame,
    detector: GenericDetector | None,
    confidence_threshold: float,
    frame_id: str,
    timestamp: float,
) -> list[Detection]:
    """Delegate to the external detector; only the confidence filter applies."""
    if detector is None or not detector.is_ready():
        raise DetectorUnavailableError("Generic detector is not initialized")

    results = detector.detect(frame, confidence_threshold)
    return [
        _make_detection(
            float(r["x"]),
            float(r["y"]),
            float(r["width"]),
            float(r["height"]),
            float(r["confidence"]),
            str(r["label"]),
            frame_id,
            timestamp,
        )
        for r in results
        if r["confidence"] >= confidence_threshold
    ]


def _make_detection(
    x: float,
    y: float,
    width: float,
    height: float,
    confidence: float,
    label: str,
    frame_id: str,
    timestamp: float,
) -> Detection:
    box = BoundingBox(
        id=new_id(),
        x=x,
        y=y,
        width=width,
        height=height,
        confidence=confidence,
        label=label,
    )
    return Detection(id=new_id(), bounding_box=box, timestamp=timestamp, frame_id=frame_id)
