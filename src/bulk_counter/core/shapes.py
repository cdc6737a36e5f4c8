"""
Shape fitting and non-max suppression.

Each connected component from the edge mask is fitted against the active
template. The confidence formulas are heuristics kept exactly as-is:
circles score by radial spread, rectangles by how densely the component
fills the bounding-box perimeter.
"""

from dataclasses import dataclass

import numpy as np

from ..utils.constants import MIN_CIRCLE_RADIUS, MIN_RECT_SIDE, NMS_IOU_THRESHOLD


@dataclass(frozen=True)
class ShapeCandidate:
    """A fitted shape, as an axis-aligned box in pixel coordinates."""

    kind: str  # 'circle' or 'rectangle'
    x: float
    y: float
    width: float
    height: float
    confidence: float


def fit_circle(points) -> ShapeCandidate | None:
    """
    Fit a circle to component points.

    Centroid is the mean point, radius the mean distance to it. Confidence
    is 1 - stddev(radii) / radius, floored at 0.

    Args:
        points: (N, 2) array-like of (x, y)

    Returns:
        ShapeCandidate bounding the circle, or None if the radius is under
        the minimum
    """
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) < 10:
        return None

    cx, cy = pts.mean(axis=0)
    radii = np.hypot(pts[:, 0] - cx, pts[:, 1] - cy)
    radius = float(radii.mean())

    if radius < MIN_CIRCLE_RADIUS:
        return None

    spread = float(np.sqrt(np.mean((radii - radius) ** 2)))
    confidence = max(0.0, 1.0 - spread / radius)

    return ShapeCandidate(
        kind="circle",
        x=float(cx) - radius,
        y=float(cy) - radius,
        width=radius * 2,
        height=radius * 2,
        confidence=confidence,
    )


def fit_rectangle(points) -> ShapeCandidate | None:
    """
    Fit an axis-aligned rectangle to component points.

    Width and height are max - min along each axis. Confidence is
    clamp(density * 0.5 + 0.3, 0, 1) where density is the point count over
    the bounding-box perimeter 2 * (w + h).

    Args:
        points: (N, 2) array-like of (x, y)

    Returns:
        ShapeCandidate, or None if either side is under the minimum
    """
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) < 4:
        return None

    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    width = float(max_x - min_x)
    height = float(max_y - min_y)

    if width < MIN_RECT_SIDE or height < MIN_RECT_SIDE:
        return None

    density = len(pts) / (2 * (width + height))
    confidence = min(1.0, max(0.0, density * 0.5 + 0.3))

    return ShapeCandidate(
        kind="rectangle",
        x=float(min_x),
        y=float(min_y),
        width=width,
        height=height,
        confidence=confidence,
    )


def iou(a: ShapeCandidate, b: ShapeCandidate) -> float:
    """Intersection over union of two boxes."""
    x1 = max(a.x, b.x)
    y1 = max(a.y, b.y)
    x2 = min(a.x + a.width, b.x + b.width)
    y2 = min(a.y + a.height, b.y + b.height)

    if x2 < x1 or y2 < y1:
        return 0.0

    intersection = (x2 - x1) * (y2 - y1)
    union = a.width * a.height + b.width * b.height - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def non_max_suppression(
    shapes: list[ShapeCandidate], iou_threshold: float = NMS_IOU_THRESHOLD
) -> list[ShapeCandidate]:
    """
    Greedy NMS: highest confidence first, keep a shape only if its IoU with
    every kept shape is <= iou_threshold.

    The sort is stable, so equal-confidence shapes keep their input order.
    """
    keep: list[ShapeCandidate] = []
    for shape in sorted(shapes, key=lambda s: s.confidence, reverse=True):
        if all(iou(shape, kept) <= iou_threshold for kept in keep):
            keep.append(shape)
    return keep
