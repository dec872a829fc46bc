from __future__ import annotations

from typing import Sequence

import numpy as np

from plancut.core.types import Point2
from plancut.geometry.tolerance import EPS_RING


def signed_area(ring: Sequence[Point2]) -> float:
    """Shoelace area; positive for counter-clockwise rings."""
    n = len(ring)
    if n < 3:
        return 0.0
    s = 0.0
    for i in range(n):
        x1, y1 = ring[i]
        x2, y2 = ring[(i + 1) % n]
        s += x1 * y2 - x2 * y1
    return 0.5 * s


def ring_area(ring: Sequence[Point2]) -> float:
    return abs(signed_area(ring))


def perimeter(ring: Sequence[Point2]) -> float:
    # wraps around, so a closed ring contributes a zero-length final edge
    if len(ring) < 2:
        return 0.0
    pts = np.asarray(ring, dtype=float)
    d = np.roll(pts, -1, axis=0) - pts
    return float(np.hypot(d[:, 0], d[:, 1]).sum())


def centroid(ring: Sequence[Point2]) -> Point2:
    """Vertex mean, used for label placement (not area-weighted)."""
    if not ring:
        return (0.0, 0.0)
    pts = np.asarray(ring, dtype=float)
    if len(pts) > 1 and np.all(np.abs(pts[0] - pts[-1]) <= EPS_RING):
        pts = pts[:-1]
    cx, cy = pts.mean(axis=0)
    return (float(cx), float(cy))


def is_ccw(ring: Sequence[Point2]) -> bool:
    return signed_area(ring) > 0.0
