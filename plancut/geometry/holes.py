from __future__ import annotations

import logging
from typing import Sequence

from plancut.core.types import MultiPolygon, Point2
from plancut.geometry.polygon_math import ring_area

logger = logging.getLogger(__name__)


def polygon_net_area(rings: Sequence[Sequence[Point2]]) -> float:
    """Net area of one polygon: ``|ring 0| - sum(|ring i|)`` for i >= 1, clamped at zero.

    Holes are identified by position only. Ring winding is ignored because the
    clipping backend does not keep hole orientation consistent with the outer
    ring, and classifying by winding adds some holes back instead of
    subtracting them.
    """
    if not rings:
        return 0.0
    outer = ring_area(rings[0])
    if len(rings) == 1:
        return outer
    net = outer
    for i in range(1, len(rings)):
        hole = ring_area(rings[i])
        logger.debug("ring %d is a hole: subtracting %.6f from outer %.6f", i, hole, outer)
        net -= hole
    return max(0.0, net)


def multipolygon_net_area(polygons: MultiPolygon) -> float:
    total = 0.0
    for rings in polygons:
        total += polygon_net_area(rings)
    return abs(total)
