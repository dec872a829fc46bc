from __future__ import annotations

import logging
from typing import Iterable

from plancut.cutouts.apply import applicable_cutouts
from plancut.cutouts.model import Cutout, Surface
from plancut.geometry import clipper
from plancut.geometry.holes import multipolygon_net_area
from plancut.geometry.polygon_math import ring_area

logger = logging.getLogger(__name__)


def overlap_area(surface: Surface, cutout: Cutout) -> float:
    """Area of ``cutout`` that falls inside ``surface``; never negative.

    If the intersection cannot be computed, the cutout is assumed to overlap
    completely, capped at the smaller of the two areas.
    """
    res = clipper.intersection(surface.boundary, cutout.boundary)
    if not res.ok:
        fallback = min(ring_area(surface.boundary), ring_area(cutout.boundary))
        logger.warning(
            "overlap of cutout %s on surface %s unavailable; assuming %.6f",
            cutout.id,
            surface.id,
            fallback,
            extra={"surface_id": surface.id, "cutout_id": cutout.id},
        )
        return fallback
    return abs(multipolygon_net_area(res.polygons))


def total_overlap(surface: Surface, cutouts: Iterable[Cutout]) -> float:
    """Sum of overlaps for every cutout applied to ``surface``."""
    return sum(overlap_area(surface, c) for c in applicable_cutouts(surface, cutouts))
