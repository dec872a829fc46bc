"""
Plancut Geometry Module

Ring cleanup, polygon measurement and the boolean clipping boundary used by
the cutout engine.
"""

from plancut.geometry.clipper import ClipError, ClipResult, difference, intersection
from plancut.geometry.holes import multipolygon_net_area, polygon_net_area
from plancut.geometry.polygon_math import centroid, perimeter, ring_area, signed_area
from plancut.geometry.rings import coords_to_ring, normalize_ring, ring_to_coords

__all__ = [
    "ClipError",
    "ClipResult",
    "difference",
    "intersection",
    "multipolygon_net_area",
    "polygon_net_area",
    "centroid",
    "perimeter",
    "ring_area",
    "signed_area",
    "coords_to_ring",
    "normalize_ring",
    "ring_to_coords",
]
