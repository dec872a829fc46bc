from __future__ import annotations

from typing import Any, Iterable, List, Sequence

from plancut.core.types import Point2, Ring
from plancut.geometry.tolerance import EPS_RING


def as_point(p: Any) -> Point2:
    """Coerce ``(x, y)``, ``{"x": .., "y": ..}`` or an object with ``x``/``y`` to a float pair."""
    if isinstance(p, dict):
        return (float(p["x"]), float(p["y"]))
    if hasattr(p, "x") and hasattr(p, "y"):
        return (float(p.x), float(p.y))
    return (float(p[0]), float(p[1]))


def _same(a: Point2, b: Point2, eps: float) -> bool:
    return abs(a[0] - b[0]) <= eps and abs(a[1] - b[1]) <= eps


def normalize_ring(points: Iterable[Any], *, eps: float = EPS_RING) -> Ring:
    """Return a closed ring with consecutive duplicates removed.

    Input may be open or closed. Fewer than 3 distinct vertices yields ``[]``,
    which callers treat as zero area and zero perimeter.
    """
    unique: List[Point2] = []
    for raw in points:
        p = as_point(raw)
        if unique and _same(unique[-1], p, eps):
            continue
        unique.append(p)

    # drop an existing closing vertex so it is not counted as distinct
    if len(unique) >= 2 and _same(unique[0], unique[-1], eps):
        unique.pop()
    if len(unique) < 3:
        return []
    unique.append(unique[0])
    return unique


def is_degenerate(ring: Sequence[Any]) -> bool:
    return not normalize_ring(ring)


def ring_to_coords(ring: Sequence[Point2]) -> List[List[float]]:
    """Ring -> clipper coordinate arrays (``[[x, y], ...]``)."""
    return [[float(x), float(y)] for x, y in ring]


def coords_to_ring(coords: Iterable[Sequence[float]]) -> Ring:
    """Clipper coordinate arrays -> ring; drops any z component."""
    return [(float(c[0]), float(c[1])) for c in coords]
