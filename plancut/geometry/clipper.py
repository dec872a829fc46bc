from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from shapely.geometry import MultiPolygon as ShapelyMultiPolygon
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry.base import BaseGeometry

from plancut.core.types import MultiPolygon, Point2, Polygon, Ring
from plancut.geometry.polygon_math import ring_area
from plancut.geometry.rings import coords_to_ring, normalize_ring, ring_to_coords
from plancut.geometry.tolerance import EPS_AREA

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClipError:
    code: str
    message: str


@dataclass(frozen=True)
class ClipResult:
    """Outcome of one boolean operation.

    ``ok=False`` is the failure sentinel and carries an error. ``ok=True`` with
    no polygons means the result is genuinely empty.
    """

    ok: bool
    polygons: MultiPolygon = field(default_factory=list)
    error: Optional[ClipError] = None

    @property
    def is_empty(self) -> bool:
        return self.ok and not self.polygons


def _fail(code: str, message: str) -> ClipResult:
    return ClipResult(ok=False, error=ClipError(code=code, message=message))


def _shapely_polygon(rings: Sequence[Ring]) -> Optional[ShapelyPolygon]:
    if not rings:
        return None
    shell = normalize_ring(rings[0])
    if not shell:
        return None
    holes = [h for h in (normalize_ring(r) for r in rings[1:]) if h]
    return ShapelyPolygon(ring_to_coords(shell), [ring_to_coords(h) for h in holes])


def _shapely_subject(subject: MultiPolygon) -> Optional[BaseGeometry]:
    parts = [p for p in (_shapely_polygon(rings) for rings in subject) if p is not None]
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return ShapelyMultiPolygon(parts)


def _polygon_parts(geom: BaseGeometry) -> List[ShapelyPolygon]:
    if geom.is_empty:
        return []
    if isinstance(geom, ShapelyPolygon):
        return [geom]
    if hasattr(geom, "geoms"):
        # MultiPolygon or GeometryCollection; lines and points left by touching edges are dropped
        out: List[ShapelyPolygon] = []
        for g in geom.geoms:
            out.extend(_polygon_parts(g))
        return out
    return []


def _from_shapely(geom: BaseGeometry) -> MultiPolygon:
    out: MultiPolygon = []
    for part in _polygon_parts(geom):
        if part.area <= EPS_AREA:
            continue
        outer = normalize_ring(coords_to_ring(part.exterior.coords))
        if not outer:
            continue
        rings: Polygon = [outer]
        for interior in part.interiors:
            hole = normalize_ring(coords_to_ring(interior.coords))
            if hole:
                rings.append(hole)
        out.append(rings)
    _check_ring_order(out)
    return out


def _check_ring_order(polygons: MultiPolygon) -> None:
    # Holes are identified by index alone; a hole larger than its outer ring means the
    # backend broke the ordering this module relies on.
    for i, rings in enumerate(polygons):
        outer = ring_area(rings[0])
        for j, hole in enumerate(rings[1:], start=1):
            if ring_area(hole) > outer + EPS_AREA:
                logger.warning(
                    "clipper ring order suspect: polygon %d hole %d area %.6f exceeds outer %.6f",
                    i,
                    j,
                    ring_area(hole),
                    outer,
                )


def _run(op: str, build: Callable[[], Tuple[Optional[BaseGeometry], Optional[BaseGeometry]]]) -> ClipResult:
    try:
        a, b = build()
        if a is None:
            return ClipResult(ok=True)
        if b is None:
            # a degenerate clip ring removes nothing and overlaps nothing
            return ClipResult(ok=True, polygons=_from_shapely(a) if op == "difference" else [])
        if not a.is_valid or not b.is_valid:
            logger.error("clipper %s rejected invalid (self-intersecting) input", op)
            return _fail("invalid_input", f"{op}: input polygon is not valid")
        geom = a.difference(b) if op == "difference" else a.intersection(b)
        return ClipResult(ok=True, polygons=_from_shapely(geom))
    except Exception as exc:
        logger.exception("clipper %s failed", op)
        return _fail("backend_error", f"{op}: {exc}")


def _ring_polygon(ring: Sequence[Any]) -> Optional[ShapelyPolygon]:
    normalized = normalize_ring(ring)
    if not normalized:
        return None
    return ShapelyPolygon(ring_to_coords(normalized))


def difference(subject: MultiPolygon, clip: Sequence[Any]) -> ClipResult:
    """``subject - clip``; subject is a multipolygon, clip a single ring."""
    return _run("difference", lambda: (_shapely_subject(subject), _ring_polygon(clip)))


def intersection(a: Sequence[Any], b: Sequence[Any]) -> ClipResult:
    return _run("intersection", lambda: (_ring_polygon(a), _ring_polygon(b)))


def single_polygon(ring: Sequence[Point2]) -> MultiPolygon:
    """Wrap one boundary ring as a one-polygon multipolygon (empty if degenerate)."""
    outer = normalize_ring(ring)
    return [[outer]] if outer else []
