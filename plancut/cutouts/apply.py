from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from plancut.core.types import MultiPolygon
from plancut.cutouts.model import Cutout, Surface, created_at_key
from plancut.geometry import clipper
from plancut.geometry.holes import multipolygon_net_area
from plancut.geometry.polygon_math import perimeter, ring_area
from plancut.geometry.rings import normalize_ring

if TYPE_CHECKING:
    from plancut.cutouts.cache import ClippedGeometryCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClippedGeometry:
    """Net geometry of a surface after its cutouts.

    ``polygons`` keeps each outer ring together with its holes. A renderer must
    fill every polygon as a single path (holes as sub-paths, nonzero or even-odd
    rule); filling rings one by one paints the holes solid.
    """

    polygons: MultiPolygon = field(default_factory=list)
    area: float = 0.0
    perimeter: float = 0.0
    ok: bool = True
    advisory: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.polygons

    def to_dict(self) -> Dict[str, Any]:
        return {
            "polygons": [[[[x, y] for x, y in ring] for ring in rings] for rings in self.polygons],
            "area": float(self.area),
            "perimeter": float(self.perimeter),
            "ok": bool(self.ok),
            "advisory": self.advisory,
        }


def applicable_cutouts(surface: Surface, cutouts: Iterable[Cutout]) -> List[Cutout]:
    """Cutouts referenced by ``surface`` in application order.

    Order is ascending ``created_at`` (parsed, so ``Z`` and ``+00:00`` agree),
    ties broken by attachment order in ``cutout_ids``. Ids without a matching
    cutout are skipped.
    """
    position = {cid: i for i, cid in reversed(list(enumerate(surface.cutout_ids)))}
    found = {c.id: c for c in cutouts if c.id in position}
    return sorted(found.values(), key=lambda c: (created_at_key(c.created_at), position[c.id]))


def _uncut(surface: Surface, *, ok: bool = True, advisory: Optional[str] = None) -> ClippedGeometry:
    if not normalize_ring(surface.boundary):
        # degenerate boundary: no area, no perimeter, nothing to draw
        return ClippedGeometry(polygons=[], area=0.0, perimeter=0.0, ok=ok, advisory=advisory)
    boundary = list(surface.boundary)
    return ClippedGeometry(
        polygons=[[boundary]],
        area=ring_area(boundary),
        perimeter=perimeter(boundary),
        ok=ok,
        advisory=advisory,
    )


def apply_cutouts(surface: Surface, cutouts: Iterable[Cutout]) -> ClippedGeometry:
    if not surface.cutout_ids:
        return _uncut(surface)
    ordered = applicable_cutouts(surface, cutouts)
    if not ordered:
        return _uncut(surface)

    current = clipper.single_polygon(surface.boundary)
    if not current:
        return _uncut(surface)

    for cutout in ordered:
        res = clipper.difference(current, cutout.boundary)
        if not res.ok:
            msg = res.error.message if res.error is not None else "unknown clipping failure"
            logger.error(
                "cutout %s could not be applied to surface %s (%s); keeping original geometry",
                cutout.id,
                surface.id,
                msg,
                extra={"surface_id": surface.id, "cutout_id": cutout.id},
            )
            return _uncut(surface, ok=False, advisory=f"Cutout {cutout.name or cutout.id} could not be applied: {msg}")
        if res.is_empty:
            logger.debug("surface %s fully consumed by cutout %s", surface.id, cutout.id)
            return ClippedGeometry(polygons=[], area=0.0, perimeter=0.0)
        current = res.polygons

    # hole edges are interior and do not count towards the measurable boundary
    outer_perimeter = sum(perimeter(rings[0]) for rings in current)
    return ClippedGeometry(polygons=current, area=multipolygon_net_area(current), perimeter=outer_perimeter)


def clipped_geometry(
    surface: Surface,
    cutouts: Iterable[Cutout],
    cache: Optional["ClippedGeometryCache"] = None,
) -> ClippedGeometry:
    """Renderer entry point; served from ``cache`` when one is given."""
    if cache is None:
        return apply_cutouts(surface, cutouts)
    return cache.get_or_compute(surface, list(cutouts))
