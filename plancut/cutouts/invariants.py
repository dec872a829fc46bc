"""Diagnostic checks for cutout area invariants.

Every check returns violation messages instead of raising; ``validate_*``
helpers log them as warnings. Nothing here may interrupt a production path.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from plancut.cutouts.apply import ClippedGeometry, applicable_cutouts, apply_cutouts
from plancut.cutouts.model import Cutout, Surface
from plancut.cutouts.overlap import overlap_area
from plancut.geometry import clipper
from plancut.geometry.holes import multipolygon_net_area
from plancut.geometry.polygon_math import ring_area
from plancut.geometry.tolerance import EPS_AREA_CHECK

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvariantReport:
    subject: str
    checks: int = 0
    violations: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, object]:
        return {
            "subject": self.subject,
            "ok": self.ok,
            "checks": int(self.checks),
            "violations": list(self.violations),
            "notes": list(self.notes),
        }


def check_net_bounds(net: float, original: float, eps: float = EPS_AREA_CHECK) -> List[str]:
    out: List[str] = []
    if net < -eps:
        out.append(f"net area is negative: {net:.6f}")
    if net > original + eps:
        out.append(f"net area {net:.6f} exceeds original {original:.6f}: cutouts were added instead of subtracted")
    return out


def check_overlap_bounds(overlap: float, surface_area: float, cutout_area: float, eps: float = EPS_AREA_CHECK) -> List[str]:
    out: List[str] = []
    if overlap < -eps:
        out.append(f"overlap area is negative: {overlap:.6f}")
    if overlap > min(surface_area, cutout_area) + eps:
        out.append(
            f"overlap {overlap:.6f} exceeds min(surface {surface_area:.6f}, cutout {cutout_area:.6f})"
        )
    return out


def check_net_matches_overlaps(net: float, original: float, overlaps: Sequence[float], eps: float = EPS_AREA_CHECK) -> List[str]:
    total = sum(overlaps)
    if total < -eps:
        return [f"total cutout overlap is negative: {total:.6f}"]
    expected = original - total
    if abs(net - expected) > eps:
        return [f"net {net:.6f} != original {original:.6f} - overlaps {total:.6f} (diff {net - expected:.6f})"]
    return []


def check_structure(geometry: ClippedGeometry) -> List[str]:
    """Ring 0 of each polygon must be a real outer ring enclosing its holes."""
    out: List[str] = []
    for i, rings in enumerate(geometry.polygons):
        if not rings:
            out.append(f"polygon {i} has no rings")
            continue
        outer = ring_area(rings[0])
        for j, hole in enumerate(rings[1:], start=1):
            if ring_area(hole) > outer:
                out.append(f"polygon {i} hole {j} is larger than its outer ring")
    if geometry.ok and abs(multipolygon_net_area(geometry.polygons) - geometry.area) > EPS_AREA_CHECK and geometry.polygons:
        out.append("reported area does not match the hole-aware area of the returned rings")
    return out


def _cutouts_overlap_each_other(cutouts: Sequence[Cutout]) -> bool:
    for i in range(len(cutouts)):
        for j in range(i + 1, len(cutouts)):
            res = clipper.intersection(cutouts[i].boundary, cutouts[j].boundary)
            if not res.ok or multipolygon_net_area(res.polygons) > EPS_AREA_CHECK:
                return True
    return False


def find_orphans(surfaces: Iterable[Surface], cutouts: Iterable[Cutout]) -> List[str]:
    referenced = {cid for s in surfaces for cid in s.cutout_ids}
    return sorted(c.id for c in cutouts if c.id not in referenced)


def validate_surface(
    surface: Surface,
    cutouts: Iterable[Cutout],
    *,
    geometry: Optional[ClippedGeometry] = None,
    eps: float = EPS_AREA_CHECK,
) -> InvariantReport:
    all_cutouts = list(cutouts)
    applied = applicable_cutouts(surface, all_cutouts)
    geom = geometry if geometry is not None else apply_cutouts(surface, all_cutouts)
    original = ring_area(surface.boundary)

    violations: List[str] = []
    notes: List[str] = []
    checks = 0

    violations.extend(check_net_bounds(geom.area, original, eps))
    checks += 1
    violations.extend(check_structure(geom))
    checks += 1

    overlaps: List[float] = []
    for c in applied:
        ov = overlap_area(surface, c)
        overlaps.append(ov)
        violations.extend(f"cutout {c.id}: {m}" for m in check_overlap_bounds(ov, original, c.area, eps))
        checks += 1

    if not geom.ok:
        notes.append(geom.advisory or "clipping failed; original geometry in use")
    elif len(applied) > 1 and _cutouts_overlap_each_other(applied):
        # shared cutout area is only removed once, so the overlap sum over-counts it
        notes.append("cutouts overlap each other; net-vs-overlap sum not checked")
    else:
        violations.extend(check_net_matches_overlaps(geom.area, original, overlaps, eps))
        checks += 1

    if abs(surface.net_value - geom.area) > eps:
        violations.append(f"stored net value {surface.net_value:.6f} differs from computed {geom.area:.6f}")
    checks += 1

    report = InvariantReport(subject=f"surface:{surface.id}", checks=checks, violations=violations, notes=notes)
    for msg in report.violations:
        logger.warning("invariant violation on surface %s: %s", surface.id, msg, extra={"surface_id": surface.id})
    return report


def validate_plan(surfaces: Iterable[Surface], cutouts: Iterable[Cutout], *, eps: float = EPS_AREA_CHECK) -> List[InvariantReport]:
    surface_list = list(surfaces)
    cutout_list = list(cutouts)
    reports = [validate_surface(s, cutout_list, eps=eps) for s in surface_list]
    orphans = find_orphans(surface_list, cutout_list)
    orphan_report = InvariantReport(
        subject="cutouts",
        checks=1,
        violations=[f"cutout {cid} is not referenced by any surface" for cid in orphans],
    )
    for msg in orphan_report.violations:
        logger.warning("invariant violation: %s", msg)
    reports.append(orphan_report)
    return reports
