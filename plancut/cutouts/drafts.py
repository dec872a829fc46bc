from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from plancut.core.types import Point2
from plancut.cutouts.model import SHAPE_KINDS
from plancut.geometry.rings import as_point, normalize_ring


def rectangle_from_corners(a: Any, b: Any) -> List[Point2]:
    """Axis-aligned rectangle ring from two opposite clicked corners."""
    ax, ay = as_point(a)
    bx, by = as_point(b)
    return [(bx, by), (ax, by), (ax, ay), (bx, ay)]


@dataclass
class CutoutDraft:
    """Transient, caller-owned cutout being drawn.

    Nothing is persisted until the draft is committed through
    ``CutoutLifecycleManager.commit_draft``; dropping or cancelling a draft has
    no side effects.
    """

    plan_id: str
    shape_kind: Optional[str] = None
    points: List[Point2] = field(default_factory=list)
    source_surface_id: Optional[str] = None
    target_surface_ids: List[str] = field(default_factory=list)

    @classmethod
    def start(cls, plan_id: str, source_surface_id: Optional[str] = None) -> "CutoutDraft":
        targets = [source_surface_id] if source_surface_id else []
        return cls(plan_id=plan_id, source_surface_id=source_surface_id, target_surface_ids=targets)

    def select_shape(self, shape_kind: str) -> None:
        if shape_kind not in SHAPE_KINDS:
            raise ValueError(f"Unsupported cutout shape: {shape_kind}")
        self.shape_kind = shape_kind
        self.points = []

    def finish_drawing(self, points: Sequence[Any]) -> None:
        if self.shape_kind is None:
            raise ValueError("Select a cutout shape before drawing")
        pts = [as_point(p) for p in points]
        if self.shape_kind == "rectangle" and len(pts) == 2:
            pts = rectangle_from_corners(pts[0], pts[1])
        self.points = pts

    def set_targets(self, surface_ids: Sequence[str]) -> None:
        self.target_surface_ids = [str(s) for s in dict.fromkeys(surface_ids)]

    def is_ready(self) -> bool:
        return self.shape_kind is not None and bool(normalize_ring(self.points)) and bool(self.target_surface_ids)

    def cancel(self) -> None:
        self.shape_kind = None
        self.points = []
        self.source_surface_id = None
        self.target_surface_ids = []
