from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Sequence, Tuple

from plancut.core.types import Point2
from plancut.geometry.polygon_math import ring_area
from plancut.geometry.rings import as_point


ShapeKind = Literal["rectangle", "polygon"]
SHAPE_KINDS: Tuple[str, ...] = ("rectangle", "polygon")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)


def created_at_key(value: str) -> datetime:
    """Comparable instant for an ISO-8601 ``created_at``.

    ``Z`` is read as UTC and naive stamps are taken to be UTC. Unparseable
    values sort first.
    """
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _EPOCH_MIN
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _points(raw: Sequence[Any]) -> Tuple[Point2, ...]:
    return tuple(as_point(p) for p in raw)


@dataclass(frozen=True)
class Surface:
    """A measured entity. Only ``cutout_ids`` and ``net_value`` ever change."""

    id: str
    boundary: Tuple[Point2, ...]
    plan_id: str = ""
    cutout_ids: Tuple[str, ...] = ()
    net_value: float = 0.0
    unit: str = "m²"
    label: str = ""

    @property
    def original_area(self) -> float:
        return ring_area(self.boundary)

    def with_cutouts(self, cutout_ids: Sequence[str], net_value: float) -> "Surface":
        return replace(self, cutout_ids=tuple(str(c) for c in cutout_ids), net_value=float(net_value))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "label": self.label,
            "boundary": [{"x": x, "y": y} for x, y in self.boundary],
            "cutout_ids": list(self.cutout_ids),
            "net_value": float(self.net_value),
            "unit": self.unit,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Surface":
        return cls(
            id=str(d["id"]),
            boundary=_points(d.get("boundary", [])),
            plan_id=str(d.get("plan_id", "")),
            cutout_ids=tuple(str(c) for c in (d.get("cutout_ids") or [])),
            net_value=float(d.get("net_value", 0.0)),
            unit=str(d.get("unit", "m²")),
            label=str(d.get("label", "")),
        )


@dataclass(frozen=True)
class Cutout:
    id: str
    plan_id: str
    name: str
    boundary: Tuple[Point2, ...]
    shape_kind: str = "polygon"
    created_at: str = field(default_factory=utc_now_iso)

    @property
    def area(self) -> float:
        return ring_area(self.boundary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "name": self.name,
            "boundary": [{"x": x, "y": y} for x, y in self.boundary],
            "shape_kind": self.shape_kind,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Cutout":
        return cls(
            id=str(d["id"]),
            plan_id=str(d.get("plan_id", "")),
            name=str(d.get("name", "")),
            boundary=_points(d.get("boundary", [])),
            shape_kind=str(d.get("shape_kind", "polygon")),
            created_at=str(d.get("created_at") or utc_now_iso()),
        )


def new_surface(
    surface_id: str,
    boundary: Sequence[Any],
    *,
    plan_id: str = "",
    unit: str = "m²",
    label: str = "",
) -> Surface:
    """Surface as the authoring flow creates it: no cutouts, net value = original area."""
    pts = _points(boundary)
    return Surface(
        id=str(surface_id),
        boundary=pts,
        plan_id=str(plan_id),
        cutout_ids=(),
        net_value=ring_area(pts),
        unit=unit,
        label=label,
    )
