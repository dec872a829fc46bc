from plancut.cutouts.apply import ClippedGeometry, applicable_cutouts, apply_cutouts, clipped_geometry
from plancut.cutouts.cache import ClippedGeometryCache
from plancut.cutouts.drafts import CutoutDraft, rectangle_from_corners
from plancut.cutouts.invariants import InvariantReport, validate_plan, validate_surface
from plancut.cutouts.lifecycle import CutoutError, CutoutLifecycleManager, LifecycleOutcome
from plancut.cutouts.model import Cutout, Surface, new_surface
from plancut.cutouts.naming import format_overlap, next_cutout_name
from plancut.cutouts.overlap import overlap_area, total_overlap

__all__ = [
    "ClippedGeometry",
    "ClippedGeometryCache",
    "Cutout",
    "CutoutDraft",
    "CutoutError",
    "CutoutLifecycleManager",
    "InvariantReport",
    "LifecycleOutcome",
    "Surface",
    "applicable_cutouts",
    "apply_cutouts",
    "clipped_geometry",
    "format_overlap",
    "new_surface",
    "next_cutout_name",
    "overlap_area",
    "rectangle_from_corners",
    "total_overlap",
    "validate_plan",
    "validate_surface",
]
