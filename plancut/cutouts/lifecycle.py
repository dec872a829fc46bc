from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from plancut.core.settings import DEFAULT_SETTINGS, CutoutSettings
from plancut.cutouts.apply import ClippedGeometry, apply_cutouts, clipped_geometry
from plancut.cutouts.cache import ClippedGeometryCache
from plancut.cutouts.drafts import CutoutDraft
from plancut.cutouts.invariants import InvariantReport, validate_surface
from plancut.cutouts.model import SHAPE_KINDS, Cutout, Surface, utc_now_iso
from plancut.cutouts.naming import next_cutout_name
from plancut.cutouts.overlap import overlap_area
from plancut.geometry.rings import normalize_ring
from plancut.store.repository import CutoutRepository, PersistenceError

logger = logging.getLogger(__name__)


class CutoutError(ValueError):
    pass


@dataclass
class LifecycleOutcome:
    cutout: Optional[Cutout] = None
    updated: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    deleted_cutouts: List[str] = field(default_factory=list)
    advisories: Dict[str, str] = field(default_factory=dict)
    reports: List[InvariantReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cutout": self.cutout.to_dict() if self.cutout is not None else None,
            "updated": list(self.updated),
            "failed": dict(self.failed),
            "deleted_cutouts": list(self.deleted_cutouts),
            "advisories": dict(self.advisories),
            "reports": [r.to_dict() for r in self.reports],
        }


class CutoutLifecycleManager:
    """Creates, assigns and garbage-collects cutouts for the surfaces of a plan.

    The manager holds the in-memory snapshot the UI reads (``surfaces`` and
    ``cutouts``). Each change is applied to the snapshot first and then written
    through the repository. A failed write is reported in the returned
    ``LifecycleOutcome``; it neither reverts the snapshot nor stops writes to
    other surfaces.
    """

    def __init__(
        self,
        repository: CutoutRepository,
        *,
        settings: Optional[CutoutSettings] = None,
        cache: Optional[ClippedGeometryCache] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.repository = repository
        self.settings = settings or DEFAULT_SETTINGS
        self.cache = cache if cache is not None else ClippedGeometryCache(self.settings.cache_size)
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._clock = clock or utc_now_iso
        self.surfaces: Dict[str, Surface] = {}
        self.cutouts: Dict[str, Cutout] = {}
        self._reserved_names: Dict[str, Set[str]] = {}

    # -- snapshot -----------------------------------------------------------

    async def load(self, plan_id: str) -> None:
        for s in await self.repository.list_surfaces(plan_id):
            self.surfaces[s.id] = s
        for c in await self.repository.list_cutouts(plan_id):
            self.cutouts[c.id] = c
        logger.debug("loaded plan %s: %d surfaces, %d cutouts", plan_id, len(self.surfaces), len(self.cutouts))

    def track(self, surfaces: Iterable[Surface] = (), cutouts: Iterable[Cutout] = ()) -> None:
        for s in surfaces:
            self.surfaces[s.id] = s
            self.cache.invalidate(s.id)
        for c in cutouts:
            self.cutouts[c.id] = c

    def surface(self, surface_id: str) -> Surface:
        s = self.surfaces.get(surface_id)
        if s is None:
            raise CutoutError(f"Unknown surface: {surface_id}")
        return s

    def cutout(self, cutout_id: str) -> Cutout:
        c = self.cutouts.get(cutout_id)
        if c is None:
            raise CutoutError(f"Unknown cutout: {cutout_id}")
        return c

    def clipped_geometry(self, surface_id: str) -> ClippedGeometry:
        return clipped_geometry(self.surface(surface_id), self.cutouts.values(), cache=self.cache)

    def overlap(self, surface_id: str, cutout_id: str) -> float:
        return overlap_area(self.surface(surface_id), self.cutout(cutout_id))

    # -- operations ---------------------------------------------------------

    async def create_cutout(
        self,
        plan_id: str,
        shape_kind: str,
        ring: Sequence[Any],
        target_surface_ids: Sequence[str],
    ) -> LifecycleOutcome:
        if not plan_id:
            raise CutoutError("A plan is required to create a cutout")
        if shape_kind not in SHAPE_KINDS:
            raise CutoutError(f"Unsupported cutout shape: {shape_kind}")
        boundary = normalize_ring(ring)
        if not boundary:
            raise CutoutError("Cutout needs at least 3 distinct vertices")
        targets = [t for t in dict.fromkeys(str(t) for t in target_surface_ids)]
        if not targets:
            raise CutoutError("Choose at least one target surface")
        known = [t for t in targets if t in self.surfaces]
        if not known:
            raise CutoutError(f"None of the target surfaces exist: {targets}")

        # names are reserved before the insert await so concurrent creates stay sequential
        reserved = self._reserved_names.setdefault(plan_id, set())
        name = next_cutout_name(self.cutouts.values(), plan_id, reserved)
        reserved.add(name)
        cutout = Cutout(
            id=self._new_id(),
            plan_id=plan_id,
            name=name,
            boundary=tuple(boundary),
            shape_kind=shape_kind,
            created_at=self._clock(),
        )
        # the record must exist before any surface references it
        try:
            cutout = await self.repository.insert_cutout(cutout)
        except PersistenceError as exc:
            logger.error("failed to persist cutout %s: %s", cutout.id, exc, extra={"cutout_id": cutout.id})
            return LifecycleOutcome(failed={"cutout": str(exc)})
        else:
            self.cutouts[cutout.id] = cutout
        finally:
            reserved.discard(name)
        logger.debug("created cutout %s (%s) on plan %s", cutout.id, cutout.name, plan_id, extra={"cutout_id": cutout.id})

        outcome = LifecycleOutcome(cutout=cutout)
        for sid in targets:
            if sid not in self.surfaces:
                outcome.advisories[sid] = "surface not found; skipped"
                continue
            current = self.surfaces[sid]
            if cutout.id in current.cutout_ids:
                continue
            updated = self._recompute(current, list(current.cutout_ids) + [cutout.id], outcome)
            await self._persist_surface(updated, outcome)
        return outcome

    async def commit_draft(self, draft: CutoutDraft) -> LifecycleOutcome:
        if draft.shape_kind is None:
            raise CutoutError("Cutout draft has no shape")
        return await self.create_cutout(draft.plan_id, draft.shape_kind, draft.points, draft.target_surface_ids)

    async def unassign_cutout(self, cutout_id: str, surface_id: str) -> LifecycleOutcome:
        outcome = LifecycleOutcome()
        current = self.surface(surface_id)
        if cutout_id not in current.cutout_ids:
            return outcome
        remaining = [cid for cid in current.cutout_ids if cid != cutout_id]
        updated = self._recompute(current, remaining, outcome)
        await self._persist_surface(updated, outcome)
        await self._sweep([cutout_id], outcome)
        return outcome

    async def delete_cutout(self, cutout_id: str) -> LifecycleOutcome:
        outcome = LifecycleOutcome()
        for current in [s for s in self.surfaces.values() if cutout_id in s.cutout_ids]:
            remaining = [cid for cid in current.cutout_ids if cid != cutout_id]
            updated = self._recompute(current, remaining, outcome)
            await self._persist_surface(updated, outcome)
        await self._sweep([cutout_id], outcome)
        return outcome

    async def on_surface_deleted(self, surface_id: str) -> LifecycleOutcome:
        """Forget a surface removed by its owning flow and delete cutouts it orphaned."""
        outcome = LifecycleOutcome()
        removed = self.surfaces.pop(surface_id, None)
        self.cache.invalidate(surface_id)
        if removed is None:
            logger.debug("surface %s already gone; nothing to sweep", surface_id)
            return outcome
        await self._sweep(removed.cutout_ids, outcome)
        return outcome

    # -- internals ----------------------------------------------------------

    def _recompute(self, surface: Surface, cutout_ids: Sequence[str], outcome: LifecycleOutcome) -> Surface:
        result = apply_cutouts(surface.with_cutouts(cutout_ids, surface.net_value), self.cutouts.values())
        # on clipping failure apply_cutouts already fell back to the original area
        updated = surface.with_cutouts(cutout_ids, result.area)
        if not result.ok:
            outcome.advisories[surface.id] = result.advisory or "cutouts could not be applied"
        self.surfaces[surface.id] = updated
        self.cache.invalidate(surface.id)
        if self.settings.validate_invariants:
            outcome.reports.append(validate_surface(updated, self.cutouts.values(), geometry=result))
        logger.debug(
            "surface %s: %d cutouts, net %.6f of %.6f",
            surface.id,
            len(updated.cutout_ids),
            updated.net_value,
            updated.original_area,
            extra={"surface_id": surface.id},
        )
        return updated

    async def _persist_surface(self, surface: Surface, outcome: LifecycleOutcome) -> None:
        try:
            await self.repository.update_surface(surface)
        except PersistenceError as exc:
            logger.error("failed to persist surface %s: %s", surface.id, exc, extra={"surface_id": surface.id})
            outcome.failed[surface.id] = str(exc)
            return
        outcome.updated.append(surface.id)

    async def _sweep(self, candidate_ids: Iterable[str], outcome: LifecycleOutcome) -> None:
        orphans: List[str] = []
        for cid in dict.fromkeys(candidate_ids):
            if any(cid in s.cutout_ids for s in self.surfaces.values()):
                continue
            orphans.append(cid)
        if not orphans:
            return
        for cid in orphans:
            self.cutouts.pop(cid, None)
        outcome.deleted_cutouts.extend(orphans)
        try:
            await self.repository.delete_cutouts(orphans)
        except PersistenceError as exc:
            logger.error("failed to delete orphaned cutouts %s: %s", orphans, exc)
            outcome.failed["cutouts:" + ",".join(orphans)] = str(exc)
            return
        logger.debug("deleted orphaned cutouts %s", orphans)
