from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Protocol, Set

if TYPE_CHECKING:
    from plancut.cutouts.model import Cutout, Surface


class PersistenceError(RuntimeError):
    pass


class CutoutRepository(Protocol):
    """Storage collaborator used by the cutout lifecycle. Every call is awaited."""

    async def list_surfaces(self, plan_id: str) -> List[Surface]: ...

    async def get_surface(self, surface_id: str) -> Optional[Surface]: ...

    async def update_surface(self, surface: Surface) -> None: ...

    async def list_cutouts(self, plan_id: str) -> List[Cutout]: ...

    async def get_cutout(self, cutout_id: str) -> Optional[Cutout]: ...

    async def insert_cutout(self, cutout: Cutout) -> Cutout: ...

    async def delete_cutouts(self, cutout_ids: Iterable[str]) -> None: ...


class InMemoryRepository:
    """Dictionary-backed repository.

    ``fail_updates_for`` / ``fail_inserts`` / ``fail_deletes`` simulate storage
    write failures.
    """

    def __init__(
        self,
        surfaces: Iterable[Surface] = (),
        cutouts: Iterable[Cutout] = (),
    ) -> None:
        self.surfaces: Dict[str, Surface] = {s.id: s for s in surfaces}
        self.cutouts: Dict[str, Cutout] = {c.id: c for c in cutouts}
        self.fail_updates_for: Set[str] = set()
        self.fail_inserts = False
        self.fail_deletes = False
        self.writes: List[str] = []

    async def list_surfaces(self, plan_id: str) -> List[Surface]:
        return [s for s in self.surfaces.values() if s.plan_id == plan_id]

    async def get_surface(self, surface_id: str) -> Optional[Surface]:
        return self.surfaces.get(surface_id)

    async def update_surface(self, surface: Surface) -> None:
        if surface.id in self.fail_updates_for:
            raise PersistenceError(f"update failed for surface {surface.id}")
        if surface.id not in self.surfaces:
            raise PersistenceError(f"surface {surface.id} does not exist")
        self.surfaces[surface.id] = surface
        self.writes.append(f"update_surface:{surface.id}")

    async def delete_surface(self, surface_id: str) -> None:
        # owned by the surface authoring flow, provided here for tests and demos
        self.surfaces.pop(surface_id, None)
        self.writes.append(f"delete_surface:{surface_id}")

    async def list_cutouts(self, plan_id: str) -> List[Cutout]:
        return [c for c in self.cutouts.values() if c.plan_id == plan_id]

    async def get_cutout(self, cutout_id: str) -> Optional[Cutout]:
        return self.cutouts.get(cutout_id)

    async def insert_cutout(self, cutout: Cutout) -> Cutout:
        if self.fail_inserts:
            raise PersistenceError(f"insert failed for cutout {cutout.id}")
        if cutout.id in self.cutouts:
            raise PersistenceError(f"cutout {cutout.id} already exists")
        self.cutouts[cutout.id] = cutout
        self.writes.append(f"insert_cutout:{cutout.id}")
        return cutout

    async def delete_cutouts(self, cutout_ids: Iterable[str]) -> None:
        ids = list(cutout_ids)
        if self.fail_deletes:
            raise PersistenceError(f"delete failed for cutouts {ids}")
        for cid in ids:
            self.cutouts.pop(cid, None)
        self.writes.append("delete_cutouts:" + ",".join(ids))
