from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Sequence, Set

from plancut.core.hashing import stable_hash
from plancut.cutouts.apply import ClippedGeometry, applicable_cutouts, apply_cutouts
from plancut.cutouts.model import Cutout, Surface


def clip_cache_key(surface: Surface, cutouts: Sequence[Cutout]) -> str:
    ordered = applicable_cutouts(surface, cutouts) if surface.cutout_ids else []
    payload = {
        "surface": surface.id,
        "boundary": list(surface.boundary),
        "cutout_ids": list(surface.cutout_ids),
        "cutouts": [[c.id, c.created_at, list(c.boundary)] for c in ordered],
    }
    return stable_hash(payload)


class ClippedGeometryCache:
    """Bounded LRU of per-surface clipped results.

    Keys cover the surface boundary, its cutout ids and every referenced
    cutout boundary, so a changed input never hits a stale entry.
    """

    def __init__(self, max_entries: int = 256) -> None:
        self.max_entries = int(max_entries)
        self._entries: "OrderedDict[str, ClippedGeometry]" = OrderedDict()
        self._by_surface: Dict[str, Set[str]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(self, surface: Surface, cutouts: Sequence[Cutout]) -> ClippedGeometry:
        key = clip_cache_key(surface, cutouts)
        hit = self._entries.get(key)
        if hit is not None:
            self._entries.move_to_end(key)
            self.hits += 1
            return hit
        self.misses += 1
        result = apply_cutouts(surface, cutouts)
        if self.max_entries <= 0:
            return result
        self._entries[key] = result
        self._by_surface.setdefault(surface.id, set()).add(key)
        while len(self._entries) > self.max_entries:
            old_key, _ = self._entries.popitem(last=False)
            for keys in self._by_surface.values():
                keys.discard(old_key)
        return result

    def invalidate(self, surface_id: str) -> int:
        keys = self._by_surface.pop(surface_id, set())
        for k in keys:
            self._entries.pop(k, None)
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
        self._by_surface.clear()
