from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Callable

import pytest

from plancut.core.settings import CutoutSettings
from plancut.cutouts.drafts import CutoutDraft
from plancut.cutouts.lifecycle import CutoutError, CutoutLifecycleManager
from plancut.cutouts.model import new_surface
from plancut.store.repository import InMemoryRepository

SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


def _rect(x0: float, y0: float, x1: float, y1: float) -> list[tuple[float, float]]:
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]


def _clock() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"2024-01-01T00:00:{next(counter):02d}+00:00"


def _setup(*surface_ids: str, settings: CutoutSettings | None = None) -> tuple[InMemoryRepository, CutoutLifecycleManager]:
    repo = InMemoryRepository(surfaces=[new_surface(sid, SQUARE, plan_id="p1") for sid in surface_ids])
    ids = (f"c{i}" for i in itertools.count(1))
    mgr = CutoutLifecycleManager(repo, settings=settings, id_factory=lambda: next(ids), clock=_clock())
    asyncio.run(mgr.load("p1"))
    return repo, mgr


def test_create_cutout_updates_targets_and_persists() -> None:
    repo, mgr = _setup("s1", "s2")
    outcome = asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1", "s2"]))

    assert outcome.ok
    assert outcome.cutout is not None
    assert outcome.cutout.name == "./.01"
    assert outcome.updated == ["s1", "s2"]
    assert repo.cutouts["c1"].boundary[0] == repo.cutouts["c1"].boundary[-1]
    for sid in ("s1", "s2"):
        assert repo.surfaces[sid].cutout_ids == ("c1",)
        assert repo.surfaces[sid].net_value == pytest.approx(96.0)
        assert mgr.surfaces[sid].net_value == pytest.approx(96.0)
    assert all(r.ok for r in outcome.reports)
    # the cutout record is written before any surface references it
    assert repo.writes[0] == "insert_cutout:c1"


def test_second_cutout_gets_next_name() -> None:
    _, mgr = _setup("s1")
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1"]))
    outcome = asyncio.run(mgr.create_cutout("p1", "polygon", [(6, 6), (8, 6), (7, 8)], ["s1"]))
    assert outcome.cutout is not None
    assert outcome.cutout.name == "./.02"


def test_scenario_c_unassign_restores_area_and_removes_orphan() -> None:
    repo, mgr = _setup("s1")
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1"]))
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(6, 6, 8, 8), ["s1"]))
    assert mgr.surfaces["s1"].net_value == pytest.approx(92.0)

    outcome = asyncio.run(mgr.unassign_cutout("c2", "s1"))
    assert mgr.surfaces["s1"].net_value == pytest.approx(96.0)
    assert repo.surfaces["s1"].net_value == pytest.approx(96.0)
    assert repo.surfaces["s1"].cutout_ids == ("c1",)
    assert outcome.deleted_cutouts == ["c2"]
    assert "c2" not in repo.cutouts


def test_unassign_keeps_cutout_still_used_elsewhere() -> None:
    repo, mgr = _setup("s1", "s2")
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1", "s2"]))
    outcome = asyncio.run(mgr.unassign_cutout("c1", "s1"))
    assert outcome.deleted_cutouts == []
    assert "c1" in repo.cutouts
    assert repo.surfaces["s1"].net_value == pytest.approx(100.0)


def test_unassign_of_unreferenced_cutout_is_a_no_op() -> None:
    repo, mgr = _setup("s1")
    outcome = asyncio.run(mgr.unassign_cutout("nope", "s1"))
    assert outcome.updated == [] and outcome.deleted_cutouts == []
    assert repo.writes == []


def test_scenario_d_orphan_sweep_on_surface_deletion() -> None:
    repo, mgr = _setup("s1", "s2")
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1", "s2"]))

    asyncio.run(repo.delete_surface("s1"))
    first = asyncio.run(mgr.on_surface_deleted("s1"))
    assert first.deleted_cutouts == []
    assert "c1" in repo.cutouts
    assert repo.surfaces["s2"].net_value == pytest.approx(96.0)
    assert mgr.surfaces["s2"].net_value == pytest.approx(96.0)

    asyncio.run(repo.delete_surface("s2"))
    second = asyncio.run(mgr.on_surface_deleted("s2"))
    assert second.deleted_cutouts == ["c1"]
    assert "c1" not in repo.cutouts
    assert "c1" not in mgr.cutouts


def test_deleting_unknown_surface_is_harmless() -> None:
    repo, mgr = _setup("s1")
    outcome = asyncio.run(mgr.on_surface_deleted("ghost"))
    assert outcome.ok and outcome.deleted_cutouts == []
    assert repo.writes == []


def test_delete_cutout_strips_references_and_recomputes() -> None:
    repo, mgr = _setup("s1", "s2")
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1", "s2"]))
    outcome = asyncio.run(mgr.delete_cutout("c1"))
    assert sorted(outcome.updated) == ["s1", "s2"]
    assert outcome.deleted_cutouts == ["c1"]
    for sid in ("s1", "s2"):
        assert repo.surfaces[sid].cutout_ids == ()
        assert repo.surfaces[sid].net_value == pytest.approx(100.0)
    assert repo.cutouts == {}


def test_failed_write_on_one_target_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    repo, mgr = _setup("s1", "s2", "s3")
    repo.fail_updates_for = {"s2"}
    with caplog.at_level(logging.ERROR, logger="plancut.cutouts.lifecycle"):
        outcome = asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1", "s2", "s3"]))

    assert not outcome.ok
    assert list(outcome.failed) == ["s2"]
    assert outcome.updated == ["s1", "s3"]
    assert repo.surfaces["s1"].net_value == pytest.approx(96.0)
    assert repo.surfaces["s3"].net_value == pytest.approx(96.0)
    # storage keeps the old value, the in-memory snapshot is not reverted
    assert repo.surfaces["s2"].net_value == pytest.approx(100.0)
    assert mgr.surfaces["s2"].net_value == pytest.approx(96.0)
    assert any("s2" in r.getMessage() for r in caplog.records)


def test_failed_orphan_delete_is_reported() -> None:
    repo, mgr = _setup("s1")
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1"]))
    repo.fail_deletes = True
    asyncio.run(repo.delete_surface("s1"))
    outcome = asyncio.run(mgr.on_surface_deleted("s1"))
    assert outcome.deleted_cutouts == ["c1"]
    assert not outcome.ok
    assert "c1" not in mgr.cutouts


def test_failed_insert_is_reported_and_leaves_nothing_behind() -> None:
    repo, mgr = _setup("s1")
    repo.fail_inserts = True
    outcome = asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1"]))
    assert not outcome.ok
    assert outcome.cutout is None
    assert "insert failed" in outcome.failed["cutout"]
    assert outcome.updated == []
    assert mgr.cutouts == {}
    assert mgr.surfaces["s1"].cutout_ids == ()
    assert repo.writes == []


def test_clipping_failure_keeps_original_value_with_advisory() -> None:
    repo, mgr = _setup("s1", "s2")
    bowtie = [(0, 0), (4, 4), (4, 0), (0, 4)]
    outcome = asyncio.run(mgr.create_cutout("p1", "polygon", bowtie, ["s1", "s2"]))
    assert outcome.ok
    assert set(outcome.advisories) == {"s1", "s2"}
    assert repo.surfaces["s1"].net_value == pytest.approx(100.0)
    assert repo.surfaces["s1"].cutout_ids == ("c1",)


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({"plan_id": "", "shape_kind": "polygon", "ring": _rect(1, 1, 2, 2), "target_surface_ids": ["s1"]}, "plan"),
        ({"plan_id": "p1", "shape_kind": "circle", "ring": _rect(1, 1, 2, 2), "target_surface_ids": ["s1"]}, "shape"),
        ({"plan_id": "p1", "shape_kind": "polygon", "ring": [(0, 0), (1, 1)], "target_surface_ids": ["s1"]}, "3 distinct"),
        ({"plan_id": "p1", "shape_kind": "polygon", "ring": _rect(1, 1, 2, 2), "target_surface_ids": []}, "target"),
        ({"plan_id": "p1", "shape_kind": "polygon", "ring": _rect(1, 1, 2, 2), "target_surface_ids": ["zz"]}, "exist"),
    ],
)
def test_create_cutout_rejects_bad_requests(kwargs: dict, match: str) -> None:
    repo, mgr = _setup("s1")
    with pytest.raises(CutoutError, match=match):
        asyncio.run(mgr.create_cutout(**kwargs))
    assert repo.writes == []


def test_unknown_targets_are_skipped_with_advisory() -> None:
    _, mgr = _setup("s1")
    outcome = asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1", "ghost"]))
    assert outcome.updated == ["s1"]
    assert "ghost" in outcome.advisories


def test_commit_draft_and_cancelled_draft() -> None:
    repo, mgr = _setup("s1")
    cancelled = CutoutDraft.start("p1", source_surface_id="s1")
    cancelled.select_shape("rectangle")
    cancelled.finish_drawing([(1, 1), (2, 2)])
    cancelled.cancel()
    assert repo.writes == []
    assert mgr.cutouts == {}

    draft = CutoutDraft.start("p1", source_surface_id="s1")
    draft.select_shape("rectangle")
    draft.finish_drawing([(2, 2), (4, 4)])
    outcome = asyncio.run(mgr.commit_draft(draft))
    assert outcome.cutout is not None and outcome.cutout.shape_kind == "rectangle"
    assert repo.surfaces["s1"].net_value == pytest.approx(96.0)


def test_commit_draft_without_shape_is_rejected() -> None:
    _, mgr = _setup("s1")
    with pytest.raises(CutoutError, match="no shape"):
        asyncio.run(mgr.commit_draft(CutoutDraft.start("p1", source_surface_id="s1")))


def test_clipped_geometry_and_overlap_helpers() -> None:
    _, mgr = _setup("s1")
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(8, 8, 12, 12), ["s1"]))
    geom = mgr.clipped_geometry("s1")
    assert geom.area == pytest.approx(96.0)
    assert mgr.clipped_geometry("s1") is geom
    assert mgr.overlap("s1", "c1") == pytest.approx(4.0)
    with pytest.raises(CutoutError, match="Unknown surface"):
        mgr.clipped_geometry("nope")


def test_invariant_reports_can_be_disabled() -> None:
    _, mgr = _setup("s1", settings=CutoutSettings(validate_invariants=False))
    outcome = asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1"]))
    assert outcome.reports == []


class _SlowInsertRepository(InMemoryRepository):
    async def insert_cutout(self, cutout):
        await asyncio.sleep(0)
        return await super().insert_cutout(cutout)


def test_interleaved_creates_get_distinct_sequential_names() -> None:
    repo = _SlowInsertRepository(surfaces=[new_surface("s1", SQUARE, plan_id="p1")])
    ids = (f"c{i}" for i in itertools.count(1))
    mgr = CutoutLifecycleManager(repo, id_factory=lambda: next(ids), clock=_clock())
    asyncio.run(mgr.load("p1"))

    async def _both():
        return await asyncio.gather(
            mgr.create_cutout("p1", "rectangle", _rect(1, 1, 2, 2), ["s1"]),
            mgr.create_cutout("p1", "rectangle", _rect(6, 6, 7, 7), ["s1"]),
        )

    first, second = asyncio.run(_both())
    assert first.cutout is not None and second.cutout is not None
    assert sorted([first.cutout.name, second.cutout.name]) == ["./.01", "./.02"]
    assert mgr._reserved_names["p1"] == set()


def test_failed_insert_releases_reserved_name() -> None:
    repo, mgr = _setup("s1")
    repo.fail_inserts = True
    asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1"]))
    repo.fail_inserts = False
    outcome = asyncio.run(mgr.create_cutout("p1", "rectangle", _rect(2, 2, 4, 4), ["s1"]))
    assert outcome.cutout is not None
    assert outcome.cutout.name == "./.01"
