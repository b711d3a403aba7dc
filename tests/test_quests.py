from datetime import datetime

import pytest

from chorely.exceptions import InvalidTransitionError
from chorely.ledger import PointsLedger
from chorely.models import Child, Family, SideQuest, SideQuestStatus
from chorely.persistence import MemoryRecordStore
from chorely.quests import SideQuestWorkflow

MOMENT = datetime(2024, 1, 6, 10, 0)


def _setup():
    store = MemoryRecordStore()
    store.put(Family(id="default", admin_pin="x"))
    store.put(Child(id="ava", family_id="default", name="Ava"))
    store.put(
        SideQuest(
            id="garage",
            family_id="default",
            child_id="ava",
            name="Clean garage",
            icon="🧹",
            point_value=40,
            description="Sweep and sort the shelves",
        )
    )
    return store, SideQuestWorkflow(PointsLedger())


def _apply(store, action, **kwargs) -> SideQuest:
    with store.transaction() as uow:
        return action(uow, uow.require(SideQuest, "garage"), **kwargs)


def test_mark_and_unmark_round_trip() -> None:
    store, workflow = _setup()

    _apply(store, workflow.mark_done, at=MOMENT)
    quest = store.get(SideQuest, "garage")
    assert quest.status is SideQuestStatus.PENDING_VERIFICATION
    assert quest.completed_at == MOMENT

    _apply(store, workflow.unmark)
    quest = store.get(SideQuest, "garage")
    assert quest.status is SideQuestStatus.ACTIVE
    assert quest.completed_at is None
    assert store.get(Child, "ava").points == 0


def test_verify_awards_points_once() -> None:
    store, workflow = _setup()
    _apply(store, workflow.mark_done, at=MOMENT)

    _apply(store, workflow.verify, at=MOMENT)

    quest = store.get(SideQuest, "garage")
    assert quest.status is SideQuestStatus.COMPLETED
    assert quest.verified_at == MOMENT
    ava = store.get(Child, "ava")
    assert (ava.points, ava.total_points_earned) == (40, 40)
    assert store.get(Family, "default").points == 40

    for action, kwargs in ((workflow.verify, {"at": MOMENT}), (workflow.unmark, {}), (workflow.mark_done, {"at": MOMENT})):
        with pytest.raises(InvalidTransitionError):
            _apply(store, action, **kwargs)
    assert store.get(Child, "ava").points == 40


def test_reject_returns_quest_to_active() -> None:
    store, workflow = _setup()
    _apply(store, workflow.mark_done, at=MOMENT)

    _apply(store, workflow.reject)

    quest = store.get(SideQuest, "garage")
    assert quest.status is SideQuestStatus.ACTIVE
    assert quest.completed_at is None
    assert store.get(Family, "default").points == 0


def test_active_quest_cannot_be_verified() -> None:
    store, workflow = _setup()
    with pytest.raises(InvalidTransitionError):
        _apply(store, workflow.verify, at=MOMENT)
    with pytest.raises(InvalidTransitionError):
        _apply(store, workflow.reject)
