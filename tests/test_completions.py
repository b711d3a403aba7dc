from datetime import datetime, timedelta

import pytest

from chorely.completions import CompletionWorkflow, archive_old_completions, pending_completions
from chorely.exceptions import InvalidTransitionError, RecordNotFoundError
from chorely.ledger import PointsLedger
from chorely.models import (
    Child,
    Chore,
    ChoreAssignment,
    Completion,
    CompletionStatus,
    Family,
    TimePeriodId,
    Weekday,
)
from chorely.ops import StructuredLogger
from chorely.persistence import MemoryRecordStore

MONDAY_EVENING = datetime(2024, 1, 1, 19, 0)


def _setup():
    store = MemoryRecordStore()
    store.put(Family(id="default", admin_pin="x"))
    store.put(Child(id="ava", family_id="default", name="Ava"))
    store.put(Chore(id="dishes", family_id="default", name="Dishes", icon="", point_value=10))
    store.put(
        ChoreAssignment(
            id="a-dishes",
            family_id="default",
            chore_id="dishes",
            child_id="ava",
            days_of_week={Weekday.MONDAY},
            time_periods={TimePeriodId.EVENING},
        )
    )
    logger = StructuredLogger()
    workflow = CompletionWorkflow(PointsLedger(logger=logger), logger=logger)
    return store, workflow, logger


def _mark(store, workflow, at=MONDAY_EVENING) -> Completion:
    with store.transaction() as uow:
        return workflow.mark_complete(uow, uow.require(ChoreAssignment, "a-dishes"), at=at)


def test_mark_creates_pending_completion() -> None:
    store, workflow, logger = _setup()

    completion = _mark(store, workflow)

    stored = store.get(Completion, completion.id)
    assert stored.status is CompletionStatus.PENDING
    assert stored.child_id == "ava"
    assert stored.chore_id == "dishes"
    assert stored.completed_at == MONDAY_EVENING
    assert stored.points_awarded is None
    assert store.get(Child, "ava").points == 0
    assert logger.events("completion_marked")


def test_mark_twice_on_the_same_day_is_rejected() -> None:
    store, workflow, _ = _setup()
    _mark(store, workflow)

    with pytest.raises(InvalidTransitionError):
        _mark(store, workflow, at=MONDAY_EVENING + timedelta(minutes=5))
    assert len(store.list(Completion)) == 1

    _mark(store, workflow, at=MONDAY_EVENING + timedelta(days=7))
    assert len(store.list(Completion)) == 2


def test_unmark_pending_deletes_it() -> None:
    store, workflow, _ = _setup()
    completion = _mark(store, workflow)

    with store.transaction() as uow:
        assert workflow.mark_incomplete(uow, uow.require(Completion, completion.id))

    assert store.list(Completion) == []
    assert store.get(Child, "ava").points == 0
    assert store.get(Family, "default").points == 0


def test_verify_awards_default_points_and_is_terminal() -> None:
    store, workflow, logger = _setup()
    completion = _mark(store, workflow)
    verified_at = MONDAY_EVENING + timedelta(minutes=30)

    with store.transaction() as uow:
        workflow.verify(uow, uow.require(Completion, completion.id), at=verified_at)

    stored = store.get(Completion, completion.id)
    assert stored.status is CompletionStatus.VERIFIED
    assert stored.points_awarded == 10
    assert stored.verified_at == verified_at
    ava = store.get(Child, "ava")
    assert (ava.points, ava.total_points_earned) == (10, 10)
    assert store.get(Family, "default").points == 10

    with pytest.raises(InvalidTransitionError):
        with store.transaction() as uow:
            workflow.verify(uow, uow.require(Completion, completion.id), at=verified_at)
    with pytest.raises(InvalidTransitionError):
        with store.transaction() as uow:
            workflow.reject(uow, uow.require(Completion, completion.id))

    with store.transaction() as uow:
        assert not workflow.mark_incomplete(uow, uow.require(Completion, completion.id))
    assert store.get(Completion, completion.id).status is CompletionStatus.VERIFIED
    assert store.get(Child, "ava").points == 10
    assert logger.events("completion_unmark_ignored")


def test_verify_with_adjusted_points() -> None:
    store, workflow, _ = _setup()
    completion = _mark(store, workflow)

    with store.transaction() as uow:
        workflow.verify(uow, uow.require(Completion, completion.id), awarded_points=4, at=MONDAY_EVENING)

    stored = store.get(Completion, completion.id)
    assert stored.status is CompletionStatus.ADJUSTED
    assert stored.points_awarded == 4
    assert store.get(Child, "ava").points == 4
    assert store.get(Family, "default").points == 4


def test_verify_with_deleted_chore_needs_explicit_points() -> None:
    store, workflow, _ = _setup()
    completion = _mark(store, workflow)
    store.remove(Chore, "dishes")

    with pytest.raises(RecordNotFoundError):
        with store.transaction() as uow:
            workflow.verify(uow, uow.require(Completion, completion.id), at=MONDAY_EVENING)
    assert store.get(Completion, completion.id).is_pending
    assert store.get(Child, "ava").points == 0


def test_reject_deletes_without_points() -> None:
    store, workflow, _ = _setup()
    completion = _mark(store, workflow)

    with store.transaction() as uow:
        workflow.reject(uow, uow.require(Completion, completion.id))

    assert store.get(Completion, completion.id) is None
    assert store.get(Child, "ava").points == 0


def test_verifying_the_whole_day_advances_the_streak() -> None:
    store, workflow, logger = _setup()
    completion = _mark(store, workflow)

    with store.transaction() as uow:
        workflow.verify(uow, uow.require(Completion, completion.id), at=MONDAY_EVENING)

    ava = store.get(Child, "ava")
    assert ava.current_streak == 1
    assert ava.last_streak_date == MONDAY_EVENING.date()
    assert logger.events("streak_advanced")


def test_pending_completions_newest_first_and_skip_orphans() -> None:
    store, workflow, _ = _setup()
    store.put(Child(id="ben", family_id="default", name="Ben"))
    store.put(
        ChoreAssignment(
            id="a-ben",
            family_id="default",
            chore_id="dishes",
            child_id="ben",
            days_of_week={Weekday.MONDAY},
            time_periods={TimePeriodId.EVENING},
        )
    )
    early = _mark(store, workflow, at=MONDAY_EVENING)
    with store.transaction() as uow:
        late = workflow.mark_complete(
            uow, uow.require(ChoreAssignment, "a-ben"), at=MONDAY_EVENING + timedelta(minutes=10)
        )

    with store.transaction() as uow:
        pending = pending_completions(uow)
    assert [item.completion.id for item in pending] == [late.id, early.id]
    assert pending[0].child.name == "Ben"
    assert pending[0].chore.name == "Dishes"

    store.remove(Child, "ben")
    with store.transaction() as uow:
        pending = pending_completions(uow)
    assert [item.completion.id for item in pending] == [early.id]


def test_archive_old_completions() -> None:
    store, workflow, _ = _setup()
    old = _mark(store, workflow, at=MONDAY_EVENING - timedelta(days=7))
    recent = _mark(store, workflow, at=MONDAY_EVENING)
    archived_at = MONDAY_EVENING + timedelta(hours=1)

    with store.transaction() as uow:
        count = archive_old_completions(uow, before=MONDAY_EVENING - timedelta(days=1), at=archived_at)

    assert count == 1
    assert store.get(Completion, old.id).archived_at == archived_at
    assert store.get(Completion, recent.id).archived_at is None
