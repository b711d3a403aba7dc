"""Completion workflow for scheduled chores: mark, unmark, verify and reject."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from .exceptions import InvalidTransitionError, RecordNotFoundError
from .ledger import PointsLedger
from .models import (
    Child,
    Chore,
    ChoreAssignment,
    Completion,
    CompletionStatus,
    PendingCompletion,
    new_id,
)
from .ops import StructuredLogger
from .persistence import UnitOfWork
from .points import PointsLike, require_positive, to_points
from .timewindows import date_key, day_of_week
from .visibility import all_today_chores, todays_completions


class CompletionWorkflow:
    """State machine for a single chore completion.

    ``none -> pending -> verified | adjusted``. Rejecting or unmarking a
    pending completion deletes it. Verified and adjusted are terminal.
    """

    def __init__(self, ledger: PointsLedger, *, logger: Optional[StructuredLogger] = None) -> None:
        self._ledger = ledger
        self._logger = logger or StructuredLogger()

    def completion_for(self, uow: UnitOfWork, assignment_id: str, *, at: datetime) -> Optional[Completion]:
        """Return the completion recorded for ``assignment_id`` on the day of ``at``."""

        key = date_key(at)
        for completion in uow.list(Completion):
            if (
                completion.assignment_id == assignment_id
                and completion.archived_at is None
                and date_key(completion.completed_at) == key
            ):
                return completion
        return None

    def mark_complete(self, uow: UnitOfWork, assignment: ChoreAssignment, *, at: datetime) -> Completion:
        existing = self.completion_for(uow, assignment.id, at=at)
        if existing is not None:
            raise InvalidTransitionError(
                f"Assignment '{assignment.id}' already has a {existing.status.value} completion today."
            )
        completion = Completion(
            id=new_id(),
            family_id=assignment.family_id,
            assignment_id=assignment.id,
            child_id=assignment.child_id,
            chore_id=assignment.chore_id,
            completed_at=at,
        )
        uow.put(completion)
        uow.on_commit(
            self._logger.log,
            "completion_marked",
            completion=completion.id,
            child=completion.child_id,
            chore=completion.chore_id,
        )
        return completion

    def mark_incomplete(self, uow: UnitOfWork, completion: Completion) -> bool:
        """Delete a pending completion. Verified work is left alone and ``False`` returned."""

        if not completion.is_pending:
            uow.on_commit(self._logger.log, "completion_unmark_ignored", completion=completion.id, status=completion.status.value)
            return False
        uow.remove(Completion, completion.id)
        uow.on_commit(self._logger.log, "completion_unmarked", completion=completion.id, child=completion.child_id)
        return True

    def verify(
        self,
        uow: UnitOfWork,
        completion: Completion,
        *,
        awarded_points: Optional[PointsLike] = None,
        at: datetime,
    ) -> Completion:
        if not completion.is_pending:
            raise InvalidTransitionError(
                f"Completion '{completion.id}' is {completion.status.value}; only pending completions can be verified."
            )
        if awarded_points is None:
            chore = uow.get(Chore, completion.chore_id)
            if chore is None:
                raise RecordNotFoundError(
                    f"Chore '{completion.chore_id}' no longer exists; provide the points to award."
                )
            points = chore.point_value
            status = CompletionStatus.VERIFIED
        else:
            points = require_positive(to_points(awarded_points), allow_zero=True)
            status = CompletionStatus.ADJUSTED

        completion.status = status
        completion.verified_at = at
        completion.points_awarded = points
        uow.put(completion)
        self._ledger.award_to_child_and_family(uow, completion.child_id, points, reason=f"chore {completion.chore_id}")
        uow.on_commit(
            self._logger.log,
            "completion_verified",
            completion=completion.id,
            child=completion.child_id,
            status=status.value,
            points=points,
        )
        self._advance_streak_if_day_complete(uow, completion)
        return completion

    def reject(self, uow: UnitOfWork, completion: Completion) -> None:
        if not completion.is_pending:
            raise InvalidTransitionError(
                f"Completion '{completion.id}' is {completion.status.value}; only pending completions can be rejected."
            )
        uow.remove(Completion, completion.id)
        uow.on_commit(self._logger.log, "completion_rejected", completion=completion.id, child=completion.child_id)

    def _advance_streak_if_day_complete(self, uow: UnitOfWork, completion: Completion) -> None:
        moment = completion.completed_at
        entries = all_today_chores(
            completion.child_id,
            uow.list(ChoreAssignment),
            uow.list(Chore),
            todays_completions(uow.list(Completion), moment),
            day_of_week(moment),
        )
        if entries and all(entry.completion is not None and entry.completion.is_final for entry in entries):
            self._ledger.record_streak_day(uow, completion.child_id, moment.date())


def pending_completions(uow: UnitOfWork) -> List[PendingCompletion]:
    """Pending completions joined to their child and chore, newest first.

    Completions whose child or chore is gone are left out.
    """

    children = {child.id: child for child in uow.list(Child)}
    chores = {chore.id: chore for chore in uow.list(Chore)}
    pending: List[PendingCompletion] = []
    for completion in uow.list(Completion):
        if not completion.is_pending:
            continue
        child = children.get(completion.child_id)
        chore = chores.get(completion.chore_id)
        if child is None or chore is None:
            continue
        pending.append(PendingCompletion(completion=completion, child=child, chore=chore))
    pending.sort(key=lambda item: item.completion.completed_at, reverse=True)
    return pending


def archive_old_completions(uow: UnitOfWork, *, before: datetime, at: datetime) -> int:
    archived = 0
    for completion in uow.list(Completion):
        if completion.archived_at is None and completion.completed_at < before:
            completion.archived_at = at
            uow.put(completion)
            archived += 1
    return archived


__all__ = ["CompletionWorkflow", "archive_old_completions", "pending_completions"]
