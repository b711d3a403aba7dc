"""Side quest workflow for one-off tasks outside the weekly schedule."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from .exceptions import InvalidTransitionError
from .ledger import PointsLedger
from .models import SideQuest, SideQuestStatus
from .ops import StructuredLogger
from .persistence import UnitOfWork


class SideQuestWorkflow:
    """Move side quests between active, pending verification and completed.

    Unlike scheduled completions a side quest is never deleted when a child
    takes it back; it cycles between active and pending verification until an
    admin verifies it.
    """

    def __init__(self, ledger: PointsLedger, *, logger: Optional[StructuredLogger] = None) -> None:
        self._ledger = ledger
        self._logger = logger or StructuredLogger()

    def _require_status(self, quest: SideQuest, status: SideQuestStatus, action: str) -> None:
        if quest.status is not status:
            raise InvalidTransitionError(
                f"Cannot {action} side quest '{quest.name}' while it is {quest.status.value}."
            )

    def mark_done(self, uow: UnitOfWork, quest: SideQuest, *, at: datetime) -> SideQuest:
        self._require_status(quest, SideQuestStatus.ACTIVE, "complete")
        quest.status = SideQuestStatus.PENDING_VERIFICATION
        quest.completed_at = at
        uow.put(quest)
        uow.on_commit(self._logger.log, "quest_marked", quest=quest.id, child=quest.child_id)
        return quest

    def unmark(self, uow: UnitOfWork, quest: SideQuest) -> SideQuest:
        self._require_status(quest, SideQuestStatus.PENDING_VERIFICATION, "unmark")
        quest.status = SideQuestStatus.ACTIVE
        quest.completed_at = None
        uow.put(quest)
        uow.on_commit(self._logger.log, "quest_unmarked", quest=quest.id, child=quest.child_id)
        return quest

    def verify(self, uow: UnitOfWork, quest: SideQuest, *, at: datetime) -> SideQuest:
        self._require_status(quest, SideQuestStatus.PENDING_VERIFICATION, "verify")
        quest.status = SideQuestStatus.COMPLETED
        quest.verified_at = at
        uow.put(quest)
        self._ledger.award_to_child_and_family(uow, quest.child_id, quest.point_value, reason=f"side quest {quest.id}")
        uow.on_commit(self._logger.log, "quest_verified", quest=quest.id, child=quest.child_id, points=quest.point_value)
        return quest

    def reject(self, uow: UnitOfWork, quest: SideQuest) -> SideQuest:
        self._require_status(quest, SideQuestStatus.PENDING_VERIFICATION, "reject")
        quest.status = SideQuestStatus.ACTIVE
        quest.completed_at = None
        uow.put(quest)
        uow.on_commit(self._logger.log, "quest_rejected", quest=quest.id, child=quest.child_id)
        return quest


__all__ = ["SideQuestWorkflow"]
