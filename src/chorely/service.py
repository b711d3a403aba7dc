"""High level service coordinating the family, its chores and its points."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from . import config
from .admin import AuditLog
from .avatar import AvatarStore, find_accessory, is_store_open, new_avatar_config
from .completions import CompletionWorkflow, archive_old_completions, pending_completions
from .exceptions import (
    AdminRequiredError,
    ChorelyError,
    InconsistentStateError,
    PartialVerificationError,
    RecordNotFoundError,
    SetupError,
    StorageError,
)
from .ledger import PointsLedger, next_family_reward, sorted_rewards
from .models import (
    STORED_MODELS,
    AppState,
    Child,
    Chore,
    ChoreAssignment,
    ChoreWithAssignment,
    Completion,
    Family,
    FamilyReward,
    PendingCompletion,
    PurchasedAccessory,
    SideQuest,
    SideQuestStatus,
    StoreSchedule,
    TimePeriod,
    new_id,
    period_set,
    weekday_set,
)
from .ops import StructuredLogger
from .persistence import RecordStore, UnitOfWork
from .points import PointsLike, require_positive, to_points
from .quests import SideQuestWorkflow
from .security import AdminGate, hash_pin, is_valid_pin_format, verify_pin
from .timewindows import active_period, day_of_week, default_time_periods, validate_period
from .visibility import all_today_chores, current_chores, daily_progress, todays_completions

Clock = Callable[[], datetime]


class ChoreChart:
    """Session-scoped application state for one family.

    Reads go straight to the record store; every change runs inside a unit of
    work so that multi-step updates (verify then award, purchase then dress
    the avatar, cascading deletes) are committed together or not at all.
    """

    __slots__ = (
        "_store",
        "_clock",
        "_admin",
        "_logger",
        "_audit_log",
        "_family_id",
        "_ledger",
        "_completions",
        "_quests",
        "_avatar_store",
    )

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Optional[Clock] = None,
        admin_gate: Optional[AdminGate] = None,
        logger: Optional[StructuredLogger] = None,
        family_id: str = config.DEFAULT_FAMILY_ID,
    ) -> None:
        self._store = store
        self._clock: Clock = clock or datetime.now
        self._admin = admin_gate or AdminGate()
        self._logger = logger or StructuredLogger(path=config.LOG_PATH, clock=self._clock)
        self._audit_log = AuditLog(family_id, clock=self._clock)
        self._family_id = family_id
        self._ledger = PointsLedger(family_id=family_id, logger=self._logger)
        self._completions = CompletionWorkflow(self._ledger, logger=self._logger)
        self._quests = SideQuestWorkflow(self._ledger, logger=self._logger)
        self._avatar_store = AvatarStore(self._ledger, logger=self._logger)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _now(self, at: Optional[datetime] = None) -> datetime:
        return at or self._clock()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[UnitOfWork]:
        try:
            with self._store.transaction() as uow:
                yield uow
        except InconsistentStateError as exc:
            self._logger.log("inconsistent_state", action=action, error=str(exc))
            raise
        except StorageError as exc:
            self._logger.log("storage_error", action=action, error=str(exc))
            raise

    def _require_admin(self, action: str, at: Optional[datetime] = None) -> datetime:
        moment = self._now(at)
        if not self._admin.is_authenticated(at=moment):
            raise AdminRequiredError(f"Admin authentication is required to {action}.")
        self._admin.touch(at=moment)
        return moment

    def _audit(self, action: str, target: str, moment: datetime, **details: Any) -> None:
        self._audit_log.record(action, target, at=moment, details=details)

    def _require(self, model: type, record_id: str) -> Any:
        record = self._store.get(model, record_id)
        if record is None:
            raise RecordNotFoundError(f"{model.__name__} '{record_id}' does not exist.")
        return record

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    # ------------------------------------------------------------------
    # Setup and family settings
    # ------------------------------------------------------------------
    def is_initialized(self) -> bool:
        state = self._store.get(AppState, "app")
        return bool(state and state.initialized)

    def setup_family(
        self,
        pin: str,
        child_names: Sequence[str] = (),
        *,
        streak_bonus_points: int = config.DEFAULT_STREAK_BONUS_POINTS,
        at: Optional[datetime] = None,
    ) -> Family:
        """Create the family, its default time periods and any initial children."""

        if self.is_initialized():
            raise SetupError("The family has already been set up.")
        if not is_valid_pin_format(pin):
            raise ValueError("Admin PIN must be exactly four digits.")
        moment = self._now(at)
        family = Family(
            id=self._family_id,
            admin_pin=hash_pin(pin),
            streak_bonus_points=streak_bonus_points,
            created_at=moment,
        )
        with self._transaction("setup_family") as uow:
            uow.put(family)
            for period in default_time_periods(family.id):
                uow.put(period)
            for name in child_names:
                uow.put(self._new_child(name, at=moment))
            uow.put(AppState(initialized=True, setup_completed_at=moment))
        self._logger.log("family_created", family=family.id, children=len(child_names))
        return family

    def family(self) -> Family:
        family = self._store.get(Family, self._family_id)
        if family is None:
            raise SetupError("Family has not been set up yet.")
        return family

    def update_family_settings(self, *, streak_bonus_points: int, at: Optional[datetime] = None) -> Family:
        moment = self._require_admin("change family settings", at)
        bonus = require_positive(to_points(streak_bonus_points), allow_zero=True)
        with self._transaction("update_family_settings") as uow:
            family = self._ledger.family(uow)
            family.streak_bonus_points = bonus
            uow.put(family)
        self._audit("update_settings", family.id, moment, streak_bonus_points=bonus)
        return family

    def change_admin_pin(self, current_pin: str, new_pin: str, *, at: Optional[datetime] = None) -> None:
        moment = self._require_admin("change the admin PIN", at)
        family = self.family()
        if not verify_pin(current_pin, family.admin_pin):
            raise PermissionError("Current PIN is incorrect.")
        if not is_valid_pin_format(new_pin):
            raise ValueError("New PIN must be exactly four digits.")
        family.admin_pin = hash_pin(new_pin)
        with self._transaction("change_admin_pin") as uow:
            uow.put(family)
        self._audit("change_pin", family.id, moment)

    def clear_all_data(self, *, at: Optional[datetime] = None) -> None:
        """Wipe every record. Asking the user to confirm is the caller's job."""

        moment = self._require_admin("reset all data", at)
        self._store.clear()
        self._admin.lock()
        self._audit("clear_all_data", self._family_id, moment)
        self._logger.log("data_cleared")

    # ------------------------------------------------------------------
    # Admin session
    # ------------------------------------------------------------------
    def unlock_admin(self, pin: str, *, at: Optional[datetime] = None) -> bool:
        moment = self._now(at)
        unlocked = self._admin.unlock(pin, self.family().admin_pin, at=moment)
        self._logger.log("admin_unlock", success=unlocked)
        return unlocked

    def lock_admin(self) -> None:
        self._admin.lock()

    def admin_authenticated(self, *, at: Optional[datetime] = None) -> bool:
        return self._admin.is_authenticated(at=self._now(at))

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------
    def _new_child(self, name: str, *, at: datetime, avatar_config: Optional[Mapping[str, Any]] = None) -> Child:
        return Child(
            id=new_id(),
            family_id=self._family_id,
            name=name.strip(),
            avatar_config=dict(avatar_config or new_avatar_config()),
            created_at=at,
        )

    def children(self) -> List[Child]:
        return self._store.list(Child)

    def child(self, child_id: str) -> Child:
        return self._require(Child, child_id)

    def add_child(self, name: str, *, avatar_config: Optional[Mapping[str, Any]] = None, at: Optional[datetime] = None) -> Child:
        moment = self._require_admin("add a child", at)
        child = self._new_child(name, at=moment, avatar_config=avatar_config)
        with self._transaction("add_child") as uow:
            uow.put(child)
        self._audit("add_child", child.id, moment, name=child.name)
        return child

    def update_child(
        self,
        child_id: str,
        *,
        name: Optional[str] = None,
        avatar_config: Optional[Mapping[str, Any]] = None,
        at: Optional[datetime] = None,
    ) -> Child:
        moment = self._require_admin("edit a child", at)
        with self._transaction("update_child") as uow:
            child = uow.require(Child, child_id)
            if name is not None:
                if not name.strip():
                    raise ValueError("Child name cannot be empty.")
                child.name = name.strip()
            if avatar_config is not None:
                child.avatar_config = dict(avatar_config)
            uow.put(child)
        self._audit("update_child", child.id, moment)
        return child

    def delete_child(self, child_id: str, *, at: Optional[datetime] = None) -> None:
        """Delete a child together with their assignments and completions."""

        moment = self._require_admin("delete a child", at)
        with self._transaction("delete_child") as uow:
            uow.require(Child, child_id)
            assignments = [item for item in uow.list(ChoreAssignment) if item.child_id == child_id]
            completions = [item for item in uow.list(Completion) if item.child_id == child_id]
            for assignment in assignments:
                uow.remove(ChoreAssignment, assignment.id)
            for completion in completions:
                uow.remove(Completion, completion.id)
            uow.remove(Child, child_id)
        self._audit(
            "delete_child",
            child_id,
            moment,
            assignments=len(assignments),
            completions=len(completions),
        )
        self._logger.log("child_deleted", child=child_id, assignments=len(assignments), completions=len(completions))

    # ------------------------------------------------------------------
    # Chores and assignments
    # ------------------------------------------------------------------
    def chores(self) -> List[Chore]:
        return self._store.list(Chore)

    def chore(self, chore_id: str) -> Chore:
        return self._require(Chore, chore_id)

    def add_chore(self, name: str, point_value: PointsLike, *, icon: str = "", at: Optional[datetime] = None) -> Chore:
        moment = self._require_admin("add a chore", at)
        chore = Chore(
            id=new_id(),
            family_id=self._family_id,
            name=name.strip(),
            icon=icon,
            point_value=to_points(point_value),
            created_at=moment,
        )
        with self._transaction("add_chore") as uow:
            uow.put(chore)
        self._audit("add_chore", chore.id, moment, name=chore.name, points=chore.point_value)
        return chore

    def update_chore(
        self,
        chore_id: str,
        *,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        point_value: Optional[PointsLike] = None,
        at: Optional[datetime] = None,
    ) -> Chore:
        moment = self._require_admin("edit a chore", at)
        with self._transaction("update_chore") as uow:
            chore = uow.require(Chore, chore_id)
            if name is not None:
                if not name.strip():
                    raise ValueError("Chore name cannot be empty.")
                chore.name = name.strip()
            if icon is not None:
                chore.icon = icon
            if point_value is not None:
                chore.point_value = require_positive(to_points(point_value))
            uow.put(chore)
        self._audit("update_chore", chore.id, moment)
        return chore

    def delete_chore(self, chore_id: str, *, at: Optional[datetime] = None) -> None:
        """Delete a chore and its assignments; past completions keep their chore id."""

        moment = self._require_admin("delete a chore", at)
        with self._transaction("delete_chore") as uow:
            uow.require(Chore, chore_id)
            assignments = [item for item in uow.list(ChoreAssignment) if item.chore_id == chore_id]
            for assignment in assignments:
                uow.remove(ChoreAssignment, assignment.id)
            uow.remove(Chore, chore_id)
        self._audit("delete_chore", chore_id, moment, assignments=len(assignments))
        self._logger.log("chore_deleted", chore=chore_id, assignments=len(assignments))

    def assignments(self, child_id: Optional[str] = None) -> List[ChoreAssignment]:
        items = self._store.list(ChoreAssignment)
        if child_id is None:
            return items
        return [item for item in items if item.child_id == child_id]

    def assign_chore(
        self,
        chore_id: str,
        child_id: str,
        *,
        days: Iterable[int],
        periods: Iterable[str],
        at: Optional[datetime] = None,
    ) -> ChoreAssignment:
        moment = self._require_admin("assign a chore", at)
        assignment = ChoreAssignment(
            id=new_id(),
            family_id=self._family_id,
            chore_id=chore_id,
            child_id=child_id,
            days_of_week=weekday_set(days),
            time_periods=period_set(periods),
            created_at=moment,
        )
        if not assignment.days_of_week or not assignment.time_periods:
            raise ValueError("An assignment needs at least one day and one time period.")
        with self._transaction("assign_chore") as uow:
            uow.require(Chore, chore_id)
            uow.require(Child, child_id)
            uow.put(assignment)
        self._audit("assign_chore", assignment.id, moment, chore=chore_id, child=child_id)
        return assignment

    def update_assignment(
        self,
        assignment_id: str,
        *,
        days: Optional[Iterable[int]] = None,
        periods: Optional[Iterable[str]] = None,
        at: Optional[datetime] = None,
    ) -> ChoreAssignment:
        moment = self._require_admin("edit an assignment", at)
        with self._transaction("update_assignment") as uow:
            assignment = uow.require(ChoreAssignment, assignment_id)
            if days is not None:
                assignment.days_of_week = weekday_set(days)
            if periods is not None:
                assignment.time_periods = period_set(periods)
            if not assignment.days_of_week or not assignment.time_periods:
                raise ValueError("An assignment needs at least one day and one time period.")
            uow.put(assignment)
        self._audit("update_assignment", assignment_id, moment)
        return assignment

    def remove_assignment(self, assignment_id: str, *, at: Optional[datetime] = None) -> None:
        moment = self._require_admin("remove an assignment", at)
        with self._transaction("remove_assignment") as uow:
            uow.require(ChoreAssignment, assignment_id)
            uow.remove(ChoreAssignment, assignment_id)
        self._audit("remove_assignment", assignment_id, moment)

    # ------------------------------------------------------------------
    # Time periods and visibility
    # ------------------------------------------------------------------
    def time_periods(self) -> List[TimePeriod]:
        return self._store.list(TimePeriod)

    def save_time_periods(self, periods: Sequence[TimePeriod], *, at: Optional[datetime] = None) -> List[TimePeriod]:
        moment = self._require_admin("change time periods", at)
        for period in periods:
            validate_period(period)
        with self._transaction("save_time_periods") as uow:
            for existing in uow.list(TimePeriod):
                uow.remove(TimePeriod, existing.id)
            for period in periods:
                uow.put(period)
        self._audit("save_time_periods", self._family_id, moment, count=len(periods))
        return list(periods)

    def reset_time_periods(self, *, at: Optional[datetime] = None) -> List[TimePeriod]:
        return self.save_time_periods(default_time_periods(self._family_id), at=at)

    def active_period(self, *, at: Optional[datetime] = None) -> Optional[TimePeriod]:
        return active_period(self._now(at), self.time_periods())

    def _today_inputs(self, moment: datetime) -> Tuple[List[ChoreAssignment], List[Chore], List[Completion]]:
        return (
            self._store.list(ChoreAssignment),
            self._store.list(Chore),
            todays_completions(self._store.list(Completion), moment),
        )

    def current_chores(self, child_id: str, *, at: Optional[datetime] = None) -> List[ChoreWithAssignment]:
        """Chores the child can act on in the time period active at ``at``."""

        moment = self._now(at)
        assignments, chores, completions = self._today_inputs(moment)
        return current_chores(
            child_id,
            assignments,
            chores,
            completions,
            day_of_week(moment),
            active_period(moment, self.time_periods()),
        )

    def all_today_chores(self, child_id: str, *, at: Optional[datetime] = None) -> List[ChoreWithAssignment]:
        moment = self._now(at)
        assignments, chores, completions = self._today_inputs(moment)
        return all_today_chores(child_id, assignments, chores, completions, day_of_week(moment))

    def daily_progress(self, child_id: str, *, at: Optional[datetime] = None) -> Tuple[int, int]:
        return daily_progress(self.all_today_chores(child_id, at=at))

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------
    def completions(self, child_id: Optional[str] = None) -> List[Completion]:
        items = self._store.list(Completion)
        if child_id is None:
            return items
        return [item for item in items if item.child_id == child_id]

    def mark_complete(self, assignment_id: str, *, at: Optional[datetime] = None) -> Completion:
        moment = self._now(at)
        with self._transaction("mark_complete") as uow:
            assignment = uow.require(ChoreAssignment, assignment_id)
            return self._completions.mark_complete(uow, assignment, at=moment)

    def mark_incomplete(self, completion_id: str) -> bool:
        with self._transaction("mark_incomplete") as uow:
            completion = uow.require(Completion, completion_id)
            return self._completions.mark_incomplete(uow, completion)

    def toggle_chore(self, assignment_id: str, *, at: Optional[datetime] = None) -> Optional[Completion]:
        """Check or uncheck a chore row: returns the new completion, or ``None`` once unmarked.

        Verified completions stay in place and are returned unchanged.
        """

        moment = self._now(at)
        with self._transaction("toggle_chore") as uow:
            existing = self._completions.completion_for(uow, assignment_id, at=moment)
            if existing is None:
                assignment = uow.require(ChoreAssignment, assignment_id)
                return self._completions.mark_complete(uow, assignment, at=moment)
            if self._completions.mark_incomplete(uow, existing):
                return None
            return existing

    def verify_completion(
        self,
        completion_id: str,
        *,
        awarded_points: Optional[PointsLike] = None,
        at: Optional[datetime] = None,
    ) -> Completion:
        moment = self._require_admin("verify a chore", at)
        with self._transaction("verify_completion") as uow:
            completion = uow.require(Completion, completion_id)
            self._completions.verify(uow, completion, awarded_points=awarded_points, at=moment)
        self._audit(
            "verify_completion",
            completion.id,
            moment,
            status=completion.status.value,
            points=completion.points_awarded,
        )
        return completion

    def reject_completion(self, completion_id: str, *, at: Optional[datetime] = None) -> None:
        moment = self._require_admin("reject a chore", at)
        with self._transaction("reject_completion") as uow:
            completion = uow.require(Completion, completion_id)
            self._completions.reject(uow, completion)
        self._audit("reject_completion", completion_id, moment, child=completion.child_id)

    def pending_completions(self) -> List[PendingCompletion]:
        with self._store.transaction() as uow:
            return pending_completions(uow)

    def verify_all(self, *, at: Optional[datetime] = None) -> List[Completion]:
        """Verify every pending completion with its chore's default points.

        Each completion is committed on its own. A failure stops the run and
        raises :class:`PartialVerificationError`; earlier verifications stay.
        """

        moment = self._require_admin("verify chores", at)
        pending_ids = [item.completion.id for item in self.pending_completions()]
        verified: List[Completion] = []
        for index, completion_id in enumerate(pending_ids):
            try:
                verified.append(self.verify_completion(completion_id, at=moment))
            except ChorelyError as exc:
                remaining = pending_ids[index:]
                self._logger.log(
                    "verify_all_partial",
                    verified=len(verified),
                    remaining=len(remaining),
                    error=str(exc),
                )
                raise PartialVerificationError(
                    f"Verified {len(verified)} of {len(pending_ids)} completions before failing: {exc}",
                    verified=[item.id for item in verified],
                    remaining=remaining,
                ) from exc
        return verified

    def archive_old_completions(self, before: datetime, *, at: Optional[datetime] = None) -> int:
        moment = self._require_admin("archive completions", at)
        with self._transaction("archive_old_completions") as uow:
            archived = archive_old_completions(uow, before=before, at=moment)
        self._logger.log("completions_archived", count=archived, before=before.isoformat())
        return archived

    # ------------------------------------------------------------------
    # Side quests
    # ------------------------------------------------------------------
    def side_quests(self, child_id: Optional[str] = None, *, status: Optional[SideQuestStatus] = None) -> List[SideQuest]:
        children = {child.id for child in self.children()}
        quests = [quest for quest in self._store.list(SideQuest) if quest.child_id in children]
        if child_id is not None:
            quests = [quest for quest in quests if quest.child_id == child_id]
        if status is not None:
            quests = [quest for quest in quests if quest.status is status]
        return quests

    def pending_side_quests(self) -> List[SideQuest]:
        return self.side_quests(status=SideQuestStatus.PENDING_VERIFICATION)

    def add_side_quest(
        self,
        child_id: str,
        name: str,
        point_value: PointsLike,
        *,
        icon: str = "",
        description: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> SideQuest:
        moment = self._require_admin("add a side quest", at)
        quest = SideQuest(
            id=new_id(),
            family_id=self._family_id,
            child_id=child_id,
            name=name.strip(),
            icon=icon,
            point_value=to_points(point_value),
            description=(description or "").strip() or None,
            created_at=moment,
        )
        with self._transaction("add_side_quest") as uow:
            uow.require(Child, child_id)
            uow.put(quest)
        self._audit("add_side_quest", quest.id, moment, child=child_id, points=quest.point_value)
        return quest

    def update_side_quest(
        self,
        quest_id: str,
        *,
        child_id: Optional[str] = None,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        point_value: Optional[PointsLike] = None,
        description: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> SideQuest:
        """Edit a side quest. Edits are accepted whatever the quest's status."""

        moment = self._require_admin("edit a side quest", at)
        with self._transaction("update_side_quest") as uow:
            quest = uow.require(SideQuest, quest_id)
            if child_id is not None:
                uow.require(Child, child_id)
                quest.child_id = child_id
            if name is not None:
                if not name.strip():
                    raise ValueError("Side quest name cannot be empty.")
                quest.name = name.strip()
            if icon is not None:
                quest.icon = icon
            if point_value is not None:
                quest.point_value = require_positive(to_points(point_value))
            if description is not None:
                quest.description = description.strip() or None
            uow.put(quest)
        self._audit("update_side_quest", quest_id, moment, status=quest.status.value)
        return quest

    def remove_side_quest(self, quest_id: str, *, at: Optional[datetime] = None) -> None:
        moment = self._require_admin("delete a side quest", at)
        with self._transaction("remove_side_quest") as uow:
            uow.require(SideQuest, quest_id)
            uow.remove(SideQuest, quest_id)
        self._audit("remove_side_quest", quest_id, moment)

    def mark_quest_done(self, quest_id: str, *, at: Optional[datetime] = None) -> SideQuest:
        moment = self._now(at)
        with self._transaction("mark_quest_done") as uow:
            quest = uow.require(SideQuest, quest_id)
            return self._quests.mark_done(uow, quest, at=moment)

    def unmark_quest(self, quest_id: str) -> SideQuest:
        with self._transaction("unmark_quest") as uow:
            quest = uow.require(SideQuest, quest_id)
            return self._quests.unmark(uow, quest)

    def verify_side_quest(self, quest_id: str, *, at: Optional[datetime] = None) -> SideQuest:
        moment = self._require_admin("verify a side quest", at)
        with self._transaction("verify_side_quest") as uow:
            quest = uow.require(SideQuest, quest_id)
            self._quests.verify(uow, quest, at=moment)
        self._audit("verify_side_quest", quest_id, moment, points=quest.point_value)
        return quest

    def reject_side_quest(self, quest_id: str, *, at: Optional[datetime] = None) -> SideQuest:
        moment = self._require_admin("reject a side quest", at)
        with self._transaction("reject_side_quest") as uow:
            quest = uow.require(SideQuest, quest_id)
            self._quests.reject(uow, quest)
        self._audit("reject_side_quest", quest_id, moment)
        return quest

    # ------------------------------------------------------------------
    # Family rewards
    # ------------------------------------------------------------------
    def family_rewards(self) -> List[FamilyReward]:
        return sorted_rewards(self._store.list(FamilyReward))

    def next_family_reward(self) -> Optional[FamilyReward]:
        return next_family_reward(self._store.list(FamilyReward))

    def add_family_reward(self, description: str, point_threshold: PointsLike, *, at: Optional[datetime] = None) -> FamilyReward:
        moment = self._require_admin("add a family reward", at)
        reward = FamilyReward(
            id=new_id(),
            family_id=self._family_id,
            description=description.strip(),
            point_threshold=to_points(point_threshold),
            created_at=moment,
        )
        with self._transaction("add_family_reward") as uow:
            uow.put(reward)
        self._audit("add_family_reward", reward.id, moment, threshold=reward.point_threshold)
        return reward

    def update_family_reward(
        self,
        reward_id: str,
        *,
        description: Optional[str] = None,
        point_threshold: Optional[PointsLike] = None,
        at: Optional[datetime] = None,
    ) -> FamilyReward:
        moment = self._require_admin("edit a family reward", at)
        with self._transaction("update_family_reward") as uow:
            reward = uow.require(FamilyReward, reward_id)
            if description is not None:
                if not description.strip():
                    raise ValueError("Reward description cannot be empty.")
                reward.description = description.strip()
            if point_threshold is not None:
                reward.point_threshold = require_positive(to_points(point_threshold))
            uow.put(reward)
        self._audit("update_family_reward", reward_id, moment)
        return reward

    def remove_family_reward(self, reward_id: str, *, at: Optional[datetime] = None) -> None:
        moment = self._require_admin("delete a family reward", at)
        with self._transaction("remove_family_reward") as uow:
            uow.require(FamilyReward, reward_id)
            uow.remove(FamilyReward, reward_id)
        self._audit("remove_family_reward", reward_id, moment)

    def claim_family_reward(self, reward_id: str, *, at: Optional[datetime] = None) -> FamilyReward:
        moment = self._require_admin("claim a family reward", at)
        with self._transaction("claim_family_reward") as uow:
            reward = uow.require(FamilyReward, reward_id)
            self._ledger.claim_family_reward(uow, reward, at=moment)
        self._audit("claim_family_reward", reward_id, moment, threshold=reward.point_threshold)
        return reward

    def reset_family_reward(self, reward_id: str, *, at: Optional[datetime] = None) -> FamilyReward:
        moment = self._require_admin("reset a family reward", at)
        with self._transaction("reset_family_reward") as uow:
            reward = uow.require(FamilyReward, reward_id)
            self._ledger.reset_family_reward(uow, reward)
        self._audit("reset_family_reward", reward_id, moment)
        return reward

    def award_streak_bonus(self, child_id: str, *, at: Optional[datetime] = None) -> Child:
        """Pay the streak bonus once the child's streak reaches a milestone."""

        moment = self._require_admin("award a streak bonus", at)
        with self._transaction("award_streak_bonus") as uow:
            child = self._ledger.award_streak_bonus(uow, child_id)
            bonus = self._ledger.family(uow).streak_bonus_points
        self._audit("award_streak_bonus", child_id, moment, streak=child.current_streak, points=bonus)
        return child

    def streak_bonus_due(self, child_id: str) -> bool:
        return self._ledger.streak_bonus_due(self._require(Child, child_id))

    # ------------------------------------------------------------------
    # Avatar store
    # ------------------------------------------------------------------
    def store_schedule(self) -> Optional[StoreSchedule]:
        return self._store.get(StoreSchedule, self._family_id)

    def set_store_schedule(
        self,
        *,
        days: Iterable[int],
        start_time: str,
        end_time: str,
        at: Optional[datetime] = None,
    ) -> StoreSchedule:
        moment = self._require_admin("change the store schedule", at)
        schedule = StoreSchedule(
            id=self._family_id,
            days_of_week=weekday_set(days),
            start_time=start_time,
            end_time=end_time,
        )
        validate_period(schedule)
        with self._transaction("set_store_schedule") as uow:
            uow.put(schedule)
        self._audit("set_store_schedule", schedule.id, moment, start=start_time, end=end_time)
        return schedule

    def is_store_open(self, *, at: Optional[datetime] = None) -> bool:
        return is_store_open(self.store_schedule(), self._now(at))

    def purchases(self, child_id: str) -> List[PurchasedAccessory]:
        return [item for item in self._store.list(PurchasedAccessory) if item.child_id == child_id]

    def owned_accessories(self, child_id: str) -> set[str]:
        return {item.accessory_id for item in self.purchases(child_id)}

    def choose_accessory(self, child_id: str, accessory_id: str, *, at: Optional[datetime] = None) -> Child:
        """Buy ``accessory_id`` for the child, or put it back on if already owned."""

        moment = self._now(at)
        accessory = find_accessory(accessory_id)
        with self._transaction("choose_accessory") as uow:
            child = uow.require(Child, child_id)
            if accessory.id in self._avatar_store.owned_accessory_ids(uow, child_id):
                return self._avatar_store.select_owned(uow, child, accessory)
            schedule = uow.get(StoreSchedule, self._family_id)
            self._avatar_store.purchase(uow, child, accessory, schedule, at=moment)
            return child

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, int]:
        """Record counts per kind, for diagnostics."""

        return {model.RECORD_KIND: len(self._store.list(model)) for model in STORED_MODELS}


__all__ = ["ChoreChart", "Clock"]
