"""Points ledger: the single place where child and family balances change."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from . import config
from .exceptions import InsufficientPointsError, InvalidTransitionError, SetupError
from .models import Child, Family, FamilyReward
from .ops import StructuredLogger
from .persistence import UnitOfWork
from .points import PointsLike, format_points, require_positive, to_points


class PointsLedger:
    """Apply point deltas to the individual and family ledgers.

    Individual balances and the family pool only ever move up together, via
    :meth:`award_to_child_and_family`. Individual balances go down only
    through purchases and the family pool only through reward claims.
    """

    def __init__(
        self,
        *,
        family_id: str = config.DEFAULT_FAMILY_ID,
        logger: Optional[StructuredLogger] = None,
        streak_every_days: int = config.STREAK_BONUS_EVERY_DAYS,
    ) -> None:
        self._family_id = family_id
        self._logger = logger or StructuredLogger()
        self._streak_every_days = streak_every_days

    def family(self, uow: UnitOfWork) -> Family:
        family = uow.get(Family, self._family_id)
        if family is None:
            raise SetupError("Family has not been set up yet.")
        return family

    # ------------------------------------------------------------------
    # Awards and spending
    # ------------------------------------------------------------------
    def award_to_child_and_family(self, uow: UnitOfWork, child_id: str, points: PointsLike, *, reason: str = "") -> Child:
        """Add ``points`` to the child's balance, lifetime total and the family pool."""

        amount = require_positive(to_points(points), allow_zero=True)
        child = uow.require(Child, child_id)
        family = self.family(uow)
        child.points += amount
        child.total_points_earned += amount
        family.points += amount
        uow.put(child)
        uow.put(family)
        uow.on_commit(
            self._logger.log,
            "points_awarded",
            child=child.id,
            points=amount,
            child_balance=child.points,
            family_balance=family.points,
            reason=reason,
        )
        return child

    def spend_child_points(self, uow: UnitOfWork, child: Child, points: PointsLike, *, reason: str = "") -> Child:
        amount = require_positive(to_points(points), allow_zero=True)
        if child.points < amount:
            raise InsufficientPointsError(
                f"{child.name} has {format_points(child.points)} but {format_points(amount)} are needed."
            )
        child.points -= amount
        uow.put(child)
        uow.on_commit(self._logger.log, "points_spent", child=child.id, points=amount, child_balance=child.points, reason=reason)
        return child

    # ------------------------------------------------------------------
    # Family rewards
    # ------------------------------------------------------------------
    def claim_family_reward(self, uow: UnitOfWork, reward: FamilyReward, *, at: datetime) -> FamilyReward:
        if reward.claimed:
            raise InvalidTransitionError(f"Reward '{reward.description}' has already been claimed.")
        family = self.family(uow)
        if family.points < reward.point_threshold:
            raise InsufficientPointsError(
                f"Family has {format_points(family.points)}; '{reward.description}' needs {format_points(reward.point_threshold)}."
            )
        family.points -= reward.point_threshold
        reward.claimed = True
        reward.claimed_at = at
        uow.put(family)
        uow.put(reward)
        uow.on_commit(
            self._logger.log,
            "reward_claimed",
            reward=reward.id,
            threshold=reward.point_threshold,
            family_balance=family.points,
        )
        return reward

    def reset_family_reward(self, uow: UnitOfWork, reward: FamilyReward) -> FamilyReward:
        reward.claimed = False
        reward.claimed_at = None
        uow.put(reward)
        uow.on_commit(self._logger.log, "reward_reset", reward=reward.id)
        return reward

    # ------------------------------------------------------------------
    # Streaks
    # ------------------------------------------------------------------
    def record_streak_day(self, uow: UnitOfWork, child_id: str, day: date) -> int:
        """Count ``day`` towards the child's streak and return the streak length.

        Counting never moves points; milestone bonuses are paid separately
        through :meth:`award_streak_bonus`.
        """

        child = uow.require(Child, child_id)
        previous = child.last_streak_date
        if previous is not None and previous >= day:
            return child.current_streak
        if previous is not None and day - previous == timedelta(days=1):
            child.current_streak += 1
        else:
            child.current_streak = 1
        child.last_streak_date = day
        uow.put(child)
        uow.on_commit(self._logger.log, "streak_advanced", child=child.id, streak=child.current_streak, day=day.isoformat())
        return child.current_streak

    def streak_bonus_due(self, child: Child) -> bool:
        if child.current_streak <= 0 or child.current_streak % self._streak_every_days != 0:
            return False
        return child.streak_bonus_paid_on != child.last_streak_date

    def award_streak_bonus(self, uow: UnitOfWork, child_id: str) -> Child:
        """Pay the family's streak bonus for the child's current milestone."""

        child = uow.require(Child, child_id)
        if not self.streak_bonus_due(child):
            raise InvalidTransitionError(
                f"No streak bonus is due for '{child.name}' at a {child.current_streak} day streak."
            )
        bonus = self.family(uow).streak_bonus_points
        child = self.award_to_child_and_family(uow, child.id, bonus, reason=f"{child.current_streak} day streak")
        child.streak_bonus_paid_on = child.last_streak_date
        uow.put(child)
        return child


def next_family_reward(rewards: Iterable[FamilyReward]) -> Optional[FamilyReward]:
    """Return the unclaimed reward with the lowest threshold."""

    unclaimed = sorted((reward for reward in rewards if not reward.claimed), key=lambda reward: reward.point_threshold)
    return unclaimed[0] if unclaimed else None


def sorted_rewards(rewards: Iterable[FamilyReward]) -> list[FamilyReward]:
    return sorted(rewards, key=lambda reward: reward.point_threshold)


__all__ = ["PointsLedger", "next_family_reward", "sorted_rewards"]
