from datetime import date, datetime

import pytest

from chorely.exceptions import InsufficientPointsError, InvalidTransitionError, SetupError
from chorely.ledger import PointsLedger, next_family_reward, sorted_rewards
from chorely.models import Child, Family, FamilyReward
from chorely.ops import StructuredLogger
from chorely.persistence import MemoryRecordStore
from chorely.points import format_points


def _seeded_store(family_points: int = 0) -> MemoryRecordStore:
    store = MemoryRecordStore()
    store.put(Family(id="default", admin_pin="x", points=family_points))
    store.put(Child(id="ava", family_id="default", name="Ava"))
    store.put(Child(id="ben", family_id="default", name="Ben"))
    return store


def test_award_moves_child_and_family_in_lockstep() -> None:
    store = _seeded_store()
    logger = StructuredLogger()
    ledger = PointsLedger(logger=logger)

    with store.transaction() as uow:
        ledger.award_to_child_and_family(uow, "ava", 10, reason="dishes")
    with store.transaction() as uow:
        ledger.award_to_child_and_family(uow, "ben", "5", reason="bed")

    ava = store.get(Child, "ava")
    ben = store.get(Child, "ben")
    family = store.get(Family, "default")
    assert (ava.points, ava.total_points_earned) == (10, 10)
    assert (ben.points, ben.total_points_earned) == (5, 5)
    assert family.points == 15
    assert [entry["points"] for entry in logger.events("points_awarded")] == [10, 5]


def test_award_requires_a_family() -> None:
    store = MemoryRecordStore()
    store.put(Child(id="ava", family_id="default", name="Ava"))
    with pytest.raises(SetupError):
        with store.transaction() as uow:
            PointsLedger().award_to_child_and_family(uow, "ava", 10)
    assert store.get(Child, "ava").points == 0


def test_spending_only_touches_the_child_balance() -> None:
    store = _seeded_store()
    ledger = PointsLedger()
    with store.transaction() as uow:
        ledger.award_to_child_and_family(uow, "ava", 300)

    with store.transaction() as uow:
        ledger.spend_child_points(uow, uow.require(Child, "ava"), 200)

    ava = store.get(Child, "ava")
    assert ava.points == 100
    assert ava.total_points_earned == 300
    assert store.get(Family, "default").points == 300

    with pytest.raises(InsufficientPointsError):
        with store.transaction() as uow:
            ledger.spend_child_points(uow, uow.require(Child, "ava"), 101)
    assert store.get(Child, "ava").points == 100


def test_pizza_night_claim() -> None:
    store = _seeded_store(family_points=80)
    store.put(FamilyReward(id="pizza", family_id="default", description="Pizza Night", point_threshold=100))
    ledger = PointsLedger()
    moment = datetime(2024, 1, 5, 18, 0)

    with pytest.raises(InsufficientPointsError):
        with store.transaction() as uow:
            ledger.claim_family_reward(uow, uow.require(FamilyReward, "pizza"), at=moment)
    assert store.get(Family, "default").points == 80
    assert not store.get(FamilyReward, "pizza").claimed

    with store.transaction() as uow:
        ledger.award_to_child_and_family(uow, "ava", 20)
    with store.transaction() as uow:
        ledger.claim_family_reward(uow, uow.require(FamilyReward, "pizza"), at=moment)

    reward = store.get(FamilyReward, "pizza")
    assert reward.claimed
    assert reward.claimed_at == moment
    assert store.get(Family, "default").points == 0

    with pytest.raises(InvalidTransitionError):
        with store.transaction() as uow:
            ledger.claim_family_reward(uow, uow.require(FamilyReward, "pizza"), at=moment)

    with store.transaction() as uow:
        ledger.reset_family_reward(uow, uow.require(FamilyReward, "pizza"))
    reward = store.get(FamilyReward, "pizza")
    assert not reward.claimed
    assert reward.claimed_at is None


def test_streak_advances_once_per_day_without_moving_points() -> None:
    store = _seeded_store()
    ledger = PointsLedger(streak_every_days=7)

    streaks = []
    for offset in range(7):
        with store.transaction() as uow:
            streaks.append(ledger.record_streak_day(uow, "ava", date(2024, 1, 1 + offset)))
    assert streaks == [1, 2, 3, 4, 5, 6, 7]

    ava = store.get(Child, "ava")
    assert ava.current_streak == 7
    assert (ava.points, ava.total_points_earned) == (0, 0)
    assert store.get(Family, "default").points == 0

    with store.transaction() as uow:
        assert ledger.record_streak_day(uow, "ava", date(2024, 1, 7)) == 7
    assert store.get(Child, "ava").current_streak == 7

    with store.transaction() as uow:
        ledger.record_streak_day(uow, "ava", date(2024, 1, 10))
    assert store.get(Child, "ava").current_streak == 1


def test_streak_bonus_is_paid_once_per_milestone() -> None:
    store = _seeded_store()
    ledger = PointsLedger(streak_every_days=7)

    for offset in range(6):
        with store.transaction() as uow:
            ledger.record_streak_day(uow, "ava", date(2024, 1, 1 + offset))
    assert not ledger.streak_bonus_due(store.get(Child, "ava"))
    with pytest.raises(InvalidTransitionError):
        with store.transaction() as uow:
            ledger.award_streak_bonus(uow, "ava")

    with store.transaction() as uow:
        ledger.record_streak_day(uow, "ava", date(2024, 1, 7))
    assert ledger.streak_bonus_due(store.get(Child, "ava"))

    bonus = store.get(Family, "default").streak_bonus_points
    with store.transaction() as uow:
        ledger.award_streak_bonus(uow, "ava")
    ava = store.get(Child, "ava")
    assert (ava.points, ava.total_points_earned) == (bonus, bonus)
    assert ava.streak_bonus_paid_on == date(2024, 1, 7)
    assert store.get(Family, "default").points == bonus

    with pytest.raises(InvalidTransitionError):
        with store.transaction() as uow:
            ledger.award_streak_bonus(uow, "ava")
    assert store.get(Child, "ava").points == bonus


def test_reward_ordering_helpers() -> None:
    rewards = [
        FamilyReward(id="zoo", family_id="default", description="Zoo", point_threshold=500),
        FamilyReward(id="movie", family_id="default", description="Movie", point_threshold=150, claimed=True),
        FamilyReward(id="pizza", family_id="default", description="Pizza", point_threshold=200),
    ]
    assert [reward.id for reward in sorted_rewards(rewards)] == ["movie", "pizza", "zoo"]
    assert next_family_reward(rewards).id == "pizza"
    assert next_family_reward([]) is None


def test_format_points() -> None:
    assert format_points(1) == "1 pt"
    assert format_points(1250) == "1,250 pts"
