from datetime import datetime

import pytest

from chorely.avatar import (
    AvatarStore,
    CATEGORIES,
    accessories_for,
    apply_accessory,
    catalog,
    find_accessory,
    is_store_open,
)
from chorely.exceptions import InsufficientPointsError, InvalidTransitionError, RecordNotFoundError, StoreClosedError
from chorely.ledger import PointsLedger
from chorely.models import AccessoryCategory, Child, Family, PurchasedAccessory, StoreSchedule, Weekday
from chorely.persistence import MemoryRecordStore

SCHOOL_HOURS = StoreSchedule(
    id="default",
    days_of_week=frozenset(
        {Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY}
    ),
    start_time="09:00",
    end_time="17:00",
)
FRIDAY_NOON = datetime(2024, 1, 5, 12, 0)


def _setup(points: int = 300):
    store = MemoryRecordStore()
    store.put(Family(id="default", admin_pin="x", points=points))
    store.put(
        Child(
            id="ava",
            family_id="default",
            name="Ava",
            avatar_config={"seed": "ava", "top": ["bob"]},
            points=points,
            total_points_earned=points,
        )
    )
    return store, AvatarStore(PointsLedger())


def _buy(store, avatar_store, accessory_id, *, at=FRIDAY_NOON, schedule=SCHOOL_HOURS) -> PurchasedAccessory:
    with store.transaction() as uow:
        child = uow.require(Child, "ava")
        return avatar_store.purchase(uow, child, find_accessory(accessory_id), schedule, at=at)


def test_catalog_prices_and_properties() -> None:
    shaggy = find_accessory("shaggy")
    assert shaggy.category is AccessoryCategory.HAIR
    assert shaggy.avatar_property == "top"
    assert shaggy.point_cost == 300

    assert find_accessory("sunglasses").point_cost == 200
    assert find_accessory("earring").avatar_property == "accessories"
    assert find_accessory("hoodie").point_cost == 250
    assert find_accessory("hair-color-blonde").point_cost == 150
    assert find_accessory("hair-color-blonde").avatar_property == "hairColor"
    assert find_accessory("clothing-color-blue").point_cost == 100

    ids = [item.id for item in catalog()]
    assert len(ids) == len(set(ids))
    assert all(item.category in CATEGORIES for item in catalog())
    assert accessories_for("footwear") == []

    with pytest.raises(RecordNotFoundError):
        find_accessory("jetpack")


def test_apply_accessory_replaces_property_value() -> None:
    config = {"seed": "ava", "top": ["bob"]}
    updated = apply_accessory(config, find_accessory("shaggy"))
    assert updated == {"seed": "ava", "top": ["shaggy"]}
    assert config["top"] == ["bob"]


def test_store_schedule_boundaries() -> None:
    assert is_store_open(None, datetime(2024, 1, 6, 3, 0))
    assert is_store_open(SCHOOL_HOURS, datetime(2024, 1, 5, 9, 0))
    assert is_store_open(SCHOOL_HOURS, datetime(2024, 1, 5, 17, 0))
    assert not is_store_open(SCHOOL_HOURS, datetime(2024, 1, 5, 17, 1))
    assert not is_store_open(SCHOOL_HOURS, datetime(2024, 1, 5, 8, 59))
    assert not is_store_open(SCHOOL_HOURS, datetime(2024, 1, 6, 12, 0))


def test_purchase_deducts_points_and_dresses_avatar() -> None:
    store, avatar_store = _setup(points=300)

    record = _buy(store, avatar_store, "shaggy")

    ava = store.get(Child, "ava")
    assert ava.points == 0
    assert ava.total_points_earned == 300
    assert ava.avatar_config["top"] == ["shaggy"]
    assert ava.avatar_config["seed"] == "ava"
    assert store.get(Family, "default").points == 300
    assert [item.accessory_id for item in store.list(PurchasedAccessory)] == ["shaggy"]
    assert record.purchased_at == FRIDAY_NOON


def test_purchase_after_closing_is_rejected() -> None:
    store, avatar_store = _setup(points=300)

    with pytest.raises(StoreClosedError):
        _buy(store, avatar_store, "shaggy", at=datetime(2024, 1, 5, 18, 0))

    ava = store.get(Child, "ava")
    assert ava.points == 300
    assert ava.avatar_config["top"] == ["bob"]
    assert store.list(PurchasedAccessory) == []


def test_purchase_without_enough_points_changes_nothing() -> None:
    store, avatar_store = _setup(points=100)

    with pytest.raises(InsufficientPointsError):
        _buy(store, avatar_store, "sunglasses")

    assert store.get(Child, "ava").points == 100
    assert store.list(PurchasedAccessory) == []


def test_reselecting_an_owned_accessory_is_free() -> None:
    store, avatar_store = _setup(points=600)
    _buy(store, avatar_store, "shaggy")
    _buy(store, avatar_store, "bob", schedule=None)
    assert store.get(Child, "ava").points == 0

    with store.transaction() as uow:
        avatar_store.select_owned(uow, uow.require(Child, "ava"), find_accessory("shaggy"))

    ava = store.get(Child, "ava")
    assert ava.avatar_config["top"] == ["shaggy"]
    assert ava.points == 0

    with pytest.raises(InvalidTransitionError):
        with store.transaction() as uow:
            avatar_store.select_owned(uow, uow.require(Child, "ava"), find_accessory("hoodie"))
