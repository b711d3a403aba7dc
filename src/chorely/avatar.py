"""Avatar accessory catalog, avatar config merging and the points store."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .exceptions import InvalidTransitionError, RecordNotFoundError, StoreClosedError
from .ledger import PointsLedger
from .models import AccessoryCategory, AvatarAccessory, Child, PurchasedAccessory, StoreSchedule, new_id
from .ops import StructuredLogger
from .persistence import UnitOfWork
from .timewindows import day_of_week, parse_time_to_minutes, minutes_since_midnight

CATEGORIES: Tuple[AccessoryCategory, ...] = (
    AccessoryCategory.HAIR,
    AccessoryCategory.EYEWEAR,
    AccessoryCategory.CLOTHING,
    AccessoryCategory.ACCESSORIES,
)

CATEGORY_PROPERTY: Dict[AccessoryCategory, str] = {
    AccessoryCategory.HAIR: "top",
    AccessoryCategory.EYEWEAR: "accessories",
    AccessoryCategory.ACCESSORIES: "accessories",
    AccessoryCategory.CLOTHING: "clothing",
    AccessoryCategory.FOOTWEAR: "footwear",
}

CATEGORY_PRICE: Dict[AccessoryCategory, int] = {
    AccessoryCategory.HAIR: 300,
    AccessoryCategory.EYEWEAR: 200,
    AccessoryCategory.ACCESSORIES: 150,
    AccessoryCategory.CLOTHING: 250,
    AccessoryCategory.FOOTWEAR: 200,
}

HAIR_COLOR_PRICE = 150
CLOTHING_COLOR_PRICE = 100

_OPTIONS: Dict[AccessoryCategory, Sequence[Tuple[str, str, str]]] = {
    AccessoryCategory.EYEWEAR: (
        ("glasses-round", "Round Glasses", "round"),
        ("glasses-square", "Square Glasses", "square"),
        ("sunglasses", "Sunglasses", "sunglasses"),
    ),
    AccessoryCategory.ACCESSORIES: (("earring", "Earring", "earring"),),
    AccessoryCategory.CLOTHING: (
        ("blazer", "Blazer", "blazerAndShirt"),
        ("sweater", "Sweater", "blazerAndSweater"),
        ("hoodie", "Hoodie", "hoodie"),
        ("overall", "Overall", "overall"),
        ("collar", "Collar Shirt", "collarAndSweater"),
        ("vneck", "V-Neck", "graphicShirt"),
    ),
    AccessoryCategory.FOOTWEAR: (),
    AccessoryCategory.HAIR: (
        ("short-dreads", "Short Dreads", "dreads01"),
        ("long-dreads", "Long Dreads", "dreads02"),
        ("frizzle", "Frizzle", "frizzle"),
        ("shaggy", "Shaggy", "shaggy"),
        ("curly", "Curly", "curly"),
        ("bob", "Bob", "bob"),
        ("bun", "Bun", "bun"),
        ("straight-long", "Long Straight", "straight01"),
        ("straight-strand", "Strand", "straight02"),
        ("hat-beanie", "Beanie", "winterHat02"),
        ("hat-winter", "Winter Hat", "winterHat03"),
        ("turban", "Turban", "turban"),
        ("hijab", "Hijab", "hijab"),
    ),
}

HAIR_COLORS: Sequence[Tuple[str, str, str]] = (
    ("black", "Black", "1c1c1c"),
    ("brown", "Brown", "4a312c"),
    ("blonde", "Blonde", "c9b380"),
    ("red", "Red", "b55239"),
    ("gray", "Gray", "9a9a9a"),
    ("blue", "Blue", "4a80b5"),
    ("pink", "Pink", "e8adcc"),
    ("purple", "Purple", "9b59b6"),
)

CLOTHING_COLORS: Sequence[Tuple[str, str, str]] = (
    ("blue", "Blue", "3c4f5c"),
    ("red", "Red", "e74c3c"),
    ("green", "Green", "27ae60"),
    ("purple", "Purple", "8e44ad"),
    ("orange", "Orange", "e67e22"),
    ("pink", "Pink", "ff69b4"),
    ("gray", "Gray", "929598"),
    ("black", "Black", "262e33"),
)


def accessories_for(category: AccessoryCategory | str) -> List[AvatarAccessory]:
    """Return the catalog entries for ``category``, colour options included."""

    category = AccessoryCategory(category)
    items = [
        AvatarAccessory(
            id=accessory_id,
            name=name,
            category=category,
            avatar_property=CATEGORY_PROPERTY[category],
            avatar_value=value,
            point_cost=CATEGORY_PRICE[category],
        )
        for accessory_id, name, value in _OPTIONS.get(category, ())
    ]
    if category is AccessoryCategory.HAIR:
        items.extend(
            AvatarAccessory(
                id=f"hair-color-{color_id}",
                name=f"{name} Hair Color",
                category=category,
                avatar_property="hairColor",
                avatar_value=value,
                point_cost=HAIR_COLOR_PRICE,
            )
            for color_id, name, value in HAIR_COLORS
        )
    if category is AccessoryCategory.CLOTHING:
        items.extend(
            AvatarAccessory(
                id=f"clothing-color-{color_id}",
                name=f"{name} Clothing",
                category=category,
                avatar_property="clothingColor",
                avatar_value=value,
                point_cost=CLOTHING_COLOR_PRICE,
            )
            for color_id, name, value in CLOTHING_COLORS
        )
    return items


def catalog() -> List[AvatarAccessory]:
    return [item for category in AccessoryCategory for item in accessories_for(category)]


def find_accessory(accessory_id: str) -> AvatarAccessory:
    for item in catalog():
        if item.id == accessory_id:
            return item
    raise RecordNotFoundError(f"Unknown accessory '{accessory_id}'.")


def new_avatar_config(seed: Optional[str] = None) -> Dict[str, Any]:
    return {"seed": seed or new_id()}


def apply_accessory(config: Mapping[str, Any], accessory: AvatarAccessory) -> Dict[str, Any]:
    """Return a copy of ``config`` wearing ``accessory``.

    Only one value is kept per property, so a new hairstyle replaces the old.
    """

    updated = dict(config)
    updated[accessory.avatar_property] = [accessory.avatar_value]
    return updated


def is_store_open(schedule: Optional[StoreSchedule], moment: datetime) -> bool:
    """Whether purchases are allowed at ``moment``.

    The closing time is inclusive, unlike time periods. A family without a
    schedule has an always-open store.
    """

    if schedule is None:
        return True
    if day_of_week(moment) not in schedule.days_of_week:
        return False
    current = minutes_since_midnight(moment)
    return parse_time_to_minutes(schedule.start_time) <= current <= parse_time_to_minutes(schedule.end_time)


class AvatarStore:
    """Exchange a child's individual points for avatar accessories."""

    def __init__(self, ledger: PointsLedger, *, logger: Optional[StructuredLogger] = None) -> None:
        self._ledger = ledger
        self._logger = logger or StructuredLogger()

    def owned_accessory_ids(self, uow: UnitOfWork, child_id: str) -> Set[str]:
        return {purchase.accessory_id for purchase in uow.list(PurchasedAccessory) if purchase.child_id == child_id}

    def purchase(
        self,
        uow: UnitOfWork,
        child: Child,
        accessory: AvatarAccessory,
        schedule: Optional[StoreSchedule],
        *,
        at: datetime,
    ) -> PurchasedAccessory:
        if not is_store_open(schedule, at):
            raise StoreClosedError("The avatar store is closed right now.")
        if not accessory.available:
            raise InvalidTransitionError(f"Accessory '{accessory.name}' is not available.")
        self._ledger.spend_child_points(uow, child, accessory.point_cost, reason=f"accessory {accessory.id}")
        record = PurchasedAccessory(id=new_id(), child_id=child.id, accessory_id=accessory.id, purchased_at=at)
        uow.put(record)
        child.avatar_config = apply_accessory(child.avatar_config, accessory)
        uow.put(child)
        uow.on_commit(
            self._logger.log,
            "accessory_purchased",
            child=child.id,
            accessory=accessory.id,
            cost=accessory.point_cost,
            child_balance=child.points,
        )
        return record

    def select_owned(self, uow: UnitOfWork, child: Child, accessory: AvatarAccessory) -> Child:
        if accessory.id not in self.owned_accessory_ids(uow, child.id):
            raise InvalidTransitionError(f"{child.name} does not own '{accessory.name}'.")
        child.avatar_config = apply_accessory(child.avatar_config, accessory)
        uow.put(child)
        uow.on_commit(self._logger.log, "accessory_applied", child=child.id, accessory=accessory.id)
        return child


__all__ = [
    "AvatarStore",
    "CATEGORIES",
    "accessories_for",
    "apply_accessory",
    "catalog",
    "find_accessory",
    "is_store_open",
    "new_avatar_config",
]
