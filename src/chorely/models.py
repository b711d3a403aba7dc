"""Domain models used by the Chorely package."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, List, Mapping, Optional
from uuid import uuid4

from .points import require_positive

Record = Dict[str, Any]


def new_id() -> str:
    return uuid4().hex


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class Weekday(IntEnum):
    """Days of the week for scheduling, with Sunday as day zero."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_datetime(cls, moment: datetime) -> "Weekday":
        # datetime.weekday() counts from Monday
        return cls((moment.weekday() + 1) % 7)

    @property
    def label(self) -> str:
        return self.name.capitalize()


def weekday_set(values: Iterable[int]) -> FrozenSet[Weekday]:
    return frozenset(Weekday(int(value)) for value in values)


class TimePeriodId(str, Enum):
    """The fixed set of daily windows used to gate chore visibility."""

    MORNING = "morning"
    DAYTIME = "daytime"
    AFTER_SCHOOL = "afterSchool"
    EVENING = "evening"


def period_set(values: Iterable[str]) -> FrozenSet[TimePeriodId]:
    return frozenset(TimePeriodId(value) for value in values)


class CompletionStatus(str, Enum):
    """Lifecycle for a scheduled chore completion."""

    PENDING = "pending"
    VERIFIED = "verified"
    ADJUSTED = "adjusted"


class SideQuestStatus(str, Enum):
    """Lifecycle for a one-off side quest."""

    ACTIVE = "active"
    PENDING_VERIFICATION = "pending_verification"
    COMPLETED = "completed"


class AccessoryCategory(str, Enum):
    HAIR = "hair"
    EYEWEAR = "eyewear"
    CLOTHING = "clothing"
    ACCESSORIES = "accessories"
    FOOTWEAR = "footwear"


@dataclass(slots=True)
class AppState:
    """First-run bookkeeping."""

    RECORD_KIND: ClassVar[str] = "app_state"

    id: str = "app"
    initialized: bool = False
    setup_completed_at: Optional[datetime] = None

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "initialized": self.initialized,
            "setup_completed_at": _dt(self.setup_completed_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "AppState":
        return cls(
            id=data.get("id", "app"),
            initialized=bool(data.get("initialized", False)),
            setup_completed_at=_parse_dt(data.get("setup_completed_at")),
        )


@dataclass(slots=True)
class Family:
    """The single household account and its shared point pool."""

    RECORD_KIND: ClassVar[str] = "family"

    id: str
    admin_pin: str
    points: int = 0
    streak_bonus_points: int = 50
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        require_positive(self.points, allow_zero=True)
        require_positive(self.streak_bonus_points, allow_zero=True)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "admin_pin": self.admin_pin,
            "points": self.points,
            "streak_bonus_points": self.streak_bonus_points,
            "created_at": _dt(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Family":
        return cls(
            id=data["id"],
            admin_pin=data["admin_pin"],
            points=int(data.get("points", 0)),
            streak_bonus_points=int(data.get("streak_bonus_points", 50)),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(),
        )


@dataclass(slots=True)
class Child:
    """A tracked family member with an individual balance and an avatar."""

    RECORD_KIND: ClassVar[str] = "child"

    id: str
    family_id: str
    name: str
    avatar_config: Dict[str, Any] = field(default_factory=dict)
    points: int = 0
    total_points_earned: int = 0
    current_streak: int = 0
    last_streak_date: Optional[date] = None
    streak_bonus_paid_on: Optional[date] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Child name cannot be empty.")
        require_positive(self.points, allow_zero=True)
        require_positive(self.total_points_earned, allow_zero=True)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "family_id": self.family_id,
            "name": self.name,
            "avatar_config": dict(self.avatar_config),
            "points": self.points,
            "total_points_earned": self.total_points_earned,
            "current_streak": self.current_streak,
            "last_streak_date": self.last_streak_date.isoformat() if self.last_streak_date else None,
            "streak_bonus_paid_on": self.streak_bonus_paid_on.isoformat() if self.streak_bonus_paid_on else None,
            "created_at": _dt(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Child":
        streak_date = data.get("last_streak_date")
        bonus_date = data.get("streak_bonus_paid_on")
        return cls(
            id=data["id"],
            family_id=data["family_id"],
            name=data["name"],
            avatar_config=dict(data.get("avatar_config") or {}),
            points=int(data.get("points", 0)),
            total_points_earned=int(data.get("total_points_earned", 0)),
            current_streak=int(data.get("current_streak", 0)),
            last_streak_date=date.fromisoformat(streak_date) if streak_date else None,
            streak_bonus_paid_on=date.fromisoformat(bonus_date) if bonus_date else None,
            created_at=_parse_dt(data.get("created_at")) or datetime.now(),
        )


@dataclass(slots=True)
class Chore:
    """A reusable task definition with a point value."""

    RECORD_KIND: ClassVar[str] = "chore"

    id: str
    family_id: str
    name: str
    icon: str
    point_value: int
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Chore name cannot be empty.")
        require_positive(self.point_value)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "family_id": self.family_id,
            "name": self.name,
            "icon": self.icon,
            "point_value": self.point_value,
            "created_at": _dt(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Chore":
        return cls(
            id=data["id"],
            family_id=data["family_id"],
            name=data["name"],
            icon=data.get("icon", ""),
            point_value=int(data["point_value"]),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(),
        )


@dataclass(slots=True)
class ChoreAssignment:
    """A recurring schedule binding one chore to one child."""

    RECORD_KIND: ClassVar[str] = "assignment"

    id: str
    family_id: str
    chore_id: str
    child_id: str
    days_of_week: FrozenSet[Weekday] = field(default_factory=frozenset)
    time_periods: FrozenSet[TimePeriodId] = field(default_factory=frozenset)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.days_of_week = weekday_set(self.days_of_week)
        self.time_periods = period_set(self.time_periods)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "family_id": self.family_id,
            "chore_id": self.chore_id,
            "child_id": self.child_id,
            "days_of_week": sorted(int(day) for day in self.days_of_week),
            "time_periods": sorted(period.value for period in self.time_periods),
            "created_at": _dt(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "ChoreAssignment":
        return cls(
            id=data["id"],
            family_id=data["family_id"],
            chore_id=data["chore_id"],
            child_id=data["child_id"],
            days_of_week=weekday_set(data.get("days_of_week", ())),
            time_periods=period_set(data.get("time_periods", ())),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(),
        )


@dataclass(slots=True)
class Completion:
    """One instance of an assigned chore being marked done."""

    RECORD_KIND: ClassVar[str] = "completion"

    id: str
    family_id: str
    assignment_id: str
    child_id: str
    chore_id: str
    completed_at: datetime
    status: CompletionStatus = CompletionStatus.PENDING
    verified_at: Optional[datetime] = None
    points_awarded: Optional[int] = None
    archived_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status is CompletionStatus.PENDING

    @property
    def is_final(self) -> bool:
        return self.status in (CompletionStatus.VERIFIED, CompletionStatus.ADJUSTED)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "family_id": self.family_id,
            "assignment_id": self.assignment_id,
            "child_id": self.child_id,
            "chore_id": self.chore_id,
            "completed_at": _dt(self.completed_at),
            "status": self.status.value,
            "verified_at": _dt(self.verified_at),
            "points_awarded": self.points_awarded,
            "archived_at": _dt(self.archived_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Completion":
        awarded = data.get("points_awarded")
        return cls(
            id=data["id"],
            family_id=data["family_id"],
            assignment_id=data["assignment_id"],
            child_id=data["child_id"],
            chore_id=data["chore_id"],
            completed_at=datetime.fromisoformat(data["completed_at"]),
            status=CompletionStatus(data.get("status", CompletionStatus.PENDING.value)),
            verified_at=_parse_dt(data.get("verified_at")),
            points_awarded=int(awarded) if awarded is not None else None,
            archived_at=_parse_dt(data.get("archived_at")),
        )


@dataclass(slots=True)
class TimePeriod:
    """A named daily window expressed as ``HH:MM`` start and end times."""

    RECORD_KIND: ClassVar[str] = "time_period"

    id: TimePeriodId
    family_id: str
    display_name: str
    start_time: str
    end_time: str

    def __post_init__(self) -> None:
        self.id = TimePeriodId(self.id)

    def to_record(self) -> Record:
        return {
            "id": self.id.value,
            "family_id": self.family_id,
            "display_name": self.display_name,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "TimePeriod":
        return cls(
            id=TimePeriodId(data["id"]),
            family_id=data["family_id"],
            display_name=data.get("display_name", ""),
            start_time=data["start_time"],
            end_time=data["end_time"],
        )


@dataclass(slots=True)
class SideQuest:
    """An ad hoc, unscheduled task assigned to one child."""

    RECORD_KIND: ClassVar[str] = "side_quest"

    id: str
    family_id: str
    child_id: str
    name: str
    icon: str
    point_value: int
    description: Optional[str] = None
    status: SideQuestStatus = SideQuestStatus.ACTIVE
    completed_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Side quest name cannot be empty.")
        require_positive(self.point_value)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "family_id": self.family_id,
            "child_id": self.child_id,
            "name": self.name,
            "icon": self.icon,
            "point_value": self.point_value,
            "description": self.description,
            "status": self.status.value,
            "completed_at": _dt(self.completed_at),
            "verified_at": _dt(self.verified_at),
            "created_at": _dt(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "SideQuest":
        return cls(
            id=data["id"],
            family_id=data["family_id"],
            child_id=data["child_id"],
            name=data["name"],
            icon=data.get("icon", ""),
            point_value=int(data["point_value"]),
            description=data.get("description"),
            status=SideQuestStatus(data.get("status", SideQuestStatus.ACTIVE.value)),
            completed_at=_parse_dt(data.get("completed_at")),
            verified_at=_parse_dt(data.get("verified_at")),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(),
        )


@dataclass(slots=True)
class FamilyReward:
    """A shared goal unlocked once the family pool crosses a threshold."""

    RECORD_KIND: ClassVar[str] = "family_reward"

    id: str
    family_id: str
    description: str
    point_threshold: int
    claimed: bool = False
    claimed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.description.strip():
            raise ValueError("Reward description cannot be empty.")
        require_positive(self.point_threshold)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "family_id": self.family_id,
            "description": self.description,
            "point_threshold": self.point_threshold,
            "claimed": self.claimed,
            "claimed_at": _dt(self.claimed_at),
            "created_at": _dt(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "FamilyReward":
        return cls(
            id=data["id"],
            family_id=data["family_id"],
            description=data["description"],
            point_threshold=int(data["point_threshold"]),
            claimed=bool(data.get("claimed", False)),
            claimed_at=_parse_dt(data.get("claimed_at")),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(),
        )


@dataclass(slots=True)
class StoreSchedule:
    """Days and hours during which the avatar store accepts purchases."""

    RECORD_KIND: ClassVar[str] = "store_schedule"

    id: str
    days_of_week: FrozenSet[Weekday]
    start_time: str
    end_time: str

    def __post_init__(self) -> None:
        self.days_of_week = weekday_set(self.days_of_week)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "days_of_week": sorted(int(day) for day in self.days_of_week),
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "StoreSchedule":
        return cls(
            id=data["id"],
            days_of_week=weekday_set(data.get("days_of_week", ())),
            start_time=data["start_time"],
            end_time=data["end_time"],
        )


@dataclass(slots=True)
class PurchasedAccessory:
    """Append-only ownership record for a bought accessory."""

    RECORD_KIND: ClassVar[str] = "purchased_accessory"

    id: str
    child_id: str
    accessory_id: str
    purchased_at: datetime = field(default_factory=datetime.now)

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "child_id": self.child_id,
            "accessory_id": self.accessory_id,
            "purchased_at": _dt(self.purchased_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "PurchasedAccessory":
        return cls(
            id=data["id"],
            child_id=data["child_id"],
            accessory_id=data["accessory_id"],
            purchased_at=_parse_dt(data.get("purchased_at")) or datetime.now(),
        )


@dataclass(slots=True, frozen=True)
class AvatarAccessory:
    """Catalog entry for something a child can buy for their avatar."""

    id: str
    name: str
    category: AccessoryCategory
    avatar_property: str
    avatar_value: str
    point_cost: int
    available: bool = True


@dataclass(slots=True)
class ChoreWithAssignment:
    """A chore joined to the assignment that schedules it and today's completion."""

    chore: Chore
    assignment: ChoreAssignment
    completion: Optional[Completion] = None

    @property
    def is_done(self) -> bool:
        return self.completion is not None


@dataclass(slots=True)
class PendingCompletion:
    """Completion awaiting verification, joined to its child and chore."""

    completion: Completion
    child: Child
    chore: Chore


STORED_MODELS: List[type] = [
    AppState,
    Family,
    Child,
    Chore,
    ChoreAssignment,
    Completion,
    TimePeriod,
    SideQuest,
    FamilyReward,
    StoreSchedule,
    PurchasedAccessory,
]


__all__ = [
    "AccessoryCategory",
    "AppState",
    "AvatarAccessory",
    "Child",
    "Chore",
    "ChoreAssignment",
    "ChoreWithAssignment",
    "Completion",
    "CompletionStatus",
    "Family",
    "FamilyReward",
    "PendingCompletion",
    "PurchasedAccessory",
    "Record",
    "STORED_MODELS",
    "SideQuest",
    "SideQuestStatus",
    "StoreSchedule",
    "TimePeriod",
    "TimePeriodId",
    "Weekday",
    "new_id",
    "period_set",
    "weekday_set",
]
