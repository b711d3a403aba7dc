"""Chorely package for tracking household chores, points and rewards."""

from .admin import AuditEvent, AuditLog
from .avatar import AvatarStore, apply_accessory, catalog, find_accessory, is_store_open
from .completions import CompletionWorkflow
from .exceptions import (
    AdminRequiredError,
    ChorelyError,
    InconsistentStateError,
    InsufficientPointsError,
    InvalidTransitionError,
    PartialVerificationError,
    RecordNotFoundError,
    SetupError,
    StorageError,
    StoreClosedError,
)
from .ledger import PointsLedger
from .models import (
    AccessoryCategory,
    AppState,
    AvatarAccessory,
    Child,
    Chore,
    ChoreAssignment,
    ChoreWithAssignment,
    Completion,
    CompletionStatus,
    Family,
    FamilyReward,
    PendingCompletion,
    PurchasedAccessory,
    SideQuest,
    SideQuestStatus,
    StoreSchedule,
    TimePeriod,
    TimePeriodId,
    Weekday,
)
from .ops import StructuredLogger
from .persistence import MemoryRecordStore, RecordStore, SqlRecordStore, UnitOfWork
from .quests import SideQuestWorkflow
from .security import AdminGate, OpenAdminGate
from .service import ChoreChart

__all__ = [
    "AccessoryCategory",
    "AdminGate",
    "AdminRequiredError",
    "AppState",
    "AuditEvent",
    "AuditLog",
    "AvatarAccessory",
    "AvatarStore",
    "Child",
    "Chore",
    "ChoreAssignment",
    "ChoreChart",
    "ChoreWithAssignment",
    "ChorelyError",
    "Completion",
    "CompletionStatus",
    "CompletionWorkflow",
    "Family",
    "FamilyReward",
    "InconsistentStateError",
    "InsufficientPointsError",
    "InvalidTransitionError",
    "MemoryRecordStore",
    "OpenAdminGate",
    "PartialVerificationError",
    "PendingCompletion",
    "PointsLedger",
    "PurchasedAccessory",
    "RecordNotFoundError",
    "RecordStore",
    "SetupError",
    "SideQuest",
    "SideQuestStatus",
    "SideQuestWorkflow",
    "SqlRecordStore",
    "StorageError",
    "StoreClosedError",
    "StoreSchedule",
    "StructuredLogger",
    "TimePeriod",
    "TimePeriodId",
    "UnitOfWork",
    "Weekday",
    "apply_accessory",
    "catalog",
    "find_accessory",
    "is_store_open",
]
