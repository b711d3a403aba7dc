"""Audit trail of parent (admin) actions for a family."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

ADMIN_ACTOR = "admin"


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """One admin action, e.g. a verification, reward claim or deletion."""

    family_id: str
    action: str
    target: str
    at: datetime
    actor: str = ADMIN_ACTOR
    details: Dict[str, Any] = field(default_factory=dict)


class AuditLog:
    """Append-only list of :class:`AuditEvent` for one family."""

    def __init__(self, family_id: str, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.family_id = family_id
        self._clock = clock or datetime.now
        self._events: list[AuditEvent] = []

    def record(
        self,
        action: str,
        target: str,
        *,
        at: Optional[datetime] = None,
        actor: str = ADMIN_ACTOR,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        event = AuditEvent(
            family_id=self.family_id,
            action=action,
            target=target,
            at=at or self._clock(),
            actor=actor,
            details=dict(details or {}),
        )
        self._events.append(event)
        return event

    def entries(
        self,
        *,
        action: str | None = None,
        target: str | None = None,
        since: datetime | None = None,
    ) -> tuple[AuditEvent, ...]:
        return tuple(
            event
            for event in self._events
            if (action is None or event.action == action)
            and (target is None or event.target == target)
            and (since is None or event.at >= since)
        )

    def latest(self) -> AuditEvent | None:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)


__all__ = ["ADMIN_ACTOR", "AuditEvent", "AuditLog"]
