"""Resolve which scheduled chores a child can act on right now and today."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Chore, ChoreAssignment, ChoreWithAssignment, Completion, TimePeriod, Weekday
from .timewindows import date_key


def todays_completions(completions: Iterable[Completion], moment: datetime) -> List[Completion]:
    key = date_key(moment)
    return [completion for completion in completions if date_key(completion.completed_at) == key]


def _first_completion(completions: Sequence[Completion], assignment_id: str) -> Optional[Completion]:
    for completion in completions:
        if completion.assignment_id == assignment_id:
            return completion
    return None


def _resolve(
    child_id: str,
    assignments: Iterable[ChoreAssignment],
    chores: Iterable[Chore],
    completions: Sequence[Completion],
    day: Weekday,
    period: Optional[TimePeriod],
    *,
    require_period: bool,
) -> List[ChoreWithAssignment]:
    if require_period and period is None:
        return []
    chores_by_id: Dict[str, Chore] = {chore.id: chore for chore in chores}
    entries: List[ChoreWithAssignment] = []
    for assignment in assignments:
        if assignment.child_id != child_id or day not in assignment.days_of_week:
            continue
        if require_period and period.id not in assignment.time_periods:
            continue
        chore = chores_by_id.get(assignment.chore_id)
        if chore is None:
            # chore was deleted; the assignment is a dangling reference
            continue
        entries.append(
            ChoreWithAssignment(
                chore=chore,
                assignment=assignment,
                completion=_first_completion(completions, assignment.id),
            )
        )
    return entries


def current_chores(
    child_id: str,
    assignments: Iterable[ChoreAssignment],
    chores: Iterable[Chore],
    completions: Sequence[Completion],
    day: Weekday,
    period: Optional[TimePeriod],
) -> List[ChoreWithAssignment]:
    """Chores scheduled for ``child_id`` on ``day`` during ``period``.

    ``completions`` should already be limited to the current day. When no
    period is active the result is empty.
    """

    return _resolve(child_id, assignments, chores, completions, day, period, require_period=True)


def all_today_chores(
    child_id: str,
    assignments: Iterable[ChoreAssignment],
    chores: Iterable[Chore],
    completions: Sequence[Completion],
    day: Weekday,
) -> List[ChoreWithAssignment]:
    """Every chore scheduled for ``child_id`` on ``day``, regardless of period."""

    return _resolve(child_id, assignments, chores, completions, day, None, require_period=False)


def daily_progress(entries: Iterable[ChoreWithAssignment]) -> Tuple[int, int]:
    items = list(entries)
    done = sum(1 for entry in items if entry.is_done)
    return done, len(items)


__all__ = ["all_today_chores", "current_chores", "daily_progress", "todays_completions"]
