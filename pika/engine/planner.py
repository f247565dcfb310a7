"""
Weekly Study Planner (Greedy Earliest-Deadline-First Allocator)

Places each assignment's estimated effort into fixed-length study slots over
a 7-day horizon that starts at local midnight of ``now``.

Algorithm:
1. Build one independent slot list per horizon day from that weekday's
   normalized focus windows
2. Order assignments by due instant (earliest first, stable on ties)
3. For each assignment, consume the earliest free slots day by day until
   its effort is placed, its due instant is reached, or the horizon ends
4. Record unplaced effort as overflow on the due day (clamped to the
   horizon)
5. Add a short deadline marker on every due day inside the horizon

Policy notes:
- A slot that starts at or after the due instant ends placement for that
  assignment; later slots are never considered.
- When an assignment's effort runs out mid-slot, the unused tail goes back
  to the front of that day's list and the assignment moves on. The tail is
  only offered to assignments processed afterwards.
- Overdue assignments (due before the horizon) and zero-effort assignments
  are skipped, not reported.

The allocator is pure: no I/O, no clock reads when ``now`` is given, and the
same inputs always produce the same plan.

Complexity: O(a log a + a * s) for a assignments and s slots in the horizon
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from pika.engine.focus_windows import normalize_windows
from pika.engine.slots import generate_slots
from pika.errors import PlannerConfigError
from pika.models.entities import (
    SESSION_MINUTES_MAX,
    SESSION_MINUTES_MIN,
    Assignment,
    DayPlan,
    EventKind,
    PlannedEvent,
    PlannerSettings,
    Slot,
)
from pika.utils.dates import ONE_DAY, add_days, parse_iso_date_only, start_of_day, weekday_index


logger = logging.getLogger(__name__)

HORIZON_DAYS = 7
DUE_MARKER_MINUTES = 15


def effort_minutes(estimated_hours: float) -> int:
    """Estimated hours as whole minutes, rounded half up; non-finite is 0."""
    value = float(estimated_hours or 0)
    if not math.isfinite(value):
        return 0
    return int(math.floor(value * 60 + 0.5))


def overflow_day_index(due: datetime, horizon_start: datetime) -> int:
    return max(0, min(HORIZON_DAYS - 1, (due - horizon_start) // ONE_DAY))


def _place_assignment(
    assignment: Assignment,
    due: datetime,
    remaining: int,
    days: List[DayPlan],
    day_slots: List[List[Slot]],
) -> int:
    """Consume slots for one assignment; returns the minutes left unplaced."""
    for day, slots in zip(days, day_slots):
        if remaining <= 0 or day.date > due:
            break
        while remaining > 0 and slots:
            slot = slots[0]
            if slot.start >= due:
                return remaining
            use = min(slot.minutes, remaining)
            slots.pop(0)
            end = slot.start + timedelta(minutes=use)
            day.events.append(PlannedEvent(
                kind=EventKind.STUDY,
                assignment_id=assignment.id,
                title=assignment.name,
                start=slot.start,
                end=end,
                minutes=use,
            ))
            remaining -= use
            if use < slot.minutes:
                # Leftover goes back for later assignments, not this one
                slots.insert(0, Slot(start=end, end=slot.end))
                break
    return remaining


def _add_due_markers(dated: Sequence[Tuple[datetime, Assignment]], days: List[DayPlan], horizon_start: datetime) -> None:
    horizon_end = add_days(horizon_start, HORIZON_DAYS)
    for due, assignment in dated:
        if due < horizon_start or due >= horizon_end:
            continue
        day = days[(due - horizon_start) // ONE_DAY]
        end = day.date.replace(hour=23, minute=59)
        day.events.append(PlannedEvent(
            kind=EventKind.DUE,
            assignment_id=assignment.id,
            title=f"{assignment.name} • Due",
            start=end - timedelta(minutes=DUE_MARKER_MINUTES),
            end=end,
            minutes=DUE_MARKER_MINUTES,
        ))


def build_weekly_plan(
    assignments: Sequence[Assignment],
    settings: PlannerSettings,
    now: Optional[datetime] = None,
) -> List[DayPlan]:
    """
    Build the 7-day study plan.

    Args:
        assignments: Snapshot of the assignment list (not mutated)
        settings: Session length and weekly focus windows
        now: Reference instant; defaults to the current local time

    Returns:
        Seven DayPlans starting at local midnight of ``now``, each with
        events sorted by start time

    Raises:
        PlannerConfigError: session length outside [15, 240]
        InvalidDueDateError: an assignment's due date cannot be parsed
    """
    session = settings.session_minutes
    if not isinstance(session, int) or not SESSION_MINUTES_MIN <= session <= SESSION_MINUTES_MAX:
        raise PlannerConfigError(
            f"session_minutes must be an integer in [{SESSION_MINUTES_MIN}, {SESSION_MINUTES_MAX}], got {session!r}"
        )

    if now is None:
        now = datetime.now()
    horizon_start = start_of_day(now)

    days = [DayPlan(date=add_days(horizon_start, i)) for i in range(HORIZON_DAYS)]
    day_slots = [
        generate_slots(day.date, normalize_windows(settings.windows_for(weekday_index(day.date))), session)
        for day in days
    ]

    dated = [(parse_iso_date_only(a.due_date), a) for a in assignments]
    dated.sort(key=lambda pair: pair[0])

    for due, assignment in dated:
        remaining = effort_minutes(assignment.estimated_hours)
        if remaining <= 0 or due < horizon_start:
            continue
        remaining = _place_assignment(assignment, due, remaining, days, day_slots)
        if remaining > 0:
            idx = overflow_day_index(due, horizon_start)
            days[idx].overflow_minutes += remaining
            logger.debug(f"Overflow for {assignment.id}: {remaining} min on day {idx}")

    _add_due_markers(dated, days, horizon_start)

    for day in days:
        day.events.sort(key=lambda e: e.start)

    logger.debug(
        f"Planned {len(dated)} assignments from {horizon_start.date()}: "
        f"{sum(d.study_minutes for d in days)} min scheduled, "
        f"{sum(d.overflow_minutes for d in days)} min overflow"
    )
    return days


def scheduled_minutes_by_assignment(plans: Sequence[DayPlan]) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for day in plans:
        for event in day.events:
            if event.kind == EventKind.STUDY:
                totals[event.assignment_id] = totals.get(event.assignment_id, 0) + event.minutes
    return totals


def total_overflow_minutes(plans: Sequence[DayPlan]) -> int:
    return sum(day.overflow_minutes for day in plans)
