"""
SMS notification simulation.

Nothing is sent: the payloads an SMS gateway would receive are built and
logged so the user can preview what alerts their settings produce.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from pika.models.entities import Assignment, DayPlan, EventKind, NotificationSettings
from pika.utils.dates import ONE_DAY, is_same_day, parse_iso_date_only


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmsPayload:
    to: str
    body: str
    kind: str  # "deadline" | "study"


def deadlines_within_24h(assignments: Sequence[Assignment], now: datetime) -> List[Assignment]:
    out = []
    for a in assignments:
        remaining = parse_iso_date_only(a.due_date) - now
        if remaining.total_seconds() > 0 and remaining < ONE_DAY:
            out.append(a)
    return out


def build_sms_preview(
    settings: NotificationSettings,
    assignments: Sequence[Assignment],
    now: datetime,
    plan: Optional[Sequence[DayPlan]] = None,
) -> List[SmsPayload]:
    """Build (and log) the messages the current settings would send right now."""
    to = settings.phone_number.strip()
    payloads: List[SmsPayload] = []

    if settings.alert_24h_deadlines:
        for a in deadlines_within_24h(assignments, now):
            payloads.append(SmsPayload(
                to=to,
                body=f"Pika: {a.name} is due {a.due_date} (within 24h).",
                kind="deadline",
            ))

    if settings.daily_study_reminders and plan:
        today = next((d for d in plan if is_same_day(d.date, now)), None)
        sessions = [e for e in today.events if e.kind == EventKind.STUDY] if today else []
        if sessions:
            minutes = sum(e.minutes for e in sessions)
            titles = ", ".join(dict.fromkeys(e.title for e in sessions))
            payloads.append(SmsPayload(
                to=to,
                body=f"Pika: {len(sessions)} study session(s) today ({minutes} min): {titles}.",
                kind="study",
            ))

    for p in payloads:
        logger.info(f"Simulated SMS to {p.to or '<unset>'}: {p.body}")
    return payloads
