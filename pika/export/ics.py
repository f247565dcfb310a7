from datetime import datetime
from typing import List, Optional, Sequence

from pika.models.entities import DayPlan, EventKind, PlannedEvent
from pika.utils.dates import epoch_millis, format_local


PRODID = "-//Pika//Student Dashboard//EN"
UID_DOMAIN = "pika.local"
CRLF = "\r\n"


def escape_text(value: str) -> str:
    """Escape a TEXT value (RFC 5545 section 3.3.11)."""
    return (
        value.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def event_uid(event: PlannedEvent) -> str:
    """Identifier stable across exports of the same plan."""
    owner = event.assignment_id or "pika"
    return f"{owner}_{event.kind.value}_{epoch_millis(event.start)}@{UID_DOMAIN}"


def _summary(event: PlannedEvent) -> str:
    if event.kind == EventKind.DUE:
        name = event.title[:-len(" • Due")] if event.title.endswith(" • Due") else event.title
        return f"Due: {name}"
    return f"Study: {event.title}"


def _description(event: PlannedEvent) -> str:
    if event.kind == EventKind.DUE:
        return "Pika deadline marker."
    return f"Pika study session ({event.minutes} min)."


def _vevent(event: PlannedEvent, dtstamp: str) -> List[str]:
    return [
        "BEGIN:VEVENT",
        f"UID:{escape_text(event_uid(event))}",
        f"DTSTAMP:{dtstamp}",
        f"DTSTART:{format_local(event.start)}",
        f"DTEND:{format_local(event.end)}",
        f"SUMMARY:{escape_text(_summary(event))}",
        f"DESCRIPTION:{escape_text(_description(event))}",
        "END:VEVENT",
    ]


def build_week_ics(plans: Sequence[DayPlan], generated_at: Optional[datetime] = None) -> str:
    """
    Serialize a weekly plan as an iCalendar document.

    Times are floating local time (no TZID, no trailing Z). Only DTSTAMP
    changes between exports; UIDs are derived from assignment, kind and
    start instant.
    """
    dtstamp = format_local(generated_at or datetime.now())

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    for day in plans:
        for event in day.events:
            lines.extend(_vevent(event, dtstamp))
    lines.append("END:VCALENDAR")
    return CRLF.join(lines) + CRLF
