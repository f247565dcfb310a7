from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from pika.models.entities import Assignment
from pika.utils.dates import ONE_DAY, format_dhm, parse_iso_date_only


@dataclass(frozen=True)
class UrgencyCard:
    assignment: Assignment
    due: datetime
    remaining: timedelta
    countdown: str  # D:HH:MM
    urgency: str  # red | yellow | green


def urgency(remaining: timedelta) -> str:
    if remaining < ONE_DAY:
        return "red"
    if remaining < 3 * ONE_DAY:
        return "yellow"
    return "green"


def urgency_board(assignments: Sequence[Assignment], now: Optional[datetime] = None) -> List[UrgencyCard]:
    """Assignments ordered by closest deadline, with live countdowns."""
    now = now or datetime.now()
    dated = sorted(((parse_iso_date_only(a.due_date), a) for a in assignments), key=lambda pair: pair[0])
    cards = []
    for due, a in dated:
        remaining = due - now
        cards.append(UrgencyCard(
            assignment=a,
            due=due,
            remaining=remaining,
            countdown=format_dhm(remaining),
            urgency=urgency(remaining),
        ))
    return cards
