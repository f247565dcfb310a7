from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import uuid4


SESSION_MINUTES_MIN = 15
SESSION_MINUTES_MAX = 240


class AssignmentType(str, Enum):
    EXAM = "exam"
    HOMEWORK = "homework"
    PROJECT = "project"


@dataclass(frozen=True)
class Assignment:
    id: str
    name: str
    type: AssignmentType
    weight: float  # percentage points, 20 means 20%
    due_date: str  # YYYY-MM-DD
    estimated_hours: float
    score: Optional[float] = None  # 0-100, None until graded
    created_at: Optional[str] = None

    @classmethod
    def create(
        cls,
        name: str,
        type: AssignmentType,
        weight: float,
        due_date: str,
        estimated_hours: float,
        score: Optional[float] = None,
    ) -> "Assignment":
        """Build a new assignment with a fresh id and creation timestamp."""
        return cls(
            id=str(uuid4()),
            name=name,
            type=AssignmentType(type),
            weight=weight,
            due_date=due_date,
            estimated_hours=estimated_hours,
            score=score,
            created_at=datetime.now().isoformat(timespec="seconds"),
        )


@dataclass(frozen=True)
class FocusWindow:
    start: str  # "HH:MM", 24h
    end: str


def clamp_session_minutes(minutes: int) -> int:
    return max(SESSION_MINUTES_MIN, min(SESSION_MINUTES_MAX, int(minutes)))


@dataclass(frozen=True)
class PlannerSettings:
    session_minutes: int = 60
    # weekday index (0=Sunday .. 6=Saturday) -> windows for that day
    focus_windows: Dict[int, Tuple[FocusWindow, ...]] = field(default_factory=dict)

    def windows_for(self, weekday: int) -> Tuple[FocusWindow, ...]:
        return tuple(self.focus_windows.get(weekday, ()))

    def with_weekday_windows(self, weekday: int, windows: Iterable[FocusWindow]) -> "PlannerSettings":
        """Return a copy with one weekday's windows replaced."""
        if weekday not in range(7):
            raise ValueError(f"weekday must be in 0..6, got {weekday}")
        updated = dict(self.focus_windows)
        updated[weekday] = tuple(windows)
        return replace(self, focus_windows=updated)

    def with_session_minutes(self, minutes: int) -> "PlannerSettings":
        return replace(self, session_minutes=clamp_session_minutes(minutes))

    @classmethod
    def default(cls, session_minutes: int = 60) -> "PlannerSettings":
        evening = (FocusWindow("18:00", "21:00"),)
        morning = (FocusWindow("10:00", "13:00"),)
        windows = {d: evening for d in range(1, 6)}
        windows[0] = morning
        windows[6] = morning
        return cls(session_minutes=clamp_session_minutes(session_minutes), focus_windows=windows)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


class EventKind(str, Enum):
    STUDY = "study"
    DUE = "due"


@dataclass(frozen=True)
class PlannedEvent:
    kind: EventKind
    assignment_id: str
    title: str
    start: datetime
    end: datetime
    minutes: int


@dataclass
class DayPlan:
    date: datetime
    events: List[PlannedEvent] = field(default_factory=list)
    overflow_minutes: int = 0

    @property
    def study_minutes(self) -> int:
        return sum(e.minutes for e in self.events if e.kind == EventKind.STUDY)


@dataclass(frozen=True)
class NotificationSettings:
    phone_number: str = ""
    alert_24h_deadlines: bool = True
    daily_study_reminders: bool = False
