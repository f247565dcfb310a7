import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, NaiveDatetime, field_validator

from pika.ingest.llm import LlmProvider
from pika.models.entities import (
    Assignment,
    AssignmentType,
    DayPlan,
    EventKind,
    FocusWindow,
    NotificationSettings,
    PlannedEvent,
    PlannerSettings,
    clamp_session_minutes,
)
from pika.utils.dates import is_iso_date_only


class AssignmentIn(BaseModel):
    name: str = Field(..., min_length=1)
    type: AssignmentType = AssignmentType.HOMEWORK
    weight: float = Field(0.0, ge=0, le=100)
    score: Optional[float] = Field(None, ge=0, le=100)
    due_date: str
    estimated_hours: float = Field(0.0, ge=0, le=1000)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str):
        """Names must contain something besides whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: str):
        """Due dates are calendar dates in YYYY-MM-DD form."""
        if not is_iso_date_only(v):
            raise ValueError("due_date must be a valid YYYY-MM-DD date")
        return v

    def to_domain(self, assignment_id: Optional[str] = None, created_at: Optional[str] = None) -> Assignment:
        if assignment_id is None:
            return Assignment.create(
                name=self.name,
                type=self.type,
                weight=self.weight,
                due_date=self.due_date,
                estimated_hours=self.estimated_hours,
                score=self.score,
            )
        return Assignment(
            id=assignment_id,
            name=self.name,
            type=self.type,
            weight=self.weight,
            score=self.score,
            due_date=self.due_date,
            estimated_hours=self.estimated_hours,
            created_at=created_at,
        )


class AssignmentDTO(AssignmentIn):
    id: str = Field(..., min_length=1)
    created_at: Optional[str] = None

    @classmethod
    def from_domain(cls, a: Assignment) -> "AssignmentDTO":
        return cls(
            id=a.id,
            name=a.name,
            type=a.type,
            weight=a.weight,
            score=a.score,
            due_date=a.due_date,
            estimated_hours=a.estimated_hours,
            created_at=a.created_at,
        )

    def to_domain(self, assignment_id: Optional[str] = None, created_at: Optional[str] = None) -> Assignment:
        return super().to_domain(assignment_id or self.id, created_at or self.created_at)


class ScoreUpdate(BaseModel):
    score: Optional[float] = Field(None, ge=0, le=100)


class FocusWindowDTO(BaseModel):
    start: str
    end: str


class PlannerSettingsDTO(BaseModel):
    session_minutes: int = 60
    focus_windows: Dict[int, List[FocusWindowDTO]] = Field(default_factory=dict)

    @field_validator("session_minutes")
    @classmethod
    def clamp_session(cls, v: int):
        """Session length is clamped into [15, 240] minutes."""
        return clamp_session_minutes(v)

    @field_validator("focus_windows")
    @classmethod
    def validate_weekdays(cls, v: Dict[int, List[FocusWindowDTO]]):
        """Weekday keys run from 0 (Sunday) to 6 (Saturday)."""
        for day in v:
            if day < 0 or day > 6:
                raise ValueError("focus_windows keys must be weekdays 0-6 (0=Sunday)")
        return v

    def to_domain(self) -> PlannerSettings:
        return PlannerSettings(
            session_minutes=self.session_minutes,
            focus_windows={
                day: tuple(FocusWindow(start=w.start, end=w.end) for w in windows)
                for day, windows in self.focus_windows.items()
            },
        )

    @classmethod
    def from_domain(cls, s: PlannerSettings) -> "PlannerSettingsDTO":
        return cls(
            session_minutes=s.session_minutes,
            focus_windows={
                day: [FocusWindowDTO(start=w.start, end=w.end) for w in windows]
                for day, windows in sorted(s.focus_windows.items())
            },
        )


class PlannedEventDTO(BaseModel):
    kind: EventKind
    assignment_id: str
    title: str
    start: dt.datetime
    end: dt.datetime
    minutes: int

    @classmethod
    def from_domain(cls, e: PlannedEvent) -> "PlannedEventDTO":
        return cls(kind=e.kind, assignment_id=e.assignment_id, title=e.title, start=e.start, end=e.end, minutes=e.minutes)


class DayPlanDTO(BaseModel):
    date: dt.date
    events: List[PlannedEventDTO]
    study_minutes: int
    overflow_minutes: int

    @classmethod
    def from_domain(cls, d: DayPlan) -> "DayPlanDTO":
        return cls(
            date=d.date.date(),
            events=[PlannedEventDTO.from_domain(e) for e in d.events],
            study_minutes=d.study_minutes,
            overflow_minutes=d.overflow_minutes,
        )


class WeekPlanResponse(BaseModel):
    horizon_start: dt.date
    days: List[DayPlanDTO]
    scheduled_minutes: Dict[str, int]
    overflow_minutes: int


class PlanRequest(BaseModel):
    assignments: List[AssignmentDTO]
    settings: PlannerSettingsDTO = Field(default_factory=PlannerSettingsDTO)
    now: Optional[NaiveDatetime] = None


class UrgencyCardDTO(BaseModel):
    assignment: AssignmentDTO
    due: dt.datetime
    countdown: str
    urgency: str


class TypeBreakdownDTO(BaseModel):
    type: AssignmentType
    count: int
    scored_weight: float
    average: Optional[float]


class GradeSummaryResponse(BaseModel):
    goal: float
    total_weight: float
    scored_weight: float
    remaining_weight: float
    points: float
    current: Optional[float]
    needed: Optional[float]
    needed_label: str
    by_type: List[TypeBreakdownDTO]


class SyllabusTextRequest(BaseModel):
    text: str = Field(..., min_length=1)


class SyllabusExtractRequest(SyllabusTextRequest):
    provider: LlmProvider = LlmProvider.OPENAI


class SyllabusResponse(BaseModel):
    assignments: List[AssignmentDTO]
    committed: bool = False
    cached: bool = False
    source: str = "local"


class UploadResponse(SyllabusResponse):
    file_name: str
    file_type: str
    text: str


class NotificationSettingsDTO(BaseModel):
    phone_number: str = ""
    alert_24h_deadlines: bool = True
    daily_study_reminders: bool = False

    def to_domain(self) -> NotificationSettings:
        return NotificationSettings(**self.model_dump())

    @classmethod
    def from_domain(cls, s: NotificationSettings) -> "NotificationSettingsDTO":
        return cls(
            phone_number=s.phone_number,
            alert_24h_deadlines=s.alert_24h_deadlines,
            daily_study_reminders=s.daily_study_reminders,
        )


class SmsPayloadDTO(BaseModel):
    to: str
    body: str
    kind: str


class SimulateResponse(BaseModel):
    messages: List[SmsPayloadDTO]
